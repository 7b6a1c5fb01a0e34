"""Reference café API: menu, orders and the live refresh socket."""

__version__ = "0.1.0"
