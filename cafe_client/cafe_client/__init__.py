"""Café ordering client: cart, checkout, order list and live updates."""

__version__ = "0.1.0"
