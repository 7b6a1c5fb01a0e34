"""Environment-driven settings for the café client."""

import os
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from .schemas import parse_money


def _default_ws_url(api_base_url: str) -> str:
    if api_base_url.startswith("https://"):
        base = "wss://" + api_base_url[len("https://") :]
    elif api_base_url.startswith("http://"):
        base = "ws://" + api_base_url[len("http://") :]
    else:
        base = api_base_url
    return base.rstrip("/") + "/ws"


@dataclass(frozen=True)
class ClientSettings:
    """Connection and behaviour settings for one client process.

    Attributes:
        api_base_url: Base URL of the café API (no trailing slash)
        ws_url: URL of the live update socket
        http_timeout: Seconds before an HTTP call counts as a network failure
        ws_max_retries: Reconnect attempts after the socket drops (0 disables)
        ws_backoff_seconds: First reconnect delay; doubled on every attempt
        tax_rate: Display-only tax applied by ``CartStore.price_breakdown``
    """

    api_base_url: str = "http://localhost:8000"
    ws_url: Optional[str] = None
    http_timeout: float = 10.0
    ws_max_retries: int = 3
    ws_backoff_seconds: float = 0.5
    tax_rate: Decimal = Decimal("0.08")

    def __post_init__(self) -> None:
        object.__setattr__(self, "api_base_url", self.api_base_url.rstrip("/"))
        if self.ws_url is None:
            object.__setattr__(self, "ws_url", _default_ws_url(self.api_base_url))

    @classmethod
    def from_env(cls) -> "ClientSettings":
        """Build settings from ``CAFE_*`` environment variables.

        Returns:
            ClientSettings: Settings with defaults for anything unset.

        Raises:
            ValueError: If a numeric variable cannot be parsed.
        """
        return cls(
            api_base_url=os.getenv("CAFE_API_BASE_URL", "http://localhost:8000"),
            ws_url=os.getenv("CAFE_WS_URL") or None,
            http_timeout=float(os.getenv("CAFE_HTTP_TIMEOUT", "10")),
            ws_max_retries=int(os.getenv("CAFE_WS_MAX_RETRIES", "3")),
            ws_backoff_seconds=float(os.getenv("CAFE_WS_BACKOFF_SECONDS", "0.5")),
            tax_rate=parse_money(os.getenv("CAFE_TAX_RATE", "0.08")),
        )
