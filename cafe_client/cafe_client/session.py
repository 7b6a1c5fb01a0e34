"""Application-level service container."""

from typing import Any, Optional

import requests

from .cart import CartStore, CartTotals
from .checkout import CheckoutFlow
from .client import ApiTransport, AuthClient, MenuClient, OrderClient
from .config import ClientSettings
from .live import LiveUpdateChannel
from .logger import logger
from .orders import OrderListController


class CafeSession:
    """Owns the services of one client process.

    Built once at start-up and closed at exit (or test teardown). The cart
    and the auth client are single instances shared by everything created
    from the session; order lists and checkout flows are created per view.

    Attributes:
        settings: Settings the services were built from
        transport: Shared HTTP transport (and cookie jar)
        orders: Order resource client
        menu: Menu catalog client
        auth: Auth session client
        cart: The shopper's cart
    """

    def __init__(self, settings: Optional[ClientSettings] = None, http: Optional[requests.Session] = None) -> None:
        self.settings = settings or ClientSettings.from_env()
        self.transport = ApiTransport(self.settings.api_base_url, session=http, timeout=self.settings.http_timeout)
        self.orders = OrderClient(self.transport)
        self.menu = MenuClient(self.transport)
        self.auth = AuthClient(self.transport)
        self.cart = CartStore()
        self._order_lists: list[OrderListController] = []
        self._closed = False
        logger.info(f"Cafe session started | api={self.settings.api_base_url} | ws={self.settings.ws_url}")

    def new_live_channel(self) -> LiveUpdateChannel:
        return LiveUpdateChannel(
            self.settings.ws_url,
            max_retries=self.settings.ws_max_retries,
            backoff_seconds=self.settings.ws_backoff_seconds,
        )

    def new_order_list(self, channel: Optional[LiveUpdateChannel] = None) -> OrderListController:
        """Create an order list with its own live channel; mount it to start."""
        controller = OrderListController(self.orders, channel or self.new_live_channel())
        self._order_lists.append(controller)
        return controller

    def new_checkout(self) -> CheckoutFlow:
        return CheckoutFlow(self.cart, self.orders)

    def cart_totals(self) -> CartTotals:
        return self.cart.price_breakdown(self.settings.tax_rate)

    async def close(self) -> None:
        """Unmount every order list still mounted and release the HTTP session."""
        if self._closed:
            return
        self._closed = True
        for controller in self._order_lists:
            await controller.unmount()
        self._order_lists.clear()
        self.transport.close()
        logger.info("Cafe session closed")

    async def __aenter__(self) -> "CafeSession":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()
