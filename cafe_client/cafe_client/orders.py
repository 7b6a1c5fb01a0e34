"""Staff order list kept in sync with the server by refetch-on-signal."""

import asyncio
from collections.abc import Callable
from enum import Enum
from typing import Optional

from .client import OrderClient
from .errors import CafeClientError
from .events import Listeners, Subscription
from .live import ChannelSubscription, ConnectionState, LiveUpdateChannel
from .logger import logger
from .schemas import LiveMessage, Order


class ListState(str, Enum):
    """Fetch state of an order list."""

    LOADING = "loading"
    READY = "ready"
    ERRORED = "errored"


class OrderListController:
    """Always-current view of the order collection.

    The controller never merges changes locally. Every refresh signal, manual
    retry or status change leads to a full ``list_orders()`` refetch. Fetches
    are serialised: while one is in flight, further requests collapse into a
    single follow-up fetch, so results are applied in the order fetches were
    started.

    Lifecycle: ``mount()`` opens the live channel and starts the first fetch;
    ``unmount()`` cancels any in-flight fetch and closes the channel. Nothing
    is applied after unmount.
    """

    def __init__(self, client: OrderClient, channel: LiveUpdateChannel) -> None:
        self._client = client
        self._channel = channel
        self._listeners = Listeners("order-list")
        self._orders: list[Order] = []
        self._error: Optional[CafeClientError] = None
        self._state = ListState.LOADING
        self._fetch_task: Optional[asyncio.Task] = None
        self._refetch_pending = False
        self._channel_subscription: Optional[ChannelSubscription] = None
        self._state_subscription: Optional[Subscription] = None
        self._mounted = False
        self._disposed = False
        self._has_connected = False
        self.fetch_count = 0

    @property
    def state(self) -> ListState:
        return self._state

    @property
    def orders(self) -> list[Order]:
        """Last successfully fetched orders; kept while a refetch is loading or after it failed."""
        return list(self._orders)

    @property
    def error(self) -> Optional[CafeClientError]:
        return self._error

    @property
    def connected(self) -> bool:
        return self._channel.connected

    @property
    def is_mounted(self) -> bool:
        return self._mounted and not self._disposed

    def subscribe(self, listener: Callable[["OrderListController"], None]) -> Subscription:
        """Register a view called after every state change of this list."""
        return self._listeners.subscribe(listener)

    async def mount(self) -> None:
        """Open the live channel and load the orders for the first time."""
        if self._disposed:
            raise RuntimeError("Order list was unmounted and cannot be mounted again")
        if self._mounted:
            return
        self._mounted = True
        self._channel_subscription = self._channel.subscribe(self._on_signal)
        self._state_subscription = self._channel.on_state_change(self._on_connection_state)
        await self._channel.open()
        self.request_refresh()
        logger.info("Order list mounted")

    async def unmount(self) -> None:
        """Tear down: drop pending results, close the channel, forget listeners."""
        if self._disposed:
            return
        self._disposed = True
        task, self._fetch_task = self._fetch_task, None
        if task is not None and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        if self._channel_subscription:
            self._channel_subscription.unsubscribe()
        if self._state_subscription:
            self._state_subscription.unsubscribe()
        await self._channel.close()
        self._listeners.clear()
        logger.info(f"Order list unmounted | fetches={self.fetch_count}")

    async def __aenter__(self) -> "OrderListController":
        await self.mount()
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.unmount()

    def request_refresh(self) -> None:
        """Schedule a refetch, coalescing with one already in flight."""
        if self._disposed:
            return
        if self._fetch_task is not None and not self._fetch_task.done():
            self._refetch_pending = True
            return
        self._fetch_task = asyncio.get_running_loop().create_task(self._fetch_until_settled(), name="order-list-fetch")

    async def refresh(self) -> ListState:
        """Refetch now (manual retry) and wait until the list settles.

        Returns:
            ListState: READY or ERRORED (LOADING only if unmounted meanwhile)
        """
        self.request_refresh()
        await self.wait_idle()
        return self._state

    async def wait_idle(self) -> None:
        """Wait for the current fetch, and any follow-up it triggers, to finish."""
        while self._fetch_task is not None and not self._fetch_task.done():
            await asyncio.shield(self._fetch_task)

    async def update_status(self, order_id: int, status: str) -> Order:
        """Change an order's status, then refetch.

        The displayed list is not patched locally; it changes only when the
        refetch returns the server's view.

        Args:
            order_id: Server id of the order
            status: Target status

        Returns:
            Order: The order as returned by the update call

        Raises:
            ValidationError: For an unknown status value.
            NetworkError: On transport failure.
            ApiError: If the server rejects the change.
        """
        try:
            order = await self._client.update_order_status(order_id, status)
        except CafeClientError as e:
            logger.warning(f"Status change failed | order_id={order_id} | status={status} | error={e}")
            raise
        self.request_refresh()
        return order

    async def complete_order(self, order_id: int) -> Order:
        return await self.update_status(order_id, "completed")

    async def cancel_order(self, order_id: int) -> Order:
        return await self.update_status(order_id, "cancelled")

    def _on_signal(self, message: LiveMessage) -> None:
        logger.debug(f"Refresh signal received | state={self._state.value}")
        self.request_refresh()

    def _on_connection_state(self, state: ConnectionState) -> None:
        if self._disposed:
            return
        if state is ConnectionState.CONNECTED:
            # Signals sent while the socket was down are lost; the first connect is covered by mount
            if self._has_connected:
                logger.info("Live channel reconnected, refetching orders")
                self.request_refresh()
            self._has_connected = True
        self._listeners.emit(self)

    async def _fetch_until_settled(self) -> None:
        while True:
            self._refetch_pending = False
            self._set_state(ListState.LOADING)
            self.fetch_count += 1
            try:
                orders = await self._client.list_orders()
            except CafeClientError as e:
                if self._disposed:
                    return
                logger.error(f"Order fetch failed | error_type={type(e).__name__} | error={e}")
                self._error = e
                self._set_state(ListState.ERRORED)
            else:
                if self._disposed:
                    return
                self._orders = list(orders)
                self._error = None
                self._set_state(ListState.READY)
                logger.debug(f"Order list ready | count={len(self._orders)}")
            if not self._refetch_pending:
                return

    def _set_state(self, state: ListState) -> None:
        self._state = state
        self._listeners.emit(self)
