"""Push channel that signals when the server-side order list changed."""

import asyncio
import json
from collections.abc import Callable
from enum import Enum
from typing import Any, Optional

import websockets
from pydantic import ValidationError as SchemaValidationError

from .errors import ParseError
from .events import Listeners, Subscription
from .logger import live_logger as logger
from .schemas import LiveMessage


class ConnectionState(str, Enum):
    """Connection state reported by the live channel."""

    CONNECTED = "connected"
    DISCONNECTED = "disconnected"


def decode_frame(raw: Any) -> LiveMessage:
    """Decode one socket frame into a ``LiveMessage``.

    Args:
        raw: Text or binary frame as delivered by the socket

    Returns:
        LiveMessage: The decoded message

    Raises:
        ParseError: If the frame is not UTF-8 JSON shaped like ``{"type": str, ...}``.
    """
    if isinstance(raw, (bytes, bytearray)):
        try:
            raw = bytes(raw).decode("utf-8")
        except UnicodeDecodeError as e:
            raise ParseError(raw, f"invalid utf-8: {e}") from e
    try:
        data = json.loads(raw)
    except (TypeError, json.JSONDecodeError) as e:
        raise ParseError(raw, f"invalid json: {e}") from e
    if not isinstance(data, dict) or not isinstance(data.get("type"), str):
        raise ParseError(raw, "expected an object with a string 'type'")
    try:
        return LiveMessage.model_validate(data)
    except SchemaValidationError as e:
        raise ParseError(raw, f"unexpected fields: {e.error_count()} error(s)") from e


class ChannelSubscription:
    """Handle for the channel's single refresh subscriber.

    Unsubscribing only clears the channel when this handle is still the
    current one, so a stale handle never removes its replacement.
    """

    def __init__(self, channel: "LiveUpdateChannel", callback: Callable[[LiveMessage], None]) -> None:
        self._channel = channel
        self.callback = callback

    @property
    def active(self) -> bool:
        return self._channel._subscription is self

    def unsubscribe(self) -> None:
        if self.active:
            self._channel._subscription = None


class LiveUpdateChannel:
    """One persistent websocket connection delivering refresh signals.

    The channel carries signals, not data: on a ``refresh_orders`` frame it
    calls the current subscriber, which is expected to refetch. Frames of any
    other type are ignored and malformed frames are logged. Transport errors
    never propagate; the channel reports ``disconnected`` and, when
    ``max_retries`` allows, reconnects with exponential backoff.

    Attributes:
        url: Websocket URL
        max_retries: Consecutive reconnect attempts before giving up (0 disables);
            a connection that closes before delivering any frame counts as a failed attempt
        backoff_seconds: Delay before the first reconnect, doubled per attempt
        max_backoff_seconds: Upper bound for the reconnect delay
        stats: Counters for received, delivered, ignored and malformed frames
    """

    def __init__(
        self,
        url: str,
        max_retries: int = 0,
        backoff_seconds: float = 0.5,
        max_backoff_seconds: float = 10.0,
        connect: Callable[..., Any] = websockets.connect,
    ) -> None:
        self.url = url
        self.max_retries = max_retries
        self.backoff_seconds = backoff_seconds
        self.max_backoff_seconds = max_backoff_seconds
        self._connect = connect
        self._subscription: Optional[ChannelSubscription] = None
        self._state_listeners = Listeners("live-state")
        self._task: Optional[asyncio.Task] = None
        self._closing = False
        self.state = ConnectionState.DISCONNECTED
        self.stats = {"frames_received": 0, "refresh_signals": 0, "ignored": 0, "parse_errors": 0, "reconnects": 0}

    @property
    def connected(self) -> bool:
        return self.state is ConnectionState.CONNECTED

    @property
    def is_open(self) -> bool:
        """True while the connection task is running (connected or retrying)."""
        return self._task is not None and not self._task.done()

    def subscribe(self, callback: Callable[[LiveMessage], None]) -> ChannelSubscription:
        """Make ``callback`` the receiver of refresh signals, replacing any previous one.

        Args:
            callback: Called with the decoded message for every refresh frame

        Returns:
            ChannelSubscription: Handle used to stop delivery
        """
        self._subscription = ChannelSubscription(self, callback)
        return self._subscription

    def on_state_change(self, listener: Callable[[ConnectionState], None]) -> Subscription:
        return self._state_listeners.subscribe(listener)

    async def open(self) -> None:
        """Start the connection task. Calling it while already open does nothing."""
        if self.is_open:
            return
        self._closing = False
        self._task = asyncio.get_running_loop().create_task(self._run(), name=f"live-channel:{self.url}")
        logger.info(f"Live channel opening | url={self.url}")

    async def close(self) -> None:
        """Stop the connection task and close the socket. Safe to call repeatedly."""
        self._closing = True
        task, self._task = self._task, None
        if task is not None and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        self._set_state(ConnectionState.DISCONNECTED)
        logger.info(
            f"Live channel closed | url={self.url} | frames_received={self.stats['frames_received']} | "
            f"refresh_signals={self.stats['refresh_signals']} | parse_errors={self.stats['parse_errors']}"
        )

    async def __aenter__(self) -> "LiveUpdateChannel":
        await self.open()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    def dispatch(self, raw: Any) -> Optional[LiveMessage]:
        """Handle one received frame.

        Args:
            raw: Frame as read from the socket

        Returns:
            The decoded message, or None when the frame was malformed.
        """
        self.stats["frames_received"] += 1
        try:
            message = decode_frame(raw)
        except ParseError as e:
            self.stats["parse_errors"] += 1
            logger.warning(f"Dropping malformed frame | url={self.url} | reason={e.reason}")
            return None

        if not message.is_refresh:
            self.stats["ignored"] += 1
            logger.debug(f"Ignoring frame | type={message.type}")
            return message

        self.stats["refresh_signals"] += 1
        subscription = self._subscription
        if subscription is None:
            logger.debug("Refresh signal with no subscriber")
            return message
        try:
            subscription.callback(message)
        except Exception as e:
            logger.opt(exception=e).error(f"Refresh subscriber failed | error={e}")
        return message

    def reconnect_delay(self, attempt: int) -> float:
        """Seconds to wait before reconnect ``attempt`` (1-based), doubling up to ``max_backoff_seconds``."""
        return min(self.backoff_seconds * 2 ** (attempt - 1), self.max_backoff_seconds)

    async def _run(self) -> None:
        attempt = 0
        while True:
            try:
                async with self._connect(self.url) as websocket:
                    self._set_state(ConnectionState.CONNECTED)
                    async for frame in websocket:
                        # A connection only counts as healthy once it has delivered a frame
                        attempt = 0
                        self.dispatch(frame)
                logger.info(f"Live channel closed by server | url={self.url}")
            except Exception as e:
                logger.error(f"Live channel transport error | url={self.url} | error_type={type(e).__name__} | error={e}")
            finally:
                self._set_state(ConnectionState.DISCONNECTED)

            if self._closing or attempt >= self.max_retries:
                break
            attempt += 1
            self.stats["reconnects"] += 1
            delay = self.reconnect_delay(attempt)
            logger.info(f"Live channel reconnecting | url={self.url} | attempt={attempt}/{self.max_retries} | delay={delay:.2f}s")
            await asyncio.sleep(delay)

    def _set_state(self, state: ConnectionState) -> None:
        if state is self.state:
            return
        self.state = state
        logger.info(f"Live channel {state.value} | url={self.url}")
        self._state_listeners.emit(state)
