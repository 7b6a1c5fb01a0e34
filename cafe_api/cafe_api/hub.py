"""Websocket hub broadcasting refresh signals to connected staff clients."""

from fastapi import WebSocket

from .logger import ws_logger as logger
from .schemas import RefreshSignal


class ConnectionHub:
    """Tracks open sockets and pushes a refresh frame to each of them."""

    def __init__(self) -> None:
        self._connections: set[WebSocket] = set()
        self.stats = {"connections_opened": 0, "broadcasts": 0, "dropped": 0}

    def __len__(self) -> int:
        return len(self._connections)

    async def connect(self, websocket: WebSocket) -> None:
        await websocket.accept()
        self._connections.add(websocket)
        self.stats["connections_opened"] += 1
        logger.info(f"Socket connected | active={len(self._connections)}")

    def disconnect(self, websocket: WebSocket) -> None:
        if websocket in self._connections:
            self._connections.discard(websocket)
            logger.info(f"Socket disconnected | active={len(self._connections)}")

    async def broadcast_refresh(self, reason: str = "") -> int:
        """Send ``{"type": "refresh_orders"}`` to every socket.

        Sockets that fail to receive are dropped.

        Args:
            reason: Optional text carried in the frame's ``message`` field

        Returns:
            int: Number of sockets that received the frame
        """
        frame = RefreshSignal(message=reason or None).model_dump(exclude_none=True)
        delivered = 0
        for websocket in list(self._connections):
            try:
                await websocket.send_json(frame)
                delivered += 1
            except Exception as e:
                logger.warning(f"Dropping socket after failed send | error_type={type(e).__name__} | error={e}")
                self._connections.discard(websocket)
                self.stats["dropped"] += 1
        self.stats["broadcasts"] += 1
        logger.debug(f"Refresh broadcast | delivered={delivered} | reason={reason}")
        return delivered

    async def close_all(self) -> None:
        for websocket in list(self._connections):
            try:
                await websocket.close()
            except Exception as e:
                logger.debug(f"Socket already closed | error={e}")
        self._connections.clear()
