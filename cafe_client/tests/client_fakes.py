"""Test doubles for the HTTP session and the websocket connection."""

import asyncio
import json
from typing import Any, Callable, Optional

import requests

from cafe_client.schemas import Order


def make_response(status: int, body: Any = None, raw: Optional[bytes] = None) -> requests.Response:
    """Build a real ``requests.Response`` with a JSON (or raw) body."""
    response = requests.Response()
    response.status_code = status
    if raw is not None:
        response._content = raw
    elif body is not None:
        response._content = json.dumps(body).encode("utf-8")
        response.headers["Content-Type"] = "application/json"
    else:
        response._content = b""
    return response


def order_payload(order_id: int = 1, status: str = "pending", total: str = "10.00") -> dict:
    return {
        "id": order_id,
        "for_name": "Ada",
        "for_email": "ada@example.com",
        "order_date": "2025-04-30 09:15:00",
        "status": status,
        "total": total,
        "items": [
            {
                "id": 1,
                "order_id": order_id,
                "item_name": "Latte",
                "item_description": "Espresso with steamed milk",
                "quantity": 2,
                "price": "4.50",
                "notes": "",
            }
        ],
    }


def make_order(order_id: int = 1, status: str = "pending") -> Order:
    return Order.model_validate(order_payload(order_id, status))


class FakeSocket:
    """Async-iterable stand-in for a websockets connection."""

    def __init__(self) -> None:
        self._frames: asyncio.Queue = asyncio.Queue()
        self.closed = False

    async def __aenter__(self) -> "FakeSocket":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        self.closed = True

    def __aiter__(self) -> "FakeSocket":
        return self

    async def __anext__(self) -> Any:
        frame = await self._frames.get()
        if frame is None:
            raise StopAsyncIteration
        if isinstance(frame, BaseException):
            raise frame
        return frame

    def push(self, frame: Any) -> None:
        self._frames.put_nowait(frame)

    def push_json(self, data: Any) -> None:
        self.push(json.dumps(data))

    def server_close(self) -> None:
        """End the frame stream the way a clean server close does."""
        self._frames.put_nowait(None)

    def fail(self, error: BaseException) -> None:
        self._frames.put_nowait(error)


class FakeConnector:
    """Replaces ``websockets.connect``; the first ``fail_times`` calls raise OSError.

    With ``close_on_open`` every socket is accepted and then closed by the
    server before sending anything.
    """

    def __init__(self, fail_times: int = 0, close_on_open: bool = False) -> None:
        self.fail_times = fail_times
        self.close_on_open = close_on_open
        self.urls: list[str] = []
        self.sockets: list[FakeSocket] = []

    def __call__(self, url: str) -> FakeSocket:
        self.urls.append(url)
        if len(self.urls) <= self.fail_times:
            raise OSError("connection refused")
        socket = FakeSocket()
        if self.close_on_open:
            socket.server_close()
        self.sockets.append(socket)
        return socket

    @property
    def latest(self) -> FakeSocket:
        return self.sockets[-1]


async def eventually(predicate: Callable[[], bool], timeout: float = 1.0) -> None:
    """Yield to the loop until ``predicate()`` holds, failing after ``timeout`` seconds."""

    async def _poll() -> None:
        while not predicate():
            await asyncio.sleep(0.005)

    await asyncio.wait_for(_poll(), timeout)


async def settle(rounds: int = 20) -> None:
    """Give pending tasks a few loop iterations."""
    for _ in range(rounds):
        await asyncio.sleep(0)
