"""HTTP clients for the café API: orders, menu catalog and auth session."""

import asyncio
from typing import Any, Optional

import requests
from pydantic import TypeAdapter
from pydantic import ValidationError as SchemaValidationError

from .errors import ApiError, NetworkError, ValidationError
from .logger import logger
from .schemas import ORDER_STATUSES, LoginResult, MenuItem, Order, OrderDraft, StatusUpdate

_ORDER = TypeAdapter(Order)
_ORDER_LIST = TypeAdapter(list[Order])
_MENU_LIST = TypeAdapter(list[MenuItem])
_LOGIN = TypeAdapter(LoginResult)


def _error_message(response: requests.Response) -> Optional[str]:
    """Pull a human readable message out of a JSON error body, if there is one."""
    try:
        body = response.json()
    except ValueError:
        return None
    if not isinstance(body, dict):
        return None
    message = body.get("message") or body.get("detail")
    if isinstance(message, list):
        # FastAPI validation errors: [{"loc": [...], "msg": "..."}]
        message = "; ".join(str(entry.get("msg", entry)) if isinstance(entry, dict) else str(entry) for entry in message)
    return str(message) if message else None


class ApiTransport:
    """Blocking ``requests`` session driven from the event loop.

    Calls run in a worker thread through ``asyncio.to_thread`` so the loop is
    never blocked; results are handed back on the loop thread. The session's
    cookie jar carries auth credentials for every request.

    Attributes:
        base_url: API root, without trailing slash
        session: Shared ``requests.Session``
        timeout: Per-request timeout in seconds
    """

    def __init__(self, base_url: str, session: Optional[requests.Session] = None, timeout: float = 10.0) -> None:
        self.base_url = base_url.rstrip("/")
        self.session = session or requests.Session()
        self.timeout = timeout

    async def request(
        self,
        method: str,
        path: str,
        payload: Optional[dict] = None,
        response_model: Optional[TypeAdapter] = None,
    ) -> Any:
        """Send one request and decode the JSON answer.

        Args:
            method: HTTP method
            path: Path below ``base_url``
            payload: JSON body, if any
            response_model: Adapter used to validate the decoded body

        Returns:
            The decoded (and validated, when ``response_model`` is given) body,
            or None for an empty body.

        Raises:
            NetworkError: If the server could not be reached or timed out.
            ApiError: On a non-2xx status or an unusable response body.
        """
        url = f"{self.base_url}{path}"
        logger.debug(f"HTTP request | method={method} | url={url}")
        try:
            response = await asyncio.to_thread(
                self.session.request, method, url, json=payload, timeout=self.timeout
            )
        except requests.RequestException as e:
            logger.warning(f"HTTP transport failure | method={method} | url={url} | error={e}")
            raise NetworkError(method, url, str(e) or type(e).__name__) from e

        if not response.ok:
            message = _error_message(response)
            logger.warning(f"HTTP error response | method={method} | url={url} | status={response.status_code} | message={message}")
            raise ApiError(response.status_code, message)

        if not response.content:
            if response_model is None:
                return None
            raise ApiError(response.status_code, "Empty response body")
        try:
            body = response.json()
        except ValueError as e:
            raise ApiError(response.status_code, "Malformed response body") from e

        if response_model is None:
            return body
        try:
            return response_model.validate_python(body)
        except SchemaValidationError as e:
            logger.error(f"Unexpected response shape | method={method} | url={url} | errors={e.error_count()}")
            raise ApiError(response.status_code, "Unexpected response from the café service") from e

    def close(self) -> None:
        self.session.close()


class OrderClient:
    """Thin proxy over the order resource.

    Status transitions are not checked here; the server decides which are allowed.
    """

    def __init__(self, transport: ApiTransport) -> None:
        self._transport = transport

    async def list_orders(self) -> list[Order]:
        """Fetch every order, in the order the server returns them.

        Returns:
            list[Order]: Current orders

        Raises:
            NetworkError: On transport failure.
            ApiError: On a rejected request.
        """
        orders = await self._transport.request("GET", "/orders", response_model=_ORDER_LIST)
        logger.debug(f"Orders fetched | count={len(orders)}")
        return orders

    async def create_order(self, draft: OrderDraft) -> Order:
        """Submit a new order.

        Args:
            draft: Order payload built from the cart

        Returns:
            Order: The order as created by the server

        Raises:
            ValidationError: If the draft has no email. Nothing is sent.
            NetworkError: On transport failure.
            ApiError: If the server rejects the order.
        """
        if not draft.for_email.strip():
            raise ValidationError("Email is required to place an order", field="for_email")

        order = await self._transport.request(
            "POST", "/orders", payload=draft.model_dump(mode="json"), response_model=_ORDER
        )
        logger.info(f"Order created | order_id={order.id} | total={order.total} | items={len(order.items)}")
        return order

    async def update_order_status(self, order_id: int, status: str) -> Order:
        """Set an order's status.

        Args:
            order_id: Server id of the order
            status: Target status

        Returns:
            Order: The updated order

        Raises:
            ValidationError: If ``status`` is not a known status value.
            NetworkError: On transport failure.
            ApiError: If the id is unknown or the server rejects the change.
        """
        if status not in ORDER_STATUSES:
            raise ValidationError(f"Unknown order status: {status!r}", field="status")

        update = StatusUpdate(id=order_id, status=status)
        order = await self._transport.request(
            "PUT", "/orders", payload=update.model_dump(mode="json"), response_model=_ORDER
        )
        logger.info(f"Order status updated | order_id={order.id} | status={order.status}")
        return order


class MenuClient:
    """Read-only access to the menu catalog."""

    def __init__(self, transport: ApiTransport) -> None:
        self._transport = transport

    async def list_menu_items(self) -> list[MenuItem]:
        return await self._transport.request("GET", "/items", response_model=_MENU_LIST)


class AuthClient:
    """Login and logout against the auth provider.

    Credentials are kept in the shared session's cookie jar, so every other
    client sharing the transport sends them automatically.
    """

    def __init__(self, transport: ApiTransport) -> None:
        self._transport = transport
        self.current_user: Optional[LoginResult] = None

    async def login(self, email: str, password: str) -> LoginResult:
        """Log in and remember the returned user.

        Raises:
            ValidationError: If email or password is empty.
            NetworkError: On transport failure.
            ApiError: If the credentials are rejected.
        """
        if not email or not password:
            raise ValidationError("Email and password are required", field="email" if not email else "password")
        self.current_user = await self._transport.request(
            "POST", "/login", payload={"email": email, "password": password}, response_model=_LOGIN
        )
        logger.info(f"Logged in | email={self.current_user.email} | role={self.current_user.role}")
        return self.current_user

    async def logout(self) -> None:
        await self._transport.request("POST", "/revoke")
        self.current_user = None
        self._transport.session.cookies.clear()
        logger.info("Logged out")

    async def get_session(self) -> dict:
        return await self._transport.request("GET", "/session")
