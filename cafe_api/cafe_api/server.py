"""FastAPI server implementation for the café API."""

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, HTTPException, Request, WebSocket, WebSocketDisconnect
from fastapi.responses import JSONResponse

from .hub import ConnectionHub
from .logger import logger
from .schemas import MenuItem, OrderCreate, OrderOut, StatusUpdate
from .store import (
    CafeState,
    InvalidTransitionError,
    OrderNotFoundError,
    PriceMismatchError,
    StoreError,
    TotalMismatchError,
    UnknownMenuItemError,
)

state = CafeState()
hub = ConnectionHub()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage the lifecycle of the FastAPI application.

    Args:
        app: The FastAPI application instance
    """
    logger.info(f"Cafe API starting | menu_items={len(state.list_menu())}")
    yield
    logger.info("Shutting down cafe API...")
    await hub.close_all()
    logger.info("Shutdown complete")


app = FastAPI(title="Cafe API", lifespan=lifespan)


@app.exception_handler(HTTPException)
async def http_error_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Render errors as ``{"message": ...}`` so clients can show the server's text."""
    return JSONResponse(status_code=exc.status_code, content={"message": exc.detail}, headers=exc.headers)


def _raise_store_http_error(e: StoreError) -> None:
    if isinstance(e, OrderNotFoundError):
        raise HTTPException(status_code=404, detail=str(e)) from e

    if isinstance(e, InvalidTransitionError):
        raise HTTPException(status_code=409, detail=str(e)) from e

    if isinstance(e, UnknownMenuItemError):
        raise HTTPException(status_code=400, detail=str(e)) from e

    if isinstance(e, (PriceMismatchError, TotalMismatchError)):
        raise HTTPException(status_code=422, detail=str(e)) from e

    raise HTTPException(status_code=500, detail="Internal Server Error") from e


@app.get("/health")
async def health_check():
    """Basic health check endpoint."""
    return {"status": "healthy", "sockets": len(hub)}


@app.get("/items", response_model=list[MenuItem])
async def list_items(category: Optional[str] = None):
    """List the menu, optionally filtered by category."""
    return state.list_menu(category)


@app.get("/orders", response_model=list[OrderOut])
async def list_orders(status: Optional[str] = None):
    """List orders oldest first.

    Args:
        status: Optional status to filter by

    Returns:
        list[OrderOut]: Matching orders
    """
    return state.list_orders(status)


@app.post("/orders", response_model=OrderOut, status_code=201)
async def create_order(payload: OrderCreate):
    """Store a new order and tell connected staff clients to refresh.

    Args:
        payload: The order submitted by checkout

    Returns:
        OrderOut: The created order

    Raises:
        HTTPException: 400 for unknown menu items, 422 for a price or total that does not match the menu
    """
    try:
        order = state.create_order(payload)
    except StoreError as e:
        logger.warning(f"Order rejected | email={payload.for_email} | error={e}")
        _raise_store_http_error(e)

    await hub.broadcast_refresh(f"Order {order.id} created")
    return order


@app.put("/orders", response_model=OrderOut)
async def update_order(payload: StatusUpdate):
    """Change an order's status and tell connected staff clients to refresh.

    Args:
        payload: Order id and target status

    Returns:
        OrderOut: The updated order

    Raises:
        HTTPException: 404 for an unknown id, 409 for a rejected transition
    """
    try:
        order, changed = state.update_status(payload.id, payload.status)
    except StoreError as e:
        logger.warning(f"Status change rejected | order_id={payload.id} | status={payload.status} | error={e}")
        _raise_store_http_error(e)

    if changed:
        await hub.broadcast_refresh(f"Order {order.id} is {order.status}")
    return order


@app.websocket("/ws")
async def orders_socket(websocket: WebSocket):
    """Push ``refresh_orders`` frames; anything the client sends is ignored."""
    await hub.connect(websocket)
    try:
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        pass
    finally:
        hub.disconnect(websocket)
