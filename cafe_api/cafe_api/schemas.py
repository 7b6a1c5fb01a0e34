"""Pydantic models for the café API."""

from decimal import ROUND_HALF_UP, Decimal
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

OrderStatus = Literal["pending", "completed", "cancelled"]


def _decimal_string(value) -> str:
    """Validate a money value and keep it as a two-place decimal string.

    Args:
        value: Amount as sent by the client (string or number)

    Returns:
        str: e.g. ``"4.50"``

    Raises:
        ValueError: If the value is not a non-negative decimal.
    """
    try:
        amount = Decimal(str(value).strip())
    except ArithmeticError as e:
        raise ValueError(f"not a decimal amount: {value!r}") from e
    if not amount.is_finite() or amount < 0:
        raise ValueError(f"not a non-negative decimal amount: {value!r}")
    return str(amount.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


class MenuItem(BaseModel):
    """An item of the menu catalog.

    Attributes:
        id: Catalog identifier
        name: Display name
        description: Short description
        cost: Unit cost as a decimal string
        category: Menu section
        image: Image path
    """

    id: str
    name: str
    description: str = ""
    cost: str
    category: str
    image: str = ""


class OrderItemIn(BaseModel):
    """An order line as submitted by a client."""

    item_id: str = Field(..., min_length=1)
    item_name: Optional[str] = None
    quantity: int = Field(..., ge=1, le=100)
    price: str
    notes: str = ""

    @field_validator("price", mode="before")
    @classmethod
    def validate_price(cls, v):
        return _decimal_string(v)


class OrderCreate(BaseModel):
    """Body of ``POST /orders``."""

    for_name: str = ""
    for_email: EmailStr
    order_date: str = Field(..., pattern=r"^\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2}$")
    status: Literal["pending"] = "pending"
    total: str
    notes: Optional[str] = None
    items: list[OrderItemIn] = Field(..., min_length=1, description="At least one item required")

    @field_validator("total", mode="before")
    @classmethod
    def validate_total(cls, v):
        return _decimal_string(v)

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "for_name": "Ada",
                "for_email": "ada@example.com",
                "order_date": "2025-04-30 09:15:00",
                "status": "pending",
                "total": "10.00",
                "items": [{"item_id": "latte", "quantity": 2, "price": "4.50", "notes": "oat milk"}],
            }
        }
    )


class StatusUpdate(BaseModel):
    """Body of ``PUT /orders``."""

    id: int
    status: OrderStatus


class OrderItemOut(BaseModel):
    id: int
    order_id: int
    item_name: str
    item_description: str
    quantity: int
    price: str
    notes: str


class OrderOut(BaseModel):
    """An order as returned by the API."""

    id: int
    for_name: str
    for_email: str
    order_date: str
    status: OrderStatus
    total: str
    notes: str = ""
    items: list[OrderItemOut]
    created_at: str
    updated_at: str


class RefreshSignal(BaseModel):
    """Frame pushed to every socket after an order changes."""

    type: Literal["refresh_orders"] = "refresh_orders"
    message: Optional[str] = None
