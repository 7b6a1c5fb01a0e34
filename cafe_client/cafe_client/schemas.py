"""Pydantic models for menu items, cart lines and orders."""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Annotated, Literal, Optional

from pydantic import AliasChoices, BaseModel, BeforeValidator, ConfigDict, Field, field_validator

CENTS = Decimal("0.01")

OrderStatus = Literal["pending", "completed", "cancelled"]
ORDER_STATUSES: tuple[str, ...] = ("pending", "completed", "cancelled")

REFRESH_ORDERS = "refresh_orders"


def parse_money(value: object) -> Decimal:
    """Parse a money value from its decimal string (or numeric) form.

    Args:
        value: Amount such as ``"4.50"``, ``4.5`` or ``Decimal("4.50")``.

    Returns:
        Decimal: The exact amount.

    Raises:
        ValueError: If the value is not a finite decimal number.
    """
    if isinstance(value, bool):
        raise ValueError(f"Not a decimal amount: {value!r}")
    try:
        amount = Decimal(str(value).strip())
    except InvalidOperation as e:
        raise ValueError(f"Not a decimal amount: {value!r}") from e
    if not amount.is_finite():
        raise ValueError(f"Not a decimal amount: {value!r}")
    return amount


def format_money(amount: Decimal) -> str:
    """Render an amount with exactly two decimal places (half-up)."""
    return str(amount.quantize(CENTS, rounding=ROUND_HALF_UP))


def _coerce_money(value: object) -> str:
    # Strings keep their wire form; numbers coming from the server are normalised to cents
    if isinstance(value, str):
        parse_money(value)
        return value.strip()
    return format_money(parse_money(value))


Money = Annotated[str, BeforeValidator(_coerce_money)]


class MenuItem(BaseModel):
    """An item of the café menu, as returned by the catalog.

    Attributes:
        id: Catalog identifier
        name: Display name
        description: Short description
        cost: Unit cost as a decimal string, e.g. "4.50"
        category: Menu section
        image: Image URL or path
    """

    id: str
    name: str
    description: str = ""
    cost: Money
    category: str = ""
    image: str = ""

    @field_validator("id", mode="before")
    @classmethod
    def stringify_id(cls, v):
        """Catalog ids are opaque strings even when the server sends numbers."""
        return str(v)


class CartLine(BaseModel):
    """One line of the shopper's cart, keyed by ``item_id``."""

    model_config = ConfigDict(validate_assignment=True)

    item_id: str
    name: str
    unit_cost: Money
    quantity: int = Field(1, ge=1)
    special_instructions: Optional[str] = None

    @property
    def line_total(self) -> Decimal:
        return parse_money(self.unit_cost) * self.quantity


class OrderItem(BaseModel):
    """A line of a placed order. Immutable once the order exists."""

    id: Optional[int] = None
    order_id: Optional[int] = None
    item_name: str
    item_description: str = ""
    quantity: int
    price: Money
    notes: Optional[str] = None


class Order(BaseModel):
    """An order as stored by the café API.

    Attributes:
        id: Server-assigned identifier
        for_name: Customer name, may be empty
        for_email: Customer email (older servers call it ``email``)
        order_date: Submission timestamp, ``YYYY-MM-DD HH:MM:SS``
        status: One of pending, completed, cancelled
        total: Order total as a decimal string
        items: Ordered list of order items
    """

    id: int
    for_name: str = ""
    for_email: str = Field("", validation_alias=AliasChoices("for_email", "email"))
    order_date: str
    status: OrderStatus
    total: Money
    items: list[OrderItem] = Field(default_factory=list)
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class DraftItem(BaseModel):
    """An order line as submitted by checkout."""

    item_id: str
    item_name: str = ""
    quantity: int = Field(..., ge=1)
    price: Money
    notes: str = ""


class OrderDraft(BaseModel):
    """Payload of ``POST /orders``.

    ``for_email`` is checked by the order client rather than here, so that a
    missing email surfaces as a client validation error.
    """

    for_name: str = ""
    for_email: str
    order_date: str
    status: OrderStatus = "pending"
    total: Money
    notes: str = ""
    items: list[DraftItem] = Field(..., min_length=1)

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "for_name": "Ada",
                "for_email": "ada@example.com",
                "order_date": "2025-04-30 09:15:00",
                "status": "pending",
                "total": "10.00",
                "items": [
                    {"item_id": "latte", "item_name": "Latte", "quantity": 2, "price": "4.50", "notes": ""},
                    {"item_id": "cookie", "item_name": "Cookie", "quantity": 1, "price": "1.00", "notes": ""},
                ],
            }
        }
    )


class StatusUpdate(BaseModel):
    """Payload of ``PUT /orders``."""

    id: int
    status: OrderStatus


class LiveMessage(BaseModel):
    """A frame received on the live update channel."""

    type: str
    message: Optional[str] = None

    @property
    def is_refresh(self) -> bool:
        return self.type == REFRESH_ORDERS


class LoginResult(BaseModel):
    """Response of the auth provider's login endpoint."""

    model_config = ConfigDict(coerce_numbers_to_str=True)

    id: str = ""
    email: str
    first_name: str = ""
    last_name: str = ""
    role: Optional[str] = None
    token: Optional[str] = None
    refresh_token: Optional[str] = None
