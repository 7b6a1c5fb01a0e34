"""In-memory menu catalog and order store."""

from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional

from .logger import logger
from .schemas import MenuItem, OrderCreate, OrderItemOut, OrderOut

SEED_MENU = [
    MenuItem(id="espresso", name="Espresso", description="Double shot", cost="3.00", category="coffee"),
    MenuItem(id="latte", name="Latte", description="Espresso with steamed milk", cost="4.50", category="coffee"),
    MenuItem(id="cappuccino", name="Cappuccino", description="Espresso, milk and foam", cost="4.25", category="coffee"),
    MenuItem(id="chai", name="Chai Latte", description="Spiced black tea with milk", cost="4.00", category="tea"),
    MenuItem(id="croissant", name="Croissant", description="Butter croissant", cost="3.25", category="pastry"),
    MenuItem(id="cookie", name="Cookie", description="Chocolate chip", cost="1.00", category="pastry"),
]

# Completed orders are final; a cancelled order can be reopened
ALLOWED_TRANSITIONS = {
    "pending": {"completed", "cancelled"},
    "cancelled": {"pending"},
    "completed": set(),
}


class StoreError(Exception):
    """Base class for order store errors."""


class OrderNotFoundError(StoreError):
    def __init__(self, order_id: int) -> None:
        super().__init__(f"Order {order_id} not found")
        self.order_id = order_id


class UnknownMenuItemError(StoreError):
    def __init__(self, item_id: str) -> None:
        super().__init__(f"Unknown menu item: {item_id}")
        self.item_id = item_id


class InvalidTransitionError(StoreError):
    def __init__(self, order_id: int, current: str, requested: str) -> None:
        super().__init__(f"Order {order_id} cannot move from {current} to {requested}")
        self.order_id = order_id
        self.current = current
        self.requested = requested


class PriceMismatchError(StoreError):
    def __init__(self, item_id: str, submitted: str, menu_cost: str) -> None:
        super().__init__(f"Price {submitted} for {item_id} does not match the menu ({menu_cost})")
        self.item_id = item_id
        self.submitted = submitted
        self.menu_cost = menu_cost


class TotalMismatchError(StoreError):
    def __init__(self, submitted: str, computed: str) -> None:
        super().__init__(f"Order total {submitted} does not match the items ({computed})")
        self.submitted = submitted
        self.computed = computed


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class CafeState:
    """Menu catalog and orders held in memory.

    Order ids are assigned incrementally from 1 and orders are listed oldest
    first.
    """

    def __init__(self, menu: Optional[list[MenuItem]] = None) -> None:
        self._menu: dict[str, MenuItem] = {item.id: item for item in (menu if menu is not None else SEED_MENU)}
        self._orders: dict[int, OrderOut] = {}
        self._next_order_id = 1
        self._next_item_id = 1

    def list_menu(self, category: Optional[str] = None) -> list[MenuItem]:
        """Get the menu, optionally filtered by category."""
        items = self._menu.values()
        if category:
            items = [item for item in items if item.category == category]
        return list(items)

    def list_orders(self, status: Optional[str] = None) -> list[OrderOut]:
        """Get all orders, oldest first, optionally filtered by status."""
        orders = sorted(self._orders.values(), key=lambda order: order.id)
        if status:
            orders = [order for order in orders if order.status == status]
        return orders

    def get_order(self, order_id: int) -> OrderOut:
        order = self._orders.get(order_id)
        if order is None:
            raise OrderNotFoundError(order_id)
        return order

    def create_order(self, payload: OrderCreate) -> OrderOut:
        """Store a new order.

        Line prices must match the menu and the total must match the lines;
        new orders always start as pending.

        Args:
            payload: Validated order body

        Returns:
            OrderOut: The stored order with server-assigned ids

        Raises:
            UnknownMenuItemError: If an item id is not on the menu.
            PriceMismatchError: If a line's price differs from the menu cost.
            TotalMismatchError: If the submitted total differs from the items' sum.
        """
        for line in payload.items:
            menu_item = self._menu.get(line.item_id)
            if menu_item is None:
                raise UnknownMenuItemError(line.item_id)
            if Decimal(line.price) != Decimal(menu_item.cost):
                raise PriceMismatchError(line.item_id, line.price, menu_item.cost)

        computed = sum((Decimal(item.price) * item.quantity for item in payload.items), Decimal("0"))
        if computed.quantize(Decimal("0.01")) != Decimal(payload.total):
            raise TotalMismatchError(payload.total, str(computed.quantize(Decimal("0.01"))))

        order_id = self._next_order_id
        items = []
        for line in payload.items:
            menu_item = self._menu[line.item_id]
            items.append(
                OrderItemOut(
                    id=self._next_item_id + len(items),
                    order_id=order_id,
                    item_name=menu_item.name,
                    item_description=menu_item.description,
                    quantity=line.quantity,
                    price=line.price,
                    notes=line.notes,
                )
            )

        stamp = _now()
        order = OrderOut(
            id=order_id,
            for_name=payload.for_name,
            for_email=str(payload.for_email),
            order_date=payload.order_date,
            status="pending",
            total=payload.total,
            notes=payload.notes or "",
            items=items,
            created_at=stamp,
            updated_at=stamp,
        )
        self._orders[order_id] = order
        self._next_order_id += 1
        self._next_item_id += len(items)
        logger.info(f"Order stored | order_id={order_id} | email={order.for_email} | items={len(items)} | total={order.total}")
        return order

    def update_status(self, order_id: int, status: str) -> tuple[OrderOut, bool]:
        """Move an order to ``status``.

        Args:
            order_id: Order to update
            status: Requested status

        Returns:
            tuple: The order after the update and whether it changed

        Raises:
            OrderNotFoundError: If the id is unknown.
            InvalidTransitionError: If the transition is not allowed.
        """
        order = self.get_order(order_id)
        if order.status == status:
            return order, False
        if status not in ALLOWED_TRANSITIONS[order.status]:
            raise InvalidTransitionError(order_id, order.status, status)

        updated = order.model_copy(update={"status": status, "updated_at": _now()})
        self._orders[order_id] = updated
        logger.info(f"Order status changed | order_id={order_id} | from={order.status} | to={status}")
        return updated, True
