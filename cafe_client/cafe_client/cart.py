"""In-memory cart with derived totals."""

from collections.abc import Callable
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

from .events import Listeners, Subscription
from .logger import logger
from .schemas import CENTS, CartLine, MenuItem, format_money, parse_money


@dataclass(frozen=True)
class CartTotals:
    """Display breakdown of a cart. The submitted order total is ``subtotal``."""

    subtotal: Decimal
    tax: Decimal
    total: Decimal

    def formatted(self) -> dict[str, str]:
        return {
            "subtotal": format_money(self.subtotal),
            "tax": format_money(self.tax),
            "total": format_money(self.total),
        }


class CartStore:
    """The shopper's in-progress selection.

    Lines are keyed by menu item id and kept in insertion order. Every
    mutation notifies subscribers synchronously with the store itself.
    Nothing is persisted; a new store starts empty.
    """

    def __init__(self) -> None:
        self._lines: dict[str, CartLine] = {}
        self._listeners = Listeners("cart")

    def subscribe(self, listener: Callable[["CartStore"], None]) -> Subscription:
        """Register a view to be called after each cart change.

        Args:
            listener: Callable receiving this store

        Returns:
            Subscription: Handle used to stop notifications
        """
        return self._listeners.subscribe(listener)

    @property
    def lines(self) -> list[CartLine]:
        """Copies of the current lines, in the order items were first added."""
        return [line.model_copy() for line in self._lines.values()]

    @property
    def is_empty(self) -> bool:
        return not self._lines

    def get_line(self, item_id: str) -> Optional[CartLine]:
        line = self._lines.get(item_id)
        return line.model_copy() if line else None

    def add_item(self, item: MenuItem, special_instructions: Optional[str] = None) -> None:
        """Add one unit of ``item``.

        An existing line for the same item id gains one unit; otherwise a new
        line with quantity 1 is created. Instructions given here replace the
        line's previous instructions.

        Args:
            item: Menu item being added
            special_instructions: Optional note for the kitchen
        """
        line = self._lines.get(item.id)
        if line:
            line.quantity += 1
            if special_instructions:
                line.special_instructions = special_instructions
        else:
            self._lines[item.id] = CartLine(
                item_id=item.id,
                name=item.name,
                unit_cost=item.cost,
                quantity=1,
                special_instructions=special_instructions or None,
            )
        logger.debug(f"Cart item added | item_id={item.id} | quantity={self._lines[item.id].quantity}")
        self._notify()

    def remove_item(self, item_id: str) -> None:
        """Delete the line for ``item_id``; no-op when absent."""
        if self._lines.pop(item_id, None) is None:
            return
        logger.debug(f"Cart item removed | item_id={item_id}")
        self._notify()

    def update_quantity(self, item_id: str, quantity: int) -> None:
        """Set a line's quantity exactly; below 1 removes the line.

        Updating an id that is not in the cart does nothing.

        Args:
            item_id: Menu item id of the line
            quantity: New quantity
        """
        if quantity < 1:
            self.remove_item(item_id)
            return
        line = self._lines.get(item_id)
        if line is None:
            return
        line.quantity = quantity
        self._notify()

    def clear_cart(self) -> None:
        """Empty the cart, e.g. after a successful order submission."""
        self._lines.clear()
        logger.debug("Cart cleared")
        self._notify()

    @property
    def total_items(self) -> int:
        return sum(line.quantity for line in self._lines.values())

    @property
    def total_price(self) -> Decimal:
        """Exact sum of unit cost times quantity, recomputed on every read."""
        return sum((parse_money(line.unit_cost) * line.quantity for line in self._lines.values()), Decimal("0"))

    def price_breakdown(self, tax_rate: Decimal = Decimal("0")) -> CartTotals:
        """Subtotal, tax and grand total rounded to cents.

        Args:
            tax_rate: Fraction applied to the subtotal, e.g. ``Decimal("0.08")``

        Returns:
            CartTotals: Rounded amounts for display
        """
        subtotal = self.total_price.quantize(CENTS, rounding=ROUND_HALF_UP)
        tax = (subtotal * tax_rate).quantize(CENTS, rounding=ROUND_HALF_UP)
        return CartTotals(subtotal=subtotal, tax=tax, total=subtotal + tax)

    def _notify(self) -> None:
        self._listeners.emit(self)
