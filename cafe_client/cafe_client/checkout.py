"""Turn the cart into a submitted order."""

from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional

from .cart import CartStore
from .client import OrderClient
from .errors import CafeClientError, ValidationError
from .logger import logger
from .schemas import DraftItem, Order, OrderDraft, format_money

ORDER_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def build_order_draft(
    cart: CartStore,
    for_email: str,
    for_name: str = "",
    now: Optional[datetime] = None,
) -> OrderDraft:
    """Snapshot the cart into an order payload.

    Args:
        cart: Cart to read lines and total from
        for_email: Customer email
        for_name: Customer name, may be empty
        now: Submission time; defaults to the current local time

    Returns:
        OrderDraft: Pending order stamped with ``now`` and the cart's exact total
    """
    stamped_at = now or datetime.now()
    return OrderDraft(
        for_name=for_name or "",
        for_email=for_email,
        order_date=stamped_at.strftime(ORDER_DATE_FORMAT),
        status="pending",
        total=format_money(cart.total_price),
        notes="",
        items=[
            DraftItem(
                item_id=line.item_id,
                item_name=line.name,
                quantity=line.quantity,
                price=line.unit_cost,
                notes=line.special_instructions or "",
            )
            for line in cart.lines
        ],
    )


class CheckoutStage(str, Enum):
    EDITING = "editing"
    SUBMITTING = "submitting"
    CONFIRMED = "confirmed"
    FAILED = "failed"


@dataclass(frozen=True)
class OrderConfirmation:
    """What the confirmation screen shows: the draft as submitted, plus the created order."""

    draft: OrderDraft
    order: Order


class CheckoutFlow:
    """Submits the cart as an order and clears it once the server accepts.

    The cart is never modified on failure, so a failed submission can be
    retried as is. Each retry is a new ``create_order`` call.
    """

    def __init__(
        self,
        cart: CartStore,
        client: OrderClient,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self._cart = cart
        self._client = client
        self._clock = clock
        self.stage = CheckoutStage.EDITING
        self.confirmation: Optional[OrderConfirmation] = None
        self.last_error: Optional[CafeClientError] = None

    @property
    def is_submitting(self) -> bool:
        return self.stage is CheckoutStage.SUBMITTING

    async def submit(self, for_email: str, for_name: str = "") -> OrderConfirmation:
        """Validate, submit and, on success, clear the cart.

        Args:
            for_email: Customer email, required
            for_name: Customer name, optional

        Returns:
            OrderConfirmation: The submitted draft and the created order

        Raises:
            ValidationError: Empty cart, missing email or a submission already
                in flight. No request is made.
            NetworkError: On transport failure; the cart is kept.
            ApiError: If the server rejects the order; the cart is kept.
        """
        if self.is_submitting:
            raise ValidationError("An order submission is already in progress")
        if self._cart.is_empty:
            raise self._reject(ValidationError("Your cart is empty", field="cart"))
        email = (for_email or "").strip()
        if not email:
            raise self._reject(ValidationError("Please enter your email address to continue", field="for_email"))

        draft = build_order_draft(self._cart, email, for_name.strip() if for_name else "", now=self._clock())
        self.stage = CheckoutStage.SUBMITTING
        self.last_error = None
        logger.info(f"Submitting order | email={email} | items={len(draft.items)} | total={draft.total}")
        try:
            order = await self._client.create_order(draft)
        except CafeClientError as e:
            logger.error(f"Order submission failed | error_type={type(e).__name__} | error={e}")
            self._reject(e)
            raise
        except BaseException:
            self.stage = CheckoutStage.EDITING
            raise

        self._cart.clear_cart()
        self.confirmation = OrderConfirmation(draft=draft, order=order)
        self.stage = CheckoutStage.CONFIRMED
        logger.info(f"Order placed | order_id={order.id} | total={draft.total}")
        return self.confirmation

    def reset(self) -> None:
        """Leave the confirmation screen and start a new checkout."""
        self.stage = CheckoutStage.EDITING
        self.confirmation = None
        self.last_error = None

    def _reject(self, error: CafeClientError) -> CafeClientError:
        self.stage = CheckoutStage.FAILED
        self.last_error = error
        return error
