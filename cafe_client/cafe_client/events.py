"""Synchronous listener registry used by the cart and the order list."""

from collections.abc import Callable
from typing import Any

from .logger import logger


class Subscription:
    """Handle returned by ``subscribe``; call ``unsubscribe()`` to stop delivery."""

    def __init__(self, registry: "Listeners", listener: Callable[..., Any]) -> None:
        self._registry = registry
        self.listener = listener

    @property
    def active(self) -> bool:
        return self in self._registry

    def unsubscribe(self) -> None:
        self._registry.discard(self)


class Listeners:
    """Ordered set of listeners notified in registration order."""

    def __init__(self, name: str) -> None:
        self.name = name
        self._subscriptions: list[Subscription] = []

    def __contains__(self, subscription: object) -> bool:
        return subscription in self._subscriptions

    def __len__(self) -> int:
        return len(self._subscriptions)

    def subscribe(self, listener: Callable[..., Any]) -> Subscription:
        subscription = Subscription(self, listener)
        self._subscriptions.append(subscription)
        return subscription

    def discard(self, subscription: Subscription) -> None:
        if subscription in self._subscriptions:
            self._subscriptions.remove(subscription)

    def clear(self) -> None:
        self._subscriptions.clear()

    def emit(self, *args: Any) -> None:
        """Call every listener now. A failing listener is logged and skipped."""
        for subscription in list(self._subscriptions):
            try:
                subscription.listener(*args)
            except Exception as e:
                logger.opt(exception=e).error(f"Listener failed | registry={self.name} | error={e}")
