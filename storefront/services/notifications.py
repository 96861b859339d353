from collections.abc import Callable
from typing import NamedTuple


class CartChanged(NamedTuple):
    """One unit added to (positive) or removed from (negative) a cart."""

    owner_key: str
    product_id: int
    size: str
    delta: int = 1


CartListener = Callable[[CartChanged], None]


class CartNotifier:
    """
    Synchronous fan-out of cart-changed events to listeners such as a
    cart badge counter.
    """

    def __init__(self) -> None:
        self._listeners: list[CartListener] = []

    def subscribe(self, listener: CartListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def emit(self, event: CartChanged) -> None:
        for listener in list(self._listeners):
            listener(event)


class BadgeCounter:
    """Running item count kept in step with emitted cart events."""

    def __init__(self, start: int = 0) -> None:
        self.count = start

    def __call__(self, event: CartChanged) -> None:
        self.count = max(0, self.count + event.delta)
