import logging
import threading
from collections.abc import Sequence

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from storefront.core.config import get_settings
from storefront.core.errors import PartialReplayError, StorefrontError
from storefront.repositories.cart_repo import CartRepository
from storefront.schemas.cart import CartDelta
from storefront.schemas.order import BuyAgainResult, OrderItemRead, OrderWithItemsRead, ReplayLine
from storefront.services.cart_service import CartService
from storefront.services.notifications import CartChanged, CartNotifier

logger = logging.getLogger(__name__)


def replay(order: OrderWithItemsRead, default_size: str | None = None) -> list[CartDelta]:
    """
    Map each order line to the cart delta that re-adds it, in order.

    Lines recorded without a size fall back to the cart default ("S").
    """
    fallback = default_size or get_settings().CART_DEFAULT_SIZE
    return [_line_delta(item, fallback) for item in order.items]


def _line_delta(item: OrderItemRead, fallback: str) -> CartDelta:
    return CartDelta(item.product_id, item.size or fallback, item.quantity)


class BuyAgainService:
    """
    Re-insert a past order's lines into the caller's current cart.

    Each line is merged and saved on its own so a failure on one line does
    not undo the others. For every unit merged, one CartChanged event is
    emitted, so a badge counter ends up equal to the merged quantity.
    """

    def __init__(self, cart_service: CartService):
        self.cart_service = cart_service

    def buy_again(
        self,
        session: Session,
        order: OrderWithItemsRead,
        repo: CartRepository,
        owner_key: str,
        notifier: CartNotifier | None = None,
        cancel: threading.Event | None = None,
    ) -> BuyAgainResult:
        """
        Replay `order` into the cart held by `repo`.

        Raises:
            PartialReplayError: one or more lines failed. Lines listed as
                merged remain in the cart.
        """
        merged: list[ReplayLine] = []
        failed: list[dict] = []
        units = 0
        cancelled = False

        deltas: Sequence[CartDelta] = replay(order, self.cart_service.default_size)
        for delta in deltas:
            if cancel is not None and cancel.is_set():
                cancelled = True
                logger.info("Buy-again of order %s cancelled after %d line(s)", order.id, len(merged))
                break

            line = ReplayLine(product_id=delta.product_id, size=delta.size, quantity=delta.quantity)
            try:
                self.cart_service.add_deltas(session, repo, owner_key, [delta])
            except (StorefrontError, SQLAlchemyError) as exc:
                if isinstance(exc, SQLAlchemyError):
                    session.rollback()
                logger.warning(
                    "Buy-again line %s/%s of order %s failed: %s",
                    delta.product_id,
                    delta.size,
                    order.id,
                    exc,
                )
                failed.append({**line.model_dump(), "reason": str(exc)})
                continue

            merged.append(line)
            units += delta.quantity
            if notifier is not None:
                for _ in range(delta.quantity):
                    notifier.emit(CartChanged(owner_key, delta.product_id, delta.size))

        if failed:
            raise PartialReplayError(
                failed=failed,
                merged=[m.model_dump() for m in merged],
            )

        return BuyAgainResult(
            order_id=order.id,
            merged=merged,
            units_added=units,
            cancelled=cancelled,
        )
