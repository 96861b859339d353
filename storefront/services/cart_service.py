import logging
from collections.abc import Sequence
from datetime import datetime

from sqlmodel import Session

from storefront.core.config import get_settings
from storefront.core.errors import CartConflictError, NotFoundError, ValidationError
from storefront.repositories.cart_repo import CartRepository
from storefront.repositories.catalog_repo import CatalogRepository
from storefront.schemas.cart import (
    CartDelta,
    CartEntry,
    CartEntryRead,
    CartItemCreate,
    CartSummary,
)
from storefront.services.cart_merge import deltas_from_entries, merge, resolve_size

logger = logging.getLogger(__name__)


class CartService:
    """
    Business logic for cart operations.

    Responsibilities:
      - validate product existence against the catalog
      - run load -> merge -> save against whichever CartRepository the
        caller picked (remote for signed-in users, cookie for guests)
      - retry the whole read-merge-write when the remote cart changed
        underneath us, so concurrent additions never lose quantity
      - fold a guest cart into a signed-in user's cart
      - compute line totals and cart totals for display
    """

    def __init__(
        self,
        catalog_repo: CatalogRepository,
        max_retries: int | None = None,
        default_size: str | None = None,
    ):
        settings = get_settings()
        self.catalog_repo = catalog_repo
        self.max_retries = settings.CART_SAVE_MAX_RETRIES if max_retries is None else max_retries
        self.default_size = default_size or settings.CART_DEFAULT_SIZE

    # ---- internal helpers ----

    def _ensure_products_exist(self, session: Session, deltas: Sequence[CartDelta]) -> None:
        wanted = {d.product_id for d in deltas if d.quantity > 0}
        found = self.catalog_repo.get_many(session, wanted)
        missing = sorted(wanted - set(found))
        if missing:
            raise NotFoundError(f"Product not found: {', '.join(str(m) for m in missing)}")

    # ---- core operation ----

    def apply(
        self,
        repo: CartRepository,
        owner_key: str,
        deltas: Sequence[CartDelta],
        now: datetime | None = None,
    ) -> list[CartEntry]:
        """
        Merge `deltas` into the owner's cart and persist the result in a
        single save.

        On CartConflictError the cart is reloaded and the merge redone, up
        to `max_retries` extra attempts. Nothing is applied if every
        attempt conflicts.
        """
        for attempt in range(self.max_retries + 1):
            snapshot = repo.load(owner_key)
            updated = merge(snapshot.entries, deltas, now=now, default_size=self.default_size)
            try:
                repo.save(owner_key, updated, snapshot.version)
                return updated
            except CartConflictError:
                logger.warning(
                    "Cart conflict for %s (attempt %d/%d), retrying",
                    owner_key,
                    attempt + 1,
                    self.max_retries + 1,
                )
        raise CartConflictError(
            f"Cart for {owner_key} kept changing; gave up after {self.max_retries + 1} attempts"
        )

    # ---- public operations ----

    def add_deltas(
        self,
        session: Session,
        repo: CartRepository,
        owner_key: str,
        deltas: Sequence[CartDelta],
    ) -> list[CartEntry]:
        """
        Validate then merge. Used by add-to-cart and by buy-again.
        """
        for d in deltas:
            if d.quantity <= 0:
                raise ValidationError("Quantity must be >= 1")
        self._ensure_products_exist(session, deltas)
        return self.apply(repo, owner_key, deltas)

    def get_cart_summary(
        self,
        session: Session,
        repo: CartRepository,
        owner_key: str,
    ) -> CartSummary:
        """
        Return full cart summary:
          - list of CartEntryRead (with line_total when the product exists)
          - total_quantity
          - total_price
        """
        entries = repo.load(owner_key).entries
        return self.summarize(session, entries)

    def summarize(self, session: Session, entries: list[CartEntry]) -> CartSummary:
        products = self.catalog_repo.get_many(session, {e.product_id for e in entries})

        item_reads: list[CartEntryRead] = []
        total_qty = 0
        total_price = 0.0

        for e in entries:
            product = products.get(e.product_id)
            total_qty += e.quantity
            line_total = None
            if product is not None:
                line_total = e.quantity * product.price
                total_price += line_total

            item_reads.append(
                CartEntryRead(
                    product_id=e.product_id,
                    size=e.size,
                    quantity=e.quantity,
                    added_at=e.added_at,
                    description=product.description if product else None,
                    unit_price=product.price if product else None,
                    line_total=line_total,
                )
            )

        return CartSummary(
            items=item_reads,
            total_quantity=total_qty,
            total_price=total_price,
        )

    def add_to_cart(
        self,
        session: Session,
        repo: CartRepository,
        owner_key: str,
        payload: CartItemCreate,
    ) -> CartSummary:
        """
        Add a product to the cart. Quantities for the same
        (product_id, size) are summed.
        """
        delta = CartDelta(payload.product_id, payload.size, payload.quantity)
        entries = self.add_deltas(session, repo, owner_key, [delta])
        return self.summarize(session, entries)

    def remove_item(
        self,
        session: Session,
        repo: CartRepository,
        owner_key: str,
        product_id: int,
        size: str | None = None,
        quantity: int | None = None,
    ) -> CartSummary:
        """
        Remove `quantity` units of a (product_id, size) line, or the whole
        line when `quantity` is None or covers everything in the cart.
        """
        key_size = resolve_size(size, self.default_size)
        current = repo.load(owner_key).entries
        match = next(
            (e for e in current if e.product_id == product_id and e.size == key_size),
            None,
        )
        if match is None:
            raise NotFoundError("Item not found in cart")

        removed = min(quantity or match.quantity, match.quantity)
        entries = self.apply(repo, owner_key, [CartDelta(product_id, key_size, -removed)])
        return self.summarize(session, entries)

    def clear_cart(self, repo: CartRepository, owner_key: str) -> CartSummary:
        """
        Clear all items from the cart and return an empty summary.
        """
        repo.clear(owner_key)
        return CartSummary(items=[], total_quantity=0, total_price=0.0)

    def absorb_guest_cart(
        self,
        session: Session,
        guest_repo: CartRepository,
        user_repo: CartRepository,
        owner_key: str,
    ) -> CartSummary:
        """
        Fold the anonymous cookie cart into the signed-in user's cart.

        Quantities for keys present in both carts are summed. The guest
        cart is cleared only after the user's cart was saved, so a failed
        save loses nothing.
        """
        guest_entries = guest_repo.load(owner_key).entries
        if not guest_entries:
            return self.get_cart_summary(session, user_repo, owner_key)

        entries = self.apply(user_repo, owner_key, deltas_from_entries(guest_entries))
        guest_repo.clear(owner_key)
        logger.info("Merged %d guest cart line(s) into cart of %s", len(guest_entries), owner_key)
        return self.summarize(session, entries)
