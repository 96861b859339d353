"""
Cart merge engine.

Pure function of (current entries, incoming deltas). It never loads or
saves a cart; `CartService` does that around it.

Rules:
  - Entries are keyed by (product_id, size). A cart never holds two
    entries with the same key.
  - An incoming delta on an existing key is added to the stored quantity
    and refreshes `added_at`. Merging is additive, not set-replace:
    merging the same deltas twice adds them twice.
  - An incoming delta on a new key appends an entry with that quantity.
  - A missing size falls back to the cart default ("S").
  - Quantities are never stored <= 0: an entry that drops to 0 or below is
    removed, and a non-positive delta on a missing key creates nothing.
"""

from collections.abc import Iterable
from datetime import datetime, timezone

from storefront.core.config import get_settings
from storefront.schemas.cart import CartDelta, CartEntry


def resolve_size(size: str | None, default: str | None = None) -> str:
    if size:
        return size
    return default or get_settings().CART_DEFAULT_SIZE


def merge(
    existing: Iterable[CartEntry],
    incoming: Iterable[CartDelta | tuple[int, str | None, int]],
    now: datetime | None = None,
    default_size: str | None = None,
) -> list[CartEntry]:
    """
    Return a new list of cart entries with `incoming` applied to `existing`.

    Neither argument is mutated. Entry order is preserved; new keys are
    appended in the order they first appear in `incoming`.
    """
    now = now or datetime.now(timezone.utc)

    # dict preserves insertion order
    merged: dict[tuple[int, str], CartEntry] = {}
    for entry in existing:
        key = (entry.product_id, entry.size)
        if key in merged:
            # Collapse duplicate keys that slipped into stored data.
            prev = merged[key]
            merged[key] = prev.model_copy(update={"quantity": prev.quantity + entry.quantity})
        else:
            merged[key] = entry.model_copy()

    for product_id, size, delta in incoming:
        key = (product_id, resolve_size(size, default_size))
        current = merged.get(key)

        if current is None:
            if delta > 0:
                merged[key] = CartEntry(
                    product_id=key[0],
                    size=key[1],
                    quantity=delta,
                    added_at=now,
                )
            continue

        new_qty = current.quantity + delta
        if new_qty <= 0:
            del merged[key]
        else:
            merged[key] = current.model_copy(update={"quantity": new_qty, "added_at": now})

    return list(merged.values())


def deltas_from_entries(entries: Iterable[CartEntry]) -> list[CartDelta]:
    """
    Turn a whole cart into deltas, e.g. to fold a guest cart into a
    signed-in user's cart.
    """
    return [CartDelta(e.product_id, e.size, e.quantity) for e in entries]


def total_quantity(entries: Iterable[CartEntry]) -> int:
    return sum(e.quantity for e in entries)
