import json
import logging
from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Any, Protocol, get_args
from urllib.parse import quote, unquote

from fastapi import Response
from pydantic import ValidationError
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from storefront.core.config import get_settings
from storefront.core.errors import CartConflictError
from storefront.models.cart import CartItem, CartVersion
from storefront.schemas.cart import CartEntry, CartSnapshot, Size

logger = logging.getLogger(__name__)

SIZES = set(get_args(Size))


class CartRepository(Protocol):
    """
    Capability interface for cart persistence.

    Two backends share this shape:
      - SqlCartRepository: remote cart keyed by the signed-in user's email
      - CookieCartRepository: anonymous cart held in a client cookie

    `save` receives the version observed at `load`. Backends that support
    it reject a stale version with CartConflictError.
    """

    def load(self, owner_key: str) -> CartSnapshot: ...

    def save(self, owner_key: str, entries: list[CartEntry], version: int | None) -> int | None: ...

    def clear(self, owner_key: str) -> None: ...


class SqlCartRepository:
    """
    Remote cart stored in `cart_items`, versioned by `cart_versions`.

    A save replaces the whole cart for the owner in one commit: rows that
    are no longer present are deleted, changed rows updated, new rows
    inserted, and the version bumped.
    """

    def __init__(self, session: Session):
        self.session = session

    def _rows(self, owner_key: str) -> list[CartItem]:
        stmt = (
            select(CartItem)
            .where(CartItem.owner_key == owner_key)
            .order_by(CartItem.added_at, CartItem.product_id)
        )
        return list(self.session.exec(stmt).all())

    def _head(self, owner_key: str, lock: bool = False) -> CartVersion | None:
        stmt = select(CartVersion).where(CartVersion.owner_key == owner_key)
        if lock:
            stmt = stmt.with_for_update()
        return self.session.exec(stmt).first()

    def load(self, owner_key: str) -> CartSnapshot:
        head = self._head(owner_key)
        entries = [
            CartEntry(
                product_id=row.product_id,
                size=row.size,
                quantity=row.quantity,
                added_at=row.added_at,
            )
            for row in self._rows(owner_key)
        ]
        return CartSnapshot(entries=entries, version=head.version if head else 0)

    def save(self, owner_key: str, entries: list[CartEntry], version: int | None) -> int:
        head = self._head(owner_key, lock=True)
        current = head.version if head else 0

        if version is not None and version != current:
            self.session.rollback()
            raise CartConflictError(
                f"Cart for {owner_key} changed (expected version {version}, found {current})"
            )

        if head is None:
            head = CartVersion(owner_key=owner_key, version=0)
        new_version = current + 1
        head.version = new_version
        self.session.add(head)

        rows = {(r.product_id, r.size): r for r in self._rows(owner_key)}
        wanted = {(e.product_id, e.size): e for e in entries}

        for key, row in rows.items():
            if key not in wanted:
                self.session.delete(row)

        for key, entry in wanted.items():
            row = rows.get(key)
            if row is None:
                self.session.add(
                    CartItem(
                        owner_key=owner_key,
                        product_id=entry.product_id,
                        size=entry.size,
                        quantity=entry.quantity,
                        added_at=entry.added_at,
                    )
                )
            elif row.quantity != entry.quantity or row.added_at != entry.added_at:
                row.quantity = entry.quantity
                row.added_at = entry.added_at
                self.session.add(row)

        try:
            self.session.commit()
        except IntegrityError:
            # Another writer created the cart head or a row concurrently.
            self.session.rollback()
            raise CartConflictError(f"Cart for {owner_key} changed during save")

        return new_version

    def clear(self, owner_key: str) -> None:
        for row in self._rows(owner_key):
            self.session.delete(row)
        head = self._head(owner_key, lock=True) or CartVersion(owner_key=owner_key, version=0)
        head.version += 1
        self.session.add(head)
        self.session.commit()


class CookieCartRepository:
    """
    Anonymous cart serialized as a JSON list in a client cookie.

    The cookie holds one cart, so `owner_key` is ignored. Writes go to the
    outgoing response and are also kept in memory, so a later `load` in the
    same request sees them. There is no version: last write wins.
    """

    def __init__(
        self,
        cookies: Mapping[str, str],
        response: Response,
        cookie_name: str = "guest_cart",
        max_age_days: int = 30,
    ):
        self.cookies = cookies
        self.response = response
        self.cookie_name = cookie_name
        self.max_age = max_age_days * 24 * 60 * 60
        self._current: list[CartEntry] | None = None

    @staticmethod
    def _parse_item(raw: dict[str, Any]) -> CartEntry | None:
        # Older cookies were written with ID/Quantity/Size/AddedOn keys.
        size = raw.get("size", raw.get("Size")) or get_settings().CART_DEFAULT_SIZE
        if not isinstance(size, str) or size not in SIZES:
            return None
        added_at = raw.get("added_at", raw.get("AddedOn"))
        if isinstance(added_at, str):
            try:
                added_at = datetime.fromisoformat(added_at)
            except ValueError:
                added_at = None
        if not isinstance(added_at, datetime):
            added_at = datetime.now(timezone.utc)
        try:
            return CartEntry(
                product_id=int(raw.get("product_id", raw.get("ID"))),
                size=size,
                quantity=int(raw.get("quantity", raw.get("Quantity"))),
                added_at=added_at,
            )
        except (TypeError, ValueError, ValidationError):
            return None

    def _read_cookie(self) -> list[CartEntry]:
        raw = self.cookies.get(self.cookie_name)
        if not raw:
            return []
        try:
            parsed = json.loads(unquote(raw))
        except ValueError:
            logger.warning("Ignoring unreadable %s cookie", self.cookie_name)
            return []
        if not isinstance(parsed, list):
            return []
        entries = []
        for item in parsed:
            if isinstance(item, dict):
                entry = self._parse_item(item)
                if entry is not None:
                    entries.append(entry)
        return entries

    def load(self, owner_key: str) -> CartSnapshot:
        if self._current is None:
            self._current = self._read_cookie()
        return CartSnapshot(entries=[e.model_copy() for e in self._current], version=None)

    def save(self, owner_key: str, entries: list[CartEntry], version: int | None) -> None:
        payload = [
            {
                "product_id": e.product_id,
                "size": e.size,
                "quantity": e.quantity,
                "added_at": e.added_at.isoformat(),
            }
            for e in entries
        ]
        value = quote(json.dumps(payload, separators=(",", ":")), safe="")
        self.response.set_cookie(
            self.cookie_name,
            value,
            max_age=self.max_age,
            path="/",
            samesite="lax",
        )
        self._current = [e.model_copy() for e in entries]
        return None

    def clear(self, owner_key: str) -> None:
        self.response.delete_cookie(self.cookie_name, path="/")
        self._current = []
