import logging
import math
from typing import Any, get_args

from sqlmodel import Session

from storefront.core.errors import NotFoundError, ValidationError
from storefront.core.storage_utils import delete_public_urls
from storefront.models.catalog import CatalogEntry
from storefront.repositories.catalog_repo import CatalogRepository
from storefront.schemas.cart import Size
from storefront.schemas.catalog import (
    BOOLEAN_FIELDS,
    EDITABLE_FIELDS,
    NUMERIC_FIELDS,
    SIZE_FIELDS,
    CatalogEntryCreate,
    CatalogFieldEdit,
)

logger = logging.getLogger(__name__)

SIZES: tuple[str, ...] = get_args(Size)

# Numeric fields that may be cleared by editing them to null.
OPTIONAL_NUMERIC_FIELDS = {"original_price", "custom_price"}


class CatalogService:
    """
    Business logic for the catalog.

    Responsibilities:
      - id assignment: max(existing ids, high-water mark) + 1, never reused
      - single-field edits with per-kind validation (no partial writes)
      - tag/description search
      - Storage cleanup of image URLs on delete (best effort)
    """

    def __init__(self, repo: CatalogRepository):
        self.repo = repo

    # ----- Helpers -----

    @staticmethod
    def _coerce_number(field: str, value: Any) -> float | None:
        if value is None or (isinstance(value, str) and not value.strip()):
            if field in OPTIONAL_NUMERIC_FIELDS:
                return None
            raise ValidationError("Please enter a valid number")
        if isinstance(value, bool):
            raise ValidationError("Please enter a valid number")
        try:
            num = float(value)
        except (TypeError, ValueError):
            raise ValidationError("Please enter a valid number")
        if math.isnan(num) or math.isinf(num):
            raise ValidationError("Please enter a valid number")
        if num < 0:
            raise ValidationError(f"{field} cannot be negative")
        return num

    @staticmethod
    def _coerce_bool(value: Any) -> bool:
        if isinstance(value, bool):
            return value
        if isinstance(value, str) and value.strip().lower() in {"true", "false"}:
            return value.strip().lower() == "true"
        raise ValidationError("Please enter true or false")

    @staticmethod
    def _coerce_size(value: Any) -> str:
        size = str(value or "").strip().upper()
        if size not in SIZES:
            raise ValidationError(f"Size must be one of {', '.join(SIZES)}")
        return size

    @staticmethod
    def _coerce_text(field: str, value: Any) -> str | None:
        if value is None:
            text = ""
        elif isinstance(value, str):
            text = value.strip()
        else:
            raise ValidationError(f"{field} must be text")
        if field == "product_category" and not text:
            raise ValidationError("product category cannot be empty")
        if field == "description":
            return text
        return text or None

    # ----- Queries -----

    def list_entries(
        self,
        session: Session,
        tag: str | None = None,
        q: str | None = None,
        skip: int = 0,
        limit: int = 100,
    ) -> list[CatalogEntry]:
        tag = (tag or "").strip()
        q = (q or "").strip()
        if tag or q:
            return self.repo.search(session, tag=tag or None, text=q or None, skip=skip, limit=limit)
        return self.repo.list_all(session, skip=skip, limit=limit)

    def get_entry(self, session: Session, entry_id: int) -> CatalogEntry:
        entry = self.repo.get_by_id(session, entry_id)
        if not entry:
            raise NotFoundError("Catalog entry not found")
        return entry

    # ----- Mutations -----

    def create_entry(self, session: Session, payload: CatalogEntryCreate) -> CatalogEntry:
        """
        Create a catalog entry with the next id.

        The sequence row is saved in the same commit as the entry, so a
        deleted id can never be handed out again.
        """
        sequence = self.repo.get_sequence(session)
        next_id = max(self.repo.max_id(session), sequence.last_id) + 1
        sequence.last_id = next_id

        entry = CatalogEntry(id=next_id, **payload.model_dump())
        entry = self.repo.create(session, entry, sequence)
        logger.info("Created catalog entry %d (%s)", entry.id, entry.product_category)
        return entry

    def edit_field(self, session: Session, entry_id: int, edit: CatalogFieldEdit) -> CatalogEntry:
        """
        Change exactly one field. The value is validated before anything is
        written; on failure the entry is left untouched.
        """
        entry = self.get_entry(session, entry_id)
        field = edit.field

        if field not in EDITABLE_FIELDS:
            raise ValidationError(f"Field '{field}' cannot be edited")

        if field in NUMERIC_FIELDS:
            value: Any = self._coerce_number(field, edit.value)
        elif field in BOOLEAN_FIELDS:
            value = self._coerce_bool(edit.value)
        elif field in SIZE_FIELDS:
            value = self._coerce_size(edit.value)
        else:
            value = self._coerce_text(field, edit.value)

        setattr(entry, field, value)
        return self.repo.update(session, entry)

    def delete_entry(self, session: Session, entry_id: int) -> None:
        """
        Delete an entry, then try to remove its images from Storage.
        A Storage failure is logged and does not undo the delete.
        """
        entry = self.get_entry(session, entry_id)
        image_urls = list(entry.image_urls or [])
        self.repo.delete(session, entry)

        try:
            delete_public_urls(image_urls)
        except Exception:
            logger.exception("Failed to delete images of catalog entry %d", entry_id)
