from sqlalchemy import func
from sqlmodel import Session, select

from storefront.models.catalog import CatalogEntry, CatalogSequence

SEQUENCE_NAME = "catalog"


class CatalogRepository:
    """
    Data access layer for CatalogEntry.

    - Pure DB operations (CRUD + queries).
    - No FastAPI, no business logic.
    """

    def get_by_id(self, session: Session, entry_id: int) -> CatalogEntry | None:
        return session.get(CatalogEntry, entry_id)

    def get_many(self, session: Session, entry_ids: set[int]) -> dict[int, CatalogEntry]:
        if not entry_ids:
            return {}
        stmt = select(CatalogEntry).where(CatalogEntry.id.in_(entry_ids))
        return {e.id: e for e in session.exec(stmt).all()}

    def list_all(
        self,
        session: Session,
        skip: int = 0,
        limit: int = 100,
    ) -> list[CatalogEntry]:
        stmt = select(CatalogEntry).order_by(CatalogEntry.id).offset(skip).limit(limit)
        return list(session.exec(stmt).all())

    def search(
        self,
        session: Session,
        tag: str | None = None,
        text: str | None = None,
        skip: int = 0,
        limit: int = 100,
    ) -> list[CatalogEntry]:
        """
        Case-insensitive substring match on `tag` and/or `description`.
        """
        stmt = select(CatalogEntry)
        if tag:
            stmt = stmt.where(
                func.lower(func.coalesce(CatalogEntry.tag, "")).contains(tag.lower(), autoescape=True)
            )
        if text:
            stmt = stmt.where(
                func.lower(CatalogEntry.description).contains(text.lower(), autoescape=True)
            )
        stmt = stmt.order_by(CatalogEntry.id).offset(skip).limit(limit)
        return list(session.exec(stmt).all())

    def max_id(self, session: Session) -> int:
        return session.exec(select(func.max(CatalogEntry.id))).one() or 0

    def get_sequence(self, session: Session) -> CatalogSequence:
        seq = session.get(CatalogSequence, SEQUENCE_NAME)
        if seq is None:
            seq = CatalogSequence(name=SEQUENCE_NAME, last_id=0)
        return seq

    def create(self, session: Session, entry: CatalogEntry, sequence: CatalogSequence) -> CatalogEntry:
        session.add(sequence)
        session.add(entry)
        session.commit()
        session.refresh(entry)
        return entry

    def update(self, session: Session, entry: CatalogEntry) -> CatalogEntry:
        session.add(entry)
        session.commit()
        session.refresh(entry)
        return entry

    def delete(self, session: Session, entry: CatalogEntry) -> None:
        session.delete(entry)
        session.commit()
