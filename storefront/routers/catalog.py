from fastapi import APIRouter, Depends, status
from sqlmodel import Session

from storefront.core.auth import require_admin
from storefront.database import get_session
from storefront.repositories.catalog_repo import CatalogRepository
from storefront.schemas.catalog import (
    CatalogEntryCreate,
    CatalogEntryRead,
    CatalogFieldEdit,
)
from storefront.services.catalog_service import CatalogService

router = APIRouter(prefix="/catalog", tags=["Catalog"])

repo = CatalogRepository()
service = CatalogService(repo)


# -------- Public endpoints --------


@router.get("", response_model=list[CatalogEntryRead])
def list_catalog(
    session: Session = Depends(get_session),
    tag: str | None = None,
    q: str | None = None,
    skip: int = 0,
    limit: int = 100,
):
    """
    List catalog entries.

    - `tag`: case-insensitive substring match on tags ("chel" finds "Chelsea").
    - `q`: case-insensitive substring match on description.
    """
    return service.list_entries(session, tag=tag, q=q, skip=skip, limit=limit)


@router.get("/{entry_id}", response_model=CatalogEntryRead)
def get_catalog_entry(
    entry_id: int,
    session: Session = Depends(get_session),
):
    return service.get_entry(session, entry_id)


# -------- Admin endpoints --------


@router.post(
    "",
    response_model=CatalogEntryRead,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_admin)],
)
def create_catalog_entry(
    payload: CatalogEntryCreate,
    session: Session = Depends(get_session),
):
    """
    Create a catalog entry (admin only). The id is assigned by the server.
    """
    return service.create_entry(session, payload)


@router.patch(
    "/{entry_id}",
    response_model=CatalogEntryRead,
    dependencies=[Depends(require_admin)],
)
def edit_catalog_entry(
    entry_id: int,
    payload: CatalogFieldEdit,
    session: Session = Depends(get_session),
):
    """
    Change one field of a catalog entry (admin only).
    """
    return service.edit_field(session, entry_id, payload)


@router.delete(
    "/{entry_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(require_admin)],
)
def delete_catalog_entry(
    entry_id: int,
    session: Session = Depends(get_session),
):
    """
    Delete a catalog entry and its images (admin only).
    """
    service.delete_entry(session, entry_id)
    return None
