from datetime import datetime
from typing import Any

from pydantic import ConfigDict, field_validator
from sqlmodel import SQLModel, Field

from storefront.schemas.cart import Size

# Fields that may be changed through a single-field edit.
NUMERIC_FIELDS = {"price", "original_price", "custom_price"}
BOOLEAN_FIELDS = {"customizable"}
TEXT_FIELDS = {"description", "product_category", "material", "tag", "custom_text"}
SIZE_FIELDS = {"size"}
EDITABLE_FIELDS = NUMERIC_FIELDS | BOOLEAN_FIELDS | TEXT_FIELDS | SIZE_FIELDS


class CatalogEntryCreate(SQLModel):
    """
    Payload for creating a catalog entry.

    - id is NOT accepted: it is assigned by the service.
    - size defaults to "M", the catalog display default.
    """

    model_config = ConfigDict(extra="forbid")

    description: str = ""
    product_category: str = Field(max_length=50)
    price: float = Field(ge=0)
    original_price: float | None = Field(default=None, ge=0)
    size: Size = "M"
    material: str | None = None
    tag: str | None = None
    customizable: bool = False
    custom_text: str | None = None
    custom_price: float | None = Field(default=None, ge=0)
    image_urls: list[str] = Field(default_factory=list, max_length=3)

    @field_validator("product_category")
    @classmethod
    def not_empty(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("product category cannot be empty")
        return v

    @field_validator("image_urls")
    @classmethod
    def drop_blank_urls(cls, v: list[str]) -> list[str]:
        return [u.strip() for u in v if u and u.strip()]


class CatalogEntryRead(SQLModel):
    """
    Catalog entry representation for clients.
    """

    id: int
    description: str
    product_category: str
    price: float
    original_price: float | None = None
    size: str
    material: str | None = None
    tag: str | None = None
    customizable: bool
    custom_text: str | None = None
    custom_price: float | None = None
    image_urls: list[str]
    created_at: datetime


class CatalogFieldEdit(SQLModel):
    """
    Single-field edit. `value` is coerced by the service according to the
    field kind (numeric, boolean, size, text).
    """

    model_config = ConfigDict(extra="forbid")

    field: str
    value: Any = None
