from datetime import datetime, timezone

from sqlalchemy import JSON, Column
from sqlmodel import SQLModel, Field


class CatalogEntry(SQLModel, table=True):
    """
    One purchasable product variant.

    Identity:
      - id is an integer assigned by the catalog service as
        max(existing ids, high-water mark) + 1. It is never reused.
    """

    __tablename__ = "catalog_entries"

    id: int = Field(
        primary_key=True,
        index=True,
        sa_column_kwargs={"autoincrement": False},
    )

    description: str = Field(
        default="",
        description="Display text shown on the storefront and invoices",
    )

    product_category: str = Field(
        index=True,
        max_length=50,
        description="Category, e.g. Jersey, Boots, Shorts",
    )

    price: float = Field(
        ge=0,
        description="Current unit price",
    )

    original_price: float | None = Field(
        default=None,
        ge=0,
        description="Price before markdown, shown struck through",
    )

    # S | M | L | XL | XXL
    size: str = Field(
        default="M",
        description="Display size",
    )

    material: str | None = None

    # Several tags may be stored separated by ';'
    tag: str | None = Field(
        default=None,
        description="Search tags, ';' separated",
    )

    customizable: bool = Field(
        default=False,
        description="Whether the buyer can add custom text",
    )
    custom_text: str | None = None
    custom_price: float | None = Field(
        default=None,
        ge=0,
        description="Surcharge for customization",
    )

    image_urls: list[str] = Field(
        default_factory=list,
        sa_column=Column(JSON, nullable=False),
        description="Up to three public image URLs",
    )

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="Creation timestamp (UTC)",
    )


class CatalogSequence(SQLModel, table=True):
    """
    High-water mark for catalog ids, so deleting the newest entry does not
    make its id available again.
    """

    __tablename__ = "catalog_sequence"

    name: str = Field(primary_key=True)
    last_id: int = Field(default=0, ge=0)
