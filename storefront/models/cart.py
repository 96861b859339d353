import uuid
from datetime import datetime, timezone

from sqlalchemy import UniqueConstraint
from sqlmodel import SQLModel, Field


class CartItem(SQLModel, table=True):
    """
    Remote cart row for a signed-in user.
    One owner cannot have 2 rows for the same (product_id, size).
    """

    __tablename__ = "cart_items"
    __table_args__ = (
        UniqueConstraint("owner_key", "product_id", "size", name="uq_cart_owner_product_size"),
    )

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    # Authenticated identity the cart belongs to (user email)
    owner_key: str = Field(
        index=True,
    )

    product_id: int = Field(
        index=True,
    )

    size: str = Field(
        default="S",
        description="Size selected when the item was added",
    )

    quantity: int = Field(
        gt=0,
        description="Must be >= 1",
    )

    added_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
    )


class CartVersion(SQLModel, table=True):
    """
    Version token for optimistic concurrency on a whole cart.

    Every successful save bumps `version`; a save carrying a stale version
    is rejected.
    """

    __tablename__ = "cart_versions"

    owner_key: str = Field(primary_key=True)
    version: int = Field(default=0, ge=0)
