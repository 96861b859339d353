import uuid
from datetime import datetime, timezone

from sqlmodel import SQLModel, Field


class Order(SQLModel, table=True):
    """
    Customer order.

    Created once at checkout and read-only afterwards, except for `status`.
    `total` is what was actually paid; any discount applied upstream is
    not stored and is reconstructed by the invoice service.
    """

    __tablename__ = "orders"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    user_email: str = Field(
        index=True,
        description="Email of the buyer",
    )

    customer_name: str | None = None
    customer_phone: str | None = None
    customer_address: str | None = None

    # placed | confirmed | shipped | out_for_delivery | completed
    status: str = Field(
        default="placed",
        index=True,
        description="Order status lifecycle",
    )

    total: float = Field(
        ge=0,
        description="Amount actually paid",
    )

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="Creation timestamp (UTC)",
    )


class OrderItem(SQLModel, table=True):
    """
    Immutable line snapshot inside an order.

    The snapshot_* columns copy the catalog entry at purchase time so later
    catalog edits never change historical orders. They are nullable because
    older orders may be missing them.
    """

    __tablename__ = "order_items"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    order_id: uuid.UUID = Field(
        foreign_key="orders.id",
        index=True,
    )

    # Position within the order, preserves line order for replay
    position: int = Field(default=0, ge=0)

    product_id: int = Field(
        index=True,
    )

    quantity: int = Field(
        gt=0,
        description="Quantity ordered (>=1)",
    )

    size: str | None = None

    is_customized: bool = False
    customization_text: str | None = None
    custom_price: float | None = Field(default=None, ge=0)

    snapshot_description: str | None = None
    snapshot_display_name: str | None = None
    snapshot_unit_price: float | None = Field(default=None, ge=0)
