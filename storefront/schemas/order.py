import uuid
from datetime import datetime
from typing import Literal

from pydantic import ConfigDict, field_validator
from sqlmodel import SQLModel, Field

OrderStatus = Literal["placed", "confirmed", "shipped", "out_for_delivery", "completed"]

# Forward-only lifecycle, one step at a time.
STATUS_FLOW: list[str] = ["placed", "confirmed", "shipped", "out_for_delivery", "completed"]


class OrderCreate(SQLModel):
    """
    Payload for creating an order from the current cart.

    Backend derives:
      - user_email from token
      - status = 'placed'
      - items (with catalog snapshots) and total from cart
    """

    model_config = ConfigDict(extra="forbid")

    customer_name: str | None = None
    customer_phone: str | None = None
    customer_address: str | None = None

    @field_validator("customer_name", "customer_phone", "customer_address")
    @classmethod
    def normalize(cls, v: str | None) -> str | None:
        if v is None:
            return v
        v = v.strip()
        return v or None


class ProductSnapshot(SQLModel):
    """
    Catalog fields copied at purchase time. Any of them may be missing
    on older orders.
    """

    description: str | None = None
    display_name: str | None = None
    unit_price: float | None = None


class OrderItemRead(SQLModel):
    """
    Representation of a single order line item.
    """

    product_id: int
    quantity: int = Field(gt=0)
    size: str | None = None
    is_customized: bool = False
    customization_text: str | None = None
    custom_price: float | None = None
    product_snapshot: ProductSnapshot = Field(default_factory=ProductSnapshot)


class OrderRead(SQLModel):
    """
    Lightweight representation of an order (without items).
    """

    id: uuid.UUID
    user_email: str
    customer_name: str | None = None
    customer_phone: str | None = None
    customer_address: str | None = None
    status: OrderStatus
    total: float
    created_at: datetime


class OrderWithItemsRead(OrderRead):
    """
    Full order view including items.
    """

    items: list[OrderItemRead]


class OrderStatusUpdate(SQLModel):
    """
    Admin payload to change order status.
    """

    model_config = ConfigDict(extra="forbid")

    status: OrderStatus


class ReplayLine(SQLModel):
    product_id: int
    size: str
    quantity: int


class BuyAgainResult(SQLModel):
    """
    Outcome of a buy-again request.

    `units_added` equals the number of cart-changed notifications emitted.
    """

    order_id: uuid.UUID
    merged: list[ReplayLine]
    units_added: int
    cart_count: int | None = None
    cancelled: bool = False
