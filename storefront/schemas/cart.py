from datetime import datetime
from typing import Literal, NamedTuple

from sqlmodel import SQLModel, Field

Size = Literal["S", "M", "L", "XL", "XXL"]


class CartDelta(NamedTuple):
    """
    One incoming change to a cart: add `quantity` units of
    (product_id, size). `size=None` falls back to the cart default size.
    Negative quantities remove units.
    """

    product_id: int
    size: str | None
    quantity: int


class CartEntry(SQLModel):
    """
    Storage-agnostic cart line used by the merge engine.
    Both the remote and the cookie cart load into / save from this shape.
    """

    product_id: int
    size: str
    quantity: int = Field(gt=0)
    added_at: datetime


class CartSnapshot(SQLModel):
    """
    Cart contents plus the version token observed at load time.
    Cookie carts carry no version.
    """

    entries: list[CartEntry] = Field(default_factory=list)
    version: int | None = None


class CartItemCreate(SQLModel):
    """
    Payload for adding to cart.
    """

    product_id: int
    size: Size | None = None
    quantity: int = Field(default=1, gt=0)


class CartEntryRead(SQLModel):
    """
    Read model for a single cart line, enriched from the catalog.
    """

    product_id: int
    size: str
    quantity: int
    added_at: datetime
    description: str | None = None
    unit_price: float | None = None
    line_total: float | None = None


class CartSummary(SQLModel):
    """
    Full cart response model with totals.
    """

    items: list[CartEntryRead]
    total_quantity: int
    total_price: float
