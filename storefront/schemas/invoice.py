import uuid
from datetime import datetime
from decimal import Decimal

from pydantic import EmailStr
from sqlmodel import SQLModel, Field

from storefront.core.config import get_settings


class BrandingOptions(SQLModel):
    """
    Store-specific text for invoices. One reconciler serves every brand.
    """

    title: str
    footer: str
    currency: str

    @classmethod
    def from_settings(cls) -> "BrandingOptions":
        settings = get_settings()
        return cls(
            title=settings.INVOICE_TITLE,
            footer=settings.INVOICE_FOOTER,
            currency=settings.CURRENCY_LABEL,
        )


class InvoiceHeader(SQLModel):
    title: str
    order_id: uuid.UUID
    order_date: datetime | None = None
    status: str


class InvoiceCustomer(SQLModel):
    name: str | None = None
    email: str | None = None
    phone: str | None = None
    address: str | None = None


class InvoiceRow(SQLModel):
    """
    One table row. Display strings are pre-formatted so a renderer does no
    arithmetic.
    """

    label: str
    quantity: int
    unit_price: Decimal
    line_total: Decimal
    unit_price_display: str
    line_total_display: str


class InvoiceDiscountRow(SQLModel):
    label: str
    amount: Decimal
    percent: int
    amount_display: str


class InvoiceDocument(SQLModel):
    """
    Printable invoice model. Derived on demand from an Order, never stored.

    `generated_at` is the only time-dependent field.
    """

    header: InvoiceHeader
    customer: InvoiceCustomer
    columns: list[str] = Field(default_factory=lambda: ["Product", "Qty", "Price", "Total"])
    line_rows: list[InvoiceRow]
    reference_total: Decimal
    paid_total: Decimal
    discount_amount: Decimal
    discount_percent: int
    discount_row: InvoiceDiscountRow | None = None
    reference_total_display: str
    paid_total_display: str
    footer: str
    generated_at: datetime


class SendInvoiceRequest(SQLModel):
    """
    Optional override of the invoice recipient; defaults to the buyer.
    """

    send_to: EmailStr | None = None
