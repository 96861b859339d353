"""
Invoice reconciliation.

Orders store only the amount actually paid. The invoice recomputes what
the order would have cost without a discount (the reference total) from
the line snapshots, and reports the gap as the discount.

    unit_price       = snapshot.unit_price + custom_price (customized lines)
    line_total       = unit_price * quantity
    reference_total  = sum(line_total)
    discount_amount  = max(0, reference_total - paid_total)
    discount_percent = round_half_up(discount_amount / reference_total * 100)
"""

import logging
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal

from storefront.core.errors import RenderDataError
from storefront.schemas.invoice import (
    BrandingOptions,
    InvoiceCustomer,
    InvoiceDiscountRow,
    InvoiceDocument,
    InvoiceHeader,
    InvoiceRow,
)
from storefront.schemas.order import OrderItemRead, OrderWithItemsRead

logger = logging.getLogger(__name__)

PLACEHOLDER_LABEL = "Product"
ZERO = Decimal("0")
CENT = Decimal("0.01")


def to_decimal(value: float | int | str | Decimal | None) -> Decimal | None:
    if value is None:
        return None
    if isinstance(value, Decimal):
        return value
    # str() avoids binary float artifacts (0.1 -> 0.1000000000000000055...)
    return Decimal(str(value))


def format_money(amount: Decimal, currency: str) -> str:
    """
    "Rs. 1000" for whole amounts, "Rs. 12.50" otherwise.
    """
    amount = amount.quantize(CENT, rounding=ROUND_HALF_UP)
    if amount == amount.to_integral_value():
        text = str(amount.quantize(Decimal("1")))
    else:
        text = str(amount)
    return f"{currency} {text}"


def discount_percent(discount_amount: Decimal, reference_total: Decimal) -> int:
    if reference_total <= 0 or discount_amount <= 0:
        return 0
    percent = discount_amount / reference_total * 100
    return int(percent.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def line_label(item: OrderItemRead) -> str:
    snap = item.product_snapshot
    label = snap.description or snap.display_name or PLACEHOLDER_LABEL
    if item.is_customized and item.customization_text:
        label = f'{label} (Custom: "{item.customization_text}")'
    return label


def line_unit_price(item: OrderItemRead) -> Decimal:
    unit = to_decimal(item.product_snapshot.unit_price) or ZERO
    custom = to_decimal(item.custom_price)
    if item.is_customized and custom:
        unit += custom
    return unit


def _check_line(order: OrderWithItemsRead, index: int, item: OrderItemRead, strict: bool) -> None:
    snap = item.product_snapshot
    missing = []
    if not (snap.description or snap.display_name):
        missing.append("description")
    if snap.unit_price is None:
        missing.append("unit_price")
    if not missing:
        return
    if strict:
        raise RenderDataError(
            f"Order {order.id} line {index + 1} is missing {', '.join(missing)}"
        )
    logger.warning(
        "Order %s line %d missing %s; using placeholders",
        order.id,
        index + 1,
        ", ".join(missing),
    )


def reconcile(
    order: OrderWithItemsRead,
    branding: BrandingOptions | None = None,
    now: datetime | None = None,
    strict: bool = False,
) -> InvoiceDocument:
    """
    Build the invoice document for `order`.

    The result depends only on `order`, `branding` and `now`. Incomplete
    line snapshots render as "Product" priced 0 unless `strict` is set, in
    which case RenderDataError is raised.
    """
    branding = branding or BrandingOptions.from_settings()
    currency = branding.currency

    rows: list[InvoiceRow] = []
    reference_total = ZERO

    for index, item in enumerate(order.items):
        _check_line(order, index, item, strict)
        unit = line_unit_price(item)
        line_total = unit * item.quantity
        reference_total += line_total
        rows.append(
            InvoiceRow(
                label=line_label(item),
                quantity=item.quantity,
                unit_price=unit,
                line_total=line_total,
                unit_price_display=format_money(unit, currency),
                line_total_display=format_money(line_total, currency),
            )
        )

    reference_total = reference_total.quantize(CENT, rounding=ROUND_HALF_UP)
    paid_total = (to_decimal(order.total) or ZERO).quantize(CENT, rounding=ROUND_HALF_UP)
    discount_amount = max(ZERO, reference_total - paid_total)
    percent = discount_percent(discount_amount, reference_total)

    discount_row = None
    if discount_amount > 0:
        discount_row = InvoiceDiscountRow(
            label=f"Discount ({percent}%)",
            amount=discount_amount,
            percent=percent,
            amount_display=f"-{format_money(discount_amount, currency)}",
        )

    return InvoiceDocument(
        header=InvoiceHeader(
            title=branding.title,
            order_id=order.id,
            order_date=order.created_at,
            status=order.status,
        ),
        customer=InvoiceCustomer(
            name=order.customer_name,
            email=order.user_email,
            phone=order.customer_phone,
            address=order.customer_address,
        ),
        line_rows=rows,
        reference_total=reference_total,
        paid_total=paid_total,
        discount_amount=discount_amount,
        discount_percent=percent,
        discount_row=discount_row,
        reference_total_display=format_money(reference_total, currency),
        paid_total_display=format_money(paid_total, currency),
        footer=branding.footer,
        generated_at=now or datetime.now(timezone.utc),
    )
