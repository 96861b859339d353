from storefront.schemas.invoice import InvoiceDocument


def _fmt_dt(value) -> str:
    if value is None:
        return ""
    return value.strftime("%Y-%m-%d %H:%M")


def render_invoice_text(doc: InvoiceDocument) -> str:
    """
    Render an invoice as a fixed-width plain-text document.

    Every figure comes pre-computed from the document.
    """
    label_w = max([len(doc.columns[0])] + [len(r.label) for r in doc.line_rows])
    price_w = max([len(doc.columns[2])] + [len(r.unit_price_display) for r in doc.line_rows])
    total_w = max([len(doc.columns[3]), len(doc.reference_total_display)] + [len(r.line_total_display) for r in doc.line_rows])

    def row(label: str, qty: str, price: str, total: str) -> str:
        return f"{label:<{label_w}}  {qty:>5}  {price:>{price_w}}  {total:>{total_w}}"

    lines = [
        doc.header.title,
        "",
        f"Order ID: {doc.header.order_id}",
        f"Order Date: {_fmt_dt(doc.header.order_date)}",
        f"Order Status: {doc.header.status}",
        f"Invoice Generated: {_fmt_dt(doc.generated_at)}",
        "",
        "Customer Details",
        f"Name: {doc.customer.name or ''}",
        f"Email: {doc.customer.email or ''}",
        f"Phone: {doc.customer.phone or ''}",
        f"Address: {doc.customer.address or ''}",
        "",
        row(*doc.columns),
    ]
    lines.append("-" * len(lines[-1]))
    for r in doc.line_rows:
        lines.append(row(r.label, str(r.quantity), r.unit_price_display, r.line_total_display))
    lines.append("")

    if doc.discount_row is not None:
        lines.append(f"Subtotal: {doc.reference_total_display}")
        lines.append(f"{doc.discount_row.label}: {doc.discount_row.amount_display}")
    lines.append(f"Grand Total: {doc.paid_total_display}")
    lines.append("")
    lines.append(doc.footer)
    return "\n".join(lines) + "\n"
