# send_test_email.py
import sys
import uuid
from datetime import datetime, timezone

from storefront.core.email_client import send_order_email
from storefront.schemas.order import OrderItemRead, OrderWithItemsRead, ProductSnapshot
from storefront.services.invoice_service import reconcile


def main():
    if len(sys.argv) < 2:
        print("usage: python send_test_email.py <recipient>")
        sys.exit(1)

    order = OrderWithItemsRead(
        id=uuid.uuid4(),
        user_email=sys.argv[1],
        status="placed",
        total=800,
        created_at=datetime.now(timezone.utc),
        items=[
            OrderItemRead(
                product_id=1,
                quantity=2,
                size="M",
                product_snapshot=ProductSnapshot(description="Chelsea Home Jersey", unit_price=500),
            )
        ],
    )
    doc = reconcile(order)

    print("Sending test order email...")
    send_order_email(
        to_email=sys.argv[1],
        order_id=str(order.id),
        items=doc.line_rows,
        total=doc.paid_total_display,
    )
    print("If no errors: email sent! Check your inbox.")


if __name__ == "__main__":
    main()
