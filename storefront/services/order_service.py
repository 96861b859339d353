import logging
import uuid
from decimal import ROUND_HALF_UP, Decimal

from sqlmodel import Session

from storefront.core.errors import NotFoundError, ValidationError
from storefront.models.order import Order, OrderItem
from storefront.repositories.cart_repo import CartRepository
from storefront.repositories.catalog_repo import CatalogRepository
from storefront.repositories.order_repo import OrderRepository
from storefront.schemas.order import (
    STATUS_FLOW,
    OrderCreate,
    OrderItemRead,
    OrderRead,
    OrderStatusUpdate,
    OrderWithItemsRead,
    ProductSnapshot,
)

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")


class OrderService:
    """
    Business logic for orders.

    Responsibilities:
      - Create order from cart, snapshotting catalog description/price
      - List a user's orders newest-first
      - Enforce the forward-only status lifecycle (admin)
    """

    def __init__(self, order_repo: OrderRepository, catalog_repo: CatalogRepository):
        self.order_repo = order_repo
        self.catalog_repo = catalog_repo

    # -------- User-facing operations --------

    def create_order_from_cart(
        self,
        session: Session,
        user_email: str,
        cart_repo: CartRepository,
        payload: OrderCreate,
    ) -> OrderWithItemsRead:
        """
        Convert the current user's cart into an Order.

        Steps:
          1. Load cart; error if empty.
          2. Ensure every product still exists in the catalog.
          3. Snapshot description/category/price into OrderItem rows.
          4. Commit order, then clear the cart.
        """
        entries = cart_repo.load(user_email).entries
        if not entries:
            raise ValidationError("Cart is empty")

        products = self.catalog_repo.get_many(session, {e.product_id for e in entries})
        errors = [
            {"product_id": e.product_id, "reason": "Product not found"}
            for e in entries
            if e.product_id not in products
        ]
        if errors:
            raise ValidationError({"message": "Cart validation failed", "items": errors})

        total = sum(
            (Decimal(str(products[e.product_id].price)) * e.quantity for e in entries),
            Decimal("0"),
        ).quantize(CENT, rounding=ROUND_HALF_UP)

        order = Order(
            user_email=user_email,
            customer_name=payload.customer_name,
            customer_phone=payload.customer_phone,
            customer_address=payload.customer_address,
            status="placed",
            total=float(total),
        )
        order = self.order_repo.create_order(session, order)

        items: list[OrderItem] = []
        for position, e in enumerate(entries):
            product = products[e.product_id]
            items.append(
                OrderItem(
                    order_id=order.id,
                    position=position,
                    product_id=e.product_id,
                    quantity=e.quantity,
                    size=e.size,
                    snapshot_description=product.description,
                    snapshot_display_name=product.product_category,
                    snapshot_unit_price=product.price,
                )
            )
        items = self.order_repo.create_items(session, items)

        session.commit()
        session.refresh(order)
        cart_repo.clear(user_email)
        logger.info("Order %s placed by %s (%d line(s))", order.id, user_email, len(items))

        return self.build_order_with_items(order, items)

    def list_user_orders(
        self,
        session: Session,
        user_email: str,
        skip: int = 0,
        limit: int = 50,
    ) -> list[OrderRead]:
        """
        List orders for the given user (without items), newest first.
        """
        orders = self.order_repo.list_for_user(session, user_email, skip, limit)
        return [OrderRead.model_validate(o, from_attributes=True) for o in orders]

    def get_user_order(
        self,
        session: Session,
        user_email: str,
        order_id: uuid.UUID,
    ) -> OrderWithItemsRead:
        """
        Get a single order for the user, including items.

        - NotFoundError if order not found or does not belong to this user.
        """
        order = self.order_repo.get_by_id(session, order_id)
        if not order or order.user_email != user_email:
            raise NotFoundError("Order not found")

        items = self.order_repo.list_items_for_order(session, order.id)
        return self.build_order_with_items(order, items)

    # -------- Admin operations --------

    def update_status(
        self,
        session: Session,
        order_id: uuid.UUID,
        payload: OrderStatusUpdate,
    ) -> OrderRead:
        """
        Admin-only status update, one step forward at a time:

          placed -> confirmed -> shipped -> out_for_delivery -> completed

        Setting the current status again is a no-op.
        """
        order = self.order_repo.get_by_id(session, order_id)
        if not order:
            raise NotFoundError("Order not found")

        current = order.status
        new = payload.status

        if current != new:
            idx = STATUS_FLOW.index(current) if current in STATUS_FLOW else -1
            if idx < 0 or idx + 1 >= len(STATUS_FLOW) or STATUS_FLOW[idx + 1] != new:
                raise ValidationError(f"Invalid status transition: {current} -> {new}")
            order.status = new
            order = self.order_repo.update_order(session, order)

        return OrderRead.model_validate(order, from_attributes=True)

    # -------- Helper DTO builder --------

    @staticmethod
    def build_order_with_items(
        order: Order,
        items: list[OrderItem],
    ) -> OrderWithItemsRead:
        """
        Compose OrderWithItemsRead from ORM models.
        """
        item_dtos = [
            OrderItemRead(
                product_id=it.product_id,
                quantity=it.quantity,
                size=it.size,
                is_customized=it.is_customized,
                customization_text=it.customization_text,
                custom_price=it.custom_price,
                product_snapshot=ProductSnapshot(
                    description=it.snapshot_description,
                    display_name=it.snapshot_display_name,
                    unit_price=it.snapshot_unit_price,
                ),
            )
            for it in items
        ]

        return OrderWithItemsRead(
            id=order.id,
            user_email=order.user_email,
            customer_name=order.customer_name,
            customer_phone=order.customer_phone,
            customer_address=order.customer_address,
            status=order.status,
            total=order.total,
            created_at=order.created_at,
            items=item_dtos,
        )
