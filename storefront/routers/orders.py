import logging
import smtplib
import uuid

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import PlainTextResponse
from sqlmodel import Session

from storefront.core import email_client
from storefront.core.auth import require_admin, require_auth
from storefront.core.cart_store import CartContext, get_cart_context
from storefront.database import get_session
from storefront.models.user import User
from storefront.repositories.cart_repo import SqlCartRepository
from storefront.repositories.catalog_repo import CatalogRepository
from storefront.repositories.order_repo import OrderRepository
from storefront.schemas.invoice import InvoiceDocument, SendInvoiceRequest
from storefront.schemas.order import (
    BuyAgainResult,
    OrderCreate,
    OrderRead,
    OrderStatusUpdate,
    OrderWithItemsRead,
)
from storefront.services.buy_again import BuyAgainService
from storefront.services.cart_merge import total_quantity
from storefront.services.cart_service import CartService
from storefront.services.invoice_render import render_invoice_text
from storefront.services.invoice_service import reconcile
from storefront.services.notifications import BadgeCounter, CartNotifier
from storefront.services.order_service import OrderService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/orders", tags=["Orders"])

order_repo = OrderRepository()
catalog_repo = CatalogRepository()
service = OrderService(order_repo, catalog_repo)
cart_service = CartService(catalog_repo)
buy_again_service = BuyAgainService(cart_service)


# -------- User-facing endpoints --------


@router.post(
    "/checkout",
    response_model=OrderWithItemsRead,
    status_code=status.HTTP_201_CREATED,
)
def checkout(
    payload: OrderCreate,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_auth),
):
    """
    Create an order from the current user's remote cart.
    """
    return service.create_order_from_cart(
        session, current_user.email, SqlCartRepository(session), payload
    )


@router.get("/me", response_model=list[OrderRead])
def list_my_orders(
    session: Session = Depends(get_session),
    current_user: User = Depends(require_auth),
    skip: int = 0,
    limit: int = 50,
):
    """
    List the authenticated user's orders (without items), newest first.
    """
    return service.list_user_orders(session, current_user.email, skip, limit)


@router.get("/me/{order_id}", response_model=OrderWithItemsRead)
def get_my_order(
    order_id: uuid.UUID,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_auth),
):
    """
    Get a single order (with items) belonging to the current user.
    """
    return service.get_user_order(session, current_user.email, order_id)


@router.post("/me/{order_id}/buy-again", response_model=BuyAgainResult)
def buy_again(
    order_id: uuid.UUID,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_auth),
    cart: CartContext = Depends(get_cart_context),
):
    """
    Add every line of a past order back into the current cart.

    If some lines fail, the response is 207 with the failed and merged
    lines; merged lines stay in the cart.
    """
    order = service.get_user_order(session, current_user.email, order_id)

    notifier = CartNotifier()
    badge = BadgeCounter(start=total_quantity(cart.repo.load(cart.owner_key).entries))
    notifier.subscribe(badge)

    result = buy_again_service.buy_again(
        session, order, cart.repo, cart.owner_key, notifier=notifier
    )
    result.cart_count = badge.count
    return result


@router.get("/me/{order_id}/invoice", response_model=InvoiceDocument)
def get_invoice(
    order_id: uuid.UUID,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_auth),
):
    """
    Invoice document for one of the user's orders, including the
    reconstructed discount.
    """
    order = service.get_user_order(session, current_user.email, order_id)
    return reconcile(order)


@router.get("/me/{order_id}/invoice.txt", response_class=PlainTextResponse)
def download_invoice(
    order_id: uuid.UUID,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_auth),
):
    """
    Plain-text invoice download.
    """
    order = service.get_user_order(session, current_user.email, order_id)
    doc = reconcile(order)
    return PlainTextResponse(
        render_invoice_text(doc),
        headers={"Content-Disposition": f'attachment; filename="Invoice_{order.id}.txt"'},
    )


@router.post("/me/{order_id}/send-invoice")
def send_invoice(
    order_id: uuid.UUID,
    payload: SendInvoiceRequest | None = None,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_auth),
) -> dict[str, bool]:
    """
    Email the order summary to the buyer (or to `send_to`).
    """
    order = service.get_user_order(session, current_user.email, order_id)
    doc = reconcile(order)
    recipient = (payload.send_to if payload else None) or order.user_email

    try:
        email_client.send_order_email(
            to_email=recipient,
            order_id=str(order.id),
            items=doc.line_rows,
            total=doc.paid_total_display,
        )
    except (RuntimeError, smtplib.SMTPException, OSError) as exc:
        logger.error("send-invoice for order %s failed: %s", order.id, exc)
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail="Failed to send invoice email",
        )
    return {"ok": True}


# -------- Admin endpoints --------


@router.patch(
    "/{order_id}/status",
    response_model=OrderRead,
    dependencies=[Depends(require_admin)],
)
def update_order_status(
    order_id: uuid.UUID,
    payload: OrderStatusUpdate,
    session: Session = Depends(get_session),
):
    """
    Update order status (admin only), one step forward at a time:

      placed -> confirmed -> shipped -> out_for_delivery -> completed
    """
    return service.update_status(session, order_id, payload)
