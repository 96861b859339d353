from fastapi import APIRouter, Depends, Query
from sqlmodel import Session

from storefront.core.auth import require_auth
from storefront.core.cart_store import CartContext, get_cart_context, get_guest_cart
from storefront.database import get_session
from storefront.models.user import User
from storefront.repositories.cart_repo import CookieCartRepository, SqlCartRepository
from storefront.repositories.catalog_repo import CatalogRepository
from storefront.schemas.cart import CartItemCreate, CartSummary, Size
from storefront.services.cart_service import CartService

router = APIRouter(prefix="/cart", tags=["Cart"])

catalog_repo = CatalogRepository()
service = CartService(catalog_repo)


@router.get("", response_model=CartSummary)
def get_my_cart(
    session: Session = Depends(get_session),
    cart: CartContext = Depends(get_cart_context),
):
    """
    Get the current cart summary.

    - Signed-in users read their remote cart.
    - Guests read the cookie cart.
    """
    return service.get_cart_summary(session, cart.repo, cart.owner_key)


@router.post("", response_model=CartSummary)
def add_to_cart(
    payload: CartItemCreate,
    session: Session = Depends(get_session),
    cart: CartContext = Depends(get_cart_context),
):
    """
    Add a product to the cart. Adding the same product and size again
    increases its quantity.
    """
    return service.add_to_cart(session, cart.repo, cart.owner_key, payload)


@router.delete("/{product_id}", response_model=CartSummary)
def remove_cart_item(
    product_id: int,
    size: Size | None = None,
    quantity: int | None = Query(default=None, gt=0),
    session: Session = Depends(get_session),
    cart: CartContext = Depends(get_cart_context),
):
    """
    Remove a (product, size) line from the cart, or only `quantity` units
    of it.
    """
    return service.remove_item(session, cart.repo, cart.owner_key, product_id, size, quantity)


@router.delete("", response_model=CartSummary)
def clear_cart(
    cart: CartContext = Depends(get_cart_context),
):
    """
    Clear the entire cart.
    """
    return service.clear_cart(cart.repo, cart.owner_key)


@router.post("/merge-guest", response_model=CartSummary)
def merge_guest_cart(
    session: Session = Depends(get_session),
    guest_cart: CookieCartRepository = Depends(get_guest_cart),
    current_user: User = Depends(require_auth),
):
    """
    Fold the guest cookie cart into the signed-in user's cart, then clear
    the cookie. Call once right after sign-in.
    """
    return service.absorb_guest_cart(
        session,
        guest_repo=guest_cart,
        user_repo=SqlCartRepository(session),
        owner_key=current_user.email,
    )
