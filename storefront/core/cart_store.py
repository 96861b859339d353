from typing import NamedTuple

from fastapi import Depends, Request, Response
from sqlmodel import Session

from storefront.core.auth import get_current_user
from storefront.core.config import get_settings
from storefront.database import get_session
from storefront.models.user import User
from storefront.repositories.cart_repo import (
    CartRepository,
    CookieCartRepository,
    SqlCartRepository,
)

GUEST_OWNER_KEY = "guest"


class CartContext(NamedTuple):
    """The cart store picked for this request and the key it is read with."""

    repo: CartRepository
    owner_key: str
    authenticated: bool


def get_guest_cart(request: Request, response: Response) -> CookieCartRepository:
    """
    FastAPI dependency: the cookie-backed cart of this browser.
    Cookie writes land on the outgoing response.
    """
    settings = get_settings()
    return CookieCartRepository(
        request.cookies,
        response,
        cookie_name=settings.GUEST_CART_COOKIE,
        max_age_days=settings.GUEST_CART_MAX_AGE_DAYS,
    )


def get_cart_context(
    session: Session = Depends(get_session),
    guest_cart: CookieCartRepository = Depends(get_guest_cart),
    user: User | None = Depends(get_current_user),
) -> CartContext:
    """
    FastAPI dependency choosing the cart store from authentication state:
      - signed in => remote cart keyed by email
      - guest     => cookie cart
    """
    if user is not None:
        return CartContext(SqlCartRepository(session), user.email, True)
    return CartContext(guest_cart, GUEST_OWNER_KEY, False)
