import uuid
from datetime import datetime, timezone

from sqlmodel import SQLModel, Field

ADMIN_ROLE = "admin"
CUSTOMER_ROLE = "user"


class User(SQLModel, table=True):
    """
    A signed-in shopper or store admin, created on first authenticated request.

    The row id is the JWT `sub`. Carts and orders are keyed by `email`, not
    by id. Guests never get a row; their cart lives in a cookie.
    """

    __tablename__ = "users"

    id: uuid.UUID = Field(primary_key=True, index=True)
    email: str = Field(unique=True, index=True)
    name: str = Field(max_length=50)

    # ADMIN_ROLE only for addresses listed in ADMIN_EMAILS
    role: str = Field(default=CUSTOMER_ROLE, index=True)

    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def is_admin(self) -> bool:
        return self.role == ADMIN_ROLE
