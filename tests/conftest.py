import os

# Settings are read once and cached, so configure the environment before
# anything from storefront is imported.
os.environ["SUPABASE_JWT_SECRET"] = "test-secret"
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["ADMIN_EMAILS"] = "admin@ballerz.test"
os.environ.pop("SUPABASE_SERVICE_ROLE_KEY", None)

import uuid
from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient
from jose import jwt
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

from storefront.database import get_session
from storefront.main import app
from storefront.models.order import Order, OrderItem
from storefront.repositories.catalog_repo import CatalogRepository
from storefront.schemas.catalog import CatalogEntryCreate
from storefront.services.catalog_service import CatalogService

BUYER_EMAIL = "buyer@ballerz.test"
ADMIN_EMAIL = "admin@ballerz.test"


def make_token(email: str) -> str:
    claims = {
        "sub": str(uuid.uuid5(uuid.NAMESPACE_DNS, email)),
        "email": email,
        "exp": datetime.now(timezone.utc) + timedelta(hours=1),
    }
    return jwt.encode(claims, "test-secret", algorithm="HS256")


def auth_headers(email: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {make_token(email)}"}


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    yield engine
    SQLModel.metadata.drop_all(engine)


@pytest.fixture
def session(engine):
    with Session(engine) as session:
        yield session


@pytest.fixture
def client(engine):
    def override_get_session():
        with Session(engine) as session:
            yield session

    app.dependency_overrides[get_session] = override_get_session
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def buyer_headers():
    return auth_headers(BUYER_EMAIL)


@pytest.fixture
def admin_headers():
    return auth_headers(ADMIN_EMAIL)


@pytest.fixture
def catalog(session):
    """Three catalog entries with ids 1, 2, 3."""
    service = CatalogService(CatalogRepository())
    return [
        service.create_entry(
            session,
            CatalogEntryCreate(
                description="Chelsea Home Jersey",
                product_category="Jersey",
                price=500,
                tag="Chelsea; Home",
                customizable=True,
                custom_price=150,
            ),
        ),
        service.create_entry(
            session,
            CatalogEntryCreate(
                description="Classic Leather Boots",
                product_category="Boots",
                price=1200,
                original_price=1500,
                size="L",
                tag="Boots",
            ),
        ),
        service.create_entry(
            session,
            CatalogEntryCreate(
                description="Training Shorts",
                product_category="Shorts",
                price=300,
            ),
        ),
    ]


def make_order(
    session: Session,
    user_email: str,
    lines: list[dict],
    total: float,
    created_at: datetime | None = None,
) -> Order:
    """
    Insert an order directly, as if placed earlier by checkout.
    Each line dict holds OrderItem column values.
    """
    order = Order(
        user_email=user_email,
        total=total,
        customer_name="Sam Buyer",
        created_at=created_at or datetime.now(timezone.utc),
    )
    session.add(order)
    session.flush()
    for position, line in enumerate(lines):
        session.add(OrderItem(order_id=order.id, position=position, **line))
    session.commit()
    session.refresh(order)
    return order
