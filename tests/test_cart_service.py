"""Tests for cart persistence, concurrency retry and guest cart absorption."""

from datetime import datetime, timezone
from urllib.parse import quote

import pytest
from fastapi import Response

from storefront.core.errors import CartConflictError, NotFoundError
from storefront.repositories.cart_repo import CookieCartRepository, SqlCartRepository
from storefront.repositories.catalog_repo import CatalogRepository
from storefront.schemas.cart import CartDelta, CartEntry, CartItemCreate, CartSnapshot
from storefront.services.cart_merge import merge
from storefront.services.cart_service import CartService

OWNER = "buyer@ballerz.test"
T0 = datetime(2024, 1, 1, tzinfo=timezone.utc)


def as_map(entries):
    return {(e.product_id, e.size): e.quantity for e in entries}


class RacingRepository:
    """
    In-memory versioned cart. The first `races` saves lose to a simulated
    concurrent writer that adds one unit of product 99 just before.
    """

    def __init__(self, races: int = 1):
        self.entries: list[CartEntry] = []
        self.version = 0
        self.races = races
        self.saves = 0

    def load(self, owner_key):
        return CartSnapshot(entries=list(self.entries), version=self.version)

    def save(self, owner_key, entries, version):
        self.saves += 1
        if self.races > 0:
            self.races -= 1
            self.entries = merge(self.entries, [CartDelta(99, "S", 1)])
            self.version += 1
        if version != self.version:
            raise CartConflictError("stale")
        self.entries = list(entries)
        self.version += 1
        return self.version

    def clear(self, owner_key):
        self.entries = []
        self.version += 1


class TestSqlCartRepository:
    def test_empty_cart_loads_at_version_zero(self, session):
        snap = SqlCartRepository(session).load(OWNER)
        assert snap.entries == []
        assert snap.version == 0

    def test_save_then_load(self, session):
        repo = SqlCartRepository(session)
        entries = [CartEntry(product_id=1, size="M", quantity=2, added_at=T0)]
        assert repo.save(OWNER, entries, 0) == 1

        snap = repo.load(OWNER)
        assert as_map(snap.entries) == {(1, "M"): 2}
        assert snap.version == 1

    def test_save_removes_missing_rows(self, session):
        repo = SqlCartRepository(session)
        repo.save(OWNER, [CartEntry(product_id=1, size="M", quantity=2, added_at=T0)], 0)
        repo.save(OWNER, [CartEntry(product_id=2, size="S", quantity=1, added_at=T0)], 1)
        assert as_map(repo.load(OWNER).entries) == {(2, "S"): 1}

    def test_stale_version_is_rejected(self, session):
        repo = SqlCartRepository(session)
        repo.save(OWNER, [CartEntry(product_id=1, size="M", quantity=2, added_at=T0)], 0)

        with pytest.raises(CartConflictError):
            repo.save(OWNER, [], 0)
        assert as_map(repo.load(OWNER).entries) == {(1, "M"): 2}

    def test_carts_are_isolated_per_owner(self, session):
        repo = SqlCartRepository(session)
        repo.save(OWNER, [CartEntry(product_id=1, size="M", quantity=2, added_at=T0)], 0)
        assert repo.load("someone@else.test").entries == []

    def test_clear_bumps_version(self, session):
        repo = SqlCartRepository(session)
        repo.save(OWNER, [CartEntry(product_id=1, size="M", quantity=2, added_at=T0)], 0)
        repo.clear(OWNER)
        snap = repo.load(OWNER)
        assert snap.entries == []
        assert snap.version == 2


class TestCookieCartRepository:
    def test_missing_cookie_is_empty_cart(self):
        repo = CookieCartRepository({}, Response())
        assert repo.load("guest").entries == []

    def test_unreadable_cookie_is_empty_cart(self):
        repo = CookieCartRepository({"guest_cart": "not-json"}, Response())
        assert repo.load("guest").entries == []

    def test_reads_legacy_field_names(self):
        raw = quote('[{"ID": "4", "Quantity": 2, "Size": "L"}]')
        repo = CookieCartRepository({"guest_cart": raw}, Response())
        assert as_map(repo.load("guest").entries) == {(4, "L"): 2}

    def test_malformed_elements_are_skipped(self):
        raw = quote(
            '[{"product_id": 1, "quantity": 1, "size": 5},'
            ' {"product_id": 2, "quantity": 1, "size": "XXXL"},'
            ' {"product_id": 3, "quantity": 1, "size": ["M"]},'
            ' {"product_id": 4, "quantity": 0, "size": "M"},'
            ' {"product_id": 5, "quantity": 2}]'
        )
        repo = CookieCartRepository({"guest_cart": raw}, Response())
        assert as_map(repo.load("guest").entries) == {(5, "S"): 2}

    def test_save_sets_cookie_with_thirty_day_expiry(self):
        response = Response()
        repo = CookieCartRepository({}, response)
        repo.save("guest", [CartEntry(product_id=1, size="M", quantity=2, added_at=T0)], None)

        header = response.headers["set-cookie"]
        assert header.startswith("guest_cart=")
        assert "Max-Age=2592000" in header

    def test_load_after_save_sees_write(self):
        repo = CookieCartRepository({}, Response())
        repo.save("guest", [CartEntry(product_id=1, size="M", quantity=2, added_at=T0)], None)
        assert as_map(repo.load("guest").entries) == {(1, "M"): 2}

    def test_written_cookie_reads_back(self):
        response = Response()
        CookieCartRepository({}, response).save(
            "guest", [CartEntry(product_id=3, size="XL", quantity=1, added_at=T0)], None
        )
        value = response.headers["set-cookie"].split(";", 1)[0].split("=", 1)[1]

        reread = CookieCartRepository({"guest_cart": value}, Response())
        assert as_map(reread.load("guest").entries) == {(3, "XL"): 1}


class TestCartServiceRetry:
    def test_concurrent_addition_is_not_lost(self):
        repo = RacingRepository(races=1)
        service = CartService(CatalogRepository(), max_retries=3)

        entries = service.apply(repo, OWNER, [CartDelta(1, "M", 2)])

        assert as_map(entries) == {(1, "M"): 2, (99, "S"): 1}
        assert as_map(repo.entries) == {(1, "M"): 2, (99, "S"): 1}
        assert repo.saves == 2

    def test_gives_up_after_max_retries(self):
        repo = RacingRepository(races=10)
        service = CartService(CatalogRepository(), max_retries=2)

        with pytest.raises(CartConflictError):
            service.apply(repo, OWNER, [CartDelta(1, "M", 2)])

        assert repo.saves == 3
        assert (1, "M") not in as_map(repo.entries)


class TestCartServiceOperations:
    def test_add_to_cart_sums_same_key(self, session, catalog):
        service = CartService(CatalogRepository())
        repo = SqlCartRepository(session)
        service.add_to_cart(session, repo, OWNER, CartItemCreate(product_id=1, size="M", quantity=1))
        summary = service.add_to_cart(session, repo, OWNER, CartItemCreate(product_id=1, size="M", quantity=2))

        assert summary.total_quantity == 3
        assert summary.total_price == 1500
        assert len(summary.items) == 1

    def test_add_unknown_product_raises_not_found(self, session, catalog):
        service = CartService(CatalogRepository())
        with pytest.raises(NotFoundError):
            service.add_to_cart(
                session, SqlCartRepository(session), OWNER, CartItemCreate(product_id=42, quantity=1)
            )

    def test_remove_item(self, session, catalog):
        service = CartService(CatalogRepository())
        repo = SqlCartRepository(session)
        service.add_to_cart(session, repo, OWNER, CartItemCreate(product_id=1, size="M", quantity=3))
        summary = service.remove_item(session, repo, OWNER, 1, "M")
        assert summary.items == []

    def test_remove_some_units(self, session, catalog):
        service = CartService(CatalogRepository())
        repo = SqlCartRepository(session)
        service.add_to_cart(session, repo, OWNER, CartItemCreate(product_id=1, size="M", quantity=3))
        summary = service.remove_item(session, repo, OWNER, 1, "M", quantity=1)
        assert summary.total_quantity == 2

        summary = service.remove_item(session, repo, OWNER, 1, "M", quantity=5)
        assert summary.items == []

    def test_remove_missing_item_raises(self, session, catalog):
        service = CartService(CatalogRepository())
        with pytest.raises(NotFoundError):
            service.remove_item(session, SqlCartRepository(session), OWNER, 1, "M")

    def test_absorb_guest_cart_sums_and_clears_cookie(self, session, catalog):
        service = CartService(CatalogRepository())
        user_repo = SqlCartRepository(session)
        user_repo.save(OWNER, [CartEntry(product_id=1, size="M", quantity=3, added_at=T0)], 0)

        guest_repo = CookieCartRepository({}, Response())
        guest_repo.save(
            "guest",
            [
                CartEntry(product_id=1, size="M", quantity=2, added_at=T0),
                CartEntry(product_id=2, size="L", quantity=1, added_at=T0),
            ],
            None,
        )

        summary = service.absorb_guest_cart(session, guest_repo, user_repo, OWNER)

        assert {(i.product_id, i.size): i.quantity for i in summary.items} == {(1, "M"): 5, (2, "L"): 1}
        assert guest_repo.load("guest").entries == []
