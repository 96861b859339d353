"""HTTP tests for guest and signed-in carts."""

from urllib.parse import quote

API = "/api/v1/cart"


def lines(summary):
    return {(i["product_id"], i["size"]): i["quantity"] for i in summary["items"]}


class TestGuestCart:
    def test_add_twice_sums_in_cookie(self, client, catalog):
        client.post(API, json={"product_id": 1, "size": "M", "quantity": 1})
        resp = client.post(API, json={"product_id": 1, "size": "M", "quantity": 2})

        assert resp.status_code == 200
        assert lines(resp.json()) == {(1, "M"): 3}
        assert "guest_cart" in client.cookies
        assert lines(client.get(API).json()) == {(1, "M"): 3}

    def test_missing_size_defaults_to_small(self, client, catalog):
        resp = client.post(API, json={"product_id": 2, "quantity": 1})
        assert lines(resp.json()) == {(2, "S"): 1}

    def test_unknown_product(self, client, catalog):
        resp = client.post(API, json={"product_id": 99, "quantity": 1})
        assert resp.status_code == 404

    def test_zero_quantity_rejected(self, client, catalog):
        resp = client.post(API, json={"product_id": 1, "quantity": 0})
        assert resp.status_code == 422

    def test_remove_line(self, client, catalog):
        client.post(API, json={"product_id": 1, "size": "M", "quantity": 2})
        client.post(API, json={"product_id": 2, "size": "L", "quantity": 1})
        resp = client.delete(f"{API}/1", params={"size": "M"})
        assert lines(resp.json()) == {(2, "L"): 1}

    def test_remove_some_units(self, client, catalog):
        client.post(API, json={"product_id": 1, "size": "M", "quantity": 3})
        resp = client.delete(f"{API}/1", params={"size": "M", "quantity": 2})
        assert lines(resp.json()) == {(1, "M"): 1}

    def test_malformed_cookie_element_is_ignored(self, client, catalog):
        client.cookies.set(
            "guest_cart",
            quote('[{"product_id":1,"quantity":1,"size":5},{"product_id":2,"quantity":1,"size":"L"}]'),
        )
        resp = client.get(API)
        assert resp.status_code == 200
        assert lines(resp.json()) == {(2, "L"): 1}

    def test_clear(self, client, catalog):
        client.post(API, json={"product_id": 1, "quantity": 2})
        resp = client.delete(API)
        assert resp.json()["total_quantity"] == 0
        assert client.get(API).json()["items"] == []

    def test_totals_use_catalog_price(self, client, catalog):
        client.post(API, json={"product_id": 1, "size": "M", "quantity": 2})
        client.post(API, json={"product_id": 3, "size": "S", "quantity": 1})
        summary = client.get(API).json()
        assert summary["total_quantity"] == 3
        assert summary["total_price"] == 1300


class TestSignedInCart:
    def test_cart_is_remote_not_cookie(self, client, catalog, buyer_headers):
        resp = client.post(API, json={"product_id": 1, "size": "M", "quantity": 2}, headers=buyer_headers)
        assert lines(resp.json()) == {(1, "M"): 2}
        assert "guest_cart" not in client.cookies

        # guest view of the same browser is still empty
        assert client.get(API).json()["items"] == []
        assert lines(client.get(API, headers=buyer_headers).json()) == {(1, "M"): 2}

    def test_merge_guest_cart_on_sign_in(self, client, catalog, buyer_headers):
        client.post(API, json={"product_id": 1, "size": "M", "quantity": 3}, headers=buyer_headers)
        client.post(API, json={"product_id": 1, "size": "M", "quantity": 2})
        client.post(API, json={"product_id": 2, "size": "L", "quantity": 1})

        resp = client.post(f"{API}/merge-guest", headers=buyer_headers)

        assert resp.status_code == 200
        assert lines(resp.json()) == {(1, "M"): 5, (2, "L"): 1}
        assert "guest_cart" not in client.cookies
        assert client.get(API).json()["items"] == []

    def test_merge_guest_cart_requires_auth(self, client, catalog):
        assert client.post(f"{API}/merge-guest").status_code == 401

    def test_remove_missing_line(self, client, catalog, buyer_headers):
        resp = client.delete(f"{API}/1", params={"size": "M"}, headers=buyer_headers)
        assert resp.status_code == 404
