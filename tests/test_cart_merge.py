"""Tests for the pure cart merge engine."""

from datetime import datetime, timezone

from storefront.schemas.cart import CartDelta, CartEntry
from storefront.services.cart_merge import deltas_from_entries, merge, total_quantity

T0 = datetime(2024, 1, 1, tzinfo=timezone.utc)
T1 = datetime(2024, 2, 1, tzinfo=timezone.utc)


def entry(product_id, size, quantity, added_at=T0):
    return CartEntry(product_id=product_id, size=size, quantity=quantity, added_at=added_at)


def as_map(entries):
    return {(e.product_id, e.size): e.quantity for e in entries}


class TestFreshKey:
    def test_adds_exactly_one_entry(self):
        cart = [entry(1, "M", 2)]
        result = merge(cart, [CartDelta(2, "L", 3)], now=T1)
        assert len(result) == 2
        assert as_map(result) == {(1, "M"): 2, (2, "L"): 3}

    def test_new_entry_gets_now_as_added_at(self):
        result = merge([], [CartDelta(5, "S", 1)], now=T1)
        assert result[0].added_at == T1

    def test_missing_size_defaults_to_small(self):
        result = merge([], [CartDelta(7, None, 1)], now=T1)
        assert result[0].size == "S"

    def test_missing_size_collapses_into_existing_small_row(self):
        result = merge([entry(7, "S", 4)], [CartDelta(7, None, 1)], now=T1)
        assert as_map(result) == {(7, "S"): 5}

    def test_same_product_different_size_is_separate_entry(self):
        result = merge([entry(1, "M", 1)], [CartDelta(1, "XL", 1)], now=T1)
        assert as_map(result) == {(1, "M"): 1, (1, "XL"): 1}


class TestExistingKey:
    def test_quantity_is_summed(self):
        cart = [entry(1, "M", 3), entry(2, "S", 1)]
        result = merge(cart, [CartDelta(1, "M", 2)], now=T1)
        assert as_map(result) == {(1, "M"): 5, (2, "S"): 1}

    def test_other_entries_unchanged(self):
        other = entry(2, "S", 1)
        result = merge([entry(1, "M", 3), other], [CartDelta(1, "M", 2)], now=T1)
        untouched = [e for e in result if e.product_id == 2][0]
        assert untouched == other

    def test_added_at_refreshed_on_match(self):
        result = merge([entry(1, "M", 3)], [CartDelta(1, "M", 1)], now=T1)
        assert result[0].added_at == T1

    def test_merging_twice_is_additive(self):
        cart = [entry(1, "M", 3)]
        once = merge(cart, [CartDelta(1, "M", 2)], now=T1)
        twice = merge(once, [CartDelta(1, "M", 2)], now=T1)
        assert as_map(twice) == {(1, "M"): 7}

    def test_repeated_delta_in_one_call_is_additive(self):
        result = merge([], [CartDelta(1, "M", 2), CartDelta(1, "M", 2)], now=T1)
        assert as_map(result) == {(1, "M"): 4}


class TestRemoval:
    def test_entry_reaching_zero_is_removed(self):
        result = merge([entry(1, "M", 2)], [CartDelta(1, "M", -2)], now=T1)
        assert result == []

    def test_entry_going_negative_is_removed(self):
        result = merge([entry(1, "M", 2)], [CartDelta(1, "M", -5)], now=T1)
        assert result == []

    def test_negative_delta_on_missing_key_creates_nothing(self):
        result = merge([entry(1, "M", 2)], [CartDelta(9, "M", -1)], now=T1)
        assert as_map(result) == {(1, "M"): 2}


class TestPurity:
    def test_inputs_not_mutated(self):
        cart = [entry(1, "M", 3)]
        merge(cart, [CartDelta(1, "M", 2)], now=T1)
        assert cart[0].quantity == 3
        assert cart[0].added_at == T0

    def test_duplicate_stored_keys_are_collapsed(self):
        cart = [entry(1, "M", 1), entry(1, "M", 2)]
        result = merge(cart, [], now=T1)
        assert as_map(result) == {(1, "M"): 3}

    def test_quantity_is_conserved(self):
        cart = [entry(1, "M", 3), entry(2, "S", 1)]
        deltas = [CartDelta(1, "M", 2), CartDelta(3, "L", 4)]
        result = merge(cart, deltas, now=T1)
        assert total_quantity(result) == total_quantity(cart) + 6


def test_deltas_from_entries_round_trip_into_empty_cart():
    cart = [entry(1, "M", 3), entry(2, "S", 1)]
    result = merge([], deltas_from_entries(cart), now=T1)
    assert as_map(result) == as_map(cart)
