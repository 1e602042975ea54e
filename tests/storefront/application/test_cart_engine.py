"""Application tests for cart resolution and the mutation engine."""

from concurrent.futures import ThreadPoolExecutor
from types import SimpleNamespace

import pytest
from protean import current_domain
from storefront.cart import engine
from storefront.cart.cart import ShoppingCart
from storefront.cart.identity import Anonymous, Authenticated
from storefront.cart.items import AdjustCartQuantity
from storefront.errors import InvalidInput, InvalidVariant, NotFound, WouldRemove


def _cart(cart_id):
    return current_domain.repository_for(ShoppingCart).get(cart_id)


class TestResolveCart:
    def test_creates_cart_lazily(self):
        cart_id = engine.resolve_cart(Anonymous("sess-001"))
        cart = _cart(cart_id)
        assert cart.session_id == "sess-001"
        assert cart.items == []

    def test_resolution_is_idempotent(self):
        first = engine.resolve_cart(Authenticated("cust-001"))
        second = engine.resolve_cart(Authenticated("cust-001"))
        assert first == second

    def test_different_identities_get_different_carts(self):
        assert engine.resolve_cart(Anonymous("sess-001")) != engine.resolve_cart(Anonymous("sess-002"))
        assert engine.resolve_cart(Anonymous("same")) != engine.resolve_cart(Authenticated("same"))

    def test_concurrent_first_requests_create_one_cart(self, storefront_bed):
        from storefront.domain import storefront

        def resolve():
            with storefront.domain_context():
                return engine.resolve_cart(Authenticated("cust-race"))

        with ThreadPoolExecutor(max_workers=8) as pool:
            cart_ids = {f.result() for f in [pool.submit(resolve) for _ in range(16)]}

        assert len(cart_ids) == 1


class TestAddItem:
    def test_add_item(self, make_product):
        product_id, variants = make_product({"S|Red|": 5})
        cart_id = engine.resolve_cart(Anonymous("sess-001"))

        result = engine.add_item(cart_id, product_id, variants["S|Red|"], 2)

        assert result["quantity"] == 2
        assert result["variant_id"] == variants["S|Red|"]
        assert _cart(cart_id).items[0].quantity == 2

    def test_add_same_line_increments(self, make_product):
        product_id, _ = make_product()
        cart_id = engine.resolve_cart(Anonymous("sess-001"))

        first = engine.add_item(cart_id, product_id)
        second = engine.add_item(cart_id, product_id, quantity=3)

        assert first["item_id"] == second["item_id"]
        assert second["quantity"] == 4

    def test_variant_of_another_product_rejected(self, make_product):
        product_id, _ = make_product({"S||": 1})
        _, other_variants = make_product({"M||": 1}, title="Other")
        cart_id = engine.resolve_cart(Anonymous("sess-001"))

        with pytest.raises(InvalidVariant):
            engine.add_item(cart_id, product_id, other_variants["M||"])
        assert _cart(cart_id).items == []

    def test_variant_required_when_product_has_variants(self, make_product):
        product_id, _ = make_product({"S||": 1})
        cart_id = engine.resolve_cart(Anonymous("sess-001"))

        with pytest.raises(InvalidVariant):
            engine.add_item(cart_id, product_id)

    def test_unknown_product_not_found(self):
        cart_id = engine.resolve_cart(Anonymous("sess-001"))
        with pytest.raises(NotFound):
            engine.add_item(cart_id, "no-such-product")

    def test_zero_quantity_rejected(self, make_product):
        product_id, _ = make_product()
        cart_id = engine.resolve_cart(Anonymous("sess-001"))
        with pytest.raises(InvalidInput):
            engine.add_item(cart_id, product_id, quantity=0)


class TestAdjustQuantity:
    @pytest.fixture()
    def line(self, make_product):
        product_id, _ = make_product()
        cart_id = engine.resolve_cart(Anonymous("sess-001"))
        item = engine.add_item(cart_id, product_id)
        return cart_id, item["item_id"]

    def test_returns_authoritative_quantity(self, line):
        cart_id, item_id = line
        assert engine.adjust_quantity(cart_id, item_id, 2) == 3
        assert engine.adjust_quantity(cart_id, item_id, -1) == 2
        assert _cart(cart_id).items[0].quantity == 2

    def test_decrement_below_one_would_remove(self, line):
        cart_id, item_id = line

        with pytest.raises(WouldRemove) as exc:
            engine.adjust_quantity(cart_id, item_id, -1)

        assert exc.value.quantity == 1
        cart = _cart(cart_id)
        assert len(cart.items) == 1
        assert cart.items[0].quantity == 1

    def test_confirmed_removal_after_would_remove(self, line):
        cart_id, item_id = line
        with pytest.raises(WouldRemove):
            engine.adjust_quantity(cart_id, item_id, -1)

        assert engine.remove_item(cart_id, item_id) is True
        assert _cart(cart_id).items == []

    def test_item_of_another_cart_not_found(self, line):
        _, item_id = line
        other_cart_id = engine.resolve_cart(Anonymous("sess-002"))
        with pytest.raises(NotFound):
            engine.adjust_quantity(other_cart_id, item_id, 1)

    def test_set_quantity(self, line):
        cart_id, item_id = line
        assert engine.set_quantity(cart_id, item_id, 6) == 6
        with pytest.raises(WouldRemove):
            engine.set_quantity(cart_id, item_id, 0)
        assert _cart(cart_id).items[0].quantity == 6

    def test_concurrent_increments_are_not_lost(self, line):
        from storefront.domain import storefront

        cart_id, item_id = line
        taps = 25

        def tap():
            with storefront.domain_context():
                return engine.adjust_quantity(cart_id, item_id, 1)

        with ThreadPoolExecutor(max_workers=8) as pool:
            results = [f.result() for f in [pool.submit(tap) for _ in range(taps)]]

        assert _cart(cart_id).items[0].quantity == 1 + taps
        assert sorted(results) == list(range(2, taps + 2))


class TestRemoveItem:
    def test_remove_is_idempotent(self, make_product):
        product_id, _ = make_product()
        cart_id = engine.resolve_cart(Anonymous("sess-001"))
        item_id = engine.add_item(cart_id, product_id)["item_id"]

        assert engine.remove_item(cart_id, item_id) is True
        assert engine.remove_item(cart_id, item_id) is False
        assert _cart(cart_id).items == []


class TestVersionConflicts:
    def test_retries_then_surfaces_transient_failure(self, monkeypatch):
        from protean.exceptions import ExpectedVersionError
        from storefront.errors import TransientFailure

        calls = []

        def conflicting(command, asynchronous=True):
            calls.append(command)
            raise ExpectedVersionError("stale aggregate")

        monkeypatch.setattr(engine, "current_domain", SimpleNamespace(process=conflicting))
        monkeypatch.setenv("CART_MUTATION_RETRIES", "2")

        with pytest.raises(TransientFailure):
            engine.run_serialized(AdjustCartQuantity(cart_id="c", item_id="i", delta=1), "cart:c")
        assert len(calls) == 3

    def test_conflict_resolved_by_rerun(self, monkeypatch):
        from protean.exceptions import ExpectedVersionError

        outcomes = [ExpectedVersionError("stale aggregate"), 7]

        def flaky(command, asynchronous=True):
            outcome = outcomes.pop(0)
            if isinstance(outcome, Exception):
                raise outcome
            return outcome

        monkeypatch.setattr(engine, "current_domain", SimpleNamespace(process=flaky))

        assert engine.run_serialized(AdjustCartQuantity(cart_id="c", item_id="i", delta=1), "cart:c") == 7
