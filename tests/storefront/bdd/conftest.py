"""Shared BDD fixtures and step definitions for the storefront."""

import pytest
from protean.exceptions import ValidationError
from pytest_bdd import given, parsers, then
from storefront.cart.cart import ShoppingCart
from storefront.cart.events import CartItemAdded, CartItemRemoved, CartQuantityAdjusted, CartsMerged
from storefront.catalogue.events import VariantMatrixSaved
from storefront.catalogue.product import Product
from storefront.errors import StorefrontError

_EVENT_CLASSES = {
    "CartItemAdded": CartItemAdded,
    "CartQuantityAdjusted": CartQuantityAdjusted,
    "CartItemRemoved": CartItemRemoved,
    "CartsMerged": CartsMerged,
    "VariantMatrixSaved": VariantMatrixSaved,
}


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------
@pytest.fixture()
def error():
    """Container for captured errors."""
    return {"exc": None}


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given("a product without variants", target_fixture="product")
def plain_product():
    product = Product.create(title="Classic Tee", price=20.0, inventory=10)
    product._events.clear()
    return product


@given("a signed-in shopper's cart", target_fixture="cart")
def customer_cart():
    cart = ShoppingCart.create(customer_id="cust-001")
    cart._events.clear()
    return cart


# ---------------------------------------------------------------------------
# Then steps (shared)
# ---------------------------------------------------------------------------
@then(parsers.cfparse('the action fails with "{code}"'))
def action_fails_with(error, code):
    assert error["exc"] is not None, "Expected an error but none was raised"
    assert isinstance(error["exc"], StorefrontError | ValidationError)
    assert getattr(error["exc"], "code", "validation_error") == code


@then(parsers.cfparse("a {event_type} event is raised on the {target}"))
def event_raised(request, event_type, target):
    aggregate = request.getfixturevalue(target)
    event_cls = _EVENT_CLASSES[event_type]
    assert any(
        isinstance(e, event_cls) for e in aggregate._events
    ), f"No {event_type} event found. Events: {[type(e).__name__ for e in aggregate._events]}"
