"""BDD tests for cart line quantities."""

import pytest
from pytest_bdd import given, parsers, scenarios, then, when
from storefront.errors import StorefrontError

scenarios("features/cart_items.feature")


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given(parsers.cfparse('the cart holds {quantity:d} of "{product_id}"'))
def cart_holds(cart, quantity, product_id):
    cart.add_item(product_id, None, quantity)
    cart._events.clear()


# ---------------------------------------------------------------------------
# When steps
# ---------------------------------------------------------------------------
@when(parsers.cfparse('the shopper adds {quantity:d} of "{product_id}" variant "{variant_id}"'))
def add_item(cart, quantity, product_id, variant_id):
    cart.add_item(product_id, variant_id, quantity)


@when(parsers.cfparse("the shopper changes the quantity by {delta:d}"))
def adjust_quantity(cart, delta, error):
    try:
        cart.adjust_item_quantity(cart.items[0].id, delta)
    except StorefrontError as exc:
        error["exc"] = exc


@pytest.fixture()
def line():
    """The line the scenario acts on, remembered across steps."""
    return {}


@when("the shopper removes the line")
def remove_line(cart, line):
    if "item_id" not in line:
        line["item_id"] = cart.items[0].id
    cart.remove_item(line["item_id"])


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then(parsers.cfparse("the cart has {count:d} line"))
def cart_has_n_lines_singular(cart, count):
    assert len(cart.items) == count


@then(parsers.cfparse("the cart has {count:d} lines"))
def cart_has_n_lines(cart, count):
    assert len(cart.items) == count


@then(parsers.cfparse("the line quantity is {quantity:d}"))
def line_quantity_is(cart, quantity):
    assert cart.items[0].quantity == quantity
