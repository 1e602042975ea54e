"""Tests for the storefront HTTP cart client."""

import pytest
import requests
from storefront.client.http import CartClient
from storefront.errors import InvalidVariant, NotFound, TransientFailure, WouldRemove
from storefront.notification.port import FAILURE, SUCCESS, WARNING


def _item(item_id="i-1", quantity=1, variant_id=None):
    return {"item_id": item_id, "product_id": "prod-1", "variant_id": variant_id, "quantity": quantity}


@pytest.fixture()
def client(http):
    return CartClient("http://shop.test/", session_token="sess-1", session=http, timeout=2.5)


@pytest.fixture()
def holding_two(client, http, respond):
    """Client whose local cart holds line i-1 with quantity 2."""
    http.queue(respond(200, {"cart_id": "cart-1", "items": [_item(quantity=2)]}))
    client.refresh()
    return client


class TestTransport:
    def test_sends_identity_headers_and_timeout(self, http, respond):
        client = CartClient("http://shop.test", session_token="sess-1", user_id="cust-1", session=http, timeout=2.5)
        http.queue(respond(200, {"cart_id": "cart-1", "items": []}))

        client.refresh()

        call = http.calls[0]
        assert call["url"] == "http://shop.test/cart"
        assert call["headers"] == {"X-User-Id": "cust-1", "X-Session-Token": "sess-1"}
        assert call["timeout"] == 2.5

    def test_timeout_from_environment(self, http, monkeypatch):
        monkeypatch.setenv("STOREFRONT_HTTP_TIMEOUT", "1.5")
        assert CartClient("http://shop.test", session=http).timeout == 1.5

    def test_network_error_is_transient(self, client, http):
        http.queue(requests.ConnectionError("refused"))
        with pytest.raises(TransientFailure):
            client.refresh()


class TestAddItem:
    def test_success(self, client, http, respond, notifier):
        http.queue(respond(201, {"item": _item(quantity=2, variant_id="v-1")}))

        line = client.add_item("prod-1", "v-1", 2)

        assert line.quantity == 2
        assert client.cart.quantity_of("i-1") == 2
        assert [n["level"] for n in notifier.sent] == [SUCCESS]

    def test_rejected_add_notifies_once(self, client, http, respond, notifier):
        http.queue(respond(400, {"error": {"variant_id": ["foreign"]}, "code": "invalid_variant"}))

        with pytest.raises(InvalidVariant):
            client.add_item("prod-1", "v-9")

        assert client.cart.lines == []
        assert [n["level"] for n in notifier.sent] == [FAILURE]

    def test_add_is_never_retried(self, client, http, timeout_error, notifier):
        http.queue(timeout_error)

        with pytest.raises(TransientFailure):
            client.add_item("prod-1")

        assert len(http.calls) == 1
        assert len(notifier.of_level(FAILURE)) == 1


class TestQuantityChanges:
    def test_confirmed_with_server_quantity(self, holding_two, http, respond, notifier):
        http.queue(respond(200, {"item_id": "i-1", "quantity": 9}))

        assert holding_two.adjust_quantity("i-1", 1) == 9
        assert holding_two.cart.quantity_of("i-1") == 9
        assert http.calls[-1]["json"] == {"delta": 1}
        assert [n["level"] for n in notifier.sent] == [SUCCESS]

    def test_set_quantity(self, holding_two, http, respond):
        http.queue(respond(200, {"item_id": "i-1", "quantity": 5}))

        assert holding_two.set_quantity("i-1", 5) == 5
        assert http.calls[-1]["json"] == {"quantity": 5}

    def test_failure_rolls_back_with_one_notice(self, holding_two, http, timeout_error, notifier):
        http.queue(timeout_error)

        with pytest.raises(TransientFailure):
            holding_two.adjust_quantity("i-1", 1)

        assert holding_two.cart.quantity_of("i-1") == 2
        assert len(notifier.sent) == 1
        assert notifier.sent[0]["level"] == FAILURE
        assert notifier.sent[0]["retryable"] is True

    def test_would_remove_asks_for_confirmation(self, holding_two, http, respond, notifier):
        http.queue(
            respond(
                409,
                {"error": {"quantity": ["..."]}, "code": "would_remove", "item_id": "i-1", "quantity": 2, "requested": 0},
            )
        )

        with pytest.raises(WouldRemove):
            holding_two.set_quantity("i-1", 0)

        assert holding_two.cart.quantity_of("i-1") == 2
        assert [n["level"] for n in notifier.sent] == [WARNING]
        assert notifier.sent[0]["confirm"] == "remove_item"

    def test_stale_item_rolls_back(self, holding_two, http, respond, notifier):
        http.queue(respond(404, {"error": {"item_id": ["gone"]}, "code": "not_found"}))

        with pytest.raises(NotFound):
            holding_two.adjust_quantity("i-1", -1)

        assert holding_two.cart.quantity_of("i-1") == 2
        assert len(notifier.of_level(FAILURE)) == 1


class TestRemoveItem:
    def test_remove(self, holding_two, http, respond, notifier):
        http.queue(respond(200, {"item_id": "i-1", "removed": True}))

        holding_two.remove_item("i-1")

        assert holding_two.cart.line("i-1") is None
        assert [n["level"] for n in notifier.sent] == [SUCCESS]

    def test_transient_failure_retried_once(self, holding_two, http, respond, timeout_error):
        http.queue(timeout_error, respond(200, {"item_id": "i-1", "removed": False}))

        holding_two.remove_item("i-1")

        assert len(http.calls) == 3  # refresh + two deletes
        assert holding_two.cart.line("i-1") is None

    def test_second_failure_rolls_back(self, holding_two, http, timeout_error, notifier):
        http.queue(timeout_error, timeout_error)

        with pytest.raises(TransientFailure):
            holding_two.remove_item("i-1")

        assert holding_two.cart.quantity_of("i-1") == 2
        assert len(notifier.sent) == 1


class TestMerge:
    def test_merge_refreshes_projection(self, http, respond, notifier):
        client = CartClient("http://shop.test", session_token="sess-1", user_id="cust-1", session=http)
        http.queue(
            respond(503, {"error": {"store": ["busy"]}, "code": "transient_failure"}),
            respond(200, {"cart_id": "cart-9", "merged": True, "items_merged": 1}),
            respond(200, {"cart_id": "cart-9", "items": [_item(quantity=3)]}),
        )

        result = client.merge()

        assert result["merged"] is True
        assert client.cart.cart_id == "cart-9"
        assert client.cart.quantity_of("i-1") == 3
        assert notifier.sent == []

    def test_reload_failure_after_merge_is_reported_separately(self, http, respond, notifier, timeout_error):
        client = CartClient("http://shop.test", session_token="sess-1", user_id="cust-1", session=http)
        http.queue(
            respond(200, {"cart_id": "cart-9", "merged": True, "items_merged": 1}),
            timeout_error,
        )

        result = client.merge()

        assert result["merged"] is True
        assert len(notifier.sent) == 1
        assert notifier.sent[0]["level"] == WARNING
        assert notifier.of_level(FAILURE) == []

    def test_failed_merge_raises_with_one_notice(self, http, respond, notifier):
        client = CartClient("http://shop.test", session_token="sess-1", user_id="cust-1", session=http)
        http.queue(
            respond(503, {"error": {"store": ["busy"]}, "code": "transient_failure"}),
            respond(503, {"error": {"store": ["busy"]}, "code": "transient_failure"}),
        )

        with pytest.raises(TransientFailure):
            client.merge()

        assert len(notifier.sent) == 1
        assert notifier.sent[0]["level"] == FAILURE
        assert len(http.calls) == 2


class TestNotificationFailures:
    def test_broken_notifier_does_not_fail_the_operation(self, holding_two, http, respond, notifier):
        notifier.configure(should_fail=True)
        http.queue(respond(200, {"item_id": "i-1", "quantity": 3}))

        assert holding_two.adjust_quantity("i-1", 1) == 3
