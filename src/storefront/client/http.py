"""HTTP client for the storefront cart API.

Every call has a bounded timeout and one failure surface: network trouble
and 5xx answers become TransientFailure, everything else the storefront
error the server reported. Idempotent calls (remove, merge) are retried
once on TransientFailure; adds are never retried so a slow answer cannot
double-add. Each failed user action rolls the local projection back and
emits exactly one notice.
"""

import os

import requests

from storefront.client.projection import LocalCart
from storefront.client.response import error_for, extract_error_detail
from storefront.errors import TransientFailure, WouldRemove
from storefront.notification import notify
from storefront.notification.port import FAILURE, SUCCESS, WARNING
from storefront.utils.logging import get_logger

logger = get_logger(__name__)

DEFAULT_TIMEOUT = 5.0


def default_timeout() -> float:
    return float(os.environ.get("STOREFRONT_HTTP_TIMEOUT", DEFAULT_TIMEOUT))


class CartClient:
    def __init__(self, base_url, session_token=None, user_id=None, session=None, timeout=None):
        self.base_url = base_url.rstrip("/")
        self.session_token = session_token
        self.user_id = user_id
        self.http = session or requests.Session()
        self.timeout = timeout if timeout is not None else default_timeout()
        self.cart = LocalCart()

    # -------------------------------------------------------------------
    # Transport
    # -------------------------------------------------------------------
    def _headers(self):
        headers = {}
        if self.user_id:
            headers["X-User-Id"] = str(self.user_id)
        if self.session_token:
            headers["X-Session-Token"] = str(self.session_token)
        return headers

    def _request(self, method, path, payload=None):
        url = f"{self.base_url}{path}"
        try:
            response = self.http.request(method, url, json=payload, headers=self._headers(), timeout=self.timeout)
        except (requests.Timeout, requests.ConnectionError) as exc:
            logger.warning("Storefront unreachable", method=method, path=path, error=str(exc))
            raise TransientFailure({"network": [str(exc) or "Storefront unreachable"]}) from exc

        if response.status_code >= 400:
            logger.info(
                "Storefront rejected request",
                method=method,
                path=path,
                status=response.status_code,
                detail=extract_error_detail(response),
            )
            raise error_for(response)
        return response.json() if response.content else {}

    def _retry_once(self, method, path, payload=None):
        try:
            return self._request(method, path, payload)
        except TransientFailure:
            logger.info("Retrying idempotent request", method=method, path=path)
            return self._request(method, path, payload)

    # -------------------------------------------------------------------
    # Operations
    # -------------------------------------------------------------------
    def refresh(self):
        self.cart.replace(self._request("GET", "/cart"))
        return self.cart

    def add_item(self, product_id, variant_id=None, quantity=1):
        payload = {"product_id": product_id, "variant_id": variant_id, "quantity": quantity}
        try:
            body = self._request("POST", "/cart", payload)
        except TransientFailure:
            notify(FAILURE, "Could not add the item, please try again", retryable=True)
            raise
        except Exception as exc:
            notify(FAILURE, "Could not add the item", error=str(exc))
            raise

        line = self.cart.upsert(body["item"])
        notify(SUCCESS, "Added to cart", item_id=line.item_id)
        return line

    def adjust_quantity(self, item_id, delta):
        pending = self.cart.apply_delta(item_id, delta)
        return self._put_quantity(item_id, {"delta": delta}, pending)

    def set_quantity(self, item_id, quantity):
        pending = self.cart.apply_quantity(item_id, quantity)
        return self._put_quantity(item_id, {"quantity": quantity}, pending)

    def _put_quantity(self, item_id, payload, pending):
        try:
            body = self._request("PUT", f"/cart/{item_id}", payload)
        except WouldRemove:
            self.cart.rollback(pending)
            notify(WARNING, "Remove this item from the cart?", item_id=str(item_id), confirm="remove_item")
            raise
        except TransientFailure:
            self.cart.rollback(pending)
            notify(FAILURE, "Something went wrong, please try again", item_id=str(item_id), retryable=True)
            raise
        except Exception as exc:
            self.cart.rollback(pending)
            notify(FAILURE, "Could not update the quantity", item_id=str(item_id), error=str(exc))
            raise

        self.cart.confirm(item_id, body["quantity"])
        notify(SUCCESS, "Quantity updated", item_id=str(item_id))
        return body["quantity"]

    def remove_item(self, item_id):
        pending = self.cart.apply_removal(item_id)
        try:
            self._retry_once("DELETE", f"/cart/{item_id}")
        except Exception as exc:
            self.cart.rollback(pending)
            notify(FAILURE, "Could not remove the item", item_id=str(item_id), error=str(exc))
            raise

        notify(SUCCESS, "Item removed", item_id=str(item_id))

    def merge(self):
        """Fold this session's guest cart into the signed-in shopper's cart."""
        try:
            body = self._retry_once("POST", "/cart/merge")
        except Exception as exc:
            notify(FAILURE, "Could not restore your guest cart", error=str(exc))
            raise

        try:
            self.refresh()
        except Exception as exc:
            # The merge stands; only the local view is stale
            logger.warning("Cart reload after merge failed", error=str(exc))
            notify(WARNING, "Your carts were combined, reload to see the result", error=str(exc), retryable=True)
        return body
