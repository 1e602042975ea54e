"""Storefront error taxonomy.

Every error carries a `messages` dict shaped like Protean's ValidationError
(`{field: [message, ...]}`), a stable machine-readable `code`, and the HTTP
status the API layer answers with.
"""


class StorefrontError(Exception):
    """Base class for errors surfaced to storefront callers."""

    code = "storefront_error"
    status_code = 400

    def __init__(self, messages: dict | None = None, **details):
        self.messages = messages or {}
        self.details = details
        super().__init__(self.messages)

    def to_dict(self) -> dict:
        payload = {"error": self.messages, "code": self.code}
        payload.update(self.details)
        return payload


class InvalidInput(StorefrontError):
    """Malformed price, inventory, quantity or variant key."""

    code = "invalid_input"
    status_code = 400


class InvalidInventory(InvalidInput):
    """Inventory count that is negative or not a whole number."""

    code = "invalid_inventory"


class InvalidVariant(InvalidInput):
    """Variant that does not belong to the product it was paired with."""

    code = "invalid_variant"


class Conflict(StorefrontError):
    """Request collides with live state, e.g. removing a variant held in carts."""

    code = "conflict"
    status_code = 409


class NotFound(StorefrontError):
    """Stale cart item, vanished variant or unknown product."""

    code = "not_found"
    status_code = 404


class IdentityRequired(StorefrontError):
    """Neither a session token nor a user id came with the request."""

    code = "identity_required"
    status_code = 401


class WouldRemove(StorefrontError):
    """Quantity change would drop a cart line below 1.

    Nothing was mutated; the caller confirms with the shopper and then
    removes the item explicitly.
    """

    code = "would_remove"
    status_code = 409

    def __init__(self, item_id: str, quantity: int, requested: int):
        super().__init__(
            {"quantity": [f"Quantity would drop to {requested}; remove the item instead"]},
            item_id=str(item_id),
            quantity=quantity,
            requested=requested,
        )
        self.item_id = str(item_id)
        self.quantity = quantity
        self.requested = requested


class TransientFailure(StorefrontError):
    """Store or network unavailable; the operation may be retried."""

    code = "transient_failure"
    status_code = 503
