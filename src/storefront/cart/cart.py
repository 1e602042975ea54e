"""Shopping Cart aggregate, owned by either a guest session or a signed-in shopper.

A cart line is identified by the pair (product_id, variant_id-or-None); the
aggregate keeps that pair unique and never lets a quantity fall below 1.
Quantity changes are relative (`adjust_item_quantity`) so the engine can
apply them as one read-modify-write inside a unit of work.
"""

import json
from datetime import UTC, datetime
from enum import Enum

from protean import atomic_change, invariant
from protean.exceptions import ValidationError
from protean.fields import DateTime, HasMany, Identifier, Integer, String

from storefront.cart.events import (
    CartCreated,
    CartItemAdded,
    CartItemRemoved,
    CartQuantityAdjusted,
    CartsMerged,
)
from storefront.domain import storefront
from storefront.errors import InvalidInput, NotFound, WouldRemove


class CartStatus(Enum):
    ACTIVE = "Active"
    MERGED = "Merged"


def _variant_ref(variant_id):
    return str(variant_id) if variant_id else None


@storefront.entity(part_of="ShoppingCart")
class CartItem:
    product_id = Identifier(required=True)
    variant_id = Identifier()  # None when the product has no variants
    quantity = Integer(required=True, min_value=1)
    added_at = DateTime()
    updated_at = DateTime()

    def matches(self, product_id, variant_id=None) -> bool:
        return str(self.product_id) == str(product_id) and _variant_ref(self.variant_id) == _variant_ref(variant_id)


@storefront.aggregate
class ShoppingCart:
    customer_id = Identifier()  # Set for signed-in shoppers
    session_id = String(max_length=255)  # Set for guest carts
    items = HasMany(CartItem)
    status = String(choices=CartStatus, default=CartStatus.ACTIVE.value)
    created_at = DateTime()
    updated_at = DateTime()

    @invariant.post
    def cart_must_have_exactly_one_owner(self):
        if bool(self.customer_id) == bool(self.session_id):
            raise ValidationError({"cart": ["A cart belongs to exactly one of a customer or a guest session"]})

    @invariant.post
    def cart_lines_must_be_unique(self):
        seen = set()
        for item in self.items:
            line = (str(item.product_id), _variant_ref(item.variant_id))
            if line in seen:
                raise ValidationError({"items": [f"Duplicate cart line for product {line[0]}"]})
            seen.add(line)

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def create(cls, customer_id=None, session_id=None):
        now = datetime.now(UTC)
        cart = cls(
            customer_id=customer_id,
            session_id=None if customer_id else session_id,
            status=CartStatus.ACTIVE.value,
            created_at=now,
            updated_at=now,
        )
        cart.raise_(
            CartCreated(
                cart_id=str(cart.id),
                customer_id=str(customer_id) if customer_id else None,
                session_id=cart.session_id,
                created_at=now,
            )
        )
        return cart

    @property
    def is_guest(self) -> bool:
        return not self.customer_id

    @property
    def item_count(self) -> int:
        return sum(item.quantity for item in self.items)

    def _ensure_active(self, action):
        if CartStatus(self.status) != CartStatus.ACTIVE:
            raise ValidationError({"status": [f"Cannot {action} a cart that is no longer active"]})

    # -------------------------------------------------------------------
    # Lookups
    # -------------------------------------------------------------------
    def find_item(self, item_id):
        return next((i for i in self.items if str(i.id) == str(item_id)), None)

    def find_line(self, product_id, variant_id=None):
        return next((i for i in self.items if i.matches(product_id, variant_id)), None)

    def lines_for(self, product_id, variant_ids=None):
        """Lines for a product, optionally limited to some of its variants."""
        wanted = {_variant_ref(v) for v in variant_ids} if variant_ids is not None else None
        return [
            item
            for item in self.items
            if str(item.product_id) == str(product_id)
            and (wanted is None or _variant_ref(item.variant_id) in wanted)
        ]

    # -------------------------------------------------------------------
    # Item management
    # -------------------------------------------------------------------
    def add_item(self, product_id, variant_id=None, quantity=1):
        """Add a line, or grow the existing line for the same product and variant."""
        self._ensure_active("add items to")
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 1:
            raise InvalidInput({"quantity": ["Quantity must be a whole number of at least 1"]})

        now = datetime.now(UTC)
        item = self.find_line(product_id, variant_id)
        if item is not None:
            item.quantity += quantity
            item.updated_at = now
        else:
            item = CartItem(
                product_id=product_id,
                variant_id=_variant_ref(variant_id),
                quantity=quantity,
                added_at=now,
                updated_at=now,
            )
            self.add_items(item)

        self.updated_at = now
        self.raise_(
            CartItemAdded(
                cart_id=str(self.id),
                item_id=str(item.id),
                product_id=str(product_id),
                variant_id=_variant_ref(variant_id),
                quantity=quantity,
                line_quantity=item.quantity,
            )
        )
        return item

    def adjust_item_quantity(self, item_id, delta):
        """Apply `delta` to a line and return the resulting quantity.

        Raises WouldRemove, leaving the line untouched, when the result
        would drop below 1.
        """
        self._ensure_active("change quantities in")
        if isinstance(delta, bool) or not isinstance(delta, int) or delta == 0:
            raise InvalidInput({"delta": ["Quantity change must be a non-zero whole number"]})

        item = self.find_item(item_id)
        if item is None:
            raise NotFound({"item_id": [f"Item {item_id} is not in this cart"]})

        previous = item.quantity
        requested = previous + delta
        if requested < 1:
            raise WouldRemove(item_id=item.id, quantity=previous, requested=requested)

        now = datetime.now(UTC)
        item.quantity = requested
        item.updated_at = now
        self.updated_at = now

        self.raise_(
            CartQuantityAdjusted(
                cart_id=str(self.id),
                item_id=str(item.id),
                previous_quantity=previous,
                new_quantity=requested,
            )
        )
        return requested

    def set_item_quantity(self, item_id, quantity):
        """Move a line to an explicit quantity through the relative path."""
        if isinstance(quantity, bool) or not isinstance(quantity, int):
            raise InvalidInput({"quantity": ["Quantity must be a whole number"]})

        item = self.find_item(item_id)
        if item is None:
            raise NotFound({"item_id": [f"Item {item_id} is not in this cart"]})
        if quantity < 1:
            raise WouldRemove(item_id=item.id, quantity=item.quantity, requested=quantity)

        delta = quantity - item.quantity
        if delta == 0:
            return item.quantity
        return self.adjust_item_quantity(item_id, delta)

    def remove_item(self, item_id, reason="shopper"):
        """Remove a line. Returns False when it was already gone."""
        self._ensure_active("remove items from")

        item = self.find_item(item_id)
        if item is None:
            return False

        self._drop(item, reason)
        return True

    def drop_lines_for(self, product_id, variant_ids=None, reason="catalogue"):
        """Remove every line for a product (or for some of its variants)."""
        doomed = self.lines_for(product_id, variant_ids)
        for item in doomed:
            self._drop(item, reason)
        return len(doomed)

    def _drop(self, item, reason):
        self.remove_items(item)
        self.updated_at = datetime.now(UTC)
        self.raise_(
            CartItemRemoved(
                cart_id=str(self.id),
                item_id=str(item.id),
                product_id=str(item.product_id),
                variant_id=_variant_ref(item.variant_id),
                reason=reason,
            )
        )

    # -------------------------------------------------------------------
    # Cart merging (guest → signed-in)
    # -------------------------------------------------------------------
    def absorb(self, guest_cart, stock_limit=None):
        """Fold the lines of `guest_cart` into this cart.

        Matching lines are summed; others move over unchanged. When
        `stock_limit(product_id, variant_id)` is given and returns a number,
        summed lines are clamped to it, never below 1.

        Returns the ids of lines that were clamped.
        """
        self._ensure_active("merge into")
        if not self.customer_id:
            raise ValidationError({"cart": ["Guest carts can only be merged into a customer's cart"]})

        now = datetime.now(UTC)
        clamped = []
        with atomic_change(self):
            for guest_item in guest_cart.items:
                existing = self.find_line(guest_item.product_id, guest_item.variant_id)
                if existing is None:
                    self.add_items(
                        CartItem(
                            product_id=guest_item.product_id,
                            variant_id=_variant_ref(guest_item.variant_id),
                            quantity=guest_item.quantity,
                            added_at=guest_item.added_at or now,
                            updated_at=now,
                        )
                    )
                    continue

                total = existing.quantity + guest_item.quantity
                limit = stock_limit(existing.product_id, existing.variant_id) if stock_limit else None
                if limit is not None and total > limit:
                    total = max(limit, existing.quantity, 1)
                    clamped.append(str(existing.id))
                existing.quantity = total
                existing.updated_at = now

        self.updated_at = now
        self.raise_(
            CartsMerged(
                cart_id=str(self.id),
                source_cart_id=str(guest_cart.id),
                source_session_id=guest_cart.session_id,
                items_merged_count=len(guest_cart.items),
                clamped_items=json.dumps(clamped),
            )
        )
        return clamped

    def retire(self):
        """Empty a merged guest cart ahead of deleting it."""
        with atomic_change(self):
            for item in list(self.items):
                self.remove_items(item)
            self.status = CartStatus.MERGED.value
        self.updated_at = datetime.now(UTC)
