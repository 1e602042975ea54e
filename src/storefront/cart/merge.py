"""Guest cart merge: folds a session cart into the shopper's cart exactly once.

The completion marker is a CartMergeRecord keyed by the session token. It is
read and written inside the same unit of work as the merge, so a retried or
duplicated trigger finds the record and returns the earlier result.
"""

from datetime import UTC, datetime

from protean import handle
from protean.exceptions import ObjectNotFoundError
from protean.fields import DateTime, Identifier, Integer, String
from protean.utils.globals import current_domain

from storefront.cart.cart import ShoppingCart
from storefront.cart.events import CartMergeCompleted
from storefront.catalogue.product import Product
from storefront.domain import logger, storefront
from storefront.errors import IdentityRequired
from storefront.settings import stock_limit_enforced


@storefront.aggregate
class CartMergeRecord:
    session_id = String(identifier=True, required=True, max_length=255)
    customer_id = Identifier(required=True)
    cart_id = Identifier(required=True)
    source_cart_id = Identifier()
    items_merged = Integer(default=0)
    completed_at = DateTime()

    @classmethod
    def complete(cls, session_id, customer_id, cart_id, source_cart_id=None, items_merged=0):
        now = datetime.now(UTC)
        record = cls(
            session_id=session_id,
            customer_id=customer_id,
            cart_id=cart_id,
            source_cart_id=source_cart_id,
            items_merged=items_merged,
            completed_at=now,
        )
        record.raise_(
            CartMergeCompleted(
                session_id=session_id,
                customer_id=str(customer_id),
                cart_id=str(cart_id),
                completed_at=now,
            )
        )
        return record

    def to_dict(self, merged):
        return {"cart_id": str(self.cart_id), "merged": merged, "items_merged": self.items_merged}


@storefront.command(part_of="CartMergeRecord")
class MergeCarts:
    """Fold the guest cart of `session_id` into the cart of `customer_id`."""

    session_id = String(required=True, max_length=255)
    customer_id = Identifier(required=True)


def available_stock(product_id, variant_id=None):
    """Upper bound for a merged line, or None when the line is not bounded."""
    try:
        product = current_domain.repository_for(Product).get(product_id)
    except ObjectNotFoundError:
        return None
    if product.allow_out_of_stock_purchase:
        return None
    return product.stock_for(variant_id)


def _user_cart(repo, customer_id):
    cart = repo.for_customer(customer_id)
    if cart is None:
        cart = ShoppingCart.create(customer_id=customer_id)
    return cart


@storefront.command_handler(part_of=CartMergeRecord)
class MergeCartsHandler:
    @handle(MergeCarts)
    def merge_carts(self, command):
        if not command.session_id or not command.customer_id:
            raise IdentityRequired({"identity": ["Merging needs both the session token and the signed-in user"]})

        records = current_domain.repository_for(CartMergeRecord)
        try:
            record = records.get(command.session_id)
        except ObjectNotFoundError:
            record = None

        if record is not None:
            logger.info(
                "Cart merge already completed",
                session_id=command.session_id,
                cart_id=str(record.cart_id),
            )
            return record.to_dict(merged=False)

        carts = current_domain.repository_for(ShoppingCart)
        user_cart = _user_cart(carts, command.customer_id)
        guest_cart = carts.for_session(command.session_id)

        items_merged = 0
        clamped = []
        if guest_cart is not None:
            items_merged = len(guest_cart.items)
            limit = available_stock if stock_limit_enforced() else None
            clamped = user_cart.absorb(guest_cart, stock_limit=limit)
            guest_cart.retire()
            carts.add(guest_cart)
            carts.discard(guest_cart)

        carts.add(user_cart)

        record = CartMergeRecord.complete(
            session_id=command.session_id,
            customer_id=command.customer_id,
            cart_id=user_cart.id,
            source_cart_id=guest_cart.id if guest_cart is not None else None,
            items_merged=items_merged,
        )
        records.add(record)

        logger.info(
            "Guest cart merged",
            session_id=command.session_id,
            cart_id=str(user_cart.id),
            items_merged=items_merged,
            clamped_items=clamped,
        )
        return record.to_dict(merged=True)
