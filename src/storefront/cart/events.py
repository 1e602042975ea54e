"""Domain events for the ShoppingCart and CartMergeRecord aggregates."""

from protean.fields import DateTime, Identifier, Integer, String, Text

from storefront.domain import storefront


@storefront.event(part_of="ShoppingCart")
class CartCreated:
    """A cart was created lazily for a shopper or guest session."""

    __version__ = 1

    cart_id = Identifier(required=True)
    customer_id = Identifier()
    session_id = String()
    created_at = DateTime(required=True)


@storefront.event(part_of="ShoppingCart")
class CartItemAdded:
    """A product (or one of its variants) was added to the cart."""

    __version__ = 1

    cart_id = Identifier(required=True)
    item_id = Identifier(required=True)
    product_id = Identifier(required=True)
    variant_id = Identifier()
    quantity = Integer(required=True)  # Quantity added, not the line total
    line_quantity = Integer(required=True)


@storefront.event(part_of="ShoppingCart")
class CartQuantityAdjusted:
    """The quantity of a cart line was changed."""

    __version__ = 1

    cart_id = Identifier(required=True)
    item_id = Identifier(required=True)
    previous_quantity = Integer(required=True)
    new_quantity = Integer(required=True)


@storefront.event(part_of="ShoppingCart")
class CartItemRemoved:
    """A line was removed from the cart by the shopper or by a catalogue cascade."""

    __version__ = 1

    cart_id = Identifier(required=True)
    item_id = Identifier(required=True)
    product_id = Identifier(required=True)
    variant_id = Identifier()
    reason = String(max_length=50)


@storefront.event(part_of="ShoppingCart")
class CartsMerged:
    """A guest cart's lines were folded into a signed-in shopper's cart."""

    __version__ = 1

    cart_id = Identifier(required=True)
    source_cart_id = Identifier()
    source_session_id = String(required=True)
    items_merged_count = Integer(required=True)
    clamped_items = Text()  # JSON list of item ids clamped to stock


@storefront.event(part_of="CartMergeRecord")
class CartMergeCompleted:
    """The one-time merge for a guest session was recorded."""

    __version__ = 1

    session_id = String(required=True)
    customer_id = Identifier(required=True)
    cart_id = Identifier(required=True)
    completed_at = DateTime(required=True)
