"""Domain events for the Product aggregate."""

from protean.fields import Boolean, DateTime, Float, Identifier, Integer, String, Text

from storefront.domain import storefront


@storefront.event(part_of="Product")
class ProductCreated:
    """A merchant added a new product to their store."""

    __version__ = 1

    product_id = Identifier(required=True)
    store_id = Identifier()
    merchant_id = Identifier()
    title = String(required=True)
    price = Float(required=True)
    inventory = Integer(required=True)
    status = String(required=True)
    created_at = DateTime(required=True)


@storefront.event(part_of="Product")
class ProductDetailsUpdated:
    """Title, pricing, base inventory or availability settings changed."""

    __version__ = 1

    product_id = Identifier(required=True)
    title = String(required=True)
    price = Float(required=True)
    inventory = Integer(required=True)
    status = String(required=True)
    allow_out_of_stock_purchase = Boolean()


@storefront.event(part_of="Product")
class VariantMatrixSaved:
    """The product's variant matrix was regenerated and saved."""

    __version__ = 1

    product_id = Identifier(required=True)
    added_keys = Text()  # JSON list of canonical keys
    removed_keys = Text()  # JSON list of canonical keys
    variant_count = Integer(required=True)
    saved_at = DateTime(required=True)


@storefront.event(part_of="Product")
class ProductDeleted:
    """A merchant deleted a product together with its variants."""

    __version__ = 1

    product_id = Identifier(required=True)
    removed_keys = Text()  # JSON list of canonical keys
    deleted_at = DateTime(required=True)
