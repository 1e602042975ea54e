"""Product aggregate root with Variant and Image entities.

A variant carries two identities on purpose: the surrogate `id` that cart
lines reference, and the canonical `variant_key` (``size|color|material``)
that is unique within the product and drives matrix reconciliation.
"""

import json
from datetime import UTC, datetime
from enum import Enum

from protean import atomic_change, invariant
from protean.exceptions import ValidationError
from protean.fields import (
    Boolean,
    DateTime,
    Float,
    HasMany,
    Identifier,
    Integer,
    String,
    Text,
)

from storefront.catalogue.events import (
    ProductCreated,
    ProductDeleted,
    ProductDetailsUpdated,
    VariantMatrixSaved,
)
from storefront.catalogue.ledger import InventoryLedger, validate_inventory
from storefront.catalogue.matrix import (
    Reconciliation,
    VariantKey,
    extract_attribute_sets,
    generate_combinations,
    reconcile,
    selection_from_keys,
)
from storefront.domain import storefront
from storefront.errors import InvalidInput


class ProductStatus(Enum):
    ACTIVE = "Active"
    INACTIVE = "Inactive"


@storefront.entity(part_of="Product")
class Variant:
    """One purchasable combination with its own stock count."""

    variant_key = String(required=True, max_length=400)
    size = String(max_length=100)
    color = String(max_length=100)
    material = String(max_length=100)
    inventory = Integer(default=0, min_value=0)
    price = Float(min_value=0.0)  # Overrides the product price when set
    image_url = String(max_length=500)
    position = Integer(default=0)

    @property
    def key(self) -> VariantKey:
        return VariantKey.of(self)


@storefront.entity(part_of="Product")
class Image:
    url = String(required=True, max_length=500)
    display_order = Integer(default=0)


@storefront.aggregate
class Product:
    store_id = Identifier()
    merchant_id = Identifier()
    category_id = Identifier()
    title = String(required=True, max_length=255)
    description = Text()
    price = Float(required=True, min_value=0.0)
    compare_at_price = Float(min_value=0.0)
    cost_per_item = Float(min_value=0.0)
    inventory = Integer(default=0, min_value=0)
    allow_out_of_stock_purchase = Boolean(default=False)
    status = String(choices=ProductStatus, default=ProductStatus.INACTIVE.value)
    variants = HasMany(Variant)
    images = HasMany(Image)
    created_at = DateTime()
    updated_at = DateTime()

    @invariant.post
    def variant_keys_must_be_unique(self):
        keys = [v.variant_key for v in self.variants]
        duplicates = sorted({k for k in keys if keys.count(k) > 1})
        if duplicates:
            raise ValidationError({"variants": [f"Duplicate variant combinations: {', '.join(duplicates)}"]})

    @invariant.post
    def variant_key_must_match_attributes(self):
        for variant in self.variants:
            if variant.variant_key != VariantKey.of(variant).canonical:
                raise ValidationError(
                    {"variants": [f"Variant key '{variant.variant_key}' does not match its attribute values"]}
                )

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def create(
        cls,
        title,
        price,
        inventory=0,
        store_id=None,
        merchant_id=None,
        category_id=None,
        description=None,
        compare_at_price=None,
        cost_per_item=None,
        allow_out_of_stock_purchase=False,
        status=None,
        images=None,
    ):
        now = datetime.now(UTC)
        product = cls(
            store_id=store_id,
            merchant_id=merchant_id,
            category_id=category_id,
            title=title,
            description=description,
            price=price,
            compare_at_price=compare_at_price,
            cost_per_item=cost_per_item,
            inventory=validate_inventory(inventory),
            allow_out_of_stock_purchase=bool(allow_out_of_stock_purchase),
            status=status or ProductStatus.INACTIVE.value,
            created_at=now,
            updated_at=now,
        )
        for order, url in enumerate(images or []):
            product.add_images(Image(url=url, display_order=order))

        product.raise_(
            ProductCreated(
                product_id=product.id,
                store_id=store_id,
                merchant_id=merchant_id,
                title=title,
                price=product.price,
                inventory=product.inventory,
                status=product.status,
                created_at=now,
            )
        )
        return product

    # -------------------------------------------------------------------
    # Details
    # -------------------------------------------------------------------
    def update_details(
        self,
        title=None,
        description=None,
        price=None,
        compare_at_price=None,
        cost_per_item=None,
        inventory=None,
        allow_out_of_stock_purchase=None,
        status=None,
        category_id=None,
    ):
        if title is not None:
            self.title = title
        if description is not None:
            self.description = description
        if price is not None:
            self.price = price
        if compare_at_price is not None:
            self.compare_at_price = compare_at_price
        if cost_per_item is not None:
            self.cost_per_item = cost_per_item
        if inventory is not None:
            self.inventory = validate_inventory(inventory)
        if allow_out_of_stock_purchase is not None:
            self.allow_out_of_stock_purchase = allow_out_of_stock_purchase
        if status is not None:
            self.status = status
        if category_id is not None:
            self.category_id = category_id

        self.updated_at = datetime.now(UTC)

        self.raise_(
            ProductDetailsUpdated(
                product_id=self.id,
                title=self.title,
                price=self.price,
                inventory=self.inventory,
                status=self.status,
                allow_out_of_stock_purchase=self.allow_out_of_stock_purchase,
            )
        )

    def replace_images(self, urls):
        with atomic_change(self):
            for image in list(self.images):
                self.remove_images(image)
            for order, url in enumerate(urls):
                self.add_images(Image(url=url, display_order=order))
        self.updated_at = datetime.now(UTC)

    # -------------------------------------------------------------------
    # Variant lookups
    # -------------------------------------------------------------------
    def ordered_variants(self):
        return sorted(self.variants, key=lambda v: v.position or 0)

    def find_variant(self, variant_id):
        return next((v for v in self.variants if str(v.id) == str(variant_id)), None)

    def has_variant(self, variant_id) -> bool:
        return self.find_variant(variant_id) is not None

    def stock_for(self, variant_id=None) -> int:
        """Stock that bounds a cart line: the variant's count, else the base count."""
        if variant_id:
            variant = self.find_variant(variant_id)
            if variant is not None:
                return variant.inventory or 0
        return self.inventory or 0

    def unit_price(self, variant_id=None) -> float:
        variant = self.find_variant(variant_id) if variant_id else None
        if variant is not None and variant.price is not None:
            return variant.price
        return self.price

    # -------------------------------------------------------------------
    # Variant matrix
    # -------------------------------------------------------------------
    def attribute_sets(self):
        """Axis values already in use, to pre-populate the merchant's form."""
        return extract_attribute_sets(self.ordered_variants())

    def inventory_ledger(self) -> InventoryLedger:
        """Ledger reflecting the persisted matrix."""
        sizes, colors, materials = self.attribute_sets().values()
        return InventoryLedger.for_selection(sizes, colors, materials, persisted=self.variants)

    def plan_variant_matrix(self, matrix) -> Reconciliation:
        """Reconcile a submitted `{canonical key: count}` mapping with the persisted variants.

        The submitted keys must be exactly the combinations generated from
        their own axis values; anything else is a malformed matrix. Nothing
        is mutated: removed variants are only reported so the caller can
        check live cart references before applying.
        """
        if matrix is None:
            matrix = {}
        if not isinstance(matrix, dict):
            raise InvalidInput({"variants": ["Variant matrix must be a mapping of variant key to inventory"]})

        counts: dict[str, int] = {}
        keys: list[VariantKey] = []
        for raw_key, count in matrix.items():
            key = VariantKey.parse(raw_key)
            if key.canonical in counts:
                raise InvalidInput({"variants": [f"Variant '{key.canonical}' is listed more than once"]})
            counts[key.canonical] = validate_inventory(count, key.canonical)
            keys.append(key)

        generated = generate_combinations(*selection_from_keys(keys))
        if {key.canonical for key in generated} != set(counts):
            raise InvalidInput(
                {"variants": ["Variant keys must form the complete combination of the selected attribute values"]}
            )

        reconciliation = reconcile(generated, self.variants)
        for entry in reconciliation.entries:
            entry.inventory = counts[entry.key.canonical]
        return reconciliation

    def apply_variant_matrix(self, reconciliation: Reconciliation):
        """Persist a planned matrix: drop removed variants, update kept, add new."""
        with atomic_change(self):
            for variant in reconciliation.removed:
                self.remove_variants(variant)

            for position, entry in enumerate(reconciliation.entries):
                if entry.variant_id:
                    variant = self.find_variant(entry.variant_id)
                    variant.inventory = entry.inventory
                    variant.position = position
                else:
                    variant = Variant(
                        variant_key=entry.key.canonical,
                        size=entry.key.size,
                        color=entry.key.color,
                        material=entry.key.material,
                        inventory=entry.inventory,
                        position=position,
                    )
                    self.add_variants(variant)
                    entry.variant_id = str(variant.id)

        now = datetime.now(UTC)
        self.updated_at = now

        self.raise_(
            VariantMatrixSaved(
                product_id=self.id,
                added_keys=json.dumps(reconciliation.added_keys),
                removed_keys=json.dumps(reconciliation.removed_keys),
                variant_count=len(reconciliation.entries),
                saved_at=now,
            )
        )

    def set_variant_details(self, variant_id, price=None, image_url=None):
        variant = self.find_variant(variant_id)
        if variant is None:
            raise ValidationError({"variants": [f"Variant {variant_id} not found"]})
        if price is not None:
            variant.price = price
        if image_url is not None:
            variant.image_url = image_url
        self.updated_at = datetime.now(UTC)

    # -------------------------------------------------------------------
    # Deletion
    # -------------------------------------------------------------------
    def discard(self):
        """Drop variants and images ahead of deleting the product record."""
        removed_keys = [v.variant_key for v in self.variants]
        with atomic_change(self):
            for variant in list(self.variants):
                self.remove_variants(variant)
            for image in list(self.images):
                self.remove_images(image)

        now = datetime.now(UTC)
        self.updated_at = now
        self.raise_(
            ProductDeleted(
                product_id=self.id,
                removed_keys=json.dumps(removed_keys),
                deleted_at=now,
            )
        )
