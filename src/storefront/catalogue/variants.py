"""Variant matrix saves and product deletion: commands and handler."""

import json

from protean import handle
from protean.fields import Identifier, String, Text
from protean.utils.globals import current_domain

from storefront.catalogue.product import Product
from storefront.catalogue.references import reference_policy, release_references
from storefront.domain import logger, storefront
from storefront.errors import InvalidInput

# Reported in place of a variant key for lines that name no variant
BASE_PRODUCT_KEY = "||"


@storefront.command(part_of="Product")
class SaveVariantMatrix:
    product_id: Identifier(required=True)
    variants: Text(required=True)  # JSON object: canonical variant key -> inventory
    on_referenced: String(max_length=20, default="block")


@storefront.command(part_of="Product")
class DeleteProduct:
    product_id: Identifier(required=True)
    on_referenced: String(max_length=20, default="block")


def _decode_matrix(raw):
    if isinstance(raw, dict):
        return raw
    try:
        return json.loads(raw) if raw else {}
    except ValueError:
        raise InvalidInput({"variants": ["Variant matrix is not valid JSON"]}) from None


@storefront.command_handler(part_of=Product)
class ManageVariantMatrixHandler:
    @handle(SaveVariantMatrix)
    def save_variant_matrix(self, command):
        policy = reference_policy(command.on_referenced)
        repo = current_domain.repository_for(Product)
        product = repo.get(command.product_id)

        plan = product.plan_variant_matrix(_decode_matrix(command.variants))
        doomed_ids, doomed_keys = plan.removed_ids, plan.removed_keys
        if plan.entries and not product.variants:
            # Lines added before the product had variants name no variant
            doomed_ids, doomed_keys = [None], [BASE_PRODUCT_KEY]
        lines_removed = release_references(
            product.id,
            variant_ids=doomed_ids,
            variant_keys=doomed_keys,
            policy=policy,
        )
        product.apply_variant_matrix(plan)
        repo.add(product)

        logger.info(
            "Variant matrix saved",
            product_id=str(product.id),
            variant_count=len(plan.entries),
            added=plan.added_keys,
            removed=plan.removed_keys,
            cart_lines_removed=lines_removed,
        )
        return {entry.key.canonical: entry.variant_id for entry in plan.entries}

    @handle(DeleteProduct)
    def delete_product(self, command):
        policy = reference_policy(command.on_referenced)
        repo = current_domain.repository_for(Product)
        product = repo.get(command.product_id)

        removed_keys = [variant.variant_key for variant in product.variants]
        lines_removed = release_references(product.id, variant_ids=None, variant_keys=removed_keys, policy=policy)

        product.discard()
        repo.add(product)
        repo._dao.delete(product)

        logger.info(
            "Product deleted",
            product_id=str(product.id),
            variant_count=len(removed_keys),
            cart_lines_removed=lines_removed,
        )
