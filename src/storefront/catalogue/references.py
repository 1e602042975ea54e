"""Live cart references to products and variants.

A variant (or a whole product) that some live cart line still points at is
never dropped silently: the save is blocked with a Conflict unless the
merchant explicitly asked to cascade, in which case the referencing lines
are removed in the same unit of work as the catalogue change.
"""

from enum import Enum

from protean.utils.globals import current_domain

from storefront.cart.cart import ShoppingCart
from storefront.domain import logger
from storefront.errors import Conflict, InvalidInput


class ReferencePolicy(Enum):
    BLOCK = "block"
    CASCADE = "cascade"


def reference_policy(value) -> ReferencePolicy:
    if value is None or value == "":
        return ReferencePolicy.BLOCK
    try:
        return ReferencePolicy(value)
    except ValueError:
        raise InvalidInput(
            {"on_referenced": [f"Unknown policy '{value}', expected one of: block, cascade"]}
        ) from None


def release_references(product_id, variant_ids=None, variant_keys=(), policy=ReferencePolicy.BLOCK) -> int:
    """Check live carts for lines about to lose their target.

    `variant_ids=None` means the whole product is going away, base-product
    lines included. Returns the number of cart lines removed by a cascade.
    Must run inside the unit of work that applies the catalogue change.
    """
    if variant_ids is not None and not variant_ids:
        return 0

    repo = current_domain.repository_for(ShoppingCart)
    carts = repo.holding(product_id, variant_ids)
    if not carts:
        return 0

    if policy is not ReferencePolicy.CASCADE:
        logger.warning(
            "Catalogue change blocked by live cart references",
            product_id=str(product_id),
            variant_keys=list(variant_keys),
            cart_count=len(carts),
        )
        target = "variants" if variant_ids is not None else "product"
        raise Conflict(
            {target: [f"Still referenced by {len(carts)} active cart(s); retry with on_referenced=cascade to remove them"]},
            variant_keys=list(variant_keys),
            cart_count=len(carts),
        )

    removed = 0
    for cart in carts:
        removed += cart.drop_lines_for(product_id, variant_ids)
        repo.add(cart)

    logger.info(
        "Cascaded catalogue change to cart lines",
        product_id=str(product_id),
        variant_keys=list(variant_keys),
        cart_count=len(carts),
        lines_removed=removed,
    )
    return removed
