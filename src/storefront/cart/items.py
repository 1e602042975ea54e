"""Cart item management: commands and handler."""

from protean import handle
from protean.exceptions import ObjectNotFoundError
from protean.fields import Identifier, Integer
from protean.utils.globals import current_domain

from storefront.cart.cart import ShoppingCart
from storefront.catalogue.product import Product
from storefront.domain import logger, storefront
from storefront.errors import InvalidVariant, NotFound


@storefront.command(part_of="ShoppingCart")
class AddToCart:
    cart_id = Identifier(required=True)
    product_id = Identifier(required=True)
    variant_id = Identifier()
    quantity = Integer(default=1)


@storefront.command(part_of="ShoppingCart")
class AdjustCartQuantity:
    cart_id = Identifier(required=True)
    item_id = Identifier(required=True)
    delta = Integer(required=True)


@storefront.command(part_of="ShoppingCart")
class SetCartQuantity:
    cart_id = Identifier(required=True)
    item_id = Identifier(required=True)
    quantity = Integer(required=True)


@storefront.command(part_of="ShoppingCart")
class RemoveFromCart:
    cart_id = Identifier(required=True)
    item_id = Identifier(required=True)


def purchasable(product_id, variant_id=None) -> Product:
    """Load the product a cart line would point at, checking the variant belongs to it."""
    try:
        product = current_domain.repository_for(Product).get(product_id)
    except ObjectNotFoundError:
        raise NotFound({"product_id": [f"Product {product_id} does not exist"]}) from None

    if variant_id and not product.has_variant(variant_id):
        raise InvalidVariant({"variant_id": [f"Variant {variant_id} does not belong to product {product_id}"]})
    if not variant_id and product.variants:
        raise InvalidVariant({"variant_id": ["This product comes in variants; pick one"]})
    return product


@storefront.command_handler(part_of=ShoppingCart)
class ManageCartItemsHandler:
    @handle(AddToCart)
    def add_to_cart(self, command):
        purchasable(command.product_id, command.variant_id)

        repo = current_domain.repository_for(ShoppingCart)
        cart = repo.get(command.cart_id)
        quantity = 1 if command.quantity is None else command.quantity
        item = cart.add_item(
            product_id=command.product_id,
            variant_id=command.variant_id,
            quantity=quantity,
        )
        repo.add(cart)

        logger.info(
            "Item added to cart",
            cart_id=str(cart.id),
            item_id=str(item.id),
            product_id=str(command.product_id),
            variant_id=command.variant_id,
            quantity=item.quantity,
        )
        return {
            "item_id": str(item.id),
            "product_id": str(item.product_id),
            "variant_id": str(item.variant_id) if item.variant_id else None,
            "quantity": item.quantity,
        }

    @handle(AdjustCartQuantity)
    def adjust_cart_quantity(self, command):
        repo = current_domain.repository_for(ShoppingCart)
        cart = repo.get(command.cart_id)
        quantity = cart.adjust_item_quantity(command.item_id, command.delta)
        repo.add(cart)

        logger.info(
            "Cart quantity adjusted",
            cart_id=str(cart.id),
            item_id=str(command.item_id),
            delta=command.delta,
            quantity=quantity,
        )
        return quantity

    @handle(SetCartQuantity)
    def set_cart_quantity(self, command):
        repo = current_domain.repository_for(ShoppingCart)
        cart = repo.get(command.cart_id)
        quantity = cart.set_item_quantity(command.item_id, command.quantity)
        repo.add(cart)

        logger.info("Cart quantity set", cart_id=str(cart.id), item_id=str(command.item_id), quantity=quantity)
        return quantity

    @handle(RemoveFromCart)
    def remove_from_cart(self, command):
        repo = current_domain.repository_for(ShoppingCart)
        cart = repo.get(command.cart_id)
        removed = cart.remove_item(command.item_id)
        if removed:
            repo.add(cart)

        logger.info("Cart item removed", cart_id=str(cart.id), item_id=str(command.item_id), was_present=removed)
        return removed
