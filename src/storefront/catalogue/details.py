"""Product details editing: commands and handler."""

import json

from protean import handle
from protean.fields import Boolean, Float, Identifier, Integer, String, Text
from protean.utils.globals import current_domain

from storefront.catalogue.product import Product
from storefront.domain import storefront


@storefront.command(part_of="Product")
class UpdateProductDetails:
    product_id: Identifier(required=True)
    title: String(max_length=255)
    description: Text()
    price: Float(min_value=0.0)
    compare_at_price: Float()
    cost_per_item: Float()
    inventory: Integer()
    allow_out_of_stock_purchase: Boolean()
    status: String(max_length=20)
    category_id: Identifier()


@storefront.command(part_of="Product")
class ReplaceProductImages:
    product_id: Identifier(required=True)
    images: Text(required=True)  # JSON array of image urls


@storefront.command(part_of="Product")
class UpdateVariantDetails:
    product_id: Identifier(required=True)
    variant_id: Identifier(required=True)
    price: Float(min_value=0.0)
    image_url: String(max_length=500)


@storefront.command_handler(part_of=Product)
class UpdateProductDetailsHandler:
    @handle(UpdateProductDetails)
    def update_details(self, command):
        repo = current_domain.repository_for(Product)
        product = repo.get(command.product_id)
        product.update_details(
            title=command.title,
            description=command.description,
            price=command.price,
            compare_at_price=command.compare_at_price,
            cost_per_item=command.cost_per_item,
            inventory=command.inventory,
            allow_out_of_stock_purchase=command.allow_out_of_stock_purchase,
            status=command.status,
            category_id=command.category_id,
        )
        repo.add(product)

    @handle(ReplaceProductImages)
    def replace_images(self, command):
        repo = current_domain.repository_for(Product)
        product = repo.get(command.product_id)
        product.replace_images(json.loads(command.images))
        repo.add(product)

    @handle(UpdateVariantDetails)
    def update_variant_details(self, command):
        repo = current_domain.repository_for(Product)
        product = repo.get(command.product_id)
        product.set_variant_details(command.variant_id, price=command.price, image_url=command.image_url)
        repo.add(product)
