"""Product creation: command and handler."""

import json

from protean import handle
from protean.fields import Boolean, Float, Identifier, Integer, String, Text
from protean.utils.globals import current_domain

from storefront.catalogue.product import Product
from storefront.domain import logger, storefront


@storefront.command(part_of="Product")
class CreateProduct:
    title: String(required=True, max_length=255)
    price: Float(required=True, min_value=0.0)
    inventory: Integer(default=0)
    store_id: Identifier()
    merchant_id: Identifier()
    category_id: Identifier()
    description: Text()
    compare_at_price: Float()
    cost_per_item: Float()
    allow_out_of_stock_purchase: Boolean(default=False)
    status: String(max_length=20)
    images: Text()  # JSON array of image urls, in display order


@storefront.command_handler(part_of=Product)
class CreateProductHandler:
    @handle(CreateProduct)
    def create_product(self, command):
        product = Product.create(
            title=command.title,
            price=command.price,
            inventory=command.inventory or 0,
            store_id=command.store_id,
            merchant_id=command.merchant_id,
            category_id=command.category_id,
            description=command.description,
            compare_at_price=command.compare_at_price,
            cost_per_item=command.cost_per_item,
            allow_out_of_stock_purchase=command.allow_out_of_stock_purchase,
            status=command.status,
            images=json.loads(command.images) if command.images else None,
        )
        current_domain.repository_for(Product).add(product)

        logger.info("Product created", product_id=str(product.id), store_id=command.store_id)
        return str(product.id)
