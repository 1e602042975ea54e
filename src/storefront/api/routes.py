"""FastAPI routes for the Storefront domain: shopper carts and merchant products."""

import json

from fastapi import APIRouter, Depends
from protean.exceptions import ObjectNotFoundError
from protean.utils.globals import current_domain

from storefront.api.identity import merge_identity, request_identity
from storefront.api.schemas import (
    AddToCartRequest,
    AddToCartResponse,
    CartItemResponse,
    CartResponse,
    CreateProductRequest,
    MergeResponse,
    ProductIdResponse,
    QuantityResponse,
    RemoveItemResponse,
    SavedMatrixResponse,
    SaveVariantMatrixRequest,
    StatusResponse,
    UpdateCartItemRequest,
    UpdateProductRequest,
    UpdateVariantRequest,
    VariantMatrixResponse,
)
from storefront.cart import engine
from storefront.cart.cart import ShoppingCart
from storefront.cart.identity import CartIdentity
from storefront.catalogue.creation import CreateProduct
from storefront.catalogue.details import ReplaceProductImages, UpdateProductDetails, UpdateVariantDetails
from storefront.catalogue.ledger import validate_inventory
from storefront.catalogue.product import Product
from storefront.catalogue.variants import DeleteProduct, SaveVariantMatrix
from storefront.errors import InvalidInput, NotFound


def _item_view(item, products) -> CartItemResponse:
    product = products.get(str(item.product_id))
    variant = product.find_variant(item.variant_id) if product and item.variant_id else None
    image_url = variant.image_url if variant and variant.image_url else None
    if image_url is None and product and product.images:
        image_url = sorted(product.images, key=lambda i: i.display_order or 0)[0].url

    return CartItemResponse(
        item_id=str(item.id),
        product_id=str(item.product_id),
        variant_id=str(item.variant_id) if item.variant_id else None,
        quantity=item.quantity,
        title=product.title if product else None,
        variant_label=variant.key.label if variant else None,
        unit_price=product.unit_price(item.variant_id) if product else None,
        image_url=image_url,
    )


def _cart_view(cart: ShoppingCart, owner: str) -> CartResponse:
    repo = current_domain.repository_for(Product)
    products = {}
    for product_id in {str(item.product_id) for item in cart.items}:
        try:
            products[product_id] = repo.get(product_id)
        except ObjectNotFoundError:
            products[product_id] = None

    return CartResponse(
        cart_id=str(cart.id),
        owner=owner,
        items=[_item_view(item, products) for item in sorted(cart.items, key=lambda i: i.added_at)],
        item_count=cart.item_count,
    )


# ---------------------------------------------------------------------------
# Cart Router
# ---------------------------------------------------------------------------
cart_router = APIRouter(prefix="/cart", tags=["cart"])


@cart_router.get("", response_model=CartResponse)
async def get_cart(identity: CartIdentity = Depends(request_identity)) -> CartResponse:
    cart_id = engine.resolve_cart(identity)
    cart = current_domain.repository_for(ShoppingCart).get(cart_id)
    return _cart_view(cart, identity.key)


@cart_router.post("", status_code=201, response_model=AddToCartResponse)
async def add_to_cart(body: AddToCartRequest, identity: CartIdentity = Depends(request_identity)) -> AddToCartResponse:
    cart_id = engine.resolve_cart(identity)
    result = engine.add_item(
        cart_id,
        product_id=body.product_id,
        variant_id=body.variant_id,
        quantity=body.quantity,
    )
    cart = current_domain.repository_for(ShoppingCart).get(cart_id)
    item = cart.find_item(result["item_id"])
    products = {}
    try:
        products[str(item.product_id)] = current_domain.repository_for(Product).get(item.product_id)
    except ObjectNotFoundError:
        pass
    return AddToCartResponse(item=_item_view(item, products))


@cart_router.put("/{item_id}", response_model=QuantityResponse)
async def update_cart_item(
    item_id: str, body: UpdateCartItemRequest, identity: CartIdentity = Depends(request_identity)
) -> QuantityResponse:
    if (body.delta is None) == (body.quantity is None):
        raise InvalidInput({"body": ["Send exactly one of 'delta' or 'quantity'"]})

    cart_id = engine.resolve_cart(identity)
    if body.delta is not None:
        quantity = engine.adjust_quantity(cart_id, item_id, body.delta)
    else:
        quantity = engine.set_quantity(cart_id, item_id, body.quantity)
    return QuantityResponse(item_id=item_id, quantity=quantity)


@cart_router.delete("/{item_id}", response_model=RemoveItemResponse)
async def remove_cart_item(item_id: str, identity: CartIdentity = Depends(request_identity)) -> RemoveItemResponse:
    cart_id = engine.resolve_cart(identity)
    removed = engine.remove_item(cart_id, item_id)
    return RemoveItemResponse(item_id=item_id, removed=removed)


@cart_router.post("/merge", response_model=MergeResponse)
async def merge_carts(identity: tuple = Depends(merge_identity)) -> MergeResponse:
    user_id, session_token = identity
    return MergeResponse(**engine.merge_carts(user_id, session_token))


# ---------------------------------------------------------------------------
# Product Router
# ---------------------------------------------------------------------------
product_router = APIRouter(prefix="/products", tags=["products"])


@product_router.post("", status_code=201, response_model=ProductIdResponse)
async def create_product(body: CreateProductRequest) -> ProductIdResponse:
    command = CreateProduct(
        title=body.title,
        price=body.price,
        inventory=validate_inventory(body.inventory),
        store_id=body.store_id,
        merchant_id=body.merchant_id,
        category_id=body.category_id,
        description=body.description,
        compare_at_price=body.compare_at_price,
        cost_per_item=body.cost_per_item,
        allow_out_of_stock_purchase=body.allow_out_of_stock_purchase,
        status=body.status,
        images=json.dumps(body.images),
    )
    result = current_domain.process(command, asynchronous=False)
    return ProductIdResponse(product_id=result)


@product_router.put("/{product_id}", response_model=StatusResponse)
async def update_product(product_id: str, body: UpdateProductRequest) -> StatusResponse:
    command = UpdateProductDetails(
        product_id=product_id,
        title=body.title,
        description=body.description,
        price=body.price,
        compare_at_price=body.compare_at_price,
        cost_per_item=body.cost_per_item,
        inventory=validate_inventory(body.inventory) if body.inventory is not None else None,
        allow_out_of_stock_purchase=body.allow_out_of_stock_purchase,
        status=body.status,
        category_id=body.category_id,
    )
    engine.run_serialized(command, engine.product_key(product_id))

    if body.images is not None:
        engine.run_serialized(
            ReplaceProductImages(product_id=product_id, images=json.dumps(body.images)),
            engine.product_key(product_id),
        )
    return StatusResponse()


@product_router.get("/{product_id}/variant-matrix", response_model=VariantMatrixResponse)
async def get_variant_matrix(product_id: str) -> VariantMatrixResponse:
    product = current_domain.repository_for(Product).get(product_id)
    ledger = product.inventory_ledger()
    return VariantMatrixResponse(
        product_id=str(product.id),
        attributes=product.attribute_sets().to_dict(),
        variants=[entry.to_dict() for entry in ledger.entries()],
        inventory=ledger.as_payload(),
    )


@product_router.put("/{product_id}/variants", response_model=SavedMatrixResponse)
async def save_variant_matrix(product_id: str, body: SaveVariantMatrixRequest) -> SavedMatrixResponse:
    command = SaveVariantMatrix(
        product_id=product_id,
        variants=json.dumps(body.variants),
        on_referenced=body.on_referenced,
    )
    saved = engine.run_serialized(command, engine.product_key(product_id))
    return SavedMatrixResponse(product_id=product_id, variants=saved)


@product_router.put("/{product_id}/variants/{variant_id}", response_model=StatusResponse)
async def update_variant(product_id: str, variant_id: str, body: UpdateVariantRequest) -> StatusResponse:
    product = current_domain.repository_for(Product).get(product_id)
    if not product.has_variant(variant_id):
        raise NotFound({"variant_id": [f"Variant {variant_id} not found on product {product_id}"]})

    command = UpdateVariantDetails(
        product_id=product_id,
        variant_id=variant_id,
        price=body.price,
        image_url=body.image_url,
    )
    engine.run_serialized(command, engine.product_key(product_id))
    return StatusResponse()


@product_router.delete("/{product_id}", response_model=StatusResponse)
async def delete_product(product_id: str, on_referenced: str = "block") -> StatusResponse:
    command = DeleteProduct(product_id=product_id, on_referenced=on_referenced)
    engine.run_serialized(command, engine.product_key(product_id))
    return StatusResponse()
