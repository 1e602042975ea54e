"""Pydantic request/response schemas for the Storefront API."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

# --- Cart Request Schemas ---


class AddToCartRequest(BaseModel):
    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "product_id": "prod-001",
                    "variant_id": "var-s-red",
                    "quantity": 2,
                }
            ]
        }
    }

    product_id: str
    variant_id: str | None = None
    quantity: int = 1


class UpdateCartItemRequest(BaseModel):
    """Either a relative `delta` or an explicit target `quantity`, not both."""

    model_config = {"json_schema_extra": {"examples": [{"delta": 1}, {"quantity": 3}]}}

    delta: int | None = None
    quantity: int | None = None


# --- Cart Response Schemas ---


class CartItemResponse(BaseModel):
    item_id: str
    product_id: str
    variant_id: str | None = None
    quantity: int
    title: str | None = None
    variant_label: str | None = None
    unit_price: float | None = None
    image_url: str | None = None


class CartResponse(BaseModel):
    cart_id: str
    owner: str
    items: list[CartItemResponse] = Field(default_factory=list)
    item_count: int = 0


class AddToCartResponse(BaseModel):
    item: CartItemResponse


class QuantityResponse(BaseModel):
    item_id: str
    quantity: int


class RemoveItemResponse(BaseModel):
    item_id: str
    removed: bool


class MergeResponse(BaseModel):
    cart_id: str
    merged: bool
    items_merged: int


# --- Product Request Schemas ---


class CreateProductRequest(BaseModel):
    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "title": "Classic Tee",
                    "price": 19.99,
                    "inventory": 0,
                    "store_id": "store-042",
                    "merchant_id": "user-007",
                    "description": "Heavyweight cotton tee.",
                    "allow_out_of_stock_purchase": False,
                    "images": ["tee-front.jpg", "tee-back.jpg"],
                }
            ]
        }
    }

    title: str = Field(..., max_length=255)
    price: float
    inventory: Any = 0
    store_id: str | None = None
    merchant_id: str | None = None
    category_id: str | None = None
    description: str | None = None
    compare_at_price: float | None = None
    cost_per_item: float | None = None
    allow_out_of_stock_purchase: bool = False
    status: str | None = Field(None, max_length=20)
    images: list[str] = Field(default_factory=list)


class UpdateProductRequest(BaseModel):
    title: str | None = Field(None, max_length=255)
    description: str | None = None
    price: float | None = None
    compare_at_price: float | None = None
    cost_per_item: float | None = None
    inventory: Any = None
    allow_out_of_stock_purchase: bool | None = None
    status: str | None = Field(None, max_length=20)
    category_id: str | None = None
    images: list[str] | None = None


class SaveVariantMatrixRequest(BaseModel):
    """The merchant form's ledger: canonical variant key -> inventory count."""

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "variants": {"S||Cotton": 4, "M||Cotton": 0},
                    "on_referenced": "block",
                }
            ]
        }
    }

    variants: dict[str, Any] = Field(default_factory=dict)
    on_referenced: str = "block"


class UpdateVariantRequest(BaseModel):
    price: float | None = None
    image_url: str | None = Field(None, max_length=500)


# --- Product Response Schemas ---


class ProductIdResponse(BaseModel):
    product_id: str


class VariantMatrixResponse(BaseModel):
    product_id: str
    attributes: dict[str, list[dict]]
    variants: list[dict]
    inventory: dict[str, int]


class SavedMatrixResponse(BaseModel):
    product_id: str
    variants: dict[str, str]


class StatusResponse(BaseModel):
    status: str = "ok"
