from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from storefront.models import Carrier, Language, OrderStatus, ShippingMethod


class ORMModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)


def _not_null(value):
    # omitted fields keep their value, explicit nulls are rejected
    if value is None:
        raise ValueError("may not be null")
    return value


# Users

class UserOut(ORMModel):
    id: int
    open_id: str
    name: Optional[str] = None
    email: Optional[str] = None
    role: str


# Categories

class CategoryCreate(BaseModel):
    name: str = Field(..., min_length=1)
    slug: str = Field(..., min_length=1)
    description: Optional[str] = None
    parent_id: Optional[int] = None
    image_url: Optional[str] = None
    display_order: int = 0


class CategoryUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1)
    slug: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None
    parent_id: Optional[int] = None
    image_url: Optional[str] = None
    display_order: Optional[int] = None
    is_active: Optional[bool] = None

    @field_validator("name", "slug", "display_order", "is_active")
    @classmethod
    def reject_null(cls, value):
        return _not_null(value)


class CategoryOut(ORMModel):
    id: int
    name: str
    slug: str
    description: Optional[str] = None
    image_url: Optional[str] = None
    parent_id: Optional[int] = None
    display_order: int
    is_active: bool


# Products

class ProductCreate(BaseModel):
    name: str = Field(..., min_length=1)
    description: str
    category_id: int
    price: float = Field(..., gt=0, description="Price in euros")
    discount: Optional[int] = Field(None, ge=0, le=100)
    material: Optional[str] = None
    color: Optional[str] = None
    style: Optional[str] = None
    width: Optional[float] = Field(None, ge=0)
    height: Optional[float] = Field(None, ge=0)
    depth: Optional[float] = Field(None, ge=0)
    weight: Optional[float] = Field(None, ge=0, description="Weight in kg")
    stock: Optional[int] = Field(None, ge=0)
    sku: Optional[str] = None
    images: List[str] = Field(default_factory=list)


class ProductUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None
    category_id: Optional[int] = None
    price: Optional[int] = Field(None, ge=0, description="Price in cents")
    discount: Optional[int] = Field(None, ge=0, le=100)
    material: Optional[str] = None
    color: Optional[str] = None
    style: Optional[str] = None
    dimensions: Optional[str] = None
    weight: Optional[str] = None
    stock: Optional[int] = Field(None, ge=0)
    sku: Optional[str] = None
    is_bestseller: Optional[bool] = None
    is_new: Optional[bool] = None

    @field_validator("name", "category_id", "price", "discount", "stock", "is_bestseller", "is_new")
    @classmethod
    def reject_null(cls, value):
        return _not_null(value)


class ProductOut(ORMModel):
    id: int
    name: str
    slug: str
    description: Optional[str] = None
    price: int
    category_id: int
    material: Optional[str] = None
    color: Optional[str] = None
    style: Optional[str] = None
    dimensions: Optional[str] = None
    weight: Optional[str] = None
    stock: int
    sku: Optional[str] = None
    is_bestseller: bool
    is_new: bool
    discount: int
    view_count: int


class ProductImageOut(ORMModel):
    id: int
    image_url: str
    alt_text: Optional[str] = None
    display_order: int


class ProductVariantOut(ORMModel):
    id: int
    color: str
    color_code: Optional[str] = None
    stock: int


class ReviewOut(ORMModel):
    id: int
    user_id: Optional[int] = None
    rating: int
    title: Optional[str] = None
    content: Optional[str] = None
    image_url: Optional[str] = None
    helpful: int
    verified: bool
    created_at: datetime


class ProductDetailOut(ProductOut):
    images: List[ProductImageOut] = []
    variants: List[ProductVariantOut] = []
    reviews: List[ReviewOut] = []


class ProductPage(BaseModel):
    products: List[ProductOut]
    total: int


# Cart, wishlist, addresses, loyalty

class CartItemCreate(BaseModel):
    product_id: int
    variant_id: Optional[int] = None
    quantity: int = Field(..., ge=1)


class CartItemOut(ORMModel):
    id: int
    product_id: int
    variant_id: Optional[int] = None
    quantity: int


class WishlistItemOut(ORMModel):
    id: int
    product_id: int


class AddressOut(ORMModel):
    id: int
    type: str
    first_name: str
    last_name: str
    street: str
    postal_code: str
    city: str
    country: str
    phone: Optional[str] = None
    is_default: bool


class LoyaltyOut(ORMModel):
    points: int
    total_earned: int
    total_redeemed: int


# Orders

class OrderItemOut(ORMModel):
    id: int
    product_id: Optional[int] = None
    product_name: str
    price: int
    quantity: int
    variant_color: Optional[str] = None


class OrderOut(ORMModel):
    id: int
    user_id: Optional[int] = None
    order_number: str
    status: str
    total_amount: int
    shipping_cost: int
    discount_amount: int
    promo_code: Optional[str] = None
    shipping_method: Optional[str] = None
    payment_method: Optional[str] = None
    payment_status: str
    customer_email: str
    customer_phone: Optional[str] = None
    shipping_address: str
    billing_address: Optional[str] = None
    language: str
    tracking_number: Optional[str] = None
    carrier: Optional[str] = None
    estimated_delivery: Optional[str] = None
    notes: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class OrderDetailOut(OrderOut):
    items: List[OrderItemOut] = []


class MarkShippedRequest(BaseModel):
    tracking_number: str = Field(..., min_length=1)
    carrier: Carrier
    estimated_delivery: Optional[str] = None


class StatusChangeRequest(BaseModel):
    status: OrderStatus


# Checkout

class CheckoutItem(BaseModel):
    product_name: str = Field(..., min_length=1)
    product_description: Optional[str] = None
    product_image: Optional[str] = None
    price: int = Field(..., ge=0, description="Unit price in cents")
    quantity: int = Field(..., ge=1)


class CheckoutSessionRequest(BaseModel):
    cart_items: List[CheckoutItem] = Field(..., min_length=1)
    shipping_method: ShippingMethod
    promo_code: Optional[str] = None
    discount_amount: int = Field(0, ge=0)
    language: Language = Language.DE


class CheckoutSessionOut(BaseModel):
    session_id: str
    url: Optional[str] = None
