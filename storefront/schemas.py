"""Pydantic schemas for request/response validation.

Fields are snake_case in Python and camelCase on the wire; requests accept both.
"""
import json
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, StrictInt, field_validator
from pydantic.alias_generators import to_camel

logger = logging.getLogger(__name__)


class CamelModel(BaseModel):
    """Base schema that speaks camelCase JSON."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class MessageResponse(CamelModel):
    message: str


# --- Auth -----------------------------------------------------------------

class SignupRequest(CamelModel):
    """Schema for account creation."""
    email: str = Field(min_length=3)
    password: str = Field(min_length=1)
    name: Optional[str] = None


class LoginRequest(CamelModel):
    email: str
    password: str


class UserSummary(CamelModel):
    id: str
    email: str
    name: Optional[str] = None
    role: str


class AuthResponse(CamelModel):
    """Schema for signup/login response."""
    user: UserSummary
    token: str


# --- Catalog --------------------------------------------------------------

class ReviewAuthor(CamelModel):
    id: str
    name: Optional[str] = None


class ReviewResponse(CamelModel):
    """Schema for a review with its author."""
    id: str
    user_id: str
    product_id: str
    rating: int
    comment: str
    created_at: datetime
    updated_at: Optional[datetime] = None
    user: Optional[ReviewAuthor] = None


class ProductResponse(CamelModel):
    """Schema for product response. Stored JSON arrays are decoded here."""
    id: str
    name: str
    description: str
    price: int
    base_price: Optional[int] = None
    category: str
    subcategory: Optional[str] = None
    image: str
    images: List[str]
    sizes: List[str]
    colors: List[str]
    stock: int
    is_active: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    average_rating: float = 0
    review_count: int = 0

    @field_validator("images", "sizes", "colors", mode="before")
    @classmethod
    def decode_json_array(cls, value: Any) -> Any:
        if value is None:
            return []
        if isinstance(value, str):
            return json.loads(value) if value else []
        return value


class ProductDetailResponse(ProductResponse):
    reviews: List[ReviewResponse] = []


class ProductListResponse(CamelModel):
    products: List[ProductResponse]
    total: int
    limit: int
    offset: int


# --- Reviews --------------------------------------------------------------

class ReviewCreate(CamelModel):
    """Schema for creating a review. Range checks happen in the service."""
    product_id: Optional[str] = None
    rating: Optional[StrictInt] = None
    comment: Optional[str] = None


class ReviewUpdate(CamelModel):
    rating: Optional[StrictInt] = None
    comment: Optional[str] = None


class ReviewListResponse(CamelModel):
    reviews: List[ReviewResponse]
    average_rating: float
    total_reviews: int


# --- Orders ---------------------------------------------------------------

class OrderItemRequest(CamelModel):
    """One requested line: which product and how many."""
    product_id: str
    quantity: int = Field(gt=0)


class ClientPricedItemRequest(OrderItemRequest):
    """Line item for the v1 surface, where the caller supplies the unit price."""
    price: int = Field(ge=0)


class OrderCreate(CamelModel):
    """Schema for storefront checkout."""
    items: List[OrderItemRequest] = []
    shipping_address: Optional[Dict[str, Any]] = None
    payment_method: Optional[str] = None
    customer_name: Optional[str] = None
    customer_email: Optional[str] = None
    customer_phone: Optional[str] = None
    notes: Optional[str] = None


class V1OrderCreate(CamelModel):
    """Schema for machine-client order placement."""
    user_id: Optional[str] = None
    customer_email: Optional[str] = None
    customer_name: Optional[str] = None
    customer_phone: Optional[str] = None
    items: List[ClientPricedItemRequest] = []
    shipping_address: Optional[Dict[str, Any]] = None
    payment_method: Optional[str] = None


class OrderItemProduct(CamelModel):
    id: str
    name: str
    image: str
    price: int


class OrderItemResponse(CamelModel):
    id: int
    product_id: str
    quantity: int
    price: int
    product: Optional[OrderItemProduct] = None


class TrackingResponse(CamelModel):
    status: str
    updated_at: Optional[datetime] = None


class OrderResponse(CamelModel):
    """Schema for order response. The stored shipping address is decoded here."""
    id: str
    order_number: str
    user_id: str
    subtotal: int
    shipping: int
    tax: int
    total: int
    status: str
    payment_method: str
    payment_status: str
    shipping_address: Optional[Dict[str, Any]] = None
    customer_name: str
    customer_email: str
    customer_phone: str
    notes: Optional[str] = None
    created_at: datetime
    updated_at: Optional[datetime] = None
    items: List[OrderItemResponse]

    @field_validator("shipping_address", mode="before")
    @classmethod
    def decode_shipping_address(cls, value: Any) -> Any:
        if not isinstance(value, str):
            return value
        try:
            return json.loads(value)
        except ValueError:
            logger.error("Error parsing stored shipping address")
            return None


class AdminOrderResponse(OrderResponse):
    user: Optional[UserSummary] = None
    tracking: Optional[TrackingResponse] = None


class V1OrderSummary(CamelModel):
    id: str
    order_number: str
    total: int
    status: str
    payment_status: str
    created_at: datetime
    items: List[OrderItemResponse]


class V1OrderResponse(CamelModel):
    success: bool = True
    order: V1OrderSummary


# --- Users ----------------------------------------------------------------

class ProfileCounts(CamelModel):
    orders: int
    reviews: int


class ProfileResponse(CamelModel):
    id: str
    email: str
    name: Optional[str] = None
    phone: Optional[str] = None
    is_verified: bool
    role: str
    created_at: Optional[datetime] = None
    counts: Optional[ProfileCounts] = None


class ProfileUpdate(CamelModel):
    name: Optional[str] = None
    phone: Optional[str] = None


# --- Admin ----------------------------------------------------------------

class AdminProductCreate(CamelModel):
    """Schema for creating a product. Required fields are checked by the service."""
    id: Optional[str] = None
    name: Optional[str] = None
    description: Optional[str] = None
    price: Optional[int] = Field(default=None, ge=0)
    base_price: Optional[int] = Field(default=None, ge=0)
    category: Optional[str] = None
    subcategory: Optional[str] = None
    image: Optional[str] = None
    images: Optional[List[str]] = None
    sizes: Optional[List[str]] = None
    colors: Optional[List[str]] = None
    stock: Optional[int] = Field(default=None, ge=0)
    is_active: Optional[bool] = None


class AdminProductUpdate(CamelModel):
    name: Optional[str] = None
    description: Optional[str] = None
    price: Optional[int] = Field(default=None, ge=0)
    base_price: Optional[int] = Field(default=None, ge=0)
    category: Optional[str] = None
    subcategory: Optional[str] = None
    image: Optional[str] = None
    images: Optional[List[str]] = None
    sizes: Optional[List[str]] = None
    colors: Optional[List[str]] = None
    stock: Optional[int] = Field(default=None, ge=0)
    is_active: Optional[bool] = None


class AdminProductListResponse(CamelModel):
    products: List[ProductResponse]
    total: int
    page: int
    total_pages: int


class OrderStatusUpdate(CamelModel):
    status: Optional[str] = None


class AdminOrderListResponse(CamelModel):
    orders: List[AdminOrderResponse]
    total: int
    page: int
    total_pages: int


class AdminUserResponse(CamelModel):
    id: str
    name: Optional[str] = None
    email: str
    role: str
    is_verified: bool
    created_at: Optional[datetime] = None
    order_count: int = 0


class AdminUserListResponse(CamelModel):
    users: List[AdminUserResponse]
    total: int
    page: int
    total_pages: int


class RoleUpdate(CamelModel):
    role: Optional[str] = None


class RecentOrder(CamelModel):
    id: str
    order_number: str
    total: int
    status: str
    created_at: datetime
    customer_name: str
    customer_email: str
    item_count: int


class StatsResponse(CamelModel):
    total_products: int
    total_users: int
    total_orders: int
    pending_orders: int
    low_stock_products: int
    total_revenue: int
    recent_revenue: int
    recent_orders: List[RecentOrder]
