"""
Pydantic Schemas for Request/Response Validation

The public API speaks camelCase JSON (``restaurantName``, ``addressLine1``,
``menuItems`` ...) and exposes document ids as ``_id``. Models read from the
snake_case ORM objects by attribute name.
"""

from datetime import datetime
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from pydantic.alias_generators import to_camel

from app.models import OrderStatus


class CamelModel(BaseModel):
    """Base model: camelCase aliases, populated by either name."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


def not_blank(value: str) -> str:
    if not value.strip():
        raise ValueError("must not be empty")
    return value


# =============================================================================
# USER SCHEMAS
# =============================================================================

class UserCreate(CamelModel):
    """Body of the provisioning call made right after login."""
    auth0_id: Optional[str] = Field(None, examples=["auth0|64f1c2"])
    email: EmailStr = Field(..., examples=["jane@example.com"])
    name: Optional[str] = Field(None, max_length=100)
    address_line1: Optional[str] = Field(None, max_length=255)
    city: Optional[str] = Field(None, max_length=100)
    country: Optional[str] = Field(None, max_length=100)


class UserUpdate(CamelModel):
    """All four profile fields are required; omitted fields are not preserved."""
    name: str = Field(..., max_length=100, examples=["Jane Doe"])
    address_line1: str = Field(..., max_length=255, examples=["12 Mabini St"])
    city: str = Field(..., max_length=100, examples=["Manila"])
    country: str = Field(..., max_length=100, examples=["Philippines"])

    @field_validator("name", "address_line1", "city", "country")
    @classmethod
    def check_not_blank(cls, v: str) -> str:
        return not_blank(v)


class UserResponse(CamelModel):
    id: str = Field(..., serialization_alias="_id")
    auth0_id: str
    email: str
    name: Optional[str] = None
    address_line1: Optional[str] = None
    city: Optional[str] = None
    country: Optional[str] = None


# =============================================================================
# RESTAURANT SCHEMAS
# =============================================================================

class MenuItemIn(CamelModel):
    """Menu item as submitted by the owner. ``_id`` is sent back on updates."""
    id: Optional[str] = Field(None, validation_alias="_id")
    name: str = Field(..., max_length=100, examples=["Adobo"])
    price: float = Field(..., ge=0, examples=[180])

    @field_validator("name")
    @classmethod
    def check_not_blank(cls, v: str) -> str:
        return not_blank(v)


class RestaurantForm(CamelModel):
    """Restaurant fields from the multipart form (the image is a separate part)."""
    restaurant_name: str = Field(..., max_length=100)
    city: str = Field(..., max_length=100)
    country: str = Field(..., max_length=100)
    delivery_price: float = Field(..., ge=0)
    estimated_delivery_time: int = Field(..., ge=0)
    cuisines: List[str] = Field(..., min_length=1)
    menu_items: List[MenuItemIn] = Field(default_factory=list)

    @field_validator("restaurant_name", "city", "country")
    @classmethod
    def check_not_blank(cls, v: str) -> str:
        return not_blank(v)


class MenuItemResponse(CamelModel):
    id: str = Field(..., serialization_alias="_id")
    name: str
    price: float


class RestaurantResponse(CamelModel):
    id: str = Field(..., serialization_alias="_id")
    user_id: str = Field(..., serialization_alias="user")
    restaurant_name: str
    city: str
    country: str
    delivery_price: float
    estimated_delivery_time: int
    cuisines: List[str]
    menu_items: List[MenuItemResponse]
    image_url: str
    last_updated: datetime


class Pagination(BaseModel):
    total: int
    page: int
    pages: int


class RestaurantSearchResponse(BaseModel):
    data: List[RestaurantResponse]
    pagination: Pagination


# =============================================================================
# ORDER SCHEMAS
# =============================================================================

class CartItem(CamelModel):
    """A requested menu item. Prices are never taken from the client."""
    menu_item_id: str = Field(..., min_length=1)
    name: str
    quantity: int = Field(..., ge=1)


class DeliveryDetails(CamelModel):
    email: EmailStr
    name: str = Field(..., min_length=1, max_length=100)
    address_line1: str = Field(..., min_length=1, max_length=255)
    city: str = Field(..., min_length=1, max_length=100)
    country: str = Field(..., min_length=1, max_length=100)


class CheckoutSessionRequest(CamelModel):
    cart_items: List[CartItem] = Field(..., min_length=1)
    delivery_details: DeliveryDetails
    restaurant_id: str = Field(..., min_length=1)


class CheckoutSessionResponse(BaseModel):
    url: str


class OrderStatusUpdate(BaseModel):
    status: OrderStatus


class OrderResponse(CamelModel):
    id: str = Field(..., serialization_alias="_id")
    restaurant: RestaurantResponse
    user: UserResponse
    delivery_details: DeliveryDetails
    cart_items: List[CartItem]
    total_amount: Optional[int] = None
    status: OrderStatus
    created_at: datetime


# =============================================================================
# SYSTEM SCHEMAS
# =============================================================================

class ErrorResponse(BaseModel):
    """Standard error response."""
    message: str
    errors: Optional[List[Any]] = None


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    database: str
    payment_service: str
    identity_service: str
    storage_service: str
    timestamp: datetime
