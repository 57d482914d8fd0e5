"""
Pydantic Schemas for Request/Response Validation

Request bodies accept the storefront's camelCase keys (``itemId``,
``orderId``) as well as snake_case names. Responses are snake_case and
always carry a ``success`` flag.
"""

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from typing import Any, Dict, List, Optional
from datetime import datetime

from app.models import PaymentStatus


class RequestModel(BaseModel):
    """Base for request bodies: camelCase aliases, snake_case names both accepted."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# =============================================================================
# REQUEST SCHEMAS
# =============================================================================

class RegisterRequest(RequestModel):
    name: Optional[str] = Field(None, max_length=100, examples=["Jane Doe"])
    email: str = Field(..., min_length=3, max_length=255, examples=["jane@example.com"])
    password: str = Field(..., min_length=1, max_length=128)


class LoginRequest(RequestModel):
    email: str = Field(..., min_length=1, max_length=255)
    password: str = Field(..., min_length=1, max_length=128)


class CartItemRequest(RequestModel):
    """Body of /cart/add and /cart/remove."""
    item_id: int = Field(..., gt=0, examples=[1])


class FoodRemoveRequest(RequestModel):
    id: int = Field(..., gt=0)


class DeliveryAddress(RequestModel):
    """Delivery details entered at checkout."""
    first_name: str = Field(..., min_length=1, max_length=50, examples=["Jane"])
    last_name: str = Field(..., min_length=1, max_length=50, examples=["Doe"])
    email: str = Field(..., min_length=3, max_length=255)
    street: str = Field(..., min_length=1, max_length=255, examples=["350 Fifth Avenue"])
    city: str = Field(..., min_length=1, max_length=100)
    state: str = Field(..., min_length=1, max_length=100)
    zipcode: str = Field(..., min_length=1, max_length=20)
    country: str = Field(..., min_length=1, max_length=100)
    phone: str = Field(..., min_length=5, max_length=30)


class PlaceOrderRequest(RequestModel):
    """
    Checkout request.

    ``items`` is accepted for client compatibility only; prices and
    quantities always come from the server-side cart and catalog.
    """
    address: DeliveryAddress
    items: Optional[List[Any]] = None


class VerifyPaymentRequest(RequestModel):
    order_id: int = Field(..., gt=0)
    success: bool


class OrderStatusRequest(RequestModel):
    order_id: int = Field(..., gt=0)
    status: str = Field(..., min_length=1, max_length=50, examples=["Out for delivery"])


# =============================================================================
# RESPONSE SCHEMAS
# =============================================================================

class AckResponse(BaseModel):
    success: bool = True
    message: str


class TokenResponse(BaseModel):
    success: bool = True
    token: str


class FoodResponse(BaseModel):
    id: int
    name: str
    description: str
    price: float
    category: str
    image: str
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class FoodListResponse(BaseModel):
    success: bool = True
    data: List[FoodResponse]


class FoodCreateResponse(BaseModel):
    success: bool = True
    message: str
    data: FoodResponse


class CartResponse(BaseModel):
    success: bool = True
    cart_data: Dict[str, int]


class OrderLineItem(BaseModel):
    item_id: int
    name: str
    price: float
    quantity: int


class OrderResponse(BaseModel):
    """Response schema for a single order."""
    id: int
    user_id: int
    items: List[OrderLineItem]
    address: Dict[str, Any]
    subtotal: float
    delivery_fee: float
    amount: float
    payment_status: PaymentStatus
    status: str
    created_at: datetime
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class OrderListResponse(BaseModel):
    success: bool = True
    data: List[OrderResponse]


class PlaceOrderResponse(BaseModel):
    success: bool = True
    order_id: int
    session_url: str


class ErrorResponse(BaseModel):
    """Standard error response."""
    success: bool = False
    error: str
    message: str


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    database: str
    redis: str
    payment_service: str
    timestamp: datetime
