from datetime import date, datetime, time
from decimal import Decimal
from typing import Annotated, List, Literal, Optional

from pydantic import BaseModel, EmailStr, Field, field_validator

from .models import OrderStatus


# --- Checkout input ---

class ShippingDelivery(BaseModel):
    delivery_type: Literal["shipping"] = "shipping"
    street: str = Field(min_length=1, max_length=200)
    city: str = Field(min_length=1, max_length=100)
    zip: str = Field(min_length=1, max_length=20)

    class Config:
        str_strip_whitespace = True


class PickupDelivery(BaseModel):
    delivery_type: Literal["pickup"] = "pickup"
    location_id: str = Field(min_length=1)
    pickup_date: date
    pickup_time: time


Delivery = Annotated[ShippingDelivery | PickupDelivery, Field(discriminator="delivery_type")]


class EmergencyContact(BaseModel):
    name: Optional[str] = Field(default=None, max_length=100)
    phone: Optional[str] = Field(default=None, max_length=20)
    email: Optional[EmailStr] = None

    class Config:
        str_strip_whitespace = True

    @field_validator("name", "phone", "email", mode="before")
    @classmethod
    def blank_to_none(cls, value):
        if isinstance(value, str) and not value.strip():
            return None
        return value


class CartItem(BaseModel):
    product_id: str = Field(min_length=1)
    quantity: int = Field(ge=1)


class CheckoutRequest(BaseModel):
    customer_name: str = Field(min_length=1, max_length=100)
    customer_email: EmailStr
    delivery: Delivery
    emergency_contact: Optional[EmergencyContact] = None
    payment_method: Literal["card", "cash"] = "card"
    items: List[CartItem] = [] # emptiness is a lifecycle ValidationError, not a schema error

    class Config:
        str_strip_whitespace = True


# --- Admin input ---

class AdvanceStatusRequest(BaseModel):
    status: OrderStatus


class DeliverySettingsSchema(BaseModel):
    shipping_enabled: bool = True
    pickup_enabled: bool = True

    class Config:
        from_attributes = True


# --- Responses ---

class PickupLocationResponse(BaseModel):
    id: str
    name: str
    address: str
    city: str
    zip_code: Optional[str] = None
    instructions: Optional[str] = None
    is_active: bool

    class Config:
        from_attributes = True


class EmergencyContactResponse(BaseModel):
    name: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None


class ShippingDeliveryResponse(BaseModel):
    delivery_type: Literal["shipping"]
    street: str
    city: str
    zip: str


class PickupDeliveryResponse(BaseModel):
    delivery_type: Literal["pickup"]
    location_id: str
    pickup_date: date
    pickup_time: time


DeliveryResponse = Annotated[
    ShippingDeliveryResponse | PickupDeliveryResponse, Field(discriminator="delivery_type")
]


class OrderItemResponse(BaseModel):
    product_id: str
    quantity: int
    price_at_purchase: Decimal

    class Config:
        from_attributes = True


class OrderResponse(BaseModel):
    """Authoritative post-transition order record; also the snapshot handed to notifications."""

    id: str
    user_id: Optional[str] = None
    customer_name: str
    customer_email: str
    total_amount: Decimal
    status: OrderStatus
    delivery: DeliveryResponse
    pickup_location: Optional[PickupLocationResponse] = None
    emergency_contact: Optional[EmergencyContactResponse] = None
    external_payment_reference: Optional[str] = None
    refund_in_flight: bool = False
    created_at: datetime
    updated_at: datetime
    items: List[OrderItemResponse] = []

    class Config:
        from_attributes = True


class PaymentSessionResponse(BaseModel):
    order_id: str
    session_id: str
    url: str
