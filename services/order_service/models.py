import uuid
from datetime import datetime, timezone
from enum import Enum

from sqlalchemy import (
    Boolean,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Time,
)
from sqlalchemy.orm import relationship

from shared.config.database import Base


def _utcnow():
    return datetime.now(timezone.utc)


def _new_id():
    return str(uuid.uuid4())


class OrderStatus(str, Enum):
    PENDING = "pending"
    PENDING_CASH = "pending_cash"
    PAID = "paid"
    CONFIRMED = "confirmed"
    PREPARING = "preparing"
    READY = "ready"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class DeliveryType(str, Enum):
    SHIPPING = "shipping"
    PICKUP = "pickup"


class Order(Base):
    __tablename__ = "orders"
    # We use a separate schema to simulate microservice isolation
    __table_args__ = {"schema": "order_schema"}

    id = Column(String(36), primary_key=True, default=_new_id)
    user_id = Column(String(64), nullable=True, index=True) # identity subject that placed the order
    customer_name = Column(String(100), nullable=False)
    customer_email = Column(String(255), nullable=False, index=True)
    total_amount = Column(Numeric(10, 2), nullable=False) # snapshot, never recomputed

    delivery_type = Column(String(20), nullable=False)
    shipping_street = Column(String(200), nullable=True)
    shipping_city = Column(String(100), nullable=True)
    shipping_zip = Column(String(20), nullable=True)
    pickup_location_id = Column(String(36), ForeignKey("order_schema.pickup_locations.id"), nullable=True)
    pickup_date = Column(Date, nullable=True)
    pickup_time = Column(Time, nullable=True)

    emergency_contact_name = Column(String(100), nullable=True)
    emergency_contact_phone = Column(String(20), nullable=True)
    emergency_contact_email = Column(String(255), nullable=True)

    status = Column(String(20), nullable=False, default=OrderStatus.PENDING.value, index=True)
    external_payment_reference = Column(String(255), nullable=True)
    refund_in_flight = Column(Boolean, nullable=False, default=False)

    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow)

    items = relationship(
        "OrderItem",
        back_populates="order",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="OrderItem.id",
    )
    pickup_location = relationship("PickupLocation", lazy="selectin")

    @property
    def delivery(self) -> dict:
        """Closed delivery record: the shipping address or the pickup slot, never both."""
        if self.delivery_type == DeliveryType.PICKUP:
            return {
                "delivery_type": DeliveryType.PICKUP.value,
                "location_id": self.pickup_location_id,
                "pickup_date": self.pickup_date,
                "pickup_time": self.pickup_time,
            }
        return {
            "delivery_type": DeliveryType.SHIPPING.value,
            "street": self.shipping_street,
            "city": self.shipping_city,
            "zip": self.shipping_zip,
        }

    @property
    def emergency_contact(self) -> dict | None:
        if not any(
            (self.emergency_contact_name, self.emergency_contact_phone, self.emergency_contact_email)
        ):
            return None
        return {
            "name": self.emergency_contact_name,
            "phone": self.emergency_contact_phone,
            "email": self.emergency_contact_email,
        }


class OrderItem(Base):
    __tablename__ = "order_items"
    __table_args__ = {"schema": "order_schema"}

    id = Column(Integer, primary_key=True, autoincrement=True)
    order_id = Column(String(36), ForeignKey("order_schema.orders.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = Column(String(36), nullable=False) # lives in product_schema, no cross-service FK
    quantity = Column(Integer, nullable=False)
    price_at_purchase = Column(Numeric(10, 2), nullable=False)

    order = relationship("Order", back_populates="items")


class PickupLocation(Base):
    __tablename__ = "pickup_locations"
    __table_args__ = {"schema": "order_schema"}

    id = Column(String(36), primary_key=True, default=_new_id)
    name = Column(String(100), nullable=False)
    address = Column(String(200), nullable=False)
    city = Column(String(100), nullable=False)
    zip_code = Column(String(20), nullable=True)
    instructions = Column(String(500), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)


class DeliverySettings(Base):
    """Process-wide singleton row gating the delivery modes offered at checkout."""

    __tablename__ = "delivery_settings"
    __table_args__ = {"schema": "order_schema"}

    SINGLETON_ID = 1

    id = Column(Integer, primary_key=True, default=SINGLETON_ID)
    shipping_enabled = Column(Boolean, nullable=False, default=True)
    pickup_enabled = Column(Boolean, nullable=False, default=True)
