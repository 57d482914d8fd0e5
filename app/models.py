"""
SQLAlchemy Database Models

- User: credentials plus the embedded cart mapping
- FoodItem: catalog entry with its image file name
- Order: immutable line-item snapshot with payment and fulfillment status
"""

from sqlalchemy import Column, Integer, String, Float, DateTime, Text, JSON, ForeignKey, Enum
from datetime import datetime, timezone
from app.database import Base
import enum


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class PaymentStatus(str, enum.Enum):
    """Payment workflow: pending_payment -> paid | failed."""
    PENDING_PAYMENT = "pending_payment"
    PAID = "paid"
    FAILED = "failed"


class UserRole(str, enum.Enum):
    USER = "user"
    ADMIN = "admin"


class User(Base):
    """
    Registered customer or administrator.

    ``cart_data`` maps str(food item id) to quantity. It is always
    replaced with a new dict on write so the JSON column change is
    detected.
    """
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    name = Column(String(100), nullable=True)
    email = Column(String(255), nullable=False, unique=True, index=True)
    password_hash = Column(String(255), nullable=False)
    role = Column(
        Enum(UserRole, values_callable=lambda e: [m.value for m in e]),
        default=UserRole.USER,
        nullable=False,
    )
    cart_data = Column(JSON, nullable=False, default=dict)

    created_at = Column(DateTime(timezone=True), default=_utcnow)

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    def __repr__(self):
        return f"<User #{self.id} - {self.email} - {self.role.value}>"


class FoodItem(Base):
    """Catalog entry. Created and removed by administrators only."""
    __tablename__ = "food_items"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    name = Column(String(100), nullable=False)
    description = Column(Text, nullable=False)
    price = Column(Float, nullable=False)
    category = Column(String(50), nullable=False, index=True)
    image = Column(String(255), nullable=False)

    created_at = Column(DateTime(timezone=True), default=_utcnow)

    def __repr__(self):
        return f"<FoodItem #{self.id} - {self.name} - {self.price:.2f}>"


class Order(Base):
    """
    Order created at checkout.

    ``items`` is a JSON list of {item_id, name, price, quantity} captured
    when the order is placed; later catalog or cart changes never touch it.
    """
    __tablename__ = "orders"

    # Primary Key
    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)

    # =========================================================================
    # ORDER DETAILS
    # =========================================================================
    items = Column(JSON, nullable=False)
    address = Column(JSON, nullable=False)

    # =========================================================================
    # PRICING
    # =========================================================================
    subtotal = Column(Float, nullable=False)
    delivery_fee = Column(Float, nullable=False, default=0.0)
    amount = Column(Float, nullable=False)

    # =========================================================================
    # PAYMENT INFO
    # =========================================================================
    payment_status = Column(
        Enum(PaymentStatus, values_callable=lambda e: [m.value for m in e]),
        default=PaymentStatus.PENDING_PAYMENT,
        nullable=False,
        index=True,
    )
    payment_session_id = Column(String(255), nullable=True)

    # =========================================================================
    # FULFILLMENT
    # =========================================================================
    status = Column(String(50), nullable=False, default="Food Processing")

    # =========================================================================
    # TIMESTAMPS
    # =========================================================================
    created_at = Column(DateTime(timezone=True), default=_utcnow)
    updated_at = Column(DateTime(timezone=True), onupdate=_utcnow)

    def __repr__(self):
        return f"<Order #{self.id} - user {self.user_id} - {self.payment_status.value} - {self.status}>"
