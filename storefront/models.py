"""Database models for the storefront service."""
import uuid
from datetime import datetime
from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()

ORDER_STATUSES = ("PENDING", "CONFIRMED", "PROCESSING", "SHIPPED", "DELIVERED", "CANCELLED")
TRACKING_STATUSES = ("CREATED", "CONFIRMED", "PROCESSING", "SHIPPED", "DELIVERED")
USER_ROLES = ("USER", "ADMIN")


def _uuid() -> str:
    return str(uuid.uuid4())


class Product(Base):
    """Product model. Prices are integers in the smallest currency unit."""
    __tablename__ = "products"

    id = Column(String, primary_key=True)
    name = Column(String, nullable=False, index=True)
    description = Column(Text, nullable=False, default="")
    price = Column(Integer, nullable=False)
    base_price = Column(Integer, nullable=True)
    category = Column(String, nullable=False, index=True)
    subcategory = Column(String, nullable=True)
    image = Column(String, nullable=False, default="/placeholder.svg")
    # JSON-encoded arrays
    images = Column(Text, nullable=False, default="[]")
    sizes = Column(Text, nullable=False, default="[]")
    colors = Column(Text, nullable=True, default="[]")
    stock = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    reviews = relationship("Review", back_populates="product", cascade="all, delete-orphan")


class User(Base):
    """User account model."""
    __tablename__ = "users"

    id = Column(String, primary_key=True, default=_uuid)
    email = Column(String, unique=True, nullable=False, index=True)
    password = Column(String, nullable=False, default="")
    name = Column(String, nullable=True)
    phone = Column(String, nullable=True)
    role = Column(String, nullable=False, default="USER")
    is_verified = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, default=datetime.utcnow)

    orders = relationship("Order", back_populates="user")
    reviews = relationship("Review", back_populates="user")


class Order(Base):
    """Order model."""
    __tablename__ = "orders"

    id = Column(String, primary_key=True, default=_uuid)
    order_number = Column(String, unique=True, nullable=False, index=True)
    user_id = Column(String, ForeignKey("users.id"), nullable=False, index=True)
    subtotal = Column(Integer, nullable=False)
    shipping = Column(Integer, nullable=False, default=0)
    tax = Column(Integer, nullable=False, default=0)
    total = Column(Integer, nullable=False)
    status = Column(String, nullable=False, default="PENDING")
    payment_method = Column(String, nullable=False)
    payment_status = Column(String, nullable=False, default="PENDING")
    # JSON-encoded address object
    shipping_address = Column(Text, nullable=False)
    customer_name = Column(String, nullable=False, default="")
    customer_email = Column(String, nullable=False, default="")
    customer_phone = Column(String, nullable=False, default="")
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, index=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    user = relationship("User", back_populates="orders")
    items = relationship("OrderItem", back_populates="order", cascade="all, delete-orphan")
    tracking = relationship(
        "OrderTracking", back_populates="order", uselist=False, cascade="all, delete-orphan"
    )


class OrderItem(Base):
    """Order line item. `price` is the unit price captured when the order was placed."""
    __tablename__ = "order_items"

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(String, ForeignKey("orders.id"), nullable=False, index=True)
    product_id = Column(String, ForeignKey("products.id"), nullable=False)
    quantity = Column(Integer, nullable=False)
    price = Column(Integer, nullable=False)

    order = relationship("Order", back_populates="items")
    product = relationship("Product")


class OrderTracking(Base):
    """Denormalized mirror of Order.status, refreshed on admin status changes."""
    __tablename__ = "order_tracking"

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(String, ForeignKey("orders.id"), unique=True, nullable=False)
    status = Column(String, nullable=False, default="CREATED")
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    order = relationship("Order", back_populates="tracking")


class Review(Base):
    """Product review model."""
    __tablename__ = "reviews"
    __table_args__ = (
        UniqueConstraint("user_id", "product_id", name="uq_reviews_user_product"),
    )

    id = Column(String, primary_key=True, default=_uuid)
    user_id = Column(String, ForeignKey("users.id"), nullable=False, index=True)
    product_id = Column(String, ForeignKey("products.id"), nullable=False, index=True)
    rating = Column(Integer, nullable=False)
    comment = Column(Text, nullable=False, default="")
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    user = relationship("User", back_populates="reviews")
    product = relationship("Product", back_populates="reviews")


class ApiKey(Base):
    """API key for the v1 machine-client surface."""
    __tablename__ = "api_keys"

    id = Column(Integer, primary_key=True, index=True)
    key = Column(String, unique=True, nullable=False, index=True)
    name = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    last_used = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
