"""Order placement and lookup service."""
import json
import logging
import random
import string
import time
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence

from opentelemetry import trace
from sqlalchemy import update
from sqlalchemy.orm import Session, joinedload, selectinload

from storefront.errors import InsufficientStockError, NotFoundError, ValidationError
from storefront.models import Order, OrderItem, Product, User
from storefront.monitoring import (
    order_amount_histogram,
    orders_placed_counter,
    stock_conflicts_counter,
)
from storefront.services.pricing import PricingPolicy

logger = logging.getLogger(__name__)

ORDER_NUMBER_SUFFIX_ALPHABET = string.ascii_uppercase + string.digits
ORDER_NUMBER_SUFFIX_LENGTH = 9


def generate_order_number() -> str:
    """
    Build a human-facing order number: ``ORD-<epoch millis>-<random suffix>``.

    Uniqueness is best-effort (timestamp plus 36**9 suffixes), not a sequence;
    the unique index on orders.order_number is the backstop.
    """
    suffix = "".join(random.choices(ORDER_NUMBER_SUFFIX_ALPHABET, k=ORDER_NUMBER_SUFFIX_LENGTH))
    return f"ORD-{int(time.time() * 1000)}-{suffix}"


def payment_status_for(payment_method: str) -> str:
    return "PENDING" if payment_method == "COD" else "PAID"


@dataclass
class RequestedItem:
    """One requested order line, independent of entry point."""
    product_id: str
    quantity: int
    price: Optional[int] = None


@dataclass
class Customer:
    """Customer snapshot stored on the order."""
    name: str = ""
    email: str = ""
    phone: str = ""


def _order_query(db: Session):
    return db.query(Order).options(
        selectinload(Order.items).joinedload(OrderItem.product),
        joinedload(Order.tracking),
    )


class OrderService:
    """Service for placing and reading orders under one pricing policy."""

    def __init__(self, pricing: PricingPolicy):
        """
        Initialize order service.

        Args:
            pricing: Pricing policy for the entry point using this service
        """
        self.pricing = pricing
        self.tracer = trace.get_tracer(__name__)

    @staticmethod
    def check_request(
        items: Sequence[RequestedItem],
        shipping_address: Optional[Dict[str, Any]],
        payment_method: Optional[str]
    ) -> None:
        """
        Reject an order request that is missing items, address or payment method.

        Runs before any write, including guest account creation on the v1 surface.
        """
        if not items:
            raise ValidationError("Order items are required")
        if not shipping_address:
            raise ValidationError("Shipping address is required")
        if not payment_method:
            raise ValidationError("Payment method is required")

    def place_order(
        self,
        db: Session,
        user_id: str,
        items: Sequence[RequestedItem],
        shipping_address: Optional[Dict[str, Any]],
        payment_method: Optional[str],
        customer: Customer,
        notes: Optional[str] = None,
        entry_point: str = "storefront"
    ) -> Order:
        """
        Validate stock, price the order, persist it and reserve stock.

        Validation, the order insert and every stock decrement share one
        transaction. Each decrement is conditional on ``stock >= quantity``;
        if any affects no row the whole order is rolled back, so concurrent
        orders can never drive stock below zero.

        Args:
            db: Database session
            user_id: Owner of the order
            items: Requested lines
            shipping_address: Address object, stored as JSON text
            payment_method: Payment method code (``COD`` leaves payment pending)
            customer: Customer snapshot
            notes: Optional order notes
            entry_point: Label used for logs and metrics

        Returns:
            The persisted order with items and products loaded

        Raises:
            ValidationError: Missing items, address or payment method
            NotFoundError: Unknown or inactive product
            InsufficientStockError: Stock below the requested quantity
        """
        self.check_request(items, shipping_address, payment_method)

        span = trace.get_current_span()
        span.set_attribute("order.entry_point", entry_point)
        span.set_attribute("order.pricing_policy", self.pricing.name)
        span.set_attribute("order.item_count", len(items))

        try:
            # Step 1: Validate every line against live stock and price it
            subtotal = 0
            order_items: List[OrderItem] = []
            for item in items:
                with self.tracer.start_as_current_span("db.query.get_product") as db_span:
                    db_span.set_attribute("db.operation", "SELECT")
                    db_span.set_attribute("db.table", "products")
                    db_span.set_attribute("product.id", item.product_id)

                    product = self._load_product(db, item.product_id)

                if product is None or not product.is_active:
                    raise NotFoundError(f"Product {item.product_id} not found")

                if product.stock < item.quantity:
                    raise InsufficientStockError(product.id, product.name, product.stock)

                unit_price = self.pricing.unit_price(product, item.price)
                subtotal += unit_price * item.quantity
                order_items.append(OrderItem(
                    product_id=product.id,
                    quantity=item.quantity,
                    price=unit_price
                ))

            totals = self.pricing.totals(subtotal)

            # Step 2: Insert the order with its lines
            with self.tracer.start_as_current_span("db.transaction.create_order") as db_span:
                db_span.set_attribute("db.operation", "INSERT")
                db_span.set_attribute("db.table", "orders")
                db_span.set_attribute("user.id", user_id)
                db_span.set_attribute("order.total", totals.total)

                order = Order(
                    order_number=generate_order_number(),
                    user_id=user_id,
                    subtotal=totals.subtotal,
                    shipping=totals.shipping,
                    tax=totals.tax,
                    total=totals.total,
                    status="PENDING",
                    payment_method=payment_method,
                    payment_status=payment_status_for(payment_method),
                    shipping_address=json.dumps(shipping_address),
                    customer_name=customer.name,
                    customer_email=customer.email,
                    customer_phone=customer.phone,
                    notes=notes,
                    items=order_items
                )
                db.add(order)
                db.flush()
                db_span.set_attribute("order.id", order.id)

            # Step 3: Reserve stock with conditional decrements
            for item in items:
                self._decrement_stock(db, item)

            db.commit()
        except InsufficientStockError as e:
            db.rollback()
            stock_conflicts_counter.add(1, {"entry_point": entry_point})
            logger.warning("Order rejected: insufficient stock", extra={
                "user_id": user_id,
                "product_id": e.product_id,
                "available": e.available,
                "entry_point": entry_point
            })
            raise
        except (ValidationError, NotFoundError):
            db.rollback()
            raise
        except Exception as e:
            db.rollback()
            logger.error("Failed to create order", extra={
                "user_id": user_id,
                "payment_method": payment_method,
                "entry_point": entry_point,
                "error": str(e)
            })
            raise

        orders_placed_counter.add(1, {
            "entry_point": entry_point,
            "pricing_policy": self.pricing.name,
            "payment_method": payment_method
        })
        order_amount_histogram.record(totals.total, {"entry_point": entry_point})

        logger.info("Order placed", extra={
            "user_id": user_id,
            "order_id": order.id,
            "order_number": order.order_number,
            "total": totals.total,
            "pricing_policy": self.pricing.name,
            "item_count": len(order_items)
        })

        return self.get_order(db, order.id)

    def _load_product(self, db: Session, product_id: str) -> Optional[Product]:
        return db.query(Product).filter(Product.id == product_id).first()

    def _decrement_stock(self, db: Session, item: RequestedItem) -> None:
        """Take `item.quantity` units, failing if another order got there first."""
        with self.tracer.start_as_current_span("db.query.update_product_stock") as update_span:
            update_span.set_attribute("db.operation", "UPDATE")
            update_span.set_attribute("db.table", "products")
            update_span.set_attribute("product.id", item.product_id)

            result = db.execute(
                update(Product)
                .where(Product.id == item.product_id, Product.stock >= item.quantity)
                .values(stock=Product.stock - item.quantity)
                .execution_options(synchronize_session=False)
            )
            update_span.set_attribute("db.rows_affected", result.rowcount)

        if result.rowcount != 1:
            current = db.query(Product.name, Product.stock).filter(
                Product.id == item.product_id
            ).first()
            name, available = current if current else (item.product_id, 0)
            raise InsufficientStockError(item.product_id, name, available)

    def get_order(self, db: Session, order_id: str) -> Optional[Order]:
        return _order_query(db).filter(Order.id == order_id).first()

    def track_order(self, db: Session, search_value: str) -> Order:
        """
        Find an order by order number, falling back to its id.

        Raises:
            ValidationError: If no search value is given
            NotFoundError: If neither lookup matches
        """
        if not search_value:
            raise ValidationError("Order number or order ID is required")

        with self.tracer.start_as_current_span("db.query.track_order") as db_span:
            db_span.set_attribute("db.operation", "SELECT")
            db_span.set_attribute("db.table", "orders")

            order = _order_query(db).filter(Order.order_number == search_value).first()
            if order is None:
                order = _order_query(db).filter(Order.id == search_value).first()

        if order is None:
            raise NotFoundError("Order not found")
        return order

    def get_user_orders(self, db: Session, user_id: str) -> List[Order]:
        """
        Get all orders for a user, newest first.

        Args:
            db: Database session
            user_id: User identifier

        Returns:
            List of orders
        """
        with self.tracer.start_as_current_span("db.query.get_user_orders") as db_span:
            db_span.set_attribute("db.operation", "SELECT")
            db_span.set_attribute("db.table", "orders")
            db_span.set_attribute("user.id", user_id)

            orders = (
                _order_query(db)
                .filter(Order.user_id == user_id)
                .order_by(Order.created_at.desc())
                .all()
            )

            db_span.set_attribute("db.rows_returned", len(orders))

            return orders

    def resolve_customer(
        self,
        db: Session,
        user_id: Optional[str],
        customer_email: Optional[str],
        customer_name: Optional[str]
    ) -> User:
        """
        Resolve the owner of a machine-client order.

        An explicit user id must exist. Otherwise the email selects an
        existing account or stages a guest one with no usable password; the
        guest is committed together with the order or not at all.
        """
        if user_id:
            user = db.query(User).filter(User.id == user_id).first()
            if user is None:
                raise NotFoundError(f"User not found: {user_id}")
            return user

        if not customer_email:
            raise ValidationError("userId or customerEmail is required")

        user = db.query(User).filter(User.email == customer_email).first()
        if user is None:
            user = User(
                email=customer_email,
                name=customer_name or "Guest",
                password="",
                role="USER"
            )
            db.add(user)
            # Flushed, not committed: the guest only persists if the order commits
            db.flush()
            logger.info("Staged guest user for API order", extra={"user_id": user.id})
        return user
