"""Admin back-office service: product, order and user management."""
import json
import logging
import math
from datetime import datetime, timedelta
from typing import Any, Dict, Optional

from opentelemetry import trace
from sqlalchemy import func, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload, selectinload

from storefront.errors import NotFoundError, ValidationError
from storefront.models import (
    ORDER_STATUSES,
    TRACKING_STATUSES,
    USER_ROLES,
    Order,
    OrderItem,
    OrderTracking,
    Product,
    User,
)
from storefront.monitoring import order_status_changes_counter
from storefront.services.catalog_service import product_to_dict

logger = logging.getLogger(__name__)

LOW_STOCK_THRESHOLD = 10
RECENT_REVENUE_DAYS = 7
RECENT_ORDERS_LIMIT = 10
JSON_LIST_FIELDS = ("images", "sizes", "colors")


def paginate(page: Optional[int], limit: Optional[int]) -> tuple:
    """Normalize page/limit (defaults 1 and 50) and compute the row offset."""
    page = page if page and page > 0 else 1
    limit = limit if limit and limit > 0 else 50
    return page, limit, (page - 1) * limit


def tracking_status_for(order_status: str) -> str:
    """Map an order status onto the tracking mirror's smaller vocabulary."""
    return order_status if order_status in TRACKING_STATUSES else "CREATED"


class AdminService:
    """Service for admin CRUD and dashboard statistics."""

    def __init__(self):
        self.tracer = trace.get_tracer(__name__)

    # --- Products ---------------------------------------------------------

    def list_products(
        self,
        db: Session,
        page: Optional[int] = None,
        limit: Optional[int] = None,
        search: Optional[str] = None,
        category: Optional[str] = None
    ) -> Dict[str, Any]:
        page, limit, skip = paginate(page, limit)

        query = db.query(Product)
        if search:
            pattern = f"%{search}%"
            query = query.filter(or_(
                Product.name.ilike(pattern),
                Product.description.ilike(pattern),
                Product.id.ilike(pattern)
            ))
        if category:
            query = query.filter(Product.category == category)

        total = query.count()
        products = query.order_by(Product.created_at.desc()).offset(skip).limit(limit).all()

        return {
            "products": [product_to_dict(p) for p in products],
            "total": total,
            "page": page,
            "total_pages": math.ceil(total / limit)
        }

    def create_product(self, db: Session, data: Dict[str, Any]) -> Dict[str, Any]:
        """
        Create a product.

        Raises:
            ValidationError: Missing id/name/price/category or duplicate id
        """
        if not data.get("id") or not data.get("name") or data.get("price") is None \
                or not data.get("category"):
            raise ValidationError("Missing required fields")

        product = Product(
            id=data["id"],
            name=data["name"],
            description=data.get("description") or "",
            price=data["price"],
            base_price=data["base_price"] if data.get("base_price") is not None else data["price"],
            category=data["category"],
            subcategory=data.get("subcategory"),
            image=data.get("image") or "/placeholder.svg",
            images=json.dumps(data.get("images") or []),
            sizes=json.dumps(data.get("sizes") or []),
            colors=json.dumps(data.get("colors") or []),
            stock=data["stock"] if data.get("stock") is not None else 0,
            is_active=data["is_active"] if data.get("is_active") is not None else True
        )
        db.add(product)
        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            raise ValidationError(f"Product {data['id']} already exists")
        db.refresh(product)

        logger.info("Product created", extra={"product_id": product.id})
        return product_to_dict(product)

    def update_product(self, db: Session, product_id: str, changes: Dict[str, Any]) -> Dict[str, Any]:
        """Apply only the fields present in `changes`."""
        product = db.query(Product).filter(Product.id == product_id).first()
        if product is None:
            raise NotFoundError("Product not found")

        for field, value in changes.items():
            if field in JSON_LIST_FIELDS:
                value = json.dumps(value or [])
            setattr(product, field, value)

        db.commit()
        db.refresh(product)
        logger.info("Product updated", extra={"product_id": product_id, "fields": sorted(changes)})
        return product_to_dict(product)

    def delete_product(self, db: Session, product_id: str) -> None:
        product = db.query(Product).filter(Product.id == product_id).first()
        if product is None:
            raise NotFoundError("Product not found")

        if db.query(OrderItem.id).filter(OrderItem.product_id == product_id).first() is not None:
            raise ValidationError("Product has orders and cannot be deleted; deactivate it instead")

        db.delete(product)
        db.commit()
        logger.info("Product deleted", extra={"product_id": product_id})

    # --- Orders -----------------------------------------------------------

    def _orders_query(self, db: Session):
        return db.query(Order).options(
            joinedload(Order.user),
            selectinload(Order.items).joinedload(OrderItem.product),
            joinedload(Order.tracking)
        )

    def list_orders(
        self,
        db: Session,
        page: Optional[int] = None,
        limit: Optional[int] = None,
        status: Optional[str] = None
    ) -> Dict[str, Any]:
        page, limit, skip = paginate(page, limit)

        count_query = db.query(func.count(Order.id))
        query = self._orders_query(db)
        if status:
            count_query = count_query.filter(Order.status == status)
            query = query.filter(Order.status == status)

        total = count_query.scalar()
        orders = query.order_by(Order.created_at.desc()).offset(skip).limit(limit).all()

        return {
            "orders": orders,
            "total": total,
            "page": page,
            "total_pages": math.ceil(total / limit)
        }

    def update_order_status(self, db: Session, order_id: str, status: Optional[str]) -> Order:
        """
        Change an order's status and refresh its tracking mirror.

        Raises:
            ValidationError: Missing or unknown status
            NotFoundError: Unknown order
        """
        if not status:
            raise ValidationError("Order ID and status required")
        if status not in ORDER_STATUSES:
            raise ValidationError(f"Invalid status: {status}")

        order = db.query(Order).filter(Order.id == order_id).first()
        if order is None:
            raise NotFoundError("Order not found")

        with self.tracer.start_as_current_span("db.transaction.update_order_status") as db_span:
            db_span.set_attribute("order.id", order_id)
            db_span.set_attribute("order.status", status)

            previous = order.status
            order.status = status

            tracking_status = tracking_status_for(status)
            tracking = db.query(OrderTracking).filter(OrderTracking.order_id == order_id).first()
            if tracking is None:
                db.add(OrderTracking(order_id=order_id, status=tracking_status))
            else:
                tracking.status = tracking_status
                tracking.updated_at = datetime.utcnow()

            db.commit()

        order_status_changes_counter.add(1, {"status": status})
        logger.info("Order status updated", extra={
            "order_id": order_id,
            "from_status": previous,
            "to_status": status
        })

        db.expire_all()
        return self._orders_query(db).filter(Order.id == order_id).one()

    # --- Users ------------------------------------------------------------

    def list_users(
        self,
        db: Session,
        page: Optional[int] = None,
        limit: Optional[int] = None,
        search: Optional[str] = None
    ) -> Dict[str, Any]:
        page, limit, skip = paginate(page, limit)

        query = db.query(User)
        if search:
            pattern = f"%{search}%"
            query = query.filter(or_(User.name.ilike(pattern), User.email.ilike(pattern)))

        total = query.count()
        users = query.order_by(User.created_at.desc()).offset(skip).limit(limit).all()

        counts = dict(
            db.query(Order.user_id, func.count(Order.id))
            .filter(Order.user_id.in_([u.id for u in users]))
            .group_by(Order.user_id)
            .all()
        ) if users else {}

        return {
            "users": [
                {
                    "id": u.id,
                    "name": u.name,
                    "email": u.email,
                    "role": u.role,
                    "is_verified": u.is_verified,
                    "created_at": u.created_at,
                    "order_count": counts.get(u.id, 0)
                }
                for u in users
            ],
            "total": total,
            "page": page,
            "total_pages": math.ceil(total / limit)
        }

    def update_user_role(self, db: Session, user_id: str, role: Optional[str]) -> Dict[str, Any]:
        if not role:
            raise ValidationError("User ID and role required")
        if role not in USER_ROLES:
            raise ValidationError("Invalid role")

        user = db.query(User).filter(User.id == user_id).first()
        if user is None:
            raise NotFoundError("User not found")

        user.role = role
        db.commit()
        db.refresh(user)
        logger.info("User role updated", extra={"user_id": user_id, "role": role})

        return {
            "id": user.id,
            "name": user.name,
            "email": user.email,
            "role": user.role,
            "is_verified": user.is_verified,
            "created_at": user.created_at,
            "order_count": db.query(func.count(Order.id)).filter(Order.user_id == user_id).scalar()
        }

    # --- Dashboard --------------------------------------------------------

    def stats(self, db: Session) -> Dict[str, Any]:
        """Dashboard counters, revenue and the most recent orders."""
        since = datetime.utcnow() - timedelta(days=RECENT_REVENUE_DAYS)

        recent_orders = (
            db.query(Order)
            .options(selectinload(Order.items))
            .order_by(Order.created_at.desc())
            .limit(RECENT_ORDERS_LIMIT)
            .all()
        )

        return {
            "total_products": db.query(func.count(Product.id)).scalar(),
            "total_users": db.query(func.count(User.id)).scalar(),
            "total_orders": db.query(func.count(Order.id)).scalar(),
            "pending_orders": db.query(func.count(Order.id)).filter(Order.status == "PENDING").scalar(),
            "low_stock_products": db.query(func.count(Product.id)).filter(
                Product.stock < LOW_STOCK_THRESHOLD
            ).scalar(),
            "total_revenue": db.query(func.coalesce(func.sum(Order.total), 0)).scalar(),
            "recent_revenue": db.query(func.coalesce(func.sum(Order.total), 0)).filter(
                Order.created_at >= since
            ).scalar(),
            "recent_orders": [
                {
                    "id": o.id,
                    "order_number": o.order_number,
                    "total": o.total,
                    "status": o.status,
                    "created_at": o.created_at,
                    "customer_name": o.customer_name,
                    "customer_email": o.customer_email,
                    "item_count": sum(item.quantity for item in o.items)
                }
                for o in recent_orders
            ]
        }
