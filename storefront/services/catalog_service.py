"""Product catalog service."""
import logging
from typing import Any, Dict, List, Optional, Tuple

from opentelemetry import trace
from sqlalchemy import func, or_
from sqlalchemy.orm import Session, joinedload

from storefront.errors import NotFoundError
from storefront.models import Product, Review
from storefront.monitoring import product_views_counter

logger = logging.getLogger(__name__)

SORT_ORDERS = {
    "price-asc": Product.price.asc(),
    "price-desc": Product.price.desc(),
    "name": Product.name.asc(),
}

PRODUCT_COLUMNS = [column.name for column in Product.__table__.columns]


def product_to_dict(
    product: Product,
    average_rating: Optional[float] = None,
    review_count: int = 0
) -> Dict[str, Any]:
    """Column values plus computed rating fields, ready for ProductResponse."""
    data = {column: getattr(product, column) for column in PRODUCT_COLUMNS}
    data["average_rating"] = float(average_rating or 0)
    data["review_count"] = review_count
    return data


def round_rating(value: float) -> float:
    return round(value * 10) / 10


class CatalogService:
    """Read-side catalog queries with ratings computed from reviews on read."""

    def __init__(self):
        self.tracer = trace.get_tracer(__name__)

    def _rating_stats(self, db: Session, product_ids: List[str]) -> Dict[str, Tuple[float, int]]:
        if not product_ids:
            return {}

        with self.tracer.start_as_current_span("db.query.review_stats") as db_span:
            db_span.set_attribute("db.operation", "SELECT")
            db_span.set_attribute("db.table", "reviews")

            rows = (
                db.query(Review.product_id, func.avg(Review.rating), func.count(Review.id))
                .filter(Review.product_id.in_(product_ids))
                .group_by(Review.product_id)
                .all()
            )
        return {product_id: (float(avg or 0), count) for product_id, avg, count in rows}

    def list_products(
        self,
        db: Session,
        category: Optional[str] = None,
        subcategory: Optional[str] = None,
        search: Optional[str] = None,
        search_category: bool = True,
        min_price: Optional[int] = None,
        max_price: Optional[int] = None,
        sort_by: Optional[str] = None,
        limit: int = 50,
        offset: int = 0,
        rating_precision: bool = False
    ) -> Dict[str, Any]:
        """
        List active products with optional filters.

        Args:
            db: Database session
            category: Exact category; ``all`` disables the filter
            subcategory: Exact subcategory
            search: Case-insensitive substring over name and description
                (and category when `search_category` is set)
            min_price: Inclusive lower price bound
            max_price: Inclusive upper price bound
            sort_by: ``price-asc``, ``price-desc`` or ``name``; newest first otherwise
            limit: Page size
            offset: Rows to skip
            rating_precision: Round average ratings to one decimal

        Returns:
            Products page with total count
        """
        query = db.query(Product).filter(Product.is_active.is_(True))

        if category and category != "all":
            query = query.filter(Product.category == category)
        if subcategory:
            query = query.filter(Product.subcategory == subcategory)
        if search:
            pattern = f"%{search}%"
            conditions = [Product.name.ilike(pattern), Product.description.ilike(pattern)]
            if search_category:
                conditions.append(Product.category.ilike(pattern))
            query = query.filter(or_(*conditions))
        if min_price is not None:
            query = query.filter(Product.price >= min_price)
        if max_price is not None:
            query = query.filter(Product.price <= max_price)

        with self.tracer.start_as_current_span("db.query.list_products") as db_span:
            db_span.set_attribute("db.operation", "SELECT")
            db_span.set_attribute("db.table", "products")

            total = query.count()
            products = (
                query.order_by(SORT_ORDERS.get(sort_by, Product.created_at.desc()))
                .offset(offset)
                .limit(limit)
                .all()
            )
            db_span.set_attribute("db.rows_returned", len(products))

        stats = self._rating_stats(db, [p.id for p in products])
        results = []
        for product in products:
            average, count = stats.get(product.id, (0.0, 0))
            if rating_precision:
                average = round_rating(average)
            results.append(product_to_dict(product, average, count))

        product_views_counter.add(1, {"view": "list"})

        return {
            "products": results,
            "total": total,
            "limit": limit,
            "offset": offset
        }

    def get_product(
        self,
        db: Session,
        product_id: str,
        include_reviews: bool = True,
        rating_precision: bool = False,
        active_only: bool = False
    ) -> Dict[str, Any]:
        """
        Get one product with its rating and, optionally, its reviews.

        Raises:
            NotFoundError: If the product does not exist
        """
        query = db.query(Product).filter(Product.id == product_id)
        if active_only:
            query = query.filter(Product.is_active.is_(True))
        product = query.first()
        if product is None:
            raise NotFoundError("Product not found")

        reviews = (
            db.query(Review)
            .options(joinedload(Review.user))
            .filter(Review.product_id == product_id)
            .order_by(Review.created_at.desc())
            .all()
        )
        count = len(reviews)
        average = sum(review.rating for review in reviews) / count if count else 0.0
        if rating_precision:
            average = round_rating(average)

        data = product_to_dict(product, average, count)
        if include_reviews:
            data["reviews"] = reviews

        product_views_counter.add(1, {"view": "detail", "category": product.category})
        return data
