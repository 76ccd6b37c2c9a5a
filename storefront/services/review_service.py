"""Product review service."""
import logging
from typing import Any, Dict, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload

from storefront.errors import ForbiddenError, NotFoundError, ValidationError
from storefront.models import Product, Review
from storefront.monitoring import reviews_counter
from storefront.services.catalog_service import round_rating

logger = logging.getLogger(__name__)

ALREADY_REVIEWED = "You have already reviewed this product"


def _check_rating(rating: Any) -> None:
    if isinstance(rating, bool) or not isinstance(rating, int) or not 1 <= rating <= 5:
        raise ValidationError("Rating must be between 1 and 5")


class ReviewService:
    """One review per (user, product); edits restricted to the author."""

    def list_reviews(self, db: Session, product_id: Optional[str]) -> Dict[str, Any]:
        if not product_id:
            raise ValidationError("Product ID is required")

        reviews = (
            db.query(Review)
            .options(joinedload(Review.user))
            .filter(Review.product_id == product_id)
            .order_by(Review.created_at.desc())
            .all()
        )
        total = len(reviews)
        average = sum(r.rating for r in reviews) / total if total else 0.0

        return {
            "reviews": reviews,
            "average_rating": round_rating(average),
            "total_reviews": total
        }

    def create_review(
        self,
        db: Session,
        user_id: str,
        product_id: Optional[str],
        rating: Optional[int],
        comment: Optional[str]
    ) -> Review:
        """
        Create a review.

        The existence check gives the friendly error; the unique constraint
        on (user_id, product_id) catches concurrent duplicates.

        Raises:
            ValidationError: Missing fields, bad rating or duplicate review
            NotFoundError: Unknown product
        """
        if not product_id or rating is None:
            raise ValidationError("Product ID and rating are required")
        _check_rating(rating)

        if db.query(Product.id).filter(Product.id == product_id).first() is None:
            raise NotFoundError("Product not found")

        existing = db.query(Review).filter(
            Review.product_id == product_id,
            Review.user_id == user_id
        ).first()
        if existing is not None:
            raise ValidationError(ALREADY_REVIEWED)

        review = Review(
            product_id=product_id,
            user_id=user_id,
            rating=rating,
            comment=comment or ""
        )
        db.add(review)
        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            logger.info("Duplicate review rejected by constraint", extra={
                "user_id": user_id,
                "product_id": product_id
            })
            raise ValidationError(ALREADY_REVIEWED)

        reviews_counter.add(1, {"action": "create", "rating": str(rating)})
        logger.info("Review created", extra={"user_id": user_id, "product_id": product_id})
        return self._reload(db, review.id)

    def update_review(
        self,
        db: Session,
        user_id: str,
        review_id: str,
        rating: Optional[int] = None,
        comment: Optional[str] = None
    ) -> Review:
        review = self._owned_review(db, user_id, review_id, "You can only edit your own reviews")

        if rating is not None:
            _check_rating(rating)
            review.rating = rating
        if comment is not None:
            review.comment = comment

        db.commit()
        reviews_counter.add(1, {"action": "update"})
        return self._reload(db, review.id)

    def delete_review(self, db: Session, user_id: str, review_id: str) -> None:
        review = self._owned_review(db, user_id, review_id, "You can only delete your own reviews")
        db.delete(review)
        db.commit()
        reviews_counter.add(1, {"action": "delete"})
        logger.info("Review deleted", extra={"user_id": user_id, "review_id": review_id})

    def _owned_review(self, db: Session, user_id: str, review_id: str, denied: str) -> Review:
        review = db.query(Review).filter(Review.id == review_id).first()
        if review is None:
            raise NotFoundError("Review not found")
        if review.user_id != user_id:
            raise ForbiddenError(denied)
        return review

    def _reload(self, db: Session, review_id: str) -> Review:
        return (
            db.query(Review)
            .options(joinedload(Review.user))
            .filter(Review.id == review_id)
            .one()
        )
