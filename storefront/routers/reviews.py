"""Reviews API router."""
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from storefront.auth import CurrentUser, get_current_user
from storefront.database import get_db
from storefront.dependencies import get_review_service
from storefront.errors import ForbiddenError, NotFoundError, ValidationError
from storefront.schemas import (
    MessageResponse,
    ReviewCreate,
    ReviewListResponse,
    ReviewResponse,
    ReviewUpdate,
)
from storefront.services.review_service import ReviewService

router = APIRouter(prefix="/reviews", tags=["reviews"])


def _translate(e: Exception) -> HTTPException:
    if isinstance(e, NotFoundError):
        return HTTPException(status_code=404, detail=str(e))
    if isinstance(e, ForbiddenError):
        return HTTPException(status_code=403, detail=str(e))
    return HTTPException(status_code=400, detail=str(e))


@router.get("", response_model=ReviewListResponse)
def list_reviews(
    product_id: Optional[str] = Query(None, alias="productId"),
    db: Session = Depends(get_db),
    review_service: ReviewService = Depends(get_review_service)
):
    """Get a product's reviews with the average rating."""
    try:
        return review_service.list_reviews(db, product_id)
    except ValidationError as e:
        raise _translate(e)


@router.post("", response_model=ReviewResponse, status_code=201)
def create_review(
    request: ReviewCreate,
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
    review_service: ReviewService = Depends(get_review_service)
):
    """Review a product - one review per user and product."""
    try:
        return review_service.create_review(
            db,
            user_id=user.user_id,
            product_id=request.product_id,
            rating=request.rating,
            comment=request.comment
        )
    except (ValidationError, NotFoundError) as e:
        raise _translate(e)


@router.put("/{review_id}", response_model=ReviewResponse)
def update_review(
    review_id: str,
    request: ReviewUpdate,
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
    review_service: ReviewService = Depends(get_review_service)
):
    """Edit your own review."""
    try:
        return review_service.update_review(
            db,
            user_id=user.user_id,
            review_id=review_id,
            rating=request.rating,
            comment=request.comment
        )
    except (ValidationError, NotFoundError, ForbiddenError) as e:
        raise _translate(e)


@router.delete("/{review_id}", response_model=MessageResponse)
def delete_review(
    review_id: str,
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
    review_service: ReviewService = Depends(get_review_service)
):
    """Delete your own review."""
    try:
        review_service.delete_review(db, user.user_id, review_id)
    except (NotFoundError, ForbiddenError) as e:
        raise _translate(e)
    return {"message": "Review deleted successfully"}
