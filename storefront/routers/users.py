"""User profile API router."""
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from storefront.auth import CurrentUser, get_current_user
from storefront.database import get_db
from storefront.dependencies import get_user_service
from storefront.errors import NotFoundError
from storefront.schemas import ProfileResponse, ProfileUpdate
from storefront.services.user_service import UserService

router = APIRouter(prefix="/users", tags=["users"])


@router.get("/profile", response_model=ProfileResponse)
def get_profile(
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
    user_service: UserService = Depends(get_user_service)
):
    """Get the caller's profile with order and review counts."""
    try:
        return user_service.get_profile(db, user.user_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.put("/profile", response_model=ProfileResponse)
def update_profile(
    request: ProfileUpdate,
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
    user_service: UserService = Depends(get_user_service)
):
    """Update the caller's name and/or phone; empty values are ignored."""
    try:
        return user_service.update_profile(db, user.user_id, request.name, request.phone)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
