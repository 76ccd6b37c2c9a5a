"""Authentication API router."""
import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from storefront.database import get_db
from storefront.dependencies import get_user_service
from storefront.errors import ValidationError
from storefront.schemas import AuthResponse, LoginRequest, SignupRequest
from storefront.services.user_service import InvalidCredentialsError, UserService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["authentication"])


@router.post("/signup", response_model=AuthResponse, status_code=201)
def signup(
    request: SignupRequest,
    db: Session = Depends(get_db),
    user_service: UserService = Depends(get_user_service)
):
    """Create an account and return a bearer token valid for seven days."""
    try:
        user, token = user_service.signup(
            db=db,
            email=request.email,
            password=request.password,
            name=request.name
        )
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return {"user": user, "token": token}


@router.post("/login", response_model=AuthResponse)
def login(
    request: LoginRequest,
    db: Session = Depends(get_db),
    user_service: UserService = Depends(get_user_service)
):
    """Authenticate with email and password and return a bearer token."""
    try:
        user, token = user_service.login(db, request.email, request.password)
    except InvalidCredentialsError as e:
        raise HTTPException(status_code=401, detail=str(e))

    return {"user": user, "token": token}
