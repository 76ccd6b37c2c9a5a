"""Account service: signup, login and profile."""
import logging
from typing import Any, Dict, Optional, Tuple

import bcrypt
from sqlalchemy import func
from sqlalchemy.orm import Session

from storefront import config
from storefront.auth import create_access_token
from storefront.errors import NotFoundError, ValidationError
from storefront.models import Order, Review, User
from storefront.monitoring import auth_attempts_counter, auth_failures_counter

logger = logging.getLogger(__name__)


class InvalidCredentialsError(ValueError):
    """Login failed; the message never says which part was wrong."""


def hash_password(password: str, rounds: Optional[int] = None) -> str:
    salt = bcrypt.gensalt(rounds=rounds or config.BCRYPT_ROUNDS)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def verify_password(password: str, hashed: str) -> bool:
    # Guest accounts created through the API have no password
    if not hashed:
        return False
    try:
        return bcrypt.checkpw(password.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        logger.warning("Stored password hash is malformed")
        return False


def _token_for(user: User) -> str:
    return create_access_token(user.id, user.email, user.role)


class UserService:
    """Service for user accounts."""

    def signup(
        self,
        db: Session,
        email: str,
        password: str,
        name: Optional[str] = None
    ) -> Tuple[User, str]:
        """
        Create an account and mint its token.

        Raises:
            ValidationError: If the email is already registered
        """
        auth_attempts_counter.add(1, {"type": "signup"})

        if db.query(User.id).filter(User.email == email).first() is not None:
            auth_failures_counter.add(1, {"reason": "email_taken"})
            raise ValidationError("User already exists with this email")

        user = User(
            email=email,
            password=hash_password(password),
            name=name or email.split("@")[0],
            is_verified=False
        )
        db.add(user)
        db.commit()
        db.refresh(user)

        logger.info("User signed up", extra={"user_id": user.id})
        return user, _token_for(user)

    def login(self, db: Session, email: str, password: str) -> Tuple[User, str]:
        """
        Verify credentials and mint a token.

        Raises:
            InvalidCredentialsError: Unknown email or wrong password
        """
        auth_attempts_counter.add(1, {"type": "login"})

        user = db.query(User).filter(User.email == email).first()
        if user is None or not verify_password(password, user.password):
            auth_failures_counter.add(1, {"reason": "invalid_credentials"})
            logger.warning("Login failed: Invalid credentials")
            raise InvalidCredentialsError("Invalid credentials")

        logger.info("User logged in successfully", extra={"user_id": user.id})
        return user, _token_for(user)

    def get_profile(self, db: Session, user_id: str) -> Dict[str, Any]:
        user = db.query(User).filter(User.id == user_id).first()
        if user is None:
            raise NotFoundError("User not found")

        order_count = db.query(func.count(Order.id)).filter(Order.user_id == user_id).scalar()
        review_count = db.query(func.count(Review.id)).filter(Review.user_id == user_id).scalar()

        return {
            "id": user.id,
            "email": user.email,
            "name": user.name,
            "phone": user.phone,
            "is_verified": user.is_verified,
            "role": user.role,
            "created_at": user.created_at,
            "counts": {"orders": order_count, "reviews": review_count}
        }

    def update_profile(
        self,
        db: Session,
        user_id: str,
        name: Optional[str] = None,
        phone: Optional[str] = None
    ) -> User:
        """Apply non-empty name/phone changes."""
        user = db.query(User).filter(User.id == user_id).first()
        if user is None:
            raise NotFoundError("User not found")

        if name:
            user.name = name
        if phone:
            user.phone = phone
        db.commit()
        db.refresh(user)
        return user
