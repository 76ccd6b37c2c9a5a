"""Authentication utilities: bearer tokens, role checks and API keys."""
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional
import logging

import jwt
from fastapi import Depends, Header, HTTPException
from sqlalchemy.orm import Session

from storefront import config
from storefront.database import get_db
from storefront.monitoring import (
    api_key_failures_counter,
    auth_attempts_counter,
    auth_failures_counter,
)
from storefront.services.api_key_service import ApiKeyService

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CurrentUser:
    """Identity carried by a verified bearer token."""
    user_id: str
    email: str
    role: str

    @property
    def is_admin(self) -> bool:
        return self.role == "ADMIN"


def create_access_token(user_id: str, email: str, role: str) -> str:
    """
    Mint a signed bearer token.

    Args:
        user_id: User identifier
        email: User email
        role: USER or ADMIN

    Returns:
        Encoded JWT expiring after JWT_EXPIRES_DAYS
    """
    now = datetime.now(timezone.utc)
    payload = {
        "userId": user_id,
        "email": email,
        "role": role,
        "iat": now,
        "exp": now + timedelta(days=config.JWT_EXPIRES_DAYS),
    }
    return jwt.encode(payload, config.require_jwt_secret(), algorithm=config.JWT_ALGORITHM)


def decode_access_token(token: str) -> Optional[CurrentUser]:
    """Return the token's identity, or None if the signature or expiry is invalid."""
    try:
        payload = jwt.decode(
            token, config.require_jwt_secret(), algorithms=[config.JWT_ALGORITHM]
        )
    except jwt.PyJWTError:
        return None

    if not payload.get("userId"):
        return None
    return CurrentUser(
        user_id=payload["userId"],
        email=payload.get("email", ""),
        role=payload.get("role", "USER"),
    )


def get_current_user(authorization: Optional[str] = Header(None)) -> CurrentUser:
    """
    Verify the bearer token on the request.

    Args:
        authorization: Authorization header value

    Returns:
        The authenticated user

    Raises:
        HTTPException: 401 if the token is missing or invalid
    """
    auth_attempts_counter.add(1, {"type": "bearer_token"})

    if authorization is None:
        auth_failures_counter.add(1, {"reason": "missing_header"})
        logger.warning("Authentication failed: Missing authorization header")
        raise HTTPException(status_code=401, detail="Authentication required")

    parts = authorization.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        auth_failures_counter.add(1, {"reason": "invalid_format"})
        logger.warning("Authentication failed: Invalid authorization header format")
        raise HTTPException(status_code=401, detail="Authentication required")

    user = decode_access_token(parts[1])
    if user is None:
        auth_failures_counter.add(1, {"reason": "invalid_token"})
        logger.warning("Authentication failed: Invalid token")
        raise HTTPException(status_code=401, detail="Invalid token")

    logger.debug("Authentication successful", extra={"user_id": user.user_id})
    return user


def require_admin(user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
    """Allow only tokens carrying the ADMIN role."""
    if not user.is_admin:
        auth_failures_counter.add(1, {"reason": "not_admin"})
        logger.warning("Admin access denied", extra={"user_id": user.user_id})
        raise HTTPException(status_code=403, detail="Admin access required")
    return user


def verify_api_key(
    x_api_key: Optional[str] = Header(None),
    db: Session = Depends(get_db)
) -> str:
    """
    Gate the v1 surface on an active API key.

    A successful check stamps the key's last-used time.

    Raises:
        HTTPException: 401 if the key is missing, unknown or inactive
    """
    if not x_api_key or not ApiKeyService().validate(db, x_api_key):
        api_key_failures_counter.add(1, {"reason": "missing" if not x_api_key else "invalid"})
        logger.warning("Rejected v1 request: invalid or missing API key")
        raise HTTPException(status_code=401, detail="Invalid or missing API key")
    return x_api_key
