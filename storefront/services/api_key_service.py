"""API key management for the v1 machine-client surface."""
import logging
import secrets
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from storefront.models import ApiKey

logger = logging.getLogger(__name__)


class ApiKeyService:
    """Service for validating and issuing API keys."""

    def validate(self, db: Session, key: str) -> bool:
        """
        Check that `key` exists and is active, stamping its last-used time.

        Args:
            db: Database session
            key: Raw key from the x-api-key header

        Returns:
            True if the key may be used
        """
        api_key = db.query(ApiKey).filter(
            ApiKey.key == key,
            ApiKey.is_active.is_(True)
        ).first()
        if api_key is None:
            return False

        api_key.last_used = datetime.utcnow()
        db.commit()
        return True

    def generate(
        self,
        db: Session,
        name: str,
        description: Optional[str] = None
    ) -> ApiKey:
        """Create an active key made of 32 random bytes, hex encoded."""
        api_key = ApiKey(
            key=secrets.token_hex(32),
            name=name,
            description=description,
            is_active=True
        )
        db.add(api_key)
        db.commit()
        db.refresh(api_key)

        logger.info("Generated API key", extra={"api_key_id": api_key.id, "key_name": name})
        return api_key

    def lookup(self, db: Session, key: str) -> Optional[ApiKey]:
        return db.query(ApiKey).filter(ApiKey.key == key).first()

    def ensure(self, db: Session, key: str, name: str, description: Optional[str] = None) -> ApiKey:
        """Insert `key` if absent and make sure it is active."""
        api_key = self.lookup(db, key)
        if api_key is None:
            api_key = ApiKey(key=key, name=name, description=description)
            db.add(api_key)
        api_key.is_active = True
        db.commit()
        db.refresh(api_key)
        return api_key
