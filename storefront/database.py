"""Database connection and session management."""
import logging
from typing import Generator

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from storefront.config import DATABASE_URL, SEED_DEMO_DATA
from storefront.models import Base

logger = logging.getLogger(__name__)


def create_db_engine(url: str) -> Engine:
    """
    Build the process-wide engine.

    SQLite (used for local runs and tests) gets a single shared connection;
    every other backend gets a bounded connection pool.
    """
    if url.startswith("sqlite"):
        return create_engine(
            url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )

    return create_engine(
        url,
        pool_size=10,
        max_overflow=20,  # Burst capacity for checkout spikes
        pool_pre_ping=True,  # Verify connections before use
        pool_recycle=3600,  # Recycle connections after 1 hour
        pool_timeout=30,  # Wait max 30 seconds for a connection
        echo_pool=False
    )


engine = create_db_engine(DATABASE_URL)

# Create session factory
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db() -> Generator[Session, None, None]:
    """
    Dependency for getting database session.

    Yields:
        Database session, closed when the request finishes
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db() -> None:
    """Create database tables and seed demo data when the catalog is empty."""
    Base.metadata.create_all(bind=engine)

    if not SEED_DEMO_DATA:
        return

    # Local import: seed_data reaches back into this module through auth
    from storefront.seed_data import seed_demo_data

    db = SessionLocal()
    try:
        seed_demo_data(db)
    finally:
        db.close()
