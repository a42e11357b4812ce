"""
database.py — Database Session & Connection Management

Purpose:
- Create and provide access to the Supabase Postgres database.
- Manage SQLAlchemy Engine + Session lifecycle.
- Expose a FastAPI dependency `get_db()` that yields a session per-request.

Key Characteristics:
- Synchronous SQLAlchemy engine.
- No migrations here — schema is expected to already exist in Supabase.
- Session is opened at the start of a request and closed after the response.

This module does NOT:
- Define ORM models (see wasteintel/models/*).
- Perform any queries or business logic.
"""

from typing import Iterator, Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from wasteintel.core.config import settings
from wasteintel.core.errors import DatabaseNotConfiguredError


def normalize_db_url(db_url: str) -> str:
    """
    Use the psycopg (v3) driver for bare `postgresql://` URLs.

    Supabase hands out `postgresql://` (and sometimes `postgres://`) strings;
    SQLAlchemy would otherwise pick psycopg2.
    """
    db_url = db_url.strip()
    if db_url.startswith("postgres://"):
        db_url = db_url.replace("postgres://", "postgresql://", 1)
    if db_url.startswith("postgresql://") and "+" not in db_url.split("://")[0]:
        db_url = db_url.replace("postgresql://", "postgresql+psycopg://", 1)
    return db_url


def build_engine(db_url: str) -> Engine:
    return create_engine(
        normalize_db_url(db_url),
        pool_pre_ping=True,  # Ensures connections are valid before use
    )


# -----------------------------------------------------------------------------
# SQLAlchemy Engine
# -----------------------------------------------------------------------------

# Only create engine if SUPABASE_DB_URL is provided (health check and upload
# parsing work without a database)
engine: Optional[Engine] = None
SessionLocal: Optional[sessionmaker] = None

if settings.SUPABASE_DB_URL.strip():
    engine = build_engine(settings.SUPABASE_DB_URL)
    SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


# -----------------------------------------------------------------------------
# FastAPI Dependency
# -----------------------------------------------------------------------------

def get_db() -> Iterator[Session]:
    """
    FastAPI dependency: yields a database session for the duration of the request.

    Usage in API endpoint:
        def endpoint(db: Session = Depends(get_db)):
            db.query(...)

    Raises:
        DatabaseNotConfiguredError: If SUPABASE_DB_URL is empty (rendered as 503)
    """
    if SessionLocal is None:
        raise DatabaseNotConfiguredError(
            "Database connection not available. Set SUPABASE_DB_URL to enable data endpoints."
        )

    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
