"""
Database base configuration for SQLAlchemy models.

Uses SQLAlchemy 2.0 style DeclarativeBase. Request handlers receive a
synchronous Session through the get_db dependency; FastAPI runs sync
endpoints in its threadpool, so each request gets its own connection.
"""

from sqlalchemy import create_engine
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker
from typing import Any, Dict, Generator
import os
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

_is_production = os.getenv("ENV", "development").lower() == "production"
DATABASE_URL = os.getenv("DATABASE_URL", "")
if not DATABASE_URL:
    if _is_production:
        raise RuntimeError("DATABASE_URL is not set or is empty.")
    DATABASE_URL = "postgresql://localhost:5432/quizhub_dev"

# Echo SQL in development only
DEBUG = os.getenv("DEBUG", "True").lower() in ("true", "1", "yes")

# Database connection pool settings
POOL_SIZE = int(os.getenv("DB_POOL_SIZE", "10"))  # Connections to maintain
POOL_MAX_OVERFLOW = int(
    os.getenv("DB_POOL_MAX_OVERFLOW", "20")
)  # Max extra connections when pool exhausted
POOL_TIMEOUT = int(
    os.getenv("DB_POOL_TIMEOUT", "30")
)  # Seconds to wait for available connection
POOL_RECYCLE = int(
    os.getenv("DB_POOL_RECYCLE", "3600")
)  # Recycle connections after 1 hour
POOL_PRE_PING = os.getenv("DB_POOL_PRE_PING", "True").lower() in (
    "true",
    "1",
    "yes",
)  # Test connections before use


def _engine_options(url: str) -> Dict[str, Any]:
    """Pool options for the configured backend.

    SQLite (local development, tests) does not take server pool settings.
    """
    if url.startswith("sqlite"):
        return {"connect_args": {"check_same_thread": False}}
    return {
        "pool_size": POOL_SIZE,
        "max_overflow": POOL_MAX_OVERFLOW,
        "pool_timeout": POOL_TIMEOUT,
        "pool_recycle": POOL_RECYCLE,
        "pool_pre_ping": POOL_PRE_PING,
    }


engine = create_engine(DATABASE_URL, echo=DEBUG, **_engine_options(DATABASE_URL))

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


class Base(DeclarativeBase):
    """
    SQLAlchemy 2.0 declarative base class with type annotation support.
    """

    pass


def get_db() -> Generator[Session, None, None]:
    """
    Dependency function to get database session.

    Yields a database session and ensures proper cleanup.
    """
    db = SessionLocal()
    try:
        yield db
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()
