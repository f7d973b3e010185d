"""
Engine and session wiring for the upgrade API.

Subscriptions and upgrade prompts live in the main Vangarments Postgres
database; the engine is built lazily from DATABASE_URL on first use.

Usage:
    from vangarments.database.session import get_db_session

    @router.get("/api/upgrade/usage")
    def usage(db: Session = Depends(get_db_session)):
        ...
"""

import os
import logging
from typing import Any, Dict, Generator, Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, Session
from fastapi import HTTPException, status

logger = logging.getLogger(__name__)

_engine: Optional[Engine] = None
_session_factory: Optional[sessionmaker] = None


def database_url_from_env() -> Optional[str]:
    """
    DATABASE_URL with the legacy postgres:// scheme rewritten.

    Returns None when the variable is unset or blank.
    """
    url = os.getenv("DATABASE_URL", "").strip()
    if not url:
        return None

    # SQLAlchemy 2 no longer accepts the postgres:// alias
    if url.startswith("postgres://"):
        url = "postgresql://" + url[len("postgres://"):]
    return url


def _engine_options(url: str) -> Dict[str, Any]:
    if url.startswith("sqlite"):
        return {"connect_args": {"check_same_thread": False}}
    return {
        "pool_size": int(os.getenv("DB_POOL_SIZE", 5)),
        "max_overflow": int(os.getenv("DB_MAX_OVERFLOW", 10)),
        "pool_pre_ping": True,
        "pool_recycle": 1800,
    }


def get_engine() -> Engine:
    """
    Lazily create the process-wide engine.

    Raises:
        ValueError: DATABASE_URL is not set.
    """
    global _engine
    if _engine is None:
        url = database_url_from_env()
        if url is None:
            logger.error("Cannot create database engine: DATABASE_URL is not set")
            raise ValueError("DATABASE_URL environment variable is not set")

        _engine = create_engine(url, **_engine_options(url))
        logger.info("Database engine created", extra={"dialect": _engine.dialect.name})
    return _engine


def get_session_factory() -> sessionmaker:
    global _session_factory
    if _session_factory is None:
        _session_factory = sessionmaker(
            autocommit=False,
            autoflush=False,
            bind=get_engine(),
        )
    return _session_factory


def get_db_session() -> Generator[Session, None, None]:
    """
    Request-scoped session dependency.

    Responds 503 when no database is configured so that a missing
    DATABASE_URL is not reported as an entitlement denial.
    """
    try:
        factory = get_session_factory()
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Database not configured",
        )

    session = factory()
    try:
        yield session
    finally:
        session.close()


def reset_engine() -> None:
    """Dispose the engine and forget the session factory (for tests only)."""
    global _engine, _session_factory
    if _engine is not None:
        _engine.dispose()
    _engine = None
    _session_factory = None
