"""Database configuration and session management."""

from __future__ import annotations

import logging
from collections.abc import Generator, Iterator
from contextlib import contextmanager

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.exc import InterfaceError, OperationalError
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from marketplace_messaging.config import Settings, get_settings
from marketplace_messaging.domain.errors import TransientStoreError


class Base(DeclarativeBase):
    """Base class for SQLAlchemy models."""


settings = get_settings()

logger = logging.getLogger(__name__)


def _build_engine(settings: Settings) -> Engine:
    """Create the SQLAlchemy engine for the configured database URL."""

    connect_args: dict[str, object] = {}
    if settings.database_url.startswith("sqlite"):
        # Sync route handlers run in a worker thread pool.
        connect_args["check_same_thread"] = False
    return create_engine(
        settings.database_url, pool_pre_ping=True, connect_args=connect_args
    )


engine = _build_engine(settings)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def initialize_database() -> None:
    """Ensure all ORM models have corresponding database tables."""

    from marketplace_messaging.infrastructure import models  # noqa: F401  # ensure models are imported

    Base.metadata.create_all(bind=engine, checkfirst=True)


def get_db() -> Generator:
    """Yield a database session and close it afterwards."""

    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def store_guard(session: Session, *, retryable: bool = True) -> Iterator[Session]:
    """Translate connectivity failures of the store into :class:`TransientStoreError`.

    ``retryable`` tells the caller whether replaying the operation is safe.
    """

    try:
        yield session
    except (OperationalError, InterfaceError) as exc:
        session.rollback()
        logger.error("Database unavailable: %s", exc)
        raise TransientStoreError(
            "The data store is temporarily unavailable", retryable=retryable
        ) from exc


__all__ = [
    "Base",
    "SessionLocal",
    "engine",
    "get_db",
    "initialize_database",
    "store_guard",
]
