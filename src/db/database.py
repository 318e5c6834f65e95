from __future__ import annotations

from collections.abc import Generator
from contextlib import contextmanager
from functools import lru_cache

from loguru import logger
from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import Session, sessionmaker

from config import get_settings
from src.db.models import Base

# Bound per session so the engine follows the current settings
SessionLocal = sessionmaker(autoflush=False)


@lru_cache
def get_engine() -> Engine:
    """Get the database engine for the configured URL."""
    settings = get_settings()
    return create_engine(settings.database_url, echo=settings.log_level == "DEBUG", pool_pre_ping=True)


def init_db(engine: Engine | None = None) -> None:
    """Initialize database tables."""
    engine = engine or get_engine()
    Base.metadata.create_all(bind=engine)
    logger.info(f"Database tables initialized on {engine.url.render_as_string(hide_password=True)}")


@contextmanager
def session_scope(engine: Engine | None = None) -> Generator[Session, None, None]:
    """Provide a transactional scope around a series of operations."""
    session = SessionLocal(bind=engine or get_engine())
    try:
        yield session
        session.commit()
    except Exception:  # Intentionally broad - rollback on any error before re-raising
        session.rollback()
        raise
    finally:
        session.close()


def get_session() -> Generator[Session, None, None]:
    """Yield a session that the caller commits."""
    session = SessionLocal(bind=get_engine())
    try:
        yield session
    finally:
        session.close()
