"""Async SQLAlchemy engine and session factory.

When DATABASE_URL is configured this module provides an asyncpg engine,
a session factory and a lifespan hook.  Without it every export is None
and the API wires the in-memory repositories instead.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncGenerator, Iterator
from contextlib import asynccontextmanager, contextmanager

from sqlalchemy.exc import DataError, SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from achievement_service.core.config import SETTINGS
from achievement_service.core.errors import DataUnavailableError, ValidationFailedError

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    """SQLAlchemy declarative base for all table models."""


if SETTINGS.database_url:
    engine = create_async_engine(
        SETTINGS.database_url,
        echo=SETTINGS.is_dev,
        pool_size=5,
        max_overflow=10,
        pool_pre_ping=True,
    )
    async_session_factory = async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )
else:
    engine = None
    async_session_factory = None


async def get_async_session() -> AsyncGenerator[AsyncSession | None, None]:
    """Request-scoped session.  Commits on success, rolls back on exception.

    Yields None without DATABASE_URL so callers can pick the in-memory repos.
    """
    if async_session_factory is None:
        yield None
        return
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


def _is_data_error(e: SQLAlchemyError) -> bool:
    # SQLSTATE class 22 is "data exception": over-long strings, integer
    # overflow.  Not every driver adapter maps it to DataError.
    if isinstance(e, DataError):
        return True
    sqlstate = getattr(getattr(e, "orig", None), "sqlstate", None)
    return isinstance(sqlstate, str) and sqlstate.startswith("22")


@contextmanager
def store_errors(operation: str, *, field: str = "body") -> Iterator[None]:
    """Re-raise driver and pool failures as DataUnavailableError.

    A value the column rejects is the caller's fault and retrying cannot
    help, so it becomes ValidationFailedError on ``field`` instead.
    """
    try:
        yield
    except SQLAlchemyError as e:
        if _is_data_error(e):
            logger.warning("Store rejected value during %s: %s", operation, e)
            raise ValidationFailedError(field, "value out of range for storage") from e
        logger.warning("Store operation failed during %s: %s", operation, e)
        raise DataUnavailableError(f"store unavailable during {operation}") from e


@asynccontextmanager
async def lifespan_db():
    if engine is None:
        logger.info("No DATABASE_URL configured, using in-memory repositories")
        yield
        return

    logger.info("Database engine created: %s", engine.url)
    yield
    await engine.dispose()
    logger.info("Database engine disposed")
