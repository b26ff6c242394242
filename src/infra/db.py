"""Async database engine/session factory and store error translation.

Provides:
- create_db_engine(): AsyncEngine factory (asyncpg) with a per-command timeout
- create_session_factory(): async_sessionmaker bound to engine
- store_errors(): async context manager converting driver-level timeouts and
  connection failures into UnavailableError, so callers never mistake an
  outage for a permission denial.

Integrity errors are NOT translated here; adapters decide whether a
constraint violation is an idempotent no-op or a ConflictError.
"""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

import sqlalchemy as sa
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from src.shared.errors import StoreTimeoutError, UnavailableError

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

UNIQUE_VIOLATION = "23505"
FOREIGN_KEY_VIOLATION = "23503"


def create_db_engine(
    url: str,
    *,
    pool_size: int = 10,
    max_overflow: int = 20,
    command_timeout: float | None = 5.0,
    echo: bool = False,
) -> AsyncEngine:
    """Create an async SQLAlchemy engine for asyncpg.

    Args:
        url: Database URL (must use postgresql+asyncpg:// scheme).
        pool_size: Connection pool size.
        max_overflow: Max overflow connections beyond pool_size.
        command_timeout: Seconds before asyncpg abandons a statement.
        echo: Whether to log SQL statements.
    """
    connect_args: dict[str, float] = {}
    if command_timeout is not None:
        connect_args["command_timeout"] = command_timeout
    return create_async_engine(
        url,
        pool_size=pool_size,
        max_overflow=max_overflow,
        echo=echo,
        pool_pre_ping=True,
        connect_args=connect_args,
    )


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Create an async session factory bound to the given engine.

    expire_on_commit=False keeps attributes readable after commit.
    """
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


def sqlstate_of(exc: sa.exc.DBAPIError) -> str | None:
    """Return the PostgreSQL SQLSTATE carried by a wrapped driver error."""
    orig = exc.orig
    return getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)


def is_unique_violation(exc: sa.exc.IntegrityError) -> bool:
    return sqlstate_of(exc) == UNIQUE_VIOLATION


def is_foreign_key_violation(exc: sa.exc.IntegrityError) -> bool:
    return sqlstate_of(exc) == FOREIGN_KEY_VIOLATION


@asynccontextmanager
async def store_errors(port_name: str) -> AsyncIterator[None]:
    """Translate outage-class exceptions raised inside the block.

    Raises:
        StoreTimeoutError: on asyncio/SQLAlchemy pool timeouts.
        UnavailableError: on connection-level driver errors.
    """
    try:
        yield
    except (TimeoutError, asyncio.TimeoutError, sa.exc.TimeoutError) as exc:
        raise StoreTimeoutError(port_name) from exc
    except (sa.exc.OperationalError, sa.exc.InterfaceError) as exc:
        raise UnavailableError(port_name, f"Store {port_name} is unavailable: {exc}") from exc
    except sa.exc.DBAPIError as exc:
        if exc.connection_invalidated:
            raise UnavailableError(port_name) from exc
        raise
    except OSError as exc:
        raise UnavailableError(port_name, f"Store {port_name} is unreachable: {exc}") from exc
