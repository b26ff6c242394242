"""Tests for the async engine factory and store error translation."""

from __future__ import annotations

import asyncio

import pytest
import sqlalchemy as sa

from src.infra.db import (
    create_db_engine,
    create_session_factory,
    is_foreign_key_violation,
    is_unique_violation,
    sqlstate_of,
    store_errors,
)
from src.shared.errors import StoreTimeoutError, UnavailableError
from tests.fakes import FakeDriverError

_URL = "postgresql+asyncpg://u:p@localhost/test"


@pytest.mark.unit
class TestCreateDbEngine:
    def test_returns_async_engine(self) -> None:
        engine = create_db_engine(_URL)
        assert hasattr(engine, "begin")
        assert hasattr(engine, "dispose")
        assert "asyncpg" in str(engine.url)

    def test_pool_size_configurable(self) -> None:
        engine = create_db_engine(_URL, pool_size=5, max_overflow=10)
        assert engine.pool.size() == 5

    def test_echo_defaults_to_false(self) -> None:
        assert create_db_engine(_URL).echo is False

    def test_session_expire_on_commit_false(self) -> None:
        factory = create_session_factory(create_db_engine(_URL))
        assert factory.kw.get("expire_on_commit") is False


@pytest.mark.unit
class TestSqlstate:
    def test_unique_violation(self) -> None:
        exc = sa.exc.IntegrityError("INSERT", {}, FakeDriverError("23505"))
        assert sqlstate_of(exc) == "23505"
        assert is_unique_violation(exc)
        assert not is_foreign_key_violation(exc)

    def test_foreign_key_violation(self) -> None:
        exc = sa.exc.IntegrityError("INSERT", {}, FakeDriverError("23503"))
        assert is_foreign_key_violation(exc)

    def test_missing_sqlstate(self) -> None:
        exc = sa.exc.IntegrityError("INSERT", {}, FakeDriverError())
        assert sqlstate_of(exc) is None
        assert not is_unique_violation(exc)


@pytest.mark.unit
class TestStoreErrors:
    async def test_timeout_becomes_store_timeout(self) -> None:
        with pytest.raises(StoreTimeoutError) as exc_info:
            async with store_errors("identity_store"):
                raise asyncio.TimeoutError
        assert exc_info.value.retryable is True
        assert exc_info.value.port_name == "identity_store"

    async def test_operational_error_becomes_unavailable(self) -> None:
        with pytest.raises(UnavailableError) as exc_info:
            async with store_errors("label_store"):
                raise sa.exc.OperationalError("SELECT 1", {}, FakeDriverError("08006"))
        assert exc_info.value.code == "STORE_UNAVAILABLE"

    async def test_connection_refused_becomes_unavailable(self) -> None:
        with pytest.raises(UnavailableError):
            async with store_errors("label_store"):
                raise ConnectionRefusedError("connect call failed")

    async def test_integrity_error_passes_through(self) -> None:
        with pytest.raises(sa.exc.IntegrityError):
            async with store_errors("label_store"):
                raise sa.exc.IntegrityError("INSERT", {}, FakeDriverError("23505"))

    async def test_domain_errors_pass_through(self) -> None:
        with pytest.raises(KeyError):
            async with store_errors("label_store"):
                raise KeyError("x")
