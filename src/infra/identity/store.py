"""Identity Store adapters implementing IdentityStorePort.

InMemoryIdentityStore backs unit tests and local runs; PgIdentityStore is
the production adapter over the ``users`` table. Both enforce business_id
uniqueness: the in-memory one with an index, the Pg one through the UNIQUE
constraint (a violation surfaces as ConflictError).
"""

from __future__ import annotations

import logging
from collections import Counter
from datetime import UTC, datetime
from typing import TYPE_CHECKING

import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import insert as pg_insert

from src.infra.db import is_unique_violation, store_errors
from src.infra.models import UserModel
from src.ports.identity_store import IdentityStorePort
from src.shared.errors import ConflictError, ValidationError
from src.shared.types import FiscalProfile, Role, User

if TYPE_CHECKING:
    from uuid import UUID

    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

logger = logging.getLogger(__name__)

_PORT = "identity_store"


class InMemoryIdentityStore(IdentityStorePort):
    """Dict-backed identity store."""

    def __init__(self, users: list[User] | None = None) -> None:
        self._users: dict[UUID, User] = {}
        self._by_business_id: dict[str, UUID] = {}
        for user in users or []:
            self._store(user)

    def _store(self, user: User) -> None:
        holder = self._by_business_id.get(user.business_id)
        if holder is not None and holder != user.user_id:
            msg = f"business_id already registered: {user.business_id}"
            raise ConflictError(msg)
        previous = self._users.get(user.user_id)
        if previous is not None and previous.business_id != user.business_id:
            del self._by_business_id[previous.business_id]
        self._users[user.user_id] = user
        self._by_business_id[user.business_id] = user.user_id

    async def get_user(self, user_id: UUID) -> User | None:
        return self._users.get(user_id)

    async def get_user_by_business_id(self, business_id: str) -> User | None:
        user_id = self._by_business_id.get(business_id)
        return self._users.get(user_id) if user_id is not None else None

    async def put_user(self, user: User) -> None:
        self._store(user)

    async def count_by_role(self) -> dict[Role, int]:
        counts = Counter(u.role for u in self._users.values() if u.role is not None)
        return dict(counts)

    async def list_users(
        self,
        *,
        after_id: UUID | None = None,
        limit: int = 500,
    ) -> list[User]:
        ids = sorted(self._users)
        if after_id is not None:
            ids = [i for i in ids if i > after_id]
        return [self._users[i] for i in ids[:limit]]


class PgIdentityStore(IdentityStorePort):
    """PostgreSQL-backed identity store using SQLAlchemy async sessions."""

    def __init__(self, *, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def get_user(self, user_id: UUID) -> User | None:
        stmt = sa.select(UserModel).where(UserModel.id == user_id)
        async with store_errors(_PORT), self._session_factory() as session:
            result = await session.execute(stmt)
            row = result.scalar_one_or_none()
        return _row_to_user(row) if row is not None else None

    async def get_user_by_business_id(self, business_id: str) -> User | None:
        stmt = sa.select(UserModel).where(UserModel.business_id == business_id)
        async with store_errors(_PORT), self._session_factory() as session:
            result = await session.execute(stmt)
            row = result.scalar_one_or_none()
        return _row_to_user(row) if row is not None else None

    async def put_user(self, user: User) -> None:
        if user.role is None:
            raise ValidationError("role must be resolved before persisting", field="role")

        values = _user_to_values(user)
        stmt = pg_insert(UserModel).values(id=user.user_id, **values)
        stmt = stmt.on_conflict_do_update(
            index_elements=[UserModel.id],
            set_={**values, "updated_at": datetime.now(UTC)},
        )
        async with store_errors(_PORT), self._session_factory() as session:
            try:
                await session.execute(stmt)
                await session.commit()
            except sa.exc.IntegrityError as exc:
                await session.rollback()
                if is_unique_violation(exc):
                    msg = f"business_id already registered: {user.business_id}"
                    raise ConflictError(msg) from exc
                raise

    async def count_by_role(self) -> dict[Role, int]:
        stmt = sa.select(UserModel.role, sa.func.count()).group_by(UserModel.role)
        async with store_errors(_PORT), self._session_factory() as session:
            result = await session.execute(stmt)
            rows = result.fetchall()

        counts: dict[Role, int] = {}
        for value, count in rows:
            role = _to_role(value)
            if role is None:
                logger.warning("Ignoring unrecognized stored role %r in counts", value)
                continue
            counts[role] = counts.get(role, 0) + int(count)
        return counts

    async def list_users(
        self,
        *,
        after_id: UUID | None = None,
        limit: int = 500,
    ) -> list[User]:
        stmt = sa.select(UserModel).order_by(UserModel.id).limit(limit)
        if after_id is not None:
            stmt = stmt.where(UserModel.id > after_id)
        async with store_errors(_PORT), self._session_factory() as session:
            result = await session.scalars(stmt)
            rows = result.all()
        return [_row_to_user(row) for row in rows]


def _to_role(value: object) -> Role | None:
    try:
        return Role(value)
    except ValueError:
        return None


def _user_to_values(user: User) -> dict[str, object]:
    fiscal = user.fiscal_profile or FiscalProfile()
    assert user.role is not None
    return {
        "business_id": user.business_id,
        "display_name": user.display_name,
        "role": user.role.value,
        "role_override": user.role_override,
        "phone": user.phone,
        "push_token": user.push_token,
        "razon_social": fiscal.razon_social,
        "tipo_persona": fiscal.tipo_persona,
        "terms_accepted": fiscal.terms_accepted,
        "terms_accepted_at": fiscal.terms_accepted_at,
        "is_active": user.is_active,
    }


def _row_to_user(row: UserModel) -> User:
    """Convert an ORM row to a domain User."""
    fiscal = None
    if row.razon_social or row.tipo_persona or row.terms_accepted:
        fiscal = FiscalProfile(
            razon_social=row.razon_social,
            tipo_persona=row.tipo_persona,
            terms_accepted=row.terms_accepted,
            terms_accepted_at=row.terms_accepted_at,
        )
    return User(
        user_id=row.id,
        business_id=row.business_id,
        display_name=row.display_name,
        role=_to_role(row.role),
        phone=row.phone,
        push_token=row.push_token,
        fiscal_profile=fiscal,
        is_active=row.is_active,
        role_override=row.role_override,
    )
