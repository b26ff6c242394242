"""IdentityStorePort - durable user table keyed by business identifier.

Hard dependency of the Authorization Facade and of bulk reclassification.
business_id uniqueness is enforced by the store itself (UNIQUE constraint).

Implementations: InMemoryIdentityStore, PgIdentityStore
(src/infra/identity/store.py). Implementations raise UnavailableError when
the backing store is unreachable or times out.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from uuid import UUID

    from src.shared.types import Role, User


class IdentityStorePort(ABC):
    """Port: user record read/write."""

    @abstractmethod
    async def get_user(self, user_id: UUID) -> User | None:
        """Return the user with this id, or None if absent."""

    @abstractmethod
    async def get_user_by_business_id(self, business_id: str) -> User | None:
        """Return the user with this business identifier, or None."""

    @abstractmethod
    async def put_user(self, user: User) -> None:
        """Upsert a user by id.

        Raises:
            ConflictError: If another user already holds ``business_id``.
        """

    @abstractmethod
    async def count_by_role(self) -> dict[Role, int]:
        """Count users per stored role (unrecognized values excluded)."""

    @abstractmethod
    async def list_users(
        self,
        *,
        after_id: UUID | None = None,
        limit: int = 500,
    ) -> list[User]:
        """Page through users ordered by id.

        Args:
            after_id: Return users with id strictly greater (keyset cursor).
            limit: Maximum page size.
        """
