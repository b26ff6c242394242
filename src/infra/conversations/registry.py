"""Conversation Registry adapters implementing ConversationRegistryPort.

create_conversation writes the conversation row and every participant row
in a single transaction, so a failed registration leaves no partial
membership behind.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import TYPE_CHECKING
from uuid import UUID, uuid4

import sqlalchemy as sa
from sqlalchemy.orm import aliased

from src.infra.db import is_foreign_key_violation, store_errors
from src.infra.models import ConversationModel, ConversationParticipantModel
from src.ports.conversation_registry import ConversationRegistryPort
from src.shared.errors import NotFoundError
from src.shared.types import Conversation, ConversationKind

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

logger = logging.getLogger(__name__)

_PORT = "conversation_registry"


class InMemoryConversationRegistry(ConversationRegistryPort):
    """Dict-backed conversation registry."""

    def __init__(self) -> None:
        self._conversations: dict[UUID, Conversation] = {}

    async def create_conversation(
        self,
        kind: ConversationKind,
        participant_ids: frozenset[UUID],
        created_by: UUID,
        *,
        group_name: str | None = None,
    ) -> Conversation:
        conversation = Conversation(
            conversation_id=uuid4(),
            kind=kind,
            participant_ids=frozenset(participant_ids),
            created_by=created_by,
            group_name=group_name,
            created_at=datetime.now(UTC),
        )
        self._conversations[conversation.conversation_id] = conversation
        return conversation

    async def get_conversation(self, conversation_id: UUID) -> Conversation | None:
        return self._conversations.get(conversation_id)

    async def delete_conversation(self, conversation_id: UUID) -> bool:
        return self._conversations.pop(conversation_id, None) is not None

    async def find_direct(self, user_a: UUID, user_b: UUID) -> Conversation | None:
        pair = frozenset({user_a, user_b})
        for conversation in self._conversations.values():
            if conversation.kind is ConversationKind.DIRECT and conversation.participant_ids == pair:
                return conversation
        return None

    def __len__(self) -> int:
        return len(self._conversations)


class PgConversationRegistry(ConversationRegistryPort):
    """PostgreSQL-backed registry over conversations + conversation_participants."""

    def __init__(self, *, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def create_conversation(
        self,
        kind: ConversationKind,
        participant_ids: frozenset[UUID],
        created_by: UUID,
        *,
        group_name: str | None = None,
    ) -> Conversation:
        conversation_id = uuid4()
        now = datetime.now(UTC)
        model = ConversationModel(
            id=conversation_id,
            kind=kind.value,
            group_name=group_name,
            created_by=created_by,
            created_at=now,
        )
        model.participants = [
            ConversationParticipantModel(user_id=user_id, joined_at=now)
            for user_id in sorted(participant_ids)
        ]

        async with store_errors(_PORT), self._session_factory() as session:
            session.add(model)
            try:
                await session.commit()
            except sa.exc.IntegrityError as exc:
                await session.rollback()
                if is_foreign_key_violation(exc):
                    # A participant vanished between authorization and write.
                    raise NotFoundError("User", ",".join(map(str, sorted(participant_ids)))) from exc
                raise

        logger.info(
            "Registered %s conversation_id=%s participants=%d",
            kind.value,
            conversation_id,
            len(participant_ids),
        )
        return Conversation(
            conversation_id=conversation_id,
            kind=kind,
            participant_ids=frozenset(participant_ids),
            created_by=created_by,
            group_name=group_name,
            created_at=now,
        )

    async def get_conversation(self, conversation_id: UUID) -> Conversation | None:
        stmt = sa.select(ConversationModel).where(ConversationModel.id == conversation_id)
        async with store_errors(_PORT), self._session_factory() as session:
            result = await session.execute(stmt)
            row = result.scalar_one_or_none()
        return _row_to_conversation(row) if row is not None else None

    async def delete_conversation(self, conversation_id: UUID) -> bool:
        stmt = sa.delete(ConversationModel).where(ConversationModel.id == conversation_id)
        async with store_errors(_PORT), self._session_factory() as session:
            result = await session.execute(stmt)
            await session.commit()
        return bool(result.rowcount)

    async def find_direct(self, user_a: UUID, user_b: UUID) -> Conversation | None:
        p1 = aliased(ConversationParticipantModel)
        p2 = aliased(ConversationParticipantModel)
        stmt = (
            sa.select(ConversationModel)
            .join(p1, p1.conversation_id == ConversationModel.id)
            .join(p2, p2.conversation_id == ConversationModel.id)
            .where(
                ConversationModel.kind == ConversationKind.DIRECT.value,
                p1.user_id == user_a,
                p2.user_id == user_b,
            )
            .order_by(ConversationModel.created_at)
            .limit(1)
        )
        async with store_errors(_PORT), self._session_factory() as session:
            result = await session.execute(stmt)
            row = result.scalar_one_or_none()
        return _row_to_conversation(row) if row is not None else None


def _row_to_conversation(row: ConversationModel) -> Conversation:
    """Convert an ORM row (with participants loaded) to a domain Conversation."""
    return Conversation(
        conversation_id=row.id,
        kind=ConversationKind(row.kind),
        participant_ids=frozenset(p.user_id for p in row.participants),
        created_by=row.created_by,
        group_name=row.group_name,
        created_at=row.created_at,
    )
