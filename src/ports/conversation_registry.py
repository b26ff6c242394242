"""ConversationRegistryPort - durable conversations and membership.

The engine writes here only after the permission matrix has approved the
request. create_conversation must persist the conversation and every
participant atomically: no partial membership on failure.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from uuid import UUID

    from src.shared.types import Conversation, ConversationKind


class ConversationRegistryPort(ABC):
    """Port: conversation registry."""

    @abstractmethod
    async def create_conversation(
        self,
        kind: ConversationKind,
        participant_ids: frozenset[UUID],
        created_by: UUID,
        *,
        group_name: str | None = None,
    ) -> Conversation:
        """Register a conversation with its full membership in one transaction."""

    @abstractmethod
    async def get_conversation(self, conversation_id: UUID) -> Conversation | None:
        """Return the conversation, or None if absent."""

    @abstractmethod
    async def delete_conversation(self, conversation_id: UUID) -> bool:
        """Delete a conversation and its membership. False if already absent."""

    @abstractmethod
    async def find_direct(self, user_a: UUID, user_b: UUID) -> Conversation | None:
        """Return the existing direct conversation between two users, if any."""
