"""Label Assignment Ledger: many-to-many join of conversations and labels.

Invariants held here, independent of storage behavior:
- (conversation_id, label_id) is unique; assigning a present pair returns
  the stored assignment untouched (original assigned_at / assigned_by).
- unassign of an absent pair is a no-op returning False.
- purging a conversation removes all of its assignments and nothing else.
- detaching an assigner nulls assigned_by and keeps the assignment.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from src.shared.errors import NotFoundError, UnavailableError

if TYPE_CHECKING:
    from uuid import UUID

    from src.ports.conversation_registry import ConversationRegistryPort
    from src.ports.label_store import LabelStorePort
    from src.shared.types import Label, LabelAssignment

logger = logging.getLogger(__name__)


class LabelAssignmentLedger:
    """Assignment operations over a LabelStorePort.

    The conversation registry is consulted only to reject assignments to
    unknown conversations.
    """

    def __init__(
        self,
        *,
        store: LabelStorePort,
        registry: ConversationRegistryPort,
    ) -> None:
        self._store = store
        self._registry = registry

    async def assign(
        self,
        conversation_id: UUID,
        label_id: UUID,
        assigned_by: UUID | None,
    ) -> LabelAssignment:
        """Attach a label to a conversation (idempotent).

        Raises:
            NotFoundError: conversation or label unknown.
        """
        if await self._registry.get_conversation(conversation_id) is None:
            raise NotFoundError("Conversation", conversation_id)
        if await self._store.get_label(label_id) is None:
            raise NotFoundError("Label", label_id)

        for _ in range(2):
            inserted = await self._store.insert_assignment(conversation_id, label_id, assigned_by)
            if inserted is not None:
                logger.info(
                    "Assigned label_id=%s to conversation_id=%s by=%s",
                    label_id,
                    conversation_id,
                    assigned_by,
                )
                return inserted
            existing = await self._store.get_assignment(conversation_id, label_id)
            if existing is not None:
                return existing

        msg = f"Assignment {conversation_id}/{label_id} could not be read back after insert"
        raise UnavailableError("label_store", msg)

    async def unassign(self, conversation_id: UUID, label_id: UUID) -> bool:
        """Remove a label from a conversation. False if it was not assigned."""
        removed = await self._store.delete_assignment(conversation_id, label_id)
        if removed:
            logger.info("Unassigned label_id=%s from conversation_id=%s", label_id, conversation_id)
        return removed

    async def list_labels(self, conversation_id: UUID) -> list[Label]:
        """Labels on a conversation, ordered by name."""
        return await self._store.labels_for_conversation(conversation_id)

    async def list_assignments(self, conversation_id: UUID) -> list[LabelAssignment]:
        return await self._store.list_assignments(conversation_id=conversation_id)

    async def conversations_for_label(self, label_id: UUID) -> list[UUID]:
        """Ids of conversations carrying a label (filtering support)."""
        assignments = await self._store.list_assignments(label_id=label_id)
        return [a.conversation_id for a in assignments]

    async def purge_conversation(self, conversation_id: UUID) -> int:
        """Remove every assignment of a conversation being deleted."""
        return await self._store.delete_assignments(conversation_id=conversation_id)

    async def detach_assigner(self, user_id: UUID) -> int:
        """Null assigned_by for a user being removed; assignments survive."""
        return await self._store.clear_assigner(user_id)
