"""LabelStorePort - label catalog and label assignment persistence.

Insert operations are "insert, or no-op if the unique key already exists",
evaluated atomically by the store: they return None instead of raising
when the key (label name, or conversation/label pair) is taken.

Cascade on conversation/label deletion is NOT assumed here; the Label
Catalog and Ledger components issue the assignment deletes themselves.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from uuid import UUID

    from src.shared.types import Label, LabelAssignment


class LabelStorePort(ABC):
    """Port: labels + label assignments."""

    # -- Catalog --

    @abstractmethod
    async def insert_label(self, name: str, color: str, icon: str) -> Label | None:
        """Insert a label; None if the name is already taken."""

    @abstractmethod
    async def get_label(self, label_id: UUID) -> Label | None: ...

    @abstractmethod
    async def get_label_by_name(self, name: str) -> Label | None:
        """Exact, case-sensitive lookup."""

    @abstractmethod
    async def list_labels(self) -> list[Label]:
        """All labels ordered by name."""

    @abstractmethod
    async def update_label(
        self,
        label_id: UUID,
        *,
        name: str | None = None,
        color: str | None = None,
        icon: str | None = None,
    ) -> Label | None:
        """Update the given fields. None if the label is absent.

        Raises:
            ConflictError: If ``name`` is held by a different label.
        """

    @abstractmethod
    async def delete_label(self, label_id: UUID) -> bool: ...

    # -- Assignments --

    @abstractmethod
    async def insert_assignment(
        self,
        conversation_id: UUID,
        label_id: UUID,
        assigned_by: UUID | None,
    ) -> LabelAssignment | None:
        """Insert an assignment; None if the pair already exists."""

    @abstractmethod
    async def get_assignment(
        self,
        conversation_id: UUID,
        label_id: UUID,
    ) -> LabelAssignment | None: ...

    @abstractmethod
    async def delete_assignment(self, conversation_id: UUID, label_id: UUID) -> bool:
        """Delete one assignment. False if it was already absent."""

    @abstractmethod
    async def list_assignments(
        self,
        *,
        conversation_id: UUID | None = None,
        label_id: UUID | None = None,
    ) -> list[LabelAssignment]:
        """Assignments filtered by conversation and/or label."""

    @abstractmethod
    async def delete_assignments(
        self,
        *,
        conversation_id: UUID | None = None,
        label_id: UUID | None = None,
    ) -> int:
        """Bulk delete by conversation or label. Returns rows removed."""

    @abstractmethod
    async def clear_assigner(self, user_id: UUID) -> int:
        """Set assigned_by to NULL wherever it equals ``user_id``."""

    @abstractmethod
    async def labels_for_conversation(self, conversation_id: UUID) -> list[Label]:
        """Labels assigned to a conversation, ordered by name."""
