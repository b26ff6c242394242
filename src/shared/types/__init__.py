"""Shared domain types used across layers.

These types flow through Port interfaces and must remain stable.
Schema changes go through a new alembic revision (migrations/versions/).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, unique
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from datetime import datetime
    from uuid import UUID


@unique
class Role(Enum):
    """Conversation-initiation tier of a user."""

    USUARIO = "usuario"
    ASESOR = "asesor"
    CONSULTOR = "consultor"


@unique
class ConversationKind(Enum):
    """Direct (exactly two participants) or group (two or more)."""

    DIRECT = "direct"
    GROUP = "group"


# -- Identity types --


@dataclass(frozen=True)
class FiscalProfile:
    """Tax registration details captured at sign-up."""

    razon_social: str | None = None
    tipo_persona: str | None = None  # fisica | moral
    terms_accepted: bool = False
    terms_accepted_at: datetime | None = None


@dataclass(frozen=True)
class User:
    """Platform user keyed by business identifier (RFC).

    ``role`` is None when the stored value is absent or outside the
    enumeration; the classifier re-derives it from ``business_id``.
    ``role_override`` marks an administrative assignment that bulk
    reclassification must not recompute.
    """

    user_id: UUID
    business_id: str
    display_name: str | None = None
    role: Role | None = None
    phone: str | None = None
    push_token: str | None = None
    fiscal_profile: FiscalProfile | None = None
    is_active: bool = True
    role_override: bool = False


# -- Conversation types --


@dataclass(frozen=True)
class Conversation:
    """Registered conversation with its membership."""

    conversation_id: UUID
    kind: ConversationKind
    participant_ids: frozenset[UUID]
    created_by: UUID | None  # None when the creator is unknown
    group_name: str | None = None
    created_at: datetime | None = None


@dataclass(frozen=True)
class ConversationHandle:
    """Result of a successful authorize_create.

    ``created`` is False when an existing direct conversation between the
    same two users was returned instead of registering a new one.
    """

    conversation_id: UUID
    kind: ConversationKind
    participant_ids: frozenset[UUID]
    created_by: UUID
    created: bool = True


# -- Label types --


@dataclass(frozen=True)
class Label:
    """Catalog entry; ``color`` and ``icon`` are display hints."""

    label_id: UUID
    name: str
    color: str
    icon: str
    created_at: datetime | None = None


@dataclass(frozen=True)
class LabelAssignment:
    """A label attached to a conversation, with audit attribution."""

    assignment_id: UUID
    conversation_id: UUID
    label_id: UUID
    assigned_by: UUID | None
    assigned_at: datetime


# -- Reclassification types --


@dataclass(frozen=True)
class ReclassificationFailure:
    """A single user the bulk pass could not update."""

    user_id: UUID
    business_id: str
    error_code: str
    message: str


@dataclass(frozen=True)
class ReclassificationReport:
    """Outcome of a bulk role reclassification pass.

    ``counts`` holds the resulting role of every user visited (including
    failed ones, at their unchanged stored role when known).
    """

    counts: dict[Role, int] = field(default_factory=dict)
    changed: int = 0
    failures: list[ReclassificationFailure] = field(default_factory=list)

    @property
    def complete(self) -> bool:
        return not self.failures


__all__ = [
    "Conversation",
    "ConversationHandle",
    "ConversationKind",
    "FiscalProfile",
    "Label",
    "LabelAssignment",
    "ReclassificationFailure",
    "ReclassificationReport",
    "Role",
    "User",
]
