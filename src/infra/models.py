"""SQLAlchemy ORM models for Conecta.

Maps to migration DDL in migrations/versions/:
  001_create_users.py               -> UserModel
  002_create_conversations.py       -> ConversationModel, ConversationParticipantModel
  003_add_user_fiscal_fields.py     -> UserModel fiscal columns
  004_create_chat_labels.py         -> ChatLabelModel, ChatLabelAssignmentModel

These models live in the Infrastructure layer and implement persistence
for Port interfaces. authz/ and labels/ MUST NOT import this module.
"""

from __future__ import annotations

import uuid as _uuid  # noqa: TC003 -- SQLAlchemy resolves Mapped[] annotations at runtime
from datetime import datetime  # noqa: TC003

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

_UUID = postgresql.UUID(as_uuid=True)
_NOW = sa.text("now()")
_GEN_UUID = sa.text("gen_random_uuid()")

ROLE_VALUES = ("usuario", "asesor", "consultor")
KIND_VALUES = ("direct", "group")


class Base(DeclarativeBase):
    """Declarative base for all Conecta ORM models."""


class UserModel(Base):
    """Platform user keyed by business identifier (RFC).

    See: 001_create_users, 003_add_user_fiscal_fields migrations
    """

    __tablename__ = "users"

    id: Mapped[_uuid.UUID] = mapped_column(
        _UUID,
        primary_key=True,
        server_default=_GEN_UUID,
    )
    business_id: Mapped[str] = mapped_column(
        sa.String(32),
        nullable=False,
        unique=True,
        comment="RFC; login key and role-derivation input",
    )
    display_name: Mapped[str | None] = mapped_column(sa.String(255), nullable=True)
    role: Mapped[str] = mapped_column(
        sa.String(16),
        nullable=False,
        server_default="usuario",
    )
    role_override: Mapped[bool] = mapped_column(
        sa.Boolean(),
        nullable=False,
        server_default=sa.text("false"),
    )
    phone: Mapped[str | None] = mapped_column(sa.String(32), nullable=True)
    push_token: Mapped[str | None] = mapped_column(sa.String(255), nullable=True)
    razon_social: Mapped[str | None] = mapped_column(sa.String(255), nullable=True)
    tipo_persona: Mapped[str | None] = mapped_column(sa.String(20), nullable=True)
    terms_accepted: Mapped[bool] = mapped_column(
        sa.Boolean(),
        nullable=False,
        server_default=sa.text("false"),
    )
    terms_accepted_at: Mapped[datetime | None] = mapped_column(
        sa.DateTime(timezone=True),
        nullable=True,
    )
    is_active: Mapped[bool] = mapped_column(
        sa.Boolean(),
        nullable=False,
        server_default=sa.text("true"),
    )
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True),
        nullable=False,
        server_default=_NOW,
    )
    updated_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True),
        nullable=False,
        server_default=_NOW,
    )

    __table_args__ = (
        sa.Index("ix_users_business_id", "business_id", unique=True),
        sa.Index("ix_users_role", "role"),
        sa.CheckConstraint(
            "role IN ('usuario', 'asesor', 'consultor')",
            name="ck_users_role",
        ),
    )


class ConversationModel(Base):
    """Direct or group conversation.

    See: 002_create_conversations migration
    """

    __tablename__ = "conversations"

    id: Mapped[_uuid.UUID] = mapped_column(
        _UUID,
        primary_key=True,
        server_default=_GEN_UUID,
    )
    kind: Mapped[str] = mapped_column(sa.String(16), nullable=False)
    group_name: Mapped[str | None] = mapped_column(sa.String(255), nullable=True)
    created_by: Mapped[_uuid.UUID | None] = mapped_column(
        _UUID,
        sa.ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True),
        nullable=False,
        server_default=_NOW,
    )

    participants: Mapped[list[ConversationParticipantModel]] = relationship(
        "ConversationParticipantModel",
        back_populates="conversation",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    __table_args__ = (
        sa.CheckConstraint("kind IN ('direct', 'group')", name="ck_conversations_kind"),
    )


class ConversationParticipantModel(Base):
    """Conversation membership (conversation <-> user join).

    See: 002_create_conversations migration
    """

    __tablename__ = "conversation_participants"

    conversation_id: Mapped[_uuid.UUID] = mapped_column(
        _UUID,
        sa.ForeignKey("conversations.id", ondelete="CASCADE"),
        primary_key=True,
    )
    user_id: Mapped[_uuid.UUID] = mapped_column(
        _UUID,
        sa.ForeignKey("users.id", ondelete="CASCADE"),
        primary_key=True,
    )
    joined_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True),
        nullable=False,
        server_default=_NOW,
    )

    conversation: Mapped[ConversationModel] = relationship(
        "ConversationModel",
        back_populates="participants",
        lazy="select",
    )

    __table_args__ = (sa.Index("ix_conversation_participants_user_id", "user_id"),)


class ChatLabelModel(Base):
    """Controlled-vocabulary label.

    See: 004_create_chat_labels migration
    """

    __tablename__ = "chat_labels"

    id: Mapped[_uuid.UUID] = mapped_column(
        _UUID,
        primary_key=True,
        server_default=_GEN_UUID,
    )
    name: Mapped[str] = mapped_column(sa.String(50), nullable=False, unique=True)
    color: Mapped[str] = mapped_column(
        sa.String(7),
        nullable=False,
        server_default="#6B7AED",
    )
    icon: Mapped[str] = mapped_column(
        sa.String(50),
        nullable=False,
        server_default="pricetag",
    )
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True),
        nullable=False,
        server_default=_NOW,
    )

    __table_args__ = (sa.CheckConstraint("length(name) > 0", name="ck_chat_labels_name"),)


class ChatLabelAssignmentModel(Base):
    """Label attached to a conversation.

    Deleting the conversation or the label cascades; deleting the assigning
    user only nulls assigned_by so the tag's history survives.

    See: 004_create_chat_labels migration
    """

    __tablename__ = "chat_label_assignments"

    id: Mapped[_uuid.UUID] = mapped_column(
        _UUID,
        primary_key=True,
        server_default=_GEN_UUID,
    )
    conversation_id: Mapped[_uuid.UUID] = mapped_column(
        _UUID,
        sa.ForeignKey("conversations.id", ondelete="CASCADE"),
        nullable=False,
    )
    label_id: Mapped[_uuid.UUID] = mapped_column(
        _UUID,
        sa.ForeignKey("chat_labels.id", ondelete="CASCADE"),
        nullable=False,
    )
    assigned_by: Mapped[_uuid.UUID | None] = mapped_column(
        _UUID,
        sa.ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    assigned_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True),
        nullable=False,
        server_default=_NOW,
    )

    __table_args__ = (
        sa.UniqueConstraint(
            "conversation_id",
            "label_id",
            name="uq_chat_label_assignments_conversation_label",
        ),
        sa.Index("ix_chat_label_assignments_conversation_id", "conversation_id"),
        sa.Index("ix_chat_label_assignments_label_id", "label_id"),
    )


__all__ = [
    "KIND_VALUES",
    "ROLE_VALUES",
    "Base",
    "ChatLabelAssignmentModel",
    "ChatLabelModel",
    "ConversationModel",
    "ConversationParticipantModel",
    "UserModel",
]
