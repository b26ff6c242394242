"""Create chat_labels and chat_label_assignments; seed the default labels.

Seeding uses ON CONFLICT (name) DO NOTHING, so labels an administrator
already created or restyled are left as they are.

Revision ID: 004_chat_labels
Revises: 003_user_fiscal_fields
Create Date: 2026-03-16

Rollback: drop chat_label_assignments, chat_labels
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision = "004_chat_labels"
down_revision = "003_user_fiscal_fields"
branch_labels = None
depends_on = None

_UUID = postgresql.UUID(as_uuid=True)
_NOW = sa.text("now()")
_GEN_UUID = sa.text("gen_random_uuid()")

SEED_LABELS = (
    ("Urgente", "#EF4444", "alert-circle"),
    ("Importante", "#F59E0B", "star"),
    ("Pendiente", "#3B82F6", "time"),
    ("Resuelto", "#10B981", "checkmark-circle"),
    ("Seguimiento", "#8B5CF6", "eye"),
)

_SEED_SQL = sa.text(
    "INSERT INTO chat_labels (name, color, icon) "
    "VALUES (:name, :color, :icon) "
    "ON CONFLICT (name) DO NOTHING"
)


def upgrade() -> None:
    op.create_table(
        "chat_labels",
        sa.Column("id", _UUID, primary_key=True, server_default=_GEN_UUID),
        sa.Column("name", sa.String(50), nullable=False, unique=True),
        sa.Column("color", sa.String(7), nullable=False, server_default="#6B7AED"),
        sa.Column("icon", sa.String(50), nullable=False, server_default="pricetag"),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=_NOW,
        ),
        sa.CheckConstraint("length(name) > 0", name="ck_chat_labels_name"),
    )

    op.create_table(
        "chat_label_assignments",
        sa.Column("id", _UUID, primary_key=True, server_default=_GEN_UUID),
        sa.Column(
            "conversation_id",
            _UUID,
            sa.ForeignKey("conversations.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "label_id",
            _UUID,
            sa.ForeignKey("chat_labels.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "assigned_by",
            _UUID,
            sa.ForeignKey("users.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column(
            "assigned_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=_NOW,
        ),
        sa.UniqueConstraint(
            "conversation_id",
            "label_id",
            name="uq_chat_label_assignments_conversation_label",
        ),
    )
    op.create_index(
        "ix_chat_label_assignments_conversation_id",
        "chat_label_assignments",
        ["conversation_id"],
    )
    op.create_index(
        "ix_chat_label_assignments_label_id",
        "chat_label_assignments",
        ["label_id"],
    )

    bind = op.get_bind()
    for name, color, icon in SEED_LABELS:
        bind.execute(_SEED_SQL, {"name": name, "color": color, "icon": icon})


def downgrade() -> None:
    op.drop_index("ix_chat_label_assignments_label_id", table_name="chat_label_assignments")
    op.drop_index(
        "ix_chat_label_assignments_conversation_id",
        table_name="chat_label_assignments",
    )
    op.drop_table("chat_label_assignments")
    op.drop_table("chat_labels")
