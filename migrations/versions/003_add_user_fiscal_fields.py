"""Add fiscal profile columns to users.

Revision ID: 003_user_fiscal_fields
Revises: 002_conversations
Create Date: 2026-03-09

Rollback: alembic downgrade -1
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op

revision = "003_user_fiscal_fields"
down_revision = "002_conversations"
branch_labels = None
depends_on = None

_COLUMNS = ("razon_social", "tipo_persona", "terms_accepted", "terms_accepted_at")


def upgrade() -> None:
    op.add_column("users", sa.Column("razon_social", sa.String(255), nullable=True))
    op.add_column(
        "users",
        sa.Column("tipo_persona", sa.String(20), nullable=True, comment="fisica | moral"),
    )
    op.add_column(
        "users",
        sa.Column(
            "terms_accepted",
            sa.Boolean(),
            nullable=False,
            server_default=sa.text("false"),
        ),
    )
    op.add_column(
        "users",
        sa.Column("terms_accepted_at", sa.DateTime(timezone=True), nullable=True),
    )


def downgrade() -> None:
    for column in reversed(_COLUMNS):
        op.drop_column("users", column)
