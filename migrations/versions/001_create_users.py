"""Create users table.

Users are keyed by business identifier (RFC). The role column starts as a
free-form string: rows imported from the legacy app may carry "user",
"advisor" or NULL until 005 reclassifies them and installs the check.

Revision ID: 001_users
Revises: None
Create Date: 2026-03-02

Rollback: drop users
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision = "001_users"
down_revision = None
branch_labels = None
depends_on = None

_UUID = postgresql.UUID(as_uuid=True)
_NOW = sa.text("now()")
_GEN_UUID = sa.text("gen_random_uuid()")


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", _UUID, primary_key=True, server_default=_GEN_UUID),
        sa.Column(
            "business_id",
            sa.String(32),
            nullable=False,
            unique=True,
            comment="RFC; login key and role-derivation input",
        ),
        sa.Column("display_name", sa.String(255), nullable=True),
        sa.Column("role", sa.String(16), nullable=True, server_default="usuario"),
        sa.Column(
            "role_override",
            sa.Boolean(),
            nullable=False,
            server_default=sa.text("false"),
        ),
        sa.Column("phone", sa.String(32), nullable=True),
        sa.Column("push_token", sa.String(255), nullable=True),
        sa.Column(
            "is_active",
            sa.Boolean(),
            nullable=False,
            server_default=sa.text("true"),
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=_NOW,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=_NOW,
        ),
    )
    op.create_index("ix_users_business_id", "users", ["business_id"], unique=True)
    op.create_index("ix_users_role", "users", ["role"])


def downgrade() -> None:
    op.drop_index("ix_users_role", table_name="users")
    op.drop_index("ix_users_business_id", table_name="users")
    op.drop_table("users")
