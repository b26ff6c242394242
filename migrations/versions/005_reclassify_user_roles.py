"""Reclassify every user's role from business_id and lock the role column.

Same rules as src/authz/classifier.py:
  CONS* or ADMIN000CONS -> consultor, ADV* -> asesor, anything else -> usuario
Rows with role_override keep their role when it is one of the three values;
any other value (legacy "user", "admin", NULL, ...) becomes usuario.

The UPDATEs only touch rows whose role would change, so re-running the
statements is a no-op.

Revision ID: 005_reclassify_user_roles
Revises: 004_chat_labels
Create Date: 2026-03-23

Rollback: drops the check constraint and NOT NULL; role values are not
restored.
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op

revision = "005_reclassify_user_roles"
down_revision = "004_chat_labels"
branch_labels = None
depends_on = None

reversible_type = "partial"  # constraint reversible, data rewrite is not

_DERIVED_ROLE = (
    "CASE "
    "WHEN business_id LIKE 'CONS%' OR business_id = 'ADMIN000CONS' THEN 'consultor' "
    "WHEN business_id LIKE 'ADV%' THEN 'asesor' "
    "ELSE 'usuario' END"
)

RECLASSIFY_SQL = (
    f"UPDATE users SET role = {_DERIVED_ROLE}, updated_at = now() "
    f"WHERE role_override = false AND role IS DISTINCT FROM {_DERIVED_ROLE}"
)

NORMALIZE_OVERRIDES_SQL = (
    "UPDATE users SET role = 'usuario', updated_at = now() "
    "WHERE role_override = true "
    "AND (role IS NULL OR role NOT IN ('usuario', 'asesor', 'consultor'))"
)


def upgrade() -> None:
    op.execute(sa.text(RECLASSIFY_SQL))
    op.execute(sa.text(NORMALIZE_OVERRIDES_SQL))
    op.alter_column("users", "role", existing_type=sa.String(16), nullable=False)
    op.create_check_constraint(
        "ck_users_role",
        "users",
        "role IN ('usuario', 'asesor', 'consultor')",
    )


def downgrade() -> None:
    op.drop_constraint("ck_users_role", "users", type_="check")
    op.alter_column("users", "role", existing_type=sa.String(16), nullable=True)
