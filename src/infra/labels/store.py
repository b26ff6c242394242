"""Label store adapters implementing LabelStorePort.

Both adapters enforce the two uniqueness keys themselves (label name and
the (conversation_id, label_id) pair). The Pg adapter relies on
INSERT ... ON CONFLICT DO NOTHING so two concurrent inserts of the same key
race to one row; a unique violation that still slips through (e.g. a
concurrent rename) is read as "already present".
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING
from uuid import UUID, uuid4

import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import insert as pg_insert

from src.infra.db import is_foreign_key_violation, is_unique_violation, store_errors
from src.infra.models import ChatLabelAssignmentModel, ChatLabelModel
from src.ports.label_store import LabelStorePort
from src.shared.errors import ConflictError, NotFoundError
from src.shared.types import Label, LabelAssignment

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker


_PORT = "label_store"


def _require_filter(conversation_id: UUID | None, label_id: UUID | None) -> None:
    if conversation_id is None and label_id is None:
        msg = "conversation_id or label_id is required"
        raise ValueError(msg)


class InMemoryLabelStore(LabelStorePort):
    """Dict-backed label store with the same uniqueness rules as the schema."""

    def __init__(self) -> None:
        self._labels: dict[UUID, Label] = {}
        self._assignments: dict[tuple[UUID, UUID], LabelAssignment] = {}

    # -- Catalog --

    async def insert_label(self, name: str, color: str, icon: str) -> Label | None:
        if await self.get_label_by_name(name) is not None:
            return None
        label = Label(
            label_id=uuid4(),
            name=name,
            color=color,
            icon=icon,
            created_at=datetime.now(UTC),
        )
        self._labels[label.label_id] = label
        return label

    async def get_label(self, label_id: UUID) -> Label | None:
        return self._labels.get(label_id)

    async def get_label_by_name(self, name: str) -> Label | None:
        return next((lb for lb in self._labels.values() if lb.name == name), None)

    async def list_labels(self) -> list[Label]:
        return sorted(self._labels.values(), key=lambda lb: lb.name)

    async def update_label(
        self,
        label_id: UUID,
        *,
        name: str | None = None,
        color: str | None = None,
        icon: str | None = None,
    ) -> Label | None:
        current = self._labels.get(label_id)
        if current is None:
            return None
        if name is not None and name != current.name:
            holder = await self.get_label_by_name(name)
            if holder is not None:
                msg = f"Label name already in use: {name}"
                raise ConflictError(msg)
        updated = Label(
            label_id=current.label_id,
            name=name if name is not None else current.name,
            color=color if color is not None else current.color,
            icon=icon if icon is not None else current.icon,
            created_at=current.created_at,
        )
        self._labels[label_id] = updated
        return updated

    async def delete_label(self, label_id: UUID) -> bool:
        return self._labels.pop(label_id, None) is not None

    # -- Assignments --

    async def insert_assignment(
        self,
        conversation_id: UUID,
        label_id: UUID,
        assigned_by: UUID | None,
    ) -> LabelAssignment | None:
        key = (conversation_id, label_id)
        if key in self._assignments:
            return None
        assignment = LabelAssignment(
            assignment_id=uuid4(),
            conversation_id=conversation_id,
            label_id=label_id,
            assigned_by=assigned_by,
            assigned_at=datetime.now(UTC),
        )
        self._assignments[key] = assignment
        return assignment

    async def get_assignment(
        self,
        conversation_id: UUID,
        label_id: UUID,
    ) -> LabelAssignment | None:
        return self._assignments.get((conversation_id, label_id))

    async def delete_assignment(self, conversation_id: UUID, label_id: UUID) -> bool:
        return self._assignments.pop((conversation_id, label_id), None) is not None

    async def list_assignments(
        self,
        *,
        conversation_id: UUID | None = None,
        label_id: UUID | None = None,
    ) -> list[LabelAssignment]:
        _require_filter(conversation_id, label_id)
        return sorted(
            (
                a
                for a in self._assignments.values()
                if (conversation_id is None or a.conversation_id == conversation_id)
                and (label_id is None or a.label_id == label_id)
            ),
            key=lambda a: a.assigned_at,
        )

    async def delete_assignments(
        self,
        *,
        conversation_id: UUID | None = None,
        label_id: UUID | None = None,
    ) -> int:
        doomed = await self.list_assignments(conversation_id=conversation_id, label_id=label_id)
        for a in doomed:
            del self._assignments[(a.conversation_id, a.label_id)]
        return len(doomed)

    async def clear_assigner(self, user_id: UUID) -> int:
        cleared = 0
        for key, a in list(self._assignments.items()):
            if a.assigned_by == user_id:
                self._assignments[key] = LabelAssignment(
                    assignment_id=a.assignment_id,
                    conversation_id=a.conversation_id,
                    label_id=a.label_id,
                    assigned_by=None,
                    assigned_at=a.assigned_at,
                )
                cleared += 1
        return cleared

    async def labels_for_conversation(self, conversation_id: UUID) -> list[Label]:
        labels = [
            self._labels[a.label_id]
            for a in self._assignments.values()
            if a.conversation_id == conversation_id and a.label_id in self._labels
        ]
        return sorted(labels, key=lambda lb: lb.name)


class PgLabelStore(LabelStorePort):
    """PostgreSQL-backed label store over chat_labels + chat_label_assignments."""

    def __init__(self, *, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    # -- Catalog --

    async def insert_label(self, name: str, color: str, icon: str) -> Label | None:
        stmt = (
            pg_insert(ChatLabelModel)
            .values(id=uuid4(), name=name, color=color, icon=icon)
            .on_conflict_do_nothing(index_elements=[ChatLabelModel.name])
            .returning(ChatLabelModel)
        )
        async with store_errors(_PORT), self._session_factory() as session:
            try:
                result = await session.execute(stmt)
                row = result.scalar_one_or_none()
                await session.commit()
            except sa.exc.IntegrityError as exc:
                await session.rollback()
                if is_unique_violation(exc):
                    return None
                raise
        return _row_to_label(row) if row is not None else None

    async def get_label(self, label_id: UUID) -> Label | None:
        stmt = sa.select(ChatLabelModel).where(ChatLabelModel.id == label_id)
        return await self._select_one_label(stmt)

    async def get_label_by_name(self, name: str) -> Label | None:
        stmt = sa.select(ChatLabelModel).where(ChatLabelModel.name == name)
        return await self._select_one_label(stmt)

    async def _select_one_label(self, stmt: sa.Select) -> Label | None:
        async with store_errors(_PORT), self._session_factory() as session:
            result = await session.execute(stmt)
            row = result.scalar_one_or_none()
        return _row_to_label(row) if row is not None else None

    async def list_labels(self) -> list[Label]:
        stmt = sa.select(ChatLabelModel).order_by(ChatLabelModel.name)
        async with store_errors(_PORT), self._session_factory() as session:
            result = await session.scalars(stmt)
            rows = result.all()
        return [_row_to_label(row) for row in rows]

    async def update_label(
        self,
        label_id: UUID,
        *,
        name: str | None = None,
        color: str | None = None,
        icon: str | None = None,
    ) -> Label | None:
        fields = {
            k: v for k, v in {"name": name, "color": color, "icon": icon}.items() if v is not None
        }
        if not fields:
            return await self.get_label(label_id)

        stmt = (
            sa.update(ChatLabelModel)
            .where(ChatLabelModel.id == label_id)
            .values(**fields)
            .returning(ChatLabelModel)
        )
        async with store_errors(_PORT), self._session_factory() as session:
            try:
                result = await session.execute(stmt)
                row = result.scalar_one_or_none()
                await session.commit()
            except sa.exc.IntegrityError as exc:
                await session.rollback()
                if is_unique_violation(exc):
                    msg = f"Label name already in use: {name}"
                    raise ConflictError(msg) from exc
                raise
        return _row_to_label(row) if row is not None else None

    async def delete_label(self, label_id: UUID) -> bool:
        stmt = sa.delete(ChatLabelModel).where(ChatLabelModel.id == label_id)
        return bool(await self._execute_write(stmt))

    # -- Assignments --

    async def insert_assignment(
        self,
        conversation_id: UUID,
        label_id: UUID,
        assigned_by: UUID | None,
    ) -> LabelAssignment | None:
        stmt = (
            pg_insert(ChatLabelAssignmentModel)
            .values(
                id=uuid4(),
                conversation_id=conversation_id,
                label_id=label_id,
                assigned_by=assigned_by,
            )
            .on_conflict_do_nothing(
                constraint="uq_chat_label_assignments_conversation_label",
            )
            .returning(ChatLabelAssignmentModel)
        )
        async with store_errors(_PORT), self._session_factory() as session:
            try:
                result = await session.execute(stmt)
                row = result.scalar_one_or_none()
                await session.commit()
            except sa.exc.IntegrityError as exc:
                await session.rollback()
                if is_unique_violation(exc):
                    return None
                if is_foreign_key_violation(exc):
                    raise NotFoundError(
                        "Conversation/Label", f"{conversation_id}/{label_id}"
                    ) from exc
                raise
        return _row_to_assignment(row) if row is not None else None

    async def get_assignment(
        self,
        conversation_id: UUID,
        label_id: UUID,
    ) -> LabelAssignment | None:
        stmt = sa.select(ChatLabelAssignmentModel).where(
            ChatLabelAssignmentModel.conversation_id == conversation_id,
            ChatLabelAssignmentModel.label_id == label_id,
        )
        async with store_errors(_PORT), self._session_factory() as session:
            result = await session.execute(stmt)
            row = result.scalar_one_or_none()
        return _row_to_assignment(row) if row is not None else None

    async def delete_assignment(self, conversation_id: UUID, label_id: UUID) -> bool:
        stmt = sa.delete(ChatLabelAssignmentModel).where(
            ChatLabelAssignmentModel.conversation_id == conversation_id,
            ChatLabelAssignmentModel.label_id == label_id,
        )
        return bool(await self._execute_write(stmt))

    async def list_assignments(
        self,
        *,
        conversation_id: UUID | None = None,
        label_id: UUID | None = None,
    ) -> list[LabelAssignment]:
        _require_filter(conversation_id, label_id)
        stmt = sa.select(ChatLabelAssignmentModel).order_by(ChatLabelAssignmentModel.assigned_at)
        stmt = stmt.where(*_assignment_filters(conversation_id, label_id))
        async with store_errors(_PORT), self._session_factory() as session:
            result = await session.scalars(stmt)
            rows = result.all()
        return [_row_to_assignment(row) for row in rows]

    async def delete_assignments(
        self,
        *,
        conversation_id: UUID | None = None,
        label_id: UUID | None = None,
    ) -> int:
        _require_filter(conversation_id, label_id)
        stmt = sa.delete(ChatLabelAssignmentModel).where(
            *_assignment_filters(conversation_id, label_id)
        )
        return await self._execute_write(stmt)

    async def clear_assigner(self, user_id: UUID) -> int:
        stmt = (
            sa.update(ChatLabelAssignmentModel)
            .where(ChatLabelAssignmentModel.assigned_by == user_id)
            .values(assigned_by=None)
        )
        return await self._execute_write(stmt)

    async def labels_for_conversation(self, conversation_id: UUID) -> list[Label]:
        stmt = (
            sa.select(ChatLabelModel)
            .join(
                ChatLabelAssignmentModel,
                ChatLabelAssignmentModel.label_id == ChatLabelModel.id,
            )
            .where(ChatLabelAssignmentModel.conversation_id == conversation_id)
            .order_by(ChatLabelModel.name)
        )
        async with store_errors(_PORT), self._session_factory() as session:
            result = await session.scalars(stmt)
            rows = result.all()
        return [_row_to_label(row) for row in rows]

    async def _execute_write(self, stmt: sa.Executable) -> int:
        """Run a DELETE/UPDATE, commit, and return the affected row count."""
        async with store_errors(_PORT), self._session_factory() as session:
            result = await session.execute(stmt)
            await session.commit()
        return int(result.rowcount or 0)


def _assignment_filters(
    conversation_id: UUID | None,
    label_id: UUID | None,
) -> list[sa.ColumnElement[bool]]:
    filters: list[sa.ColumnElement[bool]] = []
    if conversation_id is not None:
        filters.append(ChatLabelAssignmentModel.conversation_id == conversation_id)
    if label_id is not None:
        filters.append(ChatLabelAssignmentModel.label_id == label_id)
    return filters


def _row_to_label(row: ChatLabelModel) -> Label:
    return Label(
        label_id=row.id,
        name=row.name,
        color=row.color,
        icon=row.icon,
        created_at=row.created_at,
    )


def _row_to_assignment(row: ChatLabelAssignmentModel) -> LabelAssignment:
    return LabelAssignment(
        assignment_id=row.id,
        conversation_id=row.conversation_id,
        label_id=row.label_id,
        assigned_by=row.assigned_by,
        assigned_at=row.assigned_at,
    )
