"""Label Catalog: controlled vocabulary of conversation labels.

- upsert_label is "ensure-seeded": an exact, case-sensitive name match
  returns the stored record unchanged, never updates it.
- update_label_style only touches the cosmetic fields (color, icon).
- rename_label is the one non-idempotent write: a clash with another
  label's name is a ConflictError, and a label already referenced by an
  assignment keeps its name.
- delete_label removes the label's assignments itself before deleting the
  label, whatever cascade the backing store may or may not provide.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import TYPE_CHECKING

from src.shared.errors import ConflictError, NotFoundError, UnavailableError, ValidationError

if TYPE_CHECKING:
    from uuid import UUID

    from src.ports.label_store import LabelStorePort
    from src.shared.types import Label

logger = logging.getLogger(__name__)

DEFAULT_COLOR = "#6B7AED"
DEFAULT_ICON = "pricetag"
MAX_NAME_LENGTH = 50
MAX_ICON_LENGTH = 50

_COLOR_RE = re.compile(r"^#[0-9A-Fa-f]{6}$")


@dataclass(frozen=True)
class LabelSeed:
    name: str
    color: str
    icon: str


DEFAULT_LABELS: tuple[LabelSeed, ...] = (
    LabelSeed("Urgente", "#EF4444", "alert-circle"),
    LabelSeed("Importante", "#F59E0B", "star"),
    LabelSeed("Pendiente", "#3B82F6", "time"),
    LabelSeed("Resuelto", "#10B981", "checkmark-circle"),
    LabelSeed("Seguimiento", "#8B5CF6", "eye"),
)


def _validate_name(name: str) -> None:
    if not name or not name.strip():
        raise ValidationError("Label name must be non-empty", field="name")
    if len(name) > MAX_NAME_LENGTH:
        msg = f"Label name exceeds {MAX_NAME_LENGTH} characters"
        raise ValidationError(msg, field="name")


def _validate_style(color: str | None, icon: str | None) -> None:
    if color is not None and not _COLOR_RE.match(color):
        raise ValidationError(f"Invalid color {color!r}, expected #RRGGBB", field="color")
    if icon is not None and (not icon.strip() or len(icon) > MAX_ICON_LENGTH):
        raise ValidationError(f"Invalid icon {icon!r}", field="icon")


class LabelCatalog:
    """Catalog operations over a LabelStorePort."""

    def __init__(self, store: LabelStorePort) -> None:
        self._store = store

    async def upsert_label(
        self,
        name: str,
        color: str = DEFAULT_COLOR,
        icon: str = DEFAULT_ICON,
    ) -> Label:
        """Create the label if no label has this exact name, else return it."""
        _validate_name(name)
        _validate_style(color, icon)

        # Two rounds cover a concurrent delete between the lost insert race
        # and the re-read.
        for _ in range(2):
            existing = await self._store.get_label_by_name(name)
            if existing is not None:
                return existing
            inserted = await self._store.insert_label(name, color, icon)
            if inserted is not None:
                logger.info("Created label name=%r label_id=%s", name, inserted.label_id)
                return inserted

        msg = f"Label {name!r} could not be read back after insert"
        raise UnavailableError("label_store", msg)

    async def update_label_style(
        self,
        label_id: UUID,
        *,
        color: str | None = None,
        icon: str | None = None,
    ) -> Label:
        """Cosmetic edit of color and/or icon."""
        _validate_style(color, icon)
        updated = await self._store.update_label(label_id, color=color, icon=icon)
        if updated is None:
            raise NotFoundError("Label", label_id)
        return updated

    async def rename_label(self, label_id: UUID, name: str) -> Label:
        """Rename an unreferenced label.

        Raises:
            NotFoundError: label absent.
            ConflictError: name held by another label, or label in use.
        """
        _validate_name(name)
        current = await self.get_label(label_id)
        if current.name == name:
            return current
        if await self._store.list_assignments(label_id=label_id):
            msg = f"Label {current.name!r} is assigned to conversations and cannot be renamed"
            raise ConflictError(msg)
        updated = await self._store.update_label(label_id, name=name)
        if updated is None:
            raise NotFoundError("Label", label_id)
        logger.info("Renamed label %r -> %r label_id=%s", current.name, name, label_id)
        return updated

    async def get_label(self, label_id: UUID) -> Label:
        label = await self._store.get_label(label_id)
        if label is None:
            raise NotFoundError("Label", label_id)
        return label

    async def list_catalog(self) -> list[Label]:
        """All labels, ordered by name."""
        return await self._store.list_labels()

    async def delete_label(self, label_id: UUID) -> bool:
        """Delete a label and every assignment of it. False if already absent."""
        removed = await self._store.delete_assignments(label_id=label_id)
        deleted = await self._store.delete_label(label_id)
        if deleted:
            logger.info("Deleted label label_id=%s assignments_removed=%d", label_id, removed)
        return deleted

    async def seed_defaults(self, seeds: tuple[LabelSeed, ...] = DEFAULT_LABELS) -> list[Label]:
        """Ensure the seed set exists. Safe to run any number of times."""
        return [await self.upsert_label(s.name, s.color, s.icon) for s in seeds]
