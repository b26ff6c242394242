"""Label and conversation administration.

- POST   /api/v1/admin/labels -> upsert (existing name returns the stored label)
- PATCH  /api/v1/admin/labels/{id} -> rename and/or restyle (409 on conflict)
- DELETE /api/v1/admin/labels/{id} -> delete label and its assignments
- DELETE /api/v1/admin/conversations/{id} -> delete conversation and its
  assignments

Consultor role claim required (AdminGateMiddleware).
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING
from uuid import UUID  # noqa: TC003 - needed at runtime by FastAPI path params

from fastapi import APIRouter
from pydantic import BaseModel, model_validator

from src.gateway.api.labels import LabelResponse, label_response
from src.labels.catalog import DEFAULT_COLOR, DEFAULT_ICON
from src.shared.errors import ConectaError, NotFoundError

if TYPE_CHECKING:
    from src.authz.facade import AuthorizationFacade
    from src.gateway.metrics.authz import AuthzMetrics
    from src.labels.catalog import LabelCatalog

logger = logging.getLogger(__name__)


class UpsertLabelRequest(BaseModel):
    name: str
    color: str = DEFAULT_COLOR
    icon: str = DEFAULT_ICON


class UpdateLabelRequest(BaseModel):
    name: str | None = None
    color: str | None = None
    icon: str | None = None

    @model_validator(mode="after")
    def at_least_one_field(self) -> UpdateLabelRequest:
        if self.name is None and self.color is None and self.icon is None:
            msg = "one of name, color, icon is required"
            raise ValueError(msg)
        return self


class DeletedResponse(BaseModel):
    deleted: bool


def create_admin_label_router(
    *,
    catalog: LabelCatalog,
    facade: AuthorizationFacade,
    metrics: AuthzMetrics | None = None,
) -> APIRouter:
    """Create label/conversation admin API router."""
    router = APIRouter(prefix="/api/v1/admin", tags=["labels-admin"])

    def _record(operation: str, result: str) -> None:
        if metrics is not None:
            metrics.record_label_mutation(operation, result)

    @router.post("/labels", response_model=LabelResponse)
    async def upsert_label(body: UpsertLabelRequest) -> LabelResponse:
        try:
            label = await catalog.upsert_label(body.name, body.color, body.icon)
        except ConectaError as exc:
            _record("upsert", exc.code)
            raise
        _record("upsert", "ok")
        return label_response(label)

    @router.patch("/labels/{label_id}", response_model=LabelResponse)
    async def update_label(label_id: UUID, body: UpdateLabelRequest) -> LabelResponse:
        try:
            label = await catalog.get_label(label_id)
            if body.name is not None:
                label = await catalog.rename_label(label_id, body.name)
                _record("rename", "ok")
            if body.color is not None or body.icon is not None:
                label = await catalog.update_label_style(label_id, color=body.color, icon=body.icon)
                _record("style", "ok")
        except ConectaError as exc:
            _record("update", exc.code)
            raise
        return label_response(label)

    @router.delete("/labels/{label_id}", response_model=DeletedResponse)
    async def delete_label(label_id: UUID) -> DeletedResponse:
        if not await catalog.delete_label(label_id):
            raise NotFoundError("Label", label_id)
        _record("delete", "ok")
        return DeletedResponse(deleted=True)

    @router.delete("/conversations/{conversation_id}", response_model=DeletedResponse)
    async def delete_conversation(conversation_id: UUID) -> DeletedResponse:
        if not await facade.delete_conversation(conversation_id):
            raise NotFoundError("Conversation", conversation_id)
        return DeletedResponse(deleted=True)

    return router
