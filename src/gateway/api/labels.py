"""Label REST API endpoints.

- GET  /api/v1/labels -> catalog ordered by name
- GET  /api/v1/labels/conversations/{id} -> labels on a conversation
- POST /api/v1/labels/conversations/{id} -> assign (idempotent)
- DELETE /api/v1/labels/conversations/{id}/{label_id} -> unassign
- GET  /api/v1/labels/{label_id}/conversations -> filter by label

Conversation-scoped routes go through the AuthorizationFacade, so the caller
must be a participant or a consultor.
"""

from __future__ import annotations

from typing import TYPE_CHECKING
from uuid import UUID  # noqa: TC003 - needed at runtime by FastAPI/pydantic

from fastapi import APIRouter, Request
from pydantic import BaseModel

if TYPE_CHECKING:
    from src.authz.facade import AuthorizationFacade
    from src.labels.catalog import LabelCatalog
    from src.shared.types import Label, LabelAssignment


class AssignLabelRequest(BaseModel):
    label_id: UUID


class LabelResponse(BaseModel):
    label_id: str
    name: str
    color: str
    icon: str


class AssignmentResponse(BaseModel):
    assignment_id: str
    conversation_id: str
    label_id: str
    assigned_by: str | None
    assigned_at: str


class UnassignResponse(BaseModel):
    removed: bool


class LabelConversationsResponse(BaseModel):
    label_id: str
    conversation_ids: list[str]


def label_response(label: Label) -> LabelResponse:
    return LabelResponse(
        label_id=str(label.label_id),
        name=label.name,
        color=label.color,
        icon=label.icon,
    )


def _assignment_response(assignment: LabelAssignment) -> AssignmentResponse:
    return AssignmentResponse(
        assignment_id=str(assignment.assignment_id),
        conversation_id=str(assignment.conversation_id),
        label_id=str(assignment.label_id),
        assigned_by=str(assignment.assigned_by) if assignment.assigned_by else None,
        assigned_at=assignment.assigned_at.isoformat(),
    )


def create_label_router(
    *,
    facade: AuthorizationFacade,
    catalog: LabelCatalog,
) -> APIRouter:
    """Create label API router with injected catalog and facade."""
    router = APIRouter(prefix="/api/v1/labels", tags=["labels"])

    @router.get("", response_model=list[LabelResponse])
    async def list_catalog() -> list[LabelResponse]:
        return [label_response(label) for label in await catalog.list_catalog()]

    @router.get("/conversations/{conversation_id}", response_model=list[LabelResponse])
    async def conversation_labels(conversation_id: UUID, request: Request) -> list[LabelResponse]:
        labels = await facade.list_labels(request.state.user_id, conversation_id)
        return [label_response(label) for label in labels]

    @router.post(
        "/conversations/{conversation_id}",
        response_model=AssignmentResponse,
        status_code=201,
    )
    async def assign_label(
        conversation_id: UUID,
        body: AssignLabelRequest,
        request: Request,
    ) -> AssignmentResponse:
        assignment = await facade.assign_label(request.state.user_id, conversation_id, body.label_id)
        return _assignment_response(assignment)

    @router.delete("/conversations/{conversation_id}/{label_id}", response_model=UnassignResponse)
    async def unassign_label(
        conversation_id: UUID,
        label_id: UUID,
        request: Request,
    ) -> UnassignResponse:
        removed = await facade.unassign_label(request.state.user_id, conversation_id, label_id)
        return UnassignResponse(removed=removed)

    @router.get("/{label_id}/conversations", response_model=LabelConversationsResponse)
    async def label_conversations(label_id: UUID, request: Request) -> LabelConversationsResponse:
        await catalog.get_label(label_id)
        ids = await facade.conversations_for_label(request.state.user_id, label_id)
        return LabelConversationsResponse(
            label_id=str(label_id),
            conversation_ids=[str(i) for i in ids],
        )

    return router
