"""Conversation REST API endpoints.

- POST /api/v1/conversations -> authorize + register (201), or return the
  existing direct conversation between the same two users (200)
- GET /api/v1/conversations/{id} -> conversation, visible to participants
  and consultores
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Literal
from uuid import UUID  # noqa: TC003 - needed at runtime by FastAPI/pydantic

from fastapi import APIRouter, Request, Response
from pydantic import BaseModel, field_validator

from src.shared.types import ConversationKind

if TYPE_CHECKING:
    from src.authz.facade import AuthorizationFacade
    from src.shared.types import Conversation, ConversationHandle

logger = logging.getLogger(__name__)


class CreateConversationRequest(BaseModel):
    target_ids: list[UUID]
    kind: Literal["direct", "group"] = "direct"
    group_name: str | None = None

    @field_validator("group_name")
    @classmethod
    def strip_group_name(cls, v: str | None) -> str | None:
        return v.strip() if v is not None else None


class ConversationResponse(BaseModel):
    conversation_id: str
    kind: str
    participant_ids: list[str]
    created_by: str | None
    group_name: str | None = None
    created: bool | None = None


def _from_handle(handle: ConversationHandle, group_name: str | None) -> ConversationResponse:
    return ConversationResponse(
        conversation_id=str(handle.conversation_id),
        kind=handle.kind.value,
        participant_ids=sorted(str(p) for p in handle.participant_ids),
        created_by=str(handle.created_by),
        group_name=group_name,
        created=handle.created,
    )


def _from_conversation(conversation: Conversation) -> ConversationResponse:
    return ConversationResponse(
        conversation_id=str(conversation.conversation_id),
        kind=conversation.kind.value,
        participant_ids=sorted(str(p) for p in conversation.participant_ids),
        created_by=str(conversation.created_by) if conversation.created_by else None,
        group_name=conversation.group_name,
    )


def create_conversation_router(*, facade: AuthorizationFacade) -> APIRouter:
    """Create conversation API router with injected facade dependency."""
    router = APIRouter(prefix="/api/v1/conversations", tags=["conversations"])

    @router.post("", response_model=ConversationResponse, status_code=201)
    async def create_conversation(
        body: CreateConversationRequest,
        request: Request,
        response: Response,
    ) -> ConversationResponse:
        user_id: UUID = request.state.user_id
        handle = await facade.authorize_create(
            user_id,
            body.target_ids,
            ConversationKind(body.kind),
            group_name=body.group_name,
        )
        if not handle.created:
            response.status_code = 200
        else:
            logger.info(
                "Created %s conversation_id=%s by user_id=%s",
                handle.kind.value,
                handle.conversation_id,
                user_id,
            )
        return _from_handle(handle, body.group_name)

    @router.get("/{conversation_id}", response_model=ConversationResponse)
    async def get_conversation(conversation_id: UUID, request: Request) -> ConversationResponse:
        conversation = await facade.get_conversation(request.state.user_id, conversation_id)
        return _from_conversation(conversation)

    return router
