"""Authorization Facade: single entry point for conversation creation and
label mutation.

Combines the role classifier, the permission matrix, the conversation
registry and the label ledger. Store failures (UnavailableError) propagate
unchanged; they are never turned into a denial.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import TYPE_CHECKING
from uuid import uuid4

from src.authz.classifier import classify, normalize_role
from src.authz.matrix import evaluate_initiation
from src.shared.errors import (
    ConectaError,
    ConflictError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from src.shared.types import ConversationHandle, ConversationKind, Role, User

if TYPE_CHECKING:
    from collections.abc import Iterable
    from uuid import UUID

    from src.authz.reclassify import RoleReclassifier
    from src.gateway.metrics.authz import AuthzMetrics
    from src.labels.ledger import LabelAssignmentLedger
    from src.ports.conversation_registry import ConversationRegistryPort
    from src.ports.identity_store import IdentityStorePort
    from src.shared.types import (
        Conversation,
        FiscalProfile,
        Label,
        LabelAssignment,
        ReclassificationReport,
    )

logger = logging.getLogger(__name__)

# Rule reported when a non-participant touches a conversation's labels.
CONVERSATION_ACCESS_RULE = "participant_or_consultor"

MAX_BUSINESS_ID_LENGTH = 32
MAX_GROUP_NAME_LENGTH = 100


class AuthorizationFacade:
    """Authorizes and performs conversation and label operations."""

    def __init__(
        self,
        *,
        identity: IdentityStorePort,
        registry: ConversationRegistryPort,
        ledger: LabelAssignmentLedger,
        reclassifier: RoleReclassifier | None = None,
        metrics: AuthzMetrics | None = None,
    ) -> None:
        self._identity = identity
        self._registry = registry
        self._ledger = ledger
        self._reclassifier = reclassifier
        self._metrics = metrics

    # -- Role resolution --

    @staticmethod
    def role_of(user: User) -> Role:
        """Stored role, or the classifier's answer when the stored one is stale.

        A pinned (role_override) role is never re-derived from business_id;
        an unrecognized pinned value reads as usuario, as in reclassification.
        """
        if user.role_override:
            return normalize_role(user.role)
        return user.role if user.role is not None else classify(user.business_id)

    async def _require_user(self, user_id: UUID) -> User:
        user = await self._identity.get_user(user_id)
        if user is None or not user.is_active:
            raise NotFoundError("User", user_id)
        return user

    async def get_role(self, user_id: UUID) -> Role:
        return self.role_of(await self._require_user(user_id))

    # -- Conversation creation --

    async def authorize_create(
        self,
        initiator_id: UUID,
        target_ids: Iterable[UUID],
        kind: ConversationKind,
        *,
        group_name: str | None = None,
    ) -> ConversationHandle:
        """Authorize and register a conversation, all-or-nothing.

        Raises:
            ValidationError: malformed request.
            NotFoundError: initiator or a target is unknown (or deactivated).
            PermissionDeniedError: the matrix rejected some target.
            UnavailableError: a store could not be reached.
        """
        targets = list(target_ids)
        _validate_request(initiator_id, targets, kind, group_name)

        initiator = await self._require_user(initiator_id)
        target_users = [await self._require_user(t) for t in targets]

        initiator_role = self.role_of(initiator)
        for target in target_users:
            decision = evaluate_initiation(initiator_role, self.role_of(target), kind)
            if self._metrics is not None:
                self._metrics.record_decision(decision)
            if not decision.allowed:
                logger.warning(
                    "Denied %s conversation initiator=%s target=%s rule=%s",
                    kind.value,
                    initiator_id,
                    target.user_id,
                    decision.rule.value,
                )
                decision.raise_if_denied()

        if kind is ConversationKind.DIRECT:
            existing = await self._registry.find_direct(initiator_id, targets[0])
            if existing is not None:
                return _handle(existing, initiator_id, created=False)

        participants = frozenset([initiator_id, *targets])
        conversation = await self._registry.create_conversation(
            kind,
            participants,
            initiator_id,
            group_name=group_name,
        )
        return _handle(conversation, initiator_id, created=True)

    async def get_conversation(self, actor_id: UUID, conversation_id: UUID) -> Conversation:
        """Conversation visible to a participant or any consultor."""
        actor = await self._require_user(actor_id)
        conversation = await self._registry.get_conversation(conversation_id)
        if conversation is None:
            raise NotFoundError("Conversation", conversation_id)
        self._check_access(actor, conversation)
        return conversation

    async def delete_conversation(self, conversation_id: UUID) -> bool:
        """Administrative delete: purge label assignments, then the conversation."""
        purged = await self._ledger.purge_conversation(conversation_id)
        deleted = await self._registry.delete_conversation(conversation_id)
        if deleted:
            logger.info(
                "Deleted conversation_id=%s assignments_removed=%d",
                conversation_id,
                purged,
            )
        return deleted

    # -- Label mutation --

    def _check_access(self, actor: User, conversation: Conversation) -> None:
        if actor.user_id in conversation.participant_ids:
            return
        if self.role_of(actor) is Role.CONSULTOR:
            return
        msg = f"user {actor.user_id} is not a participant of conversation {conversation.conversation_id}"
        raise PermissionDeniedError(CONVERSATION_ACCESS_RULE, msg)

    async def assign_label(
        self,
        actor_id: UUID,
        conversation_id: UUID,
        label_id: UUID,
    ) -> LabelAssignment:
        await self.get_conversation(actor_id, conversation_id)
        try:
            assignment = await self._ledger.assign(conversation_id, label_id, actor_id)
        except ConectaError as exc:
            self._record_label("assign", exc.code)
            raise
        self._record_label("assign", "ok")
        return assignment

    async def unassign_label(
        self,
        actor_id: UUID,
        conversation_id: UUID,
        label_id: UUID,
    ) -> bool:
        await self.get_conversation(actor_id, conversation_id)
        removed = await self._ledger.unassign(conversation_id, label_id)
        self._record_label("unassign", "ok" if removed else "noop")
        return removed

    async def list_labels(self, actor_id: UUID, conversation_id: UUID) -> list[Label]:
        await self.get_conversation(actor_id, conversation_id)
        return await self._ledger.list_labels(conversation_id)

    async def conversations_for_label(self, actor_id: UUID, label_id: UUID) -> list[UUID]:
        """Conversations carrying ``label_id`` that the actor may see."""
        actor = await self._require_user(actor_id)
        conversation_ids = await self._ledger.conversations_for_label(label_id)
        if self.role_of(actor) is Role.CONSULTOR:
            return conversation_ids
        visible: list[UUID] = []
        for conversation_id in conversation_ids:
            conversation = await self._registry.get_conversation(conversation_id)
            if conversation is not None and actor_id in conversation.participant_ids:
                visible.append(conversation_id)
        return visible

    def _record_label(self, operation: str, result: str) -> None:
        if self._metrics is not None:
            self._metrics.record_label_mutation(operation, result)

    # -- User lifecycle --

    async def provision_user(
        self,
        business_id: str,
        display_name: str | None = None,
        *,
        phone: str | None = None,
        fiscal_profile: FiscalProfile | None = None,
    ) -> User:
        """Register a user, classifying the role at write time.

        Raises:
            ValidationError: empty or oversized business_id.
            ConflictError: business_id already registered.
        """
        business_id = business_id.strip()
        if not business_id or len(business_id) > MAX_BUSINESS_ID_LENGTH:
            raise ValidationError(f"Invalid business_id {business_id!r}", field="business_id")
        if await self._identity.get_user_by_business_id(business_id) is not None:
            msg = f"business_id already registered: {business_id}"
            raise ConflictError(msg)

        user = User(
            user_id=uuid4(),
            business_id=business_id,
            display_name=display_name,
            role=classify(business_id),
            phone=phone,
            fiscal_profile=fiscal_profile,
        )
        await self._identity.put_user(user)
        logger.info("Provisioned user_id=%s role=%s", user.user_id, user.role.value)
        return user

    async def deactivate_user(self, user_id: UUID) -> User:
        user = await self._identity.get_user(user_id)
        if user is None:
            raise NotFoundError("User", user_id)
        if not user.is_active:
            return user
        updated = replace(user, is_active=False)
        await self._identity.put_user(updated)
        logger.info("Deactivated user_id=%s", user_id)
        return updated

    async def purge_user(self, user_id: UUID) -> bool:
        """Administrative erase of a user's personal data.

        The row stays, deactivated, so its business_id remains reserved.
        Assignments made by the user survive with assigned_by cleared.
        Returns False if the user is unknown.
        """
        user = await self._identity.get_user(user_id)
        if user is None:
            return False
        detached = await self._ledger.detach_assigner(user_id)
        erased = replace(
            user,
            display_name=None,
            phone=None,
            push_token=None,
            fiscal_profile=None,
            role=self.role_of(user),
            is_active=False,
        )
        await self._identity.put_user(erased)
        logger.info("Purged user_id=%s assignments_detached=%d", user_id, detached)
        return True

    # -- Reclassification --

    async def reclassify_all(self) -> ReclassificationReport:
        if self._reclassifier is None:
            msg = "AuthorizationFacade was built without a RoleReclassifier"
            raise RuntimeError(msg)
        report = await self._reclassifier.reclassify_all()
        if self._metrics is not None:
            self._metrics.set_role_counts(report.counts)
        return report


def _validate_request(
    initiator_id: UUID,
    targets: list[UUID],
    kind: ConversationKind,
    group_name: str | None,
) -> None:
    if kind is ConversationKind.DIRECT and len(targets) != 1:
        msg = f"direct conversations take exactly one target, got {len(targets)}"
        raise ValidationError(msg, field="target_ids")
    if kind is ConversationKind.GROUP and not targets:
        raise ValidationError("group conversations need at least one target", field="target_ids")
    if initiator_id in targets:
        raise ValidationError("initiator cannot be listed as a target", field="target_ids")
    if len(set(targets)) != len(targets):
        raise ValidationError("duplicate target ids", field="target_ids")
    if group_name is not None:
        if kind is not ConversationKind.GROUP:
            raise ValidationError("group_name applies to group conversations only", field="group_name")
        if not group_name.strip() or len(group_name) > MAX_GROUP_NAME_LENGTH:
            raise ValidationError(f"Invalid group_name {group_name!r}", field="group_name")


def _handle(conversation: Conversation, initiator_id: UUID, *, created: bool) -> ConversationHandle:
    return ConversationHandle(
        conversation_id=conversation.conversation_id,
        kind=conversation.kind,
        participant_ids=conversation.participant_ids,
        created_by=conversation.created_by or initiator_id,
        created=created,
    )
