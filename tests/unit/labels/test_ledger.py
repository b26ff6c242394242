"""Label Assignment Ledger: idempotent assign, unassign, cascades."""

from __future__ import annotations

import asyncio
from uuid import uuid4

import pytest

from src.shared.errors import NotFoundError
from src.shared.types import ConversationKind


@pytest.fixture
async def conversation(registry):
    return await registry.create_conversation(
        ConversationKind.DIRECT, frozenset({uuid4(), uuid4()}), uuid4()
    )


@pytest.fixture
async def urgente(catalog):
    return await catalog.upsert_label("Urgente", "#EF4444", "alert-circle")


@pytest.mark.unit
class TestAssign:
    async def test_assign_records_attribution(self, ledger, conversation, urgente):
        assigner = uuid4()
        assignment = await ledger.assign(conversation.conversation_id, urgente.label_id, assigner)

        assert assignment.conversation_id == conversation.conversation_id
        assert assignment.label_id == urgente.label_id
        assert assignment.assigned_by == assigner
        assert assignment.assigned_at is not None

    async def test_assign_twice_keeps_original_row(self, ledger, conversation, urgente):
        first = await ledger.assign(conversation.conversation_id, urgente.label_id, uuid4())
        second = await ledger.assign(conversation.conversation_id, urgente.label_id, uuid4())

        assert second == first
        assert len(await ledger.list_assignments(conversation.conversation_id)) == 1

    async def test_concurrent_assign_converges(self, ledger, conversation, urgente):
        results = await asyncio.gather(
            *(ledger.assign(conversation.conversation_id, urgente.label_id, uuid4()) for _ in range(8))
        )
        assert len({a.assignment_id for a in results}) == 1

    async def test_unknown_conversation(self, ledger, urgente):
        with pytest.raises(NotFoundError) as exc_info:
            await ledger.assign(uuid4(), urgente.label_id, None)
        assert exc_info.value.resource_type == "Conversation"

    async def test_unknown_label(self, ledger, conversation):
        with pytest.raises(NotFoundError) as exc_info:
            await ledger.assign(conversation.conversation_id, uuid4(), None)
        assert exc_info.value.resource_type == "Label"


@pytest.mark.unit
class TestUnassign:
    async def test_absent_pair_returns_false_and_changes_nothing(
        self, ledger, catalog, conversation, urgente
    ):
        other = await catalog.upsert_label("Pendiente")
        await ledger.assign(conversation.conversation_id, urgente.label_id, None)
        before = await ledger.list_assignments(conversation.conversation_id)

        assert await ledger.unassign(conversation.conversation_id, other.label_id) is False
        assert await ledger.list_assignments(conversation.conversation_id) == before

    async def test_round_trip_restores_prior_state(self, ledger, conversation, urgente):
        before = await ledger.list_assignments(conversation.conversation_id)
        await ledger.assign(conversation.conversation_id, urgente.label_id, None)

        assert await ledger.unassign(conversation.conversation_id, urgente.label_id) is True
        assert await ledger.list_assignments(conversation.conversation_id) == before


@pytest.mark.unit
class TestQueriesAndCascades:
    async def test_list_labels_ordered_by_name(self, ledger, catalog, conversation, urgente):
        importante = await catalog.upsert_label("Importante")
        await ledger.assign(conversation.conversation_id, urgente.label_id, None)
        await ledger.assign(conversation.conversation_id, importante.label_id, None)

        labels = await ledger.list_labels(conversation.conversation_id)
        assert [lb.name for lb in labels] == ["Importante", "Urgente"]

    async def test_purge_conversation_leaves_others(self, ledger, registry, conversation, urgente):
        other = await registry.create_conversation(
            ConversationKind.DIRECT, frozenset({uuid4(), uuid4()}), uuid4()
        )
        await ledger.assign(conversation.conversation_id, urgente.label_id, None)
        await ledger.assign(other.conversation_id, urgente.label_id, None)

        assert await ledger.purge_conversation(conversation.conversation_id) == 1
        assert await ledger.conversations_for_label(urgente.label_id) == [other.conversation_id]

    async def test_detach_assigner(self, ledger, conversation, urgente):
        assigner = uuid4()
        original = await ledger.assign(conversation.conversation_id, urgente.label_id, assigner)

        assert await ledger.detach_assigner(assigner) == 1

        (kept,) = await ledger.list_assignments(conversation.conversation_id)
        assert kept.assigned_by is None
        assert kept.assigned_at == original.assigned_at
        assert kept.assignment_id == original.assignment_id
