"""Label REST API: catalog, per-conversation assignment, filtering."""

from __future__ import annotations

from uuid import uuid4

import pytest

from src.shared.types import ConversationKind


@pytest.fixture
async def conversation(registry, usuario, consultor):
    return await registry.create_conversation(
        ConversationKind.DIRECT,
        frozenset({usuario.user_id, consultor.user_id}),
        usuario.user_id,
    )


@pytest.fixture
async def urgente(catalog):
    return await catalog.upsert_label("Urgente", "#EF4444", "alert-circle")


@pytest.mark.unit
class TestCatalogEndpoints:
    async def test_listing_open_to_any_user(self, client, auth, usuario, catalog):
        await catalog.upsert_label("Urgente", "#EF4444", "alert-circle")
        await catalog.upsert_label("Importante")

        listing = await client.get("/api/v1/labels", headers=auth(usuario))

        assert listing.status_code == 200
        assert [lb["name"] for lb in listing.json()] == ["Importante", "Urgente"]

    async def test_usuario_cannot_create_catalog_labels(self, client, auth, usuario, catalog):
        resp = await client.post(
            "/api/v1/admin/labels", json={"name": "Inventada"}, headers=auth(usuario)
        )

        assert resp.status_code == 403
        assert resp.json()["rule"] == "admin_requires_consultor"
        assert await catalog.list_catalog() == []


@pytest.mark.unit
class TestAssignmentEndpoints:
    async def test_assign_list_unassign(self, client, auth, usuario, conversation, urgente):
        url = f"/api/v1/labels/conversations/{conversation.conversation_id}"

        resp = await client.post(url, json={"label_id": str(urgente.label_id)}, headers=auth(usuario))
        assert resp.status_code == 201
        assert resp.json()["assigned_by"] == str(usuario.user_id)

        listing = await client.get(url, headers=auth(usuario))
        assert [lb["name"] for lb in listing.json()] == ["Urgente"]

        removed = await client.delete(f"{url}/{urgente.label_id}", headers=auth(usuario))
        assert removed.json() == {"removed": True}
        again = await client.delete(f"{url}/{urgente.label_id}", headers=auth(usuario))
        assert again.json() == {"removed": False}

    async def test_assign_twice_keeps_first_attribution(
        self, client, auth, usuario, consultor, conversation, urgente
    ):
        url = f"/api/v1/labels/conversations/{conversation.conversation_id}"
        body = {"label_id": str(urgente.label_id)}
        first = await client.post(url, json=body, headers=auth(usuario))
        second = await client.post(url, json=body, headers=auth(consultor))

        assert second.json() == first.json()

    async def test_outsider_cannot_label(self, client, auth, usuario2, conversation, urgente):
        url = f"/api/v1/labels/conversations/{conversation.conversation_id}"
        resp = await client.post(url, json={"label_id": str(urgente.label_id)}, headers=auth(usuario2))
        assert resp.status_code == 403

    async def test_unknown_label_404(self, client, auth, usuario, conversation):
        url = f"/api/v1/labels/conversations/{conversation.conversation_id}"
        resp = await client.post(url, json={"label_id": str(uuid4())}, headers=auth(usuario))
        assert resp.status_code == 404


@pytest.mark.unit
class TestLabelFilter:
    async def test_filter_visible_to_participants_only(
        self, client, auth, ledger, registry, usuario, usuario2, consultor, conversation, urgente
    ):
        other = await registry.create_conversation(
            ConversationKind.DIRECT,
            frozenset({usuario2.user_id, consultor.user_id}),
            usuario2.user_id,
        )
        await ledger.assign(conversation.conversation_id, urgente.label_id, None)
        await ledger.assign(other.conversation_id, urgente.label_id, None)
        url = f"/api/v1/labels/{urgente.label_id}/conversations"

        mine = await client.get(url, headers=auth(usuario))
        everything = await client.get(url, headers=auth(consultor))

        assert mine.json()["conversation_ids"] == [str(conversation.conversation_id)]
        assert set(everything.json()["conversation_ids"]) == {
            str(conversation.conversation_id),
            str(other.conversation_id),
        }

    async def test_unknown_label_404(self, client, auth, consultor):
        resp = await client.get(f"/api/v1/labels/{uuid4()}/conversations", headers=auth(consultor))
        assert resp.status_code == 404
