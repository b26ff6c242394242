"""Admin partition: label/conversation maintenance and role administration."""

from __future__ import annotations

from dataclasses import replace
from uuid import uuid4

import pytest

from src.shared.types import ConversationKind, Role


@pytest.mark.unit
class TestAdminGate:
    async def test_usuario_forbidden(self, client, auth, usuario):
        resp = await client.post("/api/v1/admin/roles/reclassify", headers=auth(usuario))
        assert resp.status_code == 403
        assert resp.json()["rule"] == "admin_requires_consultor"

    async def test_gate_reads_token_claim(
        self, client, auth, usuario
    ):
        resp = await client.get(
            "/api/v1/admin/roles/classify/CONS0009ANA",
            headers=auth(usuario, role="consultor"),
        )
        assert resp.status_code == 200

    async def test_classify_dry_run(self, client, auth, consultor):
        resp = await client.get("/api/v1/admin/roles/classify/ADV5512345678", headers=auth(consultor))
        assert resp.json() == {"business_id": "ADV5512345678", "role": "asesor"}


@pytest.mark.unit
class TestAdminLabels:
    async def test_upsert_twice_same_id(self, client, auth, consultor, usuario):
        body = {"name": "Urgente", "color": "#EF4444", "icon": "alert-circle"}
        first = await client.post("/api/v1/admin/labels", json=body, headers=auth(consultor))
        second = await client.post("/api/v1/admin/labels", json=body, headers=auth(consultor))

        assert first.status_code == 200
        assert first.json()["label_id"] == second.json()["label_id"]

        listing = await client.get("/api/v1/labels", headers=auth(usuario))
        assert [lb["name"] for lb in listing.json()] == ["Urgente"]

    async def test_upsert_defaults(self, client, auth, consultor):
        resp = await client.post(
            "/api/v1/admin/labels", json={"name": "Nueva"}, headers=auth(consultor)
        )
        assert resp.json()["color"] == "#6B7AED"
        assert resp.json()["icon"] == "pricetag"

    async def test_upsert_bad_color_422(self, client, auth, consultor):
        resp = await client.post(
            "/api/v1/admin/labels",
            json={"name": "Nueva", "color": "blue"},
            headers=auth(consultor),
        )
        assert resp.status_code == 422
        assert resp.json()["field"] == "color"

    async def test_upsert_counts_mutation(self, client, auth, consultor, metrics_registry):
        await client.post("/api/v1/admin/labels", json={"name": "Nueva"}, headers=auth(consultor))
        value = metrics_registry.get_sample_value(
            "conecta_label_mutations_total",
            {"operation": "upsert", "result": "ok"},
        )
        assert value == 1.0

    @pytest.mark.parametrize("user_fixture", ["usuario", "asesor"])
    async def test_upsert_requires_consultor(self, request, client, auth, catalog, user_fixture):
        user = request.getfixturevalue(user_fixture)
        resp = await client.post(
            "/api/v1/admin/labels", json={"name": "Inventada"}, headers=auth(user)
        )

        assert resp.status_code == 403
        assert resp.json()["rule"] == "admin_requires_consultor"
        assert await catalog.list_catalog() == []

    async def test_restyle(self, client, auth, catalog, consultor):
        label = await catalog.upsert_label("Urgente", "#EF4444", "alert-circle")
        resp = await client.patch(
            f"/api/v1/admin/labels/{label.label_id}",
            json={"color": "#DC2626"},
            headers=auth(consultor),
        )
        assert resp.status_code == 200
        assert resp.json()["color"] == "#DC2626"
        assert resp.json()["icon"] == "alert-circle"

    async def test_rename_conflict_409(self, client, auth, catalog, consultor):
        await catalog.upsert_label("Urgente")
        other = await catalog.upsert_label("Importante")
        resp = await client.patch(
            f"/api/v1/admin/labels/{other.label_id}",
            json={"name": "Urgente"},
            headers=auth(consultor),
        )
        assert resp.status_code == 409
        assert resp.json()["error"] == "CONFLICT"

    async def test_empty_patch_422(self, client, auth, catalog, consultor):
        label = await catalog.upsert_label("Urgente")
        resp = await client.patch(
            f"/api/v1/admin/labels/{label.label_id}", json={}, headers=auth(consultor)
        )
        assert resp.status_code == 422

    async def test_patch_unknown_404(self, client, auth, consultor):
        resp = await client.patch(
            f"/api/v1/admin/labels/{uuid4()}", json={"icon": "flame"}, headers=auth(consultor)
        )
        assert resp.status_code == 404

    async def test_delete_label(self, client, auth, catalog, consultor):
        label = await catalog.upsert_label("Urgente")
        url = f"/api/v1/admin/labels/{label.label_id}"
        assert (await client.delete(url, headers=auth(consultor))).json() == {"deleted": True}
        assert (await client.delete(url, headers=auth(consultor))).status_code == 404

    async def test_delete_conversation_purges_labels(
        self, client, auth, catalog, ledger, registry, usuario, consultor
    ):
        conversation = await registry.create_conversation(
            ConversationKind.DIRECT,
            frozenset({usuario.user_id, consultor.user_id}),
            usuario.user_id,
        )
        label = await catalog.upsert_label("Urgente")
        await ledger.assign(conversation.conversation_id, label.label_id, usuario.user_id)

        resp = await client.delete(
            f"/api/v1/admin/conversations/{conversation.conversation_id}",
            headers=auth(consultor),
        )
        assert resp.json() == {"deleted": True}
        assert await ledger.conversations_for_label(label.label_id) == []


@pytest.mark.unit
class TestAdminRoles:
    async def test_reclassify_report(self, client, auth, identity, consultor, usuario):
        await identity.put_user(replace(usuario, role=Role.CONSULTOR))

        resp = await client.post("/api/v1/admin/roles/reclassify", headers=auth(consultor))

        assert resp.status_code == 200
        data = resp.json()
        assert data["changed"] == 1
        assert data["complete"] is True
        assert data["counts"] == {"usuario": 2, "asesor": 1, "consultor": 2}
        assert (await identity.get_user(usuario.user_id)).role is Role.USUARIO

    async def test_reclassify_sets_role_gauge(self, client, auth, consultor, metrics_registry):
        await client.post("/api/v1/admin/roles/reclassify", headers=auth(consultor))
        assert metrics_registry.get_sample_value("conecta_users_by_role", {"role": "consultor"}) == 2.0

    async def test_override_and_clear(self, client, auth, identity, consultor, usuario):
        url = f"/api/v1/admin/roles/users/{usuario.user_id}"

        pinned = await client.put(url, json={"role": "asesor"}, headers=auth(consultor))
        assert pinned.json()["role"] == "asesor"
        assert pinned.json()["role_override"] is True

        cleared = await client.put(url, json={"role": None}, headers=auth(consultor))
        assert cleared.json()["role"] == "usuario"
        assert cleared.json()["role_override"] is False

    async def test_provision_classifies(self, client, auth, consultor):
        resp = await client.post(
            "/api/v1/admin/users",
            json={"business_id": "CONS0004MAR", "display_name": "Mar"},
            headers=auth(consultor),
        )
        assert resp.status_code == 201
        assert resp.json()["role"] == "consultor"

    async def test_provision_duplicate_409(self, client, auth, consultor, usuario):
        resp = await client.post(
            "/api/v1/admin/users",
            json={"business_id": usuario.business_id},
            headers=auth(consultor),
        )
        assert resp.status_code == 409

    async def test_deactivate_then_purge(self, client, auth, identity, consultor, usuario):
        deactivated = await client.post(
            f"/api/v1/admin/users/{usuario.user_id}/deactivate", headers=auth(consultor)
        )
        assert deactivated.json()["is_active"] is False

        purged = await client.delete(f"/api/v1/admin/users/{usuario.user_id}", headers=auth(consultor))
        assert purged.status_code == 204
        stored = await identity.get_user(usuario.user_id)
        assert stored.is_active is False
        assert stored.display_name is None
        assert stored.business_id == usuario.business_id

        again = await client.delete(f"/api/v1/admin/users/{usuario.user_id}", headers=auth(consultor))
        assert again.status_code == 204

    async def test_purge_unknown_404(self, client, auth, consultor):
        resp = await client.delete(f"/api/v1/admin/users/{uuid4()}", headers=auth(consultor))
        assert resp.status_code == 404

    async def test_purged_business_id_cannot_be_provisioned_again(self, client, auth, consultor):
        body = {"business_id": "ADV5598765432", "display_name": "Carla"}
        created = await client.post("/api/v1/admin/users", json=body, headers=auth(consultor))
        user_id = created.json()["user_id"]

        purged = await client.delete(f"/api/v1/admin/users/{user_id}", headers=auth(consultor))
        assert purged.status_code == 204

        again = await client.post("/api/v1/admin/users", json=body, headers=auth(consultor))
        assert again.status_code == 409
