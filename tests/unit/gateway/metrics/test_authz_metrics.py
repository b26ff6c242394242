"""Authorization metric families on an isolated registry."""

from __future__ import annotations

import pytest
from prometheus_client import CollectorRegistry

from src.authz.matrix import evaluate_initiation
from src.gateway.metrics.authz import AuthzMetrics
from src.shared.types import ConversationKind, Role


@pytest.fixture
def registry() -> CollectorRegistry:
    return CollectorRegistry()


@pytest.mark.unit
class TestAuthzMetrics:
    def test_decision_labels(self, registry: CollectorRegistry) -> None:
        metrics = AuthzMetrics(registry=registry)
        metrics.record_decision(
            evaluate_initiation(Role.ASESOR, Role.USUARIO, ConversationKind.DIRECT),
        )
        value = registry.get_sample_value(
            "conecta_authz_decisions_total",
            {"kind": "direct", "outcome": "denied", "rule": "direct_must_target_consultor"},
        )
        assert value == 1.0

    def test_label_mutations(self, registry: CollectorRegistry) -> None:
        metrics = AuthzMetrics(registry=registry)
        metrics.record_label_mutation("assign", "ok")
        metrics.record_label_mutation("assign", "ok")
        value = registry.get_sample_value(
            "conecta_label_mutations_total",
            {"operation": "assign", "result": "ok"},
        )
        assert value == 2.0

    def test_role_gauge_overwrites(self, registry: CollectorRegistry) -> None:
        metrics = AuthzMetrics(registry=registry)
        metrics.set_role_counts({Role.CONSULTOR: 3, Role.USUARIO: 10})
        metrics.set_role_counts({Role.CONSULTOR: 4})
        assert registry.get_sample_value("conecta_users_by_role", {"role": "consultor"}) == 4.0
        assert registry.get_sample_value("conecta_users_by_role", {"role": "usuario"}) == 10.0

    def test_isolated_registries(self) -> None:
        AuthzMetrics(registry=CollectorRegistry())
        AuthzMetrics(registry=CollectorRegistry())
