"""Authorization and label metrics for Prometheus.

- conecta_authz_decisions_total{kind,outcome,rule}: one per matrix decision
- conecta_label_mutations_total{operation,result}: catalog/ledger writes
- conecta_users_by_role{role}: refreshed after each reclassification pass
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from prometheus_client import CollectorRegistry, Counter, Gauge

if TYPE_CHECKING:
    from src.authz.matrix import PermissionDecision
    from src.shared.types import Role


def _counter(
    name: str,
    documentation: str,
    labelnames: list[str],
    registry: CollectorRegistry | None,
) -> Counter:
    """Create a Counter with optional registry."""
    if registry is not None:
        return Counter(name, documentation, labelnames, registry=registry)
    return Counter(name, documentation, labelnames)


def _gauge(
    name: str,
    documentation: str,
    labelnames: list[str],
    registry: CollectorRegistry | None,
) -> Gauge:
    """Create a Gauge with optional registry."""
    if registry is not None:
        return Gauge(name, documentation, labelnames, registry=registry)
    return Gauge(name, documentation, labelnames)


class AuthzMetrics:
    """Metric families for the authorization engine.

    Pass a custom CollectorRegistry for testing isolation.
    In production, use the default global registry (registry=None) and
    build exactly one instance per process.
    """

    def __init__(self, *, registry: CollectorRegistry | None = None) -> None:
        self.decisions = _counter(
            "conecta_authz_decisions",
            "Permission matrix decisions",
            ["kind", "outcome", "rule"],
            registry,
        )
        self.label_mutations = _counter(
            "conecta_label_mutations",
            "Label catalog and assignment writes",
            ["operation", "result"],
            registry,
        )
        self.users_by_role = _gauge(
            "conecta_users_by_role",
            "Users per role after the last reclassification pass",
            ["role"],
            registry,
        )

    def record_decision(self, decision: PermissionDecision) -> None:
        self.decisions.labels(
            kind=decision.kind.value,
            outcome="allowed" if decision.allowed else "denied",
            rule=decision.rule.value,
        ).inc()

    def record_label_mutation(self, operation: str, result: str) -> None:
        self.label_mutations.labels(operation=operation, result=result).inc()

    def set_role_counts(self, counts: dict[Role, int]) -> None:
        for role, count in counts.items():
            self.users_by_role.labels(role=role.value).set(count)
