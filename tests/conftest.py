"""Root conftest - shared fixtures for all test layers.

Markers:
    @pytest.mark.unit       - No external deps
    @pytest.mark.integration - Needs a running PostgreSQL
"""

from __future__ import annotations

import pytest
from prometheus_client import CollectorRegistry

from src.authz.facade import AuthorizationFacade
from src.authz.reclassify import RoleReclassifier
from src.gateway.metrics.authz import AuthzMetrics
from src.infra.conversations.registry import InMemoryConversationRegistry
from src.infra.identity.store import InMemoryIdentityStore
from src.infra.labels.store import InMemoryLabelStore
from src.labels.catalog import LabelCatalog
from src.labels.ledger import LabelAssignmentLedger
from src.shared.types import User
from tests.fakes.users import make_user


@pytest.fixture
def usuario() -> User:
    return make_user("USR001", "Ana")


@pytest.fixture
def usuario2() -> User:
    return make_user("XAXX010101000", "Luis")


@pytest.fixture
def asesor() -> User:
    return make_user("ADV5512345678", "Beto")


@pytest.fixture
def consultor() -> User:
    return make_user("CONS0001JOR", "Jorge")


@pytest.fixture
def admin_consultor() -> User:
    return make_user("ADMIN000CONS", "Admin")


@pytest.fixture
def identity(
    usuario: User,
    usuario2: User,
    asesor: User,
    consultor: User,
    admin_consultor: User,
) -> InMemoryIdentityStore:
    return InMemoryIdentityStore(users=[usuario, usuario2, asesor, consultor, admin_consultor])


@pytest.fixture
def registry() -> InMemoryConversationRegistry:
    return InMemoryConversationRegistry()


@pytest.fixture
def label_store() -> InMemoryLabelStore:
    return InMemoryLabelStore()


@pytest.fixture
def catalog(label_store: InMemoryLabelStore) -> LabelCatalog:
    return LabelCatalog(label_store)


@pytest.fixture
def ledger(
    label_store: InMemoryLabelStore,
    registry: InMemoryConversationRegistry,
) -> LabelAssignmentLedger:
    return LabelAssignmentLedger(store=label_store, registry=registry)


@pytest.fixture
def metrics_registry() -> CollectorRegistry:
    return CollectorRegistry()


@pytest.fixture
def metrics(metrics_registry: CollectorRegistry) -> AuthzMetrics:
    return AuthzMetrics(registry=metrics_registry)


@pytest.fixture
def reclassifier(identity: InMemoryIdentityStore) -> RoleReclassifier:
    return RoleReclassifier(identity, batch_size=2)


@pytest.fixture
def facade(
    identity: InMemoryIdentityStore,
    registry: InMemoryConversationRegistry,
    ledger: LabelAssignmentLedger,
    reclassifier: RoleReclassifier,
    metrics: AuthzMetrics,
) -> AuthorizationFacade:
    return AuthorizationFacade(
        identity=identity,
        registry=registry,
        ledger=ledger,
        reclassifier=reclassifier,
        metrics=metrics,
    )
