"""Application composition root -- wires all layers into a runnable FastAPI app.

- Reads configuration from environment variables (src/config.py)
- Creates async DB engine + session factory
- Instantiates Port adapters and domain services
- Mounts routers and the admin gate

Entry point: uvicorn src.main:app --host 0.0.0.0 --port 8000
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from src.authz.facade import AuthorizationFacade
from src.authz.reclassify import RoleReclassifier
from src.config import Settings
from src.gateway.api.admin.labels import create_admin_label_router
from src.gateway.api.admin.roles import create_admin_role_router
from src.gateway.api.conversations import create_conversation_router
from src.gateway.api.labels import create_label_router
from src.gateway.app import create_app
from src.gateway.metrics.authz import AuthzMetrics
from src.gateway.middleware.rbac import AdminGateMiddleware
from src.infra.conversations.registry import PgConversationRegistry
from src.infra.db import create_db_engine, create_session_factory
from src.infra.identity.store import PgIdentityStore
from src.infra.labels.store import PgLabelStore
from src.labels.catalog import LabelCatalog
from src.labels.ledger import LabelAssignmentLedger
from src.shared.logging.error_handler import configure_logging

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from fastapi import FastAPI

logger = logging.getLogger(__name__)


def build_app(settings: Settings | None = None) -> FastAPI:
    """Build the application: instantiate adapters, wire dependencies, mount routers.

    This function is the single composition root. No other module
    instantiates adapters or creates cross-layer references.
    """
    settings = settings or Settings.from_env()
    configure_logging(settings.log_level)

    if not settings.jwt_secret:
        msg = "JWT_SECRET_KEY environment variable is required"
        raise RuntimeError(msg)

    # -- Infrastructure layer --
    db_engine = create_db_engine(
        settings.database_url,
        pool_size=settings.db_pool_size,
        max_overflow=settings.db_max_overflow,
        command_timeout=settings.db_command_timeout,
    )
    session_factory = create_session_factory(db_engine)

    identity = PgIdentityStore(session_factory=session_factory)
    registry = PgConversationRegistry(session_factory=session_factory)
    label_store = PgLabelStore(session_factory=session_factory)

    # -- Domain services --
    metrics = AuthzMetrics()
    catalog = LabelCatalog(label_store)
    ledger = LabelAssignmentLedger(store=label_store, registry=registry)
    reclassifier = RoleReclassifier(identity, batch_size=settings.reclassify_batch_size)
    facade = AuthorizationFacade(
        identity=identity,
        registry=registry,
        ledger=ledger,
        reclassifier=reclassifier,
        metrics=metrics,
    )

    @asynccontextmanager
    async def lifespan(_: FastAPI) -> AsyncIterator[None]:
        yield
        await db_engine.dispose()
        logger.info("Database engine disposed")

    application = create_app(
        jwt_secret=settings.jwt_secret,
        cors_origins=settings.cors_origins,
        post_auth_middlewares=[AdminGateMiddleware()],
        lifespan=lifespan,
    )

    application.state.db_engine = db_engine
    application.state.session_factory = session_factory

    application.include_router(create_conversation_router(facade=facade))
    application.include_router(create_label_router(facade=facade, catalog=catalog))
    application.include_router(
        create_admin_label_router(catalog=catalog, facade=facade, metrics=metrics),
    )
    application.include_router(
        create_admin_role_router(facade=facade, reclassifier=reclassifier),
    )

    logger.info("Conecta app assembled: %d routes mounted", len(application.routes))
    return application


app = build_app()
