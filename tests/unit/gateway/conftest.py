"""Gateway fixtures: the full router set over in-memory stores."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest
from httpx import ASGITransport, AsyncClient

from src.gateway.api.admin.labels import create_admin_label_router
from src.gateway.api.admin.roles import create_admin_role_router
from src.gateway.api.conversations import create_conversation_router
from src.gateway.api.labels import create_label_router
from src.gateway.app import create_app
from src.gateway.middleware.auth import encode_token
from src.gateway.middleware.rbac import AdminGateMiddleware

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Callable

    from fastapi import FastAPI

    from src.shared.types import User

JWT_SECRET = "test-secret-for-conecta"  # noqa: S105


@pytest.fixture
def app(facade, catalog, reclassifier, metrics, metrics_registry) -> FastAPI:
    application = create_app(
        jwt_secret=JWT_SECRET,
        post_auth_middlewares=[AdminGateMiddleware()],
        metrics_registry=metrics_registry,
    )
    application.include_router(create_conversation_router(facade=facade))
    application.include_router(create_label_router(facade=facade, catalog=catalog))
    application.include_router(
        create_admin_label_router(catalog=catalog, facade=facade, metrics=metrics),
    )
    application.include_router(create_admin_role_router(facade=facade, reclassifier=reclassifier))
    return application


@pytest.fixture
async def client(app: FastAPI) -> AsyncIterator[AsyncClient]:
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
def auth() -> Callable[[User], dict[str, str]]:
    """Bearer header for a user, carrying the user's stored role as claim."""

    def _headers(user: User, role: str | None = None) -> dict[str, str]:
        claim = role or (user.role.value if user.role else "usuario")
        token = encode_token(user_id=user.user_id, secret=JWT_SECRET, role=claim)
        return {"Authorization": f"Bearer {token}"}

    return _headers
