"""FastAPI application factory with API partition rules.

- User API:  /api/v1/*  (JWT bearer required)
- Admin API: /api/v1/admin/*  (consultor role claim required, see rbac.py)
- healthz, metrics, docs: exempt from auth

Every ConectaError maps to a status code with a uniform
{"error": code, "message": ...} body so clients can branch on kind.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from prometheus_client import CONTENT_TYPE_LATEST, REGISTRY, generate_latest
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.routing import Match

from src.gateway.middleware.auth import decode_token
from src.shared.errors import (
    AuthenticationError,
    ConectaError,
    ConflictError,
    NotFoundError,
    PermissionDeniedError,
    UnavailableError,
    ValidationError,
)
from src.shared.logging.error_handler import log_structured_error

if TYPE_CHECKING:
    from contextlib import AbstractAsyncContextManager

    from prometheus_client import CollectorRegistry

logger = logging.getLogger(__name__)

_EXEMPT_PATHS = frozenset(
    {
        "/healthz",
        "/metrics",
        "/docs",
        "/openapi.json",
        "/redoc",
    }
)

# Type alias for post-auth middleware callables
PostAuthMiddleware = Callable[
    [Request, Callable[[Request], Awaitable[Response]]], Awaitable[Response]
]

_STATUS_BY_ERROR: tuple[tuple[type[ConectaError], int], ...] = (
    (AuthenticationError, 401),
    (PermissionDeniedError, 403),
    (NotFoundError, 404),
    (ConflictError, 409),
    (ValidationError, 422),
    (UnavailableError, 503),
)


def _error_body(exc: ConectaError) -> dict[str, str]:
    body = {"error": exc.code, "message": str(exc)}
    if isinstance(exc, PermissionDeniedError):
        body["rule"] = exc.rule
    if isinstance(exc, ValidationError) and exc.field:
        body["field"] = exc.field
    return body


def create_app(
    *,
    jwt_secret: str,
    cors_origins: list[str] | None = None,
    post_auth_middlewares: list[PostAuthMiddleware] | None = None,
    lifespan: Callable[[FastAPI], AbstractAsyncContextManager[None]] | None = None,
    metrics_registry: CollectorRegistry | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        jwt_secret: JWT signing secret.
        cors_origins: Allowed CORS origins.
        post_auth_middlewares: Middleware callables that run after JWT auth,
            each with signature (request, call_next) -> Response.
        lifespan: Async context manager factory for startup/shutdown.
        metrics_registry: Registry served at /metrics (default: global).
    """
    if not jwt_secret:
        msg = "JWT_SECRET_KEY must be provided"
        raise ValueError(msg)

    _post_auth = post_auth_middlewares or []
    _registry = metrics_registry or REGISTRY

    app = FastAPI(
        title="Conecta Authorization API",
        description="Role-gated conversation creation and conversation labels",
        version="0.1.0",
        docs_url="/docs",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )
    app.state.jwt_secret = jwt_secret

    if cors_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=cors_origins,
            allow_credentials=True,
            allow_methods=["GET", "POST", "PUT", "DELETE", "PATCH"],
            allow_headers=["Authorization", "Content-Type"],
        )

    # -- Error handlers --

    def _register(error_type: type[ConectaError], status_code: int) -> None:
        async def _handler(_: Request, exc: Exception) -> JSONResponse:
            assert isinstance(exc, ConectaError)
            return JSONResponse(status_code=status_code, content=_error_body(exc))

        app.add_exception_handler(error_type, _handler)

    for error_type, status_code in _STATUS_BY_ERROR:
        _register(error_type, status_code)

    @app.exception_handler(ConectaError)
    async def _conecta_error(request: Request, exc: ConectaError) -> JSONResponse:
        log_structured_error(
            logger,
            exc,
            user_id=str(getattr(request.state, "user_id", "")),
            context={"path": request.url.path},
        )
        return JSONResponse(status_code=500, content=_error_body(exc))

    @app.exception_handler(RequestValidationError)
    async def _request_validation(_: Request, exc: RequestValidationError) -> JSONResponse:
        errors = exc.errors()
        message = "; ".join(f"{'.'.join(map(str, e['loc']))}: {e['msg']}" for e in errors)
        return JSONResponse(
            status_code=422,
            content={"error": "VALIDATION", "message": message or "Invalid request"},
        )

    @app.exception_handler(StarletteHTTPException)
    async def _http_exception(_: Request, exc: StarletteHTTPException) -> JSONResponse:
        code_map = {
            404: "NOT_FOUND",
            405: "METHOD_NOT_ALLOWED",
        }
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "error": code_map.get(exc.status_code, "HTTP_ERROR"),
                "message": exc.detail or f"HTTP {exc.status_code}",
            },
        )

    # -- Auth middleware --

    @app.middleware("http")
    async def jwt_auth_middleware(request: Request, call_next: Any) -> Response:
        path = request.url.path

        if request.method == "OPTIONS" or path in _EXEMPT_PATHS:
            return await call_next(request)

        # Unknown paths return 404, not 401.
        route_matched = any(route.matches(request.scope)[0] != Match.NONE for route in app.routes)
        if not route_matched:
            return await call_next(request)

        auth_header = request.headers.get("authorization", "")
        if not auth_header.startswith("Bearer "):
            return JSONResponse(
                status_code=401,
                content={
                    "error": "AUTH_FAILED",
                    "message": "Missing or malformed Authorization header",
                },
            )
        try:
            payload = decode_token(auth_header[7:], secret=jwt_secret)
        except AuthenticationError as exc:
            return JSONResponse(status_code=401, content=_error_body(exc))

        request.state.user_id = payload.user_id
        request.state.role = payload.role

        # mw_n(... mw_1(call_next) ...)
        chained = call_next
        for mw in reversed(_post_auth):
            outer = chained

            async def _make_chained(
                req: Request,
                *,
                _mw: PostAuthMiddleware = mw,
                _next: Any = outer,
            ) -> Response:
                return await _mw(req, _next)

            chained = _make_chained

        return await chained(request)

    # -- Exempt routes --

    @app.get("/healthz", tags=["system"])
    async def healthz() -> dict[str, str]:
        return {"status": "ok"}

    @app.get("/metrics", tags=["system"], include_in_schema=False)
    async def metrics() -> Response:
        return Response(content=generate_latest(_registry), media_type=CONTENT_TYPE_LATEST)

    return app
