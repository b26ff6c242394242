"""Admin partition gate.

- /api/v1/admin/* requires the consultor role claim -> otherwise 403
- every other path passes through untouched
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from fastapi.responses import JSONResponse, Response

from src.shared.errors import PermissionDeniedError
from src.shared.types import Role

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from fastapi import Request

ADMIN_ACCESS_RULE = "admin_requires_consultor"

ADMIN_ROLES: frozenset[str] = frozenset({Role.CONSULTOR.value})


class AdminGateMiddleware:
    """Post-auth middleware rejecting non-consultor access to admin paths."""

    def __init__(self, *, admin_path_prefix: str = "/api/v1/admin/") -> None:
        self._admin_prefix = admin_path_prefix

    async def __call__(
        self,
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        role = getattr(request.state, "role", Role.USUARIO.value)
        try:
            self.check_access(path=request.url.path, role=role)
        except PermissionDeniedError as exc:
            return JSONResponse(
                status_code=403,
                content={"error": exc.code, "message": exc.reason, "rule": exc.rule},
            )
        return await call_next(request)

    def check_access(self, *, path: str, role: str) -> None:
        """Raises PermissionDeniedError for a non-admin role on an admin path."""
        if path.startswith(self._admin_prefix) and role not in ADMIN_ROLES:
            msg = f"Admin access requires consultor role (role={role})"
            raise PermissionDeniedError(ADMIN_ACCESS_RULE, msg)
