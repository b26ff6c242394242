"""Role and user administration.

- POST   /api/v1/admin/roles/reclassify -> bulk reclassification report
- GET    /api/v1/admin/roles/classify/{business_id} -> classifier dry run
- PUT    /api/v1/admin/roles/users/{user_id} -> pin or clear a role override
- POST   /api/v1/admin/users -> provision a user (role classified at write)
- POST   /api/v1/admin/users/{user_id}/deactivate
- DELETE /api/v1/admin/users/{user_id} -> purge: erase personal data and
  deactivate; business_id stays reserved, assignments lose the assigner
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING
from uuid import UUID  # noqa: TC003 - needed at runtime by FastAPI path params

from fastapi import APIRouter
from pydantic import BaseModel

from src.authz.classifier import classify
from src.shared.errors import NotFoundError
from src.shared.types import Role

if TYPE_CHECKING:
    from src.authz.facade import AuthorizationFacade
    from src.authz.reclassify import RoleReclassifier
    from src.shared.types import ReclassificationReport, User

logger = logging.getLogger(__name__)


class FailureItem(BaseModel):
    user_id: str
    business_id: str
    error_code: str
    message: str


class ReclassifyResponse(BaseModel):
    counts: dict[str, int]
    changed: int
    complete: bool
    failures: list[FailureItem]


class ClassifyResponse(BaseModel):
    business_id: str
    role: str


class OverrideRoleRequest(BaseModel):
    role: Role | None = None


class ProvisionUserRequest(BaseModel):
    business_id: str
    display_name: str | None = None
    phone: str | None = None


class UserResponse(BaseModel):
    user_id: str
    business_id: str
    display_name: str | None
    role: str | None
    role_override: bool
    is_active: bool


def _report_response(report: ReclassificationReport) -> ReclassifyResponse:
    return ReclassifyResponse(
        counts={role.value: count for role, count in report.counts.items()},
        changed=report.changed,
        complete=report.complete,
        failures=[
            FailureItem(
                user_id=str(f.user_id),
                business_id=f.business_id,
                error_code=f.error_code,
                message=f.message,
            )
            for f in report.failures
        ],
    )


def _user_response(user: User) -> UserResponse:
    return UserResponse(
        user_id=str(user.user_id),
        business_id=user.business_id,
        display_name=user.display_name,
        role=user.role.value if user.role else None,
        role_override=user.role_override,
        is_active=user.is_active,
    )


def create_admin_role_router(
    *,
    facade: AuthorizationFacade,
    reclassifier: RoleReclassifier,
) -> APIRouter:
    """Create role/user admin API router."""
    router = APIRouter(prefix="/api/v1/admin", tags=["roles-admin"])

    @router.post("/roles/reclassify", response_model=ReclassifyResponse)
    async def reclassify_all() -> ReclassifyResponse:
        return _report_response(await facade.reclassify_all())

    @router.get("/roles/classify/{business_id}", response_model=ClassifyResponse)
    async def classify_business_id(business_id: str) -> ClassifyResponse:
        return ClassifyResponse(business_id=business_id, role=classify(business_id).value)

    @router.put("/roles/users/{user_id}", response_model=UserResponse)
    async def override_role(user_id: UUID, body: OverrideRoleRequest) -> UserResponse:
        return _user_response(await reclassifier.override_role(user_id, body.role))

    @router.post("/users", response_model=UserResponse, status_code=201)
    async def provision_user(body: ProvisionUserRequest) -> UserResponse:
        user = await facade.provision_user(
            body.business_id,
            body.display_name,
            phone=body.phone,
        )
        return _user_response(user)

    @router.post("/users/{user_id}/deactivate", response_model=UserResponse)
    async def deactivate_user(user_id: UUID) -> UserResponse:
        return _user_response(await facade.deactivate_user(user_id))

    @router.delete("/users/{user_id}", status_code=204)
    async def purge_user(user_id: UUID) -> None:
        if not await facade.purge_user(user_id):
            raise NotFoundError("User", user_id)

    return router
