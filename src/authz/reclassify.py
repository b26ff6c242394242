"""Bulk role reclassification.

Walks every user in id order (keyset pages), re-derives the role from
business_id and writes it back when it differs. Users carrying an
administrative override keep their stored role, normalized into the
enumeration.

- idempotent: a second pass over an unchanged user set writes nothing and
  reports identical counts
- restartable: no cursor is persisted; a rerun simply revisits everyone
- a single user's failure is recorded in the report, never aborts the pass
"""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import replace
from typing import TYPE_CHECKING

from src.authz.classifier import classify, normalize_role
from src.shared.errors import ConectaError, NotFoundError
from src.shared.logging.error_handler import log_structured_error
from src.shared.retry import RetryPolicy, retry_with_backoff
from src.shared.types import ReclassificationFailure, ReclassificationReport, Role, User

if TYPE_CHECKING:
    from uuid import UUID

    from src.ports.identity_store import IdentityStorePort

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 500


def target_role(user: User) -> Role:
    """Role a user should hold after reclassification."""
    if user.role_override:
        return normalize_role(user.role)
    return classify(user.business_id)


class RoleReclassifier:
    """Applies the classifier to every stored user."""

    def __init__(
        self,
        identity: IdentityStorePort,
        *,
        batch_size: int = DEFAULT_BATCH_SIZE,
        retry_policy: RetryPolicy | None = None,
    ) -> None:
        if batch_size < 1:
            msg = f"batch_size must be positive, got {batch_size}"
            raise ValueError(msg)
        self._identity = identity
        self._batch_size = batch_size
        self._retry_policy = retry_policy

    async def reclassify_all(self) -> ReclassificationReport:
        counts: Counter[Role] = Counter({role: 0 for role in Role})
        changed = 0
        failures: list[ReclassificationFailure] = []
        after_id: UUID | None = None

        while True:
            cursor = after_id
            page = await retry_with_backoff(
                lambda: self._identity.list_users(after_id=cursor, limit=self._batch_size),
                policy=self._retry_policy,
            )
            for user in page:
                try:
                    role, updated = await self._reclassify_user(user)
                except ConectaError as exc:
                    counts[normalize_role(user.role)] += 1
                    failures.append(
                        ReclassificationFailure(
                            user_id=user.user_id,
                            business_id=user.business_id,
                            error_code=exc.code,
                            message=str(exc),
                        )
                    )
                    log_structured_error(
                        logger,
                        exc,
                        user_id=str(user.user_id),
                        context={"business_id": user.business_id},
                        level=logging.WARNING,
                    )
                    continue
                counts[role] += 1
                changed += int(updated)
            if len(page) < self._batch_size:
                break
            after_id = page[-1].user_id

        report = ReclassificationReport(counts=dict(counts), changed=changed, failures=failures)
        logger.info(
            "Reclassification done: %s changed=%d failures=%d",
            " ".join(f"{r.value}={n}" for r, n in report.counts.items()),
            changed,
            len(failures),
        )
        return report

    async def _reclassify_user(self, user: User) -> tuple[Role, bool]:
        role = target_role(user)
        if user.role is role:
            return role, False
        updated = replace(user, role=role)
        await retry_with_backoff(lambda: self._identity.put_user(updated), policy=self._retry_policy)
        logger.debug(
            "Reclassified user_id=%s %s -> %s",
            user.user_id,
            user.role.value if user.role else None,
            role.value,
        )
        return role, True

    async def override_role(self, user_id: UUID, role: Role | None) -> User:
        """Pin a user's role, or clear the pin (role=None) and re-derive it.

        Raises:
            NotFoundError: user absent.
        """
        user = await self._identity.get_user(user_id)
        if user is None:
            raise NotFoundError("User", user_id)
        if role is None:
            updated = replace(user, role=classify(user.business_id), role_override=False)
        else:
            updated = replace(user, role=role, role_override=True)
        await self._identity.put_user(updated)
        logger.info(
            "Role override user_id=%s role=%s override=%s",
            user_id,
            updated.role.value if updated.role else None,
            updated.role_override,
        )
        return updated
