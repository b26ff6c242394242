"""Permission matrix: who may open a conversation with whom.

  initiator            | direct                      | group
  ---------------------+-----------------------------+--------
  usuario / asesor     | only if target is consultor | denied
  consultor            | always                      | always

The group gate looks at the initiator's role only; the roles of invited
participants are never constrained.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, unique

from src.shared.errors import PermissionDeniedError
from src.shared.types import ConversationKind, Role

# Roles allowed to open any conversation with anyone.
PRIVILEGED_ROLES: frozenset[Role] = frozenset({Role.CONSULTOR})

# Roles a non-privileged initiator may open a direct conversation with.
DIRECT_TARGET_ROLES: frozenset[Role] = frozenset({Role.CONSULTOR})


@unique
class InitiationRule(Enum):
    """Named rules of the matrix, reported on every decision."""

    PRIVILEGED_INITIATOR = "privileged_initiator"
    DIRECT_TO_CONSULTOR = "direct_to_consultor"
    DIRECT_MUST_TARGET_CONSULTOR = "direct_must_target_consultor"
    GROUP_REQUIRES_CONSULTOR = "group_requires_consultor"


@dataclass(frozen=True)
class PermissionDecision:
    """Result of evaluating the matrix for one (initiator, target, kind)."""

    allowed: bool
    initiator_role: Role
    target_role: Role | None
    kind: ConversationKind
    rule: InitiationRule
    reason: str = ""

    def __bool__(self) -> bool:
        return self.allowed

    def raise_if_denied(self) -> None:
        if not self.allowed:
            raise PermissionDeniedError(self.rule.value, self.reason)


def evaluate_initiation(
    initiator_role: Role,
    target_role: Role | None,
    kind: ConversationKind,
) -> PermissionDecision:
    """Evaluate the matrix and name the rule that decided the outcome.

    ``target_role`` may be None for a group gate check, which depends on the
    initiator alone.
    """
    if initiator_role in PRIVILEGED_ROLES:
        return PermissionDecision(
            allowed=True,
            initiator_role=initiator_role,
            target_role=target_role,
            kind=kind,
            rule=InitiationRule.PRIVILEGED_INITIATOR,
        )

    if kind is ConversationKind.GROUP:
        return PermissionDecision(
            allowed=False,
            initiator_role=initiator_role,
            target_role=target_role,
            kind=kind,
            rule=InitiationRule.GROUP_REQUIRES_CONSULTOR,
            reason=f"{initiator_role.value} cannot create group conversations",
        )

    if target_role in DIRECT_TARGET_ROLES:
        return PermissionDecision(
            allowed=True,
            initiator_role=initiator_role,
            target_role=target_role,
            kind=kind,
            rule=InitiationRule.DIRECT_TO_CONSULTOR,
        )

    target = target_role.value if target_role is not None else "unknown"
    return PermissionDecision(
        allowed=False,
        initiator_role=initiator_role,
        target_role=target_role,
        kind=kind,
        rule=InitiationRule.DIRECT_MUST_TARGET_CONSULTOR,
        reason=(
            f"{initiator_role.value} may only message consultor: "
            f"direct conversations must target consultor, not {target}"
        ),
    )


def can_initiate(
    initiator_role: Role,
    target_role: Role | None,
    kind: ConversationKind,
) -> bool:
    """Boolean form of evaluate_initiation."""
    return evaluate_initiation(initiator_role, target_role, kind).allowed
