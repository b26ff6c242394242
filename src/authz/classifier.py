"""Role classifier: business identifier (RFC) -> Role.

Rules are evaluated in order, first match wins:
  1. starts with "CONS" or equals "ADMIN000CONS" -> consultor
  2. starts with "ADV"                            -> asesor
  3. anything else                                -> usuario

Pure and total: no I/O, every string (including "") maps to exactly one
Role. Adding a tier means adding one ClassificationRule to the table.
"""

from __future__ import annotations

from dataclasses import dataclass

from src.shared.types import Role

ADMIN_BUSINESS_ID = "ADMIN000CONS"
DEFAULT_ROLE = Role.USUARIO


@dataclass(frozen=True)
class ClassificationRule:
    """Maps identifiers with any of ``prefixes`` (or equal to any of
    ``exact``) to ``role``."""

    role: Role
    prefixes: tuple[str, ...] = ()
    exact: tuple[str, ...] = ()

    def matches(self, business_id: str) -> bool:
        return business_id in self.exact or business_id.startswith(self.prefixes)


# Order matters: first match wins.
CLASSIFICATION_RULES: tuple[ClassificationRule, ...] = (
    ClassificationRule(role=Role.CONSULTOR, prefixes=("CONS",), exact=(ADMIN_BUSINESS_ID,)),
    ClassificationRule(role=Role.ASESOR, prefixes=("ADV",)),
)


def classify(business_id: str) -> Role:
    """Derive the role for a business identifier."""
    for rule in CLASSIFICATION_RULES:
        if rule.matches(business_id):
            return rule.role
    return DEFAULT_ROLE


def resolve_role(value: object) -> Role | None:
    """Parse a stored role value, returning None if it is not a known Role."""
    if isinstance(value, Role):
        return value
    if not isinstance(value, str):
        return None
    try:
        return Role(value)
    except ValueError:
        return None


def normalize_role(value: object) -> Role:
    """Coerce any stored role value into the enumeration.

    Legacy values ("user", "advisor", "admin", None, ...) become usuario;
    no other special cases are inferred.
    """
    return resolve_role(value) or DEFAULT_ROLE
