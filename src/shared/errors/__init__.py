"""Unified error hierarchy for the Conecta authorization engine.

All domain errors inherit from ConectaError and carry a stable ``code`` so
callers (request handlers, chat clients, audit logs) can branch on kind.
Only UnavailableError is eligible for caller-side retry.
"""

from __future__ import annotations


class ConectaError(Exception):
    """Base error for all Conecta exceptions."""

    retryable: bool = False

    def __init__(self, message: str, code: str = "CONECTA_ERROR") -> None:
        self.code = code
        super().__init__(message)


# -- Store errors (raised by Port implementations) --


class UnavailableError(ConectaError):
    """The durable store is unreachable or did not answer in time."""

    retryable = True

    def __init__(self, port_name: str, message: str = "") -> None:
        self.port_name = port_name
        super().__init__(
            message or f"Store {port_name} is unavailable",
            code="STORE_UNAVAILABLE",
        )


class StoreTimeoutError(UnavailableError):
    """A store call exceeded its command timeout."""

    def __init__(self, port_name: str, timeout_s: float | None = None) -> None:
        self.timeout_s = timeout_s
        detail = f" after {timeout_s}s" if timeout_s is not None else ""
        super().__init__(port_name, f"Store {port_name} timed out{detail}")


# -- Auth errors --


class AuthenticationError(ConectaError):
    """Authentication failed (invalid token, expired, etc.)."""

    def __init__(self, message: str = "Authentication failed") -> None:
        super().__init__(message, code="AUTH_FAILED")


class PermissionDeniedError(ConectaError):
    """Permission matrix rejection.

    ``rule`` names the violated rule; ``reason`` is the human-readable
    explanation shown to the client and written to audit logs.
    """

    def __init__(self, rule: str, reason: str) -> None:
        self.rule = rule
        self.reason = reason
        super().__init__(reason, code="PERMISSION_DENIED")


# -- Domain errors --


class NotFoundError(ConectaError):
    """Referenced entity is absent."""

    def __init__(self, resource_type: str, resource_id: object) -> None:
        self.resource_type = resource_type
        self.resource_id = str(resource_id)
        super().__init__(
            f"{resource_type} not found: {resource_id}",
            code="NOT_FOUND",
        )


class ConflictError(ConectaError):
    """Uniqueness violation in a non-idempotent operation."""

    def __init__(self, message: str) -> None:
        super().__init__(message, code="CONFLICT")


class ValidationError(ConectaError):
    """Input validation failed."""

    def __init__(self, message: str, field: str = "") -> None:
        self.field = field
        super().__init__(message, code="VALIDATION")


__all__ = [
    "AuthenticationError",
    "ConectaError",
    "ConflictError",
    "NotFoundError",
    "PermissionDeniedError",
    "StoreTimeoutError",
    "UnavailableError",
    "ValidationError",
]
