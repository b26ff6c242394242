"""Structured error logging.

- Error logs carry error_code, stack_trace and context
- Sensitive context keys (tokens, secrets, phone numbers) are redacted
- configure_logging() installs the process-wide format and level from LOG_LEVEL
"""

from __future__ import annotations

import logging
import traceback
from dataclasses import asdict, dataclass, field
from typing import Any

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


@dataclass(frozen=True)
class StructuredError:
    """Structured representation of an error for logging."""

    error_code: str
    message: str
    stack_trace: str
    context: dict[str, Any] = field(default_factory=dict)
    user_id: str = ""
    request_id: str = ""

    def to_dict(self) -> dict[str, Any]:
        """Convert to dict suitable for JSON logging."""
        d = asdict(self)
        if "context" in d:
            d["context"] = _redact_sensitive(d["context"])
        return d


_SENSITIVE_KEYS = frozenset(
    {
        "password",
        "token",
        "push_token",
        "secret",
        "authorization",
        "cookie",
        "jwt",
        "credential",
        "phone",
    }
)


def _redact_sensitive(data: dict[str, Any]) -> dict[str, Any]:
    result: dict[str, Any] = {}
    for key, value in data.items():
        if key.lower() in _SENSITIVE_KEYS:
            result[key] = "[REDACTED]"
        elif isinstance(value, dict):
            result[key] = _redact_sensitive(value)
        else:
            result[key] = value
    return result


def create_structured_error(
    exc: Exception,
    *,
    error_code: str = "",
    user_id: str = "",
    request_id: str = "",
    context: dict[str, Any] | None = None,
) -> StructuredError:
    """Create a StructuredError from an exception.

    If the exception has a ``.code`` attribute (ConectaError subclasses),
    it is used as the error_code unless overridden.
    """
    code = error_code or getattr(exc, "code", type(exc).__name__)
    stack = traceback.format_exception(type(exc), exc, exc.__traceback__)
    return StructuredError(
        error_code=code,
        message=str(exc),
        stack_trace="".join(stack),
        context=context or {},
        user_id=user_id,
        request_id=request_id,
    )


def log_structured_error(
    logger: logging.Logger,
    exc: Exception,
    *,
    error_code: str = "",
    user_id: str = "",
    request_id: str = "",
    context: dict[str, Any] | None = None,
    level: int = logging.ERROR,
) -> StructuredError:
    """Log an exception as a structured error and return it."""
    structured = create_structured_error(
        exc,
        error_code=error_code,
        user_id=user_id,
        request_id=request_id,
        context=context,
    )
    logger.log(
        level,
        "structured_error code=%s message=%s",
        structured.error_code,
        structured.message,
        extra={"structured_error": structured.to_dict()},
    )
    return structured


def configure_logging(level: str = "INFO") -> None:
    """Install the root handler and level. Unknown level names fall back to INFO."""
    numeric = logging.getLevelName(level.upper())
    if not isinstance(numeric, int):
        numeric = logging.INFO
    logging.basicConfig(format=LOG_FORMAT)
    logging.getLogger().setLevel(numeric)
