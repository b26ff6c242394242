"""JWT authentication helpers.

- No token -> 401
- Invalid/expired token -> 401
- Valid token -> user_id (``sub``) + role claim

Uses PyJWT (HS256). Secret must come from configuration, never hardcoded.
The role claim only gates the admin partition; conversation and label
authorization always re-reads the role from the identity store.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from uuid import UUID

import jwt

from src.shared.errors import AuthenticationError
from src.shared.types import Role

_ALGORITHM = "HS256"


@dataclass(frozen=True)
class TokenPayload:
    """Decoded JWT payload."""

    user_id: UUID
    role: str = Role.USUARIO.value


def encode_token(
    *,
    user_id: UUID,
    secret: str,
    role: str = Role.USUARIO.value,
    ttl_seconds: int = 3600,
) -> str:
    """Create a signed JWT containing user_id and role."""
    now = int(time.time())
    payload = {
        "sub": str(user_id),
        "role": role,
        "iat": now,
        "exp": now + ttl_seconds,
    }
    return jwt.encode(payload, secret, algorithm=_ALGORITHM)


def decode_token(token: str, *, secret: str) -> TokenPayload:
    """Decode and validate a JWT. Raises AuthenticationError on failure."""
    try:
        data = jwt.decode(token, secret, algorithms=[_ALGORITHM])
        return TokenPayload(
            user_id=UUID(data["sub"]),
            role=data.get("role", Role.USUARIO.value),
        )
    except jwt.ExpiredSignatureError as exc:
        raise AuthenticationError("Token expired") from exc
    except (jwt.InvalidTokenError, KeyError, ValueError) as exc:
        raise AuthenticationError(f"Invalid token: {exc}") from exc
