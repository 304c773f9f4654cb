"""Token primitives: duration parsing, HS256 JWTs and opaque session tokens."""

import re
import secrets
import time
from dataclasses import dataclass
from datetime import datetime
from typing import Any

import jwt

from discourse_api.core.exceptions import ConfigurationError

ALGORITHM = "HS256"
OPAQUE_TOKEN_PREFIX = "tok_"

_DURATION_RE = re.compile(r"^(\d+)([dhms])$")
_UNIT_SECONDS = {"d": 86400, "h": 3600, "m": 60, "s": 1}
_BASE36 = "0123456789abcdefghijklmnopqrstuvwxyz"


def parse_duration(duration: str) -> int:
    """Convert ``"7d"`` / ``"24h"`` / ``"30m"`` / ``"45s"`` to seconds.

    Raises:
        ConfigurationError: If the string does not match ``<int><d|h|m|s>``
    """
    match = _DURATION_RE.match(duration)
    if not match:
        raise ConfigurationError(f"Invalid duration format: {duration!r}")
    return int(match.group(1)) * _UNIT_SECONDS[match.group(2)]


@dataclass(frozen=True)
class TokenPayload:
    """Claims carried by a signed token."""

    user_id: str
    email: str
    iat: int
    exp: int

    def to_claims(self) -> dict[str, Any]:
        return {
            "userId": self.user_id,
            "email": self.email,
            "sub": self.user_id,
            "iat": self.iat,
            "exp": self.exp,
        }

    @classmethod
    def from_claims(cls, claims: dict[str, Any]) -> "TokenPayload":
        try:
            return cls(
                user_id=str(claims["userId"]),
                email=str(claims["email"]),
                iat=int(claims["iat"]),
                exp=int(claims["exp"]),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise jwt.InvalidTokenError(f"Malformed token claims: {e}") from e


def sign_token(payload: TokenPayload, secret: str) -> str:
    """Sign a payload as a compact HS256 JWT."""
    return jwt.encode(payload.to_claims(), secret, algorithm=ALGORITHM)


def verify_token(token: str, secret: str, now: datetime) -> TokenPayload:
    """Verify signature and algorithm, then expiry against ``now``.

    Expiry is compared to ``now``, not the wall clock. A token is expired
    once ``exp <= now``.

    Raises:
        jwt.ExpiredSignatureError: Token is past its expiry
        jwt.InvalidTokenError: Bad signature, algorithm, structure or claims
    """
    claims = jwt.decode(
        token,
        secret,
        algorithms=[ALGORITHM],
        options={"verify_exp": False, "verify_iat": False, "require": ["exp", "iat"]},
    )
    payload = TokenPayload.from_claims(claims)
    if payload.exp <= int(now.timestamp()):
        raise jwt.ExpiredSignatureError("Signature has expired")
    return payload


def decode_token(token: str) -> TokenPayload | None:
    """Read claims without verifying anything. For diagnostics only."""
    try:
        claims = jwt.decode(token, options={"verify_signature": False})
        return TokenPayload.from_claims(claims)
    except jwt.InvalidTokenError:
        return None


def _base36(value: int) -> str:
    digits = []
    while value:
        value, rem = divmod(value, 36)
        digits.append(_BASE36[rem])
    return "".join(reversed(digits)) or "0"


def generate_opaque_token() -> str:
    """``tok_<base36 ms timestamp><random>`` with 256 bits of randomness.

    Consumers must treat the value as opaque.
    """
    return f"{OPAQUE_TOKEN_PREFIX}{_base36(time.time_ns() // 1_000_000)}{secrets.token_urlsafe(32)}"
