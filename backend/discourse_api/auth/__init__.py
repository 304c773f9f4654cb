"""Authentication module.

Bearer-token auth with a pluggable backend (signed JWT or opaque session).
"""

from discourse_api.auth.backends import JWTBackend, SessionBackend, TokenBackendFactory
from discourse_api.auth.dependencies import CurrentAuth, OptionalAuth, optional_auth, require_auth
from discourse_api.auth.schemas import AuthContext, AuthFailure, AuthResult

__all__ = [
    "TokenBackendFactory",
    "JWTBackend",
    "SessionBackend",
    "require_auth",
    "optional_auth",
    "CurrentAuth",
    "OptionalAuth",
    "AuthContext",
    "AuthFailure",
    "AuthResult",
]
