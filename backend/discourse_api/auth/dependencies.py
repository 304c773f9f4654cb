"""FastAPI dependencies for authentication.

``resolve_auth`` turns the ``Authorization`` header into an ``AuthResult``.
``require_auth`` maps failures to 401 before the handler runs;
``optional_auth`` never blocks and yields ``None`` on any failure.
"""

from typing import Annotated

from dependency_injector.wiring import Provide, inject
from fastapi import Depends, Header

from discourse_api.auth.backends import TokenBackend
from discourse_api.auth.schemas import AuthContext, AuthFailure, AuthResult
from discourse_api.core.di_container import DIContainer
from discourse_api.core.exceptions import AuthenticationError

FAILURE_MESSAGES: dict[AuthFailure, str] = {
    AuthFailure.MISSING: "Authentication required. Please provide a valid token.",
    AuthFailure.INVALID: "Invalid or expired token. Please log in again.",
    AuthFailure.EXPIRED: "Invalid or expired token. Please log in again.",
    AuthFailure.STALE: "User not found. Account may have been deleted.",
}


def extract_bearer(authorization: str | None) -> str | None:
    """Return the token from ``Bearer <token>``.

    A missing header, another scheme, or an empty token all mean no token.
    """
    if not authorization:
        return None
    scheme, _, credentials = authorization.partition(" ")
    if scheme != "Bearer":
        return None
    return credentials.strip() or None


@inject
async def resolve_auth(
    authorization: Annotated[str | None, Header()] = None,
    backend: TokenBackend = Depends(Provide[DIContainer.token_backend]),  # noqa: B008
) -> AuthResult:
    """Resolve the request's bearer token without raising."""
    token = extract_bearer(authorization)
    if token is None:
        return AuthResult.fail(AuthFailure.MISSING)
    return await backend.resolve(token)


async def require_auth(result: Annotated[AuthResult, Depends(resolve_auth)]) -> AuthContext:
    """Authenticated identity, or 401.

    Raises:
        AuthenticationError: with the message for the failure kind
    """
    if result.context is None:
        failure = result.failure or AuthFailure.INVALID
        raise AuthenticationError(FAILURE_MESSAGES[failure], reason=failure.value)
    return result.context


async def optional_auth(result: Annotated[AuthResult, Depends(resolve_auth)]) -> AuthContext | None:
    """Authenticated identity if the token resolves, else None."""
    return result.context


# Type aliases for convenience
CurrentAuth = Annotated[AuthContext, Depends(require_auth)]
OptionalAuth = Annotated[AuthContext | None, Depends(optional_auth)]
