"""Token backends: issue, resolve and revoke bearer credentials.

Two interchangeable strategies are registered. Exactly one is built per
process from ``AUTH_STRATEGY``:

* ``jwt``: stateless HS256 tokens, nothing persisted. The user is re-fetched
  on every resolution so deleted accounts stop authenticating.
* ``session``: opaque random tokens backed by the session store, expired
  rows are deleted by the request that finds them.
"""

from collections.abc import Callable
from datetime import datetime, timedelta
from typing import Protocol, runtime_checkable

import jwt

from discourse_api.auth.schemas import AuthContext, AuthFailure, AuthResult
from discourse_api.auth.tokens import (
    TokenPayload,
    generate_opaque_token,
    parse_duration,
    sign_token,
    verify_token,
)
from discourse_api.core.config import AppConfig
from discourse_api.core.entities import User, utcnow
from discourse_api.core.exceptions import ConfigurationError
from discourse_api.core.logging import get_logger
from discourse_api.core.protocols import SessionStore, UserStore

logger = get_logger(__name__)

Clock = Callable[[], datetime]


@runtime_checkable
class TokenBackend(Protocol):
    """Issuer and validator for one credential format."""

    name: str

    async def issue(self, user: User) -> str:
        """Create a bearer credential for an already authenticated user."""
        ...

    async def resolve(self, token: str) -> AuthResult:
        """Resolve a bearer credential. Never raises for auth failures."""
        ...

    async def revoke(self, token: str) -> None:
        """Invalidate a credential where the format allows it."""
        ...


class TokenBackendFactory:
    """Decorator-based registry of token backends, keyed by strategy name."""

    _registry: dict[str, type] = {}

    @classmethod
    def register(cls, name: str):
        """Decorator to register a backend class."""

        def decorator(backend_cls: type) -> type:
            cls._registry[name] = backend_cls
            return backend_cls

        return decorator

    @classmethod
    def create(
        cls,
        config: AppConfig,
        users: UserStore,
        sessions: SessionStore,
        clock: Clock = utcnow,
    ) -> TokenBackend:
        """Build the backend selected by ``config.auth.strategy``."""
        backend_cls = cls._registry.get(config.auth.strategy)
        if backend_cls is None:
            available = ", ".join(cls._registry.keys()) or "none registered"
            raise ConfigurationError(
                f"Unknown auth strategy: '{config.auth.strategy}'. Available: {available}"
            )
        return backend_cls(config=config, users=users, sessions=sessions, clock=clock)

    @classmethod
    def available_backends(cls) -> list[str]:
        return list(cls._registry.keys())


@TokenBackendFactory.register("jwt")
class JWTBackend:
    """Stateless signed tokens."""

    name = "jwt"

    def __init__(
        self,
        config: AppConfig,
        users: UserStore,
        sessions: SessionStore | None = None,
        clock: Clock = utcnow,
    ):
        self._secret = config.jwt.secret
        # Fails at construction (startup) on a bad JWT_EXPIRES_IN
        self._ttl_seconds = parse_duration(config.jwt.expires_in)
        self._users = users
        self._clock = clock

    async def issue(self, user: User) -> str:
        iat = int(self._clock().timestamp())
        payload = TokenPayload(user_id=user.id, email=user.email, iat=iat, exp=iat + self._ttl_seconds)
        return sign_token(payload, self._secret)

    async def resolve(self, token: str) -> AuthResult:
        try:
            payload = verify_token(token, self._secret, self._clock())
        except jwt.ExpiredSignatureError:
            logger.info("token_rejected", backend=self.name, reason=AuthFailure.EXPIRED)
            return AuthResult.fail(AuthFailure.EXPIRED)
        except jwt.InvalidTokenError as e:
            logger.info("token_rejected", backend=self.name, reason=AuthFailure.INVALID, error=str(e))
            return AuthResult.fail(AuthFailure.INVALID)

        user = await self._users.find_by_id(payload.user_id)
        if user is None:
            logger.info("token_rejected", backend=self.name, reason=AuthFailure.STALE, user_id=payload.user_id)
            return AuthResult.fail(AuthFailure.STALE)
        return AuthResult.success(AuthContext(user=user, token=token, payload=payload))

    async def revoke(self, token: str) -> None:
        # Signed tokens stay valid until exp
        return None


@TokenBackendFactory.register("session")
class SessionBackend:
    """Opaque tokens backed by the session store."""

    name = "session"

    def __init__(
        self,
        config: AppConfig,
        users: UserStore,
        sessions: SessionStore,
        clock: Clock = utcnow,
    ):
        self._ttl = timedelta(days=config.auth.session_ttl_days)
        self._users = users
        self._sessions = sessions
        self._clock = clock

    async def issue(self, user: User) -> str:
        token = generate_opaque_token()
        await self._sessions.create(user.id, token, self._clock() + self._ttl)
        return token

    async def resolve(self, token: str) -> AuthResult:
        session = await self._sessions.get_by_token(token)
        if session is None:
            logger.info("token_rejected", backend=self.name, reason=AuthFailure.INVALID)
            return AuthResult.fail(AuthFailure.INVALID)

        if session.expires_at <= self._clock():
            await self._sessions.delete_by_token(token)
            logger.info("session_expired_cleanup", session_id=session.id, user_id=session.user_id)
            return AuthResult.fail(AuthFailure.EXPIRED)

        user = await self._users.find_by_id(session.user_id)
        if user is None:
            logger.info("token_rejected", backend=self.name, reason=AuthFailure.STALE, user_id=session.user_id)
            return AuthResult.fail(AuthFailure.STALE)
        return AuthResult.success(AuthContext(user=user, token=token))

    async def revoke(self, token: str) -> None:
        await self._sessions.delete_by_token(token)
