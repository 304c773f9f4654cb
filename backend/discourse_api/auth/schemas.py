"""Authentication result types and user-facing schemas."""

import enum
from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Any, Self

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from discourse_api.auth.tokens import TokenPayload
from discourse_api.core.entities import User


class AuthFailure(enum.StrEnum):
    """Why a bearer credential did not resolve to a user."""

    MISSING = "missing"
    INVALID = "invalid"
    EXPIRED = "expired"
    STALE = "stale"


@dataclass(frozen=True)
class AuthContext:
    """Identity resolved from a bearer token, handed to route handlers."""

    user: User
    token: str
    payload: TokenPayload | None = None

    @property
    def user_id(self) -> str:
        return self.user.id


@dataclass(frozen=True)
class AuthResult:
    """Either a resolved ``context`` or a ``failure`` kind, never both."""

    context: AuthContext | None = None
    failure: AuthFailure | None = None

    @property
    def ok(self) -> bool:
        return self.context is not None

    @classmethod
    def success(cls, context: AuthContext) -> "AuthResult":
        return cls(context=context)

    @classmethod
    def fail(cls, failure: AuthFailure) -> "AuthResult":
        return cls(failure=failure)


class CamelModel(BaseModel):
    """Base model serialised with camelCase keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    @classmethod
    def from_entity(cls, entity: Any) -> Self:
        """Build from a domain dataclass, ignoring fields the model lacks."""
        return cls.model_validate(asdict(entity))


class SafeUser(CamelModel):
    """User as returned to its owner. Carries no password hash."""

    id: str
    email: str
    username: str
    bio: str | None = None
    avatar_url: str | None = None
    email_verified: bool = False
    debate_stats: dict[str, Any] = Field(default_factory=dict)
    preferences: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime
    updated_at: datetime


class PublicProfile(CamelModel):
    """User as visible to anyone (no email)."""

    id: str
    username: str
    bio: str | None = None
    avatar_url: str | None = None
    created_at: datetime
