"""Request and response schemas for the API.

Bodies are accepted and returned with camelCase keys.
"""

import re
import uuid
from datetime import datetime
from typing import Annotated, Any, Literal
from urllib.parse import urlparse

from pydantic import Field, StringConstraints, field_validator

from discourse_api.auth.schemas import CamelModel
from discourse_api.core.entities import DebateFormat, DebateStatus, ParticipantRole, RoomStatus

_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

NormalizedEmail = Annotated[str, StringConstraints(strip_whitespace=True, to_lower=True, max_length=254)]
Username = Annotated[
    str,
    StringConstraints(strip_whitespace=True, to_lower=True, min_length=3, max_length=30, pattern=r"^[a-zA-Z0-9_]+$"),
]


def _check_email(value: str, message: str) -> str:
    if not _EMAIL_RE.match(value):
        raise ValueError(message)
    return value


def _check_url(value: str | None, message: str) -> str | None:
    if value is None:
        return value
    parsed = urlparse(value)
    if not parsed.scheme or not parsed.netloc:
        raise ValueError(message)
    return value


# --- Request Models ---


class SignupRequest(CamelModel):
    """Account creation."""

    email: NormalizedEmail
    username: Username
    password: str = Field(..., min_length=8, max_length=100)

    @field_validator("email")
    @classmethod
    def _valid_email(cls, value: str) -> str:
        return _check_email(value, "Please enter a valid email address")


class LoginRequest(CamelModel):
    email: NormalizedEmail
    password: str = Field(..., min_length=1)

    @field_validator("email")
    @classmethod
    def _valid_email(cls, value: str) -> str:
        return _check_email(value, "Invalid email address")


class UpdateProfileRequest(CamelModel):
    """Partial profile update. Omitted fields are left unchanged."""

    username: Username | None = None
    bio: str | None = Field(default=None, max_length=500)
    avatar_url: str | None = None

    @field_validator("avatar_url")
    @classmethod
    def _valid_avatar(cls, value: str | None) -> str | None:
        return _check_url(value, "Avatar must be a valid URL")


class DebateSettingsInput(CamelModel):
    max_rounds: int = Field(default=3, ge=1, le=10)
    time_per_turn: int = Field(default=180, ge=30, le=600)
    rebuttal_time: int = Field(default=60, ge=15, le=300)
    allow_voice: bool = True
    ai_model: str = "llama-3.3-70b-versatile"
    ai_personality: str | None = None
    ai_side: Literal["for", "against"] | None = None
    session_time: int | None = Field(default=None, ge=5, le=120)


class CreateDebateRequest(CamelModel):
    topic: Annotated[str, StringConstraints(strip_whitespace=True, min_length=10, max_length=500)]
    description: str | None = Field(default=None, max_length=2000)
    format: DebateFormat
    settings: DebateSettingsInput | None = None
    create_room: bool = False


class SendMessageRequest(CamelModel):
    content: str = Field(..., min_length=1, max_length=10000)
    audio_url: str | None = None
    transcription: str | None = None

    @field_validator("audio_url")
    @classmethod
    def _valid_audio(cls, value: str | None) -> str | None:
        return _check_url(value, "Invalid audio URL")


class AIStatementRequest(CamelModel):
    """Human turn in an AI debate."""

    round: int = Field(..., ge=1)
    human_statement: str = Field(..., min_length=1, max_length=10000)


class ScoreRoundRequest(CamelModel):
    round: int = Field(..., ge=1)


class CreateRoomRequest(CamelModel):
    debate_id: str | None = None
    max_participants: int = Field(default=2, ge=2, le=10)

    @field_validator("debate_id")
    @classmethod
    def _valid_debate_id(cls, value: str | None) -> str | None:
        if value is None:
            return value
        try:
            uuid.UUID(value)
        except ValueError as e:
            raise ValueError("Invalid debate ID") from e
        return value


class JoinRoomRequest(CamelModel):
    display_name: Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=50)]


class JoinWaitlistRequest(CamelModel):
    email: NormalizedEmail
    source: str | None = Field(default=None, max_length=100)

    @field_validator("email")
    @classmethod
    def _valid_email(cls, value: str) -> str:
        return _check_email(value, "Invalid email address")


# --- Response Models ---


class DebateView(CamelModel):
    id: str
    topic: str
    description: str | None = None
    format: DebateFormat
    status: DebateStatus
    settings: dict[str, Any]
    current_round: int
    created_by: str
    winner_id: str | None = None
    final_scores: dict[str, Any] | None = None
    started_at: datetime | None = None
    ended_at: datetime | None = None
    created_at: datetime


class ParticipantView(CamelModel):
    id: str
    debate_id: str
    user_id: str | None = None
    role: ParticipantRole
    is_ai: bool
    ai_config: dict[str, Any] | None = None
    score: float
    joined_at: datetime


class MessageView(CamelModel):
    id: str
    debate_id: str
    participant_id: str
    round: int
    content: str
    audio_url: str | None = None
    transcription: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime


class RoomLink(CamelModel):
    """Room reference embedded in debate payloads."""

    room_id: str
    invite_code: str


class RoomListItem(CamelModel):
    room_id: str
    invite_code: str
    participants: int
    max_participants: int
    created_at: datetime
    is_active: bool
    is_owner: bool


class RoomDetail(CamelModel):
    room_id: str
    invite_code: str
    participants: int
    max_participants: int
    created_at: datetime
    status: RoomStatus
    is_active: bool


def success_response(data: Any = None, message: str | None = None) -> dict[str, Any]:
    """Standard success envelope: ``{"success": true, "data": ..., "message"?}``."""
    body: dict[str, Any] = {"success": True, "data": data}
    if message is not None:
        body["message"] = message
    return body
