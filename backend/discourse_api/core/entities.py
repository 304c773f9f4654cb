"""Domain records shared by every store implementation."""

import enum
import secrets
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any
from uuid import uuid4

INVITE_CODE_ALPHABET = "ABCDEFGHJKMNPQRSTUVWXYZ23456789"
INVITE_CODE_LENGTH = 8


def utcnow() -> datetime:
    """Timezone-aware current UTC time."""
    return datetime.now(UTC)


def new_id() -> str:
    return str(uuid4())


def generate_invite_code() -> str:
    """8-char room invite code without look-alike characters (0/O, 1/I/L)."""
    return "".join(secrets.choice(INVITE_CODE_ALPHABET) for _ in range(INVITE_CODE_LENGTH))


def default_debate_stats() -> dict[str, Any]:
    return {"totalDebates": 0, "wins": 0, "losses": 0, "draws": 0, "avgScore": 0}


def default_preferences() -> dict[str, Any]:
    return {"voiceEnabled": True, "preferredLanguage": "en", "theme": "system"}


def default_debate_settings() -> dict[str, Any]:
    return {
        "maxRounds": 3,
        "timePerTurn": 180,
        "rebuttalTime": 60,
        "allowVoice": True,
        "aiModel": "llama-3.3-70b-versatile",
    }


class DebateFormat(enum.StrEnum):
    ONE_V_ONE_AI = "one_v_one_ai"
    ONE_V_ONE_HUMAN = "one_v_one_human"
    MULTI_AI_MOD = "multi_ai_mod"
    FREE_FORM = "free_form"


class DebateStatus(enum.StrEnum):
    WAITING = "waiting"
    IN_PROGRESS = "in_progress"
    PAUSED = "paused"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class ParticipantRole(enum.StrEnum):
    PROPOSER = "proposer"
    OPPOSER = "opposer"
    MODERATOR = "moderator"
    SPECTATOR = "spectator"


class RoomStatus(enum.StrEnum):
    ACTIVE = "active"
    CLOSED = "closed"


@dataclass
class User:
    """Credential record. ``password_hash`` stays inside the service layer."""

    id: str
    email: str
    username: str
    password_hash: str
    created_at: datetime
    updated_at: datetime
    bio: str | None = None
    avatar_url: str | None = None
    email_verified: bool = False
    debate_stats: dict[str, Any] = field(default_factory=default_debate_stats)
    preferences: dict[str, Any] = field(default_factory=default_preferences)


@dataclass
class Session:
    """Opaque bearer session owned by one user."""

    id: str
    user_id: str
    token: str
    expires_at: datetime
    created_at: datetime


@dataclass
class Debate:
    id: str
    topic: str
    format: DebateFormat
    created_by: str
    created_at: datetime
    description: str | None = None
    status: DebateStatus = DebateStatus.WAITING
    settings: dict[str, Any] = field(default_factory=default_debate_settings)
    current_round: int = 1
    winner_id: str | None = None
    final_scores: dict[str, Any] | None = None
    started_at: datetime | None = None
    ended_at: datetime | None = None


@dataclass
class DebateParticipant:
    id: str
    debate_id: str
    role: ParticipantRole
    joined_at: datetime
    user_id: str | None = None
    is_ai: bool = False
    ai_config: dict[str, Any] | None = None
    score: float = 0.0


@dataclass
class DebateMessage:
    id: str
    debate_id: str
    participant_id: str
    round: int
    content: str
    created_at: datetime
    audio_url: str | None = None
    transcription: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass
class Room:
    id: str
    invite_code: str
    created_by: str
    created_at: datetime
    debate_id: str | None = None
    status: RoomStatus = RoomStatus.ACTIVE
    max_participants: int = 2
    closed_at: datetime | None = None


@dataclass
class RoomParticipant:
    id: str
    room_id: str
    display_name: str
    joined_at: datetime
    user_id: str | None = None
    socket_id: str | None = None
    is_host: bool = False
    left_at: datetime | None = None


@dataclass
class WaitlistEntry:
    id: str
    email: str
    created_at: datetime
    source: str | None = None


@dataclass
class RoomJoin:
    """Outcome of a join attempt: the participant plus whether it already existed."""

    participant: RoomParticipant
    already_joined: bool
    total_participants: int
