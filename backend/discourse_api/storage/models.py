"""Relational schema (SQLAlchemy ORM)."""

import uuid
from datetime import datetime
from typing import Any, Optional

from sqlalchemy import JSON, Boolean, DateTime, Enum, Float, ForeignKey, Integer, String, Text, Uuid, func
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from discourse_api.core.entities import (
    DebateFormat,
    DebateStatus,
    ParticipantRole,
    RoomStatus,
    default_debate_settings,
    default_debate_stats,
    default_preferences,
)

JSONType = JSON().with_variant(JSONB(), "postgresql")
UUIDType = Uuid(as_uuid=False)


def _pg_enum(enum_cls: type, name: str) -> Enum:
    return Enum(enum_cls, name=name, values_callable=lambda members: [m.value for m in members])


def _uuid_str() -> str:
    return str(uuid.uuid4())


class Base(DeclarativeBase):
    pass


class UserRow(Base):
    __tablename__ = "users"

    id: Mapped[str] = mapped_column(UUIDType, primary_key=True, default=_uuid_str)
    email: Mapped[str] = mapped_column(Text, unique=True, nullable=False)
    username: Mapped[str] = mapped_column(Text, unique=True, nullable=False)
    password_hash: Mapped[str] = mapped_column(Text, nullable=False)
    avatar_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    bio: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    debate_stats: Mapped[dict[str, Any]] = mapped_column(JSONType, default=default_debate_stats)
    preferences: Mapped[dict[str, Any]] = mapped_column(JSONType, default=default_preferences)
    email_verified: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)


class SessionRow(Base):
    __tablename__ = "sessions"

    id: Mapped[str] = mapped_column(UUIDType, primary_key=True, default=_uuid_str)
    user_id: Mapped[str] = mapped_column(UUIDType, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    token: Mapped[str] = mapped_column(Text, unique=True, nullable=False)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)


class DebateRow(Base):
    __tablename__ = "debates"

    id: Mapped[str] = mapped_column(UUIDType, primary_key=True, default=_uuid_str)
    topic: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    format: Mapped[DebateFormat] = mapped_column(_pg_enum(DebateFormat, "debate_format"), nullable=False)
    status: Mapped[DebateStatus] = mapped_column(
        _pg_enum(DebateStatus, "debate_status"), default=DebateStatus.WAITING, nullable=False
    )
    settings: Mapped[dict[str, Any]] = mapped_column(JSONType, default=default_debate_settings)
    current_round: Mapped[int] = mapped_column(Integer, default=1)
    created_by: Mapped[str] = mapped_column(UUIDType, ForeignKey("users.id"), nullable=False)
    winner_id: Mapped[Optional[str]] = mapped_column(UUIDType, ForeignKey("users.id"), nullable=True)
    final_scores: Mapped[Optional[dict[str, Any]]] = mapped_column(JSONType, nullable=True)
    started_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    ended_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)


class DebateParticipantRow(Base):
    __tablename__ = "debate_participants"

    id: Mapped[str] = mapped_column(UUIDType, primary_key=True, default=_uuid_str)
    debate_id: Mapped[str] = mapped_column(UUIDType, ForeignKey("debates.id", ondelete="CASCADE"), nullable=False)
    user_id: Mapped[Optional[str]] = mapped_column(UUIDType, ForeignKey("users.id"), nullable=True)
    role: Mapped[ParticipantRole] = mapped_column(_pg_enum(ParticipantRole, "participant_role"), nullable=False)
    is_ai: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    ai_config: Mapped[Optional[dict[str, Any]]] = mapped_column(JSONType, nullable=True)
    score: Mapped[float] = mapped_column(Float, default=0.0)
    joined_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)


class DebateMessageRow(Base):
    __tablename__ = "debate_messages"

    id: Mapped[str] = mapped_column(UUIDType, primary_key=True, default=_uuid_str)
    debate_id: Mapped[str] = mapped_column(UUIDType, ForeignKey("debates.id", ondelete="CASCADE"), nullable=False)
    participant_id: Mapped[str] = mapped_column(
        UUIDType, ForeignKey("debate_participants.id", ondelete="CASCADE"), nullable=False
    )
    round: Mapped[int] = mapped_column(Integer, nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    audio_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    transcription: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    message_metadata: Mapped[Optional[dict[str, Any]]] = mapped_column("metadata", JSONType, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)


class RoomRow(Base):
    __tablename__ = "rooms"

    id: Mapped[str] = mapped_column(UUIDType, primary_key=True, default=_uuid_str)
    invite_code: Mapped[str] = mapped_column(String(16), unique=True, nullable=False)
    debate_id: Mapped[Optional[str]] = mapped_column(
        UUIDType, ForeignKey("debates.id", ondelete="SET NULL"), nullable=True
    )
    created_by: Mapped[str] = mapped_column(UUIDType, ForeignKey("users.id"), nullable=False)
    status: Mapped[RoomStatus] = mapped_column(
        _pg_enum(RoomStatus, "room_status"), default=RoomStatus.ACTIVE, nullable=False
    )
    max_participants: Mapped[int] = mapped_column(Integer, default=2, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    closed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)


class RoomParticipantRow(Base):
    __tablename__ = "room_participants"

    id: Mapped[str] = mapped_column(UUIDType, primary_key=True, default=_uuid_str)
    room_id: Mapped[str] = mapped_column(UUIDType, ForeignKey("rooms.id", ondelete="CASCADE"), nullable=False)
    user_id: Mapped[Optional[str]] = mapped_column(UUIDType, ForeignKey("users.id"), nullable=True)
    display_name: Mapped[str] = mapped_column(Text, nullable=False)
    socket_id: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    is_host: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    joined_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    left_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)


class WaitlistRow(Base):
    __tablename__ = "waitlist"

    id: Mapped[str] = mapped_column(UUIDType, primary_key=True, default=_uuid_str)
    email: Mapped[str] = mapped_column(Text, unique=True, nullable=False)
    source: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)
