"""Relational storage (SQLAlchemy async) for production.

Uniqueness relies on the schema's unique constraints: inserts are attempted
and ``IntegrityError`` is mapped to the domain conflict errors, so there is
no read-then-write window between concurrent requests.
"""

import uuid
from datetime import UTC, datetime
from typing import Any

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from discourse_api.core.config import StorageConfig
from discourse_api.core.entities import (
    Debate,
    DebateMessage,
    DebateParticipant,
    Room,
    RoomJoin,
    RoomParticipant,
    RoomStatus,
    Session,
    User,
    WaitlistEntry,
    new_id,
    utcnow,
)
from discourse_api.core.exceptions import (
    ConflictError,
    DuplicateEmailError,
    DuplicateUsernameError,
    RoomFullError,
)
from discourse_api.core.logging import get_logger
from discourse_api.storage.database import create_engine, create_sessionmaker
from discourse_api.storage.factory import StorageFactory
from discourse_api.storage.models import (
    Base,
    DebateMessageRow,
    DebateParticipantRow,
    DebateRow,
    RoomParticipantRow,
    RoomRow,
    SessionRow,
    UserRow,
    WaitlistRow,
)

logger = get_logger(__name__)


def _valid_id(value: str | None) -> bool:
    """Ids are UUIDs; anything else can never match a row."""
    if value is None:
        return False
    try:
        uuid.UUID(value)
    except ValueError:
        return False
    return True


def _aware(value: datetime | None) -> datetime | None:
    # SQLite drops tzinfo on the way back
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


def _to_user(row: UserRow) -> User:
    return User(
        id=row.id,
        email=row.email,
        username=row.username,
        password_hash=row.password_hash,
        bio=row.bio,
        avatar_url=row.avatar_url,
        email_verified=row.email_verified,
        debate_stats=dict(row.debate_stats or {}),
        preferences=dict(row.preferences or {}),
        created_at=_aware(row.created_at),
        updated_at=_aware(row.updated_at),
    )


def _to_session(row: SessionRow) -> Session:
    return Session(
        id=row.id,
        user_id=row.user_id,
        token=row.token,
        expires_at=_aware(row.expires_at),
        created_at=_aware(row.created_at),
    )


def _to_debate(row: DebateRow) -> Debate:
    return Debate(
        id=row.id,
        topic=row.topic,
        description=row.description,
        format=row.format,
        status=row.status,
        settings=dict(row.settings or {}),
        current_round=row.current_round,
        created_by=row.created_by,
        winner_id=row.winner_id,
        final_scores=row.final_scores,
        started_at=_aware(row.started_at),
        ended_at=_aware(row.ended_at),
        created_at=_aware(row.created_at),
    )


def _to_participant(row: DebateParticipantRow) -> DebateParticipant:
    return DebateParticipant(
        id=row.id,
        debate_id=row.debate_id,
        user_id=row.user_id,
        role=row.role,
        is_ai=row.is_ai,
        ai_config=row.ai_config,
        score=row.score or 0.0,
        joined_at=_aware(row.joined_at),
    )


def _to_message(row: DebateMessageRow) -> DebateMessage:
    return DebateMessage(
        id=row.id,
        debate_id=row.debate_id,
        participant_id=row.participant_id,
        round=row.round,
        content=row.content,
        audio_url=row.audio_url,
        transcription=row.transcription,
        metadata=dict(row.message_metadata or {}),
        created_at=_aware(row.created_at),
    )


def _to_room(row: RoomRow) -> Room:
    return Room(
        id=row.id,
        invite_code=row.invite_code,
        debate_id=row.debate_id,
        created_by=row.created_by,
        status=row.status,
        max_participants=row.max_participants,
        created_at=_aware(row.created_at),
        closed_at=_aware(row.closed_at),
    )


def _to_room_participant(row: RoomParticipantRow) -> RoomParticipant:
    return RoomParticipant(
        id=row.id,
        room_id=row.room_id,
        user_id=row.user_id,
        display_name=row.display_name,
        socket_id=row.socket_id,
        is_host=row.is_host,
        joined_at=_aware(row.joined_at),
        left_at=_aware(row.left_at),
    )


def _to_waitlist_entry(row: WaitlistRow) -> WaitlistEntry:
    return WaitlistEntry(id=row.id, email=row.email, source=row.source, created_at=_aware(row.created_at))


class _SQLStore:
    def __init__(self, sessionmaker: async_sessionmaker):
        self._sessionmaker = sessionmaker


class SQLUserStore(_SQLStore):
    """Credential store over the ``users`` table."""

    async def _find_one(self, session: AsyncSession, *criteria) -> UserRow | None:
        result = await session.execute(select(UserRow).where(*criteria))
        return result.scalar_one_or_none()

    async def find_by_email(self, email: str) -> User | None:
        async with self._sessionmaker() as session:
            row = await self._find_one(session, UserRow.email == email)
            return _to_user(row) if row else None

    async def find_by_username(self, username: str) -> User | None:
        async with self._sessionmaker() as session:
            row = await self._find_one(session, UserRow.username == username)
            return _to_user(row) if row else None

    async def find_by_id(self, user_id: str) -> User | None:
        if not _valid_id(user_id):
            return None
        async with self._sessionmaker() as session:
            row = await session.get(UserRow, user_id)
            return _to_user(row) if row else None

    async def insert(self, email: str, username: str, password_hash: str) -> User:
        now = utcnow()
        row = UserRow(
            id=new_id(),
            email=email,
            username=username,
            password_hash=password_hash,
            created_at=now,
            updated_at=now,
        )
        async with self._sessionmaker() as session:
            session.add(row)
            try:
                await session.commit()
            except IntegrityError as e:
                await session.rollback()
                if await self._find_one(session, UserRow.email == email):
                    raise DuplicateEmailError() from e
                raise DuplicateUsernameError() from e
            return _to_user(row)

    async def update_profile(self, user_id: str, fields: dict[str, Any]) -> User | None:
        if not _valid_id(user_id):
            return None
        async with self._sessionmaker() as session:
            row = await session.get(UserRow, user_id)
            if row is None:
                return None
            for name in ("username", "bio", "avatar_url", "preferences"):
                if name in fields:
                    setattr(row, name, fields[name])
            row.updated_at = utcnow()
            try:
                await session.commit()
            except IntegrityError as e:
                await session.rollback()
                raise DuplicateUsernameError("Username already taken") from e
            return _to_user(row)

    async def delete(self, user_id: str) -> bool:
        if not _valid_id(user_id):
            return False
        async with self._sessionmaker() as session:
            result = await session.execute(delete(UserRow).where(UserRow.id == user_id))
            await session.commit()
            return result.rowcount > 0


class SQLSessionStore(_SQLStore):
    """Opaque sessions over the ``sessions`` table."""

    async def create(self, user_id: str, token: str, expires_at: datetime) -> Session:
        row = SessionRow(id=new_id(), user_id=user_id, token=token, expires_at=expires_at, created_at=utcnow())
        async with self._sessionmaker() as session:
            session.add(row)
            try:
                await session.commit()
            except IntegrityError as e:
                await session.rollback()
                raise ConflictError("Session token collision", field="token") from e
            return _to_session(row)

    async def get_by_token(self, token: str) -> Session | None:
        async with self._sessionmaker() as session:
            result = await session.execute(select(SessionRow).where(SessionRow.token == token))
            row = result.scalar_one_or_none()
            return _to_session(row) if row else None

    async def delete_by_token(self, token: str) -> bool:
        async with self._sessionmaker() as session:
            result = await session.execute(delete(SessionRow).where(SessionRow.token == token))
            await session.commit()
            return result.rowcount > 0

    async def delete_expired(self, now: datetime) -> int:
        async with self._sessionmaker() as session:
            result = await session.execute(delete(SessionRow).where(SessionRow.expires_at <= now))
            await session.commit()
            return result.rowcount


class SQLDebateStore(_SQLStore):
    """Debates, participants and messages."""

    async def create(self, debate: Debate, participants: list[DebateParticipant]) -> Debate:
        async with self._sessionmaker() as session:
            session.add(
                DebateRow(
                    id=debate.id,
                    topic=debate.topic,
                    description=debate.description,
                    format=debate.format,
                    status=debate.status,
                    settings=debate.settings,
                    current_round=debate.current_round,
                    created_by=debate.created_by,
                    created_at=debate.created_at,
                )
            )
            await session.flush()
            for p in participants:
                session.add(
                    DebateParticipantRow(
                        id=p.id,
                        debate_id=p.debate_id,
                        user_id=p.user_id,
                        role=p.role,
                        is_ai=p.is_ai,
                        ai_config=p.ai_config,
                        score=p.score,
                        joined_at=p.joined_at,
                    )
                )
            await session.commit()
        return debate

    async def get(self, debate_id: str) -> Debate | None:
        if not _valid_id(debate_id):
            return None
        async with self._sessionmaker() as session:
            row = await session.get(DebateRow, debate_id)
            return _to_debate(row) if row else None

    async def list_by_creator(self, user_id: str) -> list[Debate]:
        async with self._sessionmaker() as session:
            result = await session.execute(
                select(DebateRow).where(DebateRow.created_by == user_id).order_by(DebateRow.created_at.desc())
            )
            return [_to_debate(row) for row in result.scalars()]

    async def save(self, debate: Debate) -> Debate:
        async with self._sessionmaker() as session:
            await session.execute(
                update(DebateRow)
                .where(DebateRow.id == debate.id)
                .values(
                    status=debate.status,
                    settings=debate.settings,
                    current_round=debate.current_round,
                    winner_id=debate.winner_id,
                    final_scores=debate.final_scores,
                    started_at=debate.started_at,
                    ended_at=debate.ended_at,
                )
            )
            await session.commit()
        return debate

    async def delete(self, debate_id: str) -> bool:
        if not _valid_id(debate_id):
            return False
        async with self._sessionmaker() as session:
            # Explicit child deletes keep databases without FK enforcement consistent
            await session.execute(delete(DebateMessageRow).where(DebateMessageRow.debate_id == debate_id))
            await session.execute(delete(DebateParticipantRow).where(DebateParticipantRow.debate_id == debate_id))
            await session.execute(update(RoomRow).where(RoomRow.debate_id == debate_id).values(debate_id=None))
            result = await session.execute(delete(DebateRow).where(DebateRow.id == debate_id))
            await session.commit()
            return result.rowcount > 0

    async def list_participants(self, debate_id: str) -> list[DebateParticipant]:
        if not _valid_id(debate_id):
            return []
        async with self._sessionmaker() as session:
            result = await session.execute(
                select(DebateParticipantRow)
                .where(DebateParticipantRow.debate_id == debate_id)
                .order_by(DebateParticipantRow.joined_at)
            )
            return [_to_participant(row) for row in result.scalars()]

    async def add_message(self, message: DebateMessage) -> DebateMessage:
        async with self._sessionmaker() as session:
            session.add(
                DebateMessageRow(
                    id=message.id,
                    debate_id=message.debate_id,
                    participant_id=message.participant_id,
                    round=message.round,
                    content=message.content,
                    audio_url=message.audio_url,
                    transcription=message.transcription,
                    message_metadata=message.metadata,
                    created_at=message.created_at,
                )
            )
            await session.commit()
        return message

    async def list_messages(self, debate_id: str) -> list[DebateMessage]:
        if not _valid_id(debate_id):
            return []
        async with self._sessionmaker() as session:
            result = await session.execute(
                select(DebateMessageRow)
                .where(DebateMessageRow.debate_id == debate_id)
                .order_by(DebateMessageRow.created_at)
            )
            return [_to_message(row) for row in result.scalars()]


class SQLRoomStore(_SQLStore):
    """Rooms and their participants."""

    @staticmethod
    async def _active(session: AsyncSession, room_id: str) -> list[RoomParticipantRow]:
        result = await session.execute(
            select(RoomParticipantRow)
            .where(RoomParticipantRow.room_id == room_id, RoomParticipantRow.left_at.is_(None))
            .order_by(RoomParticipantRow.joined_at)
        )
        return list(result.scalars())

    async def create(self, room: Room) -> Room:
        async with self._sessionmaker() as session:
            session.add(
                RoomRow(
                    id=room.id,
                    invite_code=room.invite_code,
                    debate_id=room.debate_id,
                    created_by=room.created_by,
                    status=room.status,
                    max_participants=room.max_participants,
                    created_at=room.created_at,
                )
            )
            try:
                await session.commit()
            except IntegrityError as e:
                await session.rollback()
                raise ConflictError("Invite code already in use", field="invite_code") from e
        return room

    async def get(self, room_id: str) -> Room | None:
        if not _valid_id(room_id):
            return None
        async with self._sessionmaker() as session:
            row = await session.get(RoomRow, room_id)
            return _to_room(row) if row else None

    async def get_active_by_invite_code(self, invite_code: str) -> Room | None:
        async with self._sessionmaker() as session:
            result = await session.execute(
                select(RoomRow).where(RoomRow.invite_code == invite_code, RoomRow.status == RoomStatus.ACTIVE)
            )
            row = result.scalar_one_or_none()
            return _to_room(row) if row else None

    async def get_by_debate(self, debate_id: str) -> Room | None:
        if not _valid_id(debate_id):
            return None
        async with self._sessionmaker() as session:
            result = await session.execute(select(RoomRow).where(RoomRow.debate_id == debate_id).limit(1))
            row = result.scalar_one_or_none()
            return _to_room(row) if row else None

    async def list_active(self) -> list[Room]:
        async with self._sessionmaker() as session:
            result = await session.execute(
                select(RoomRow).where(RoomRow.status == RoomStatus.ACTIVE).order_by(RoomRow.created_at)
            )
            return [_to_room(row) for row in result.scalars()]

    async def active_participants(self, room_id: str) -> list[RoomParticipant]:
        if not _valid_id(room_id):
            return []
        async with self._sessionmaker() as session:
            return [_to_room_participant(row) for row in await self._active(session, room_id)]

    async def join(self, room_id: str, display_name: str, user_id: str | None) -> RoomJoin | None:
        if not _valid_id(room_id):
            return None
        async with self._sessionmaker() as session, session.begin():
            # Row lock serialises concurrent joins on PostgreSQL
            result = await session.execute(select(RoomRow).where(RoomRow.id == room_id).with_for_update())
            room = result.scalar_one_or_none()
            if room is None or room.status != RoomStatus.ACTIVE:
                return None
            current = await self._active(session, room_id)
            if user_id is not None:
                existing = next((p for p in current if p.user_id == user_id), None)
                if existing is not None:
                    return RoomJoin(_to_room_participant(existing), already_joined=True, total_participants=len(current))
            if len(current) >= room.max_participants:
                raise RoomFullError()
            row = RoomParticipantRow(
                id=new_id(),
                room_id=room_id,
                user_id=user_id,
                display_name=display_name,
                is_host=room.created_by == user_id or not current,
                joined_at=utcnow(),
            )
            session.add(row)
            await session.flush()
            return RoomJoin(_to_room_participant(row), already_joined=False, total_participants=len(current) + 1)

    async def close(self, room_id: str, closed_at: datetime) -> Room | None:
        if not _valid_id(room_id):
            return None
        async with self._sessionmaker() as session:
            row = await session.get(RoomRow, room_id)
            if row is None:
                return None
            row.status = RoomStatus.CLOSED
            row.closed_at = closed_at
            await session.execute(
                update(RoomParticipantRow)
                .where(RoomParticipantRow.room_id == room_id, RoomParticipantRow.left_at.is_(None))
                .values(left_at=closed_at)
            )
            await session.commit()
            return _to_room(row)


class SQLWaitlistStore(_SQLStore):
    """Waitlist ordered by signup time."""

    @staticmethod
    async def _position(session: AsyncSession, row: WaitlistRow) -> int:
        result = await session.execute(
            select(func.count()).select_from(WaitlistRow).where(WaitlistRow.created_at <= row.created_at)
        )
        return int(result.scalar_one())

    async def _find(self, session: AsyncSession, email: str) -> WaitlistRow | None:
        result = await session.execute(select(WaitlistRow).where(WaitlistRow.email == email))
        return result.scalar_one_or_none()

    async def add(self, email: str, source: str | None) -> tuple[WaitlistEntry, int, bool]:
        async with self._sessionmaker() as session:
            row = WaitlistRow(id=new_id(), email=email, source=source, created_at=utcnow())
            session.add(row)
            created = True
            try:
                await session.commit()
            except IntegrityError:
                await session.rollback()
                row = await self._find(session, email)
                created = False
            return _to_waitlist_entry(row), await self._position(session, row), created

    async def get(self, email: str) -> tuple[WaitlistEntry, int] | None:
        async with self._sessionmaker() as session:
            row = await self._find(session, email)
            if row is None:
                return None
            return _to_waitlist_entry(row), await self._position(session, row)

    async def count(self) -> int:
        async with self._sessionmaker() as session:
            result = await session.execute(select(func.count()).select_from(WaitlistRow))
            return int(result.scalar_one())


@StorageFactory.register("sql")
class SQLStorage:
    """PostgreSQL (or any SQLAlchemy async URL) backed storage."""

    def __init__(self, config: StorageConfig):
        self.config = config
        self.engine = create_engine(config)
        sessionmaker = create_sessionmaker(self.engine)
        self.users = SQLUserStore(sessionmaker)
        self.sessions = SQLSessionStore(sessionmaker)
        self.debates = SQLDebateStore(sessionmaker)
        self.rooms = SQLRoomStore(sessionmaker)
        self.waitlist = SQLWaitlistStore(sessionmaker)

    async def startup(self) -> None:
        if self.config.create_tables:
            async with self.engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
            logger.info("database_tables_ensured")

    async def shutdown(self) -> None:
        await self.engine.dispose()
        logger.info("database_engine_disposed")
