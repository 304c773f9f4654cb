"""In-memory storage for development and testing.

Not persistent - data is lost on restart. All stores of one
``InMemoryStorage`` share a single lock so that check-then-write
sequences (uniqueness, room capacity) are atomic.
"""

import threading
from copy import deepcopy
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

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
from discourse_api.storage.factory import StorageFactory

logger = get_logger(__name__)

PROFILE_FIELDS = ("username", "bio", "avatar_url", "preferences")


@dataclass
class _Tables:
    users: dict[str, User] = field(default_factory=dict)
    sessions: dict[str, Session] = field(default_factory=dict)
    debates: dict[str, Debate] = field(default_factory=dict)
    participants: dict[str, DebateParticipant] = field(default_factory=dict)
    messages: list[DebateMessage] = field(default_factory=list)
    rooms: dict[str, Room] = field(default_factory=dict)
    room_participants: list[RoomParticipant] = field(default_factory=list)
    waitlist: list[WaitlistEntry] = field(default_factory=list)
    lock: threading.Lock = field(default_factory=threading.Lock)


class InMemoryUserStore:
    """Dictionary-based credential store."""

    def __init__(self, tables: _Tables):
        self._t = tables

    async def find_by_email(self, email: str) -> User | None:
        with self._t.lock:
            return deepcopy(next((u for u in self._t.users.values() if u.email == email), None))

    async def find_by_username(self, username: str) -> User | None:
        with self._t.lock:
            return deepcopy(next((u for u in self._t.users.values() if u.username == username), None))

    async def find_by_id(self, user_id: str) -> User | None:
        with self._t.lock:
            return deepcopy(self._t.users.get(user_id))

    async def insert(self, email: str, username: str, password_hash: str) -> User:
        with self._t.lock:
            if any(u.email == email for u in self._t.users.values()):
                raise DuplicateEmailError()
            if any(u.username == username for u in self._t.users.values()):
                raise DuplicateUsernameError()
            now = utcnow()
            user = User(
                id=new_id(),
                email=email,
                username=username,
                password_hash=password_hash,
                created_at=now,
                updated_at=now,
            )
            self._t.users[user.id] = user
            return deepcopy(user)

    async def update_profile(self, user_id: str, fields: dict[str, Any]) -> User | None:
        with self._t.lock:
            user = self._t.users.get(user_id)
            if user is None:
                return None
            username = fields.get("username")
            if username and any(
                u.username == username and u.id != user_id for u in self._t.users.values()
            ):
                raise DuplicateUsernameError("Username already taken")
            for name in PROFILE_FIELDS:
                if name in fields:
                    setattr(user, name, fields[name])
            user.updated_at = utcnow()
            return deepcopy(user)

    async def delete(self, user_id: str) -> bool:
        with self._t.lock:
            if self._t.users.pop(user_id, None) is None:
                return False
            for token in [t for t, s in self._t.sessions.items() if s.user_id == user_id]:
                del self._t.sessions[token]
            return True


class InMemorySessionStore:
    """Token-keyed session map."""

    def __init__(self, tables: _Tables):
        self._t = tables

    async def create(self, user_id: str, token: str, expires_at: datetime) -> Session:
        with self._t.lock:
            if token in self._t.sessions:
                raise ConflictError("Session token collision", field="token")
            session = Session(
                id=new_id(),
                user_id=user_id,
                token=token,
                expires_at=expires_at,
                created_at=utcnow(),
            )
            self._t.sessions[token] = session
            return deepcopy(session)

    async def get_by_token(self, token: str) -> Session | None:
        with self._t.lock:
            return deepcopy(self._t.sessions.get(token))

    async def delete_by_token(self, token: str) -> bool:
        with self._t.lock:
            return self._t.sessions.pop(token, None) is not None

    async def delete_expired(self, now: datetime) -> int:
        with self._t.lock:
            expired = [t for t, s in self._t.sessions.items() if s.expires_at <= now]
            for token in expired:
                del self._t.sessions[token]
            return len(expired)


class InMemoryDebateStore:
    """Debates, participants and messages."""

    def __init__(self, tables: _Tables):
        self._t = tables

    async def create(self, debate: Debate, participants: list[DebateParticipant]) -> Debate:
        with self._t.lock:
            self._t.debates[debate.id] = deepcopy(debate)
            for participant in participants:
                self._t.participants[participant.id] = deepcopy(participant)
            return deepcopy(debate)

    async def get(self, debate_id: str) -> Debate | None:
        with self._t.lock:
            return deepcopy(self._t.debates.get(debate_id))

    async def list_by_creator(self, user_id: str) -> list[Debate]:
        with self._t.lock:
            debates = [deepcopy(d) for d in self._t.debates.values() if d.created_by == user_id]
        debates.sort(key=lambda d: d.created_at, reverse=True)
        return debates

    async def save(self, debate: Debate) -> Debate:
        with self._t.lock:
            self._t.debates[debate.id] = deepcopy(debate)
            return deepcopy(debate)

    async def delete(self, debate_id: str) -> bool:
        with self._t.lock:
            if self._t.debates.pop(debate_id, None) is None:
                return False
            self._t.participants = {
                pid: p for pid, p in self._t.participants.items() if p.debate_id != debate_id
            }
            self._t.messages = [m for m in self._t.messages if m.debate_id != debate_id]
            for room in self._t.rooms.values():
                if room.debate_id == debate_id:
                    room.debate_id = None
            return True

    async def list_participants(self, debate_id: str) -> list[DebateParticipant]:
        with self._t.lock:
            return [deepcopy(p) for p in self._t.participants.values() if p.debate_id == debate_id]

    async def add_message(self, message: DebateMessage) -> DebateMessage:
        with self._t.lock:
            self._t.messages.append(deepcopy(message))
            return deepcopy(message)

    async def list_messages(self, debate_id: str) -> list[DebateMessage]:
        with self._t.lock:
            return [deepcopy(m) for m in self._t.messages if m.debate_id == debate_id]


class InMemoryRoomStore:
    """Rooms and their participants."""

    def __init__(self, tables: _Tables):
        self._t = tables

    def _active(self, room_id: str) -> list[RoomParticipant]:
        return [p for p in self._t.room_participants if p.room_id == room_id and p.left_at is None]

    async def create(self, room: Room) -> Room:
        with self._t.lock:
            if any(r.invite_code == room.invite_code for r in self._t.rooms.values()):
                raise ConflictError("Invite code already in use", field="invite_code")
            self._t.rooms[room.id] = deepcopy(room)
            return deepcopy(room)

    async def get(self, room_id: str) -> Room | None:
        with self._t.lock:
            return deepcopy(self._t.rooms.get(room_id))

    async def get_active_by_invite_code(self, invite_code: str) -> Room | None:
        with self._t.lock:
            room = next(
                (
                    r
                    for r in self._t.rooms.values()
                    if r.invite_code == invite_code and r.status == RoomStatus.ACTIVE
                ),
                None,
            )
            return deepcopy(room)

    async def get_by_debate(self, debate_id: str) -> Room | None:
        with self._t.lock:
            return deepcopy(next((r for r in self._t.rooms.values() if r.debate_id == debate_id), None))

    async def list_active(self) -> list[Room]:
        with self._t.lock:
            return [deepcopy(r) for r in self._t.rooms.values() if r.status == RoomStatus.ACTIVE]

    async def active_participants(self, room_id: str) -> list[RoomParticipant]:
        with self._t.lock:
            return [deepcopy(p) for p in self._active(room_id)]

    async def join(self, room_id: str, display_name: str, user_id: str | None) -> RoomJoin | None:
        with self._t.lock:
            room = self._t.rooms.get(room_id)
            if room is None or room.status != RoomStatus.ACTIVE:
                return None
            current = self._active(room_id)
            if user_id is not None:
                existing = next((p for p in current if p.user_id == user_id), None)
                if existing is not None:
                    return RoomJoin(deepcopy(existing), already_joined=True, total_participants=len(current))
            if len(current) >= room.max_participants:
                raise RoomFullError()
            participant = RoomParticipant(
                id=new_id(),
                room_id=room_id,
                display_name=display_name,
                joined_at=utcnow(),
                user_id=user_id,
                is_host=room.created_by == user_id or not current,
            )
            self._t.room_participants.append(participant)
            return RoomJoin(deepcopy(participant), already_joined=False, total_participants=len(current) + 1)

    async def close(self, room_id: str, closed_at: datetime) -> Room | None:
        with self._t.lock:
            room = self._t.rooms.get(room_id)
            if room is None:
                return None
            room.status = RoomStatus.CLOSED
            room.closed_at = closed_at
            for participant in self._active(room_id):
                participant.left_at = closed_at
            return deepcopy(room)


class InMemoryWaitlistStore:
    """Insertion-ordered waitlist; position is the 1-based index."""

    def __init__(self, tables: _Tables):
        self._t = tables

    def _find(self, email: str) -> tuple[WaitlistEntry, int] | None:
        for index, entry in enumerate(self._t.waitlist):
            if entry.email == email:
                return deepcopy(entry), index + 1
        return None

    async def add(self, email: str, source: str | None) -> tuple[WaitlistEntry, int, bool]:
        with self._t.lock:
            found = self._find(email)
            if found is not None:
                return found[0], found[1], False
            entry = WaitlistEntry(id=new_id(), email=email, source=source, created_at=utcnow())
            self._t.waitlist.append(entry)
            return deepcopy(entry), len(self._t.waitlist), True

    async def get(self, email: str) -> tuple[WaitlistEntry, int] | None:
        with self._t.lock:
            return self._find(email)

    async def count(self) -> int:
        with self._t.lock:
            return len(self._t.waitlist)


@StorageFactory.register("in_memory")
class InMemoryStorage:
    """Every store over one shared set of in-process tables."""

    def __init__(self, config: StorageConfig | None = None):
        self._tables = _Tables()
        self.users = InMemoryUserStore(self._tables)
        self.sessions = InMemorySessionStore(self._tables)
        self.debates = InMemoryDebateStore(self._tables)
        self.rooms = InMemoryRoomStore(self._tables)
        self.waitlist = InMemoryWaitlistStore(self._tables)
        logger.debug("in_memory_storage_initialized")

    async def startup(self) -> None:
        return None

    async def shutdown(self) -> None:
        return None
