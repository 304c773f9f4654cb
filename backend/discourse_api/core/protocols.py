"""Protocol interfaces for dependency injection."""

from datetime import datetime
from typing import Any, Protocol, runtime_checkable

from discourse_api.core.entities import (
    Debate,
    DebateMessage,
    DebateParticipant,
    Room,
    RoomJoin,
    RoomParticipant,
    Session,
    User,
    WaitlistEntry,
)


@runtime_checkable
class UserStore(Protocol):
    """Credential store.

    Email and username uniqueness is enforced here, atomically with the
    write, so concurrent signups cannot both succeed.
    """

    async def find_by_email(self, email: str) -> User | None:
        """Get a user by (lowercase) email."""
        ...

    async def find_by_username(self, username: str) -> User | None:
        """Get a user by (lowercase) username."""
        ...

    async def find_by_id(self, user_id: str) -> User | None:
        """Get a user by id."""
        ...

    async def insert(self, email: str, username: str, password_hash: str) -> User:
        """Create a user.

        Raises:
            DuplicateEmailError: email already registered
            DuplicateUsernameError: username already taken
        """
        ...

    async def update_profile(self, user_id: str, fields: dict[str, Any]) -> User | None:
        """Apply a partial profile update.

        Args:
            user_id: User identifier
            fields: Any of ``username``, ``bio``, ``avatar_url``, ``preferences``

        Returns:
            Updated user, or None if the user does not exist

        Raises:
            DuplicateUsernameError: new username belongs to another user
        """
        ...

    async def delete(self, user_id: str) -> bool:
        """Delete a user and, by cascade, their sessions."""
        ...


@runtime_checkable
class SessionStore(Protocol):
    """Opaque session token storage."""

    async def create(self, user_id: str, token: str, expires_at: datetime) -> Session:
        ...

    async def get_by_token(self, token: str) -> Session | None:
        ...

    async def delete_by_token(self, token: str) -> bool:
        """Delete a session. Deleting a missing token is a no-op returning False."""
        ...

    async def delete_expired(self, now: datetime) -> int:
        """Purge every session with ``expires_at <= now``."""
        ...


@runtime_checkable
class DebateStore(Protocol):
    """Debates with their participants and messages."""

    async def create(self, debate: Debate, participants: list[DebateParticipant]) -> Debate:
        ...

    async def get(self, debate_id: str) -> Debate | None:
        ...

    async def list_by_creator(self, user_id: str) -> list[Debate]:
        """Debates created by a user, newest first."""
        ...

    async def save(self, debate: Debate) -> Debate:
        """Persist mutable debate fields (status, round, timestamps, scores)."""
        ...

    async def delete(self, debate_id: str) -> bool:
        """Delete a debate with its participants and messages."""
        ...

    async def list_participants(self, debate_id: str) -> list[DebateParticipant]:
        ...

    async def add_message(self, message: DebateMessage) -> DebateMessage:
        ...

    async def list_messages(self, debate_id: str) -> list[DebateMessage]:
        """Messages in creation order."""
        ...


@runtime_checkable
class RoomStore(Protocol):
    """P2P room bookkeeping."""

    async def create(self, room: Room) -> Room:
        """Create a room.

        Raises:
            ConflictError: invite code already in use
        """
        ...

    async def get(self, room_id: str) -> Room | None:
        ...

    async def get_active_by_invite_code(self, invite_code: str) -> Room | None:
        ...

    async def get_by_debate(self, debate_id: str) -> Room | None:
        ...

    async def list_active(self) -> list[Room]:
        ...

    async def active_participants(self, room_id: str) -> list[RoomParticipant]:
        """Participants that have not left."""
        ...

    async def join(self, room_id: str, display_name: str, user_id: str | None) -> RoomJoin | None:
        """Add a participant, checking capacity in the same critical section.

        Returns:
            The join outcome, or None if the room is missing or closed

        Raises:
            RoomFullError: no spots left
        """
        ...

    async def close(self, room_id: str, closed_at: datetime) -> Room | None:
        """Close a room and mark every active participant as left."""
        ...


@runtime_checkable
class WaitlistStore(Protocol):
    """Pre-launch waitlist."""

    async def add(self, email: str, source: str | None) -> tuple[WaitlistEntry, int, bool]:
        """Add an email (idempotent).

        Returns:
            (entry, 1-based position, created)
        """
        ...

    async def get(self, email: str) -> tuple[WaitlistEntry, int] | None:
        ...

    async def count(self) -> int:
        ...


@runtime_checkable
class Storage(Protocol):
    """A persistence backend exposing every store over one shared state."""

    users: UserStore
    sessions: SessionStore
    debates: DebateStore
    rooms: RoomStore
    waitlist: WaitlistStore

    async def startup(self) -> None:
        """Prepare connections / schema."""
        ...

    async def shutdown(self) -> None:
        """Release connections."""
        ...
