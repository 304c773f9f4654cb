"""P2P room bookkeeping routes.

Signaling itself happens elsewhere; these endpoints only track rooms,
invite codes and who is in them.
"""

from dependency_injector.wiring import Provide, inject
from fastapi import APIRouter, Depends, status

from discourse_api.api.schemas import (
    CreateRoomRequest,
    JoinRoomRequest,
    RoomDetail,
    RoomListItem,
    success_response,
)
from discourse_api.auth.dependencies import CurrentAuth, OptionalAuth
from discourse_api.core.di_container import DIContainer
from discourse_api.core.entities import Room, RoomStatus, generate_invite_code, new_id, utcnow
from discourse_api.core.exceptions import ConflictError, ForbiddenError, NotFoundError, RoomFullError
from discourse_api.core.logging import get_logger
from discourse_api.core.protocols import Storage

logger = get_logger(__name__)

router = APIRouter()

INVITE_CODE_ATTEMPTS = 5


async def open_room(
    storage: Storage,
    created_by: str,
    debate_id: str | None = None,
    max_participants: int = 2,
) -> Room:
    """Create a room under a fresh invite code, retrying on code collisions."""
    for attempt in range(1, INVITE_CODE_ATTEMPTS + 1):
        room = Room(
            id=new_id(),
            invite_code=generate_invite_code(),
            created_by=created_by,
            created_at=utcnow(),
            debate_id=debate_id,
            max_participants=max_participants,
        )
        try:
            created = await storage.rooms.create(room)
        except ConflictError:
            logger.warning("invite_code_collision", attempt=attempt)
            continue
        logger.info("room_created", room_id=created.id, debate_id=debate_id, created_by=created_by)
        return created
    raise ConflictError("Could not allocate an invite code", field="invite_code")


@router.post("", status_code=status.HTTP_201_CREATED)
@inject
async def create_room(
    request: CreateRoomRequest,
    auth: CurrentAuth,
    storage: Storage = Depends(Provide[DIContainer.storage]),  # noqa: B008
) -> dict:
    """Open a room, optionally bound to an existing debate."""
    if request.debate_id and await storage.debates.get(request.debate_id) is None:
        raise NotFoundError("Debate not found", resource="debate")
    room = await open_room(storage, auth.user_id, request.debate_id, request.max_participants)
    return success_response(
        {
            "roomId": room.id,
            "inviteCode": room.invite_code,
            "inviteUrl": f"/join/{room.id}",
            "maxParticipants": room.max_participants,
        },
        "Room created successfully",
    )


@router.get("")
@inject
async def list_rooms(
    auth: OptionalAuth,
    storage: Storage = Depends(Provide[DIContainer.storage]),  # noqa: B008
) -> dict:
    """Active rooms with live participant counts."""
    user_id = auth.user_id if auth else None
    rooms = []
    for room in await storage.rooms.list_active():
        count = len(await storage.rooms.active_participants(room.id))
        rooms.append(
            RoomListItem(
                room_id=room.id,
                invite_code=room.invite_code,
                participants=count,
                max_participants=room.max_participants,
                created_at=room.created_at,
                is_active=count > 0,
                is_owner=user_id is not None and room.created_by == user_id,
            )
        )
    return success_response({"rooms": rooms})


@router.get("/invite/{code}")
@inject
async def get_room_by_invite(
    code: str,
    storage: Storage = Depends(Provide[DIContainer.storage]),  # noqa: B008
) -> dict:
    """Look up an active room by invite code (case-insensitive)."""
    room = await storage.rooms.get_active_by_invite_code(code.upper())
    if room is None:
        raise NotFoundError("Room not found or no longer active", resource="room")

    count = len(await storage.rooms.active_participants(room.id))
    if count >= room.max_participants:
        raise RoomFullError()

    return success_response(
        {
            "roomId": room.id,
            "inviteCode": room.invite_code,
            "participants": count,
            "maxParticipants": room.max_participants,
            "spotsAvailable": room.max_participants - count,
        }
    )


@router.get("/{room_id}")
@inject
async def get_room(
    room_id: str,
    storage: Storage = Depends(Provide[DIContainer.storage]),  # noqa: B008
) -> dict:
    """Room detail with the number of active participants."""
    room = await storage.rooms.get(room_id)
    if room is None:
        raise NotFoundError("Room not found", resource="room")

    count = len(await storage.rooms.active_participants(room.id))
    detail = RoomDetail(
        room_id=room.id,
        invite_code=room.invite_code,
        participants=count,
        max_participants=room.max_participants,
        created_at=room.created_at,
        status=room.status,
        is_active=room.status == RoomStatus.ACTIVE,
    )
    return success_response({"room": detail})


@router.post("/{room_id}/join")
@inject
async def join_room(
    room_id: str,
    request: JoinRoomRequest,
    auth: OptionalAuth,
    storage: Storage = Depends(Provide[DIContainer.storage]),  # noqa: B008
) -> dict:
    """Join a room, anonymously or as the authenticated user.

    The creator (or the first to arrive) becomes host. Joining again as the
    same user returns the existing participant.
    """
    user_id = auth.user_id if auth else None
    joined = await storage.rooms.join(room_id, request.display_name, user_id)
    if joined is None:
        raise NotFoundError("Room not found or no longer active", resource="room")

    participant = joined.participant
    if joined.already_joined:
        return success_response(
            {"participantId": participant.id, "roomId": room_id, "message": "Already in room"}
        )

    room = await storage.rooms.get(room_id)
    logger.info("room_joined", room_id=room_id, participant_id=participant.id, is_host=participant.is_host)
    return success_response(
        {
            "participantId": participant.id,
            "roomId": room_id,
            "inviteCode": room.invite_code if room else None,
            "isHost": participant.is_host,
            "totalParticipants": joined.total_participants,
        },
        "Joined room successfully",
    )


@router.delete("/{room_id}")
@inject
async def close_room(
    room_id: str,
    auth: CurrentAuth,
    storage: Storage = Depends(Provide[DIContainer.storage]),  # noqa: B008
) -> dict:
    """Close a room. Creator only; every active participant is marked as left."""
    room = await storage.rooms.get(room_id)
    if room is None:
        raise NotFoundError("Room not found", resource="room")
    if room.created_by != auth.user_id:
        raise ForbiddenError("Only the room creator can close this room")

    await storage.rooms.close(room_id, utcnow())
    logger.info("room_closed", room_id=room_id)
    return success_response(None, "Room closed")
