"""Debate management routes."""

from typing import Any

from dependency_injector.wiring import Provide, inject
from fastapi import APIRouter, Depends, status

from discourse_api.ai.client import DebateAIClient
from discourse_api.api.rooms import open_room
from discourse_api.api.schemas import (
    AIStatementRequest,
    CreateDebateRequest,
    DebateView,
    MessageView,
    ParticipantView,
    RoomLink,
    ScoreRoundRequest,
    SendMessageRequest,
    success_response,
)
from discourse_api.auth.dependencies import CurrentAuth, OptionalAuth
from discourse_api.core.di_container import DIContainer
from discourse_api.core.entities import (
    Debate,
    DebateFormat,
    DebateMessage,
    DebateParticipant,
    DebateStatus,
    ParticipantRole,
    default_debate_settings,
    new_id,
    utcnow,
)
from discourse_api.core.exceptions import AIServiceError, BadRequestError, ForbiddenError, NotFoundError
from discourse_api.core.logging import get_logger
from discourse_api.core.protocols import Storage

logger = get_logger(__name__)

router = APIRouter()

CLOSED_STATUSES = {DebateStatus.COMPLETED, DebateStatus.CANCELLED}

EMPTY_MODERATION: dict[str, Any] = {
    "toxicCount": 0,
    "isDisqualified": False,
    "argumentScore": 0,
    "factScore": 0,
    "fallacyScore": 0,
    "finalScore": 0,
    "feedback": [],
}


def _message_metadata(content: str, **extra: Any) -> dict[str, Any]:
    metadata: dict[str, Any] = {
        "wordCount": len(content.split()),
        "duration": 0,
        "sentiment": 0,
        "keyPoints": [],
    }
    metadata.update({k: v for k, v in extra.items() if v is not None})
    return metadata


def _history(messages: list[DebateMessage]) -> list[dict[str, Any]]:
    """Transcript in the shape the AI backend expects."""
    return [
        {
            "round": m.round,
            "speaker": m.metadata.get("speaker", "human"),
            "statement": m.content,
            "moderator": m.metadata.get("moderator") or dict(EMPTY_MODERATION),
        }
        for m in messages
    ]


async def _get_debate(storage: Storage, debate_id: str) -> Debate:
    debate = await storage.debates.get(debate_id)
    if debate is None:
        raise NotFoundError("Debate not found", resource="debate")
    return debate


def _start_if_waiting(debate: Debate) -> None:
    if debate.status == DebateStatus.WAITING:
        debate.status = DebateStatus.IN_PROGRESS
        debate.started_at = utcnow()


@router.post("", status_code=status.HTTP_201_CREATED)
@inject
async def create_debate(
    request: CreateDebateRequest,
    auth: CurrentAuth,
    storage: Storage = Depends(Provide[DIContainer.storage]),  # noqa: B008
) -> dict:
    """Create a debate with the caller as proposer.

    AI debates get an AI opposer. Other formats can open a room right away.
    """
    settings = default_debate_settings()
    if request.settings is not None:
        settings.update(request.settings.model_dump(by_alias=True, exclude_none=True))

    now = utcnow()
    debate = Debate(
        id=new_id(),
        topic=request.topic,
        description=request.description,
        format=request.format,
        created_by=auth.user_id,
        created_at=now,
        settings=settings,
    )
    participant = DebateParticipant(
        id=new_id(),
        debate_id=debate.id,
        role=ParticipantRole.PROPOSER,
        joined_at=now,
        user_id=auth.user_id,
    )
    participants = [participant]
    if request.format == DebateFormat.ONE_V_ONE_AI:
        participants.append(
            DebateParticipant(
                id=new_id(),
                debate_id=debate.id,
                role=ParticipantRole.OPPOSER,
                joined_at=now,
                is_ai=True,
                ai_config={
                    "model": settings["aiModel"],
                    "personality": settings.get("aiPersonality") or "balanced",
                    "stance": "against",
                },
            )
        )
    await storage.debates.create(debate, participants)
    logger.info("debate_created", debate_id=debate.id, format=debate.format, user_id=auth.user_id)

    room = None
    if request.create_room and request.format != DebateFormat.ONE_V_ONE_AI:
        created = await open_room(storage, auth.user_id, debate_id=debate.id)
        room = RoomLink(room_id=created.id, invite_code=created.invite_code)

    return success_response(
        {
            "debate": DebateView.from_entity(debate),
            "participant": ParticipantView.from_entity(participant),
            "room": room,
        },
        "Debate created successfully",
    )


@router.get("")
@inject
async def list_debates(
    auth: CurrentAuth,
    storage: Storage = Depends(Provide[DIContainer.storage]),  # noqa: B008
) -> dict:
    """Debates created by the caller, newest first."""
    debates = await storage.debates.list_by_creator(auth.user_id)
    return success_response(
        {"debates": [DebateView.from_entity(d) for d in debates], "total": len(debates)}
    )


@router.get("/{debate_id}")
@inject
async def get_debate(
    debate_id: str,
    auth: OptionalAuth,
    storage: Storage = Depends(Provide[DIContainer.storage]),  # noqa: B008
) -> dict:
    """Debate with its participants, transcript and room."""
    debate = await _get_debate(storage, debate_id)
    participants = await storage.debates.list_participants(debate_id)
    messages = await storage.debates.list_messages(debate_id)
    room = await storage.rooms.get_by_debate(debate_id)

    data = DebateView.from_entity(debate).model_dump(by_alias=True)
    data["participants"] = [ParticipantView.from_entity(p) for p in participants]
    data["messages"] = [MessageView.from_entity(m) for m in messages]
    data["room"] = RoomLink(room_id=room.id, invite_code=room.invite_code) if room else None
    return success_response(data)


@router.post("/{debate_id}/ai-respond")
@inject
async def ai_respond(
    debate_id: str,
    request: AIStatementRequest,
    auth: CurrentAuth,
    storage: Storage = Depends(Provide[DIContainer.storage]),  # noqa: B008
    ai_client: DebateAIClient = Depends(Provide[DIContainer.ai_client]),  # noqa: B008
) -> dict:
    """Record the human statement and the AI opponent's reply for a round."""
    debate = await _get_debate(storage, debate_id)
    if debate.format != DebateFormat.ONE_V_ONE_AI:
        raise BadRequestError("This endpoint is only for AI debates")

    participants = await storage.debates.list_participants(debate_id)
    human = next((p for p in participants if p.user_id == auth.user_id and not p.is_ai), None)
    if human is None:
        raise ForbiddenError("You are not a participant")
    ai = next((p for p in participants if p.is_ai), None)

    history = _history(await storage.debates.list_messages(debate_id))
    try:
        reply = await ai_client.respond(
            session_id=debate_id,
            round=request.round,
            topic=debate.topic,
            ai_side=debate.settings.get("aiSide") or "against",
            human_statement=request.human_statement,
            history=history,
        )
        ai_statement = reply.get("aiStatement")
        if not isinstance(ai_statement, str):
            raise AIServiceError("Response is missing aiStatement", endpoint="cortifyWithAi")
        moderator = reply.get("moderator")
        if moderator is None:
            moderator = {}
        elif not isinstance(moderator, dict):
            raise AIServiceError("Response has malformed moderator", endpoint="cortifyWithAi")
    except AIServiceError as e:
        logger.error("ai_debate_failed", debate_id=debate_id, error=e.message)
        raise AIServiceError(f"AI service error: {e.message}", endpoint=e.endpoint) from e

    human_message = DebateMessage(
        id=new_id(),
        debate_id=debate_id,
        participant_id=human.id,
        round=request.round,
        content=request.human_statement,
        created_at=utcnow(),
        metadata=_message_metadata(request.human_statement, speaker="human", moderator=moderator.get("human")),
    )
    ai_message = DebateMessage(
        id=new_id(),
        debate_id=debate_id,
        participant_id=ai.id if ai else human.id,
        round=request.round,
        content=ai_statement,
        created_at=utcnow(),
        metadata=_message_metadata(ai_statement, speaker="ai", moderator=moderator.get("ai")),
    )
    await storage.debates.add_message(human_message)
    await storage.debates.add_message(ai_message)

    _start_if_waiting(debate)
    debate.current_round = request.round
    await storage.debates.save(debate)

    return success_response(
        {
            "humanMessage": MessageView.from_entity(human_message),
            "aiMessage": MessageView.from_entity(ai_message),
            "aiStatement": ai_statement,
            "moderator": reply.get("moderator"),
            "round": request.round,
        }
    )


@router.post("/{debate_id}/score-round")
@inject
async def score_round(
    debate_id: str,
    request: ScoreRoundRequest,
    auth: CurrentAuth,
    storage: Storage = Depends(Provide[DIContainer.storage]),  # noqa: B008
    ai_client: DebateAIClient = Depends(Provide[DIContainer.ai_client]),  # noqa: B008
) -> dict:
    """Have the AI backend judge a round. Creator only."""
    debate = await _get_debate(storage, debate_id)
    if debate.created_by != auth.user_id:
        raise ForbiddenError("Only debate creator can score rounds")

    history = _history(await storage.debates.list_messages(debate_id))
    try:
        result = await ai_client.score_round(
            session_id=debate_id,
            round=request.round,
            topic=debate.topic,
            history=history,
        )
    except AIServiceError as e:
        logger.error("score_round_failed", debate_id=debate_id, error=e.message)
        raise AIServiceError(f"Scoring service error: {e.message}", endpoint=e.endpoint) from e

    return success_response(
        {
            "round": request.round,
            "roundWinner": result.get("round_winner"),
            "humanTotal": result.get("human_total"),
            "aiTotal": result.get("ai_total"),
            "margin": result.get("margin"),
            "confidence": result.get("confidence"),
            "keyInsights": result.get("key_insights"),
        }
    )


@router.post("/{debate_id}/messages")
@inject
async def send_message(
    debate_id: str,
    request: SendMessageRequest,
    auth: CurrentAuth,
    storage: Storage = Depends(Provide[DIContainer.storage]),  # noqa: B008
) -> dict:
    """Post a statement in a human debate. The first message starts the debate."""
    debate = await _get_debate(storage, debate_id)
    participants = await storage.debates.list_participants(debate_id)
    participant = next((p for p in participants if p.user_id == auth.user_id), None)
    if participant is None:
        raise ForbiddenError("You are not a participant")
    if debate.status in CLOSED_STATUSES:
        raise BadRequestError("Debate is not active")

    message = DebateMessage(
        id=new_id(),
        debate_id=debate_id,
        participant_id=participant.id,
        round=debate.current_round,
        content=request.content,
        created_at=utcnow(),
        audio_url=request.audio_url,
        transcription=request.transcription,
        metadata=_message_metadata(request.content),
    )
    await storage.debates.add_message(message)

    if debate.status == DebateStatus.WAITING:
        _start_if_waiting(debate)
        await storage.debates.save(debate)

    return success_response({"message": MessageView.from_entity(message)}, "Message sent")


@router.post("/{debate_id}/end")
@inject
async def end_debate(
    debate_id: str,
    auth: CurrentAuth,
    storage: Storage = Depends(Provide[DIContainer.storage]),  # noqa: B008
) -> dict:
    """Mark the debate completed and close its room. Creator only."""
    debate = await _get_debate(storage, debate_id)
    if debate.created_by != auth.user_id:
        raise ForbiddenError("Only creator can end debate")

    now = utcnow()
    debate.status = DebateStatus.COMPLETED
    debate.ended_at = now
    await storage.debates.save(debate)

    room = await storage.rooms.get_by_debate(debate_id)
    if room is not None:
        await storage.rooms.close(room.id, now)

    logger.info("debate_ended", debate_id=debate_id)
    return success_response({"debate": DebateView.from_entity(debate)}, "Debate ended")


@router.delete("/{debate_id}")
@inject
async def delete_debate(
    debate_id: str,
    auth: CurrentAuth,
    storage: Storage = Depends(Provide[DIContainer.storage]),  # noqa: B008
) -> dict:
    """Delete the debate with its participants and messages. Creator only."""
    debate = await _get_debate(storage, debate_id)
    if debate.created_by != auth.user_id:
        raise ForbiddenError("Only creator can delete")

    await storage.debates.delete(debate_id)
    logger.info("debate_deleted", debate_id=debate_id)
    return success_response(None, "Debate deleted")
