"""Waitlist routes for the landing page."""

from dependency_injector.wiring import Provide, inject
from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from discourse_api.api.schemas import JoinWaitlistRequest, success_response
from discourse_api.core.di_container import DIContainer
from discourse_api.core.exceptions import BadRequestError
from discourse_api.core.logging import get_logger
from discourse_api.core.protocols import Storage

logger = get_logger(__name__)

router = APIRouter()


@router.post("")
@inject
async def join_waitlist(
    request: JoinWaitlistRequest,
    storage: Storage = Depends(Provide[DIContainer.storage]),  # noqa: B008
) -> JSONResponse:
    """Add an email. Joining twice is not an error and returns the existing position."""
    entry, position, created = await storage.waitlist.add(request.email, request.source)
    if not created:
        return JSONResponse(status_code=200, content=success_response({"position": position}, "Already on waitlist"))

    logger.info("waitlist_joined", email=entry.email, source=entry.source, position=position)
    return JSONResponse(
        status_code=201,
        content=success_response({"position": position}, "Successfully joined the waitlist!"),
    )


@router.get("/status")
@inject
async def waitlist_status(
    email: str | None = None,
    storage: Storage = Depends(Provide[DIContainer.storage]),  # noqa: B008
) -> dict:
    """Whether an email is on the waitlist, with its position."""
    if not email:
        raise BadRequestError("Email query parameter required")

    found = await storage.waitlist.get(email.strip().lower())
    if found is None:
        return success_response({"onWaitlist": False})

    entry, position = found
    return success_response({"onWaitlist": True, "position": position, "joinedAt": entry.created_at})


@router.get("/count")
@inject
async def waitlist_count(
    storage: Storage = Depends(Provide[DIContainer.storage]),  # noqa: B008
) -> dict:
    """Number of waitlist signups."""
    return success_response({"count": await storage.waitlist.count()})
