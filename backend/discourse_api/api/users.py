"""User profile routes."""

from dependency_injector.wiring import Provide, inject
from fastapi import APIRouter, Depends

from discourse_api.api.schemas import UpdateProfileRequest, success_response
from discourse_api.auth.dependencies import CurrentAuth
from discourse_api.auth.schemas import PublicProfile, SafeUser
from discourse_api.core.di_container import DIContainer
from discourse_api.core.exceptions import NotFoundError
from discourse_api.core.logging import get_logger
from discourse_api.core.protocols import Storage

logger = get_logger(__name__)

router = APIRouter()


@router.patch("/me")
@inject
async def update_me(
    request: UpdateProfileRequest,
    auth: CurrentAuth,
    storage: Storage = Depends(Provide[DIContainer.storage]),  # noqa: B008
) -> dict:
    """Update your own profile. Only fields present in the body change."""
    fields = request.model_dump(exclude_unset=True, exclude_none=True)
    user = await storage.users.update_profile(auth.user_id, fields)
    if user is None:
        raise NotFoundError("User not found", resource="user")
    logger.info("profile_updated", user_id=user.id, fields=sorted(fields))
    return success_response(SafeUser.from_entity(user), "Profile updated successfully")


@router.get("/{user_id}")
@inject
async def get_user(
    user_id: str,
    storage: Storage = Depends(Provide[DIContainer.storage]),  # noqa: B008
) -> dict:
    """Public profile (no email)."""
    user = await storage.users.find_by_id(user_id)
    if user is None:
        raise NotFoundError("User not found", resource="user")
    return success_response(PublicProfile.from_entity(user))


@router.get("/{user_id}/stats")
@inject
async def get_user_stats(
    user_id: str,
    storage: Storage = Depends(Provide[DIContainer.storage]),  # noqa: B008
) -> dict:
    """Debate record of a user."""
    user = await storage.users.find_by_id(user_id)
    if user is None:
        raise NotFoundError("User not found", resource="user")
    return success_response(user.debate_stats)
