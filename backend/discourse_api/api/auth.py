"""Authentication routes: signup, login, logout, current user."""

from dependency_injector.wiring import Provide, inject
from fastapi import APIRouter, Depends, status

from discourse_api.api.schemas import LoginRequest, SignupRequest, success_response
from discourse_api.auth.dependencies import CurrentAuth
from discourse_api.auth.schemas import SafeUser
from discourse_api.auth.service import AuthService
from discourse_api.core.di_container import DIContainer

router = APIRouter()


@router.post("/signup", status_code=status.HTTP_201_CREATED)
@inject
async def signup(
    request: SignupRequest,
    auth_service: AuthService = Depends(Provide[DIContainer.auth_service]),  # noqa: B008
) -> dict:
    """Create an account and return it with a fresh token."""
    issued = await auth_service.signup(request.email, request.username, request.password)
    return success_response(
        {"user": SafeUser.from_entity(issued.user), "token": issued.token},
        "Account created successfully",
    )


@router.post("/login")
@inject
async def login(
    request: LoginRequest,
    auth_service: AuthService = Depends(Provide[DIContainer.auth_service]),  # noqa: B008
) -> dict:
    """Exchange email and password for a token."""
    issued = await auth_service.login(request.email, request.password)
    return success_response(
        {"user": SafeUser.from_entity(issued.user), "token": issued.token},
        "Logged in successfully",
    )


@router.post("/logout")
@inject
async def logout(
    auth: CurrentAuth,
    auth_service: AuthService = Depends(Provide[DIContainer.auth_service]),  # noqa: B008
) -> dict:
    """Revoke the presented token (no-op for signed tokens)."""
    await auth_service.logout(auth.token)
    return success_response(None, "Logged out successfully")


@router.get("/me")
async def me(auth: CurrentAuth) -> dict:
    """The authenticated user."""
    return success_response({"user": SafeUser.from_entity(auth.user)})
