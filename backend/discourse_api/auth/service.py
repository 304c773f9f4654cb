"""Signup, login and logout."""

from dataclasses import dataclass

from fastapi.concurrency import run_in_threadpool

from discourse_api.auth.backends import TokenBackend
from discourse_api.auth.passwords import PasswordService
from discourse_api.core.entities import User
from discourse_api.core.exceptions import AuthenticationError
from discourse_api.core.logging import get_logger
from discourse_api.core.protocols import UserStore

logger = get_logger(__name__)

INVALID_CREDENTIALS = "Invalid email or password"


@dataclass(frozen=True)
class IssuedCredential:
    user: User
    token: str


class AuthService:
    """Account creation and credential exchange.

    Token format is entirely up to the injected backend.
    """

    def __init__(self, users: UserStore, passwords: PasswordService, backend: TokenBackend):
        self.users = users
        self.passwords = passwords
        self.backend = backend

    async def signup(self, email: str, username: str, password: str) -> IssuedCredential:
        """Create an account and issue its first token.

        Raises:
            DuplicateEmailError: email already registered
            DuplicateUsernameError: username already taken
        """
        password_hash = await run_in_threadpool(self.passwords.hash, password)
        user = await self.users.insert(email, username, password_hash)
        token = await self.backend.issue(user)
        logger.info("user_signed_up", user_id=user.id, email=user.email, backend=self.backend.name)
        return IssuedCredential(user=user, token=token)

    async def login(self, email: str, password: str) -> IssuedCredential:
        """Exchange email and password for a token.

        Raises:
            AuthenticationError: unknown email or wrong password (same message)
        """
        user = await self.users.find_by_email(email)
        if user is None:
            await run_in_threadpool(self.passwords.verify_dummy, password)
            logger.info("login_failed", email=email)
            raise AuthenticationError(INVALID_CREDENTIALS, reason="credentials")

        if not await run_in_threadpool(self.passwords.verify, password, user.password_hash):
            logger.info("login_failed", user_id=user.id)
            raise AuthenticationError(INVALID_CREDENTIALS, reason="credentials")

        token = await self.backend.issue(user)
        logger.info("user_logged_in", user_id=user.id, backend=self.backend.name)
        return IssuedCredential(user=user, token=token)

    async def logout(self, token: str) -> None:
        await self.backend.revoke(token)
        logger.info("user_logged_out", backend=self.backend.name)
