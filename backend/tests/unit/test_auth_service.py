"""Tests for AuthService."""

import asyncio
import threading

import pytest

from discourse_api.auth.backends import JWTBackend, SessionBackend
from discourse_api.auth.passwords import PasswordService
from discourse_api.auth.service import INVALID_CREDENTIALS, AuthService
from discourse_api.core.config import AppConfig, AuthConfig, JWTConfig
from discourse_api.core.exceptions import AuthenticationError, DuplicateEmailError, DuplicateUsernameError


@pytest.fixture(scope="module")
def passwords() -> PasswordService:
    return PasswordService()


@pytest.fixture(params=["jwt", "session"])
def service(request, storage, clock, passwords) -> AuthService:
    config = AppConfig(
        jwt=JWTConfig(secret="service-test-secret", expires_in="7d"),
        auth=AuthConfig(strategy=request.param),
    )
    backend_cls = JWTBackend if request.param == "jwt" else SessionBackend
    backend = backend_cls(config, storage.users, storage.sessions, clock=clock)
    return AuthService(users=storage.users, passwords=passwords, backend=backend)


class TestSignup:
    """Test cases for account creation."""

    @pytest.mark.asyncio
    async def test_signup_issues_resolvable_token(self, service):
        issued = await service.signup("a@x.com", "alice", "password123")

        result = await service.backend.resolve(issued.token)

        assert result.ok
        assert result.context.user_id == issued.user.id

    @pytest.mark.asyncio
    async def test_password_is_stored_hashed(self, service, storage):
        issued = await service.signup("a@x.com", "alice", "password123")

        stored = await storage.users.find_by_id(issued.user.id)
        assert stored.password_hash != "password123"
        assert stored.password_hash.startswith("$argon2id$")

    @pytest.mark.asyncio
    async def test_duplicate_email(self, service):
        await service.signup("a@x.com", "alice", "password123")

        with pytest.raises(DuplicateEmailError):
            await service.signup("a@x.com", "alice2", "password123")

    @pytest.mark.asyncio
    async def test_duplicate_username(self, service):
        await service.signup("a@x.com", "alice", "password123")

        with pytest.raises(DuplicateUsernameError):
            await service.signup("b@x.com", "alice", "password123")

    @pytest.mark.asyncio
    async def test_concurrent_signups_same_email(self, service, storage):
        """Exactly one of two simultaneous signups for one email succeeds."""
        results = await asyncio.gather(
            service.signup("race@x.com", "racer1", "password123"),
            service.signup("race@x.com", "racer2", "password123"),
            return_exceptions=True,
        )

        errors = [r for r in results if isinstance(r, Exception)]
        assert len(errors) == 1
        assert isinstance(errors[0], DuplicateEmailError)
        assert await storage.users.find_by_email("race@x.com") is not None


class TestLogin:
    """Test cases for credential exchange."""

    @pytest.mark.asyncio
    async def test_login_returns_new_token(self, service):
        await service.signup("a@x.com", "alice", "password123")

        issued = await service.login("a@x.com", "password123")

        assert issued.user.username == "alice"
        assert (await service.backend.resolve(issued.token)).ok

    @pytest.mark.asyncio
    async def test_wrong_password(self, service):
        await service.signup("a@x.com", "alice", "password123")

        with pytest.raises(AuthenticationError) as exc_info:
            await service.login("a@x.com", "wrong-password")

        assert exc_info.value.message == INVALID_CREDENTIALS
        assert exc_info.value.status_code == 401

    @pytest.mark.asyncio
    async def test_unknown_email_has_same_message(self, service):
        with pytest.raises(AuthenticationError) as exc_info:
            await service.login("nobody@x.com", "password123")

        assert exc_info.value.message == INVALID_CREDENTIALS


class TestLogout:
    @pytest.mark.asyncio
    async def test_logout_matches_backend_semantics(self, service):
        issued = await service.signup("a@x.com", "alice", "password123")

        await service.logout(issued.token)

        still_valid = (await service.backend.resolve(issued.token)).ok
        # Signed tokens cannot be revoked, sessions can
        assert still_valid is (service.backend.name == "jwt")


class _ThreadRecordingPasswords(PasswordService):
    """Remembers which thread each hashing call ran on."""

    def __init__(self):
        super().__init__()
        self.threads: list[int] = []

    def hash(self, password: str) -> str:
        self.threads.append(threading.get_ident())
        return super().hash(password)

    def verify(self, password: str, password_hash: str) -> bool:
        self.threads.append(threading.get_ident())
        return super().verify(password, password_hash)


class TestHashingOffEventLoop:
    @pytest.mark.asyncio
    async def test_argon2_runs_in_worker_threads(self, storage, clock):
        config = AppConfig(jwt=JWTConfig(secret="service-test-secret", expires_in="7d"))
        passwords = _ThreadRecordingPasswords()
        backend = JWTBackend(config, storage.users, storage.sessions, clock=clock)
        service = AuthService(users=storage.users, passwords=passwords, backend=backend)

        await service.signup("a@x.com", "alice", "password123")
        await service.login("a@x.com", "password123")
        with pytest.raises(AuthenticationError):
            await service.login("nobody@x.com", "password123")

        assert len(passwords.threads) == 3
        assert threading.get_ident() not in passwords.threads
