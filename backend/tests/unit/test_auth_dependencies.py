"""Tests for the request authentication dependencies."""

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from discourse_api.api.errors import register_exception_handlers
from discourse_api.auth.dependencies import FAILURE_MESSAGES, CurrentAuth, OptionalAuth, extract_bearer
from discourse_api.auth.schemas import AuthContext, AuthFailure, AuthResult
from discourse_api.core.di_container import container as di_container
from discourse_api.core.entities import User, utcnow

MISSING = FAILURE_MESSAGES[AuthFailure.MISSING]
INVALID = FAILURE_MESSAGES[AuthFailure.INVALID]
STALE = FAILURE_MESSAGES[AuthFailure.STALE]


class FakeBackend:
    """Resolves a fixed set of tokens and records what it was asked."""

    name = "fake"

    def __init__(self):
        now = utcnow()
        self.user = User(
            id="user-1", email="a@x.com", username="alice", password_hash="x", created_at=now, updated_at=now
        )
        self.seen: list[str] = []

    async def issue(self, user: User) -> str:
        return "good"

    async def resolve(self, token: str) -> AuthResult:
        self.seen.append(token)
        if token == "good":
            return AuthResult.success(AuthContext(user=self.user, token=token))
        if token == "expired":
            return AuthResult.fail(AuthFailure.EXPIRED)
        if token == "stale":
            return AuthResult.fail(AuthFailure.STALE)
        return AuthResult.fail(AuthFailure.INVALID)

    async def revoke(self, token: str) -> None:
        return None


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def calls() -> dict[str, int]:
    return {"private": 0, "public": 0}


@pytest.fixture
def auth_client(backend, calls):
    """Minimal app with one required-auth and one optional-auth route."""
    app = FastAPI()
    register_exception_handlers(app)

    @app.get("/private")
    async def private(auth: CurrentAuth):
        calls["private"] += 1
        return {"userId": auth.user_id}

    @app.get("/public")
    async def public(auth: OptionalAuth):
        calls["public"] += 1
        return {"userId": auth.user_id if auth else None}

    with di_container.token_backend.override(backend):
        di_container.wire(modules=["discourse_api.auth.dependencies"])
        try:
            with TestClient(app) as client:
                yield client
        finally:
            di_container.unwire()


class TestExtractBearer:
    """Test cases for Authorization header parsing."""

    @pytest.mark.parametrize(
        ("header", "expected"),
        [
            ("Bearer abc", "abc"),
            ("Bearer   abc  ", "abc"),
            ("Bearer tok_x.y", "tok_x.y"),
            (None, None),
            ("", None),
            ("Bearer", None),
            ("Bearer ", None),
            ("Basic dXNlcjpwYXNz", None),
            ("bearer abc", None),
            ("Token abc", None),
        ],
    )
    def test_extract(self, header, expected):
        assert extract_bearer(header) == expected


class TestRequireAuth:
    """Required auth rejects before the handler runs."""

    def test_valid_token_reaches_handler(self, auth_client, calls):
        response = auth_client.get("/private", headers={"Authorization": "Bearer good"})

        assert response.status_code == 200
        assert response.json() == {"userId": "user-1"}
        assert calls["private"] == 1

    @pytest.mark.parametrize("headers", [{}, {"Authorization": "Basic abc"}, {"Authorization": "Bearer "}])
    def test_missing_token(self, auth_client, backend, calls, headers):
        response = auth_client.get("/private", headers=headers)

        assert response.status_code == 401
        assert response.json() == {"success": False, "error": MISSING}
        assert response.headers["WWW-Authenticate"] == "Bearer"
        assert calls["private"] == 0
        # The backend is never consulted without a bearer token
        assert backend.seen == []

    @pytest.mark.parametrize("token", ["garbage", "expired"])
    def test_invalid_or_expired_token(self, auth_client, calls, token):
        response = auth_client.get("/private", headers={"Authorization": f"Bearer {token}"})

        assert response.status_code == 401
        assert response.json()["error"] == INVALID
        assert calls["private"] == 0

    def test_stale_token(self, auth_client, calls):
        response = auth_client.get("/private", headers={"Authorization": "Bearer stale"})

        assert response.status_code == 401
        assert response.json()["error"] == STALE
        assert calls["private"] == 0


class TestOptionalAuth:
    """Optional auth never blocks the request."""

    @pytest.mark.parametrize(
        "headers",
        [
            {},
            {"Authorization": "Basic abc"},
            {"Authorization": "Bearer garbage"},
            {"Authorization": "Bearer expired"},
            {"Authorization": "Bearer stale"},
        ],
    )
    def test_anonymous_on_any_failure(self, auth_client, calls, headers):
        response = auth_client.get("/public", headers=headers)

        assert response.status_code == 200
        assert response.json() == {"userId": None}
        assert calls["public"] == 1

    def test_identity_attached_for_valid_token(self, auth_client):
        response = auth_client.get("/public", headers={"Authorization": "Bearer good"})

        assert response.json() == {"userId": "user-1"}
