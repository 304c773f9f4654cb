"""Common test fixtures."""

from collections.abc import Callable
from datetime import UTC, datetime, timedelta

import pytest
from fastapi.testclient import TestClient

from discourse_api.core.config import AIConfig, AppConfig, AuthConfig, JWTConfig, StorageConfig
from discourse_api.core.di_container import container as di_container
from discourse_api.core.exceptions import AIServiceError
from discourse_api.main import create_app
from discourse_api.storage.in_memory_store import InMemoryStorage

TEST_JWT_SECRET = "test-secret-key-for-discourse-api"


class ManualClock:
    """Clock that only moves when told to."""

    def __init__(self, start: datetime | None = None):
        self.now = start or datetime(2025, 1, 1, 12, 0, 0, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


class MockAIClient:
    """Mock AI debate backend client for testing."""

    def __init__(self):
        self.respond_calls: list[dict] = []
        self.score_calls: list[dict] = []
        self.fail_with: str | None = None

    async def respond(self, **kwargs) -> dict:
        self.respond_calls.append(kwargs)
        if self.fail_with:
            raise AIServiceError(self.fail_with, endpoint="/debate/cortifyWithAi")
        return {
            "aiStatement": "Respectfully, the evidence points the other way.",
            "moderator": {
                "human": {"toxicCount": 0, "isDisqualified": False, "finalScore": 7},
                "ai": {"toxicCount": 0, "isDisqualified": False, "finalScore": 8},
            },
        }

    async def score_round(self, **kwargs) -> dict:
        self.score_calls.append(kwargs)
        if self.fail_with:
            raise AIServiceError(self.fail_with, endpoint="/debate/scoreRound")
        return {
            "round_winner": "ai",
            "human_total": 14.5,
            "ai_total": 16.0,
            "margin": 1.5,
            "confidence": 0.72,
            "key_insights": ["Stronger sourcing from the AI side"],
        }

    async def close(self) -> None:
        return None


@pytest.fixture
def auth_strategy() -> str:
    """Token backend under test. Override in a test class to switch."""
    return "jwt"


@pytest.fixture
def test_config(auth_strategy: str) -> AppConfig:
    """Create test configuration."""
    return AppConfig(
        environment="test",
        debug=True,
        log_level="DEBUG",
        jwt=JWTConfig(secret=TEST_JWT_SECRET, expires_in="1h"),
        auth=AuthConfig(strategy=auth_strategy, session_ttl_days=7),
        storage=StorageConfig(backend="in_memory"),
        ai=AIConfig(backend_url="http://ai.test", timeout_seconds=1.0),
    )


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock()


@pytest.fixture
def storage() -> InMemoryStorage:
    """Fresh in-memory storage per test."""
    return InMemoryStorage()


@pytest.fixture
def mock_ai_client() -> MockAIClient:
    return MockAIClient()


@pytest.fixture
def client(test_config, storage, clock, mock_ai_client):
    """TestClient with config, storage, clock and AI client overridden in the DI container."""
    with (
        di_container.config.override(test_config),
        di_container.storage.override(storage),
        di_container.clock.override(clock),
        di_container.ai_client.override(mock_ai_client),
    ):
        di_container.reset_singletons()
        with TestClient(create_app()) as test_client:
            yield test_client
    di_container.reset_singletons()


@pytest.fixture
def signup(client) -> Callable[..., tuple[dict, str]]:
    """Create an account through the API and return (user, token)."""

    def _signup(
        email: str = "a@x.com",
        username: str = "alice",
        password: str = "password123",
    ) -> tuple[dict, str]:
        response = client.post(
            "/api/auth/signup",
            json={"email": email, "username": username, "password": password},
        )
        assert response.status_code == 201, response.text
        data = response.json()["data"]
        return data["user"], data["token"]

    return _signup


def bearer(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}
