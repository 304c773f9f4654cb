"""HTTP client for the external AI debate backend."""

from typing import Any

import httpx

from discourse_api.core.config import AIConfig
from discourse_api.core.exceptions import AIServiceError
from discourse_api.core.logging import get_logger

logger = get_logger(__name__)

RESPOND_PATH = "/debate/cortifyWithAi"
SCORE_PATH = "/debate/scoreRound"


class DebateAIClient:
    """Client for the AI opponent and round scoring endpoints."""

    def __init__(self, base_url: str, timeout: float = 30.0):
        """Initialize client.

        Args:
            base_url: AI backend root URL
            timeout: Per-request timeout in seconds
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._client: httpx.AsyncClient | None = None

    @classmethod
    def from_config(cls, config: AIConfig) -> "DebateAIClient":
        return cls(base_url=config.backend_url, timeout=config.timeout_seconds)

    @property
    def client(self) -> httpx.AsyncClient:
        """Get async HTTP client (lazy initialization)."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                headers={"Content-Type": "application/json"},
                timeout=self.timeout,
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def _post(self, path: str, body: dict[str, Any], label: str) -> dict[str, Any]:
        try:
            response = await self.client.post(path, json=body)
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPStatusError as e:
            logger.error("ai_backend_error", endpoint=path, status_code=e.response.status_code)
            raise AIServiceError(
                f"{label} API error: {e.response.status_code} - {e.response.text}",
                endpoint=path,
            ) from e
        except httpx.RequestError as e:
            logger.error("ai_backend_unreachable", endpoint=path, error=str(e))
            raise AIServiceError(f"Request to AI backend failed: {e}", endpoint=path) from e
        except ValueError as e:
            raise AIServiceError(f"Invalid response from AI backend: {e}", endpoint=path) from e
        if not isinstance(data, dict):
            raise AIServiceError("Invalid response from AI backend: expected a JSON object", endpoint=path)
        return data

    async def respond(
        self,
        session_id: str,
        round: int,
        topic: str,
        ai_side: str,
        human_statement: str,
        history: list[dict[str, Any]],
    ) -> dict[str, Any]:
        """Send the human statement and get the AI rebuttal plus moderation.

        Returns:
            Backend payload with ``aiStatement`` and ``moderator``

        Raises:
            AIServiceError: Backend unreachable, non-2xx, or malformed reply
        """
        return await self._post(
            RESPOND_PATH,
            {
                "sessionId": session_id,
                "round": round,
                "topic": topic,
                "aiSide": ai_side,
                "humanStatement": human_statement,
                "history": history,
            },
            label="AI",
        )

    async def score_round(
        self,
        session_id: str,
        round: int,
        topic: str,
        history: list[dict[str, Any]],
    ) -> dict[str, Any]:
        """Ask the backend to judge one round.

        Raises:
            AIServiceError: Backend unreachable, non-2xx, or malformed reply
        """
        return await self._post(
            SCORE_PATH,
            {"sessionId": session_id, "round": round, "topic": topic, "history": history},
            label="Score",
        )
