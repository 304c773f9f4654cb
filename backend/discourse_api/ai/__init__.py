"""External AI debate backend integration."""

from discourse_api.ai.client import DebateAIClient

__all__ = ["DebateAIClient"]
