"""Core infrastructure module - config, DI container, protocols, exceptions."""

from discourse_api.core.config import AIConfig, AppConfig, AuthConfig, JWTConfig, StorageConfig
from discourse_api.core.exceptions import (
    AppError,
    AuthenticationError,
    ConfigurationError,
    ConflictError,
    NotFoundError,
)

__all__ = [
    "AppConfig",
    "AIConfig",
    "AuthConfig",
    "JWTConfig",
    "StorageConfig",
    "AppError",
    "AuthenticationError",
    "ConfigurationError",
    "ConflictError",
    "NotFoundError",
]
