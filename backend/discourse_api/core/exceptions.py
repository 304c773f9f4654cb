"""Custom exception hierarchy."""

from typing import Any


class AppError(Exception):
    """Base application exception."""

    status_code: int = 500

    def __init__(self, message: str, code: str = "INTERNAL_ERROR", status_code: int | None = None):
        self.message = message
        self.code = code
        if status_code is not None:
            self.status_code = status_code
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for API responses."""
        return {
            "success": False,
            "error": self.message,
        }


class BadRequestError(AppError):
    """Request is well-formed but not acceptable in the current state."""

    status_code = 400

    def __init__(self, message: str):
        super().__init__(message, code="BAD_REQUEST")


class RoomFullError(BadRequestError):
    """Room has no spots left."""

    def __init__(self, message: str = "Room is full"):
        super().__init__(message)


class AuthenticationError(AppError):
    """Missing, invalid or expired credentials."""

    status_code = 401

    def __init__(self, message: str, reason: str = "invalid"):
        self.reason = reason
        super().__init__(message, code="UNAUTHORIZED")


class ForbiddenError(AppError):
    """Authenticated caller is not allowed to act on the resource."""

    status_code = 403

    def __init__(self, message: str):
        super().__init__(message, code="FORBIDDEN")


class NotFoundError(AppError):
    """Resource does not exist."""

    status_code = 404

    def __init__(self, message: str, resource: str | None = None):
        self.resource = resource
        super().__init__(message, code="NOT_FOUND")


class ConflictError(AppError):
    """Uniqueness violation."""

    status_code = 409

    def __init__(self, message: str, field: str | None = None):
        self.field = field
        super().__init__(message, code="CONFLICT")


class DuplicateEmailError(ConflictError):
    """An account with this email already exists."""

    def __init__(self, message: str = "An account with this email already exists"):
        super().__init__(message, field="email")


class DuplicateUsernameError(ConflictError):
    """The username is already taken."""

    def __init__(self, message: str = "This username is already taken"):
        super().__init__(message, field="username")


class AIServiceError(AppError):
    """External AI backend communication error."""

    def __init__(self, message: str, endpoint: str):
        self.endpoint = endpoint
        super().__init__(message, code="AI_SERVICE_ERROR")


class ConfigurationError(AppError):
    """Configuration error."""

    def __init__(self, message: str):
        super().__init__(message, code="CONFIG_ERROR")
