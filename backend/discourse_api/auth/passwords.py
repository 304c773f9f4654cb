"""Argon2id password hashing."""

from argon2 import PasswordHasher, Type
from argon2.exceptions import InvalidHash, VerificationError, VerifyMismatchError

from discourse_api.core.logging import get_logger

logger = get_logger(__name__)


class PasswordService:
    """Hash and verify passwords with Argon2id.

    Parameters follow the OWASP minimum (19 MiB memory, 2 iterations,
    1 lane).
    """

    def __init__(self, memory_cost: int = 19456, time_cost: int = 2, parallelism: int = 1):
        self._hasher = PasswordHasher(
            type=Type.ID,
            memory_cost=memory_cost,
            time_cost=time_cost,
            parallelism=parallelism,
        )
        # Verified against when the email is unknown so both login failures cost the same
        self._dummy_hash = self._hasher.hash("discourse-dummy-password")

    def hash(self, password: str) -> str:
        return self._hasher.hash(password)

    def verify(self, password: str, password_hash: str) -> bool:
        """Check a password against a stored hash. Never raises."""
        try:
            return self._hasher.verify(password_hash, password)
        except VerifyMismatchError:
            return False
        except (InvalidHash, VerificationError) as e:
            logger.warning("password_hash_unverifiable", error=str(e))
            return False

    def verify_dummy(self, password: str) -> None:
        """Burn one verification for an unknown account."""
        self.verify(password, self._dummy_hash)
