"""Dependency Injector based DI Container."""

from dependency_injector import containers, providers

from discourse_api.core.config import get_config
from discourse_api.core.entities import utcnow

# --- Factory Functions (defined before class to avoid NameError) ---


def _create_storage(config):
    """Create storage backend."""
    import discourse_api.storage  # noqa: F401  (registers backends)
    from discourse_api.storage.factory import StorageFactory

    return StorageFactory.create(config)


def _create_token_backend(config, storage, clock):
    """Create the token backend selected by AUTH_STRATEGY."""
    from discourse_api.auth.backends import TokenBackendFactory

    return TokenBackendFactory.create(config, users=storage.users, sessions=storage.sessions, clock=clock)


def _create_password_service():
    """Create Argon2id password service."""
    from discourse_api.auth.passwords import PasswordService

    return PasswordService()


def _create_auth_service(storage, passwords, token_backend):
    """Create auth service."""
    from discourse_api.auth.service import AuthService

    return AuthService(users=storage.users, passwords=passwords, backend=token_backend)


def _create_ai_client(config):
    """Create AI backend client."""
    from discourse_api.ai.client import DebateAIClient

    return DebateAIClient.from_config(config)


class DIContainer(containers.DeclarativeContainer):
    """Main dependency injection container."""

    # Configuration provider
    config = providers.Singleton(get_config)

    # Time source for token and session expiry
    clock = providers.Object(utcnow)

    # Persistence
    storage = providers.Singleton(
        _create_storage,
        config=config.provided.storage,
    )

    # Token issuer / validator
    token_backend = providers.Singleton(
        _create_token_backend,
        config=config,
        storage=storage,
        clock=clock,
    )

    # Password hashing
    passwords = providers.Singleton(_create_password_service)

    # Auth service
    auth_service = providers.Singleton(
        _create_auth_service,
        storage=storage,
        passwords=passwords,
        token_backend=token_backend,
    )

    # AI backend client
    ai_client = providers.Singleton(
        _create_ai_client,
        config=config.provided.ai,
    )


# Global container instance
container = DIContainer()
