"""Factory for creating storage backends."""

from discourse_api.core.config import StorageConfig
from discourse_api.core.exceptions import ConfigurationError
from discourse_api.core.protocols import Storage


class StorageFactory:
    """Factory for creating storage backends using registry pattern."""

    _registry: dict[str, type[Storage]] = {}

    @classmethod
    def register(cls, backend: str):
        """Decorator to register a storage implementation.

        Usage:
            @StorageFactory.register("sql")
            class SQLStorage:
                ...
        """

        def decorator(storage_cls: type) -> type:
            cls._registry[backend] = storage_cls
            return storage_cls

        return decorator

    @classmethod
    def create(cls, config: StorageConfig) -> Storage:
        """Create a storage backend from configuration.

        Raises:
            ConfigurationError: If backend is not registered
        """
        storage_cls = cls._registry.get(config.backend)
        if storage_cls is None:
            raise ConfigurationError(
                f"Unknown storage backend: {config.backend}. Available: {list(cls._registry.keys())}"
            )
        return storage_cls(config)

    @classmethod
    def available_backends(cls) -> list[str]:
        """Get list of available backend names."""
        return list(cls._registry.keys())
