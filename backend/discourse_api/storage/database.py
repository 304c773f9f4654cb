"""Async SQLAlchemy engine and session factory."""

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from discourse_api.core.config import StorageConfig


def create_engine(config: StorageConfig) -> AsyncEngine:
    """Build the async engine for ``config.database_url``.

    SQLite (used by tests) gets foreign keys switched on per connection so
    ``ON DELETE CASCADE`` behaves as on PostgreSQL.
    """
    is_sqlite = config.database_url.startswith("sqlite")
    kwargs: dict = {"echo": config.echo}
    if not is_sqlite:
        kwargs["pool_pre_ping"] = True
    elif ":memory:" in config.database_url:
        # One shared connection, otherwise every checkout sees an empty database
        kwargs["poolclass"] = StaticPool

    engine = create_async_engine(config.database_url, **kwargs)

    if is_sqlite:

        @event.listens_for(engine.sync_engine, "connect")
        def _set_sqlite_pragma(dbapi_connection, connection_record):  # noqa: ARG001
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

    return engine


def create_sessionmaker(engine: AsyncEngine) -> async_sessionmaker:
    return async_sessionmaker(engine, expire_on_commit=False)
