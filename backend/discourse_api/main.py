"""FastAPI application entry point."""

from contextlib import asynccontextmanager
from datetime import UTC, datetime

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from discourse_api.api.auth import router as auth_router
from discourse_api.api.debates import router as debates_router
from discourse_api.api.errors import register_exception_handlers
from discourse_api.api.middleware import (
    ExceptionHandlerMiddleware,
    RequestIdMiddleware,
    RequestLoggingMiddleware,
)
from discourse_api.api.rooms import router as rooms_router
from discourse_api.api.users import router as users_router
from discourse_api.api.waitlist import router as waitlist_router
from discourse_api.core.config import get_config
from discourse_api.core.di_container import container as di_container
from discourse_api.core.logging import setup_logging

logger = structlog.get_logger()

WIRED_MODULES = [
    "discourse_api.auth.dependencies",
    "discourse_api.api.auth",
    "discourse_api.api.users",
    "discourse_api.api.debates",
    "discourse_api.api.rooms",
    "discourse_api.api.waitlist",
]

ENDPOINTS = {
    "auth": "/api/auth",
    "users": "/api/users",
    "debates": "/api/debates",
    "rooms": "/api/rooms",
    "waitlist": "/api/waitlist",
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup/shutdown."""
    config = di_container.config()

    setup_logging(log_level=config.log_level, json_format=not config.debug)

    di_container.wire(modules=WIRED_MODULES)

    # Resolving the token backend validates JWT_EXPIRES_IN before serving
    token_backend = di_container.token_backend()
    storage = di_container.storage()
    await storage.startup()

    logger.info(
        "application_starting",
        app_name=config.app_name,
        environment=config.environment,
        auth_strategy=token_backend.name,
        storage_backend=config.storage.backend,
    )

    yield

    logger.info("application_shutting_down")
    di_container.unwire()

    await di_container.ai_client().close()
    await storage.shutdown()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    config = get_config()

    app = FastAPI(
        title=config.app_name,
        description="REST backend for debate practice: accounts, debates, rooms and waitlist",
        version=config.version,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    # Added last runs first: request id wraps logging wraps the error net
    app.add_middleware(ExceptionHandlerMiddleware)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIdMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)

    app.include_router(auth_router, prefix="/api/auth", tags=["auth"])
    app.include_router(users_router, prefix="/api/users", tags=["users"])
    app.include_router(debates_router, prefix="/api/debates", tags=["debates"])
    app.include_router(rooms_router, prefix="/api/rooms", tags=["rooms"])
    app.include_router(waitlist_router, prefix="/api/waitlist", tags=["waitlist"])

    @app.get("/")
    async def root():
        return {
            "name": config.app_name,
            "version": config.version,
            "status": "running",
            "timestamp": datetime.now(UTC).isoformat(),
            "endpoints": ENDPOINTS,
        }

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    return app


# Create app instance
app = create_app()


if __name__ == "__main__":
    import uvicorn

    config = get_config()
    uvicorn.run(
        "discourse_api.main:app",
        host=config.host,
        port=config.port,
        reload=config.debug,
    )
