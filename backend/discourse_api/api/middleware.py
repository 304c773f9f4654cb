"""FastAPI middleware."""

import time
import uuid
from typing_extensions import override

import structlog
from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

logger = structlog.get_logger()

REQUEST_ID_HEADER = "X-Request-ID"


class RequestIdMiddleware(BaseHTTPMiddleware):
    """Tag every request with an id, bound into the log context and echoed back."""

    @override
    async def dispatch(self, request: Request, call_next) -> Response:
        request_id = f"req_{uuid.uuid4().hex[:16]}"
        structlog.contextvars.bind_contextvars(request_id=request_id)
        try:
            response = await call_next(request)
        finally:
            structlog.contextvars.unbind_contextvars("request_id")
        response.headers[REQUEST_ID_HEADER] = request_id
        return response


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Middleware for logging requests and responses."""

    # Skip logging for health checks and docs to reduce noise
    SKIP_PATHS = {"/health", "/docs", "/redoc", "/openapi.json"}

    @override
    async def dispatch(self, request: Request, call_next) -> Response:
        start_time = time.perf_counter()
        path = request.url.path

        if path in self.SKIP_PATHS:
            return await call_next(request)

        logger.info(
            "request_started",
            method=request.method,
            path=path,
            query=str(request.query_params) if request.query_params else None,
        )

        try:
            response = await call_next(request)

            duration_ms = (time.perf_counter() - start_time) * 1000

            logger.info(
                "request_completed",
                method=request.method,
                path=path,
                status_code=response.status_code,
                duration_ms=round(duration_ms, 2),
            )

            response.headers["X-Process-Time-Ms"] = f"{duration_ms:.2f}"

            return response

        except Exception as e:
            duration_ms = (time.perf_counter() - start_time) * 1000
            logger.error(
                "request_failed",
                method=request.method,
                path=path,
                error=str(e),
                duration_ms=round(duration_ms, 2),
            )
            raise


class ExceptionHandlerMiddleware(BaseHTTPMiddleware):
    """Last-resort handler: anything the exception handlers missed becomes a 500."""

    @override
    async def dispatch(self, request: Request, call_next) -> Response:
        try:
            return await call_next(request)
        except Exception as e:
            logger.exception("unhandled_exception", path=request.url.path, error=str(e))

            if hasattr(e, "to_dict"):
                return JSONResponse(status_code=getattr(e, "status_code", 500), content=e.to_dict())

            return JSONResponse(
                status_code=500,
                content={"success": False, "error": "Internal server error"},
            )
