"""Exception handlers producing the ``{"success": false, "error": ...}`` envelope."""

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from discourse_api.core.exceptions import AppError, AuthenticationError
from discourse_api.core.logging import get_logger

logger = get_logger(__name__)

_VALUE_ERROR_PREFIX = "Value error, "


def _validation_details(exc: RequestValidationError) -> list[dict[str, str]]:
    details = []
    for error in exc.errors():
        # Drop the leading "body" / "query" segment
        loc = [str(part) for part in error.get("loc", ())[1:]]
        message = str(error.get("msg", "Invalid value")).removeprefix(_VALUE_ERROR_PREFIX)
        details.append({"field": ".".join(loc), "message": message})
    return details


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, AuthenticationError) else None
    if exc.status_code >= 500:
        logger.error("request_error", path=request.url.path, code=exc.code, error=exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict(), headers=headers)


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    if any(error.get("type") == "json_invalid" for error in exc.errors()):
        return JSONResponse(status_code=400, content={"success": False, "error": "Invalid JSON body"})
    return JSONResponse(
        status_code=400,
        content={"success": False, "error": "Validation failed", "details": _validation_details(exc)},
    )


async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    if exc.status_code == 404:
        return JSONResponse(
            status_code=404,
            content={"success": False, "error": "Not found", "path": request.url.path},
        )
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "error": str(exc.detail)},
        headers=getattr(exc, "headers", None),
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
