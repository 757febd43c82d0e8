from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from . import responses
from .errors import AppError
from .logger import get_logger

logger = get_logger(__name__)

_LOC_SOURCES = ("path", "query", "body", "header", "cookie")


def _environment(request: Request) -> str:
    return request.app.state.settings.environment


async def app_error_handler(request: Request, exc: AppError):
    logger.warning(f"{request.method} {request.url.path} -> {exc.status_code} {exc.code}: {exc.message}")
    return responses.error(
        request,
        exc.status_code,
        exc.error_type,
        exc.code,
        exc.message,
        _environment(request),
        details=exc.details,
    )


async def request_validation_handler(request: Request, exc: RequestValidationError):
    details = []
    for err in exc.errors():
        loc = list(err.get("loc", ()))
        if loc and loc[0] in _LOC_SOURCES:
            loc = loc[1:]
        details.append({"field": ".".join(str(p) for p in loc) or "body", "message": err.get("msg", "")})
    message = "; ".join(f"{d['field']}: {d['message']}" for d in details) or "Invalid request"
    logger.warning(f"{request.method} {request.url.path} -> 400 VALIDATION_FAILED: {message}")
    return responses.error(
        request, 400, "ValidationError", "VALIDATION_FAILED", message, _environment(request), details=details
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    if exc.status_code == 404:
        return responses.error(
            request,
            404,
            "NotFoundError",
            "RESOURCE_NOT_FOUND",
            f"Route not found: {request.method} {request.url.path}",
            _environment(request),
        )
    return responses.error(
        request, exc.status_code, "HTTPError", "HTTP_ERROR", str(exc.detail), _environment(request)
    )


async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    settings = request.app.state.settings
    if settings.is_production:
        message, details = "Internal server error", None
    else:
        message, details = str(exc) or "Internal server error", [{"originalError": type(exc).__name__}]
    return responses.error(
        request, 500, "InternalServerError", "INTERNAL_SERVER_ERROR", message, settings.environment, details=details
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
