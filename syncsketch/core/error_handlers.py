"""Exception handlers turning errors into the API's JSON error body."""

from __future__ import annotations

import logging
import traceback

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .config import get_settings
from .errors import AppError

logger = logging.getLogger(__name__)

INTERNAL_ERROR = "Internal server error"


def _status_label(status_code: int) -> str:
    return "fail" if status_code < 500 else "error"


def _internal_error(request: Request, exc: Exception) -> JSONResponse:
    settings = getattr(request.app.state, "settings", None) or get_settings()
    content = {"status": "error", "message": INTERNAL_ERROR}
    if not settings.is_production:
        content["error"] = str(exc)
        content["stack"] = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
    return JSONResponse(status_code=500, content=content)


async def app_error_handler(request: Request, exc: AppError):
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message, exc_info=exc)
        return _internal_error(request, exc)
    logger.info("%s %s -> %s: %s", request.method, request.url.path, exc.status_code, exc.message)
    content = {"status": _status_label(exc.status_code), "message": exc.message}
    if exc.errors:
        content["errors"] = exc.errors
    return JSONResponse(status_code=exc.status_code, content=content)


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    logger.warning("HTTP %s: %s - %s", exc.status_code, exc.detail, request.url.path)
    return JSONResponse(
        status_code=exc.status_code,
        content={"status": _status_label(exc.status_code), "message": str(exc.detail)},
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = {}
    for item in exc.errors():
        loc = [str(part) for part in item.get("loc", ()) if part not in ("body", "path", "query")]
        errors[".".join(loc) or "body"] = item.get("msg", "Invalid value")
    logger.info("Request validation failed on %s: %s", request.url.path, errors)
    return JSONResponse(
        status_code=400,
        content={"status": "fail", "message": "Validation error", "errors": errors},
    )


async def general_exception_handler(request: Request, exc: Exception):
    logger.exception("Unexpected error on %s %s", request.method, request.url.path)
    return _internal_error(request, exc)


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, general_exception_handler)
