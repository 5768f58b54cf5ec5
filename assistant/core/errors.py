"""Exception handling utilities."""

from __future__ import annotations

import logging

from fastapi import Request
from fastapi.responses import JSONResponse

from assistant.engine.errors import (
    ActionAlreadyComplete,
    ActionIncomplete,
    EngineError,
    NoActiveAction,
    UnknownActionKind,
    UnresolvedExpression,
)

logger = logging.getLogger("classroom.errors")

STATUS_CODES = {
    NoActiveAction: 404,
    ActionIncomplete: 409,
    ActionAlreadyComplete: 409,
    UnknownActionKind: 422,
    UnresolvedExpression: 422,
}


async def engine_error_handler(request: Request, exc: EngineError) -> JSONResponse:
    """Translate recoverable engine errors into JSON client errors."""

    status_code = STATUS_CODES.get(type(exc), 400)
    logger.info("%s on %s %s: %s", exc.code, request.method, request.url.path, exc)
    content = {"error": exc.code, "message": str(exc)}
    if isinstance(exc, ActionIncomplete):
        content["missing_parameters"] = exc.missing
    return JSONResponse(status_code=status_code, content=content)


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:  # noqa: D401
    """Return a generic JSON error response while logging the exception."""

    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content={
            "error": "internal_error",
            "message": "Something unexpected happened. Please try again later.",
        },
    )
