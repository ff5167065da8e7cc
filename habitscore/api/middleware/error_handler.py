"""Global exception handling."""

import structlog
from fastapi import Request
from fastapi.responses import JSONResponse

from habitscore.shared.errors import HabitscoreError, InternalError

logger = structlog.get_logger()


async def habitscore_exception_handler(request: Request, exc: HabitscoreError) -> JSONResponse:
    request_id = getattr(request.state, "request_id", "unknown")

    if isinstance(exc, InternalError):
        logger.error("internal_error", request_id=request_id, error=str(exc))
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "error": exc.error_type,
                "code": exc.code,
                "message": "An unexpected error occurred",
                "request_id": request_id,
            },
        )

    logger.warning(
        "request_rejected",
        request_id=request_id,
        code=exc.code,
        status_code=exc.status_code,
        error=exc.message,
    )
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": exc.error_type,
            "code": exc.code,
            "message": exc.message,
            "request_id": request_id,
        },
    )


async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    request_id = getattr(request.state, "request_id", "unknown")

    if isinstance(exc, HabitscoreError):
        return await habitscore_exception_handler(request, exc)

    if isinstance(exc, ValueError):
        logger.warning("bad_request", request_id=request_id, error=str(exc))
        return JSONResponse(
            status_code=400,
            content={
                "error": "bad_request",
                "code": "VALIDATION_ERROR",
                "message": str(exc),
                "request_id": request_id,
            },
        )

    if isinstance(exc, LookupError):
        logger.warning("not_found", request_id=request_id, error=str(exc))
        return JSONResponse(
            status_code=404,
            content={
                "error": "not_found",
                "code": "NOT_FOUND",
                "message": str(exc),
                "request_id": request_id,
            },
        )

    logger.exception("unhandled_exception", request_id=request_id, error=str(exc))
    return JSONResponse(
        status_code=500,
        content={
            "error": "internal_server_error",
            "code": "INTERNAL_ERROR",
            "message": "An unexpected error occurred",
            "request_id": request_id,
        },
    )
