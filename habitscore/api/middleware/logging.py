"""Request logging middleware.

Binds the request id and the calling principal into structlog's context so
every domain event logged while serving the request carries them.
"""

import time
import uuid

import structlog
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from habitscore.config import settings

logger = structlog.get_logger()

# Health checks hit these every few seconds
_QUIET_PATHS = frozenset({"/health", "/ready"})


class StructuredLoggingMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        request.state.request_id = request_id
        principal = request.headers.get(settings.principal_header, "").strip() or None

        start_time = time.perf_counter()
        with structlog.contextvars.bound_contextvars(request_id=request_id, principal=principal):
            response = await call_next(request)
            duration_ms = round((time.perf_counter() - start_time) * 1000, 2)

            if request.url.path not in _QUIET_PATHS or response.status_code >= 500:
                log = logger.warning if response.status_code >= 500 else logger.info
                log(
                    "http_request",
                    method=request.method,
                    path=request.url.path,
                    status_code=response.status_code,
                    duration_ms=duration_ms,
                )

        response.headers["X-Request-ID"] = request_id
        return response
