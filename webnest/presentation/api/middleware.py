import logging
import time
import uuid

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger(__name__)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Logs one line per request and echoes an ``X-Request-ID`` header."""

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get("x-request-id") or str(uuid.uuid4())
        request.state.request_id = request_id
        start_time = time.perf_counter()

        response = await call_next(request)

        duration_ms = (time.perf_counter() - start_time) * 1000
        logger.info(
            "%s %s -> %s in %.2fms request_id=%s client=%s",
            request.method,
            request.url.path,
            response.status_code,
            duration_ms,
            request_id,
            request.client.host if request.client else None,
        )
        response.headers["X-Request-ID"] = request_id
        return response
