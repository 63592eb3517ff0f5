"""
HTTP request logging middleware.
"""

import time
import uuid
from typing import Awaitable, Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
import structlog

logger = structlog.get_logger(__name__)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Logs every request with its status and duration under a request id."""

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        request_id = str(uuid.uuid4())
        request.state.request_id = request_id
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(request_id=request_id)
        start_time = time.perf_counter()

        try:
            response = await call_next(request)
        except Exception as e:
            logger.error("Request failed",
                         method=request.method,
                         path=request.url.path,
                         error=str(e),
                         elapsed_ms=round((time.perf_counter() - start_time) * 1000, 2))
            raise

        logger.info("Request handled",
                    method=request.method,
                    path=request.url.path,
                    status_code=response.status_code,
                    elapsed_ms=round((time.perf_counter() - start_time) * 1000, 2))
        response.headers["X-Request-ID"] = request_id
        return response
