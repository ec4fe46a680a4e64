"""
Request Logging Middleware - API Layer

Logs one line per request and tags everything logged while handling it
with a request ID.

@.architecture
Incoming: app.py (middleware registration), HTTP requests --- {FastAPI Request objects, X-Request-ID header}
Processing: dispatch() --- {3 jobs: request_id_assignment, latency_measurement, access_logging}
Outgoing: monitoring/logging.py, HTTP clients --- {structured access logs, X-Request-ID response header}
"""

import time
import uuid
from typing import Callable, Optional

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from monitoring import StructuredLogger, clear_request_context, get_logger, set_request_context

REQUEST_ID_HEADER = "X-Request-ID"


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Access logging with method, path, query, status, latency and client."""

    def __init__(self, app: ASGIApp, logger: Optional[StructuredLogger] = None):
        super().__init__(app)
        self.logger = logger or get_logger(__name__)

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())
        set_request_context(request_id=request_id)
        request.state.request_id = request_id

        start = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception:
            self.logger.exception(
                "request failed",
                method=request.method,
                path=request.url.path,
                query=request.url.query,
                latency_ms=round((time.perf_counter() - start) * 1000, 3),
            )
            clear_request_context()
            raise

        response.headers[REQUEST_ID_HEADER] = request_id
        self.logger.info(
            "request completed",
            method=request.method,
            path=request.url.path,
            query=request.url.query,
            status=response.status_code,
            latency_ms=round((time.perf_counter() - start) * 1000, 3),
            client=request.client.host if request.client else "unknown",
            user_agent=request.headers.get("user-agent", ""),
        )
        clear_request_context()
        return response


def create_request_logging_middleware(logger: Optional[StructuredLogger] = None):
    """
    Create request logging middleware factory.

    Returns:
        Middleware class and kwargs for FastAPI
    """
    return (RequestLoggingMiddleware, {"logger": logger})
