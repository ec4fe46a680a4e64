"""
Global Error Handler Middleware - API Layer

Maps storage errors and unexpected exceptions onto HTTP error responses.

@.architecture
Incoming: app.py (middleware registration), Exception objects from endpoints --- {FastAPI Request objects, StorageError subclasses, Python exceptions}
Processing: dispatch(), _handle_error(), _classify_error(), _build_error_response(), _log_error() --- {4 jobs: exception_catching, error_classification, response_formatting, logging}
Outgoing: monitoring/logging.py, HTTP clients --- {structured error logs, JSONResponse with standardized error format: code/message/type}

Status mapping:
- InvalidPathError  -> 400
- PathNotFoundError -> 404
- any other StorageError -> 500 (message kept, it names the failing path)
- anything else -> 500 (message sanitized unless in development)
"""

import traceback
from typing import Any, Callable, Dict, Optional, Tuple

from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from data.storage import InvalidPathError, PathNotFoundError, StorageError
from monitoring import StructuredLogger, get_logger


class ErrorHandlerConfig:
    """Configuration for error handler."""

    def __init__(
        self,
        include_traceback: bool = False,
        sanitize_errors: bool = True,
        log_errors: bool = True,
        custom_error_messages: Optional[Dict[int, str]] = None
    ):
        """
        Initialize error handler configuration.

        Args:
            include_traceback: Include traceback in response (dev only)
            sanitize_errors: Hide messages of unexpected exceptions
            log_errors: Log errors to logger
            custom_error_messages: Hint messages for HTTP status codes
        """
        self.include_traceback = include_traceback
        self.sanitize_errors = sanitize_errors
        self.log_errors = log_errors
        self.custom_error_messages = custom_error_messages or self._default_messages()

    @staticmethod
    def _default_messages() -> Dict[int, str]:
        return {
            400: "Invalid request",
            404: "Resource not found",
            500: "Internal server error",
        }


def classify_error(error: Exception, sanitize: bool = True) -> Tuple[int, str, str]:
    """
    Classify an exception into (status_code, message, error_type).

    Args:
        error: Exception to classify
        sanitize: Replace messages of non-storage exceptions with a generic one

    Returns:
        Tuple of (status_code, message, error_type)
    """
    error_type = type(error).__name__

    if isinstance(error, InvalidPathError):
        return 400, str(error), error_type
    if isinstance(error, PathNotFoundError):
        return 404, str(error), error_type
    if isinstance(error, StorageError):
        return 500, str(error), error_type
    if isinstance(getattr(error, 'status_code', None), int):
        return error.status_code, str(error), error_type

    message = "An error occurred processing your request" if sanitize else str(error)
    return 500, message, error_type


class ErrorHandlerMiddleware(BaseHTTPMiddleware):
    """
    Middleware for global error handling.

    Catches exceptions escaping the endpoints, logs them through the
    logger handed in at construction, and answers with a JSON envelope.
    """

    def __init__(
        self,
        app: ASGIApp,
        config: Optional[ErrorHandlerConfig] = None,
        logger: Optional[StructuredLogger] = None
    ):
        super().__init__(app)
        self.config = config or ErrorHandlerConfig()
        self.logger = logger or get_logger(__name__)

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        try:
            return await call_next(request)
        except Exception as e:
            return self._handle_error(request, e)

    def _handle_error(self, request: Request, error: Exception) -> JSONResponse:
        status_code, error_message, error_type = classify_error(
            error, sanitize=self.config.sanitize_errors
        )

        if self.config.log_errors:
            self._log_error(request, error, status_code)

        return JSONResponse(
            status_code=status_code,
            content=self._build_error_response(
                status_code=status_code,
                error_message=error_message,
                error_type=error_type,
                error=error if self.config.include_traceback else None
            )
        )

    def _build_error_response(
        self,
        status_code: int,
        error_message: str,
        error_type: str,
        error: Optional[Exception] = None
    ) -> Dict[str, Any]:
        response = {
            "error": {
                "code": status_code,
                "message": error_message,
                "type": error_type
            }
        }

        if status_code in self.config.custom_error_messages:
            response["error"]["hint"] = self.config.custom_error_messages[status_code]

        if self.config.include_traceback and error:
            response["error"]["traceback"] = traceback.format_exception(
                type(error), error, error.__traceback__
            )

        return response

    def _log_error(
        self,
        request: Request,
        error: Exception,
        status_code: int
    ) -> None:
        context = {
            "method": request.method,
            "path": str(request.url.path),
            "status_code": status_code,
            "error_type": type(error).__name__,
            "client": request.client.host if request.client else "unknown"
        }

        if status_code >= 500 and not isinstance(error, StorageError):
            self.logger.exception(f"Server error: {error}", **context)
        elif status_code >= 500:
            self.logger.error(f"Storage error: {error}", **context)
        else:
            self.logger.warning(f"Client error: {error}", **context)


def create_error_handler_middleware(
    development: bool = False,
    logger: Optional[StructuredLogger] = None
):
    """
    Create error handler middleware factory with environment-appropriate config.

    Args:
        development: Whether running in development mode
        logger: Logger handle used for error reports

    Returns:
        Middleware class and kwargs for FastAPI
    """
    if development:
        config = ErrorHandlerConfig(
            include_traceback=True,
            sanitize_errors=False,
            log_errors=True
        )
    else:
        config = ErrorHandlerConfig(
            include_traceback=False,
            sanitize_errors=True,
            log_errors=True
        )

    return (ErrorHandlerMiddleware, {"config": config, "logger": logger})
