"""
API Middleware Layer

Middleware components for request/response processing:
- Request logging (access log + request ID)
- Error handling (storage errors to HTTP status codes)
"""

from .request_logging import (
    REQUEST_ID_HEADER,
    RequestLoggingMiddleware,
    create_request_logging_middleware,
)

from .error_handler import (
    ErrorHandlerMiddleware,
    ErrorHandlerConfig,
    classify_error,
    create_error_handler_middleware,
)

__all__ = [
    # Request logging
    'REQUEST_ID_HEADER',
    'RequestLoggingMiddleware',
    'create_request_logging_middleware',

    # Error handling
    'ErrorHandlerMiddleware',
    'ErrorHandlerConfig',
    'classify_error',
    'create_error_handler_middleware',
]
