"""
Monitoring Layer

Structured logging for the HTTP layer:
- JSON or text formatting
- Storage operation and path bound per log handle
- Request ID context injection
- Environment presets
"""

from .logging import (
    JSONFormatter,
    TextFormatter,
    StructuredLogger,
    configure_logging,
    configure_from_preset,
    get_logger,
    set_request_context,
    clear_request_context,
    get_request_id,
    LOGGING_PRESETS,
)

__all__ = [
    'JSONFormatter',
    'TextFormatter',
    'StructuredLogger',
    'configure_logging',
    'configure_from_preset',
    'get_logger',
    'set_request_context',
    'clear_request_context',
    'get_request_id',
    'LOGGING_PRESETS',
]
