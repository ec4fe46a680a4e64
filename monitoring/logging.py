"""
Structured Logging - Monitoring Layer

Log records of the HTTP layer carry three kinds of context:
- the request ID of the request being served (context variable)
- the storage operation and logical path, bound with `for_operation()`
- free keyword fields given at the call site

Both formatters render all three; JSON puts operation and storage_path
at the top level so log queries can filter on them.

The storage core does not log; the process wiring the adapter to the
HTTP layer creates a logger here and hands it over explicitly.

@.architecture
Incoming: app.py, main.py, api/middleware/*.py, api/v1/endpoints/files.py --- {str preset/level/format_type, str request_id, operation/path bindings, keyword fields}
Processing: configure_logging(), configure_from_preset(), JSONFormatter.format(), TextFormatter.format(), StructuredLogger.for_operation() --- {3 jobs: context_binding, formatting, log_configuration}
Outgoing: sys.stdout --- {StructuredLogger instances, JSON or text log lines}
"""

import json
import logging
import sys
import traceback
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Dict, Optional

request_id_ctx: ContextVar[Optional[str]] = ContextVar('request_id', default=None)

TEXT_FORMAT = '%(asctime)s | %(levelname)-8s | %(name)s | [%(request_id)s] | %(message)s'


def _storage_context(record: logging.LogRecord) -> Dict[str, str]:
    context = {}
    for key in ('operation', 'storage_path'):
        value = getattr(record, key, None)
        if value is not None:
            context[key] = value
    return context


class JSONFormatter(logging.Formatter):
    """One JSON object per line."""

    def __init__(self, include_traceback: bool = True):
        super().__init__()
        self.include_traceback = include_traceback

    def format(self, record: logging.LogRecord) -> str:
        log_data: Dict[str, Any] = {
            'timestamp': datetime.now(timezone.utc).isoformat().replace('+00:00', 'Z'),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
        }

        request_id = request_id_ctx.get()
        if request_id:
            log_data['request_id'] = request_id

        log_data.update(_storage_context(record))

        fields = getattr(record, 'fields', None)
        if fields:
            log_data['fields'] = fields

        if record.exc_info and self.include_traceback:
            log_data['exception'] = {
                'type': record.exc_info[0].__name__,
                'message': str(record.exc_info[1]),
                'traceback': traceback.format_exception(*record.exc_info)
            }

        return json.dumps(log_data, default=str)


class TextFormatter(logging.Formatter):
    """
    Human-readable lines for development:

        2024-05-01 12:00:00 | INFO     | fernfs | [3f2a...] | Wrote file op=write path=docs/a.txt size_bytes=12
    """

    def __init__(self):
        super().__init__(fmt=TEXT_FORMAT, datefmt='%Y-%m-%d %H:%M:%S')

    def format(self, record: logging.LogRecord) -> str:
        record.request_id = request_id_ctx.get() or '-'
        line = super().format(record)

        pairs = []
        context = _storage_context(record)
        if 'operation' in context:
            pairs.append(f"op={context['operation']}")
        if 'storage_path' in context:
            pairs.append(f"path={context['storage_path']}")
        pairs.extend(f"{key}={value}" for key, value in (getattr(record, 'fields', None) or {}).items())

        if not pairs:
            return line
        head, sep, tail = line.partition('\n')
        return f"{head} {' '.join(pairs)}{sep}{tail}"


class StructuredLogger:
    """
    Logger handle for the HTTP layer.

    Keyword arguments become structured fields; `for_operation()` returns
    a handle whose records also carry the storage operation and path:

        logger.for_operation("write", "docs/a.txt").info("Wrote file", size_bytes=12)
    """

    def __init__(
        self,
        name: str,
        operation: Optional[str] = None,
        storage_path: Optional[str] = None
    ):
        self._logger = logging.getLogger(name)
        self.operation = operation
        self.storage_path = storage_path

    @property
    def name(self) -> str:
        return self._logger.name

    def for_operation(self, operation: str, path: Optional[str] = None) -> "StructuredLogger":
        return StructuredLogger(self.name, operation=operation, storage_path=path)

    def _log(self, level: int, message: str, exc_info: Any = None, **fields: Any) -> None:
        extra: Dict[str, Any] = {'fields': fields}
        if self.operation is not None:
            extra['operation'] = self.operation
        if self.storage_path is not None:
            extra['storage_path'] = self.storage_path
        self._logger.log(level, message, exc_info=exc_info, extra=extra)

    def info(self, message: str, **fields: Any) -> None:
        self._log(logging.INFO, message, **fields)

    def warning(self, message: str, **fields: Any) -> None:
        self._log(logging.WARNING, message, **fields)

    def error(self, message: str, **fields: Any) -> None:
        self._log(logging.ERROR, message, **fields)

    def exception(self, message: str, **fields: Any) -> None:
        """Log at ERROR with the active exception's traceback."""
        self._log(logging.ERROR, message, exc_info=True, **fields)


def configure_logging(level: str = "INFO", format_type: str = "json") -> None:
    """
    Route all logging to stdout in the given format.

    Args:
        level: Root log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        format_type: "json" or "text"
    """
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JSONFormatter() if format_type == "json" else TextFormatter())

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    root_logger.handlers = [handler]

    # Request logging middleware already writes one line per request
    logging.getLogger('uvicorn.access').setLevel(logging.WARNING)


def get_logger(name: str) -> StructuredLogger:
    return StructuredLogger(name)


def set_request_context(request_id: Optional[str] = None) -> None:
    """Set the request ID for the current context."""
    if request_id:
        request_id_ctx.set(request_id)


def clear_request_context() -> None:
    request_id_ctx.set(None)


def get_request_id() -> Optional[str]:
    return request_id_ctx.get()


# One preset per Settings.environment ("test" maps to "testing")
LOGGING_PRESETS = {
    'development': {'level': 'INFO', 'format_type': 'text'},
    'production': {'level': 'INFO', 'format_type': 'json'},
    'testing': {'level': 'WARNING', 'format_type': 'text'},
}


def configure_from_preset(preset: str = 'development', **overrides: Any) -> None:
    """
    Configure logging from a preset, with level/format_type overrides.

    Raises:
        ValueError: If the preset is unknown
    """
    if preset not in LOGGING_PRESETS:
        raise ValueError(f"Unknown preset: {preset}. Available: {list(LOGGING_PRESETS.keys())}")

    config = dict(LOGGING_PRESETS[preset])
    config.update(overrides)
    configure_logging(**config)
