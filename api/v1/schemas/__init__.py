"""
API V1 Schemas

Pydantic models for request/response validation.
"""

from .common import (
    ErrorDetail,
    ErrorResponse,
    HealthResponse,
)

from .files import (
    PathRequest,
    MkdirRequest,
    ChmodRequest,
    RenameRequest,
    FileInfoResponse,
    DirEntryResponse,
    OperationResponse,
    parse_mode,
)

__all__ = [
    # Common
    "ErrorDetail",
    "ErrorResponse",
    "HealthResponse",

    # Files
    "PathRequest",
    "MkdirRequest",
    "ChmodRequest",
    "RenameRequest",
    "FileInfoResponse",
    "DirEntryResponse",
    "OperationResponse",
    "parse_mode",
]
