"""
File Operation Schemas

Pydantic models for the filesystem endpoints.

@.architecture
Incoming: api/v1/endpoints/files.py --- {JSON request bodies, X-File-Mode header values, FileInfo/DirEntry snapshots}
Processing: Pydantic validation and serialization, parse_mode() --- {3 jobs: data_validation, mode_parsing, serialization}
Outgoing: api/v1/endpoints/files.py --- {MkdirRequest, PathRequest, RenameRequest, ChmodRequest, FileInfoResponse, DirEntryResponse, OperationResponse validated models}
"""

from datetime import datetime
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

MAX_MODE = 0o7777


def parse_mode(value: Union[int, str, None]) -> Optional[int]:
    """
    Parse permission bits given as an int (493) or an octal string ("0755", "0o755").

    Raises:
        ValueError: If the value is not a valid permission mode
    """
    if value is None:
        return None
    if isinstance(value, bool):
        raise ValueError("mode must be an integer or an octal string")
    if isinstance(value, str):
        text = value.strip().lower()
        if text.startswith("0o"):
            text = text[2:]
        try:
            value = int(text, 8)
        except ValueError:
            raise ValueError(f"invalid octal mode: {value!r}")
    if not 0 <= value <= MAX_MODE:
        raise ValueError(f"mode out of range: {oct(value)}")
    return value


# =============================================================================
# Request Models
# =============================================================================

class PathRequest(BaseModel):
    """Request naming a single path."""
    path: str

    model_config = ConfigDict(json_schema_extra={"example": {"path": "docs/report.txt"}})


class MkdirRequest(BaseModel):
    """Directory creation request; mode defaults to 0755."""
    path: str
    mode: Optional[int] = None

    @field_validator('mode', mode='before')
    @classmethod
    def validate_mode(cls, v):
        return parse_mode(v)

    model_config = ConfigDict(json_schema_extra={"example": {"path": "docs", "mode": "0755"}})


class ChmodRequest(BaseModel):
    """Permission change request."""
    path: str
    mode: int

    @field_validator('mode', mode='before')
    @classmethod
    def validate_mode(cls, v):
        return parse_mode(v)

    model_config = ConfigDict(json_schema_extra={"example": {"path": "docs/report.txt", "mode": "0600"}})


class RenameRequest(BaseModel):
    """Move/rename request."""
    old_path: str
    new_path: str

    model_config = ConfigDict(json_schema_extra={
        "example": {"old_path": "docs/report.txt", "new_path": "archive/2024/report.txt"}
    })


# =============================================================================
# Response Models
# =============================================================================

class FileInfoResponse(BaseModel):
    """Metadata snapshot of a file or directory (mode = permission bits)."""
    name: str
    size: int = Field(..., ge=0)
    mode: int
    mod_time: datetime
    is_dir: bool


class DirEntryResponse(BaseModel):
    """One directory listing entry."""
    name: str
    is_dir: bool


class OperationResponse(BaseModel):
    """Acknowledgement of a mutating operation."""
    status: str = "ok"
    path: str
