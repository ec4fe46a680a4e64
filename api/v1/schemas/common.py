"""
Common Schemas

Shared Pydantic models used across API endpoints.
"""

from typing import Optional

from pydantic import BaseModel


class ErrorDetail(BaseModel):
    """Body of the error envelope produced by the error handler middleware."""
    code: int
    message: str
    type: str
    hint: Optional[str] = None


class ErrorResponse(BaseModel):
    """Error envelope: {"error": {...}}."""
    error: ErrorDetail


class HealthResponse(BaseModel):
    """Health/readiness probe response."""
    status: str
