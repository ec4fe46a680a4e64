"""
API Dependencies

FastAPI dependency injection functions for:
- Settings management
- Storage adapter access
- Logger handle access

@.architecture
Incoming: app.py (create_app), api/v1/endpoints/*.py --- {set_storage_adapter/set_app_logger calls, Depends() injections from endpoints}
Processing: get_settings(), set_storage_adapter(), get_storage_adapter(), set_app_logger(), get_app_logger() --- {2 jobs: dependency_injection, resource_lookup}
Outgoing: api/v1/endpoints/*.py, app.py --- {Settings instance, StorageAdapter instance, StructuredLogger instance}

Both the adapter and the logger live on `app.state`, so several app
instances (e.g. in tests) never share them.
"""

from typing import Optional

from fastapi import FastAPI, HTTPException, Request

from config.settings import Settings
from data.storage import StorageAdapter
from monitoring import StructuredLogger, get_logger


# =============================================================================
# Settings Dependencies
# =============================================================================

def get_settings(request: Request) -> Settings:
    """
    Get the settings the application was created with.

    Returns:
        Settings: Application configuration
    """
    return request.app.state.settings


# =============================================================================
# Storage Adapter Dependencies
# =============================================================================

def set_storage_adapter(app: FastAPI, adapter: Optional[StorageAdapter]) -> None:
    """Attach (or detach with None) the storage adapter of an application."""
    app.state.storage_adapter = adapter


def get_storage_adapter(request: Request) -> StorageAdapter:
    """
    Get the storage adapter instance.

    Returns:
        StorageAdapter: The adapter wired at startup

    Raises:
        HTTPException: If no adapter is wired (startup failed or already shut down)
    """
    adapter = getattr(request.app.state, "storage_adapter", None)
    if adapter is None:
        raise HTTPException(
            status_code=503,
            detail="Storage backend not available"
        )
    return adapter


# =============================================================================
# Logger Dependencies
# =============================================================================

def set_app_logger(app: FastAPI, logger: StructuredLogger) -> None:
    """Attach the logger handle used by the HTTP layer."""
    app.state.logger = logger


def get_app_logger(request: Request) -> StructuredLogger:
    """Get the logger handle of the application."""
    logger = getattr(request.app.state, "logger", None)
    return logger or get_logger("fernfs.api")
