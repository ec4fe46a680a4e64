"""
FastAPI Application Factory

Creates and configures the FastAPI application with:
- API versioning
- Middleware (request logging, error handling)
- Storage adapter wiring
- Lifecycle management (adapter closed on shutdown)

@.architecture
Incoming: main.py, tests/conftest.py, config/settings.py, api/v1/router.py, api/middleware/*.py --- {Settings object, optional StorageAdapter, optional StructuredLogger}
Processing: create_app(), configure_app_logging(), lifespan() --- {5 jobs: application_creation, adapter_construction, logger_wiring, middleware_registration, routing_registration}
Outgoing: main.py, HTTP clients --- {FastAPI application instance, HTTP responses}
"""

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.responses import JSONResponse

from api.dependencies import set_app_logger, set_storage_adapter
from api.middleware import (
    create_error_handler_middleware,
    create_request_logging_middleware,
)
from api.v1.endpoints import health_router
from api.v1.router import api_v1_router
from config.settings import Settings, get_settings
from data.storage import StorageAdapter, create_storage_adapter
from monitoring import StructuredLogger, configure_from_preset, get_logger


def configure_app_logging(settings: Settings) -> StructuredLogger:
    """
    Configure logging for the environment and return the HTTP layer's logger.

    Test runs use the quiet preset; other environments take level and
    format from settings.
    """
    if settings.environment == "test":
        configure_from_preset("testing")
    else:
        configure_from_preset(
            settings.environment,
            level=settings.logging.level,
            format_type=settings.logging.format
        )
    return get_logger("fernfs")


def create_app(
    settings: Optional[Settings] = None,
    adapter: Optional[StorageAdapter] = None,
    logger: Optional[StructuredLogger] = None
) -> FastAPI:
    """
    Create and configure FastAPI application.

    Args:
        settings: Application settings (loaded from config/env when omitted)
        adapter: Storage adapter to serve (built from settings.storage when omitted)
        logger: Logger handle for the HTTP layer (logging is configured when omitted)

    Returns:
        FastAPI: Configured application instance

    Raises:
        StorageError: If the configured storage backend cannot be constructed
        ValueError: If the configured storage type is unknown
    """
    settings = settings or get_settings()
    if logger is None:
        logger = configure_app_logging(settings)

    # Fail at construction on bad storage configuration
    if adapter is None:
        adapter = create_storage_adapter(settings.storage.to_storage_config())

    logger.info(
        f"Creating {settings.app_name} application (environment: {settings.environment})",
        storage=repr(adapter)
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("=== Application Startup ===")
        yield
        logger.info("=== Application Shutdown ===")
        active = getattr(app.state, "storage_adapter", None)
        if active is not None:
            set_storage_adapter(app, None)
            try:
                active.close()
                logger.info("Storage adapter closed")
            except Exception as e:
                logger.error(f"Error closing storage adapter: {e}")

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="FernFS - filesystem operations over HTTP",
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        redirect_slashes=False,
        lifespan=lifespan
    )

    app.state.settings = settings
    set_app_logger(app, logger)
    set_storage_adapter(app, adapter)

    # ==========================================================================
    # Middleware Configuration
    # ==========================================================================

    # Error handler (inner) turns storage errors into responses
    middleware_class, middleware_kwargs = create_error_handler_middleware(
        development=settings.environment == "development",
        logger=logger
    )
    app.add_middleware(middleware_class, **middleware_kwargs)

    # Request logging (outer) sees the final status code
    middleware_class, middleware_kwargs = create_request_logging_middleware(logger=logger)
    app.add_middleware(middleware_class, **middleware_kwargs)

    # ==========================================================================
    # API Routers
    # ==========================================================================

    app.include_router(api_v1_router)
    app.include_router(health_router)

    @app.get("/")
    async def root():
        """Root endpoint."""
        return JSONResponse({
            "status": "ok",
            "message": f"{settings.app_name} API",
            "version": settings.app_version,
            "environment": settings.environment,
            "docs": "/docs"
        })

    return app
