"""
Main entry point for FernFS Backend

Builds the FastAPI app from app.py and serves it with uvicorn.

@.architecture
Incoming: none --- {entry point for uvicorn server}
Processing: get_settings(), configure_app_logging(), create_app(), uvicorn.run() --- {3 jobs: config_loading, logger_wiring, server_startup}
Outgoing: uvicorn server, Network (HTTP) --- {FastAPI application instance, HTTP server}
"""

from app import configure_app_logging, create_app
from config.settings import get_settings

settings = get_settings()
logger = configure_app_logging(settings)

# Create app instance
app = create_app(settings=settings, logger=logger)


def run() -> None:
    import uvicorn

    logger.info(
        "Starting server",
        address=f"{settings.server.host}:{settings.server.port}",
        environment=settings.environment
    )
    uvicorn.run(
        app,
        host=settings.server.host,
        port=settings.server.port,
        timeout_keep_alive=int(settings.server.read_timeout),
        timeout_graceful_shutdown=int(settings.server.shutdown_timeout),
        log_level=settings.logging.level.lower(),
        log_config=None
    )
    logger.info("Server exited properly")


if __name__ == "__main__":
    run()
