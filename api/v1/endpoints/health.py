"""
Health Check Endpoints

Liveness and readiness probes for load balancers and orchestrators.

@.architecture
Incoming: app.py, Load Balancers, Orchestrators (HTTP GET) --- {HTTP requests to /health, /live, /ready}
Processing: health_check(), liveness_probe(), readiness_probe() --- {2 jobs: liveness_reporting, readiness_checking}
Outgoing: HTTP clients --- {HealthResponse JSON, 503 when the storage adapter is not wired}
"""

from fastapi import APIRouter, Request, Response, status

from api.v1.schemas.common import HealthResponse

router = APIRouter(tags=["health"])


@router.get("/health", response_model=HealthResponse, summary="Health check")
async def health_check() -> HealthResponse:
    return HealthResponse(status="ok")


@router.get("/live", response_model=HealthResponse, summary="Liveness probe")
async def liveness_probe() -> HealthResponse:
    """The process is up and serving requests."""
    return HealthResponse(status="ok")


@router.get("/ready", response_model=HealthResponse, summary="Readiness probe")
async def readiness_probe(request: Request, response: Response) -> HealthResponse:
    """Ready once a storage adapter is wired; 503 before startup or after shutdown."""
    if getattr(request.app.state, "storage_adapter", None) is None:
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
        return HealthResponse(status="unavailable")
    return HealthResponse(status="ready")
