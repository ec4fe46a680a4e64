"""
API V1 Router

Aggregates the versioned endpoint routers.

@.architecture
Incoming: app.py, api/v1/endpoints/files.py --- {app.include_router() call, files router instance}
Processing: api_v1_router.include_router() --- {1 job: router_aggregation}
Outgoing: app.py --- {APIRouter with /v1 prefix, HTTP request routing to endpoints}
"""

from fastapi import APIRouter

from .endpoints import files_router

# Create v1 router
api_v1_router = APIRouter(prefix="/v1")

# Files (has /files prefix)
api_v1_router.include_router(files_router)
