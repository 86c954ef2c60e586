"""
Top-level API router; every public endpoint lives under ``/api``.
"""
from cloudfs.core.config import settings
from fastapi import APIRouter

from .v1.router import v1_router

API_VERSIONS = {"v1": v1_router}

api_router = APIRouter(prefix="/api")

for _router in API_VERSIONS.values():
    api_router.include_router(_router)


@api_router.get("/versions")
async def api_versions():
    """List mounted API versions and the service build serving them."""
    return {
        "service": settings.app_name,
        "build": settings.app_version,
        "versions": [f"/api/{name}" for name in API_VERSIONS],
        "current": max(API_VERSIONS),
    }
