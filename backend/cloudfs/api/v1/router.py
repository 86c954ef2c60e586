"""
Version 1 of the HTTP API.
"""
from cloudfs.modules.storage.dependencies import get_storage_driver
from cloudfs.modules.storage.drivers.base import ObjectStoreDriver
from cloudfs.modules.storage.router import router as storage_router
from fastapi import APIRouter, Depends

from .health import check_store_health
from .health import router as health_router

v1_router = APIRouter(prefix="/v1")
v1_router.include_router(storage_router, prefix="/storage", tags=["Storage"])
v1_router.include_router(health_router, tags=["Health"])


@v1_router.get("/health", tags=["Health"])
async def health_check(driver: ObjectStoreDriver = Depends(get_storage_driver)):
    store = await check_store_health(driver)
    return {"status": store["status"], "version": "v1", "object_store": store}


@v1_router.get("/info")
async def api_info():
    """Entry points of the v1 storage API."""
    return {
        "version": "v1",
        "resources": {
            "folders": "/api/v1/storage/folders",
            "folder_move_targets": "/api/v1/storage/folders/move-targets",
            "files": "/api/v1/storage/files",
            "file_info": "/api/v1/storage/files/info",
            "file_download": "/api/v1/storage/files/download",
        },
    }
