"""
Health checks.

``/health/live`` only proves the process answers; the others also
check that the object store bucket is reachable.
"""
from datetime import datetime, timezone
from typing import Any, Dict

from cloudfs.core.config import settings
from cloudfs.core.exceptions import StoreOperationError
from cloudfs.modules.storage.dependencies import get_storage_driver
from cloudfs.modules.storage.drivers.base import ObjectStoreDriver
from fastapi import APIRouter, Depends, HTTPException, status

router = APIRouter(prefix="/health")


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


async def check_store_health(driver: ObjectStoreDriver) -> Dict[str, str]:
    """Report whether ``driver``'s bucket answers, without raising."""
    try:
        present = await driver.bucket_exists()
    except StoreOperationError as e:
        return {"status": "unhealthy", "message": f"Object store unreachable: {e.message}"}
    if not present:
        return {"status": "unhealthy", "message": f"Bucket '{driver.bucket_name}' does not exist"}
    return {"status": "healthy", "message": f"Bucket '{driver.bucket_name}' reachable"}


def _require_healthy(store: Dict[str, str], payload: Dict[str, Any]) -> Dict[str, Any]:
    if store["status"] != "healthy":
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=payload)
    return payload


@router.get("/detailed")
async def detailed_health_check(
    driver: ObjectStoreDriver = Depends(get_storage_driver)
) -> Dict[str, Any]:
    store = await check_store_health(driver)
    return _require_healthy(store, {
        "status": store["status"],
        "timestamp": _now(),
        "version": settings.app_version,
        "storage_provider": settings.storage_provider,
        "checks": {"object_store": store},
    })


@router.get("/ready")
async def readiness_check(driver: ObjectStoreDriver = Depends(get_storage_driver)) -> Dict[str, Any]:
    """Ready once the bucket is reachable."""
    store = await check_store_health(driver)
    if store["status"] != "healthy":
        _require_healthy(store, {"status": "not_ready", "message": store["message"], "timestamp": _now()})
    return {"status": "ready", "timestamp": _now()}


@router.get("/live")
async def liveness_check() -> Dict[str, Any]:
    return {"status": "alive", "timestamp": _now()}
