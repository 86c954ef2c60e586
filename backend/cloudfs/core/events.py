"""
Application lifespan: logging setup and bucket provisioning.
"""
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from cloudfs.core.config import settings
from cloudfs.core.logger import configure_logging, get_logger
from cloudfs.modules.storage.dependencies import get_storage_driver
from fastapi import FastAPI

logger = get_logger("events")


async def startup_tasks(app: FastAPI) -> None:
    """Make sure the shared bucket exists before the first request."""
    configure_logging()

    # dependency_overrides lets tests swap in their own driver
    driver = app.dependency_overrides.get(get_storage_driver, get_storage_driver)()
    try:
        await driver.ensure_bucket()
    except Exception:
        logger.exception("Object store not usable at startup", bucket=driver.bucket_name)
        raise

    logger.info(
        "Storage service started",
        environment=settings.environment,
        storage_provider=settings.storage_provider,
        bucket=driver.bucket_name
    )


async def shutdown_tasks() -> None:
    logger.info("Storage service stopped")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    await startup_tasks(app)
    try:
        yield
    finally:
        await shutdown_tasks()
