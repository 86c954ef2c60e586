"""
Storage dependencies.

This module provides dependency functions for the storage driver, the
service objects and the identity of the calling user.
"""
from functools import lru_cache

from cloudfs.core.config import settings
from cloudfs.core.exceptions import AuthenticationException
from fastapi import Depends, Request

from .drivers.base import ObjectStoreDriver
from .drivers.minio_driver import MinIOStorageDriver
from .drivers.s3_driver import S3StorageDriver
from .files import FileService
from .folders import FolderService
from .navigation import NavigationService
from .service import StorageService


@lru_cache()
def get_storage_driver() -> ObjectStoreDriver:
    """Get the configured storage driver, shared by the whole process."""
    provider = settings.storage_provider.lower()
    options = settings.storage_driver_options

    if provider == 'minio':
        return MinIOStorageDriver(
            bucket_name=settings.storage_bucket_name,
            endpoint=settings.minio_endpoint,
            access_key=settings.minio_access_key,
            secret_key=settings.minio_secret_key,
            secure=settings.minio_secure,
            region=settings.minio_region,
            **options
        )
    elif provider == 's3':
        return S3StorageDriver(
            bucket_name=settings.storage_bucket_name,
            aws_access_key_id=settings.aws_access_key_id,
            aws_secret_access_key=settings.aws_secret_access_key,
            region_name=settings.aws_region,
            endpoint_url=settings.s3_endpoint_url,
            **options
        )
    else:
        raise ValueError(f"Unsupported storage provider: {provider}")


def get_storage_service(driver: ObjectStoreDriver = Depends(get_storage_driver)) -> StorageService:
    return StorageService(driver)


def get_folder_service(storage: StorageService = Depends(get_storage_service)) -> FolderService:
    return FolderService(storage)


def get_file_service(storage: StorageService = Depends(get_storage_service)) -> FileService:
    return FileService(storage)


def get_navigation_service(storage: StorageService = Depends(get_storage_service)) -> NavigationService:
    return NavigationService(storage)


async def get_current_user_id(request: Request) -> int:
    """
    Extract the caller's user id from the identity header.

    Authentication happens upstream; the gateway forwards the id of the
    authenticated user in ``settings.user_id_header``.

    Args:
        request: FastAPI request object

    Returns:
        Numeric user id

    Raises:
        AuthenticationException: If the header is missing or not a
            non-negative integer
    """
    raw_user_id = request.headers.get(settings.user_id_header)
    if not raw_user_id:
        raise AuthenticationException(f"Missing {settings.user_id_header} header")

    if not raw_user_id.isdigit() or not raw_user_id.isascii():
        raise AuthenticationException(f"Invalid user id in {settings.user_id_header} header")

    return int(raw_user_id)
