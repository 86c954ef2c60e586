"""
Storage module for the per-user virtual filesystem.

Folders and files live as keys under a ``user-{id}/`` prefix of one shared
bucket, on MinIO or AWS S3.
"""

from .drivers.base import ObjectStoreDriver, ObjectStream
from .drivers.minio_driver import MinIOStorageDriver
from .drivers.s3_driver import S3StorageDriver
from .files import FileService
from .folders import FolderService
from .navigation import NavigationService
from .paths import ObjectPath
from .service import StorageService

__all__ = [
    "ObjectStoreDriver",
    "ObjectStream",
    "MinIOStorageDriver",
    "S3StorageDriver",
    "FileService",
    "FolderService",
    "NavigationService",
    "ObjectPath",
    "StorageService",
]
