"""
Storage drivers package.

Contains implementations of different storage backends.
"""

from .base import ObjectStoreDriver, ObjectStream
from .minio_driver import MinIOStorageDriver
from .s3_driver import S3StorageDriver

__all__ = [
    "ObjectStoreDriver",
    "ObjectStream",
    "MinIOStorageDriver",
    "S3StorageDriver",
]
