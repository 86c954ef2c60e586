"""
MinIO storage driver implementation.

Provides MinIO-specific primitives for the shared user-files bucket.
"""

from datetime import datetime
from typing import BinaryIO, Callable, Dict, Iterator, Optional, Sequence, Tuple

from minio import Minio
from minio.commonconfig import CopySource
from minio.deleteobjects import DeleteObject
from minio.error import S3Error
from structlog import get_logger

from .base import ObjectStoreDriver

logger = get_logger(__name__)

# S3 error codes meaning the addressed object is absent
NOT_FOUND_CODES = frozenset({"NoSuchKey", "NoSuchObject", "ResourceNotFound"})


def _release_response(response) -> None:
    # Both calls are needed to hand the connection back to the urllib3 pool
    response.close()
    response.release_conn()


class MinIOStorageDriver(ObjectStoreDriver):
    """MinIO storage driver."""

    def __init__(
        self,
        bucket_name: str,
        endpoint: str,
        access_key: str,
        secret_key: str,
        secure: bool = True,
        region: Optional[str] = None,
        **options
    ):
        """
        Initialize MinIO storage driver.

        Args:
            bucket_name: Shared bucket for all users
            endpoint: MinIO server endpoint
            access_key: MinIO access key
            secret_key: MinIO secret key
            secure: Whether to use HTTPS
            region: MinIO region (optional)
            **options: Timeout and chunking options of ObjectStoreDriver
        """
        super().__init__(bucket_name, **options)
        self.client = Minio(
            endpoint=endpoint,
            access_key=access_key,
            secret_key=secret_key,
            secure=secure,
            region=region
        )

    def is_not_found(self, exc: BaseException) -> bool:
        return isinstance(exc, S3Error) and exc.code in NOT_FOUND_CODES

    def _bucket_exists(self) -> bool:
        return self.client.bucket_exists(self.bucket_name)

    def _ensure_bucket(self) -> bool:
        if self._bucket_exists():
            return False
        self.client.make_bucket(self.bucket_name)
        return True

    def _stat_object(self, key: str) -> Tuple[int, datetime, Optional[str]]:
        stat = self.client.stat_object(self.bucket_name, key)
        return stat.size, stat.last_modified, stat.content_type

    def _list_keys(self, prefix: str, recursive: bool) -> Iterator[str]:
        for obj in self.client.list_objects(self.bucket_name, prefix=prefix, recursive=recursive):
            yield obj.object_name

    def _put_object(self, key: str, data: BinaryIO, length: int, content_type: Optional[str]) -> None:
        self.client.put_object(
            self.bucket_name,
            key,
            data,
            length,
            content_type=content_type or "application/octet-stream",
            # Unknown length forces a multipart upload, which needs an explicit part size
            part_size=self.upload_part_size if length < 0 else 0
        )

    def _copy_object(self, source_key: str, destination_key: str) -> None:
        self.client.copy_object(
            self.bucket_name,
            destination_key,
            CopySource(self.bucket_name, source_key)
        )

    def _remove_object(self, key: str) -> None:
        self.client.remove_object(self.bucket_name, key)

    def _remove_objects(self, keys: Sequence[str]) -> Dict[str, str]:
        # remove_objects is lazy: nothing is deleted until the error iterator is consumed
        errors = self.client.remove_objects(
            self.bucket_name,
            [DeleteObject(key) for key in keys]
        )
        failed = {}
        for error in errors:
            failed[error.name] = f"{error.code}: {error.message}"
        if failed:
            logger.warning("MinIO batch delete reported failures", bucket=self.bucket_name, failed=len(failed))
        return failed

    def _get_object(self, key: str) -> Tuple[Iterator[bytes], Callable[[], None]]:
        response = self.client.get_object(self.bucket_name, key)
        return response.stream(self.stream_chunk_size), lambda: _release_response(response)
