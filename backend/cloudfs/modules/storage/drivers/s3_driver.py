"""
AWS S3 storage driver implementation.

Provides S3-specific primitives through boto3, for AWS itself or any
S3-compatible endpoint.
"""

from datetime import datetime
from typing import BinaryIO, Callable, Dict, Iterator, Optional, Sequence, Tuple

import boto3
from boto3.s3.transfer import TransferConfig
from botocore.exceptions import ClientError
from structlog import get_logger

from ..paths import DELIMITER
from .base import ObjectStoreDriver

logger = get_logger(__name__)

NOT_FOUND_CODES = frozenset({"404", "NoSuchKey", "NotFound"})
MISSING_BUCKET_CODES = frozenset({"404", "NoSuchBucket"})

# DeleteObjects accepts at most this many keys per request
MAX_DELETE_BATCH = 1000


def _error_code(exc: ClientError) -> Optional[str]:
    return exc.response.get("Error", {}).get("Code")


class S3StorageDriver(ObjectStoreDriver):
    """AWS S3 storage driver."""

    def __init__(
        self,
        bucket_name: str,
        aws_access_key_id: Optional[str] = None,
        aws_secret_access_key: Optional[str] = None,
        region_name: str = "us-east-1",
        endpoint_url: Optional[str] = None,
        **options
    ):
        """
        Initialize S3 storage driver.

        Args:
            bucket_name: Shared bucket for all users
            aws_access_key_id: AWS access key (optional, can use IAM roles)
            aws_secret_access_key: AWS secret key (optional, can use IAM roles)
            region_name: AWS region
            endpoint_url: Custom S3 endpoint (for S3-compatible services)
            **options: Timeout and chunking options of ObjectStoreDriver
        """
        super().__init__(bucket_name, **options)
        self.region_name = region_name

        session = boto3.Session(
            aws_access_key_id=aws_access_key_id,
            aws_secret_access_key=aws_secret_access_key,
            region_name=region_name
        )
        self.s3_client = session.client('s3', endpoint_url=endpoint_url)
        self.transfer_config = TransferConfig(multipart_chunksize=self.upload_part_size)

    def is_not_found(self, exc: BaseException) -> bool:
        return isinstance(exc, ClientError) and _error_code(exc) in NOT_FOUND_CODES

    def _bucket_exists(self) -> bool:
        try:
            self.s3_client.head_bucket(Bucket=self.bucket_name)
        except ClientError as e:
            if _error_code(e) not in MISSING_BUCKET_CODES:
                raise
            return False
        return True

    def _ensure_bucket(self) -> bool:
        if self._bucket_exists():
            return False

        params = {"Bucket": self.bucket_name}
        if self.region_name != "us-east-1":
            params["CreateBucketConfiguration"] = {"LocationConstraint": self.region_name}
        self.s3_client.create_bucket(**params)
        return True

    def _stat_object(self, key: str) -> Tuple[int, datetime, Optional[str]]:
        response = self.s3_client.head_object(Bucket=self.bucket_name, Key=key)
        return response["ContentLength"], response["LastModified"], response.get("ContentType")

    def _list_keys(self, prefix: str, recursive: bool) -> Iterator[str]:
        params = {"Bucket": self.bucket_name, "Prefix": prefix}
        if not recursive:
            params["Delimiter"] = DELIMITER

        paginator = self.s3_client.get_paginator('list_objects_v2')
        for page in paginator.paginate(**params):
            for common_prefix in page.get("CommonPrefixes", []):
                yield common_prefix["Prefix"]
            for obj in page.get("Contents", []):
                yield obj["Key"]

    def _put_object(self, key: str, data: BinaryIO, length: int, content_type: Optional[str]) -> None:
        content_type = content_type or "application/octet-stream"
        if length == 0:
            self.s3_client.put_object(Bucket=self.bucket_name, Key=key, Body=b"", ContentType=content_type)
            return
        self.s3_client.upload_fileobj(
            data,
            self.bucket_name,
            key,
            ExtraArgs={"ContentType": content_type},
            Config=self.transfer_config
        )

    def _copy_object(self, source_key: str, destination_key: str) -> None:
        self.s3_client.copy_object(
            Bucket=self.bucket_name,
            Key=destination_key,
            CopySource={"Bucket": self.bucket_name, "Key": source_key}
        )

    def _remove_object(self, key: str) -> None:
        self.s3_client.delete_object(Bucket=self.bucket_name, Key=key)

    def _remove_objects(self, keys: Sequence[str]) -> Dict[str, str]:
        failed = {}
        for start in range(0, len(keys), MAX_DELETE_BATCH):
            batch = keys[start:start + MAX_DELETE_BATCH]
            response = self.s3_client.delete_objects(
                Bucket=self.bucket_name,
                Delete={"Objects": [{"Key": key} for key in batch], "Quiet": True}
            )
            for error in response.get("Errors", []):
                failed[error["Key"]] = f"{error.get('Code')}: {error.get('Message')}"
        if failed:
            logger.warning("S3 batch delete reported failures", bucket=self.bucket_name, failed=len(failed))
        return failed

    def _get_object(self, key: str) -> Tuple[Iterator[bytes], Callable[[], None]]:
        body = self.s3_client.get_object(Bucket=self.bucket_name, Key=key)["Body"]
        return body.iter_chunks(self.stream_chunk_size), body.close
