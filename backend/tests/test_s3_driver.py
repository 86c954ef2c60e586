"""
Tests for the AWS S3 storage driver.
"""
import io
from datetime import UTC, datetime
from unittest.mock import MagicMock, patch

import pytest
from botocore.exceptions import ClientError
from cloudfs.core.exceptions import NotFoundError, StoreOperationError
from cloudfs.modules.storage.drivers.s3_driver import MAX_DELETE_BATCH, S3StorageDriver
from cloudfs.modules.storage.paths import ObjectPath


def p(raw):
    return ObjectPath.parse(raw, 42)


def client_error(code: str, operation: str = "HeadObject") -> ClientError:
    return ClientError({"Error": {"Code": code, "Message": f"{code} message"}}, operation)


@pytest.fixture
def boto3_module():
    with patch("cloudfs.modules.storage.drivers.s3_driver.boto3") as boto3_mock:
        yield boto3_mock


@pytest.fixture
def s3_client(boto3_module):
    return boto3_module.Session.return_value.client.return_value


@pytest.fixture
def s3_driver(boto3_module):
    return S3StorageDriver(
        bucket_name="user-files",
        aws_access_key_id="test-key",
        aws_secret_access_key="test-secret",
        region_name="eu-west-1",
        stream_chunk_size=2048,
    )


class TestS3DriverSetup:
    """Test cases for driver construction and error classification."""

    def test_s3_driver_initialization(self, boto3_module):
        driver = S3StorageDriver(
            bucket_name="user-files",
            aws_access_key_id="test-key",
            aws_secret_access_key="test-secret",
            region_name="us-east-1",
            endpoint_url="http://localhost:9000",
            upload_part_size=8 * 1024 * 1024
        )

        boto3_module.Session.assert_called_once_with(
            aws_access_key_id="test-key",
            aws_secret_access_key="test-secret",
            region_name="us-east-1"
        )
        boto3_module.Session.return_value.client.assert_called_once_with(
            's3', endpoint_url="http://localhost:9000"
        )
        assert driver.bucket_name == "user-files"
        assert driver.transfer_config.multipart_chunksize == 8 * 1024 * 1024

    @pytest.mark.parametrize("code", ["404", "NoSuchKey", "NotFound"])
    def test_not_found_codes(self, s3_driver, code):
        assert s3_driver.is_not_found(client_error(code))

    @pytest.mark.parametrize("code", ["403", "AccessDenied", "NoSuchBucket"])
    def test_other_codes(self, s3_driver, code):
        assert not s3_driver.is_not_found(client_error(code))


@pytest.mark.asyncio
class TestS3DriverOperations:
    """Test cases for S3 driver operations."""

    async def test_ensure_bucket_existing(self, s3_driver, s3_client):
        await s3_driver.ensure_bucket()

        s3_client.head_bucket.assert_called_once_with(Bucket="user-files")
        s3_client.create_bucket.assert_not_called()

    async def test_ensure_bucket_creates_in_region(self, s3_driver, s3_client):
        s3_client.head_bucket.side_effect = client_error("404", "HeadBucket")

        await s3_driver.ensure_bucket()

        s3_client.create_bucket.assert_called_once_with(
            Bucket="user-files",
            CreateBucketConfiguration={"LocationConstraint": "eu-west-1"}
        )

    async def test_bucket_exists_never_creates(self, s3_driver, s3_client):
        s3_client.head_bucket.side_effect = client_error("404", "HeadBucket")

        assert await s3_driver.bucket_exists() is False
        s3_client.create_bucket.assert_not_called()

    async def test_ensure_bucket_forbidden(self, s3_driver, s3_client):
        s3_client.head_bucket.side_effect = client_error("403", "HeadBucket")

        with pytest.raises(StoreOperationError):
            await s3_driver.ensure_bucket()
        s3_client.create_bucket.assert_not_called()

    async def test_stat(self, s3_driver, s3_client):
        modified = datetime(2024, 5, 1, tzinfo=UTC)
        s3_client.head_object.return_value = {
            "ContentLength": 7,
            "LastModified": modified,
            "ContentType": "image/png",
        }

        info = await s3_driver.stat(p("pics/cat.png"))

        s3_client.head_object.assert_called_once_with(Bucket="user-files", Key="user-42/pics/cat.png")
        assert info.size == 7
        assert info.content_type == "image/png"

    async def test_stat_missing(self, s3_driver, s3_client):
        s3_client.head_object.side_effect = client_error("404")

        with pytest.raises(NotFoundError):
            await s3_driver.stat(p("a.txt"))

    async def test_list_objects_uses_delimiter(self, s3_driver, s3_client):
        paginator = s3_client.get_paginator.return_value
        paginator.paginate.return_value = [
            {
                "CommonPrefixes": [{"Prefix": "user-42/docs/sub/"}],
                "Contents": [{"Key": "user-42/docs/"}, {"Key": "user-42/docs/a.txt"}],
            },
            {
                "Contents": [{"Key": "user-42/docs/b.txt"}],
            },
        ]

        listed = [path async for path in s3_driver.list_objects(p("docs/"))]

        s3_client.get_paginator.assert_called_once_with('list_objects_v2')
        paginator.paginate.assert_called_once_with(Bucket="user-files", Prefix="user-42/docs/", Delimiter="/")
        assert listed == [p("docs/sub/"), p("docs/a.txt"), p("docs/b.txt")]

    async def test_list_objects_recursive(self, s3_driver, s3_client):
        paginator = s3_client.get_paginator.return_value
        paginator.paginate.return_value = [{"Contents": [{"Key": "user-42/docs/sub/c.txt"}]}]

        listed = [path async for path in s3_driver.list_objects(p("docs/"), recursive=True)]

        paginator.paginate.assert_called_once_with(Bucket="user-files", Prefix="user-42/docs/")
        assert listed == [p("docs/sub/c.txt")]

    async def test_put_folder_marker(self, s3_driver, s3_client):
        await s3_driver.put(p("docs/"), io.BytesIO(b""), 0)

        s3_client.put_object.assert_called_once_with(
            Bucket="user-files", Key="user-42/docs/", Body=b"", ContentType="application/octet-stream"
        )
        s3_client.upload_fileobj.assert_not_called()

    async def test_put_file(self, s3_driver, s3_client):
        data = io.BytesIO(b"abc")

        await s3_driver.put(p("a.txt"), data, 3, "text/plain")

        s3_client.upload_fileobj.assert_called_once_with(
            data,
            "user-files",
            "user-42/a.txt",
            ExtraArgs={"ContentType": "text/plain"},
            Config=s3_driver.transfer_config
        )

    async def test_copy(self, s3_driver, s3_client):
        await s3_driver.copy(p("a.txt"), p("b/a.txt"))

        s3_client.copy_object.assert_called_once_with(
            Bucket="user-files",
            Key="user-42/b/a.txt",
            CopySource={"Bucket": "user-files", "Key": "user-42/a.txt"}
        )

    async def test_copy_missing_source(self, s3_driver, s3_client):
        s3_client.copy_object.side_effect = client_error("NoSuchKey", "CopyObject")

        with pytest.raises(NotFoundError):
            await s3_driver.copy(p("a.txt"), p("b.txt"))

    async def test_delete(self, s3_driver, s3_client):
        await s3_driver.delete(p("a.txt"))

        s3_client.delete_object.assert_called_once_with(Bucket="user-files", Key="user-42/a.txt")

    async def test_batch_delete_in_chunks(self, s3_driver, s3_client):
        paths = [p(f"big/{index}.bin") for index in range(MAX_DELETE_BATCH + 5)]
        s3_client.delete_objects.side_effect = [
            {},
            {"Errors": [{"Key": "user-42/big/3.bin", "Code": "AccessDenied", "Message": "Access Denied"}]},
        ]

        failed = await s3_driver.batch_delete(paths)

        assert s3_client.delete_objects.call_count == 2
        first, second = s3_client.delete_objects.call_args_list
        assert len(first.kwargs["Delete"]["Objects"]) == MAX_DELETE_BATCH
        assert len(second.kwargs["Delete"]["Objects"]) == 5
        assert first.kwargs["Delete"]["Quiet"] is True
        assert failed == {"user-42/big/3.bin": "AccessDenied: Access Denied"}

    async def test_open_stream(self, s3_driver, s3_client):
        body = MagicMock()
        body.iter_chunks.return_value = iter([b"ab", b"cd"])
        s3_client.get_object.return_value = {"Body": body}

        stream = await s3_driver.open_stream(p("a.txt"))
        chunks = [chunk async for chunk in stream.iter_chunks()]

        assert chunks == [b"ab", b"cd"]
        body.iter_chunks.assert_called_once_with(2048)
        body.close.assert_called_once()

    async def test_transport_failure(self, s3_driver, s3_client):
        s3_client.delete_object.side_effect = ConnectionError("connection reset")

        with pytest.raises(StoreOperationError) as exc_info:
            await s3_driver.delete(p("a.txt"))
        assert isinstance(exc_info.value.__cause__, ConnectionError)
