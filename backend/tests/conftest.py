"""
Shared test fixtures and utilities for the test suite.

This module provides an in-memory object store driver that records every
primitive call, plus service fixtures built on top of it.
"""
from datetime import datetime, timezone
from typing import Callable, Dict, Iterator, List, Optional, Sequence, Tuple

import pytest
from cloudfs.modules.storage.drivers.base import ObjectStoreDriver
from cloudfs.modules.storage.files import FileService
from cloudfs.modules.storage.folders import FolderService
from cloudfs.modules.storage.navigation import NavigationService
from cloudfs.modules.storage.service import StorageService

TEST_BUCKET = "test-user-files"
USER_ID = 42
OTHER_USER_ID = 7

MUTATING_CALLS = {"put", "copy", "delete", "batch_delete"}


class StoreFault(Exception):
    """Client error raised by the in-memory store."""

    def __init__(self, code: str, key: str = ""):
        self.code = code
        self.key = key
        super().__init__(f"{code}: {key}")


class InMemoryStoreDriver(ObjectStoreDriver):
    """
    Object store driver keeping objects in a dict.

    Listings emulate S3: lexicographic order, and non-recursive listings
    report each sub-folder once as its prefix even without a marker.
    """

    def __init__(self, bucket_name: str = TEST_BUCKET, **options):
        options.setdefault("stream_chunk_size", 4)
        super().__init__(bucket_name, **options)
        self.objects: Dict[str, Tuple[bytes, datetime, Optional[str]]] = {}
        self.calls: List[Tuple] = []
        self.released: List[str] = []
        self.bucket_created = False

        # Failure injection
        self.fail_copy_for = set()
        self.fail_delete_for = set()
        self.batch_failures: Dict[str, str] = {}
        self.unavailable = False

    def seed(self, *keys: str, content: bytes = b"data") -> None:
        """Store keys directly, without recording calls; markers get no content."""
        for key in keys:
            body = b"" if key.endswith("/") else content
            self.objects[key] = (body, datetime(2024, 1, 1, tzinfo=timezone.utc), None)

    def keys(self) -> List[str]:
        return sorted(self.objects)

    def mutating_calls(self) -> List[Tuple]:
        return [call for call in self.calls if call[0] in MUTATING_CALLS]

    def _check_available(self) -> None:
        if self.unavailable:
            raise StoreFault("ServiceUnavailable")

    def is_not_found(self, exc: BaseException) -> bool:
        return isinstance(exc, StoreFault) and exc.code == "NoSuchKey"

    def _bucket_exists(self) -> bool:
        self.calls.append(("bucket_exists",))
        self._check_available()
        return self.bucket_created

    def _ensure_bucket(self) -> bool:
        self.calls.append(("ensure_bucket",))
        self._check_available()
        if self.bucket_created:
            return False
        self.bucket_created = True
        return True

    def _stat_object(self, key: str) -> Tuple[int, datetime, Optional[str]]:
        self.calls.append(("stat", key))
        self._check_available()
        if key not in self.objects:
            raise StoreFault("NoSuchKey", key)
        body, modified, content_type = self.objects[key]
        return len(body), modified, content_type

    def _list_keys(self, prefix: str, recursive: bool) -> Iterator[str]:
        self.calls.append(("list", prefix, recursive))
        self._check_available()
        seen_prefixes = set()
        for key in sorted(self.objects):
            if not key.startswith(prefix):
                continue
            if recursive:
                yield key
                continue
            head, delimiter, _ = key[len(prefix):].partition("/")
            if not delimiter:
                yield key
                continue
            common = prefix + head + "/"
            if common not in seen_prefixes:
                seen_prefixes.add(common)
                yield common

    def _put_object(self, key: str, data, length: int, content_type: Optional[str]) -> None:
        self.calls.append(("put", key))
        self._check_available()
        body = data.read()
        self.objects[key] = (body, datetime.now(timezone.utc), content_type)

    def _copy_object(self, source_key: str, destination_key: str) -> None:
        self.calls.append(("copy", source_key, destination_key))
        self._check_available()
        if source_key in self.fail_copy_for:
            raise StoreFault("InternalError", source_key)
        if source_key not in self.objects:
            raise StoreFault("NoSuchKey", source_key)
        self.objects[destination_key] = self.objects[source_key]

    def _remove_object(self, key: str) -> None:
        self.calls.append(("delete", key))
        self._check_available()
        if key in self.fail_delete_for:
            raise StoreFault("InternalError", key)
        self.objects.pop(key, None)

    def _remove_objects(self, keys: Sequence[str]) -> Dict[str, str]:
        self.calls.append(("batch_delete", tuple(keys)))
        self._check_available()
        failed = {}
        for key in keys:
            if key in self.batch_failures:
                failed[key] = self.batch_failures[key]
            else:
                self.objects.pop(key, None)
        return failed

    def _get_object(self, key: str) -> Tuple[Iterator[bytes], Callable[[], None]]:
        self.calls.append(("get", key))
        self._check_available()
        if key not in self.objects:
            raise StoreFault("NoSuchKey", key)
        body = self.objects[key][0]
        size = self.stream_chunk_size
        chunks = iter([body[i:i + size] for i in range(0, len(body), size)])
        return chunks, lambda: self.released.append(key)


@pytest.fixture
def driver() -> InMemoryStoreDriver:
    """In-memory store driver."""
    return InMemoryStoreDriver()


@pytest.fixture
def storage(driver) -> StorageService:
    return StorageService(driver)


@pytest.fixture
def folder_service(storage) -> FolderService:
    return FolderService(storage)


@pytest.fixture
def file_service(storage) -> FileService:
    return FileService(storage)


@pytest.fixture
def navigation_service(storage) -> NavigationService:
    return NavigationService(storage)
