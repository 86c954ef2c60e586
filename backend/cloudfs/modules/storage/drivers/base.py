"""
Base storage driver interface.

Defines the contract the filesystem engine requires from the backing object
store. Concrete drivers implement the blocking client primitives (the
underscored methods); this base class runs them on the default executor with
a per-call timeout and maps client faults onto the filesystem error taxonomy.
"""

import asyncio
from abc import ABC, abstractmethod
from datetime import datetime
from functools import partial
from typing import (
    Any,
    AsyncIterator,
    BinaryIO,
    Callable,
    Dict,
    Iterator,
    Optional,
    Sequence,
    Tuple,
)

from cloudfs.core.exceptions import (
    FileSystemError,
    InvalidPathError,
    NotAFileError,
    NotAFolderError,
    NotFoundError,
    StoreOperationError,
)
from structlog import get_logger

from ..paths import ObjectPath
from ..schemas import ObjectInfo

logger = get_logger(__name__)

DEFAULT_UPLOAD_PART_SIZE = 10 * 1024 * 1024
DEFAULT_STREAM_CHUNK_SIZE = 64 * 1024


class ObjectStream:
    """
    Body of a stored object being downloaded.

    Holds a pooled connection of the underlying client until released. The
    owner must release it on every exit path, either with ``async with`` or
    by exhausting ``iter_chunks()`` (which releases in ``finally``, so a
    cancelled consumer frees the connection as well).
    """

    def __init__(
        self,
        driver: "ObjectStoreDriver",
        path: ObjectPath,
        chunks: Iterator[bytes],
        release: Callable[[], None]
    ):
        self.path = path
        self._driver = driver
        self._chunks = chunks
        self._release = release
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    async def iter_chunks(self) -> AsyncIterator[bytes]:
        """Yield the object body chunk by chunk, then release the stream."""
        try:
            while True:
                chunk = await self._driver._run("read", self.path, partial(next, self._chunks, None))
                if chunk is None:
                    break
                yield chunk
        finally:
            self.close()

    async def read(self) -> bytes:
        """Read the remaining body into memory."""
        return b"".join([chunk async for chunk in self.iter_chunks()])

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._release()

    async def __aenter__(self) -> "ObjectStream":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        self.close()


class ObjectStoreDriver(ABC):
    """Abstract base class for object store drivers."""

    def __init__(
        self,
        bucket_name: str,
        call_timeout: Optional[float] = None,
        upload_part_size: int = DEFAULT_UPLOAD_PART_SIZE,
        stream_chunk_size: int = DEFAULT_STREAM_CHUNK_SIZE
    ):
        """
        Initialize the storage driver.

        Args:
            bucket_name: Single shared bucket holding every user's keys
            call_timeout: Seconds allowed per store call (None waits forever)
            upload_part_size: Multipart chunk size for uploads of unknown length
            stream_chunk_size: Chunk size used when streaming downloads
        """
        self.bucket_name = bucket_name
        self.call_timeout = call_timeout
        self.upload_part_size = upload_part_size
        self.stream_chunk_size = stream_chunk_size

    # Blocking client primitives

    @abstractmethod
    def is_not_found(self, exc: BaseException) -> bool:
        """Whether a client exception means the addressed key does not exist."""

    @abstractmethod
    def _bucket_exists(self) -> bool:
        """Whether the shared bucket exists; never creates it."""

    @abstractmethod
    def _ensure_bucket(self) -> bool:
        """Create the bucket if missing; return True when it was created."""

    @abstractmethod
    def _stat_object(self, key: str) -> Tuple[int, datetime, Optional[str]]:
        """Return (size, last_modified, content_type) of a key."""

    @abstractmethod
    def _list_keys(self, prefix: str, recursive: bool) -> Iterator[str]:
        """
        Lazily enumerate keys starting with ``prefix``.

        Non-recursive listings stop at the next delimiter and report each
        implicit sub-folder once, as its prefix.
        """

    @abstractmethod
    def _put_object(self, key: str, data: BinaryIO, length: int, content_type: Optional[str]) -> None:
        """Create or overwrite a key; ``length`` is -1 when unknown."""

    @abstractmethod
    def _copy_object(self, source_key: str, destination_key: str) -> None:
        """Server-side copy of one key."""

    @abstractmethod
    def _remove_object(self, key: str) -> None:
        """Delete one key."""

    @abstractmethod
    def _remove_objects(self, keys: Sequence[str]) -> Dict[str, str]:
        """Delete many keys; return the keys that failed mapped to their cause."""

    @abstractmethod
    def _get_object(self, key: str) -> Tuple[Iterator[bytes], Callable[[], None]]:
        """Open a key for reading; return (chunk iterator, release callback)."""

    # Error mapping

    def classify_error(self, exc: BaseException, operation: str, path: Optional[ObjectPath]) -> FileSystemError:
        """
        Map a client exception onto the filesystem taxonomy.

        Not-found faults on a key become NotFoundError; everything else
        (transport, auth, throttling, timeouts) is a StoreOperationError.
        """
        target = str(path) if path is not None else self.bucket_name
        if path is not None and self.is_not_found(exc):
            return NotFoundError(target)
        return StoreOperationError(operation, target, cause=exc)

    async def _run(self, operation: str, path: Optional[ObjectPath], call: Callable[[], Any]) -> Any:
        """Run a blocking client call on the executor under the call timeout."""
        loop = asyncio.get_running_loop()
        key = path.full_key if path is not None else self.bucket_name
        try:
            return await asyncio.wait_for(loop.run_in_executor(None, call), timeout=self.call_timeout)
        except asyncio.TimeoutError as exc:
            logger.error("Object store call timed out", operation=operation, key=key, timeout=self.call_timeout)
            raise StoreOperationError(operation, str(path or self.bucket_name), cause=exc) from exc
        except Exception as exc:
            error = self.classify_error(exc, operation, path)
            if isinstance(error, StoreOperationError):
                logger.error("Object store call failed", operation=operation, key=key, error=str(exc))
            raise error from exc

    # Filesystem-facing operations

    async def ensure_bucket(self) -> None:
        """Ensure the shared bucket exists."""
        created = await self._run("ensure_bucket", None, self._ensure_bucket)
        if created:
            logger.info("Created storage bucket", bucket=self.bucket_name)

    async def bucket_exists(self) -> bool:
        """Read-only check that the shared bucket is reachable and present."""
        return await self._run("bucket_exists", None, self._bucket_exists)

    async def stat(self, path: ObjectPath) -> ObjectInfo:
        """
        Get size and modification time of an object.

        Raises:
            NotFoundError: If the key does not exist
            StoreOperationError: On any other store fault
        """
        size, last_modified, content_type = await self._run(
            "stat", path, partial(self._stat_object, path.full_key)
        )
        return ObjectInfo.from_path(path, size, last_modified, content_type)

    async def exists(self, path: ObjectPath) -> bool:
        """Check if a key exists; only not-found faults read as False."""
        try:
            await self.stat(path)
        except NotFoundError:
            return False
        return True

    async def list_objects(
        self,
        prefix: ObjectPath,
        recursive: bool = False,
        include_self: bool = False
    ) -> AsyncIterator[ObjectPath]:
        """
        Lazily enumerate the objects inside a folder.

        Args:
            prefix: Folder whose key is used as the listing prefix
            recursive: Descend into sub-folders instead of stopping at the
                first level
            include_self: Also yield the folder's own marker object

        Yields:
            ObjectPath of every key found
        """
        if not prefix.is_folder:
            raise NotAFolderError(str(prefix))

        keys = iter(self._list_keys(prefix.full_key, recursive))
        while True:
            key = await self._run("list", prefix, partial(next, keys, None))
            if key is None:
                break
            if key == prefix.full_key and not include_self:
                continue
            try:
                path = ObjectPath.from_key(key)
            except InvalidPathError:
                logger.warning("Skipping key that is not a valid path", key=key)
                continue
            yield path

    async def put(
        self,
        path: ObjectPath,
        data: BinaryIO,
        length: int = -1,
        content_type: Optional[str] = None
    ) -> None:
        """
        Create or overwrite an object.

        A zero-length put on a folder path creates the folder marker; any
        other content needs a file path.
        """
        if path.is_folder and length != 0:
            raise NotAFileError(str(path))
        await self._run(
            "put", path, partial(self._put_object, path.full_key, data, length, content_type)
        )
        logger.debug("Object stored", key=path.full_key, size=length)

    async def copy(self, source: ObjectPath, destination: ObjectPath) -> None:
        """Server-side copy; a missing source raises NotFoundError."""
        await self._run(
            "copy", source, partial(self._copy_object, source.full_key, destination.full_key)
        )

    async def delete(self, path: ObjectPath) -> None:
        """Delete one object; deleting a missing key is not an error."""
        await self._run("delete", path, partial(self._remove_object, path.full_key))

    async def batch_delete(self, paths: Sequence[ObjectPath]) -> Dict[str, str]:
        """
        Best-effort delete of many objects.

        Returns:
            Failed full keys mapped to the store's reason; empty on success.
            Per-key failures are never raised, the caller decides.
        """
        if not paths:
            return {}
        keys = [path.full_key for path in paths]
        return await self._run("batch_delete", None, partial(self._remove_objects, keys))

    async def open_stream(self, path: ObjectPath) -> ObjectStream:
        """
        Open a file for reading.

        The returned stream holds a connection; the caller must release it.
        """
        if path.is_folder:
            raise NotAFileError(str(path))
        chunks, release = await self._run("get", path, partial(self._get_object, path.full_key))
        return ObjectStream(self, path, chunks, release)
