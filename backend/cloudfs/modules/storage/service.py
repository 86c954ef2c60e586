"""
Storage service layer.

Folder and file operations composed from object store primitives. None of
the primitives is hierarchy-aware or atomic across keys, so every composite
operation here documents what a failure part-way leaves behind.

Concurrency: no locks are taken. Two structural operations racing on the
same subtree (two moves, or a create and a delete) interleave key by key
with the store's last-write-wins semantics; correctness is not guaranteed in
that case.
"""

import io
from typing import BinaryIO, List, Optional

from cloudfs.core.exceptions import (
    AlreadyExistsError,
    FileSystemError,
    InvalidPathError,
    NotAFileError,
    NotAFolderError,
    NotFoundError,
    PartialOperationError,
)
from cloudfs.core.logger import log_error
from structlog import get_logger

from .drivers.base import ObjectStoreDriver, ObjectStream
from .paths import ObjectPath
from .schemas import ObjectInfo

logger = get_logger(__name__)


def require_folder(path: ObjectPath) -> None:
    if not path.is_folder:
        raise NotAFolderError(str(path))


def require_file(path: ObjectPath) -> None:
    if path.is_folder:
        raise NotAFileError(str(path))


class StorageService:
    """Virtual filesystem operations for all users of one bucket."""

    def __init__(self, driver: ObjectStoreDriver):
        """
        Initialize storage service.

        Args:
            driver: Object store the user keys live in
        """
        self.driver = driver

    # Existence checks

    async def folder_exists(self, path: ObjectPath) -> bool:
        """
        Check if a folder exists.

        A folder exists when its marker exists or when any key lies under
        its prefix (folders created implicitly by uploads have no marker).
        """
        require_folder(path)
        if path.is_root or await self.driver.exists(path):
            return True

        listing = self.driver.list_objects(path)
        try:
            async for _ in listing:
                return True
        finally:
            await listing.aclose()
        return False

    async def file_exists(self, path: ObjectPath) -> bool:
        require_file(path)
        return await self.driver.exists(path)

    async def is_occupied(self, path: ObjectPath) -> bool:
        """Check if a file or a folder already uses the name of ``path``."""
        if path.is_root:
            return True
        if await self.driver.exists(path.to_file()):
            return True
        return await self.folder_exists(path.to_folder())

    async def ensure_folder(self, path: ObjectPath) -> None:
        """
        Make sure ``path`` can receive objects, creating its marker if absent.

        Raises:
            NotAFolderError: If a file already uses the folder's name
        """
        require_folder(path)
        if path.is_root:
            return
        if await self.driver.exists(path.to_file()):
            raise NotAFolderError(str(path))
        if not await self.folder_exists(path):
            await self.driver.put(path, io.BytesIO(b""), 0)
            logger.info("Folder created on demand", key=path.full_key)

    # Creation

    async def create_folder(self, user_id: int, raw_path: str) -> ObjectPath:
        """
        Create an empty folder.

        Args:
            user_id: Owner of the folder
            raw_path: Folder-shaped path (trailing delimiter)

        Returns:
            The created folder path

        Raises:
            NotAFolderError: If the path is file-shaped
            AlreadyExistsError: If a file or folder already uses the name;
                nothing is written in that case
        """
        path = ObjectPath.parse(raw_path, user_id)
        require_folder(path)
        if await self.is_occupied(path):
            raise AlreadyExistsError(str(path))

        await self.driver.put(path, io.BytesIO(b""), 0)
        logger.info("Folder created", user_id=user_id, key=path.full_key)
        return path

    async def create_file(
        self,
        user_id: int,
        raw_path: str,
        data: BinaryIO,
        length: int = -1,
        content_type: Optional[str] = None
    ) -> ObjectPath:
        """
        Store a file, overwriting any previous content (last writer wins).

        Args:
            user_id: Owner of the file
            raw_path: File-shaped path
            data: Binary content stream
            length: Content length in bytes, -1 when unknown
            content_type: MIME type to record on the object
        """
        path = ObjectPath.parse(raw_path, user_id)
        require_file(path)

        await self.driver.put(path, data, length, content_type)
        logger.info("File stored", user_id=user_id, key=path.full_key, size=length)
        return path

    # Moves

    async def move_object(self, old: ObjectPath, new: ObjectPath) -> None:
        """
        Move a single key by copy then delete.

        Not atomic: if the delete fails (or the process dies) after the copy,
        the object exists under both keys.
        """
        if old == new:
            return
        await self.driver.copy(old, new)
        await self.driver.delete(old)

    async def move_file(self, old: ObjectPath, new: ObjectPath) -> None:
        require_file(old)
        require_file(new)
        await self.move_object(old, new)
        logger.info("File moved", source=old.full_key, destination=new.full_key)

    async def move_folder(self, old: ObjectPath, new: ObjectPath) -> None:
        """
        Move a folder with its whole subtree.

        The subtree listing is taken once, before the first mutation, so
        objects created under ``old`` while the move runs may stay behind.
        Each object moves independently; nothing is rolled back.

        Raises:
            NotAFolderError: If either path is file-shaped
            InvalidPathError: If ``new`` lies inside ``old``
            NotFoundError: If ``old`` has no objects at all
            PartialOperationError: If an object failed to move; the folder
                is then split between ``old`` and ``new``
        """
        require_folder(old)
        require_folder(new)
        if old == new:
            return
        if new.is_descendant_of(old):
            raise InvalidPathError(str(new), f"cannot move '{old}' into itself")

        descendants = [
            path async for path in self.driver.list_objects(old, recursive=True, include_self=True)
        ]
        if not descendants:
            raise NotFoundError(str(old))

        moved: List[str] = []
        for source in descendants:
            target = source.replace_prefix(old, new)
            try:
                await self.move_object(source, target)
            except FileSystemError as exc:
                logger.error(
                    "Folder move stopped part-way",
                    source=old.full_key,
                    destination=new.full_key,
                    moved=len(moved),
                    remaining=len(descendants) - len(moved),
                    **log_error(exc, {"key": source.full_key})
                )
                raise PartialOperationError(
                    "move",
                    str(old),
                    completed=moved,
                    failed={source.full_key: exc.message},
                    cause=exc
                ) from exc
            moved.append(source.full_key)

        logger.info("Folder moved", source=old.full_key, destination=new.full_key, objects=len(moved))

    # Deletion

    async def delete_file(self, user_id: int, raw_path: str) -> ObjectPath:
        path = ObjectPath.parse(raw_path, user_id)
        require_file(path)

        await self.driver.delete(path)
        logger.info("File deleted", user_id=user_id, key=path.full_key)
        return path

    async def delete_folder(self, user_id: int, raw_path: str) -> ObjectPath:
        """
        Delete a folder with its whole subtree in one batch request.

        Raises:
            InvalidPathError: For the user's root folder
            NotFoundError: If the folder has no objects at all
            PartialOperationError: If the store refused some keys; the
                others are already gone
        """
        path = ObjectPath.parse(raw_path, user_id)
        require_folder(path)
        if path.is_root:
            raise InvalidPathError(str(path), "the root folder cannot be deleted")

        descendants = [
            child async for child in self.driver.list_objects(path, recursive=True, include_self=True)
        ]
        if not descendants:
            raise NotFoundError(str(path))

        failed = await self.driver.batch_delete(descendants)
        if failed:
            for key, reason in failed.items():
                logger.error("Failed to delete object", user_id=user_id, key=key, reason=reason)
            completed = [child.full_key for child in descendants if child.full_key not in failed]
            raise PartialOperationError("delete", str(path), completed=completed, failed=failed)

        logger.info("Folder deleted", user_id=user_id, key=path.full_key, objects=len(descendants))
        return path

    # Listing and reading

    async def get_folder_objects(self, user_id: int, raw_path: Optional[str]) -> List[ObjectPath]:
        """Immediate children of a folder, without the folder's own marker."""
        path = ObjectPath.parse(raw_path, user_id)
        require_folder(path)
        return [child async for child in self.driver.list_objects(path)]

    async def list_targets_for_move(self, user_id: int, raw_exclude_path: str) -> List[ObjectPath]:
        """
        Folders that ``raw_exclude_path`` could be moved into.

        Every folder of the user (explicit markers and folders implied by
        deeper keys) except the root, the excluded path and its subtree.
        """
        excluded = ObjectPath.parse(raw_exclude_path, user_id)
        root = ObjectPath.root(user_id)

        folders = set()
        async for path in self.driver.list_objects(root, recursive=True):
            if path.is_folder:
                folders.add(path)
            folders.update(path.ancestors())

        targets = [
            folder for folder in folders
            if not folder.is_root and not folder.is_descendant_of(excluded)
        ]
        return sorted(targets, key=lambda folder: folder.segments)

    async def get_file_info(self, user_id: int, raw_path: str) -> ObjectInfo:
        path = ObjectPath.parse(raw_path, user_id)
        require_file(path)
        return await self.driver.stat(path)

    async def open_file(self, user_id: int, raw_path: str) -> ObjectStream:
        """Open a file for download; the caller must release the stream."""
        path = ObjectPath.parse(raw_path, user_id)
        require_file(path)
        return await self.driver.open_stream(path)
