"""
File actions offered to users.
"""

from typing import BinaryIO, Optional

from cloudfs.core.exceptions import AlreadyExistsError, NotFoundError
from structlog import get_logger

from .drivers.base import ObjectStream
from .paths import ObjectPath
from .schemas import ObjectInfo
from .service import StorageService, require_file, require_folder

logger = get_logger(__name__)


class FileService:
    """Upload, rename, move, read and delete files of one user at a time."""

    def __init__(self, storage: StorageService):
        self.storage = storage

    async def upload_file(
        self,
        user_id: int,
        folder_path: str,
        filename: str,
        data: BinaryIO,
        length: int = -1,
        content_type: Optional[str] = None
    ) -> ObjectPath:
        """Store ``filename`` inside ``folder_path``, replacing any previous version."""
        folder = ObjectPath.parse(folder_path, user_id)
        require_folder(folder)
        path = folder.child(filename)
        return await self.storage.create_file(user_id, path.path, data, length, content_type)

    async def rename_file(self, user_id: int, raw_path: str, new_name: str) -> ObjectPath:
        """
        Rename a file in place.

        Raises:
            NotFoundError: If the file does not exist
            AlreadyExistsError: If the new name is taken in the parent folder
        """
        old = ObjectPath.parse(raw_path, user_id)
        require_file(old)
        new = old.parent().child(new_name)
        if new == old:
            return old
        if not await self.storage.file_exists(old):
            raise NotFoundError(str(old))
        if await self.storage.is_occupied(new):
            raise AlreadyExistsError(str(new))

        await self.storage.move_file(old, new)
        return new

    async def move_file(self, user_id: int, raw_path: str, target_path: str) -> ObjectPath:
        """
        Move a file into another folder, keeping its name.

        The target folder is created when absent, and only once the file
        is known to exist.

        Raises:
            NotFoundError: If the file does not exist
            AlreadyExistsError: If the target already holds the name
        """
        old = ObjectPath.parse(raw_path, user_id)
        require_file(old)
        target = ObjectPath.parse(target_path, user_id)
        require_folder(target)

        new = target.child(old.display_name)
        if new == old:
            return old

        if not await self.storage.file_exists(old):
            raise NotFoundError(str(old))
        await self.storage.ensure_folder(target)
        if await self.storage.is_occupied(new):
            raise AlreadyExistsError(str(new))

        await self.storage.move_file(old, new)
        return new

    async def delete_file(self, user_id: int, raw_path: str) -> ObjectPath:
        return await self.storage.delete_file(user_id, raw_path)

    async def get_file_info(self, user_id: int, raw_path: str) -> ObjectInfo:
        return await self.storage.get_file_info(user_id, raw_path)

    async def open_file(self, user_id: int, raw_path: str) -> ObjectStream:
        return await self.storage.open_file(user_id, raw_path)
