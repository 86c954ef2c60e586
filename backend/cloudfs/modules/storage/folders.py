"""
Folder actions offered to users.

Decides what a rename or a move means before handing the subtree move to
StorageService.
"""

from typing import List, Optional

from cloudfs.core.exceptions import AlreadyExistsError, InvalidPathError, NotFoundError
from structlog import get_logger

from .paths import ObjectPath
from .service import StorageService, require_folder

logger = get_logger(__name__)


class FolderService:
    """Create, rename, move and delete folders of one user at a time."""

    def __init__(self, storage: StorageService):
        self.storage = storage

    def _movable_folder(self, user_id: int, raw_path: str) -> ObjectPath:
        path = ObjectPath.parse(raw_path, user_id)
        require_folder(path)
        if path.is_root:
            raise InvalidPathError(str(path), "the root folder cannot be moved")
        return path

    async def get_folder_objects(self, user_id: int, raw_path: Optional[str]) -> List[ObjectPath]:
        return await self.storage.get_folder_objects(user_id, raw_path)

    async def create_folder(self, user_id: int, parent_path: str, name: str) -> ObjectPath:
        """Create folder ``name`` inside ``parent_path``."""
        parent = ObjectPath.parse(parent_path, user_id)
        require_folder(parent)
        folder = parent.child(name, folder=True)
        return await self.storage.create_folder(user_id, folder.path)

    async def rename_folder(self, user_id: int, raw_path: str, new_name: str) -> ObjectPath:
        """
        Rename a folder in place.

        Raises:
            AlreadyExistsError: If the new name is taken in the parent folder
        """
        old = self._movable_folder(user_id, raw_path)
        new = old.parent().child(new_name, folder=True)
        if new == old:
            return old
        if await self.storage.is_occupied(new):
            raise AlreadyExistsError(str(new))

        await self.storage.move_folder(old, new)
        logger.info("Folder renamed", user_id=user_id, source=old.path, destination=new.path)
        return new

    async def move_folder(self, user_id: int, raw_path: str, target_path: str) -> ObjectPath:
        """
        Move a folder into another folder, keeping its name.

        The target folder is created when absent. Moving a folder into its
        current parent changes nothing.

        Raises:
            NotFoundError: If the folder does not exist; nothing is written
            NotAFolderError: If the target is file-shaped or a file uses its name
            InvalidPathError: If the target is the folder itself or inside it
            AlreadyExistsError: If the target already holds an object with
                the folder's name
        """
        old = self._movable_folder(user_id, raw_path)
        target = ObjectPath.parse(target_path, user_id)
        require_folder(target)
        if target.is_descendant_of(old):
            raise InvalidPathError(str(target), f"cannot move '{old}' into itself")

        new = target.child(old.display_name, folder=True)
        if new == old:
            return old

        if not await self.storage.folder_exists(old):
            raise NotFoundError(str(old))
        await self.storage.ensure_folder(target)
        if await self.storage.is_occupied(new):
            raise AlreadyExistsError(str(new))

        await self.storage.move_folder(old, new)
        logger.info("Folder moved into folder", user_id=user_id, source=old.path, destination=new.path)
        return new

    async def delete_folder(self, user_id: int, raw_path: str) -> ObjectPath:
        return await self.storage.delete_folder(user_id, raw_path)

    async def get_move_targets(self, user_id: int, raw_path: str) -> List[ObjectPath]:
        return await self.storage.list_targets_for_move(user_id, raw_path)
