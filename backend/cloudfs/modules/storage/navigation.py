"""
Folder navigation: listing plus breadcrumb trail for the folder page.
"""

from typing import List, NamedTuple, Optional

from cloudfs.core.exceptions import FileSystemError, InvalidPathError, NotFoundError
from structlog import get_logger

from .paths import Breadcrumb, ObjectPath, assemble_breadcrumbs
from .service import StorageService

logger = get_logger(__name__)


class FolderContents(NamedTuple):
    folder: ObjectPath
    objects: List[ObjectPath]
    breadcrumbs: List[Breadcrumb]


def _listing_order(path: ObjectPath):
    # Folders first, then case-insensitive by name
    return (not path.is_folder, path.display_name.lower(), path.display_name)


class NavigationService:
    """Read-only view of a user's folders."""

    def __init__(self, storage: StorageService):
        self.storage = storage

    async def get_folder_contents(self, user_id: int, raw_path: Optional[str]) -> FolderContents:
        """
        List a folder and build its breadcrumb trail.

        The path usually comes straight from a link or the address bar, so
        every failure (malformed path, missing folder, store fault) is
        reported as InvalidPathError with the original error as its cause.
        """
        try:
            folder = ObjectPath.parse(raw_path, user_id)
            objects = await self.storage.get_folder_objects(user_id, folder.path)
            if not objects and not await self.storage.folder_exists(folder):
                raise NotFoundError(str(folder))
        except FileSystemError as exc:
            logger.warning(
                "Folder cannot be shown",
                user_id=user_id,
                path=raw_path,
                error_code=exc.error_code,
                error=exc.message
            )
            raise InvalidPathError(raw_path or "/", "folder does not exist or cannot be listed") from exc

        return FolderContents(
            folder=folder,
            objects=sorted(objects, key=_listing_order),
            breadcrumbs=assemble_breadcrumbs(folder)
        )
