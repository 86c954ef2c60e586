"""
Storage router.

This module provides API endpoints for a user's folders and files.
"""
from typing import Optional
from urllib.parse import quote

from cloudfs.core.config import settings
from cloudfs.core.exceptions import InvalidPathError
from cloudfs.core.validators import CommonValidators
from fastapi import (
    APIRouter,
    Depends,
    File,
    Form,
    HTTPException,
    Query,
    Response,
    UploadFile,
    status,
)
from fastapi.responses import StreamingResponse
from starlette.types import Receive, Scope, Send
from structlog import get_logger

from .dependencies import (
    get_current_user_id,
    get_file_service,
    get_folder_service,
    get_navigation_service,
)
from .drivers.base import ObjectStream
from .files import FileService
from .folders import FolderService
from .navigation import NavigationService
from .schemas import (
    Breadcrumb,
    FileMoveRequest,
    FolderContentsResponse,
    FolderCreateRequest,
    FolderMoveRequest,
    MoveAction,
    MoveTargetsResponse,
    ObjectEntry,
    ObjectInfo,
    PathResponse,
)

logger = get_logger(__name__)

router = APIRouter()


# Folders

@router.get("/folders", response_model=FolderContentsResponse)
async def get_folder_contents(
    path: Optional[str] = Query(None, description="Folder to list, the root when omitted"),
    user_id: int = Depends(get_current_user_id),
    navigation: NavigationService = Depends(get_navigation_service),
) -> FolderContentsResponse:
    """List a folder with its breadcrumb trail."""
    contents = await navigation.get_folder_contents(user_id, path)
    return FolderContentsResponse(
        path=contents.folder.path,
        objects=[ObjectEntry.from_path(entry) for entry in contents.objects],
        breadcrumbs=[Breadcrumb.from_crumb(crumb) for crumb in contents.breadcrumbs]
    )


@router.post("/folders", response_model=PathResponse, status_code=status.HTTP_201_CREATED)
async def create_folder(
    request: FolderCreateRequest,
    user_id: int = Depends(get_current_user_id),
    folders: FolderService = Depends(get_folder_service),
) -> PathResponse:
    """Create a new empty folder."""
    folder = await folders.create_folder(user_id, request.parent_path, request.name)
    return PathResponse(path=folder.path)


@router.patch("/folders", response_model=PathResponse)
async def move_folder(
    request: FolderMoveRequest,
    user_id: int = Depends(get_current_user_id),
    folders: FolderService = Depends(get_folder_service),
) -> PathResponse:
    """Rename a folder in place or move it into another folder."""
    if request.action is MoveAction.RENAME:
        folder = await folders.rename_folder(user_id, request.path, request.new_name)
    else:
        folder = await folders.move_folder(user_id, request.path, request.target_path)
    return PathResponse(path=folder.path)


@router.delete("/folders", status_code=status.HTTP_204_NO_CONTENT)
async def delete_folder(
    path: str = Query(..., description="Folder to delete with everything inside"),
    user_id: int = Depends(get_current_user_id),
    folders: FolderService = Depends(get_folder_service),
) -> Response:
    await folders.delete_folder(user_id, path)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/folders/move-targets", response_model=MoveTargetsResponse)
async def get_move_targets(
    path: str = Query(..., description="Folder about to be moved"),
    user_id: int = Depends(get_current_user_id),
    folders: FolderService = Depends(get_folder_service),
) -> MoveTargetsResponse:
    """Folders the given folder may be moved into."""
    targets = await folders.get_move_targets(user_id, path)
    return MoveTargetsResponse(paths=[target.path for target in targets])


# Files

@router.post("/files", response_model=PathResponse, status_code=status.HTTP_201_CREATED)
async def upload_file(
    file: UploadFile = File(...),
    folder_path: str = Form("", description="Folder to upload into, the root when empty"),
    user_id: int = Depends(get_current_user_id),
    files: FileService = Depends(get_file_service),
) -> PathResponse:
    """
    Upload a file into a folder.

    An existing file with the same name is replaced.
    """
    if not file.filename:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Uploaded file has no name"
        )

    try:
        CommonValidators.validate_object_name(file.filename)
    except ValueError as e:
        raise InvalidPathError(file.filename, str(e))

    size = file.size if file.size is not None else -1
    if size > settings.storage_max_file_size:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=f"File exceeds the maximum size of {settings.storage_max_file_size} bytes"
        )

    try:
        path = await files.upload_file(
            user_id,
            folder_path,
            file.filename,
            file.file,
            length=size,
            content_type=file.content_type
        )
    finally:
        await file.close()

    logger.info("File uploaded", user_id=user_id, path=path.path, size=size)
    return PathResponse(path=path.path)


@router.get("/files/info", response_model=ObjectInfo)
async def get_file_info(
    path: str = Query(..., description="File to describe"),
    user_id: int = Depends(get_current_user_id),
    files: FileService = Depends(get_file_service),
) -> ObjectInfo:
    return await files.get_file_info(user_id, path)


class ObjectStreamBody:
    """
    Async iterator over an object's chunks for a streaming response.

    ``aclose()`` releases the stream even when iteration never started.
    """

    def __init__(self, stream: ObjectStream):
        self.stream = stream
        self._chunks = stream.iter_chunks()

    def __aiter__(self) -> "ObjectStreamBody":
        return self

    async def __anext__(self) -> bytes:
        return await self._chunks.__anext__()

    async def aclose(self) -> None:
        try:
            await self._chunks.aclose()
        finally:
            self.stream.close()


class ObjectStreamResponse(StreamingResponse):
    """Streaming response that always releases the object stream it serves."""

    def __init__(self, stream: ObjectStream, **kwargs):
        super().__init__(ObjectStreamBody(stream), **kwargs)

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        try:
            await super().__call__(scope, receive, send)
        finally:
            await self.body_iterator.aclose()


@router.get("/files/download")
async def download_file(
    path: str = Query(..., description="File to download"),
    user_id: int = Depends(get_current_user_id),
    files: FileService = Depends(get_file_service),
) -> ObjectStreamResponse:
    """Stream a file's content."""
    info = await files.get_file_info(user_id, path)
    stream = await files.open_file(user_id, path)

    headers = {
        "Content-Disposition": f"attachment; filename*=UTF-8''{quote(info.name)}",
        "Content-Length": str(info.size),
    }
    return ObjectStreamResponse(
        stream,
        media_type=info.content_type or "application/octet-stream",
        headers=headers
    )


@router.patch("/files", response_model=PathResponse)
async def move_file(
    request: FileMoveRequest,
    user_id: int = Depends(get_current_user_id),
    files: FileService = Depends(get_file_service),
) -> PathResponse:
    """Rename a file in place or move it into another folder."""
    if request.action is MoveAction.RENAME:
        path = await files.rename_file(user_id, request.path, request.new_name)
    else:
        path = await files.move_file(user_id, request.path, request.target_path)
    return PathResponse(path=path.path)


@router.delete("/files", status_code=status.HTTP_204_NO_CONTENT)
async def delete_file(
    path: str = Query(..., description="File to delete"),
    user_id: int = Depends(get_current_user_id),
    files: FileService = Depends(get_file_service),
) -> Response:
    await files.delete_file(user_id, path)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
