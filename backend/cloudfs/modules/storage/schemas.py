"""
Storage module schemas.

Pydantic models for storage-related data transfer objects.
"""

from datetime import datetime
from enum import Enum
from typing import List, Optional

from cloudfs.core.validators import CommonValidators
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .paths import Breadcrumb as PathBreadcrumb
from .paths import ObjectPath


class ObjectInfo(BaseModel):
    """Stat result for a single stored object."""

    name: str = Field(..., description="Object name (last path segment)")
    path: str = Field(..., description="Path relative to the user's root")
    size: int = Field(..., description="Size in bytes")
    last_modified: datetime = Field(..., description="Last modification timestamp")
    content_type: Optional[str] = Field(None, description="MIME type reported by the store")

    model_config = ConfigDict(from_attributes=True)

    @classmethod
    def from_path(
        cls,
        path: ObjectPath,
        size: int,
        last_modified: datetime,
        content_type: Optional[str] = None
    ) -> "ObjectInfo":
        return cls(
            name=path.display_name,
            path=path.path,
            size=size,
            last_modified=last_modified,
            content_type=content_type
        )


class ObjectEntry(BaseModel):
    """One row of a folder listing."""

    name: str = Field(..., description="Display name")
    path: str = Field(..., description="Path relative to the user's root")
    is_folder: bool = Field(..., description="Whether the entry is a folder")

    @classmethod
    def from_path(cls, path: ObjectPath) -> "ObjectEntry":
        return cls(name=path.display_name, path=path.path, is_folder=path.is_folder)


class Breadcrumb(BaseModel):
    """Link to one ancestor of the folder being shown."""

    name: str
    path: str

    @classmethod
    def from_crumb(cls, crumb: PathBreadcrumb) -> "Breadcrumb":
        return cls(name=crumb.name, path=crumb.path.path)


class FolderContentsResponse(BaseModel):
    """Folder listing with its breadcrumb trail."""

    path: str = Field(..., description="Folder being listed")
    objects: List[ObjectEntry] = Field(..., description="Immediate children")
    breadcrumbs: List[Breadcrumb] = Field(..., description="Trail from the root to the folder")


class FolderCreateRequest(BaseModel):
    """Folder creation request schema."""

    parent_path: str = Field("", description="Folder to create the new folder in")
    name: str = Field(..., min_length=1, max_length=255, description="Folder name")

    @field_validator('name')
    @classmethod
    def validate_name(cls, v):
        """Validate folder name."""
        return CommonValidators.validate_object_name(v)


class MoveAction(str, Enum):
    """How a move request should be interpreted."""

    RENAME = "rename"
    MOVE = "move"


class _MoveRequest(BaseModel):
    path: str = Field(..., description="Object to rename or move")
    action: MoveAction = Field(..., description="'rename' keeps the parent, 'move' keeps the name")
    new_name: Optional[str] = Field(None, description="New name, for 'rename'")
    target_path: Optional[str] = Field(None, description="Destination folder, for 'move'")

    @field_validator('new_name')
    @classmethod
    def validate_new_name(cls, v):
        if v is not None:
            return CommonValidators.validate_object_name(v)
        return v

    @model_validator(mode='after')
    def check_action_arguments(self):
        if self.action is MoveAction.RENAME and self.new_name is None:
            raise ValueError("new_name is required to rename")
        if self.action is MoveAction.MOVE and self.target_path is None:
            raise ValueError("target_path is required to move")
        return self


class FolderMoveRequest(_MoveRequest):
    """Rename a folder in place or move it into another folder."""


class FileMoveRequest(_MoveRequest):
    """Rename a file in place or move it into another folder."""


class PathResponse(BaseModel):
    """Resulting path of a create or move."""

    path: str = Field(..., description="Path relative to the user's root")


class MoveTargetsResponse(BaseModel):
    """Folders a given folder may be moved into."""

    paths: List[str] = Field(..., description="Candidate destination folders")
