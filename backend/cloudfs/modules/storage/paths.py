"""
Virtual path model.

Maps the folders and files a user sees onto flat object store keys:

    a/b/       ->  user-42/a/b/       (folder, ends with the delimiter)
    a/b/x.txt  ->  user-42/a/b/x.txt  (file)
    ""         ->  user-42/           (the user's root folder)

Every hierarchy rule (parents, descendants, prefix rewriting, breadcrumbs)
lives here. Nothing in this module talks to the object store.
"""

import re
from dataclasses import dataclass
from typing import Iterator, List, NamedTuple, Optional, Tuple

from cloudfs.core.exceptions import InvalidPathError, NotAFolderError

DELIMITER = "/"

# S3 and MinIO reject keys longer than this many UTF-8 bytes
MAX_KEY_BYTES = 1024

_USER_KEY = re.compile(r"^user-(\d+)/(.*)$", re.DOTALL)
_CONTROL_CHARS = re.compile(r"[\x00-\x1f\x7f]")
_RELATIVE_SEGMENTS = {".", ".."}


def user_prefix(user_id: int) -> str:
    """Key prefix reserved for one user's objects."""
    return f"user-{user_id}{DELIMITER}"


def _check_segment(segment: str, shown_path: str) -> None:
    if not segment:
        raise InvalidPathError(shown_path, "empty path segment")
    if DELIMITER in segment:
        raise InvalidPathError(shown_path, f"segment '{segment}' contains '{DELIMITER}'")
    if segment in _RELATIVE_SEGMENTS:
        raise InvalidPathError(shown_path, "relative segments are not allowed")
    if _CONTROL_CHARS.search(segment):
        raise InvalidPathError(shown_path, "control characters are not allowed")


@dataclass(frozen=True, eq=False)
class ObjectPath:
    """A folder or file inside one user's namespace.

    Value type: equal (and hashed) by fully-qualified key, rebuilt on every
    request, never stored.

    Attributes:
        user_id: Owner whose key prefix scopes the path.
        segments: Path components below the user's root.
        is_folder: True for folders (key ends with the delimiter).
    """

    user_id: int
    segments: Tuple[str, ...] = ()
    is_folder: bool = True

    def __post_init__(self) -> None:
        object.__setattr__(self, "segments", tuple(self.segments))
        shown = DELIMITER + DELIMITER.join(self.segments)

        if isinstance(self.user_id, bool) or not isinstance(self.user_id, int) or self.user_id < 0:
            raise InvalidPathError(shown, f"invalid user id {self.user_id!r}")
        if not self.segments and not self.is_folder:
            raise InvalidPathError(shown, "the root can only be a folder")
        for segment in self.segments:
            _check_segment(segment, shown)
        if len(self.full_key.encode("utf-8")) > MAX_KEY_BYTES:
            raise InvalidPathError(shown, f"key exceeds {MAX_KEY_BYTES} bytes")

    @classmethod
    def root(cls, user_id: int) -> "ObjectPath":
        """The user's root folder."""
        return cls(user_id)

    @classmethod
    def parse(cls, raw: Optional[str], user_id: int) -> "ObjectPath":
        """
        Parse a user-relative path string.

        ``None``, ``""`` and ``"/"`` name the root folder. One leading
        delimiter is tolerated; a trailing delimiter marks a folder.

        Args:
            raw: Path as typed or linked by the user (e.g. ``docs/a.txt``)
            user_id: Authenticated user the path belongs to

        Returns:
            The validated ObjectPath

        Raises:
            InvalidPathError: On empty interior segments, relative segments,
                control characters or an oversized key
        """
        relative = raw or ""
        if relative.startswith(DELIMITER):
            relative = relative[1:]
        if not relative:
            return cls.root(user_id)

        is_folder = relative.endswith(DELIMITER)
        body = relative[:-1] if is_folder else relative
        segments = tuple(body.split(DELIMITER))
        if not all(segments):
            raise InvalidPathError(raw, "empty path segment")
        return cls(user_id, segments, is_folder)

    @classmethod
    def from_key(cls, key: str) -> "ObjectPath":
        """
        Parse a fully-qualified key as returned by a store listing.

        Raises:
            InvalidPathError: If the key is not inside a user namespace or
                does not round-trip to the same key
        """
        match = _USER_KEY.match(key)
        if match is None:
            raise InvalidPathError(key, "key is outside every user namespace")
        user_id, relative = match.groups()
        if str(int(user_id)) != user_id or relative.startswith(DELIMITER):
            raise InvalidPathError(key, "non canonical key")
        return cls.parse(relative, int(user_id))

    @property
    def path(self) -> str:
        """User-relative serialization; ``parse(p.path, uid) == p``."""
        body = DELIMITER.join(self.segments)
        if self.is_folder and self.segments:
            return body + DELIMITER
        return body

    @property
    def full_key(self) -> str:
        return user_prefix(self.user_id) + self.path

    @property
    def is_root(self) -> bool:
        return not self.segments

    @property
    def display_name(self) -> str:
        """Last segment; empty for the root folder."""
        return self.segments[-1] if self.segments else ""

    def parent(self) -> "ObjectPath":
        """
        Folder directly containing this path.

        Raises:
            InvalidPathError: For the root folder, which has no parent
        """
        if self.is_root:
            raise InvalidPathError(str(self), "the root folder has no parent")
        return ObjectPath(self.user_id, self.segments[:-1], True)

    def ancestors(self) -> Iterator["ObjectPath"]:
        """Folders from the root down to the parent, in that order."""
        for depth in range(len(self.segments)):
            yield ObjectPath(self.user_id, self.segments[:depth], True)

    def child(self, name: str, folder: bool = False) -> "ObjectPath":
        """Path of ``name`` directly inside this folder."""
        if not self.is_folder:
            raise NotAFolderError(str(self))
        return ObjectPath(self.user_id, self.segments + (name,), folder)

    def to_folder(self) -> "ObjectPath":
        if self.is_folder:
            return self
        return ObjectPath(self.user_id, self.segments, True)

    def to_file(self) -> "ObjectPath":
        if not self.is_folder:
            return self
        return ObjectPath(self.user_id, self.segments, False)

    def is_descendant_of(self, other: "ObjectPath") -> bool:
        """
        True if this path is ``other`` or lies inside it.

        Reflexive; for a file ``other`` only equality matches.
        """
        if self.user_id != other.user_id:
            return False
        if not other.is_folder:
            return self == other
        depth = len(other.segments)
        if self.segments[:depth] != other.segments:
            return False
        return len(self.segments) > depth or self.is_folder

    def replace_prefix(self, old: "ObjectPath", new: "ObjectPath") -> "ObjectPath":
        """
        Rewrite this path for a move of its ancestor folder ``old`` to ``new``.

        ``a/b/c.txt`` with ``old=a/`` and ``new=x/y/`` becomes ``x/y/b/c.txt``.

        Raises:
            NotAFolderError: If ``old`` or ``new`` is not a folder
            InvalidPathError: If this path is not inside ``old`` or the
                folders belong to different users
        """
        if not old.is_folder:
            raise NotAFolderError(str(old))
        if not new.is_folder:
            raise NotAFolderError(str(new))
        if old.user_id != new.user_id:
            raise InvalidPathError(str(new), "cannot move across user namespaces")
        if not self.is_descendant_of(old):
            raise InvalidPathError(str(self), f"not inside '{old}'")
        tail = self.segments[len(old.segments):]
        return ObjectPath(new.user_id, new.segments + tail, self.is_folder)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ObjectPath):
            return NotImplemented
        return self.full_key == other.full_key

    def __hash__(self) -> int:
        return hash(self.full_key)

    def __str__(self) -> str:
        return DELIMITER + self.path

    def __repr__(self) -> str:
        return f"ObjectPath({self.full_key!r})"


class Breadcrumb(NamedTuple):
    name: str
    path: ObjectPath


def assemble_breadcrumbs(path: ObjectPath) -> List[Breadcrumb]:
    """
    Navigation trail from the user's root down to ``path``.

    The root itself is not part of the trail, so ``a/b/`` yields
    ``[("a", a/), ("b", a/b/)]`` and the root yields nothing.
    """
    crumbs = [
        Breadcrumb(ancestor.display_name, ancestor)
        for ancestor in path.ancestors()
        if not ancestor.is_root
    ]
    if not path.is_root:
        crumbs.append(Breadcrumb(path.display_name, path))
    return crumbs
