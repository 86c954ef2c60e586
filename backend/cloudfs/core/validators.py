"""
Reusable validators for user supplied names.

Path structure (segments, delimiters, key length) is validated by the path
model; these validators cover the single names a user types when creating,
uploading or renaming an object.
"""

import re

MAX_NAME_LENGTH = 255


class ValidationPatterns:
    """Common regex patterns for validation."""

    # Object name: no path separators or special chars
    FILENAME = re.compile(r'^[^<>:"/\\|?*\x00-\x1f]+$')

    # No leading/trailing spaces
    NAME = re.compile(r'^[^\s].*[^\s]$|^[^\s]$')


class ValidationMessages:
    """Error messages raised by the validators."""

    NAME_EMPTY = "Name cannot be empty or only whitespace"
    NAME_TOO_LONG = f"Name cannot exceed {MAX_NAME_LENGTH} characters"
    NAME_INVALID_CHARS = (
        "Name contains invalid characters. "
        "Avoid: < > : \" / \\ | ? * and control characters"
    )
    NAME_WHITESPACE = "Name cannot have leading or trailing whitespace"
    NAME_RESERVED = "Name cannot be '.' or '..'"


class CommonValidators:
    """Collection of reusable validators."""

    @staticmethod
    def validate_object_name(v: str) -> str:
        """
        Validate the name of a single file or folder.

        Rules:
        - Not empty
        - No leading or trailing whitespace
        - No path separators, special or control characters
        - Not a relative path component ('.' or '..')
        - Maximum 255 characters
        """
        if not v or not v.strip():
            raise ValueError(ValidationMessages.NAME_EMPTY)

        if not ValidationPatterns.NAME.match(v):
            raise ValueError(ValidationMessages.NAME_WHITESPACE)

        if len(v) > MAX_NAME_LENGTH:
            raise ValueError(ValidationMessages.NAME_TOO_LONG)

        if not ValidationPatterns.FILENAME.match(v):
            raise ValueError(ValidationMessages.NAME_INVALID_CHARS)

        if v in {".", ".."}:
            raise ValueError(ValidationMessages.NAME_RESERVED)

        return v
