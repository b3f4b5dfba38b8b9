"""Exception hierarchy for tagbridge.

Errors fall into three groups:
- container errors abort one file's read or write, never a whole batch
- field errors abort a single field; the rest of the write still lands
- image errors abort a picture import
"""

from __future__ import annotations

from pathlib import Path


class TagBridgeError(Exception):
    """Base exception for all tagbridge errors."""


class ContainerError(TagBridgeError):
    """A tag container could not be opened, parsed, or saved."""

    def __init__(self, path: Path | str, message: str):
        self.path = Path(path)
        super().__init__(f"{self.path}: {message}")


class ContainerNotFoundError(ContainerError):
    """The path does not exist or is not a regular file."""

    def __init__(self, path: Path | str):
        super().__init__(path, "file not found")


class UnsupportedContainerError(ContainerError):
    """mutagen does not recognise the file, or no adapter can write its tags."""


class CorruptContainerError(ContainerError):
    """mutagen recognised the format but failed to parse it."""


class PersistError(ContainerError):
    """Saving the tag container back to disk failed."""

    def __init__(self, path: Path | str, cause: BaseException):
        self.cause = cause
        super().__init__(path, f"failed to save tags: {cause}")


class FieldError(TagBridgeError):
    """A single field could not be read or written."""

    def __init__(self, field: str, message: str):
        self.field = field
        super().__init__(f"{field}: {message}")


class FieldValueError(FieldError):
    """The value supplied for a field is malformed (e.g. track number "abc")."""


class FieldRejectedError(FieldError):
    """The underlying tag structure refuses the key or value."""


class UnsupportedImageError(TagBridgeError):
    """A picture import was given a file type with no known MIME type."""

    def __init__(self, filename: str):
        self.filename = filename
        super().__init__(f"Unsupported image format: {filename}")
