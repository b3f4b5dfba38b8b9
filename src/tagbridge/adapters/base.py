"""Adapter contract and capability mix-ins.

An adapter is a transient view over one tag container of an opened file. It
never outlives the ``open_container`` scope that created it.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Callable, Iterable
from typing import Any, ClassVar, NamedTuple

from tagbridge.errors import FieldError, FieldRejectedError, UnsupportedContainerError
from tagbridge.model import CustomFields, Picture, PictureType

log = logging.getLogger(__name__)


class FieldAccessor(NamedTuple):
    """Typed accessor triple for one canonical field on a native tag object."""

    get: Callable[[Any], Any]
    set: Callable[[Any, Any], None]
    delete: Callable[[Any], None]


class TagAdapter(ABC):
    """
    Base class for tag container adapters.

    Subclasses declare ``kind``, a static ``FIELDS`` registry, and which native
    tag class they accept. ``audio`` is the mutagen file; ``tags`` may be given
    instead to wrap a bare in-memory tag object.
    """

    kind: ClassVar[str]
    FIELDS: ClassVar[dict[str, FieldAccessor]] = {}

    def __init__(self, audio: Any = None, tags: Any = None):
        self.audio = audio
        self._tags = tags

    def __repr__(self) -> str:
        return f"{type(self).__name__}(present={self.probe()})"

    @classmethod
    @abstractmethod
    def accepts(cls, tags: Any) -> bool:
        """Return True if ``tags`` is this adapter's native tag object."""

    @classmethod
    @abstractmethod
    def can_create(cls, audio: Any) -> bool:
        """Return True if a missing tag section of this kind can be added to ``audio``."""

    @property
    def tags(self) -> Any:
        """The native tag object, or None when this tag kind is not present."""
        tags = self._tags if self._tags is not None else getattr(self.audio, "tags", None)
        if tags is None or not self.accepts(tags):
            return None
        return tags

    def probe(self) -> bool:
        """Is this tag kind present? Never creates anything."""
        return self.tags is not None

    @property
    def tag_type(self) -> str:
        return self.kind

    def ensure_tags(self) -> Any:
        """Return the native tag object, creating an empty tag section if needed."""
        tags = self.tags
        if tags is not None:
            return tags
        if self.audio is None or getattr(self.audio, "tags", None) is not None:
            raise UnsupportedContainerError(
                self._filename(), f"cannot add {self.kind} tags next to existing tags"
            )
        if not self.can_create(self.audio):
            raise UnsupportedContainerError(
                self._filename(), f"{type(self.audio).__name__} cannot hold {self.kind} tags"
            )
        self.audio.add_tags()
        log.debug("Created empty %s tag section", self.kind)
        return self.tags

    def _filename(self) -> str:
        return str(getattr(self.audio, "filename", None) or "<memory>")

    def read_field(self, name: str) -> Any:
        """
        Return the first non-empty value of a canonical field, or None.

        Unknown names and unreadable values both come back as None; the
        latter is logged at warning level.
        """
        accessor = self.FIELDS.get(name)
        tags = self.tags
        if accessor is None or tags is None:
            return None
        try:
            return accessor.get(tags)
        except (FieldError, ValueError, TypeError, UnicodeError) as e:
            log.warning("Unreadable %s value for %s: %s", self.kind, name, e)
            return None

    def write_field(self, name: str, value: Any) -> None:
        """
        Write a coerced canonical value; ``None`` deletes the field.

        Raises:
            FieldRejectedError: if this adapter has no home for the field
        """
        accessor = self.FIELDS.get(name)
        if accessor is None:
            raise FieldRejectedError(name, f"not supported by {self.kind} tags")
        tags = self.ensure_tags()
        if value is None:
            accessor.delete(tags)
        else:
            accessor.set(tags, value)

    @abstractmethod
    def set_native(self, key: str, value: Any) -> None:
        """
        Pass-through set of a native key; ``None`` deletes it.

        Raises:
            FieldRejectedError: if the tag structure refuses the key or value
        """


class FreeformLookup(ABC):
    """Capability: probe vendor extension records by an ordered alias list."""

    @abstractmethod
    def read_freeform(self, keys: Iterable[str]) -> str | None:
        """Return the first non-empty value found under any of ``keys``, in order."""

    @abstractmethod
    def write_freeform(self, key: str, value: str | None) -> None:
        """Replace (or with ``None``, remove) the extension record ``key``."""


class CustomFieldStore(ABC):
    """Capability: user-defined key/value text records (TXXX and analogues)."""

    @abstractmethod
    def custom_fields(self) -> CustomFields: ...

    @abstractmethod
    def set_custom_field(self, key: str, value: str) -> None:
        """Replace any record named ``key`` with a single new one."""

    @abstractmethod
    def remove_custom_field(self, key: str) -> None:
        """Remove the record named ``key``; absent keys are a no-op."""


class PictureStore(ABC):
    """Capability: embedded pictures keyed by picture type."""

    @abstractmethod
    def pictures(self) -> list[Picture]: ...

    @abstractmethod
    def set_picture(self, picture: Picture) -> None:
        """Replace every picture of ``picture.type``; other types are untouched."""

    @abstractmethod
    def remove_pictures(self, types: Iterable[PictureType] | None = None) -> None:
        """Remove pictures of ``types`` (all pictures when None); absent types are a no-op."""


def first_text(values: Iterable[Any] | None) -> str | None:
    """First non-empty string among ``values``."""
    for value in values or ():
        text = str(value)
        if text:
            return text
    return None


def text_list(values: Iterable[Any] | None) -> list[str] | None:
    """All non-empty strings among ``values``, or None if there are none."""
    texts = [str(value) for value in values or () if str(value)]
    return texts or None
