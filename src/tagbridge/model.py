"""Canonical, format-independent track metadata model."""

from __future__ import annotations

import re
from collections.abc import Iterator, Mapping, MutableMapping
from dataclasses import dataclass, field
from enum import IntEnum
from pathlib import Path
from typing import Any


class PictureType(IntEnum):
    """Embedded picture types, numbered per ID3 APIC / FLAC METADATA_BLOCK_PICTURE."""

    OTHER = 0
    FILE_ICON = 1
    OTHER_FILE_ICON = 2
    FRONT_COVER = 3
    BACK_COVER = 4
    LEAFLET_PAGE = 5
    MEDIA = 6
    LEAD_ARTIST = 7
    ARTIST = 8
    CONDUCTOR = 9
    BAND = 10
    COMPOSER = 11
    LYRICIST = 12
    RECORDING_LOCATION = 13
    DURING_RECORDING = 14
    DURING_PERFORMANCE = 15
    MOVIE_SCREEN_CAPTURE = 16
    COLORED_FISH = 17
    ILLUSTRATION = 18
    BAND_LOGO = 19
    PUBLISHER_LOGO = 20

    @property
    def label(self) -> str:
        """PascalCase name, e.g. ``FrontCover``. Used for export filenames."""
        return "".join(part.capitalize() for part in self.name.split("_"))

    @classmethod
    def from_code(cls, code: int) -> PictureType:
        """Map a raw picture code to a member; unknown codes become OTHER."""
        try:
            return cls(int(code))
        except ValueError:
            return cls.OTHER

    @classmethod
    def parse(cls, value: PictureType | int | str) -> PictureType:
        """Parse a member, an integer code, or a name such as ``FrontCover``/``front-cover``."""
        if isinstance(value, cls):
            return value
        if isinstance(value, int):
            return cls(value)
        text = value.strip()
        if text.isdigit():
            return cls(int(text))
        wanted = re.sub(r"[\s_\-]", "", text).lower()
        for member in cls:
            if member.name.replace("_", "").lower() == wanted:
                return member
        raise ValueError(f"Unknown picture type: {value!r}")


@dataclass(frozen=True)
class TrackNumber:
    """Track position with an optional total, as in ``5/12``."""

    position: int
    total: int | None = None

    def __str__(self) -> str:
        if self.total is None:
            return str(self.position)
        return f"{self.position}/{self.total}"


@dataclass
class Picture:
    """An embedded image. ``filename`` is advisory and only used for export naming."""

    type: PictureType
    mime_type: str
    data: bytes = field(repr=False)
    description: str = ""
    filename: str | None = None

    @property
    def size(self) -> int:
        return len(self.data)


class CustomFields(MutableMapping[str, str]):
    """User-defined key/value fields.

    Lookup is case-insensitive; the key is stored as first written.
    """

    def __init__(self, data: Mapping[str, str] | None = None):
        self._store: dict[str, tuple[str, str]] = {}
        if data:
            self.update(data)

    def __getitem__(self, key: str) -> str:
        return self._store[key.casefold()][1]

    def __setitem__(self, key: str, value: str) -> None:
        folded = key.casefold()
        existing = self._store.get(folded)
        self._store[folded] = (existing[0] if existing else key, value)

    def __delitem__(self, key: str) -> None:
        del self._store[key.casefold()]

    def __iter__(self) -> Iterator[str]:
        return (original for original, _ in self._store.values())

    def __len__(self) -> int:
        return len(self._store)

    def __repr__(self) -> str:
        return f"CustomFields({dict(self.items())!r})"


@dataclass
class TrackMetadata:
    """
    Canonical metadata for one audio file.

    Built fresh on every read. ``None`` means the field is present in no
    adapter; it is never conflated with an empty string or empty list.
    ``container`` and ``tag_types`` are diagnostic and never written back.
    """

    path: Path
    container: str
    tag_types: list[str] = field(default_factory=list)

    # Identity / text
    title: str | None = None
    subtitle: str | None = None
    artist: list[str] | None = None
    album_artist: list[str] | None = None
    album: str | None = None
    genre: list[str] | None = None
    composer: list[str] | None = None
    lyricist: str | None = None
    original_artist: str | None = None
    publisher: str | None = None
    comments: str | None = None

    # Structured
    track_number: TrackNumber | None = None
    year: int | None = None
    isrc: str | None = None

    # Catalog / commerce
    catalog_number: str | None = None
    barcode: str | None = None
    asin: str | None = None
    purchase_date: str | None = None
    release_country: str | None = None
    release_status: str | None = None
    release_type: str | None = None
    discogs_release_url: str | None = None
    discogs_artist_url: str | None = None

    custom_fields: CustomFields = field(default_factory=CustomFields)
    pictures: list[Picture] = field(default_factory=list)

    @property
    def first_artist(self) -> str | None:
        return self.artist[0] if self.artist else None

    @property
    def first_album_artist(self) -> str | None:
        return self.album_artist[0] if self.album_artist else None

    @property
    def cover(self) -> Picture | None:
        """The conventional default picture for single-picture consumers."""
        return self.pictures[0] if self.pictures else None

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a JSON-ready dict. Picture payloads are summarised, not embedded."""
        from tagbridge.fields import CANONICAL_FIELDS, CATALOG_FIELDS

        result: dict[str, Any] = {
            "path": str(self.path),
            "container": self.container,
            "tag_types": list(self.tag_types),
        }
        for name in (*CANONICAL_FIELDS, *CATALOG_FIELDS):
            value = getattr(self, name)
            if isinstance(value, TrackNumber):
                value = {"position": value.position, "total": value.total}
            result[name] = value
        result["custom_fields"] = dict(self.custom_fields.items())
        result["pictures"] = [
            {
                "type": picture.type.label,
                "mime_type": picture.mime_type,
                "description": picture.description,
                "size": picture.size,
            }
            for picture in self.pictures
        ]
        return result


@dataclass
class WriteReport:
    """Report of what a write applied, skipped, or failed on."""

    file_path: Path
    fields_written: list[str] = field(default_factory=list)
    fields_skipped: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    saved: bool = False
    dry_run: bool = False

    @property
    def ok(self) -> bool:
        return not self.errors

    def skip(self, name: str, reason: str) -> None:
        """Record a field-level failure; the write goes on."""
        self.fields_skipped.append(name)
        self.warnings.append(f"{name}: {reason}")
