"""Statically declared field registry and value coercion.

Every writable canonical field is listed here once. Adapters map these names
onto their native frames/keys/atoms; this module owns the format-independent
parts: the field kinds, the catalog alias lists, and parsing of user input.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import StrEnum
from typing import Any

from tagbridge.errors import FieldValueError
from tagbridge.model import TrackNumber


class FieldKind(StrEnum):
    """Value shape of a canonical field."""

    TEXT = "text"
    TEXT_LIST = "list"
    TRACK = "track"
    YEAR = "year"


@dataclass(frozen=True)
class FieldSpec:
    """A canonical field: its name, value shape, and (for catalog fields) key aliases."""

    name: str
    kind: FieldKind
    description: str
    aliases: tuple[str, ...] = ()

    @property
    def is_catalog(self) -> bool:
        return bool(self.aliases)

    @property
    def write_key(self) -> str:
        """Freeform key used when writing a catalog field."""
        return self.aliases[0]


def _specs(*specs: FieldSpec) -> dict[str, FieldSpec]:
    return {spec.name: spec for spec in specs}


CANONICAL_FIELDS: dict[str, FieldSpec] = _specs(
    FieldSpec("title", FieldKind.TEXT, "Track title"),
    FieldSpec("subtitle", FieldKind.TEXT, "Subtitle or version description"),
    FieldSpec("artist", FieldKind.TEXT_LIST, "Performers, primary first"),
    FieldSpec("album_artist", FieldKind.TEXT_LIST, "Album artists, primary first"),
    FieldSpec("album", FieldKind.TEXT, "Album title"),
    FieldSpec("genre", FieldKind.TEXT_LIST, "Genres"),
    FieldSpec("composer", FieldKind.TEXT_LIST, "Composers"),
    FieldSpec("lyricist", FieldKind.TEXT, "Lyricist"),
    FieldSpec("original_artist", FieldKind.TEXT, "Original performer of a cover"),
    FieldSpec("publisher", FieldKind.TEXT, "Publisher or label"),
    FieldSpec("comments", FieldKind.TEXT, "Free-text comment"),
    FieldSpec("track_number", FieldKind.TRACK, "Track position, optionally N/total"),
    FieldSpec("year", FieldKind.YEAR, "Release year"),
    FieldSpec("isrc", FieldKind.TEXT, "International Standard Recording Code"),
)

# Alias order matters: the first alias found wins on read, and the first alias
# is the key written.
CATALOG_FIELDS: dict[str, FieldSpec] = _specs(
    FieldSpec(
        "catalog_number",
        FieldKind.TEXT,
        "Label catalog number",
        ("CATALOGNUMBER", "CATALOG", "CATALOG NUMBER", "LABELNO"),
    ),
    FieldSpec("barcode", FieldKind.TEXT, "UPC/EAN barcode", ("BARCODE", "UPC", "EAN")),
    FieldSpec("asin", FieldKind.TEXT, "Amazon Standard Identification Number", ("ASIN",)),
    FieldSpec(
        "purchase_date", FieldKind.TEXT, "Date of purchase", ("PURCHASEDATE", "PURCHASE DATE")
    ),
    FieldSpec(
        "release_country",
        FieldKind.TEXT,
        "Country of release",
        ("RELEASECOUNTRY", "MusicBrainz Album Release Country", "COUNTRY"),
    ),
    FieldSpec(
        "release_status",
        FieldKind.TEXT,
        "Release status (official, promotion, ...)",
        ("RELEASESTATUS", "MusicBrainz Album Status"),
    ),
    FieldSpec(
        "release_type",
        FieldKind.TEXT,
        "Release type (album, single, ...)",
        ("RELEASETYPE", "MusicBrainz Album Type"),
    ),
    FieldSpec(
        "discogs_release_url",
        FieldKind.TEXT,
        "Discogs release page",
        ("URL_DISCOGS_RELEASE_SITE", "DISCOGS_RELEASE_URL"),
    ),
    FieldSpec(
        "discogs_artist_url",
        FieldKind.TEXT,
        "Discogs artist page",
        ("URL_DISCOGS_ARTIST_SITE", "DISCOGS_ARTIST_URL"),
    ),
)

ALL_FIELDS: dict[str, FieldSpec] = {**CANONICAL_FIELDS, **CATALOG_FIELDS}

_TRACK_RE = re.compile(r"^\s*(\d+)\s*(?:/\s*(\d+)\s*)?$")
_YEAR_RE = re.compile(r"^\s*(\d{1,4})(?:\D.*)?$")
_ISRC_RE = re.compile(r"^[A-Z]{2}[A-Z0-9]{3}\d{7}$")


def _fold(name: str) -> str:
    return re.sub(r"[\s_\-]", "", name).lower()


_LOOKUP: dict[str, FieldSpec] = {_fold(name): spec for name, spec in ALL_FIELDS.items()}


def lookup_field(name: str) -> FieldSpec | None:
    """Resolve ``TrackNumber``, ``track_number``, ``track-number`` etc. to a FieldSpec."""
    return _LOOKUP.get(_fold(name))


def parse_track_number(text: str) -> TrackNumber:
    """Parse ``"N"`` or ``"N/M"``; anything else is a FieldValueError."""
    match = _TRACK_RE.match(text)
    if not match:
        raise FieldValueError("track_number", f"expected 'N' or 'N/M', got {text!r}")
    position, total = match.groups()
    return TrackNumber(int(position), int(total) if total is not None else None)


def parse_year(value: int | str) -> int:
    """Parse a year from an int, ``"2024"``, or a date string such as ``"2024-03-15"``."""
    if isinstance(value, bool):
        raise FieldValueError("year", f"expected a year, got {value!r}")
    if isinstance(value, int):
        if value < 0:
            raise FieldValueError("year", f"year must not be negative, got {value}")
        return value
    match = _YEAR_RE.match(value)
    if not match:
        raise FieldValueError("year", f"expected a year, got {value!r}")
    return int(match.group(1))


def normalize_isrc(value: str) -> str:
    """Validate an ISRC (``CC-XXX-YY-NNNNN``, hyphens optional) and return it compact."""
    compact = value.replace("-", "").strip().upper()
    if not _ISRC_RE.match(compact):
        raise FieldValueError("isrc", f"not a valid ISRC: {value!r}")
    return compact


def _as_text(spec: FieldSpec, value: Any, separator: str) -> str:
    if isinstance(value, (list, tuple)):
        return separator.join(str(v) for v in value)
    return str(value)


def coerce_value(spec: FieldSpec, value: Any, separator: str = "; ") -> Any:
    """
    Convert caller input to the value shape of ``spec``.

    - TEXT: lists are joined with ``separator``
    - TEXT_LIST: a lone string becomes a one-element list
    - TRACK: ``"N"``, ``"N/M"``, an int, a ``(n, m)`` tuple, or a TrackNumber
    - YEAR: an int or a string starting with the year

    Raises:
        FieldValueError: if the value cannot be coerced
    """
    kind = spec.kind
    if kind is FieldKind.TEXT_LIST:
        if isinstance(value, str):
            return [value]
        if isinstance(value, (list, tuple)):
            return [str(v) for v in value]
        raise FieldValueError(spec.name, f"expected text or a list of text, got {value!r}")

    if kind is FieldKind.TRACK:
        if isinstance(value, TrackNumber):
            return value
        if isinstance(value, bool):
            raise FieldValueError(spec.name, f"expected a track number, got {value!r}")
        if isinstance(value, int):
            return TrackNumber(value)
        if isinstance(value, tuple) and len(value) == 2:
            position, total = value
            try:
                return TrackNumber(int(position), int(total) if total else None)
            except (TypeError, ValueError) as e:
                raise FieldValueError(spec.name, f"expected integers, got {value!r}") from e
        if isinstance(value, str):
            return parse_track_number(value)
        raise FieldValueError(spec.name, f"expected a track number, got {value!r}")

    if kind is FieldKind.YEAR:
        if isinstance(value, (int, str)):
            year = parse_year(value)
            if isinstance(value, str) and not value.strip().isdigit():
                raise FieldValueError(spec.name, f"expected digits only, got {value!r}")
            return year
        raise FieldValueError(spec.name, f"expected a year, got {value!r}")

    text = _as_text(spec, value, separator)
    if spec.name == "isrc":
        return normalize_isrc(text)
    return text


def writable_fields() -> list[FieldSpec]:
    """All fields a caller may pass to ``write_metadata``, canonical fields first."""
    return list(ALL_FIELDS.values())


def template() -> dict[str, Any]:
    """An editable skeleton of every writable field, suitable for dumping as JSON."""
    skeleton: dict[str, Any] = {}
    for spec in writable_fields():
        if spec.kind is FieldKind.TEXT_LIST:
            skeleton[spec.name] = []
        elif spec.kind is FieldKind.YEAR:
            skeleton[spec.name] = None
        else:
            skeleton[spec.name] = ""
    skeleton["custom_fields"] = {}
    return skeleton
