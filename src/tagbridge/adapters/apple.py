"""Apple iTunes atom adapter (MP4/M4A)."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Any

from mutagen.mp4 import MP4, AtomDataType, MP4Cover, MP4FreeForm, MP4Tags

from tagbridge.adapters.base import (
    CustomFieldStore,
    FieldAccessor,
    FreeformLookup,
    PictureStore,
    TagAdapter,
    first_text,
    text_list,
)
from tagbridge.errors import FieldRejectedError
from tagbridge.fields import parse_year
from tagbridge.model import CustomFields, Picture, PictureType, TrackNumber

log = logging.getLogger(__name__)

FREEFORM_PREFIX = "----:com.apple.iTunes:"

COVER_FORMATS = {
    "image/jpeg": MP4Cover.FORMAT_JPEG,
    "image/png": MP4Cover.FORMAT_PNG,
}
COVER_MIMES = {fmt: mime for mime, fmt in COVER_FORMATS.items()}

# Native atoms standing in for freeform names
NATIVE_FREEFORM_ATOMS = {"PURCHASEDATE": "purd"}

BOOL_ATOMS = frozenset({"cpil", "pgap", "pcst"})
INT_ATOMS = frozenset({"tmpo"})
STRUCTURED_ATOMS = frozenset({"trkn", "disk", "covr"})


def _decode(value: Any) -> str:
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return str(value)


def _freeform_values(tags: MP4Tags, name: str) -> list[str]:
    wanted = name.casefold()
    values: list[str] = []
    for key, atom_values in tags.items():
        if key.startswith(FREEFORM_PREFIX) and key[len(FREEFORM_PREFIX) :].casefold() == wanted:
            values.extend(_decode(v) for v in atom_values)
    return values


def _freeform_delete(tags: MP4Tags, name: str) -> None:
    wanted = name.casefold()
    for key in [k for k in tags if k.startswith(FREEFORM_PREFIX)]:
        if key[len(FREEFORM_PREFIX) :].casefold() == wanted:
            del tags[key]


def _freeform_set(tags: MP4Tags, name: str, values: list[str]) -> None:
    _freeform_delete(tags, name)
    tags[FREEFORM_PREFIX + name] = [
        MP4FreeForm(value.encode("utf-8"), dataformat=AtomDataType.UTF8) for value in values
    ]


def _delete(tags: MP4Tags, key: str) -> None:
    if key in tags:
        del tags[key]


def _text(atom: str) -> FieldAccessor:
    return FieldAccessor(
        lambda tags: first_text(tags.get(atom)),
        lambda tags, value: tags.__setitem__(atom, [value]),
        lambda tags: _delete(tags, atom),
    )


def _list(atom: str) -> FieldAccessor:
    return FieldAccessor(
        lambda tags: text_list(tags.get(atom)),
        lambda tags, values: tags.__setitem__(atom, list(values)),
        lambda tags: _delete(tags, atom),
    )


def _freeform(name: str) -> FieldAccessor:
    return FieldAccessor(
        lambda tags: first_text(_freeform_values(tags, name)),
        lambda tags, value: _freeform_set(tags, name, [value]),
        lambda tags: _freeform_delete(tags, name),
    )


def _track_get(tags: MP4Tags) -> TrackNumber | None:
    for position, total in tags.get("trkn", []):
        if position:
            return TrackNumber(position, total or None)
    return None


def _track_set(tags: MP4Tags, value: TrackNumber) -> None:
    tags["trkn"] = [(value.position, value.total or 0)]


def _year_get(tags: MP4Tags) -> int | None:
    text = first_text(tags.get("\xa9day"))
    return parse_year(text) if text else None


APPLE_FIELDS: dict[str, FieldAccessor] = {
    "title": _text("\xa9nam"),
    "subtitle": _freeform("SUBTITLE"),
    "artist": _list("\xa9ART"),
    "album_artist": _list("aART"),
    "album": _text("\xa9alb"),
    "genre": _list("\xa9gen"),
    "composer": _list("\xa9wrt"),
    "lyricist": _freeform("LYRICIST"),
    "original_artist": _freeform("ORIGINALARTIST"),
    "publisher": _text("\xa9pub"),
    "comments": _text("\xa9cmt"),
    "track_number": FieldAccessor(_track_get, _track_set, lambda tags: _delete(tags, "trkn")),
    "year": FieldAccessor(
        _year_get,
        lambda tags, year: tags.__setitem__("\xa9day", [f"{year:04d}"]),
        lambda tags: _delete(tags, "\xa9day"),
    ),
    "isrc": _freeform("ISRC"),
}

# Freeform names owned by canonical fields
RESERVED_FREEFORM = frozenset({"SUBTITLE", "LYRICIST", "ORIGINALARTIST", "ISRC"})


class AppleAdapter(TagAdapter, FreeformLookup, CustomFieldStore, PictureStore):
    """
    iTunes-style MP4 metadata via mutagen's ``MP4Tags``.

    ``covr`` atoms carry no picture type: every cover reads back as
    FrontCover and only FrontCover JPEG/PNG images can be written.
    """

    kind = "Apple"
    FIELDS = APPLE_FIELDS

    @classmethod
    def accepts(cls, tags: Any) -> bool:
        return isinstance(tags, MP4Tags)

    @classmethod
    def can_create(cls, audio: Any) -> bool:
        return isinstance(audio, MP4)

    # FreeformLookup

    def read_freeform(self, keys: Iterable[str]) -> str | None:
        tags = self.tags
        if tags is None:
            return None
        for key in keys:
            text = first_text(_freeform_values(tags, key))
            if not text and key.upper() in NATIVE_FREEFORM_ATOMS:
                text = first_text(tags.get(NATIVE_FREEFORM_ATOMS[key.upper()]))
            if text:
                return text
        return None

    def write_freeform(self, key: str, value: str | None) -> None:
        tags = self.ensure_tags()
        if value is None:
            _freeform_delete(tags, key)
        else:
            _freeform_set(tags, key, [value])

    # CustomFieldStore

    def custom_fields(self) -> CustomFields:
        fields = CustomFields()
        tags = self.tags
        if tags is None:
            return fields
        for key, values in tags.items():
            if not key.startswith(FREEFORM_PREFIX):
                continue
            name = key[len(FREEFORM_PREFIX) :]
            if name.upper() not in RESERVED_FREEFORM:
                fields[name] = "; ".join(_decode(v) for v in values)
        return fields

    def set_custom_field(self, key: str, value: str) -> None:
        self.ensure_tags()[FREEFORM_PREFIX + key] = [
            MP4FreeForm(value.encode("utf-8"), dataformat=AtomDataType.UTF8)
        ]

    def remove_custom_field(self, key: str) -> None:
        if self.tags is not None:
            _delete(self.tags, FREEFORM_PREFIX + key)

    # PictureStore

    def pictures(self) -> list[Picture]:
        tags = self.tags
        if tags is None:
            return []
        return [
            Picture(
                type=PictureType.FRONT_COVER,
                mime_type=COVER_MIMES.get(cover.imageformat, "image/jpeg"),
                data=bytes(cover),
            )
            for cover in tags.get("covr", [])
        ]

    def set_picture(self, picture: Picture) -> None:
        if picture.type is not PictureType.FRONT_COVER:
            raise FieldRejectedError("picture", f"MP4 covers cannot hold {picture.type.label}")
        image_format = COVER_FORMATS.get(picture.mime_type)
        if image_format is None:
            raise FieldRejectedError("picture", f"MP4 covers cannot hold {picture.mime_type}")
        self.ensure_tags()["covr"] = [MP4Cover(picture.data, imageformat=image_format)]

    def remove_pictures(self, types: Iterable[PictureType] | None = None) -> None:
        tags = self.tags
        if tags is None:
            return
        if types is None or PictureType.FRONT_COVER in set(types):
            _delete(tags, "covr")

    # Pass-through

    def set_native(self, key: str, value: Any) -> None:
        if key.startswith(FREEFORM_PREFIX):
            name = key[len(FREEFORM_PREFIX) :]
            if value is None:
                self.remove_custom_field(name)
            else:
                values = value if isinstance(value, (list, tuple)) else [value]
                _freeform_set(self.ensure_tags(), name, [str(v) for v in values])
            return

        if key in STRUCTURED_ATOMS:
            raise FieldRejectedError(key, "structured atom cannot be set as text")
        try:
            atom_ok = len(key.encode("latin-1")) == 4
        except UnicodeEncodeError:
            atom_ok = False
        if not atom_ok:
            raise FieldRejectedError(key, "not a 4-character MP4 atom or freeform key")

        tags = self.ensure_tags()
        if value is None:
            _delete(tags, key)
        elif key in INT_ATOMS:
            try:
                tags[key] = [int(value)]
            except (TypeError, ValueError) as e:
                raise FieldRejectedError(key, f"expected an integer, got {value!r}") from e
        elif key in BOOL_ATOMS:
            tags[key] = str(value).strip().lower() in ("1", "true", "yes")
        else:
            values = value if isinstance(value, (list, tuple)) else [value]
            tags[key] = [str(v) for v in values]
