"""Xiph comment adapter (FLAC, Ogg Vorbis, Opus, Speex)."""

from __future__ import annotations

import base64
import binascii
import logging
import struct
from collections.abc import Iterable
from typing import Any

from mutagen._vorbis import VCommentDict, is_valid_key
from mutagen.flac import FLAC, error as FLACError
from mutagen.flac import Picture as FlacPicture
from mutagen.ogg import OggFileType

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
from tagbridge.fields import parse_track_number, parse_year
from tagbridge.model import CustomFields, Picture, PictureType, TrackNumber

log = logging.getLogger(__name__)

PICTURE_KEY = "METADATA_BLOCK_PICTURE"


def _get(tags: VCommentDict, key: str) -> list[str]:
    return tags.get(key, []) if is_valid_key(key) else []


def _delete(tags: VCommentDict, *keys: str) -> None:
    for key in keys:
        if key in tags:
            del tags[key]


def _text(key: str, *read_aliases: str) -> FieldAccessor:
    """Scalar comment; written under ``key``, read from ``key`` then its aliases."""

    def get(tags: VCommentDict) -> str | None:
        for candidate in (key, *read_aliases):
            text = first_text(_get(tags, candidate))
            if text:
                return text
        return None

    def set_(tags: VCommentDict, value: str) -> None:
        _delete(tags, *read_aliases)
        tags[key] = [value]

    return FieldAccessor(get, set_, lambda tags: _delete(tags, key, *read_aliases))


def _list(key: str, *read_aliases: str) -> FieldAccessor:
    """Multi-valued comment; one comment entry per value."""

    def get(tags: VCommentDict) -> list[str] | None:
        for candidate in (key, *read_aliases):
            values = text_list(_get(tags, candidate))
            if values:
                return values
        return None

    def set_(tags: VCommentDict, values: list[str]) -> None:
        _delete(tags, *read_aliases)
        tags[key] = list(values)

    return FieldAccessor(get, set_, lambda tags: _delete(tags, key, *read_aliases))


TRACK_TOTAL_KEYS = ("TRACKTOTAL", "TOTALTRACKS")


def _track_get(tags: VCommentDict) -> TrackNumber | None:
    text = first_text(_get(tags, "TRACKNUMBER"))
    if not text:
        return None
    track = parse_track_number(text)
    if track.total is None:
        for key in TRACK_TOTAL_KEYS:
            total = first_text(_get(tags, key))
            if total and total.strip().isdigit():
                return TrackNumber(track.position, int(total))
    return track


def _track_set(tags: VCommentDict, value: TrackNumber) -> None:
    _delete(tags, *TRACK_TOTAL_KEYS)
    tags["TRACKNUMBER"] = [str(value.position)]
    if value.total is not None:
        tags["TRACKTOTAL"] = [str(value.total)]


def _year_get(tags: VCommentDict) -> int | None:
    for key in ("DATE", "YEAR"):
        text = first_text(_get(tags, key))
        if text:
            return parse_year(text)
    return None


def _year_set(tags: VCommentDict, year: int) -> None:
    _delete(tags, "YEAR")
    tags["DATE"] = [f"{year:04d}"]


XIPH_FIELDS: dict[str, FieldAccessor] = {
    "title": _text("TITLE"),
    "subtitle": _text("SUBTITLE"),
    "artist": _list("ARTIST"),
    "album_artist": _list("ALBUMARTIST", "ALBUM ARTIST"),
    "album": _text("ALBUM"),
    "genre": _list("GENRE"),
    "composer": _list("COMPOSER"),
    "lyricist": _text("LYRICIST"),
    "original_artist": _text("ORIGINALARTIST"),
    "publisher": _text("PUBLISHER", "LABEL"),
    "comments": _text("COMMENT", "DESCRIPTION"),
    "track_number": FieldAccessor(
        _track_get, _track_set, lambda tags: _delete(tags, "TRACKNUMBER", *TRACK_TOTAL_KEYS)
    ),
    "year": FieldAccessor(_year_get, _year_set, lambda tags: _delete(tags, "DATE", "YEAR")),
    "isrc": _text("ISRC"),
}

# Every comment key owned by a canonical field or the picture store
RESERVED_KEYS = frozenset(
    {
        "TITLE",
        "SUBTITLE",
        "ARTIST",
        "ALBUMARTIST",
        "ALBUM ARTIST",
        "ALBUM",
        "GENRE",
        "COMPOSER",
        "LYRICIST",
        "ORIGINALARTIST",
        "PUBLISHER",
        "LABEL",
        "COMMENT",
        "DESCRIPTION",
        "TRACKNUMBER",
        *TRACK_TOTAL_KEYS,
        "DATE",
        "YEAR",
        "ISRC",
        PICTURE_KEY,
    }
)


def _to_flac_picture(picture: Picture) -> FlacPicture:
    flac_picture = FlacPicture()
    flac_picture.type = int(picture.type)
    flac_picture.mime = picture.mime_type
    flac_picture.desc = picture.description
    flac_picture.data = picture.data
    return flac_picture


def _from_flac_picture(flac_picture: FlacPicture) -> Picture:
    return Picture(
        type=PictureType.from_code(flac_picture.type),
        mime_type=flac_picture.mime,
        data=flac_picture.data,
        description=flac_picture.desc,
    )


def _decode_block(value: str) -> FlacPicture | None:
    try:
        return FlacPicture(base64.b64decode(value))
    except (binascii.Error, FLACError, ValueError, struct.error) as e:
        log.warning("Skipping undecodable %s comment: %s", PICTURE_KEY, e)
        return None


class XiphAdapter(TagAdapter, FreeformLookup, CustomFieldStore, PictureStore):
    """
    Vorbis comments via mutagen's ``VCommentDict``.

    Comment keys are case-insensitive by definition, so custom-field keys
    here match without regard to case. In FLAC files pictures live in
    dedicated metadata blocks; in Ogg streams they are base64
    METADATA_BLOCK_PICTURE comments.
    """

    kind = "Xiph"
    FIELDS = XIPH_FIELDS

    @classmethod
    def accepts(cls, tags: Any) -> bool:
        return isinstance(tags, VCommentDict)

    @classmethod
    def can_create(cls, audio: Any) -> bool:
        return isinstance(audio, (FLAC, OggFileType))

    # FreeformLookup

    def read_freeform(self, keys: Iterable[str]) -> str | None:
        tags = self.tags
        if tags is None:
            return None
        for key in keys:
            text = first_text(_get(tags, key))
            if text:
                return text
        return None

    def write_freeform(self, key: str, value: str | None) -> None:
        if value is None:
            if self.tags is not None:
                _delete(self.tags, key)
            return
        self._set_comment(key, [value])

    # CustomFieldStore

    def custom_fields(self) -> CustomFields:
        fields = CustomFields()
        tags = self.tags
        if tags is None:
            return fields
        grouped: dict[str, tuple[str, list[str]]] = {}
        for key, value in tags:
            if key.upper() in RESERVED_KEYS:
                continue
            grouped.setdefault(key.casefold(), (key, []))[1].append(value)
        for key, values in grouped.values():
            fields[key] = "; ".join(values)
        return fields

    def set_custom_field(self, key: str, value: str) -> None:
        self._set_comment(key, [value])

    def remove_custom_field(self, key: str) -> None:
        if self.tags is not None and is_valid_key(key):
            _delete(self.tags, key)

    # PictureStore

    def _has_picture_blocks(self) -> bool:
        return isinstance(self.audio, FLAC)

    def pictures(self) -> list[Picture]:
        if self._has_picture_blocks():
            return [_from_flac_picture(p) for p in self.audio.pictures]
        tags = self.tags
        if tags is None:
            return []
        decoded = (_decode_block(value) for value in _get(tags, PICTURE_KEY))
        return [_from_flac_picture(p) for p in decoded if p is not None]

    def set_picture(self, picture: Picture) -> None:
        self.remove_pictures([picture.type])
        flac_picture = _to_flac_picture(picture)
        if self._has_picture_blocks():
            self.audio.add_picture(flac_picture)
            return
        tags = self.ensure_tags()
        values = _get(tags, PICTURE_KEY)
        values.append(base64.b64encode(flac_picture.write()).decode("ascii"))
        tags[PICTURE_KEY] = values

    def remove_pictures(self, types: Iterable[PictureType] | None = None) -> None:
        wanted = None if types is None else {int(t) for t in types}
        if self._has_picture_blocks():
            kept = [p for p in self.audio.pictures if wanted is not None and p.type not in wanted]
            if len(kept) != len(self.audio.pictures):
                self.audio.clear_pictures()
                for flac_picture in kept:
                    self.audio.add_picture(flac_picture)
            return
        tags = self.tags
        if tags is None:
            return
        if wanted is None:
            _delete(tags, PICTURE_KEY)
            return
        kept_values = []
        for value in _get(tags, PICTURE_KEY):
            decoded = _decode_block(value)
            # Undecodable blocks are kept untouched
            if decoded is None or decoded.type not in wanted:
                kept_values.append(value)
        _delete(tags, PICTURE_KEY)
        if kept_values:
            tags[PICTURE_KEY] = kept_values

    # Pass-through

    def _set_comment(self, key: str, values: list[str]) -> None:
        if not is_valid_key(key):
            raise FieldRejectedError(key, "not a valid Vorbis comment key")
        self.ensure_tags()[key] = values

    def set_native(self, key: str, value: Any) -> None:
        if value is None:
            if not is_valid_key(key):
                raise FieldRejectedError(key, "not a valid Vorbis comment key")
            if self.tags is not None:
                _delete(self.tags, key)
            return
        values = [str(v) for v in value] if isinstance(value, (list, tuple)) else [str(value)]
        self._set_comment(key, values)
