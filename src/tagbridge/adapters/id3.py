"""ID3v2 adapter (MP3 and other ID3-tagged containers)."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Any

from mutagen.id3 import (
    APIC,
    COMM,
    ID3,
    TXXX,
    Encoding,
    Frames,
    ID3FileType,
    TextFrame,
    UrlFrame,
)

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
from tagbridge.fields import parse_track_number
from tagbridge.model import CustomFields, Picture, PictureType

log = logging.getLogger(__name__)

# Comments with these descriptions are iTunes bookkeeping, not user comments
ITUNES_COMMENT_PREFIX = "iTun"


def _text_frame(frame_id: str) -> FieldAccessor:
    def get(tags: ID3) -> str | None:
        for frame in tags.getall(frame_id):
            text = first_text(frame.text)
            if text:
                return text
        return None

    def set_(tags: ID3, value: str) -> None:
        tags.setall(frame_id, [Frames[frame_id](encoding=Encoding.UTF8, text=[value])])

    return FieldAccessor(get, set_, lambda tags: tags.delall(frame_id))


def _list_frame(frame_id: str) -> FieldAccessor:
    def get(tags: ID3) -> list[str] | None:
        for frame in tags.getall(frame_id):
            values = text_list(frame.text)
            if values:
                return values
        return None

    def set_(tags: ID3, values: list[str]) -> None:
        tags.setall(frame_id, [Frames[frame_id](encoding=Encoding.UTF8, text=list(values))])

    return FieldAccessor(get, set_, lambda tags: tags.delall(frame_id))


def _genre_get(tags: ID3) -> list[str] | None:
    for frame in tags.getall("TCON"):
        # .genres resolves numeric references such as "(17)" to "Rock"
        values = text_list(frame.genres)
        if values:
            return values
    return None


def _plain_comments(tags: ID3) -> list[COMM]:
    return [frame for frame in tags.getall("COMM") if frame.desc == ""]


def _comment_get(tags: ID3) -> str | None:
    frames = _plain_comments(tags) + [
        frame
        for frame in tags.getall("COMM")
        if frame.desc and not frame.desc.startswith(ITUNES_COMMENT_PREFIX)
    ]
    for frame in frames:
        text = first_text(frame.text)
        if text:
            return text
    return None


def _comment_delete(tags: ID3) -> None:
    for frame in _plain_comments(tags):
        del tags[frame.HashKey]


def _comment_set(tags: ID3, value: str) -> None:
    _comment_delete(tags)
    tags.add(COMM(encoding=Encoding.UTF8, lang="eng", desc="", text=[value]))


def _track_get(tags: ID3) -> Any:
    frame = tags.get("TRCK")
    text = first_text(frame.text) if frame else None
    return parse_track_number(text) if text else None


def _track_set(tags: ID3, value: Any) -> None:
    tags.setall("TRCK", [Frames["TRCK"](encoding=Encoding.UTF8, text=[str(value)])])


def _year_get(tags: ID3) -> int | None:
    frame = tags.get("TDRC")
    if not frame:
        return None
    for stamp in frame.text:
        if stamp.year is not None:
            return stamp.year
    return None


def _year_set(tags: ID3, year: int) -> None:
    tags.setall("TDRC", [Frames["TDRC"](encoding=Encoding.UTF8, text=[f"{year:04d}"])])


class Id3Adapter(TagAdapter, FreeformLookup, CustomFieldStore, PictureStore):
    """
    ID3v2 tags via mutagen's ``ID3``.

    TXXX frames serve both as freeform storage for catalog aliases (matched
    case-insensitively) and as custom fields (matched exactly). APIC frames
    must have unique descriptions, so colliding descriptions get a numeric
    suffix on write.
    """

    kind = "ID3"

    FIELDS = {
        "title": _text_frame("TIT2"),
        "subtitle": _text_frame("TIT3"),
        "artist": _list_frame("TPE1"),
        "album_artist": _list_frame("TPE2"),
        "album": _text_frame("TALB"),
        "genre": FieldAccessor(
            _genre_get, _list_frame("TCON").set, lambda tags: tags.delall("TCON")
        ),
        "composer": _list_frame("TCOM"),
        "lyricist": _text_frame("TEXT"),
        "original_artist": _text_frame("TOPE"),
        "publisher": _text_frame("TPUB"),
        "comments": FieldAccessor(_comment_get, _comment_set, _comment_delete),
        "track_number": FieldAccessor(_track_get, _track_set, lambda tags: tags.delall("TRCK")),
        "year": FieldAccessor(_year_get, _year_set, lambda tags: tags.delall("TDRC")),
        "isrc": _text_frame("TSRC"),
    }

    @classmethod
    def accepts(cls, tags: Any) -> bool:
        return isinstance(tags, ID3)

    @classmethod
    def can_create(cls, audio: Any) -> bool:
        return isinstance(audio, ID3FileType)

    @property
    def tag_type(self) -> str:
        tags = self.tags
        if tags is None:
            return "ID3v2"
        return f"ID3v2.{tags.version[1]}"

    # FreeformLookup

    def _txxx_matching(self, key: str) -> list[TXXX]:
        wanted = key.casefold()
        return [frame for frame in self.tags.getall("TXXX") if frame.desc.casefold() == wanted]

    def read_freeform(self, keys: Iterable[str]) -> str | None:
        if self.tags is None:
            return None
        for key in keys:
            for frame in self._txxx_matching(key):
                text = first_text(frame.text)
                if text:
                    return text
        return None

    def write_freeform(self, key: str, value: str | None) -> None:
        tags = self.ensure_tags()
        for frame in self._txxx_matching(key):
            del tags[frame.HashKey]
        if value is not None:
            tags.add(TXXX(encoding=Encoding.UTF8, desc=key, text=[value]))

    # CustomFieldStore

    def custom_fields(self) -> CustomFields:
        fields = CustomFields()
        if self.tags is None:
            return fields
        for frame in self.tags.getall("TXXX"):
            fields[frame.desc] = "; ".join(str(text) for text in frame.text)
        return fields

    def set_custom_field(self, key: str, value: str) -> None:
        tags = self.ensure_tags()
        # TXXX HashKey is "TXXX:<desc>", so delall matches the description exactly
        tags.delall(f"TXXX:{key}")
        tags.add(TXXX(encoding=Encoding.UTF8, desc=key, text=[value]))

    def remove_custom_field(self, key: str) -> None:
        if self.tags is not None:
            self.tags.delall(f"TXXX:{key}")

    # PictureStore

    def pictures(self) -> list[Picture]:
        if self.tags is None:
            return []
        return [
            Picture(
                type=PictureType.from_code(frame.type),
                mime_type=frame.mime,
                data=frame.data,
                description=frame.desc,
            )
            for frame in self.tags.getall("APIC")
        ]

    def set_picture(self, picture: Picture) -> None:
        tags = self.ensure_tags()
        self.remove_pictures([picture.type])
        taken = {frame.desc for frame in tags.getall("APIC")}
        description = base = picture.description
        n = 2
        while description in taken:
            description = f"{base} ({n})" if base else f"({n})"
            n += 1
        if description != base:
            log.debug("APIC description %r taken, using %r", base, description)
        tags.add(
            APIC(
                encoding=Encoding.UTF8,
                mime=picture.mime_type,
                type=int(picture.type),
                desc=description,
                data=picture.data,
            )
        )

    def remove_pictures(self, types: Iterable[PictureType] | None = None) -> None:
        tags = self.tags
        if tags is None:
            return
        if types is None:
            tags.delall("APIC")
            return
        wanted = {int(t) for t in types}
        for frame in tags.getall("APIC"):
            if frame.type in wanted:
                del tags[frame.HashKey]

    # Pass-through

    def set_native(self, key: str, value: Any) -> None:
        frame_cls = Frames.get(key)
        if (
            frame_cls is None
            or key in ("TXXX", "WXXX")
            or not issubclass(frame_cls, (TextFrame, UrlFrame))
        ):
            raise FieldRejectedError(key, "not a writable ID3 text or URL frame")
        tags = self.ensure_tags()
        if value is None:
            tags.delall(key)
            return
        try:
            if issubclass(frame_cls, UrlFrame):
                frame = frame_cls(url=str(value))
            else:
                values = value if isinstance(value, (list, tuple)) else [value]
                frame = frame_cls(encoding=Encoding.UTF8, text=[str(v) for v in values])
        except (TypeError, ValueError) as e:
            raise FieldRejectedError(key, str(e)) from e
        tags.setall(key, [frame])
