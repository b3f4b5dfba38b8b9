"""Tests for the Xiph comment adapter over in-memory comments."""

from __future__ import annotations

import base64

import pytest
from mutagen._vorbis import VCommentDict
from mutagen.flac import Picture as FlacPicture

from tagbridge.adapters import XiphAdapter
from tagbridge.adapters.xiph import PICTURE_KEY
from tagbridge.errors import FieldRejectedError
from tagbridge.model import Picture, PictureType, TrackNumber


@pytest.fixture
def tags():
    return VCommentDict()


@pytest.fixture
def adapter(tags):
    return XiphAdapter(tags=tags)


def _block(picture_type: int, data: bytes) -> str:
    picture = FlacPicture()
    picture.type = picture_type
    picture.mime = "image/jpeg"
    picture.data = data
    return base64.b64encode(picture.write()).decode("ascii")


def test_text_and_list_fields(adapter, tags):
    adapter.write_field("title", "Song")
    adapter.write_field("artist", ["Primary", "Guest"])

    assert tags["TITLE"] == ["Song"]
    assert tags["ARTIST"] == ["Primary", "Guest"]
    assert adapter.read_field("artist") == ["Primary", "Guest"]


def test_keys_are_case_insensitive(adapter, tags):
    tags["title"] = ["lower"]
    assert adapter.read_field("title") == "lower"


def test_read_aliases_and_write_cleans_them(adapter, tags):
    tags["ALBUM ARTIST"] = ["Spaced"]
    tags["LABEL"] = ["Label Co"]

    assert adapter.read_field("album_artist") == ["Spaced"]
    assert adapter.read_field("publisher") == "Label Co"

    adapter.write_field("album_artist", ["Joined"])
    assert "ALBUM ARTIST" not in tags
    assert tags["ALBUMARTIST"] == ["Joined"]


def test_track_number_with_separate_total(adapter, tags):
    tags["TRACKNUMBER"] = ["3"]
    tags["TOTALTRACKS"] = ["9"]
    assert adapter.read_field("track_number") == TrackNumber(3, 9)

    adapter.write_field("track_number", TrackNumber(5, 12))
    assert tags["TRACKNUMBER"] == ["5"]
    assert tags["TRACKTOTAL"] == ["12"]
    assert "TOTALTRACKS" not in tags

    adapter.write_field("track_number", TrackNumber(5))
    assert "TRACKTOTAL" not in tags
    assert adapter.read_field("track_number") == TrackNumber(5)


def test_track_number_inline_total(adapter, tags):
    tags["TRACKNUMBER"] = ["4/10"]
    assert adapter.read_field("track_number") == TrackNumber(4, 10)


def test_year_from_date(adapter, tags):
    tags["DATE"] = ["2001-09-11"]
    assert adapter.read_field("year") == 2001

    adapter.write_field("year", 1987)
    assert tags["DATE"] == ["1987"]


def test_freeform_alias_order(adapter, tags):
    tags["UPC"] = ["0001"]
    tags["EAN"] = ["0002"]
    assert adapter.read_freeform(["BARCODE", "UPC", "EAN"]) == "0001"


def test_freeform_skips_invalid_keys(adapter):
    assert adapter.read_freeform(["BAD=KEY"]) is None


def test_custom_fields_exclude_owned_keys(adapter, tags):
    tags["TITLE"] = ["Song"]
    tags["MOOD"] = ["calm"]
    tags["Style"] = ["Dub"]
    tags.append(("style", "Roots"))

    fields = adapter.custom_fields()
    assert dict(fields.items()) == {"MOOD": "calm", "Style": "Dub; Roots"}


def test_custom_field_replace_matches_any_case(adapter, tags):
    tags["mood"] = ["calm"]
    adapter.set_custom_field("MOOD", "tense")

    assert len([key for key, _ in tags if key.upper() == "MOOD"]) == 1
    assert adapter.custom_fields()["Mood"] == "tense"


def test_custom_field_invalid_key_rejected(adapter):
    with pytest.raises(FieldRejectedError):
        adapter.set_custom_field("A=B", "x")


def test_remove_custom_field_is_idempotent(adapter, tags):
    tags["MOOD"] = ["calm"]
    adapter.remove_custom_field("mood")
    adapter.remove_custom_field("mood")
    assert "MOOD" not in tags


def test_ogg_style_pictures(adapter, tags):
    tags[PICTURE_KEY] = [_block(3, b"front"), _block(4, b"back")]

    assert [p.type for p in adapter.pictures()] == [
        PictureType.FRONT_COVER,
        PictureType.BACK_COVER,
    ]

    adapter.set_picture(Picture(PictureType.FRONT_COVER, "image/png", b"new-front"))
    pictures = {p.type: p for p in adapter.pictures()}
    assert len(adapter.pictures()) == 2
    assert pictures[PictureType.FRONT_COVER].data == b"new-front"
    assert pictures[PictureType.BACK_COVER].data == b"back"

    adapter.remove_pictures([PictureType.BACK_COVER])
    assert [p.type for p in adapter.pictures()] == [PictureType.FRONT_COVER]

    adapter.remove_pictures()
    assert PICTURE_KEY not in tags


def test_undecodable_picture_block_is_skipped(adapter, tags):
    tags[PICTURE_KEY] = ["not base64!!", _block(3, b"ok")]
    pictures = adapter.pictures()
    assert [p.data for p in pictures] == [b"ok"]


def test_set_native(adapter, tags):
    adapter.set_native("REPLAYGAIN_TRACK_GAIN", "-6.5 dB")
    assert tags["REPLAYGAIN_TRACK_GAIN"] == ["-6.5 dB"]

    adapter.set_native("REPLAYGAIN_TRACK_GAIN", None)
    assert "REPLAYGAIN_TRACK_GAIN" not in tags

    with pytest.raises(FieldRejectedError):
        adapter.set_native("BAD=KEY", "x")
