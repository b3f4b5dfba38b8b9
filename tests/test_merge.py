"""Tests for reading precedence and write dispatch across adapters."""

from __future__ import annotations

from pathlib import Path

from mutagen._vorbis import VCommentDict
from mutagen.id3 import ID3, TXXX
from mutagen.mp4 import MP4FreeForm, MP4Tags

from tagbridge.adapters import AppleAdapter, Id3Adapter, XiphAdapter, ordered_for_probe
from tagbridge.merge import apply_field_mutations, collect_metadata, merge_named_fields
from tagbridge.model import TrackNumber, WriteReport


def _adapters(id3=None, xiph=None, apple=None):
    return [Id3Adapter(tags=id3), XiphAdapter(tags=xiph), AppleAdapter(tags=apple)]


def test_ordered_for_probe_puts_primary_first():
    adapters = _adapters(xiph=VCommentDict(), apple=MP4Tags())
    ordered = ordered_for_probe(adapters)
    assert [type(a) for a in ordered] == [XiphAdapter, Id3Adapter, AppleAdapter]


def test_catalog_value_from_primary_wins():
    id3 = ID3()
    id3.add(TXXX(encoding=3, desc="CATALOGNUMBER", text=["FROM-ID3"]))
    xiph = VCommentDict()
    xiph["CATALOGNUMBER"] = ["FROM-XIPH"]

    metadata = collect_metadata(_adapters(id3=id3, xiph=xiph), Path("a.mp3"), "MP3")

    assert metadata.catalog_number == "FROM-ID3"


def test_catalog_value_falls_through_to_secondary_adapters():
    xiph = VCommentDict()
    xiph["TITLE"] = ["Song"]
    apple = MP4Tags()
    apple["----:com.apple.iTunes:ASIN"] = [MP4FreeForm(b"B000TEST")]

    metadata = collect_metadata(_adapters(xiph=xiph, apple=apple), Path("a.ogg"), "OggVorbis")

    assert metadata.title == "Song"
    assert metadata.asin == "B000TEST"
    assert metadata.tag_types == ["Xiph", "Apple"]


def test_catalog_alias_order_within_adapter():
    xiph = VCommentDict()
    xiph["LABELNO"] = ["FROM-LABELNO"]
    xiph["CATALOG"] = ["FROM-CATALOG"]

    metadata = collect_metadata(_adapters(xiph=xiph), Path("a.flac"), "FLAC")

    assert metadata.catalog_number == "FROM-CATALOG"


def test_canonical_field_absent_everywhere_is_none():
    metadata = collect_metadata(_adapters(id3=ID3()), Path("a.mp3"), "MP3")
    assert metadata.title is None
    assert metadata.custom_fields == {}
    assert metadata.pictures == []


def test_nothing_present():
    metadata = collect_metadata(_adapters(), Path("a.wav"), "WAVE")
    assert metadata.tag_types == []
    assert metadata.custom_fields == {}


def test_custom_fields_come_from_primary_only():
    id3 = ID3()
    id3.add(TXXX(encoding=3, desc="Mood", text=["calm"]))
    xiph = VCommentDict()
    xiph["STYLE"] = ["Dub"]

    metadata = collect_metadata(_adapters(id3=id3, xiph=xiph), Path("a.mp3"), "MP3")

    assert metadata.custom_fields == {"Mood": "calm"}


def test_merge_named_fields_named_wins():
    merged = merge_named_fields({"Title": "A", "TBPM": "120"}, {"title": "B", "album": None})
    assert merged == {"title": "B", "TBPM": "120"}


def test_apply_field_mutations_isolates_failures():
    id3 = ID3()
    adapter = Id3Adapter(tags=id3)
    report = WriteReport(file_path=Path("a.mp3"))

    apply_field_mutations(
        adapter,
        {"title": "Song", "track_number": "abc", "catalog_number": "CAT-1", "TBPM": "99"},
        report,
    )

    assert report.fields_written == ["title", "catalog_number", "TBPM"]
    assert report.fields_skipped == ["track_number"]
    assert report.warnings[0].startswith("track_number:")
    assert id3["TIT2"].text == ["Song"]
    assert adapter.read_freeform(["CATALOGNUMBER"]) == "CAT-1"
    assert id3["TBPM"].text == ["99"]


def test_apply_field_mutations_none_deletes_catalog_aliases():
    id3 = ID3()
    id3.add(TXXX(encoding=3, desc="CATALOG", text=["old"]))
    id3.add(TXXX(encoding=3, desc="LABELNO", text=["older"]))
    adapter = Id3Adapter(tags=id3)
    report = WriteReport(file_path=Path("a.mp3"))

    apply_field_mutations(adapter, {"catalog_number": None}, report)

    assert id3.getall("TXXX") == []
    assert report.fields_written == ["catalog_number"]


def test_apply_field_mutations_rejected_native_key():
    adapter = Id3Adapter(tags=ID3())
    report = WriteReport(file_path=Path("a.mp3"))

    apply_field_mutations(adapter, {"APIC": "nope", "track_number": (3, 9)}, report)

    assert report.fields_skipped == ["APIC"]
    assert adapter.read_field("track_number") == TrackNumber(3, 9)
