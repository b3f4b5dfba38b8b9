"""End-to-end read/write tests against real MP3 and FLAC files."""

from __future__ import annotations

import logging
from pathlib import Path

import pytest
from mutagen import MutagenError
from mutagen.flac import FLAC
from mutagen.id3 import ID3
from mutagen.mp3 import MP3
from mutagen.mp4 import MP4
from mutagen.oggvorbis import OggVorbis

from tagbridge.config import Config, WriteConfig
from tagbridge.errors import (
    ContainerNotFoundError,
    CorruptContainerError,
    PersistError,
    UnsupportedContainerError,
)
from tagbridge.model import PictureType, TrackNumber
from tagbridge.pictures import picture_from_bytes
from tagbridge.tagging import (
    export_pictures,
    import_picture,
    load_metadata,
    open_container,
    read_metadata,
    read_pictures,
    remove_pictures,
    set_custom_fields,
    write_metadata,
)

FULL_FIELDS = {
    "title": "Song",
    "subtitle": "Radio Edit",
    "artist": ["Primary", "Guest"],
    "album_artist": ["Primary"],
    "album": "Record",
    "genre": ["Dub", "Reggae"],
    "composer": ["Writer"],
    "lyricist": "Poet",
    "original_artist": "First Band",
    "publisher": "Label Co",
    "comments": "Nice one",
    "track_number": "5/12",
    "year": 1999,
    "isrc": "USRC17607839",
    "catalog_number": "CAT-001",
    "barcode": "0123456789012",
}


@pytest.fixture(params=["mp3_file", "flac_file"])
def audio_file(request) -> Path:
    return request.getfixturevalue(request.param)


# =============================================================================
# Round trip
# =============================================================================


def test_round_trip_every_field(audio_file: Path):
    report = write_metadata(audio_file, FULL_FIELDS)

    assert report.ok, report.errors
    assert report.saved
    assert report.fields_skipped == []

    metadata = load_metadata(audio_file)
    assert metadata.title == "Song"
    assert metadata.subtitle == "Radio Edit"
    assert metadata.artist == ["Primary", "Guest"]
    assert metadata.album_artist == ["Primary"]
    assert metadata.album == "Record"
    assert metadata.genre == ["Dub", "Reggae"]
    assert metadata.composer == ["Writer"]
    assert metadata.lyricist == "Poet"
    assert metadata.original_artist == "First Band"
    assert metadata.publisher == "Label Co"
    assert metadata.comments == "Nice one"
    assert metadata.track_number == TrackNumber(5, 12)
    assert metadata.year == 1999
    assert metadata.isrc == "USRC17607839"
    assert metadata.catalog_number == "CAT-001"
    assert metadata.barcode == "0123456789012"


def test_track_number_without_total_round_trips(audio_file: Path):
    write_metadata(audio_file, track_number="5")
    assert load_metadata(audio_file).track_number == TrackNumber(5, None)


def test_untagged_file_reads_as_empty(audio_file: Path):
    metadata = load_metadata(audio_file)
    assert metadata.tag_types == []
    assert metadata.title is None
    assert metadata.custom_fields == {}
    assert metadata.pictures == []


def test_tag_types_and_container(mp3_file: Path, flac_file: Path):
    write_metadata(mp3_file, title="x")
    write_metadata(flac_file, title="x")

    mp3 = load_metadata(mp3_file)
    flac = load_metadata(flac_file)
    assert (mp3.container, mp3.tag_types) == ("MP3", ["ID3v2.4"])
    assert (flac.container, flac.tag_types) == ("FLAC", ["Xiph"])


def test_id3v23_output(mp3_file: Path):
    config = Config(write=WriteConfig(id3_version=3))
    write_metadata(mp3_file, title="Old school", year=2001, config=config)

    assert ID3(mp3_file).version == (2, 3, 0)
    metadata = load_metadata(mp3_file)
    assert metadata.tag_types == ["ID3v2.3"]
    assert metadata.year == 2001


# =============================================================================
# Write semantics
# =============================================================================


def test_named_parameter_overrides_bulk_mapping(audio_file: Path):
    write_metadata(audio_file, {"Title": "A"}, title="B")
    assert load_metadata(audio_file).title == "B"


def test_partial_failure_isolation(audio_file: Path, caplog):
    fields = {
        "title": "Song",
        "album": "Record",
        "artist": "Primary",
        "genre": "Dub",
        "composer": "Writer",
        "lyricist": "Poet",
        "publisher": "Label Co",
        "comments": "Nice one",
        "year": 1999,
        "TrackNumber": "abc",
    }

    with caplog.at_level(logging.WARNING):
        report = write_metadata(audio_file, fields)

    assert report.ok
    assert report.saved
    assert report.fields_skipped == ["track_number"]
    assert len(report.fields_written) == 9
    assert "track_number" in caplog.text

    metadata = load_metadata(audio_file)
    assert metadata.title == "Song"
    assert metadata.year == 1999
    assert metadata.track_number is None


def test_none_in_mapping_deletes_field(audio_file: Path):
    write_metadata(audio_file, title="Song", album="Record")
    write_metadata(audio_file, {"album": None})

    metadata = load_metadata(audio_file)
    assert metadata.title == "Song"
    assert metadata.album is None


def test_native_passthrough_key(mp3_file: Path):
    report = write_metadata(mp3_file, {"TBPM": "128"})
    assert report.fields_written == ["TBPM"]
    assert ID3(mp3_file)["TBPM"].text == ["128"]


def test_dry_run_leaves_file_untouched(audio_file: Path):
    before = audio_file.read_bytes()

    report = write_metadata(audio_file, FULL_FIELDS, dry_run=True)

    assert report.dry_run
    assert not report.saved
    assert "title" in report.fields_written
    assert audio_file.read_bytes() == before


def test_empty_write_does_not_save(audio_file: Path):
    before = audio_file.read_bytes()
    report = write_metadata(audio_file)
    assert not report.saved
    assert audio_file.read_bytes() == before


# =============================================================================
# Custom fields
# =============================================================================


def test_custom_field_replace_not_duplicate(audio_file: Path):
    set_custom_fields(audio_file, {"Mood": "first"})
    set_custom_fields(audio_file, {"Mood": "second"})

    custom = load_metadata(audio_file).custom_fields
    assert custom == {"Mood": "second"}


def test_remove_absent_custom_field_leaves_other_fields(audio_file: Path):
    write_metadata(audio_file, title="Song", custom_fields={"Mood": "calm"})

    report = set_custom_fields(audio_file, {"Missing": None})

    assert report.ok
    metadata = load_metadata(audio_file)
    assert metadata.title == "Song"
    assert metadata.custom_fields == {"Mood": "calm"}


def test_id3_txxx_frames_on_disk(mp3_file: Path):
    set_custom_fields(mp3_file, {"Description": "first"})
    set_custom_fields(mp3_file, {"Description": "second"})

    frames = ID3(mp3_file).getall("TXXX")
    assert [(frame.desc, frame.text) for frame in frames] == [("Description", ["second"])]


# =============================================================================
# Pictures
# =============================================================================


def test_type_scoped_picture_replace(audio_file: Path, jpeg_bytes: bytes, png_bytes: bytes):
    write_metadata(
        audio_file,
        pictures=[
            picture_from_bytes(jpeg_bytes, "front.jpg", PictureType.FRONT_COVER),
            picture_from_bytes(jpeg_bytes, "back.jpg", PictureType.BACK_COVER),
        ],
    )

    write_metadata(audio_file, pictures=[picture_from_bytes(png_bytes, "front.png")])

    pictures = {p.type: p for p in load_metadata(audio_file).pictures}
    assert len(pictures) == 2
    assert pictures[PictureType.FRONT_COVER].data == png_bytes
    assert pictures[PictureType.FRONT_COVER].mime_type == "image/png"
    assert pictures[PictureType.BACK_COVER].data == jpeg_bytes


def test_flac_pictures_are_metadata_blocks(flac_file: Path, jpeg_file: Path):
    import_picture(flac_file, jpeg_file, "BackCover", description="rear")

    (block,) = FLAC(flac_file).pictures
    assert block.type == PictureType.BACK_COVER
    assert block.desc == "rear"


def test_remove_absent_picture_type_is_noop(audio_file: Path, jpeg_file: Path):
    import_picture(audio_file, jpeg_file)
    write_metadata(audio_file, title="Song")

    report = remove_pictures(audio_file, ["Media"])

    assert report.ok
    metadata = load_metadata(audio_file)
    assert metadata.title == "Song"
    assert [p.type for p in metadata.pictures] == [PictureType.FRONT_COVER]


def test_remove_pictures_default_and_all(audio_file: Path, jpeg_file: Path):
    import_picture(audio_file, jpeg_file)
    import_picture(audio_file, jpeg_file, "Media")

    remove_pictures(audio_file)
    assert [p.type for p in load_metadata(audio_file).pictures] == [PictureType.MEDIA]

    remove_pictures(audio_file, include_all=True)
    assert load_metadata(audio_file).pictures == []


def test_read_pictures_filters_by_type(audio_file: Path, jpeg_file: Path):
    import_picture(audio_file, jpeg_file)
    import_picture(audio_file, jpeg_file, "BackCover")

    assert [p.type for p in read_pictures(audio_file)] == [PictureType.FRONT_COVER]
    assert len(read_pictures(audio_file, include_all=True)) == 2


def test_export_pictures_next_to_source(audio_file: Path, jpeg_file: Path, jpeg_bytes: bytes):
    import_picture(audio_file, jpeg_file)
    import_picture(audio_file, jpeg_file, "BackCover")

    written = export_pictures(audio_file, include_all=True, prefix="art_")

    assert sorted(path.name for path in written) == ["art_BackCover.jpg", "art_FrontCover.jpg"]
    assert all(path.parent == audio_file.parent for path in written)
    assert written[0].read_bytes() == jpeg_bytes


def test_export_pictures_without_matches(audio_file: Path, tmp_path: Path):
    assert export_pictures(audio_file, directory=tmp_path / "out") == []
    assert not (tmp_path / "out").exists()


def test_import_unsupported_image(audio_file: Path, tmp_path: Path):
    image = tmp_path / "cover.xyz"
    image.write_bytes(b"data")

    report = import_picture(audio_file, image)

    assert not report.ok
    assert report.errors == [f"Unsupported image format: {image}"]


def test_unknown_picture_type_is_reported(audio_file: Path, jpeg_file: Path):
    import_picture(audio_file, jpeg_file)
    before = audio_file.read_bytes()

    reports = [
        remove_pictures(audio_file, ["NoSuchType"]),
        import_picture(audio_file, jpeg_file, "NoSuchType"),
        write_metadata(audio_file, title="x", remove_pictures=["FrontCover", "NoSuchType"]),
    ]

    for report in reports:
        assert not report.ok
        assert not report.saved
        assert str(audio_file) in report.errors[0]
        assert "Unknown picture type" in report.errors[0]
    assert audio_file.read_bytes() == before


# =============================================================================
# Container errors and resource handling
# =============================================================================


def test_missing_file(tmp_path: Path):
    missing = tmp_path / "missing.mp3"

    with pytest.raises(ContainerNotFoundError):
        load_metadata(missing)
    assert read_metadata(missing) is None

    report = write_metadata(missing, title="x")
    assert not report.ok
    assert "file not found" in report.errors[0]


def test_unsupported_container(tmp_path: Path):
    notes = tmp_path / "notes.txt"
    notes.write_text("not audio at all\n")

    with pytest.raises(UnsupportedContainerError):
        load_metadata(notes)


def test_corrupt_container(tmp_path: Path):
    broken = tmp_path / "broken.mp3"
    broken.write_bytes(b"\x00" * 2048)

    with pytest.raises(CorruptContainerError):
        load_metadata(broken)
    assert read_metadata(broken) is None


def test_handle_released_on_every_exit(mp3_file: Path):
    with open_container(mp3_file) as container:
        handle = container.handle
        assert not handle.closed
    assert handle.closed

    with pytest.raises(RuntimeError), open_container(mp3_file, writable=True) as container:
        handle = container.handle
        raise RuntimeError("boom")
    assert handle.closed


def test_read_only_container_refuses_save(mp3_file: Path):
    with open_container(mp3_file) as container, pytest.raises(PersistError):
        container.save(Config())


@pytest.mark.parametrize(("fixture", "file_type"), [("mp3_file", MP3), ("flac_file", FLAC)])
def test_save_failure_is_reported_and_handle_released(request, monkeypatch, fixture, file_type):
    path: Path = request.getfixturevalue(fixture)
    before = path.read_bytes()
    handles = []

    def failing_save(self, filething=None, **kwargs):
        handles.append(filething)
        raise MutagenError("disk full")

    monkeypatch.setattr(file_type, "save", failing_save)

    report = write_metadata(path, title="Never lands")

    assert not report.ok
    assert not report.saved
    assert str(path) in report.errors[0]
    assert "disk full" in report.errors[0]
    assert len(handles) == 1 and handles[0].closed
    assert path.read_bytes() == before


# =============================================================================
# MP4 and Ogg Vorbis files
# =============================================================================


@pytest.fixture(params=["mp4_file", "ogg_file"])
def atom_or_ogg_file(request) -> Path:
    return request.getfixturevalue(request.param)


def test_mp4_and_ogg_round_trip(atom_or_ogg_file: Path, jpeg_file: Path, jpeg_bytes: bytes):
    report = write_metadata(atom_or_ogg_file, FULL_FIELDS, custom_fields={"Mood": "calm"})
    assert report.ok, report.errors
    assert report.saved
    assert report.fields_skipped == []

    imported = import_picture(atom_or_ogg_file, jpeg_file)
    assert imported.ok, imported.errors

    metadata = load_metadata(atom_or_ogg_file)
    assert metadata.title == "Song"
    assert metadata.artist == ["Primary", "Guest"]
    assert metadata.genre == ["Dub", "Reggae"]
    assert metadata.track_number == TrackNumber(5, 12)
    assert metadata.year == 1999
    assert metadata.isrc == "USRC17607839"
    assert metadata.catalog_number == "CAT-001"
    assert metadata.custom_fields["Mood"] == "calm"
    assert [(p.type, p.mime_type, p.data) for p in metadata.pictures] == [
        (PictureType.FRONT_COVER, "image/jpeg", jpeg_bytes)
    ]


def test_mp4_tags_created_on_first_write(mp4_file: Path):
    assert MP4(mp4_file).tags is None

    write_metadata(mp4_file, title="Song", artist=["A", "B"])

    on_disk = MP4(mp4_file)
    assert on_disk.tags["\xa9nam"] == ["Song"]
    assert on_disk.tags["\xa9ART"] == ["A", "B"]
    metadata = load_metadata(mp4_file)
    assert (metadata.container, metadata.tag_types) == ("MP4", ["Apple"])


def test_ogg_comments_written_through_handle(ogg_file: Path):
    write_metadata(ogg_file, {"title": "Song", "catalog_number": "CAT-9"})

    on_disk = OggVorbis(ogg_file)
    assert on_disk["TITLE"] == ["Song"]
    assert on_disk["CATALOGNUMBER"] == ["CAT-9"]
    metadata = load_metadata(ogg_file)
    assert (metadata.container, metadata.tag_types) == ("OggVorbis", ["Xiph"])
