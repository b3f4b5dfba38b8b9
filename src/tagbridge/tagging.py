"""Single-file read and write pipelines.

Every entry point opens its own file handle through ``open_container`` and
releases it on every exit path. Nothing is cached between calls and nothing
is shared between concurrent calls on different files. Concurrent writes to
the *same* path are not coordinated here; callers must serialise them.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator, Mapping
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Any, BinaryIO

import mutagen
from mutagen import FileType, MutagenError
from mutagen.id3 import ID3, ID3FileType

from tagbridge.adapters import TagAdapter, build_adapters
from tagbridge.config import Config
from tagbridge.custom_fields import apply_custom_fields
from tagbridge.errors import (
    ContainerError,
    ContainerNotFoundError,
    CorruptContainerError,
    PersistError,
    UnsupportedContainerError,
    UnsupportedImageError,
)
from tagbridge.merge import apply_field_mutations, build_metadata, merge_named_fields
from tagbridge.model import Picture, PictureType, TrackMetadata, TrackNumber, WriteReport
from tagbridge.pictures import (
    apply_picture_mutations,
    load_picture_file,
    plan_exports,
    select_pictures,
    write_exports,
)

log = logging.getLogger(__name__)


@dataclass
class Container:
    """An opened audio file: the mutagen object, its handle, and one adapter per tag kind."""

    path: Path
    audio: FileType
    handle: BinaryIO
    adapters: list[TagAdapter]
    writable: bool = False

    @property
    def primary(self) -> TagAdapter | None:
        """First adapter whose tag kind is present in the file."""
        return next((adapter for adapter in self.adapters if adapter.probe()), None)

    def writable_adapter(self) -> TagAdapter:
        """The adapter writes go to: the primary one, else one that can create its tags."""
        primary = self.primary
        if primary is not None:
            return primary
        for adapter in self.adapters:
            if adapter.can_create(self.audio):
                return adapter
        raise UnsupportedContainerError(
            self.path, f"no supported tag format for {type(self.audio).__name__} files"
        )

    def save(self, config: Config) -> None:
        """
        Persist tag changes through the open handle.

        Raises:
            PersistError: if mutagen fails to write
        """
        if not self.writable:
            raise PersistError(self.path, OSError("container was opened read-only"))

        kwargs: dict[str, Any] = {}
        if isinstance(self.audio.tags, ID3):
            version = config.write.id3_version
            if version == 3:
                self.audio.tags.update_to_v23()
            kwargs["v2_version"] = version
            if isinstance(self.audio, ID3FileType):
                kwargs["v1"] = config.write.id3v1

        self.handle.seek(0)
        try:
            self.audio.save(self.handle, **kwargs)
        except (MutagenError, OSError, ValueError, TypeError) as e:
            raise PersistError(self.path, e) from e
        log.debug("Saved tags to %s", self.path)


@contextmanager
def open_container(path: Path | str, writable: bool = False) -> Iterator[Container]:
    """
    Open ``path`` and yield a Container; the file handle is closed on exit.

    Raises:
        ContainerNotFoundError: if the path is not an existing file
        UnsupportedContainerError: if mutagen does not recognise the format
        CorruptContainerError: if mutagen fails to parse it
        ContainerError: if the file cannot be opened
    """
    path = Path(path)
    if not path.is_file():
        raise ContainerNotFoundError(path)

    try:
        handle = open(path, "r+b" if writable else "rb")  # noqa: SIM115
    except OSError as e:
        raise ContainerError(path, f"cannot open: {e.strerror or e}") from e

    try:
        try:
            audio = mutagen.File(handle)
        except MutagenError as e:
            raise CorruptContainerError(path, str(e) or type(e).__name__) from e
        if audio is None:
            raise UnsupportedContainerError(path, "unrecognised audio container")
        yield Container(
            path=path,
            audio=audio,
            handle=handle,
            adapters=build_adapters(audio),
            writable=writable,
        )
    finally:
        handle.close()
        log.debug("Released %s", path)


def load_metadata(path: Path | str) -> TrackMetadata:
    """
    Read and merge every tag kind present in ``path``.

    Raises:
        ContainerError: if the file cannot be opened or parsed
    """
    with open_container(path) as container:
        return build_metadata(container)


def read_metadata(path: Path | str) -> TrackMetadata | None:
    """Like ``load_metadata``, but a failure is logged as a warning and returns None."""
    try:
        return load_metadata(path)
    except (ContainerError, MutagenError, OSError) as e:
        log.warning("Could not read tags from %s: %s", Path(path), e)
        return None


def write_metadata(
    path: Path | str,
    fields: Mapping[str, Any] | None = None,
    *,
    custom_fields: Mapping[str, str | None] | None = None,
    pictures: Iterable[Picture] | None = None,
    remove_pictures: Iterable[PictureType | int | str] | None = None,
    remove_all_pictures: bool = False,
    dry_run: bool = False,
    config: Config | None = None,
    title: str | None = None,
    subtitle: str | None = None,
    artist: str | list[str] | None = None,
    album_artist: str | list[str] | None = None,
    album: str | None = None,
    genre: str | list[str] | None = None,
    composer: str | list[str] | None = None,
    lyricist: str | None = None,
    original_artist: str | None = None,
    publisher: str | None = None,
    comments: str | None = None,
    track_number: TrackNumber | str | int | None = None,
    year: int | str | None = None,
    isrc: str | None = None,
) -> WriteReport:
    """
    Apply field, custom-field and picture changes to ``path`` and save once.

    ``fields`` is a bulk mapping keyed by field name (any case or separator);
    a ``None`` value deletes the field. Keys outside the known fields are set
    directly on the native tag structure. Named parameters override ``fields``
    entries for the same field.

    Field-level failures become warnings in the report and the other changes
    still land. Open and save failures are logged and recorded in
    ``report.errors``; nothing is raised.
    """
    config = config or Config()
    path = Path(path)
    report = WriteReport(file_path=path, dry_run=dry_run)
    merged = merge_named_fields(
        fields,
        {
            "title": title,
            "subtitle": subtitle,
            "artist": artist,
            "album_artist": album_artist,
            "album": album,
            "genre": genre,
            "composer": composer,
            "lyricist": lyricist,
            "original_artist": original_artist,
            "publisher": publisher,
            "comments": comments,
            "track_number": track_number,
            "year": year,
            "isrc": isrc,
        },
    )

    try:
        remove_types = (
            None if remove_pictures is None else [PictureType.parse(t) for t in remove_pictures]
        )
    except ValueError as e:
        log.error("Write aborted for %s: %s", path, e)
        report.errors.append(f"{path}: {e}")
        return report

    try:
        with open_container(path, writable=not dry_run) as container:
            adapter = container.writable_adapter()
            apply_field_mutations(adapter, merged, report, config.write.multi_value_separator)
            apply_custom_fields(adapter, custom_fields or {}, report)
            apply_picture_mutations(
                adapter,
                add=pictures or (),
                remove_types=remove_types,
                remove_all=remove_all_pictures,
                report=report,
            )
            if dry_run:
                log.info("Dry run: %d change(s) not saved to %s", len(report.fields_written), path)
            elif report.fields_written:
                container.save(config)
                report.saved = True
            else:
                log.info("Nothing to write to %s", path)
    except (ContainerError, MutagenError, OSError) as e:
        log.error("Write failed for %s: %s", path, e)
        report.errors.append(str(e))
    return report


def read_pictures(
    path: Path | str,
    types: Iterable[PictureType | int | str] | None = None,
    include_all: bool = False,
) -> list[Picture]:
    """Embedded pictures of the given types (default FrontCover), in file order."""
    return select_pictures(load_metadata(path).pictures, types, include_all)


def export_pictures(
    path: Path | str,
    directory: Path | None = None,
    types: Iterable[PictureType | int | str] | None = None,
    include_all: bool = False,
    prefix: str | None = None,
    config: Config | None = None,
) -> list[Path]:
    """Write selected pictures next to ``path`` (or into ``directory``); returns written files."""
    config = config or Config()
    path = Path(path)
    if types is None and not include_all:
        types = config.pictures.picture_types
    pictures = read_pictures(path, types, include_all)
    if not pictures:
        log.info("No matching pictures in %s", path)
        return []
    plan = plan_exports(
        pictures,
        directory=directory,
        source_path=path,
        prefix=config.pictures.export_prefix if prefix is None else prefix,
    )
    return write_exports(plan)


def import_picture(
    path: Path | str,
    image_path: Path,
    picture_type: PictureType | int | str = PictureType.FRONT_COVER,
    description: str = "",
    dry_run: bool = False,
    config: Config | None = None,
) -> WriteReport:
    """Embed an image file, replacing existing pictures of the same type only."""
    try:
        picture = load_picture_file(Path(image_path), picture_type, description)
    except (UnsupportedImageError, OSError) as e:
        log.error("Picture import into %s failed: %s", Path(path), e)
        report = WriteReport(file_path=Path(path), dry_run=dry_run)
        report.errors.append(str(e))
        return report
    except ValueError as e:
        log.error("Picture import into %s failed: %s", Path(path), e)
        report = WriteReport(file_path=Path(path), dry_run=dry_run)
        report.errors.append(f"{Path(path)}: {e}")
        return report
    return write_metadata(path, pictures=[picture], dry_run=dry_run, config=config)


def remove_pictures(
    path: Path | str,
    types: Iterable[PictureType | int | str] | None = None,
    include_all: bool = False,
    dry_run: bool = False,
    config: Config | None = None,
) -> WriteReport:
    """Remove pictures of ``types`` (default FrontCover), or all with ``include_all``."""
    config = config or Config()
    if types is None:
        types = config.pictures.picture_types
    return write_metadata(
        path,
        remove_pictures=list(types),
        remove_all_pictures=include_all,
        dry_run=dry_run,
        config=config,
    )


def set_custom_fields(
    path: Path | str,
    mapping: Mapping[str, str | None],
    dry_run: bool = False,
    config: Config | None = None,
) -> WriteReport:
    """Replace-or-create each custom field; ``None`` values remove the key."""
    return write_metadata(path, custom_fields=mapping, dry_run=dry_run, config=config)
