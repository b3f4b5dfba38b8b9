"""Picture import, export naming, selection, and mutation.

MIME types come from a fixed extension table in both directions. Importing
an unknown extension is an error; exporting an unknown MIME type falls back
to ``.jpg`` with a warning.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path

from tagbridge.adapters.base import PictureStore, TagAdapter
from tagbridge.errors import FieldError, UnsupportedImageError
from tagbridge.model import Picture, PictureType, WriteReport

log = logging.getLogger(__name__)

EXTENSION_TO_MIME: dict[str, str] = {
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".gif": "image/gif",
    ".bmp": "image/bmp",
    ".tif": "image/tiff",
    ".tiff": "image/tiff",
    ".webp": "image/webp",
}

MIME_TO_EXTENSION: dict[str, str] = {
    "image/jpeg": ".jpg",
    "image/png": ".png",
    "image/gif": ".gif",
    "image/bmp": ".bmp",
    "image/tiff": ".tif",
    "image/webp": ".webp",
}

DEFAULT_TYPES = frozenset({PictureType.FRONT_COVER})


@dataclass(frozen=True)
class PictureExport:
    """A picture and the file it will be written to."""

    picture: Picture
    target: Path


def mime_for_filename(filename: str | Path) -> str:
    """Look up the MIME type for a filename's extension.

    Raises:
        UnsupportedImageError: if the extension is not in EXTENSION_TO_MIME
    """
    mime = EXTENSION_TO_MIME.get(Path(filename).suffix.lower())
    if mime is None:
        raise UnsupportedImageError(str(filename))
    return mime


def picture_from_bytes(
    data: bytes,
    filename: str,
    picture_type: PictureType | int | str = PictureType.FRONT_COVER,
    description: str = "",
) -> Picture:
    """Build a Picture from raw bytes, deriving the MIME type from ``filename``."""
    return Picture(
        type=PictureType.parse(picture_type),
        mime_type=mime_for_filename(filename),
        data=data,
        description=description,
        filename=Path(filename).name,
    )


def load_picture_file(
    path: Path,
    picture_type: PictureType | int | str = PictureType.FRONT_COVER,
    description: str = "",
) -> Picture:
    """Read an image file from disk into a Picture."""
    # Check the extension before touching the file
    mime_for_filename(path)
    return picture_from_bytes(path.read_bytes(), path.name, picture_type, description)


def extension_for_mime(mime_type: str) -> str:
    """File extension for a MIME type; unknown types get ``.jpg`` and a warning."""
    extension = MIME_TO_EXTENSION.get(mime_type.lower())
    if extension is None:
        log.warning("Unknown picture MIME type %r, exporting as .jpg", mime_type)
        return ".jpg"
    return extension


def export_filename(picture: Picture, prefix: str = "") -> str:
    return f"{prefix}{picture.type.label}{extension_for_mime(picture.mime_type)}"


def resolve_export_directory(directory: Path | None, source_path: Path | None) -> Path:
    """Explicit directory, else the source file's directory, else the cwd."""
    if directory is not None:
        return directory
    if source_path is not None and source_path.parent != Path(""):
        return source_path.parent
    cwd = Path.cwd()
    log.warning("No export directory and no source directory, using %s", cwd)
    return cwd


def plan_exports(
    pictures: Iterable[Picture],
    directory: Path | None = None,
    source_path: Path | None = None,
    prefix: str = "",
) -> list[PictureExport]:
    """
    Work out a target path for each picture without writing anything.

    Pictures whose names collide get ``_2``, ``_3``... before the extension.
    """
    target_dir = resolve_export_directory(directory, source_path)
    seen: dict[str, int] = {}
    plan = []
    for picture in pictures:
        name = export_filename(picture, prefix)
        count = seen.get(name, 0) + 1
        seen[name] = count
        if count > 1:
            stem, suffix = Path(name).stem, Path(name).suffix
            name = f"{stem}_{count}{suffix}"
        plan.append(PictureExport(picture, target_dir / name))
    return plan


def write_exports(plan: Iterable[PictureExport]) -> list[Path]:
    """Write planned exports to disk, creating the target directory if needed."""
    written = []
    for export in plan:
        export.target.parent.mkdir(parents=True, exist_ok=True)
        export.target.write_bytes(export.picture.data)
        log.debug("Exported %s (%d bytes)", export.target, export.picture.size)
        written.append(export.target)
    return written


def _resolve_types(
    types: Iterable[PictureType | int | str] | None,
) -> frozenset[PictureType]:
    if types is None:
        return DEFAULT_TYPES
    return frozenset(PictureType.parse(t) for t in types)


def select_pictures(
    pictures: Iterable[Picture],
    types: Iterable[PictureType | int | str] | None = None,
    include_all: bool = False,
) -> list[Picture]:
    """Pictures of the requested types (default FrontCover), in original order.

    ``include_all`` wins over any type filter.
    """
    if include_all:
        return list(pictures)
    wanted = _resolve_types(types)
    return [picture for picture in pictures if picture.type in wanted]


def apply_picture_mutations(
    adapter: TagAdapter,
    add: Iterable[Picture] = (),
    remove_types: Iterable[PictureType | int | str] | None = None,
    remove_all: bool = False,
    report: WriteReport | None = None,
) -> None:
    """
    Apply removals, then additions, to the adapter's pictures.

    Each added picture replaces only pictures of its own type. Removing a
    type that is not present does nothing. A picture the container refuses
    is recorded as skipped in ``report``.
    """
    add = list(add)
    if not (add or remove_types or remove_all):
        return
    if not isinstance(adapter, PictureStore):
        if report is not None:
            report.skip("pictures", f"{adapter.kind} tags cannot hold pictures")
        return

    if remove_all:
        adapter.remove_pictures(None)
        if report is not None:
            report.fields_written.append("pictures:remove:all")
    elif remove_types:
        types = _resolve_types(remove_types)
        adapter.remove_pictures(types)
        if report is not None:
            report.fields_written.extend(f"pictures:remove:{t.label}" for t in sorted(types))

    for picture in add:
        name = f"pictures:{picture.type.label}"
        try:
            adapter.set_picture(picture)
        except FieldError as e:
            log.warning("Picture %s not written: %s", picture.type.label, e)
            if report is not None:
                report.skip(name, str(e))
            continue
        if report is not None:
            report.fields_written.append(name)
