"""CLI for tagbridge using Typer and Rich.

Thin wrapper over the tagging API: batch reads, single-file writes, picture
import/export/removal, and a template of writable fields.
"""

from __future__ import annotations

import logging
import sys
from enum import StrEnum
from pathlib import Path
from typing import Annotated, Any

import typer
from rich.table import Table
from rich.text import Text

from tagbridge.batch import collect_audio_files, read_batch
from tagbridge.config import Config
from tagbridge.console import (
    make_progress,
    output,
    print_error,
    print_json,
    print_success,
    print_warning,
    set_console,
)
from tagbridge.errors import ContainerError
from tagbridge.fields import template
from tagbridge.model import TrackMetadata, WriteReport
from tagbridge.safe_logging import configure_rich_logging
from tagbridge.tagging import export_pictures, import_picture, remove_pictures, write_metadata


class OutputFormat(StrEnum):
    """Output format for CLI commands."""

    TEXT = "text"
    JSON = "json"


class ExitCode:
    """Standard exit codes for CLI commands."""

    SUCCESS = 0
    ERROR = 1
    NO_RESULTS = 2


app = typer.Typer(
    name="tagbridge",
    help="tagbridge: read and write audio tags through one canonical model",
    no_args_is_help=True,
    add_completion=False,
)

pictures_app = typer.Typer(help="Embedded picture commands", no_args_is_help=True)
app.add_typer(pictures_app, name="pictures")


class AppState:
    """Global application state passed between commands."""

    config: Config
    output_format: OutputFormat
    verbose: int


state = AppState()


@app.callback()
def main(
    config_path: Annotated[
        Path | None,
        typer.Option("--config", help="Path to configuration TOML file", exists=True),
    ] = None,
    output_format: Annotated[
        OutputFormat,
        typer.Option("--output", "-o", help="Output format"),
    ] = OutputFormat.TEXT,
    verbose: Annotated[
        int,
        typer.Option("--verbose", "-v", count=True, help="Increase verbosity"),
    ] = 0,
    id3_version: Annotated[
        int | None,
        typer.Option(help="ID3v2 minor version to write (3 or 4)", min=3, max=4),
    ] = None,
    workers: Annotated[
        int | None, typer.Option(help="Worker threads for batch reads", min=1)
    ] = None,
) -> None:
    """tagbridge: read and write audio tags through one canonical model."""
    logger = logging.getLogger(__name__)

    # Load config (TOML + env vars)
    cfg = Config.load(config_path)

    # CLI overrides (highest precedence: CLI > Env > Config File > Defaults)
    if id3_version is not None:
        cfg.write.id3_version = id3_version
    if workers is not None:
        cfg.batch.workers = workers

    if verbose > 0:
        log_level = logging.DEBUG if verbose >= 2 else logging.INFO
    else:
        log_level = getattr(logging, cfg.logging.level.upper(), logging.WARNING)

    console = configure_rich_logging(
        level=log_level, hash_paths=cfg.logging.hash_paths, fmt=cfg.logging.format
    )
    set_console(console)

    # mutagen is quiet, but keep third-party noise out unless very verbose (-vvv)
    if verbose < 3:
        logging.getLogger("mutagen").setLevel(logging.WARNING)

    logger.debug(
        "Logging configured: level=%s, hash_paths=%s",
        logging.getLevelName(log_level),
        cfg.logging.hash_paths,
    )

    state.config = cfg
    state.output_format = output_format
    state.verbose = verbose


def _parse_assignments(items: list[str] | None, option: str) -> dict[str, Any]:
    """Parse repeated ``KEY=VALUE`` options; a repeated key collects a list."""
    parsed: dict[str, Any] = {}
    for item in items or []:
        key, sep, value = item.partition("=")
        if not sep or not key.strip():
            raise typer.BadParameter(f"expected KEY=VALUE, got {item!r}", param_hint=option)
        key = key.strip()
        if key in parsed:
            existing = parsed[key]
            parsed[key] = [*existing, value] if isinstance(existing, list) else [existing, value]
        else:
            parsed[key] = value
    return parsed


def _metadata_table(metadata: TrackMetadata) -> Table:
    table = Table(title=Text(str(metadata.path)), show_header=False, title_justify="left")
    table.add_column("Field", style="cyan")
    table.add_column("Value")
    tag_types = ", ".join(metadata.tag_types) or "no tags"
    table.add_row("container", f"{metadata.container} ({tag_types})")
    data = metadata.to_dict()
    skipped = ("path", "container", "tag_types", "custom_fields", "pictures")
    for key, value in data.items():
        if key in skipped or value is None:
            continue
        if isinstance(value, list):
            value = "; ".join(value)
        elif isinstance(value, dict):
            value = str(metadata.track_number)
        table.add_row(key, Text(str(value)))
    for key, value in metadata.custom_fields.items():
        table.add_row(f"custom:{key}", Text(value))
    for picture in data["pictures"]:
        table.add_row(
            f"picture:{picture['type']}", f"{picture['mime_type']}, {picture['size']} bytes"
        )
    return table


def _emit_report(report: WriteReport) -> None:
    if state.output_format == OutputFormat.JSON:
        print_json(
            {
                "file_path": str(report.file_path),
                "fields_written": report.fields_written,
                "fields_skipped": report.fields_skipped,
                "warnings": report.warnings,
                "errors": report.errors,
                "saved": report.saved,
                "dry_run": report.dry_run,
            }
        )
    else:
        for warning in report.warnings:
            print_warning(warning)
        for error in report.errors:
            print_error(error)
        if report.ok:
            verb = "Would write" if report.dry_run else "Wrote"
            print_success(f"{verb} {len(report.fields_written)} change(s) to {report.file_path}")

    if not report.ok:
        sys.exit(ExitCode.ERROR)


# ====================================================================
# MAIN COMMANDS
# ====================================================================


@app.command()
def read(
    paths: Annotated[
        list[Path],
        typer.Argument(help="Audio files or directories to read", exists=True),
    ],
    recursive: Annotated[bool, typer.Option(help="Descend into directories")] = True,
) -> None:
    """Read tags from audio files and show the merged metadata.

    Unreadable files are reported as warnings and skipped. With
    ``batch.continue_on_error`` off the first one stops the command (exit 1).

    Examples:
        tagbridge read song.mp3
        tagbridge -o json read /music/album/
    """
    files = collect_audio_files(paths, recursive=recursive)
    if not files:
        print_warning("No audio files found")
        sys.exit(ExitCode.NO_RESULTS)

    with make_progress() as progress:
        task = progress.add_task("Reading tags...", total=len(files))
        results, summary = read_batch(
            files,
            workers=state.config.batch.workers,
            progress_callback=lambda done, total: progress.update(task, completed=done),
            continue_on_error=state.config.batch.continue_on_error,
        )

    for path, _ in summary.errors:
        print_warning(f"Could not read tags from {path}")
    if summary.failed and not state.config.batch.continue_on_error:
        print_error(f"Stopped after {summary.processed} of {summary.total} file(s)")
        sys.exit(ExitCode.ERROR)

    readable = [metadata for metadata in results if metadata is not None]
    if state.output_format == OutputFormat.JSON:
        print_json([metadata.to_dict() for metadata in readable])
    else:
        for metadata in readable:
            output().print(_metadata_table(metadata))

    if summary.succeeded == 0:
        sys.exit(ExitCode.NO_RESULTS)


@app.command()
def write(
    path: Annotated[Path, typer.Argument(help="Audio file to tag", exists=True, dir_okay=False)],
    set_: Annotated[
        list[str] | None,
        typer.Option("--set", "-s", help="KEY=VALUE field assignment (repeatable)"),
    ] = None,
    unset: Annotated[
        list[str] | None, typer.Option(help="Field to delete (repeatable)")
    ] = None,
    title: Annotated[str | None, typer.Option(help="Track title")] = None,
    subtitle: Annotated[str | None, typer.Option(help="Subtitle")] = None,
    artist: Annotated[
        list[str] | None, typer.Option("--artist", "-a", help="Artist (repeatable)")
    ] = None,
    album_artist: Annotated[
        list[str] | None, typer.Option(help="Album artist (repeatable)")
    ] = None,
    album: Annotated[str | None, typer.Option(help="Album title")] = None,
    genre: Annotated[list[str] | None, typer.Option(help="Genre (repeatable)")] = None,
    composer: Annotated[list[str] | None, typer.Option(help="Composer (repeatable)")] = None,
    lyricist: Annotated[str | None, typer.Option(help="Lyricist")] = None,
    original_artist: Annotated[str | None, typer.Option(help="Original artist")] = None,
    publisher: Annotated[str | None, typer.Option(help="Publisher or label")] = None,
    comments: Annotated[str | None, typer.Option(help="Comment")] = None,
    track: Annotated[str | None, typer.Option("--track", help="Track number, N or N/M")] = None,
    year: Annotated[str | None, typer.Option(help="Release year")] = None,
    isrc: Annotated[str | None, typer.Option(help="ISRC code")] = None,
    custom: Annotated[
        list[str] | None, typer.Option("--custom", help="KEY=VALUE custom field (repeatable)")
    ] = None,
    remove_custom: Annotated[
        list[str] | None, typer.Option(help="Custom field to remove (repeatable)")
    ] = None,
    dry_run: Annotated[bool, typer.Option(help="Apply in memory only, do not save")] = False,
) -> None:
    """Write tags to one audio file.

    Named options win over --set for the same field. Unknown --set keys are
    written directly as native frames/keys/atoms.

    Examples:
        tagbridge write song.mp3 --title "Song" -a "Artist A" -a "Artist B" --track 5/12
        tagbridge write song.flac --set catalog_number=ABC-123 --custom MOOD=calm
    """
    fields = _parse_assignments(set_, "--set")
    for key in unset or []:
        fields[key] = None

    custom_fields: dict[str, str | None] = {
        key: value if isinstance(value, str) else value[-1]
        for key, value in _parse_assignments(custom, "--custom").items()
    }
    for key in remove_custom or []:
        custom_fields[key] = None

    report = write_metadata(
        path,
        fields,
        custom_fields=custom_fields,
        dry_run=dry_run,
        config=state.config,
        title=title,
        subtitle=subtitle,
        artist=artist or None,
        album_artist=album_artist or None,
        album=album,
        genre=genre or None,
        composer=composer or None,
        lyricist=lyricist,
        original_artist=original_artist,
        publisher=publisher,
        comments=comments,
        track_number=track,
        year=year,
        isrc=isrc,
    )
    _emit_report(report)


@app.command("template")
def template_command() -> None:
    """Print every writable field as an editable JSON skeleton."""
    print_json(template())


# ====================================================================
# PICTURES COMMANDS
# ====================================================================


@pictures_app.command("export")
def pictures_export(
    path: Annotated[Path, typer.Argument(help="Audio file", exists=True, dir_okay=False)],
    directory: Annotated[
        Path | None,
        typer.Option("--dir", "-d", help="Target directory (default: next to the audio file)"),
    ] = None,
    prefix: Annotated[str | None, typer.Option(help="Filename prefix")] = None,
    types: Annotated[
        list[str] | None, typer.Option("--type", "-t", help="Picture type (repeatable)")
    ] = None,
    include_all: Annotated[bool, typer.Option("--all", help="Export every picture")] = False,
) -> None:
    """Export embedded pictures to image files named after their type."""
    try:
        written = export_pictures(
            path,
            directory=directory,
            types=types or None,
            include_all=include_all,
            prefix=prefix,
            config=state.config,
        )
    except (ContainerError, ValueError) as e:
        print_error(str(e))
        sys.exit(ExitCode.ERROR)

    if state.output_format == OutputFormat.JSON:
        print_json([str(p) for p in written])
    elif not written:
        print_warning(f"No matching pictures in {path}")
    else:
        for target in written:
            print_success(f"Exported {target}")
    if not written:
        sys.exit(ExitCode.NO_RESULTS)


@pictures_app.command("import")
def pictures_import(
    path: Annotated[Path, typer.Argument(help="Audio file", exists=True, dir_okay=False)],
    image: Annotated[Path, typer.Argument(help="Image file", exists=True, dir_okay=False)],
    picture_type: Annotated[
        str, typer.Option("--type", "-t", help="Picture type")
    ] = "FrontCover",
    description: Annotated[str, typer.Option(help="Picture description")] = "",
    dry_run: Annotated[bool, typer.Option(help="Apply in memory only, do not save")] = False,
) -> None:
    """Embed an image, replacing only existing pictures of the same type."""
    report = import_picture(
        path,
        image,
        picture_type=picture_type,
        description=description,
        dry_run=dry_run,
        config=state.config,
    )
    _emit_report(report)


@pictures_app.command("remove")
def pictures_remove(
    path: Annotated[Path, typer.Argument(help="Audio file", exists=True, dir_okay=False)],
    types: Annotated[
        list[str] | None, typer.Option("--type", "-t", help="Picture type (repeatable)")
    ] = None,
    include_all: Annotated[bool, typer.Option("--all", help="Remove every picture")] = False,
    dry_run: Annotated[bool, typer.Option(help="Apply in memory only, do not save")] = False,
) -> None:
    """Remove embedded pictures; removing an absent type is not an error."""
    report = remove_pictures(
        path,
        types=types or None,
        include_all=include_all,
        dry_run=dry_run,
        config=state.config,
    )
    _emit_report(report)


# ====================================================================
# ENTRY POINT
# ====================================================================


def cli() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    cli()
