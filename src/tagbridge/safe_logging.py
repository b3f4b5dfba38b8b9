"""Path-safe logging utilities for tagbridge.

Log lines name the files being tagged. These helpers keep full library paths
out of logs:
- File path hashing/relativization
- A formatter that rewrites path arguments
- Rich console logging setup
"""

from __future__ import annotations

import hashlib
import logging
import os
from collections.abc import Mapping
from functools import lru_cache
from pathlib import Path
from typing import Any

from rich.console import Console
from rich.logging import RichHandler

LIBRARY_ROOT_ENV = "TAGBRIDGE_LIBRARY_ROOT"


def hash_path(file_path: Path | str, length: int = 12) -> str:
    """Stable, one-way token for an audio file path (SHA-256 hex prefix)."""
    digest = hashlib.sha256(str(file_path).encode("utf-8")).hexdigest()
    return digest[:length]


def relativize_path(file_path: Path | str, library_root: Path | str | None = None) -> str:
    """Shorten a path for log output.

    Paths inside ``library_root`` are shown relative to it; anything else is
    cut down to ``album_dir/track.ext``.
    """
    path = Path(file_path)
    if library_root and path.is_relative_to(library_root):
        return path.relative_to(library_root).as_posix()
    return "/".join(part for part in (path.parent.name, path.name) if part)


def safe_path(
    file_path: Path | str,
    library_root: Path | str | None = None,
    use_hash: bool = False,
) -> str:
    """Path as it may appear in a log line: hashed, or shortened."""
    return f"file:{hash_path(file_path)}" if use_hash else relativize_path(file_path, library_root)


@lru_cache(maxsize=1)
def _get_library_root() -> Path | None:
    value = os.environ.get(LIBRARY_ROOT_ENV)
    return Path(value) if value else None


class SafeLogFormatter(logging.Formatter):
    """Log formatter that shortens or hashes file paths passed as log arguments."""

    def __init__(
        self,
        fmt: str | None = None,
        datefmt: str | None = None,
        hash_paths: bool = False,
    ):
        super().__init__(fmt, datefmt)
        self.hash_paths = hash_paths
        self._library_root = _get_library_root()

    def format(self, record: logging.LogRecord) -> str:
        # Copy so other handlers still see the original arguments
        record = logging.makeLogRecord(record.__dict__)
        if record.args:
            record.args = self._sanitize_args(record.args)
        return super().format(record)

    def _sanitize_args(
        self, args: tuple[Any, ...] | Mapping[str, Any]
    ) -> tuple[Any, ...] | dict[str, Any]:
        if isinstance(args, Mapping):
            return {k: self._sanitize_value(v) for k, v in args.items()}
        return tuple(self._sanitize_value(arg) for arg in args)

    def _sanitize_value(self, value: Any) -> Any:
        if isinstance(value, Path):
            return safe_path(value, self._library_root, use_hash=self.hash_paths)
        if isinstance(value, str) and "/" in value and not value.startswith("http"):
            path = Path(value)
            if path.suffix:
                return safe_path(path, self._library_root, use_hash=self.hash_paths)
        return value


def configure_rich_logging(
    level: int = logging.WARNING,
    hash_paths: bool = False,
    fmt: str = "%(message)s",
    show_time: bool = True,
    show_path: bool = False,
) -> Console:
    """Route root logging through a rich handler with path-safe formatting.

    Replaces any handlers installed by an earlier call and returns the
    stderr console the handler writes to.
    """
    console = Console(stderr=True, soft_wrap=True)
    handler = RichHandler(
        console=console,
        show_time=show_time,
        show_path=show_path,
        rich_tracebacks=level <= logging.DEBUG,
    )
    handler.setFormatter(SafeLogFormatter(fmt=fmt, hash_paths=hash_paths))

    root_logger = logging.getLogger()
    for existing in list(root_logger.handlers):
        if isinstance(existing, RichHandler):
            root_logger.removeHandler(existing)
    root_logger.setLevel(level)
    root_logger.addHandler(handler)
    return console


## Tests


def test_hash_path():
    track = Path("/srv/music/Artist/Album/01 Intro.flac")

    token = hash_path(track)
    assert len(token) == 12
    assert token == hash_path(str(track))
    assert token != hash_path(track.with_name("02 Outro.flac"))
    assert len(hash_path(track, length=20)) == 20


def test_relativize_path():
    track = Path("/srv/music/Artist/Album/01 Intro.flac")

    assert relativize_path(track, "/srv/music") == "Artist/Album/01 Intro.flac"
    assert relativize_path(track, "/elsewhere") == "Album/01 Intro.flac"
    assert relativize_path("track.mp3") == "track.mp3"


def test_safe_log_formatter_shortens_paths():
    formatter = SafeLogFormatter(fmt="%(message)s")
    record = logging.LogRecord(
        name="test",
        level=logging.WARNING,
        pathname="",
        lineno=0,
        msg="Could not read %s",
        args=(Path("/home/user/music/album/song.mp3"),),
        exc_info=None,
    )

    assert formatter.format(record) == "Could not read album/song.mp3"


def test_safe_log_formatter_hashes_paths():
    formatter = SafeLogFormatter(fmt="%(message)s", hash_paths=True)
    record = logging.LogRecord(
        name="test",
        level=logging.WARNING,
        pathname="",
        lineno=0,
        msg="Saved %s",
        args=("/home/user/music/song.flac",),
        exc_info=None,
    )

    formatted = formatter.format(record)
    assert formatted.startswith("Saved file:")
    assert "song.flac" not in formatted


def test_configure_rich_logging_applies_format():
    root_logger = logging.getLogger()
    previous_level = root_logger.level
    configure_rich_logging(level=logging.INFO, fmt="[%(name)s] %(message)s")
    handler = next(h for h in root_logger.handlers if isinstance(h, RichHandler))
    try:
        record = logging.LogRecord(
            name="tagbridge.tagging",
            level=logging.INFO,
            pathname="",
            lineno=0,
            msg="Saved %s",
            args=(Path("/home/user/music/album/song.flac"),),
            exc_info=None,
        )
        assert handler.formatter is not None
        assert handler.formatter.format(record) == "[tagbridge.tagging] Saved album/song.flac"
    finally:
        root_logger.removeHandler(handler)
        root_logger.setLevel(previous_level)
