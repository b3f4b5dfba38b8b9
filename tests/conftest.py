"""Pytest configuration and shared fixtures for tagbridge tests."""

from __future__ import annotations

import struct
from pathlib import Path

import pytest
from mutagen.ogg import OggPage

# =============================================================================
# Minimal audio files
# =============================================================================

# MPEG-1 Layer III, 128 kbps, 44.1 kHz, no padding: 417-byte frames
MPEG_FRAME = b"\xff\xfb\x90\x00" + b"\x00" * 413


def create_minimal_mp3(path: Path, frames: int = 30) -> Path:
    """Write an untagged MP3 made of silent MPEG frames."""
    path.write_bytes(MPEG_FRAME * frames)
    return path


def create_minimal_flac(path: Path) -> Path:
    """Write a FLAC file holding only a STREAMINFO block (no comments, no audio)."""
    # STREAMINFO (34 bytes):
    # - min/max block size: 4096/4096
    # - min/max frame size: unknown
    # - sample rate 44100 (20 bits), channels-1 = 1 (3 bits), bits-1 = 15 (5 bits),
    #   total samples 0 (36 bits)
    # - MD5: zeros
    streaminfo = (
        struct.pack(">HH", 4096, 4096)
        + b"\x00" * 6
        + struct.pack(">Q", (44100 << 44) | (1 << 41) | (15 << 36))
        + b"\x00" * 16
    )
    # Block header: last-block flag | type 0, 24-bit length
    path.write_bytes(b"fLaC" + bytes([0x80, 0x00, 0x00, len(streaminfo)]) + streaminfo)
    return path


def _atom(name: bytes, payload: bytes) -> bytes:
    return struct.pack(">I4s", 8 + len(payload), name) + payload


def create_minimal_mp4(path: Path) -> Path:
    """Write an M4A holding only ftyp and a moov with an mvhd (no tracks, no ilst)."""
    ftyp = _atom(b"ftyp", b"M4A " + struct.pack(">I", 0) + b"M4A mp42isom")
    # mvhd v0: version/flags, creation, modification, timescale 1000, duration 0
    mvhd = _atom(b"mvhd", b"\x00" * 4 + struct.pack(">IIII", 0, 0, 1000, 0) + b"\x00" * 80)
    path.write_bytes(ftyp + _atom(b"moov", mvhd))
    return path


def create_minimal_ogg_vorbis(path: Path) -> Path:
    """Write an Ogg Vorbis stream: header pages with an empty comment, one final page."""
    ident = (
        b"\x01vorbis"
        + struct.pack("<I", 0)
        # channels, sample rate, max/nominal/min bitrate
        + struct.pack("<BI3i", 1, 44100, 0, 128000, 0)
        + b"\xb8\x01"
    )
    vendor = b"tagbridge"
    # vendor string, zero comments, framing bit
    comment = b"\x03vorbis" + struct.pack("<I", len(vendor)) + vendor + struct.pack("<I", 0)
    comment += b"\x01"
    setup = b"\x05vorbis" + b"\x00" * 16

    pages = []
    for sequence, packets in enumerate([[ident], [comment, setup], [b"\x00"]]):
        page = OggPage()
        page.serial = 1
        page.sequence = sequence
        page.packets = packets
        pages.append(page)
    pages[0].first = True
    pages[-1].last = True
    pages[-1].position = 44100
    path.write_bytes(b"".join(page.write() for page in pages))
    return path


@pytest.fixture
def mp3_file(tmp_path: Path) -> Path:
    return create_minimal_mp3(tmp_path / "track.mp3")


@pytest.fixture
def flac_file(tmp_path: Path) -> Path:
    return create_minimal_flac(tmp_path / "track.flac")


@pytest.fixture
def mp4_file(tmp_path: Path) -> Path:
    return create_minimal_mp4(tmp_path / "track.m4a")


@pytest.fixture
def ogg_file(tmp_path: Path) -> Path:
    return create_minimal_ogg_vorbis(tmp_path / "track.ogg")


# =============================================================================
# Image payloads (mutagen never decodes them)
# =============================================================================


@pytest.fixture
def jpeg_bytes() -> bytes:
    return b"\xff\xd8\xff\xe0\x00\x10JFIF\x00" + b"\x01" * 32 + b"\xff\xd9"


@pytest.fixture
def png_bytes() -> bytes:
    return b"\x89PNG\r\n\x1a\n" + b"\x02" * 32


@pytest.fixture
def jpeg_file(tmp_path: Path, jpeg_bytes: bytes) -> Path:
    path = tmp_path / "cover.jpg"
    path.write_bytes(jpeg_bytes)
    return path
