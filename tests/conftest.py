"""Shared test fixtures."""

import struct
from datetime import datetime
from pathlib import Path

import duckdb
import pytest
from PIL import Image

from photodock.catalog.schema import ensure_schema
from photodock.derivatives.cache import DerivativeCache
from photodock.ingest.scanner import Scanner
from photodock.metadata.tiff import BuiltinExtractor
from photodock.models import ExifInfo, Photo

ASCII, SHORT, LONG, RATIONAL = 2, 3, 4, 5


@pytest.fixture
def db_conn():
    """In-memory DuckDB connection with schema initialized."""
    conn = duckdb.connect(":memory:")
    ensure_schema(conn)
    yield conn
    conn.close()


@pytest.fixture
def media_root(tmp_path) -> Path:
    root = tmp_path / "media"
    root.mkdir()
    return root


@pytest.fixture
def cache(tmp_path, media_root) -> DerivativeCache:
    return DerivativeCache(media_root=media_root, cache_dir=tmp_path / "cache")


@pytest.fixture
def scanner(db_conn, cache, media_root) -> Scanner:
    return Scanner(db_conn, cache, BuiltinExtractor(), media_root)


def _ifd(entries: list[tuple[int, int, int, bytes]], offset: int, bo: str) -> bytes:
    """Lay out one IFD at ``offset`` with out-of-line values right after it."""
    data_offset = offset + 2 + len(entries) * 12 + 4
    table = struct.pack(bo + "H", len(entries))
    extra = b""
    for tag, field_type, count, value in entries:
        if len(value) <= 4:
            field = value.ljust(4, b"\x00")
        else:
            field = struct.pack(bo + "I", data_offset + len(extra))
            extra += value + (b"\x00" if len(value) % 2 else b"")
        table += struct.pack(bo + "HHI", tag, field_type, count) + field
    return table + struct.pack(bo + "I", 0) + extra


def build_tiff(
    make: str = "Canon",
    model: str = "EOS R5",
    datetime_original: str | None = "2024:05:01 10:30:00",
    f_number: tuple[int, int] = (28, 10),
    iso: int = 400,
    flash: int = 0x19,
    max_aperture: tuple[int, int] | None = None,
    gps: bool = True,
    big_endian: bool = False,
) -> bytes:
    """Build a TIFF block with IFD0, an EXIF sub-IFD and optionally a GPS IFD."""
    bo = ">" if big_endian else "<"

    def ascii_entry(tag: int, text: str) -> tuple[int, int, int, bytes]:
        raw = text.encode() + b"\x00"
        return tag, ASCII, len(raw), raw

    def short_entry(tag: int, value: int) -> tuple[int, int, int, bytes]:
        return tag, SHORT, 1, struct.pack(bo + "H", value)

    def long_entry(tag: int, value: int) -> tuple[int, int, int, bytes]:
        return tag, LONG, 1, struct.pack(bo + "I", value)

    exif_entries = [
        (0x829D, RATIONAL, 1, struct.pack(bo + "II", *f_number)),
        short_entry(0x8827, iso),
        short_entry(0x9209, flash),
    ]
    if max_aperture is not None:
        exif_entries.append((0x9205, RATIONAL, 1, struct.pack(bo + "II", *max_aperture)))
    if datetime_original:
        exif_entries.append(ascii_entry(0x9003, datetime_original))
    gps_entries = [(0x0000, 1, 4, bytes([2, 3, 0, 0])), ascii_entry(0x0001, "N")]

    def ifd0(exif_offset: int, gps_offset: int) -> list:
        entries = [ascii_entry(0x010F, make), ascii_entry(0x0110, model)]
        entries.append(long_entry(0x8769, exif_offset))
        if gps:
            entries.append(long_entry(0x8825, gps_offset))
        return entries

    size0 = len(_ifd(ifd0(0, 0), 8, bo))
    exif_offset = 8 + size0
    exif_block = _ifd(exif_entries, exif_offset, bo)
    gps_offset = exif_offset + len(exif_block)

    header = (b"MM" if big_endian else b"II") + struct.pack(bo + "HI", 42, 8)
    block = header + _ifd(ifd0(exif_offset, gps_offset), 8, bo) + exif_block
    if gps:
        block += _ifd(gps_entries, gps_offset, bo)
    return block


def make_jpeg(
    path: Path,
    size: tuple[int, int] = (64, 48),
    color: tuple[int, int, int] = (200, 50, 50),
    exif: bytes | None = None,
) -> Path:
    """Write a solid-colour JPEG, optionally carrying the given TIFF block as EXIF."""
    path.parent.mkdir(parents=True, exist_ok=True)
    img = Image.new("RGB", size, color)
    if exif is not None:
        img.save(path, "JPEG", exif=b"Exif\x00\x00" + exif)
    else:
        img.save(path, "JPEG")
    return path


def make_png(
    path: Path,
    size: tuple[int, int] = (40, 40),
    color: tuple[int, int, int] = (10, 120, 240),
) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    Image.new("RGB", size, color).save(path, "PNG")
    return path


def make_photo(
    path: str,
    folder_id: int | None = None,
    url_path: str | None = None,
    taken_at: datetime | None = None,
    exif: ExifInfo | None = None,
) -> Photo:
    """Helper to create a Photo with unique fields derived from ``path``.

    The slug defaults to the lower-cased path.
    """
    return Photo(
        id=None,
        folder_id=folder_id,
        filename=path.rsplit("/", 1)[-1],
        path=path,
        url_path=url_path if url_path is not None else path.lower(),
        width=640,
        height=480,
        size_bytes=50000,
        exif=exif,
        taken_at=taken_at,
    )
