"""JPEG marker-segment walking and PNG chunk lookup."""

import struct
from collections.abc import Iterator
from dataclasses import dataclass

SOI = b"\xff\xd8"
APP1 = 0xE1
SOS = 0xDA
EOI = 0xD9
# Markers that carry no length field
STANDALONE_MARKERS = frozenset({0x01, *range(0xD0, 0xD8)})

EXIF_SIGNATURE = b"Exif\x00\x00"
PNG_SIGNATURE = b"\x89PNG\r\n\x1a\n"


@dataclass(frozen=True)
class Segment:
    """A length-prefixed marker segment inside a JPEG stream."""

    marker: int
    offset: int  # position of the 0xFF byte
    length: int  # marker + length field + payload

    @property
    def payload_start(self) -> int:
        return self.offset + 4

    @property
    def end(self) -> int:
        return self.offset + self.length


def is_jpeg(data: bytes) -> bool:
    return data[:2] == SOI


def is_png(data: bytes) -> bool:
    return data[:8] == PNG_SIGNATURE


def iter_segments(data: bytes) -> Iterator[Segment]:
    """Yield the header segments that precede the compressed scan data.

    Stops at Start-Of-Scan, End-Of-Image, or at the first segment whose
    declared length does not fit in ``data``.
    """
    pos = 2
    while pos + 1 < len(data):
        if data[pos] != 0xFF:
            return
        marker = data[pos + 1]
        if marker == 0xFF:
            # fill byte
            pos += 1
            continue
        if marker in (SOS, EOI):
            return
        if marker in STANDALONE_MARKERS:
            pos += 2
            continue
        if pos + 4 > len(data):
            return
        (declared,) = struct.unpack_from(">H", data, pos + 2)
        if declared < 2 or pos + 2 + declared > len(data):
            return
        yield Segment(marker=marker, offset=pos, length=declared + 2)
        pos += declared + 2


def iter_exif_segments(data: bytes) -> Iterator[Segment]:
    """Yield APP1 segments whose payload starts with the Exif signature."""
    if not is_jpeg(data):
        return
    for segment in iter_segments(data):
        start = segment.payload_start
        if segment.marker == APP1 and data[start : start + 6] == EXIF_SIGNATURE:
            yield segment


def find_png_chunk(data: bytes, chunk_type: bytes) -> bytes | None:
    """Return the payload of the first PNG chunk of the given type."""
    if not is_png(data):
        return None
    pos = len(PNG_SIGNATURE)
    while pos + 8 <= len(data):
        length, kind = struct.unpack_from(">I4s", data, pos)
        start = pos + 8
        if start + length > len(data):
            return None
        if kind == chunk_type:
            return data[start : start + length]
        if kind == b"IEND":
            return None
        pos = start + length + 4  # skip CRC
    return None


def find_tiff_block(data: bytes) -> bytes | None:
    """Locate the embedded TIFF/EXIF block of a JPEG or PNG byte stream."""
    if is_jpeg(data):
        for segment in iter_exif_segments(data):
            return data[segment.payload_start + len(EXIF_SIGNATURE) : segment.end]
        return None
    return find_png_chunk(data, b"eXIf")
