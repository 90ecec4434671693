"""In-place removal of the GPS IFD pointer from JPEG EXIF segments.

Only the 12-byte IFD0 entry whose tag is the GPS pointer is zeroed. The
segment length and every other byte stay where they are, so all offsets
inside the EXIF block remain valid.
"""

import struct
from pathlib import Path

from loguru import logger

from photodock.metadata.jpeg import EXIF_SIGNATURE, iter_exif_segments
from photodock.metadata.tiff import ENTRY_SIZE, TAG_GPS_IFD


def _zero_gps_entries(buf: bytearray, start: int, end: int) -> bool:
    """Zero GPS pointer entries of the IFD0 stored in ``buf[start:end]``.

    ``start`` is the TIFF header position. Returns True if anything changed.
    """
    if end - start < 8:
        return False
    order = bytes(buf[start : start + 2])
    if order == b"II":
        byte_order = "<"
    elif order == b"MM":
        byte_order = ">"
    else:
        return False

    (ifd_offset,) = struct.unpack_from(byte_order + "I", buf, start + 4)
    ifd = start + ifd_offset
    if ifd_offset >= end - start or ifd + 2 > end:
        return False

    (count,) = struct.unpack_from(byte_order + "H", buf, ifd)
    modified = False
    for i in range(count):
        entry = ifd + 2 + i * ENTRY_SIZE
        if entry + ENTRY_SIZE > end:
            break
        (tag,) = struct.unpack_from(byte_order + "H", buf, entry)
        if tag == TAG_GPS_IFD:
            buf[entry : entry + ENTRY_SIZE] = bytes(ENTRY_SIZE)
            modified = True
    return modified


def strip_gps_bytes(data: bytes) -> bytes | None:
    """Return ``data`` with GPS pointer entries zeroed, or None if nothing changed.

    Input that is not a JPEG stream, or has no EXIF segment, is left alone.
    """
    buf = bytearray(data)
    modified = False
    for segment in iter_exif_segments(data):
        tiff_start = segment.payload_start + len(EXIF_SIGNATURE)
        if _zero_gps_entries(buf, tiff_start, segment.end):
            modified = True
    return bytes(buf) if modified else None


def strip_gps(path: str | Path) -> bool:
    """Remove GPS tags from a JPEG file in place. Returns True if the file was rewritten."""
    path = Path(path)
    stripped = strip_gps_bytes(path.read_bytes())
    if stripped is None:
        return False
    path.write_bytes(stripped)
    logger.info("Stripped GPS data from {}", path)
    return True
