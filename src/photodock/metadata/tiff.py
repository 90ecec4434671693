"""Built-in TIFF/EXIF directory decoder.

Reads IFD0 and the EXIF sub-IFD of an embedded TIFF block. Every offset is
taken from the block itself and checked against its length before use, so
truncated or hostile input raises ``TiffError`` instead of reading out of
bounds.
"""

import struct
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

from loguru import logger

from photodock.metadata import decode
from photodock.metadata.jpeg import find_tiff_block
from photodock.models import ExifInfo

# IFD0
TAG_IMAGE_DESCRIPTION = 0x010E
TAG_MAKE = 0x010F
TAG_MODEL = 0x0110
TAG_ORIENTATION = 0x0112
TAG_SOFTWARE = 0x0131
TAG_DATETIME = 0x0132
TAG_ARTIST = 0x013B
TAG_COPYRIGHT = 0x8298
TAG_EXIF_IFD = 0x8769
TAG_GPS_IFD = 0x8825

# EXIF sub-IFD
TAG_EXPOSURE_TIME = 0x829A
TAG_FNUMBER = 0x829D
TAG_EXPOSURE_PROGRAM = 0x8822
TAG_ISO = 0x8827
TAG_DATETIME_ORIGINAL = 0x9003
TAG_DATETIME_DIGITIZED = 0x9004
TAG_EXPOSURE_BIAS = 0x9204
TAG_MAX_APERTURE = 0x9205
TAG_SUBJECT_DISTANCE = 0x9206
TAG_METERING_MODE = 0x9207
TAG_FLASH = 0x9209
TAG_FOCAL_LENGTH = 0x920A
TAG_COLOR_SPACE = 0xA001
TAG_PIXEL_X = 0xA002
TAG_PIXEL_Y = 0xA003
TAG_SENSING_METHOD = 0xA217
TAG_FILE_SOURCE = 0xA300
TAG_SCENE_TYPE = 0xA301
TAG_CUSTOM_RENDERED = 0xA401
TAG_EXPOSURE_MODE = 0xA402
TAG_WHITE_BALANCE = 0xA403
TAG_DIGITAL_ZOOM = 0xA404
TAG_FOCAL_LENGTH_35MM = 0xA405
TAG_SCENE_CAPTURE_TYPE = 0xA406
TAG_GAIN_CONTROL = 0xA407
TAG_CONTRAST = 0xA408
TAG_SATURATION = 0xA409
TAG_SHARPNESS = 0xA40A
TAG_SUBJECT_DISTANCE_RANGE = 0xA40C
TAG_IMAGE_UNIQUE_ID = 0xA420
TAG_BODY_SERIAL_NUMBER = 0xA431
TAG_LENS_MODEL = 0xA434

ENTRY_SIZE = 12

# field type -> (struct code, byte size)
FIELD_TYPES = {
    1: ("B", 1),  # BYTE
    2: ("s", 1),  # ASCII
    3: ("H", 2),  # SHORT
    4: ("I", 4),  # LONG
    5: ("II", 8),  # RATIONAL
    6: ("b", 1),  # SBYTE
    7: ("B", 1),  # UNDEFINED
    8: ("h", 2),  # SSHORT
    9: ("i", 4),  # SLONG
    10: ("ii", 8),  # SRATIONAL
    11: ("f", 4),  # FLOAT
    12: ("d", 8),  # DOUBLE
}
INTEGER_TYPES = frozenset({1, 3, 4, 6, 7, 8, 9})
RATIONAL_TYPES = frozenset({5, 10})


class TiffError(ValueError):
    """The TIFF block is malformed or truncated."""


@dataclass(frozen=True)
class IfdEntry:
    """One directory entry, with the absolute offset of its value bytes."""

    tag: int
    field_type: int
    count: int
    value_offset: int


class TiffReader:
    """Bounds-checked reader over a TIFF block held in memory."""

    def __init__(self, data: bytes) -> None:
        if len(data) < 8:
            raise TiffError("TIFF header truncated")
        order = data[:2]
        if order == b"II":
            self.byte_order = "<"
        elif order == b"MM":
            self.byte_order = ">"
        else:
            raise TiffError(f"unknown byte order mark {order!r}")
        self.data = data
        if self._unpack("H", 2)[0] != 42:
            raise TiffError("bad TIFF magic number")
        self.ifd0_offset = self._unpack("I", 4)[0]

    def _unpack(self, fmt: str, offset: int) -> tuple:
        fmt = self.byte_order + fmt
        if offset < 0 or offset + struct.calcsize(fmt) > len(self.data):
            raise TiffError(f"read of {fmt!r} at {offset} is out of bounds")
        return struct.unpack_from(fmt, self.data, offset)

    def read_ifd(self, offset: int) -> dict[int, IfdEntry]:
        """Read the directory at ``offset``. Entries whose values do not fit are dropped."""
        (count,) = self._unpack("H", offset)
        entries: dict[int, IfdEntry] = {}
        for i in range(count):
            entry_offset = offset + 2 + i * ENTRY_SIZE
            if entry_offset + ENTRY_SIZE > len(self.data):
                break
            tag, field_type, value_count = self._unpack("HHI", entry_offset)
            spec = FIELD_TYPES.get(field_type)
            if spec is None:
                continue
            total = spec[1] * value_count
            if total <= 4:
                value_offset = entry_offset + 8
            else:
                (value_offset,) = self._unpack("I", entry_offset + 8)
            if value_offset + total > len(self.data):
                continue
            entries.setdefault(tag, IfdEntry(tag, field_type, value_count, value_offset))
        return entries

    def integer(self, entry: IfdEntry) -> int | None:
        """First value of an integer-typed entry."""
        if entry.field_type not in INTEGER_TYPES or entry.count < 1:
            return None
        code = FIELD_TYPES[entry.field_type][0]
        return self._unpack(code, entry.value_offset)[0]

    def rational(self, entry: IfdEntry) -> float | None:
        """First value of a rational entry, or None for a zero denominator."""
        if entry.field_type not in RATIONAL_TYPES or entry.count < 1:
            return None
        num, den = self._unpack(FIELD_TYPES[entry.field_type][0], entry.value_offset)
        if den == 0:
            return None
        return num / den

    def string(self, entry: IfdEntry) -> str | None:
        """ASCII (or undefined-bytes) value with NUL padding removed."""
        if entry.field_type not in (2, 7):
            return None
        raw = self.data[entry.value_offset : entry.value_offset + entry.count]
        return decode.clean_string(raw.decode("utf-8", errors="replace"))


def decode_exif(block: bytes) -> tuple[ExifInfo, datetime | None]:
    """Decode a TIFF/EXIF block into an ExifInfo and the capture time."""
    reader = TiffReader(block)
    tags = reader.read_ifd(reader.ifd0_offset)

    pointer = tags.get(TAG_EXIF_IFD)
    exif_offset = reader.integer(pointer) if pointer else None
    if exif_offset:
        try:
            tags.update(reader.read_ifd(exif_offset))
        except TiffError as exc:
            logger.debug("EXIF sub-IFD unreadable: {}", exc)

    def text(tag: int) -> str | None:
        entry = tags.get(tag)
        value = reader.string(entry) if entry else None
        return value or None

    def integer(tag: int) -> int | None:
        entry = tags.get(tag)
        return reader.integer(entry) if entry else None

    def rational(tag: int) -> float | None:
        entry = tags.get(tag)
        return reader.rational(entry) if entry else None

    def table(tag: int, values: dict[int, str]) -> str | None:
        code = integer(tag)
        return decode.lookup(values, code) if code is not None else None

    info = ExifInfo(
        camera_make=text(TAG_MAKE),
        camera_model=text(TAG_MODEL),
        lens_model=text(TAG_LENS_MODEL),
        serial_number=text(TAG_BODY_SERIAL_NUMBER),
        software=text(TAG_SOFTWARE),
        artist=text(TAG_ARTIST),
        copyright=text(TAG_COPYRIGHT),
        image_description=text(TAG_IMAGE_DESCRIPTION),
        image_unique_id=text(TAG_IMAGE_UNIQUE_ID),
        create_date=text(TAG_DATETIME_DIGITIZED),
        modify_date=text(TAG_DATETIME),
        orientation=integer(TAG_ORIENTATION),
        iso=integer(TAG_ISO),
        image_width=integer(TAG_PIXEL_X),
        image_height=integer(TAG_PIXEL_Y),
        metering_mode=table(TAG_METERING_MODE, decode.METERING_MODES),
        exposure_mode=table(TAG_EXPOSURE_MODE, decode.EXPOSURE_MODES),
        exposure_program=table(TAG_EXPOSURE_PROGRAM, decode.EXPOSURE_PROGRAMS),
        color_space=table(TAG_COLOR_SPACE, decode.COLOR_SPACES),
        scene_capture_type=table(TAG_SCENE_CAPTURE_TYPE, decode.SCENE_CAPTURE_TYPES),
        scene_type=table(TAG_SCENE_TYPE, decode.SCENE_TYPES),
        file_source=table(TAG_FILE_SOURCE, decode.FILE_SOURCES),
        sensing_method=table(TAG_SENSING_METHOD, decode.SENSING_METHODS),
        custom_rendered=table(TAG_CUSTOM_RENDERED, decode.CUSTOM_RENDERED),
        gain_control=table(TAG_GAIN_CONTROL, decode.GAIN_CONTROLS),
        subject_distance_range=table(TAG_SUBJECT_DISTANCE_RANGE, decode.SUBJECT_DISTANCE_RANGES),
        contrast=table(TAG_CONTRAST, decode.LEVELS),
        saturation=table(TAG_SATURATION, decode.LEVELS),
        sharpness=table(TAG_SHARPNESS, decode.LEVELS),
    )

    focal = rational(TAG_FOCAL_LENGTH)
    if focal is not None:
        info.focal_length = decode.format_focal_length(focal)
    focal_35 = integer(TAG_FOCAL_LENGTH_35MM)
    if focal_35 is not None:
        info.focal_length_35mm = decode.format_focal_length_35mm(focal_35)
    f_number = rational(TAG_FNUMBER)
    if f_number is not None:
        info.aperture = decode.format_aperture(f_number)
    max_aperture = rational(TAG_MAX_APERTURE)
    if max_aperture is not None:
        info.max_aperture_value = decode.format_apex_aperture(max_aperture)
    exposure = rational(TAG_EXPOSURE_TIME)
    if exposure:
        info.shutter_speed = decode.format_shutter_speed(exposure)
    bias = rational(TAG_EXPOSURE_BIAS)
    if bias is not None:
        info.exposure_comp = decode.format_exposure_comp(bias)
    flash = integer(TAG_FLASH)
    if flash is not None:
        info.flash = decode.decode_flash(flash)
    white_balance = integer(TAG_WHITE_BALANCE)
    if white_balance is not None:
        info.white_balance = decode.decode_white_balance(white_balance)
    zoom = rational(TAG_DIGITAL_ZOOM)
    if zoom is not None:
        info.digital_zoom = decode.format_digital_zoom(zoom)
    distance = rational(TAG_SUBJECT_DISTANCE)
    if distance is not None:
        info.subject_distance = decode.format_subject_distance(distance)

    taken_at = None
    for tag in (TAG_DATETIME_ORIGINAL, TAG_DATETIME):
        raw = text(tag)
        taken_at = decode.parse_exif_datetime(raw) if raw else None
        if taken_at is not None:
            info.datetime_original = taken_at.strftime(decode.DISPLAY_DATETIME_FORMAT)
            break

    return info, taken_at


class BuiltinExtractor:
    """Extract metadata by decoding the embedded EXIF block directly."""

    name = "builtin"

    def extract(self, path: str | Path) -> tuple[ExifInfo, datetime | None]:
        """Return the decoded metadata, or an empty record when none is readable."""
        try:
            data = Path(path).read_bytes()
            block = find_tiff_block(data)
            if block is None:
                return ExifInfo(), None
            return decode_exif(block)
        except (OSError, ValueError, ArithmeticError, struct.error) as exc:
            logger.warning("EXIF decode failed for {}: {}", path, exc)
            return ExifInfo(), None
