"""Lookup tables and value formatters shared by both extraction strategies.

Every table decode returns an empty string for unrecognised codes.
"""

from datetime import datetime

EXIF_DATETIME_FORMAT = "%Y:%m:%d %H:%M:%S"
DISPLAY_DATETIME_FORMAT = "%Y-%m-%d %H:%M:%S"

METERING_MODES = {
    0: "Unknown",
    1: "Average",
    2: "Center-weighted average",
    3: "Spot",
    4: "Multi-spot",
    5: "Multi-segment",
    6: "Partial",
    255: "Other",
}

EXPOSURE_MODES = {0: "Auto", 1: "Manual", 2: "Auto bracket"}

EXPOSURE_PROGRAMS = {
    0: "Not defined",
    1: "Manual",
    2: "Program AE",
    3: "Aperture priority",
    4: "Shutter priority",
    5: "Creative (slow speed)",
    6: "Action (high speed)",
    7: "Portrait",
    8: "Landscape",
    9: "Bulb",
}

COLOR_SPACES = {1: "sRGB", 2: "Adobe RGB", 65535: "Uncalibrated"}

SCENE_CAPTURE_TYPES = {0: "Standard", 1: "Landscape", 2: "Portrait", 3: "Night scene"}

SCENE_TYPES = {1: "Directly photographed"}

FILE_SOURCES = {1: "Film scanner", 2: "Reflection print scanner", 3: "Digital Camera"}

SENSING_METHODS = {
    1: "Not defined",
    2: "One-chip color area",
    3: "Two-chip color area",
    4: "Three-chip color area",
    5: "Color sequential area",
    7: "Trilinear",
    8: "Color sequential linear",
}

GAIN_CONTROLS = {
    0: "None",
    1: "Low gain up",
    2: "High gain up",
    3: "Low gain down",
    4: "High gain down",
}

SUBJECT_DISTANCE_RANGES = {0: "Unknown", 1: "Macro", 2: "Close", 3: "Distant"}

LEVELS = {0: "Normal", 1: "Low", 2: "High"}

CUSTOM_RENDERED = {0: "Normal", 1: "Custom"}

FLASH_MODES = {1: "compulsory", 2: "suppressed", 3: "auto"}


def lookup(table: dict[int, str], value: int | None) -> str:
    """Decode a numeric tag value through a fixed table."""
    if value is None:
        return ""
    return table.get(value, "")


def decode_flash(value: int) -> str:
    """Decode the Flash tag: fired state from bit 0, firing mode from bits 3-4."""
    parts = ["Fired" if value & 1 else "Did not fire"]
    mode = FLASH_MODES.get((value >> 3) & 3)
    if mode:
        parts.append(mode)
    return ", ".join(parts)


def decode_white_balance(value: int) -> str:
    return "Auto" if value == 0 else "Manual"


def decode_canon_level(value: str) -> str:
    """Normalise Canon contrast/saturation values given either as codes or words."""
    value = value.strip()
    named = {"0": "Normal", "normal": "Normal", "1": "Low", "low": "Low", "2": "High", "high": "High"}
    return named.get(value.lower(), value)


def format_aperture(f_number: float) -> str:
    return f"f/{f_number:.1f}"


def format_apex_aperture(apex: float) -> str | None:
    """Convert an APEX aperture value to an f-number string, or None if out of range."""
    try:
        f_number = 2 ** (apex / 2)
    except OverflowError:
        return None
    return format_aperture(f_number)


def format_shutter_speed(seconds: float) -> str:
    """Whole or fractional seconds as ``<n> s``, shorter exposures as ``1/<n> s``."""
    if seconds >= 1:
        return f"{seconds:.1f} s"
    return f"1/{1 / seconds:.0f} s"


def format_exposure_comp(ev: float) -> str:
    """Exposure bias with an explicit sign."""
    # Adding 0.0 turns -0.0 into 0.0
    ev = round(ev, 1) + 0.0
    if ev >= 0:
        return f"+{ev:.1f} EV"
    return f"{ev:.1f} EV"


def format_focal_length(mm: float) -> str:
    return f"{mm:.1f} mm"


def format_focal_length_35mm(mm: float) -> str:
    return f"{mm:.0f} mm"


def format_subject_distance(meters: float) -> str:
    if meters < 1:
        return f"{meters * 100:.0f} cm"
    return f"{meters:.2f} m"


def format_digital_zoom(ratio: float) -> str:
    if ratio <= 1:
        return "None"
    return f"{ratio:.1f}x"


def parse_exif_datetime(value: str) -> datetime | None:
    """Parse an EXIF ``YYYY:MM:DD HH:MM:SS`` timestamp, or return None."""
    try:
        return datetime.strptime(value.strip().rstrip("\x00")[:19], EXIF_DATETIME_FORMAT)
    except ValueError:
        return None


def clean_string(value: str) -> str:
    """Strip NUL padding and surrounding whitespace from an ASCII tag."""
    return value.strip("\x00").strip()
