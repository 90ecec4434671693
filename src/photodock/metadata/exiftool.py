"""Metadata extraction through the external exiftool binary."""

import json
import math
import subprocess
from datetime import datetime
from pathlib import Path

from loguru import logger

from photodock.config import EXIFTOOL_PATH, EXIFTOOL_TIMEOUT
from photodock.metadata import decode
from photodock.metadata.tiff import BuiltinExtractor
from photodock.models import ExifInfo


class ExifToolExtractor:
    """Run ``exiftool -json -a -G1 -n`` per file and map its group-qualified tags.

    Any failure of the tool (missing binary, non-zero exit, timeout, bad
    JSON) falls back to the built-in decoder for that file.
    """

    name = "exiftool"

    def __init__(
        self,
        executable: str = EXIFTOOL_PATH,
        timeout: float = EXIFTOOL_TIMEOUT,
        fallback: BuiltinExtractor | None = None,
    ) -> None:
        self.executable = executable
        self.timeout = timeout
        self.fallback = fallback or BuiltinExtractor()

    def _run(self, path: Path) -> dict | None:
        """Return the tag map for one file, or None when the tool output is unusable."""
        try:
            result = subprocess.run(
                [self.executable, "-json", "-a", "-G1", "-n", str(path.absolute())],
                capture_output=True,
                timeout=self.timeout,
                check=True,
            )
        except (OSError, subprocess.SubprocessError) as exc:
            logger.debug("exiftool failed for {}: {}", path, exc)
            return None
        try:
            results = json.loads(result.stdout)
        except ValueError:
            logger.debug("exiftool returned invalid JSON for {}", path)
            return None
        if not isinstance(results, list) or not results or not isinstance(results[0], dict):
            return None
        return results[0]

    def extract(self, path: str | Path) -> tuple[ExifInfo, datetime | None]:
        """Return the metadata of ``path``; never raises."""
        path = Path(path)
        data = self._run(path)
        if data is None:
            return self.fallback.extract(path)
        try:
            return map_exiftool_tags(data)
        except (TypeError, ValueError, ArithmeticError) as exc:
            logger.warning("Unexpected exiftool tag values for {}: {}", path, exc)
            return self.fallback.extract(path)


def map_exiftool_tags(data: dict) -> tuple[ExifInfo, datetime | None]:
    """Map one exiftool JSON object (numeric ``-n`` output) to ExifInfo."""
    tags = _Tags(data)
    info = ExifInfo()

    info.camera_make = tags.string("IFD0:Make")
    info.camera_model = tags.string("IFD0:Model")
    info.lens_model = tags.string("ExifIFD:LensModel", "Composite:Lens")
    info.lens_info = tags.string("ExifIFD:LensInfo")

    min_focal = tags.number("Canon:MinFocalLength")
    if min_focal:
        max_focal = tags.number("Canon:MaxFocalLength") or min_focal
        info.lens_info = f"{min_focal:.0f} - {max_focal:.0f} mm"

    focal = tags.number("ExifIFD:FocalLength")
    if focal:
        info.focal_length = decode.format_focal_length(focal)
    focal_35 = tags.number("ExifIFD:FocalLengthIn35mmFormat")
    if focal_35:
        info.focal_length_35mm = decode.format_focal_length_35mm(focal_35)
    else:
        focal_35 = tags.number("Composite:FocalLength35efl")
        if focal_35:
            info.focal_length_35mm = decode.format_focal_length(focal_35)

    f_number = tags.number("ExifIFD:FNumber")
    if f_number:
        info.aperture = decode.format_aperture(f_number)
    max_aperture = tags.number("ExifIFD:MaxApertureValue")
    if max_aperture:
        info.max_aperture_value = decode.format_apex_aperture(max_aperture)

    exposure = tags.number("ExifIFD:ExposureTime")
    if exposure:
        info.shutter_speed = decode.format_shutter_speed(exposure)
    info.iso = tags.integer("ExifIFD:ISO")
    bias = tags.number("ExifIFD:ExposureCompensation")
    if bias is not None:
        info.exposure_comp = decode.format_exposure_comp(bias)

    info.exposure_mode = tags.table("ExifIFD:ExposureMode", decode.EXPOSURE_MODES)
    info.exposure_program = tags.table("ExifIFD:ExposureProgram", decode.EXPOSURE_PROGRAMS)
    info.metering_mode = tags.table("ExifIFD:MeteringMode", decode.METERING_MODES)
    light_value = tags.number("Composite:LightValue")
    if light_value is not None:
        info.light_value = f"{light_value:.1f}"

    flash = tags.integer("ExifIFD:Flash")
    if flash is not None:
        info.flash = decode.decode_flash(flash)
    info.flash_mode = tags.string("Canon:CanonFlashMode")
    flash_comp = tags.number("Canon:FlashExposureComp")
    if flash_comp is not None:
        info.flash_exposure_comp = f"{flash_comp:.1f} EV"

    white_balance = tags.integer("ExifIFD:WhiteBalance")
    if white_balance is not None:
        info.white_balance = decode.decode_white_balance(white_balance)
    info.color_temperature = tags.integer("Canon:ColorTemperature")
    info.color_space = tags.table("ExifIFD:ColorSpace", decode.COLOR_SPACES)

    info.focus_mode = tags.string("Canon:FocusMode", "ExifIFD:FocusMode")
    focus_upper = tags.number("Canon:FocusDistanceUpper")
    if focus_upper:
        focus_lower = tags.number("Canon:FocusDistanceLower")
        if focus_lower and focus_lower != focus_upper:
            info.focus_distance = f"{focus_lower:.2f} - {focus_upper:.2f} m"
        else:
            info.focus_distance = f"{focus_upper:.2f} m"
    distance = tags.number("ExifIFD:SubjectDistance")
    if distance is not None:
        info.subject_distance = decode.format_subject_distance(distance)
    info.subject_distance_range = tags.table(
        "ExifIFD:SubjectDistanceRange", decode.SUBJECT_DISTANCE_RANGES
    )
    info.depth_of_field = tags.string("Composite:DOF")
    info.hyperfocal_distance = tags.string("Composite:HyperfocalDistance")

    contrast = tags.string("Canon:Contrast")
    if contrast is not None:
        info.contrast = decode.decode_canon_level(contrast)
    else:
        info.contrast = tags.table("ExifIFD:Contrast", decode.LEVELS)
    saturation = tags.string("Canon:Saturation")
    if saturation is not None:
        info.saturation = decode.decode_canon_level(saturation)
    else:
        info.saturation = tags.table("ExifIFD:Saturation", decode.LEVELS)
    sharpness = tags.string("Canon:Sharpness")
    if sharpness is not None:
        info.sharpness = "Normal" if sharpness == "0" else sharpness
    else:
        info.sharpness = tags.table("ExifIFD:Sharpness", decode.LEVELS)

    info.scene_capture_type = tags.table("ExifIFD:SceneCaptureType", decode.SCENE_CAPTURE_TYPES)
    info.scene_type = tags.table("ExifIFD:SceneType", decode.SCENE_TYPES)
    info.shooting_mode = tags.string("Composite:ShootingMode", "Canon:EasyMode")
    info.drive_mode = tags.string("Composite:DriveMode", "Canon:ContinuousDrive")
    info.macro_mode = tags.string("Canon:MacroMode")
    info.self_timer = tags.string("Canon:SelfTimer")
    info.image_stabilization = tags.string("Canon:ImageStabilization")
    zoom = tags.number("ExifIFD:DigitalZoomRatio")
    if zoom is not None:
        info.digital_zoom = decode.format_digital_zoom(zoom)

    info.quality = tags.string("Canon:Quality")
    info.orientation = tags.integer("IFD0:Orientation")
    info.sensing_method = tags.table("ExifIFD:SensingMethod", decode.SENSING_METHODS)
    info.file_source = tags.table("ExifIFD:FileSource", decode.FILE_SOURCES)
    info.custom_rendered = tags.table("ExifIFD:CustomRendered", decode.CUSTOM_RENDERED)
    info.gain_control = tags.table("ExifIFD:GainControl", decode.GAIN_CONTROLS)

    info.firmware_version = tags.string("Canon:FirmwareVersion", "Canon:CanonFirmwareVersion")
    info.serial_number = tags.string("Canon:SerialNumber", "ExifIFD:SerialNumber")
    info.camera_temperature = tags.string("Canon:CameraTemperature")
    info.file_number = tags.string("Canon:FileNumber")
    info.owner_name = tags.string("Canon:OwnerName", "ExifIFD:OwnerName")
    info.image_unique_id = tags.string("Canon:ImageUniqueID", "ExifIFD:ImageUniqueID")

    taken_at = None
    original = tags.string("ExifIFD:DateTimeOriginal")
    if original:
        taken_at = decode.parse_exif_datetime(original)
        if taken_at is not None:
            info.datetime_original = taken_at.strftime(decode.DISPLAY_DATETIME_FORMAT)
    info.create_date = tags.string("ExifIFD:CreateDate")
    info.modify_date = tags.string("IFD0:ModifyDate")

    info.artist = tags.string("IFD0:Artist")
    info.copyright = tags.string("IFD0:Copyright")
    info.software = tags.string("IFD0:Software")
    info.image_description = tags.string("IFD0:ImageDescription")

    info.image_width = tags.integer("File:ImageWidth")
    info.image_height = tags.integer("File:ImageHeight")

    return info, taken_at


class _Tags:
    """Typed accessors over one exiftool tag map. Missing keys give None."""

    def __init__(self, data: dict) -> None:
        self.data = data

    def string(self, *keys: str) -> str | None:
        """First non-empty value among ``keys`` rendered as text."""
        for key in keys:
            value = self.data.get(key)
            if isinstance(value, bool) or value is None:
                continue
            if isinstance(value, str):
                text = value.strip()
            elif isinstance(value, int):
                text = str(value)
            elif isinstance(value, float):
                text = str(int(value)) if value.is_integer() else f"{value:.2f}"
            else:
                continue
            if text:
                return text
        return None

    def number(self, key: str) -> float | None:
        """Numeric value of ``key``; non-numeric, infinite and NaN values give None."""
        value = self.data.get(key)
        if isinstance(value, bool) or value is None:
            return None
        try:
            number = float(value)
        except (TypeError, ValueError, OverflowError):
            return None
        return number if math.isfinite(number) else None

    def integer(self, key: str) -> int | None:
        value = self.number(key)
        return int(value) if value is not None else None

    def table(self, key: str, values: dict[int, str]) -> str | None:
        code = self.integer(key)
        return decode.lookup(values, code) if code is not None else None
