"""Data models for the photo catalog."""

from dataclasses import asdict, dataclass, fields
from datetime import datetime


@dataclass
class ExifInfo:
    """Camera metadata extracted from an image.

    Every field is optional. ``None`` means the tag was not present in the
    source; a present value of zero is kept as zero.
    """

    # Camera
    camera_make: str | None = None
    camera_model: str | None = None
    lens_model: str | None = None
    lens_info: str | None = None
    serial_number: str | None = None
    firmware_version: str | None = None

    # Lens & focus
    focal_length: str | None = None
    focal_length_35mm: str | None = None
    max_aperture_value: str | None = None
    focus_mode: str | None = None
    focus_distance: str | None = None
    depth_of_field: str | None = None
    hyperfocal_distance: str | None = None

    # Exposure
    aperture: str | None = None
    shutter_speed: str | None = None
    iso: int | None = None
    exposure_comp: str | None = None
    exposure_mode: str | None = None
    exposure_program: str | None = None
    metering_mode: str | None = None
    light_value: str | None = None

    # Flash
    flash: str | None = None
    flash_mode: str | None = None
    flash_exposure_comp: str | None = None

    # White balance & color
    white_balance: str | None = None
    color_space: str | None = None
    color_temperature: int | None = None
    saturation: str | None = None
    contrast: str | None = None
    sharpness: str | None = None

    # Scene & mode
    scene_capture_type: str | None = None
    shooting_mode: str | None = None
    drive_mode: str | None = None
    macro_mode: str | None = None
    self_timer: str | None = None
    digital_zoom: str | None = None
    image_stabilization: str | None = None

    # Image
    orientation: int | None = None
    quality: str | None = None
    image_width: int | None = None
    image_height: int | None = None

    # Dates
    datetime_original: str | None = None
    create_date: str | None = None
    modify_date: str | None = None

    # Author
    artist: str | None = None
    copyright: str | None = None
    owner_name: str | None = None
    software: str | None = None
    image_description: str | None = None

    # Technical
    file_source: str | None = None
    scene_type: str | None = None
    sensing_method: str | None = None
    custom_rendered: str | None = None
    gain_control: str | None = None
    subject_distance: str | None = None
    subject_distance_range: str | None = None

    # Vendor specific
    camera_temperature: str | None = None
    file_number: str | None = None
    image_unique_id: str | None = None

    def to_dict(self) -> dict:
        """Return the present fields only, suitable for JSON storage."""
        return {k: v for k, v in asdict(self).items() if v is not None}

    @classmethod
    def from_dict(cls, data: dict) -> "ExifInfo":
        """Build from a stored JSON object, ignoring unknown keys."""
        names = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in names})

    def is_empty(self) -> bool:
        return not self.to_dict()


@dataclass
class Folder:
    """A directory discovered under the media root."""

    id: int | None
    parent_id: int | None
    name: str
    path: str
    cover_photo_id: int | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass
class Photo:
    """A single image file registered in the catalog."""

    id: int | None
    folder_id: int | None
    filename: str
    path: str
    url_path: str | None
    width: int
    height: int
    size_bytes: int
    placeholder: str | None = None
    exif: ExifInfo | None = None
    hidden: bool = False
    created_at: datetime | None = None
    updated_at: datetime | None = None
    taken_at: datetime | None = None

    @property
    def sort_time(self) -> datetime | None:
        """Capture time, or the catalog creation time when it is unknown."""
        return self.taken_at or self.created_at
