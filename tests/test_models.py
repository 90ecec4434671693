"""Tests for catalog dataclasses."""

from datetime import datetime

from photodock.models import ExifInfo, Photo


def test_exif_info_defaults_are_empty():
    info = ExifInfo()
    assert info.camera_make is None
    assert info.iso is None
    assert info.is_empty()


def test_exif_info_to_dict_drops_missing_fields():
    info = ExifInfo(camera_make="Canon", iso=0, flash="Did not fire")
    assert info.to_dict() == {"camera_make": "Canon", "iso": 0, "flash": "Did not fire"}
    assert not info.is_empty()


def test_exif_info_from_dict_ignores_unknown_keys():
    info = ExifInfo.from_dict({"camera_model": "EOS R5", "gps_latitude": 35.6})
    assert info.camera_model == "EOS R5"
    assert not hasattr(info, "gps_latitude")


def test_photo_sort_time_prefers_capture_time():
    photo = Photo(
        id=1,
        folder_id=None,
        filename="a.jpg",
        path="a.jpg",
        url_path="a.jpg",
        width=10,
        height=10,
        size_bytes=100,
        created_at=datetime(2025, 1, 1),
        taken_at=datetime(2020, 6, 1),
    )
    assert photo.sort_time == datetime(2020, 6, 1)

    photo.taken_at = None
    assert photo.sort_time == datetime(2025, 1, 1)
