"""Tests for folders and photos CRUD operations."""

from datetime import datetime

import duckdb
import pytest
from conftest import make_photo

from photodock.catalog.repository import (
    delete_empty_folders,
    delete_photo,
    get_catalog_stats,
    get_folder,
    get_folder_by_path,
    get_photo,
    get_photo_by_path,
    get_photo_by_url_path,
    insert_photo,
    list_folders,
    list_photo_paths,
    list_photos,
    move_photo,
    photo_exists,
    set_folder_cover,
    set_url_path,
    toggle_hidden,
    upsert_folder,
    url_path_exists,
)
from photodock.models import ExifInfo


def test_upsert_folder_is_idempotent(db_conn):
    first = upsert_folder(db_conn, "trips", "trips", None)
    second = upsert_folder(db_conn, "trips", "Trips", None)
    assert first == second
    assert get_folder(db_conn, first).name == "Trips"
    count = db_conn.execute("SELECT COUNT(*) FROM folders").fetchone()[0]
    assert count == 1


def test_list_folders_by_parent(db_conn):
    trips = upsert_folder(db_conn, "trips", "trips", None)
    upsert_folder(db_conn, "trips/paris", "paris", trips)
    upsert_folder(db_conn, "trips/rome", "rome", trips)
    upsert_folder(db_conn, "family", "family", None)

    assert [f.path for f in list_folders(db_conn, roots_only=True)] == ["family", "trips"]
    assert [f.name for f in list_folders(db_conn, parent_id=trips)] == ["paris", "rome"]
    assert len(list_folders(db_conn)) == 4
    assert get_folder_by_path(db_conn, "trips/rome").parent_id == trips
    assert get_folder_by_path(db_conn, "missing") is None


def test_insert_and_lookup_photo(db_conn):
    folder_id = upsert_folder(db_conn, "trips", "trips", None)
    photo = make_photo(
        "trips/IMG_1.JPG",
        folder_id=folder_id,
        url_path="trips/img_1.jpg",
        taken_at=datetime(2024, 5, 1, 10, 30),
        exif=ExifInfo(camera_make="Canon", iso=400),
    )
    photo_id = insert_photo(db_conn, photo)

    stored = get_photo(db_conn, photo_id)
    assert stored.path == "trips/IMG_1.JPG"
    assert stored.folder_id == folder_id
    assert stored.exif.camera_make == "Canon"
    assert stored.exif.iso == 400
    assert stored.taken_at == datetime(2024, 5, 1, 10, 30)
    assert stored.hidden is False
    assert get_photo_by_path(db_conn, "trips/IMG_1.JPG").id == photo_id
    assert get_photo_by_url_path(db_conn, "trips/img_1.jpg").id == photo_id
    assert photo_exists(db_conn, "trips/IMG_1.JPG")
    assert url_path_exists(db_conn, "trips/img_1.jpg")
    assert not photo_exists(db_conn, "trips/other.jpg")


def test_insert_existing_path_keeps_row(db_conn):
    first = make_photo("a.jpg")
    first.url_path = None
    photo_id = insert_photo(db_conn, first)
    again = make_photo("a.jpg", url_path="a.jpg")
    again.width = 1
    assert insert_photo(db_conn, again) == photo_id

    stored = get_photo(db_conn, photo_id)
    assert stored.width == 640
    assert stored.url_path == "a.jpg"
    count = db_conn.execute("SELECT COUNT(*) FROM photos").fetchone()[0]
    assert count == 1


def test_insert_duplicate_url_path_raises(db_conn):
    insert_photo(db_conn, make_photo("a.jpg", url_path="same.jpg"))
    with pytest.raises(duckdb.ConstraintException):
        insert_photo(db_conn, make_photo("b.jpg", url_path="same.jpg"))


def test_list_photos_orders_by_capture_time(db_conn):
    folder_id = upsert_folder(db_conn, "f", "f", None)
    insert_photo(db_conn, make_photo("f/late.jpg", folder_id, taken_at=datetime(2023, 3, 1)))
    insert_photo(db_conn, make_photo("f/early.jpg", folder_id, taken_at=datetime(2021, 1, 1)))
    insert_photo(db_conn, make_photo("f/undated.jpg", folder_id))
    insert_photo(db_conn, make_photo("root.jpg", None, taken_at=datetime(2022, 1, 1)))

    in_folder = [p.filename for p in list_photos(db_conn, folder_id=folder_id)]
    assert in_folder == ["early.jpg", "late.jpg", "undated.jpg"]
    assert [p.filename for p in list_photos(db_conn, root_only=True)] == ["root.jpg"]
    assert len(list_photos(db_conn)) == 4


def test_toggle_hidden_filters_listing(db_conn):
    photo_id = insert_photo(db_conn, make_photo("a.jpg"))
    insert_photo(db_conn, make_photo("b.jpg"))

    toggle_hidden(db_conn, photo_id)
    assert get_photo(db_conn, photo_id).hidden is True
    assert [p.path for p in list_photos(db_conn)] == ["b.jpg"]
    assert len(list_photos(db_conn, include_hidden=True)) == 2

    toggle_hidden(db_conn, photo_id)
    assert get_photo(db_conn, photo_id).hidden is False


def test_delete_photo_clears_folder_cover(db_conn):
    folder_id = upsert_folder(db_conn, "f", "f", None)
    photo_id = insert_photo(db_conn, make_photo("f/a.jpg", folder_id))
    set_folder_cover(db_conn, folder_id, photo_id)
    assert get_folder(db_conn, folder_id).cover_photo_id == photo_id

    delete_photo(db_conn, photo_id)
    assert get_photo(db_conn, photo_id) is None
    assert get_folder(db_conn, folder_id).cover_photo_id is None


def test_move_photo(db_conn):
    src = upsert_folder(db_conn, "src", "src", None)
    dst = upsert_folder(db_conn, "dst", "dst", None)
    photo_id = insert_photo(db_conn, make_photo("src/a.jpg", src))

    move_photo(db_conn, photo_id, dst)
    assert get_photo(db_conn, photo_id).folder_id == dst
    move_photo(db_conn, photo_id, None)
    assert get_photo(db_conn, photo_id).folder_id is None


def test_delete_empty_folders_only_removes_leaves(db_conn):
    parent = upsert_folder(db_conn, "a", "a", None)
    upsert_folder(db_conn, "a/b", "b", parent)
    keep = upsert_folder(db_conn, "c", "c", None)
    insert_photo(db_conn, make_photo("c/x.jpg", keep))

    assert delete_empty_folders(db_conn) == 1
    assert get_folder_by_path(db_conn, "a/b") is None
    assert delete_empty_folders(db_conn) == 1
    assert get_folder_by_path(db_conn, "a") is None
    assert delete_empty_folders(db_conn) == 0
    assert get_folder(db_conn, keep) is not None


def test_set_url_path_only_fills_missing(db_conn):
    photo_id = insert_photo(db_conn, make_photo("a.jpg", url_path="first.jpg"))
    set_url_path(db_conn, photo_id, "second.jpg")
    assert get_photo(db_conn, photo_id).url_path == "first.jpg"


def test_list_photo_paths_and_stats(db_conn):
    upsert_folder(db_conn, "f", "f", None)
    first = insert_photo(db_conn, make_photo("f/a.jpg"))
    second = insert_photo(db_conn, make_photo("f/b.jpg"))
    toggle_hidden(db_conn, second)

    assert list_photo_paths(db_conn) == [(first, "f/a.jpg"), (second, "f/b.jpg")]
    assert get_catalog_stats(db_conn) == (1, 2, 1, 100000)
