"""Tests for URL slug sanitisation and collision handling."""

import re

import pytest
from conftest import make_photo

from photodock.catalog.repository import insert_photo
from photodock.ingest.slug import sanitize_url_path, split_extension, unique_url_path


@pytest.mark.parametrize(
    ("path", "expected"),
    [
        ("Trips/2024 Paris/IMG_0001.JPG", "trips/2024-paris/img_0001.jpg"),
        ("Café  au lait!.png", "caf-au-lait.png"),
        ("  -weird- /x.jpg", "weird/x.jpg"),
        ("a\\b\\c.jpeg", "a/b/c.jpeg"),
        ("one--two---three.jpg", "one-two-three.jpg"),
    ],
)
def test_sanitize_url_path(path, expected):
    assert sanitize_url_path(path) == expected


def test_split_extension_uses_last_segment():
    assert split_extension("trips/2024.paris/img.jpg") == ("trips/2024.paris/img", ".jpg")
    assert split_extension("trips/2024.paris/readme") == ("trips/2024.paris/readme", "")


def test_unique_url_path_without_collision(db_conn):
    assert unique_url_path(db_conn, "Trips/2024 Paris/IMG_0001.JPG") == (
        "trips/2024-paris/img_0001.jpg"
    )


def test_unique_url_path_appends_counter(db_conn):
    insert_photo(
        db_conn,
        make_photo("Trips/2024 Paris/IMG_0001.JPG", url_path="trips/2024-paris/img_0001.jpg"),
    )
    slug = unique_url_path(db_conn, "trips/2024-paris/IMG_0001.jpg")
    assert slug == "trips/2024-paris/img_0001-1.jpg"

    insert_photo(db_conn, make_photo("trips/2024-paris/IMG_0001.jpg", url_path=slug))
    assert unique_url_path(db_conn, "TRIPS/2024 PARIS/img_0001.jpg") == (
        "trips/2024-paris/img_0001-2.jpg"
    )


def test_unique_url_path_falls_back_to_timestamp(db_conn):
    insert_photo(db_conn, make_photo("A.jpg", url_path="a.jpg"))
    insert_photo(db_conn, make_photo("a.JPG", url_path="a-1.jpg"))

    slug = unique_url_path(db_conn, "a.jpg", max_attempts=2)
    assert re.fullmatch(r"a-\d{10,}\.jpg", slug)
