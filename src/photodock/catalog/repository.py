"""CRUD operations for folders and photos in DuckDB."""

import json

import duckdb

from photodock.models import ExifInfo, Folder, Photo

FOLDER_COLUMNS = "id, parent_id, name, path, cover_photo_id, created_at, updated_at"
PHOTO_COLUMNS = (
    "id, folder_id, filename, path, url_path, width, height, size_bytes, "
    "placeholder, exif_data, hidden, created_at, updated_at, taken_at"
)


# ── Folders ──────────────────────────────────────────────────────────


def upsert_folder(
    conn: duckdb.DuckDBPyConnection,
    path: str,
    name: str,
    parent_id: int | None,
) -> int:
    """Insert a folder by path, or refresh the name of the existing one. Returns its ID."""
    conn.execute(
        """
        INSERT INTO folders (parent_id, name, path)
        VALUES (?, ?, ?)
        ON CONFLICT (path) DO UPDATE SET name = EXCLUDED.name
        """,
        [parent_id, name, path],
    )
    row = conn.execute("SELECT id FROM folders WHERE path = ?", [path]).fetchone()
    return row[0]


def get_folder(conn: duckdb.DuckDBPyConnection, folder_id: int) -> Folder | None:
    """Look up a single folder by ID."""
    row = conn.execute(
        f"SELECT {FOLDER_COLUMNS} FROM folders WHERE id = ?", [folder_id]
    ).fetchone()
    return _row_to_folder(row) if row else None


def get_folder_by_path(conn: duckdb.DuckDBPyConnection, path: str) -> Folder | None:
    """Look up a single folder by its slash-joined path."""
    row = conn.execute(f"SELECT {FOLDER_COLUMNS} FROM folders WHERE path = ?", [path]).fetchone()
    return _row_to_folder(row) if row else None


def list_folders(
    conn: duckdb.DuckDBPyConnection,
    parent_id: int | None = None,
    roots_only: bool = False,
) -> list[Folder]:
    """List folders, optionally restricted to one parent or to the roots."""
    query = f"SELECT {FOLDER_COLUMNS} FROM folders WHERE 1=1"
    params: list = []
    if parent_id is not None:
        query += " AND parent_id = ?"
        params.append(parent_id)
    elif roots_only:
        query += " AND parent_id IS NULL"
    query += " ORDER BY path"
    rows = conn.execute(query, params).fetchall()
    return [_row_to_folder(row) for row in rows]


def delete_empty_folders(conn: duckdb.DuckDBPyConnection) -> int:
    """Delete folders that have neither photos nor subfolders. Returns the row count."""
    row = conn.execute("""
        DELETE FROM folders WHERE id IN (
            SELECT f.id FROM folders f
            WHERE NOT EXISTS (SELECT 1 FROM photos p WHERE p.folder_id = f.id)
              AND NOT EXISTS (SELECT 1 FROM folders sf WHERE sf.parent_id = f.id)
        )
    """).fetchone()
    return row[0] if row else 0


def set_folder_cover(
    conn: duckdb.DuckDBPyConnection, folder_id: int, photo_id: int | None
) -> None:
    """Assign (or clear) the cover photo of a folder."""
    conn.execute(
        "UPDATE folders SET cover_photo_id = ?, updated_at = current_timestamp WHERE id = ?",
        [photo_id, folder_id],
    )


# ── Photos ───────────────────────────────────────────────────────────


def photo_exists(conn: duckdb.DuckDBPyConnection, path: str) -> bool:
    """Return True if a photo with this relative path is already registered."""
    row = conn.execute("SELECT EXISTS(SELECT 1 FROM photos WHERE path = ?)", [path]).fetchone()
    return bool(row[0])


def url_path_exists(conn: duckdb.DuckDBPyConnection, url_path: str) -> bool:
    """Return True if the slug is already assigned to some photo."""
    row = conn.execute(
        "SELECT EXISTS(SELECT 1 FROM photos WHERE url_path = ?)", [url_path]
    ).fetchone()
    return bool(row[0])


def insert_photo(conn: duckdb.DuckDBPyConnection, photo: Photo) -> int:
    """Insert a photo keyed by path and return its ID.

    An existing row is kept as is, except that a missing slug is filled in.
    A slug taken by another row raises ``duckdb.ConstraintException``.
    """
    exif_json = json.dumps(photo.exif.to_dict()) if photo.exif is not None else None
    conn.execute(
        """
        INSERT INTO photos (
            folder_id, filename, path, url_path, width, height,
            size_bytes, placeholder, exif_data, taken_at
        ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        ON CONFLICT (path) DO NOTHING
        """,
        [
            photo.folder_id,
            photo.filename,
            photo.path,
            photo.url_path,
            photo.width,
            photo.height,
            photo.size_bytes,
            photo.placeholder,
            exif_json,
            photo.taken_at,
        ],
    )
    row = conn.execute("SELECT id, url_path FROM photos WHERE path = ?", [photo.path]).fetchone()
    photo_id, existing_url_path = row
    if existing_url_path is None and photo.url_path is not None:
        set_url_path(conn, photo_id, photo.url_path)
    return photo_id


def get_photo(conn: duckdb.DuckDBPyConnection, photo_id: int) -> Photo | None:
    """Look up a single photo by ID."""
    row = conn.execute(f"SELECT {PHOTO_COLUMNS} FROM photos WHERE id = ?", [photo_id]).fetchone()
    return _row_to_photo(row) if row else None


def get_photo_by_path(conn: duckdb.DuckDBPyConnection, path: str) -> Photo | None:
    """Look up a single photo by its relative path."""
    row = conn.execute(f"SELECT {PHOTO_COLUMNS} FROM photos WHERE path = ?", [path]).fetchone()
    return _row_to_photo(row) if row else None


def get_photo_by_url_path(conn: duckdb.DuckDBPyConnection, url_path: str) -> Photo | None:
    """Look up a single photo by its slug."""
    row = conn.execute(
        f"SELECT {PHOTO_COLUMNS} FROM photos WHERE url_path = ?", [url_path]
    ).fetchone()
    return _row_to_photo(row) if row else None


def list_photos(
    conn: duckdb.DuckDBPyConnection,
    folder_id: int | None = None,
    include_hidden: bool = False,
    root_only: bool = False,
) -> list[Photo]:
    """List photos ordered by capture time (creation time when unknown)."""
    query = f"SELECT {PHOTO_COLUMNS} FROM photos WHERE 1=1"
    params: list = []
    if folder_id is not None:
        query += " AND folder_id = ?"
        params.append(folder_id)
    elif root_only:
        query += " AND folder_id IS NULL"
    if not include_hidden:
        query += " AND hidden = false"
    query += " ORDER BY COALESCE(taken_at, created_at), id"
    rows = conn.execute(query, params).fetchall()
    return [_row_to_photo(row) for row in rows]


def list_photo_paths(conn: duckdb.DuckDBPyConnection) -> list[tuple[int, str]]:
    """Return (photo_id, relative_path) pairs for every photo, by ID."""
    rows = conn.execute("SELECT id, path FROM photos ORDER BY id").fetchall()
    return [(row[0], row[1]) for row in rows]


def delete_photo(conn: duckdb.DuckDBPyConnection, photo_id: int) -> None:
    """Delete a photo row and drop it as a folder cover."""
    conn.execute(
        "UPDATE folders SET cover_photo_id = NULL WHERE cover_photo_id = ?", [photo_id]
    )
    conn.execute("DELETE FROM photos WHERE id = ?", [photo_id])


def toggle_hidden(conn: duckdb.DuckDBPyConnection, photo_id: int) -> None:
    """Flip the visibility flag of a photo."""
    conn.execute(
        "UPDATE photos SET hidden = NOT hidden, updated_at = current_timestamp WHERE id = ?",
        [photo_id],
    )


def move_photo(
    conn: duckdb.DuckDBPyConnection, photo_id: int, folder_id: int | None
) -> None:
    """Reassign a photo to another folder (``None`` for the root)."""
    conn.execute(
        "UPDATE photos SET folder_id = ?, updated_at = current_timestamp WHERE id = ?",
        [folder_id, photo_id],
    )


def set_url_path(conn: duckdb.DuckDBPyConnection, photo_id: int, url_path: str) -> None:
    """Assign a slug to a photo that does not have one yet."""
    conn.execute(
        "UPDATE photos SET url_path = ? WHERE id = ? AND url_path IS NULL",
        [url_path, photo_id],
    )


def clear_url_paths(conn: duckdb.DuckDBPyConnection) -> None:
    """Remove every slug so that they can be regenerated."""
    conn.execute("UPDATE photos SET url_path = NULL")


def get_catalog_stats(conn: duckdb.DuckDBPyConnection) -> tuple[int, int, int, int]:
    """Return (folders, photos, hidden_photos, total_bytes)."""
    folders_row = conn.execute("SELECT COUNT(*) FROM folders").fetchone()
    photos_row = conn.execute(
        "SELECT COUNT(*), COUNT(*) FILTER (WHERE hidden), COALESCE(SUM(size_bytes), 0) FROM photos"
    ).fetchone()
    return folders_row[0], photos_row[0], photos_row[1], photos_row[2]


def _row_to_folder(row: tuple) -> Folder:
    """Convert a row selected with FOLDER_COLUMNS to a Folder."""
    return Folder(
        id=row[0],
        parent_id=row[1],
        name=row[2],
        path=row[3],
        cover_photo_id=row[4],
        created_at=row[5],
        updated_at=row[6],
    )


def _row_to_photo(row: tuple) -> Photo:
    """Convert a row selected with PHOTO_COLUMNS to a Photo.

    Column order:
    0:id, 1:folder_id, 2:filename, 3:path, 4:url_path, 5:width, 6:height,
    7:size_bytes, 8:placeholder, 9:exif_data, 10:hidden, 11:created_at,
    12:updated_at, 13:taken_at
    """
    exif_raw = row[9]
    if isinstance(exif_raw, str):
        exif = ExifInfo.from_dict(json.loads(exif_raw))
    elif isinstance(exif_raw, dict):
        exif = ExifInfo.from_dict(exif_raw)
    else:
        exif = None

    return Photo(
        id=row[0],
        folder_id=row[1],
        filename=row[2],
        path=row[3],
        url_path=row[4],
        width=row[5] or 0,
        height=row[6] or 0,
        size_bytes=row[7] or 0,
        placeholder=row[8],
        exif=exif,
        hidden=bool(row[10]),
        created_at=row[11],
        updated_at=row[12],
        taken_at=row[13],
    )
