"""DuckDB schema definition and migration."""

import duckdb


def ensure_schema(conn: duckdb.DuckDBPyConnection) -> None:
    """Create tables and indexes if they do not exist."""
    conn.execute("CREATE SEQUENCE IF NOT EXISTS folders_id_seq START 1")
    conn.execute("""
        CREATE TABLE IF NOT EXISTS folders (
            id              INTEGER PRIMARY KEY DEFAULT nextval('folders_id_seq'),
            parent_id       INTEGER,
            name            VARCHAR NOT NULL,
            path            VARCHAR NOT NULL UNIQUE,
            cover_photo_id  INTEGER,
            created_at      TIMESTAMP DEFAULT current_timestamp,
            updated_at      TIMESTAMP DEFAULT current_timestamp
        )
    """)
    conn.execute("CREATE INDEX IF NOT EXISTS idx_folders_parent ON folders(parent_id)")

    conn.execute("CREATE SEQUENCE IF NOT EXISTS photos_id_seq START 1")
    conn.execute("""
        CREATE TABLE IF NOT EXISTS photos (
            id              INTEGER PRIMARY KEY DEFAULT nextval('photos_id_seq'),
            folder_id       INTEGER,
            filename        VARCHAR NOT NULL,
            path            VARCHAR NOT NULL UNIQUE,
            url_path        VARCHAR UNIQUE,
            width           INTEGER,
            height          INTEGER,
            size_bytes      BIGINT,
            placeholder     VARCHAR,
            exif_data       JSON,
            hidden          BOOLEAN DEFAULT false,
            created_at      TIMESTAMP DEFAULT current_timestamp,
            updated_at      TIMESTAMP DEFAULT current_timestamp,
            taken_at        TIMESTAMP
        )
    """)
    conn.execute("CREATE INDEX IF NOT EXISTS idx_photos_folder ON photos(folder_id)")
    conn.execute("CREATE INDEX IF NOT EXISTS idx_photos_hidden ON photos(hidden)")

    _migrate(conn)


def _migrate(conn: duckdb.DuckDBPyConnection) -> None:
    """Add columns that may not exist in older schemas."""
    migrations = [
        "ALTER TABLE photos ADD COLUMN IF NOT EXISTS placeholder VARCHAR",
        "ALTER TABLE photos ADD COLUMN IF NOT EXISTS taken_at TIMESTAMP",
        "ALTER TABLE folders ADD COLUMN IF NOT EXISTS cover_photo_id INTEGER",
    ]
    for sql in migrations:
        conn.execute(sql)
