"""Walk the media root and register folders and photos in the catalog."""

import os
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

import duckdb
from loguru import logger
from tenacity import retry, retry_if_exception_type, stop_after_attempt

from photodock.catalog.repository import (
    clear_url_paths,
    delete_empty_folders,
    delete_photo,
    get_folder_by_path,
    insert_photo,
    list_photo_paths,
    photo_exists,
    set_url_path,
    upsert_folder,
)
from photodock.config import IMAGE_EXTENSIONS, MEDIA_ROOT
from photodock.derivatives.cache import IMAGE_ERRORS, DerivativeCache
from photodock.errors import NotFoundError, PhotodockError, ScanError
from photodock.ingest.slug import unique_url_path
from photodock.metadata import MetadataExtractor
from photodock.metadata.privacy import strip_gps
from photodock.models import Photo


@dataclass
class ScanStats:
    """Counters for one scan call."""

    folders: int = 0
    added: int = 0
    skipped: int = 0
    errors: int = 0


@dataclass
class CleanupStats:
    """Rows removed by an orphan sweep."""

    photos_removed: int = 0
    folders_removed: int = 0


def is_image_file(name: str) -> bool:
    return Path(name).suffix.lower() in IMAGE_EXTENSIONS


class Scanner:
    """Discover images under the media root and ingest the new ones.

    Re-scanning is idempotent: folders are upserted by path and photos that
    are already registered are skipped without any extraction work.
    """

    def __init__(
        self,
        conn: duckdb.DuckDBPyConnection,
        cache: DerivativeCache,
        extractor: MetadataExtractor,
        media_root: str | Path = MEDIA_ROOT,
    ) -> None:
        self.conn = conn
        self.cache = cache
        self.extractor = extractor
        self.media_root = Path(media_root)

    def scan_all(self, on_file: Callable[[str], None] | None = None) -> ScanStats:
        """Walk the entire media root."""
        stats = ScanStats()
        self._scan_dir("", None, stats, on_file, root=True)
        logger.info(
            "Scan complete: {} folders, {} added, {} skipped, {} errors",
            stats.folders, stats.added, stats.skipped, stats.errors,
        )
        return stats

    def scan_folder(
        self, relative_path: str, on_file: Callable[[str], None] | None = None
    ) -> ScanStats:
        """Walk one subtree. The folder must already be in the catalog."""
        relative_path = relative_path.strip("/")
        if not relative_path:
            return self.scan_all(on_file)
        folder = get_folder_by_path(self.conn, relative_path)
        if folder is None:
            raise NotFoundError(f"Folder not found: {relative_path}")

        stats = ScanStats()
        self._scan_dir(relative_path, folder.id, stats, on_file, root=True)
        logger.info(
            "Scan of {} complete: {} folders, {} added, {} skipped, {} errors",
            relative_path, stats.folders, stats.added, stats.skipped, stats.errors,
        )
        return stats

    def _scan_dir(
        self,
        rel_dir: str,
        folder_id: int | None,
        stats: ScanStats,
        on_file: Callable[[str], None] | None,
        root: bool = False,
    ) -> None:
        abs_dir = self.media_root / rel_dir
        try:
            with os.scandir(abs_dir) as it:
                entries = sorted(it, key=lambda e: e.name)
        except OSError as exc:
            if root:
                raise ScanError(f"Cannot read {abs_dir}: {exc}") from exc
            logger.warning("Cannot read directory {}: {}", abs_dir, exc)
            stats.errors += 1
            return

        for entry in entries:
            if entry.name.startswith("."):
                continue
            rel_path = f"{rel_dir}/{entry.name}" if rel_dir else entry.name

            try:
                is_dir = entry.is_dir()
            except OSError as exc:
                logger.warning("Cannot stat {}: {}", rel_path, exc)
                stats.errors += 1
                continue

            if is_dir:
                try:
                    child_id = upsert_folder(self.conn, rel_path, entry.name, folder_id)
                except duckdb.Error as exc:
                    logger.error("Folder upsert failed for {}: {}", rel_path, exc)
                    stats.errors += 1
                    continue
                stats.folders += 1
                self._scan_dir(rel_path, child_id, stats, on_file)
            elif is_image_file(entry.name):
                if on_file is not None:
                    on_file(rel_path)
                try:
                    if self.process_photo(rel_path, folder_id):
                        stats.added += 1
                    else:
                        stats.skipped += 1
                except (OSError, duckdb.Error, PhotodockError) as exc:
                    logger.error("Failed to ingest {}: {}", rel_path, exc)
                    stats.errors += 1

    def process_photo(self, rel_path: str, folder_id: int | None) -> bool:
        """Ingest one image. Returns False if it was already registered."""
        if photo_exists(self.conn, rel_path):
            return False

        abs_path = self.media_root / rel_path
        size_bytes = abs_path.stat().st_size

        try:
            strip_gps(abs_path)
        except OSError as exc:
            logger.warning("GPS strip failed for {}: {}", rel_path, exc)

        exif, taken_at = self.extractor.extract(abs_path)

        try:
            width, height = self.cache.image_dimensions(rel_path)
        except IMAGE_ERRORS as exc:
            logger.warning("Cannot read dimensions of {}: {}", rel_path, exc)
            width, height = 0, 0

        try:
            placeholder = self.cache.encode_placeholder(rel_path)
        except IMAGE_ERRORS as exc:
            logger.warning("Cannot compute placeholder for {}: {}", rel_path, exc)
            placeholder = None

        photo = Photo(
            id=None,
            folder_id=folder_id,
            filename=abs_path.name,
            path=rel_path,
            url_path=None,
            width=width,
            height=height,
            size_bytes=size_bytes,
            placeholder=placeholder,
            exif=exif,
            taken_at=taken_at,
        )
        photo_id = self._insert_with_unique_slug(photo)
        logger.info("Added photo {} as {} (id {})", rel_path, photo.url_path, photo_id)

        for tier in self.cache.tiers:
            try:
                self.cache.get_thumbnail(photo_id, rel_path, tier)
            except PhotodockError as exc:
                logger.warning("Thumbnail {} failed for {}: {}", tier, rel_path, exc)
        return True

    @retry(
        stop=stop_after_attempt(5),
        retry=retry_if_exception_type(duckdb.ConstraintException),
        reraise=True,
    )
    def _insert_with_unique_slug(self, photo: Photo) -> int:
        """Insert with a fresh slug; a slug lost to a concurrent scan is recomputed."""
        photo.url_path = unique_url_path(self.conn, photo.path)
        return insert_photo(self.conn, photo)

    def clean_orphans(self) -> CleanupStats:
        """Drop photos whose files are gone, then folders left without content."""
        stats = CleanupStats()
        for photo_id, rel_path in list_photo_paths(self.conn):
            if (self.media_root / rel_path).exists():
                continue
            delete_photo(self.conn, photo_id)
            self.cache.invalidate(photo_id)
            stats.photos_removed += 1
            logger.info("Removed orphaned photo {} (id {})", rel_path, photo_id)

        while True:
            removed = delete_empty_folders(self.conn)
            if not removed:
                break
            stats.folders_removed += removed

        logger.info(
            "Cleanup complete: {} photos, {} folders removed",
            stats.photos_removed, stats.folders_removed,
        )
        return stats

    def regenerate_url_paths(self) -> int:
        """Clear every slug and reassign them in photo ID order. Returns the count."""
        photos = list_photo_paths(self.conn)
        clear_url_paths(self.conn)
        for photo_id, rel_path in photos:
            set_url_path(self.conn, photo_id, unique_url_path(self.conn, rel_path))
        logger.info("Regenerated {} URL paths", len(photos))
        return len(photos)
