"""Thumbnail and placeholder cache keyed by catalog photo ID."""

import os
import threading
import uuid
from collections.abc import Callable, Iterable
from pathlib import Path

from loguru import logger
from PIL import Image, ImageOps

from photodock.config import CACHE_DIR, MEDIA_ROOT, PLACEHOLDER_TIER, THUMBNAIL_TIERS
from photodock.derivatives.placeholder import encode_placeholder, render_placeholder
from photodock.errors import DerivativeError

CACHE_EXTENSIONS = (".jpg", ".png")

# Errors raised by Pillow for unreadable, truncated or oversized sources
IMAGE_ERRORS = (OSError, ValueError, Image.DecompressionBombError)


class ExistenceIndex:
    """Thread-safe set of derivative files known to be on disk."""

    def __init__(self, paths: Iterable[Path] = ()) -> None:
        self._paths: set[Path] = set(paths)
        self._lock = threading.Lock()

    def __contains__(self, path: object) -> bool:
        with self._lock:
            return path in self._paths

    def __len__(self) -> int:
        with self._lock:
            return len(self._paths)

    def add(self, path: Path) -> None:
        with self._lock:
            self._paths.add(path)

    def update(self, paths: Iterable[Path]) -> None:
        with self._lock:
            self._paths.update(paths)

    def discard(self, path: Path) -> None:
        with self._lock:
            self._paths.discard(path)

    def clear(self) -> None:
        with self._lock:
            self._paths.clear()


class DerivativeCache:
    """Generate and memoize resized thumbnails and placeholders on disk.

    Files live at ``<cache_dir>/<tier>/<photo_id>.<ext>``. Once a file is in
    the existence index it is returned without touching the filesystem until
    ``invalidate`` drops it. At most one thread generates a given file at a
    time; concurrent callers for the same key wait and reuse the result.
    """

    def __init__(
        self,
        media_root: str | Path = MEDIA_ROOT,
        cache_dir: str | Path = CACHE_DIR,
        tiers: dict[str, dict] | None = None,
        index: ExistenceIndex | None = None,
    ) -> None:
        self.media_root = Path(media_root)
        self.cache_dir = Path(cache_dir)
        self.tiers = tiers or THUMBNAIL_TIERS
        self.index = index if index is not None else ExistenceIndex()
        self._key_locks: dict[Path, threading.Lock] = {}
        self._key_users: dict[Path, int] = {}
        self._key_locks_guard = threading.Lock()
        for name in self._directories():
            (self.cache_dir / name).mkdir(parents=True, exist_ok=True)

    def _directories(self) -> list[str]:
        return [*self.tiers, PLACEHOLDER_TIER]

    # Paths

    def thumbnail_path(self, photo_id: int, source_path: str | Path, tier: str) -> Path:
        """Deterministic cache location of one (photo, tier) pair."""
        if tier not in self.tiers:
            raise ValueError(f"Unknown size tier: {tier!r}")
        ext = ".png" if str(source_path).lower().endswith(".png") else ".jpg"
        return self.cache_dir / tier / f"{photo_id}{ext}"

    def placeholder_path(self, photo_id: int) -> Path:
        return self.cache_dir / PLACEHOLDER_TIER / f"{photo_id}.png"

    # Accessors

    def get_thumbnail(self, photo_id: int, source_path: str | Path, tier: str) -> Path:
        """Return the cached thumbnail, generating it on first request."""
        target = self.thumbnail_path(photo_id, source_path, tier)
        source = self.media_root / source_path
        return self._materialize(target, lambda: self._render_thumbnail(source, target, tier))

    def get_placeholder(self, photo_id: int, encoding: str | None) -> Path:
        """Return the cached placeholder PNG rendered from the stored grid encoding."""
        target = self.placeholder_path(photo_id)
        return self._materialize(
            target, lambda: _save_atomic(render_placeholder(encoding), target, "PNG")
        )

    def image_dimensions(self, source_path: str | Path) -> tuple[int, int]:
        """Pixel (width, height) of a source image, read from its header."""
        with Image.open(self.media_root / source_path) as img:
            return img.size

    def encode_placeholder(self, source_path: str | Path) -> str:
        """Compute the placeholder grid encoding of a source image."""
        return encode_placeholder(self.media_root / source_path)

    # Lifecycle

    def invalidate(self, photo_id: int) -> None:
        """Delete every derivative of a photo and forget it in the index."""
        for name in self._directories():
            for ext in CACHE_EXTENSIONS:
                path = self.cache_dir / name / f"{photo_id}{ext}"
                self.index.discard(path)
                try:
                    path.unlink(missing_ok=True)
                except OSError as exc:
                    logger.warning("Could not remove cached file {}: {}", path, exc)

    def prewarm(self) -> int:
        """Record every file already present in the cache directories. Returns the count."""
        found: list[Path] = []
        for name in self._directories():
            directory = self.cache_dir / name
            if not directory.is_dir():
                continue
            with os.scandir(directory) as entries:
                for entry in entries:
                    if entry.name.startswith(".") or not entry.is_file():
                        continue
                    found.append(directory / entry.name)
        self.index.update(found)
        logger.info("Prewarmed derivative index with {} files", len(found))
        return len(found)

    # Internals

    def _materialize(self, target: Path, generate: Callable[[], None]) -> Path:
        if target in self.index:
            return target

        lock = self._checkout_lock(target)
        try:
            with lock:
                if target in self.index:
                    return target
                if not target.exists():
                    try:
                        generate()
                    except IMAGE_ERRORS as exc:
                        raise DerivativeError(f"Failed to generate {target}: {exc}") from exc
                self.index.add(target)
        finally:
            self._return_lock(target)
        return target

    def _checkout_lock(self, target: Path) -> threading.Lock:
        """Return the lock for ``target`` and register the caller as one of its users."""
        with self._key_locks_guard:
            self._key_users[target] = self._key_users.get(target, 0) + 1
            return self._key_locks.setdefault(target, threading.Lock())

    def _return_lock(self, target: Path) -> None:
        # The lock is dropped only once no holder or waiter references it
        with self._key_locks_guard:
            self._key_users[target] -= 1
            if not self._key_users[target]:
                del self._key_users[target]
                del self._key_locks[target]

    def _render_thumbnail(self, source: Path, target: Path, tier: str) -> None:
        spec = self.tiers[tier]
        with Image.open(source) as img:
            img = ImageOps.exif_transpose(img)
            width = spec["width"]
            if img.width > width:
                height = max(1, round(img.height * width / img.width))
                img = img.resize((width, height), Image.Resampling.LANCZOS)
            if target.suffix == ".png":
                _save_atomic(img, target, "PNG", optimize=True)
            else:
                if img.mode != "RGB":
                    img = img.convert("RGB")
                _save_atomic(img, target, "JPEG", quality=spec["quality"], optimize=True)
        logger.debug("Generated {} thumbnail {}", tier, target)


def _save_atomic(img: Image.Image, target: Path, image_format: str, **params) -> None:
    """Write to a hidden temporary file next to ``target`` and rename it into place."""
    tmp = target.with_name(f".{target.name}.{uuid.uuid4().hex}.tmp")
    try:
        img.save(tmp, format=image_format, **params)
        os.replace(tmp, target)
    finally:
        tmp.unlink(missing_ok=True)
