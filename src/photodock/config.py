"""Project-wide configuration."""

import os
from pathlib import Path

from dotenv import load_dotenv

PROJECT_ROOT = Path(os.environ.get("PHOTODOCK_PROJECT_ROOT", Path.cwd()))

load_dotenv(PROJECT_ROOT / ".env")

MEDIA_ROOT = Path(os.environ.get("MEDIA_ROOT", PROJECT_ROOT / "media")).resolve()
CACHE_DIR = Path(os.environ.get("CACHE_DIR", MEDIA_ROOT / ".photodock_cache")).resolve()
DB_PATH = Path(os.environ.get("PHOTODOCK_DB_PATH", PROJECT_ROOT / "photodock.duckdb"))

# Metadata extraction
EXIFTOOL_PATH = os.environ.get("EXIFTOOL", "exiftool")
EXIFTOOL_TIMEOUT = float(os.environ.get("EXIFTOOL_TIMEOUT", "30"))

# Scanning
IMAGE_EXTENSIONS = frozenset({".jpg", ".jpeg", ".png"})
SCAN_WORKERS = int(os.environ.get("PHOTODOCK_SCAN_WORKERS", "2"))
SLUG_MAX_ATTEMPTS = 10000

# Logging
LOG_DIR = os.environ.get("PHOTODOCK_LOG_DIR") or None
LOG_LEVEL = os.environ.get("PHOTODOCK_LOG_LEVEL", "INFO")

# Derivatives: width in pixels and JPEG quality per size tier
THUMBNAIL_TIERS: dict[str, dict] = {
    "small": {"width": 300, "quality": 80},
    "medium": {"width": 800, "quality": 85},
    "large": {"width": 1600, "quality": 90},
}
PLACEHOLDER_TIER = "placeholder"
PLACEHOLDER_GRID = 4
PLACEHOLDER_SIZE = 32
