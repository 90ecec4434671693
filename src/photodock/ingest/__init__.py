"""Filesystem discovery, slug assignment and background scan jobs."""

from photodock.ingest.scanner import CleanupStats, Scanner, ScanStats
from photodock.ingest.slug import sanitize_url_path, unique_url_path
from photodock.ingest.tasks import ScanTask, ScanTaskRunner

__all__ = [
    "CleanupStats",
    "ScanStats",
    "ScanTask",
    "ScanTaskRunner",
    "Scanner",
    "sanitize_url_path",
    "unique_url_path",
]
