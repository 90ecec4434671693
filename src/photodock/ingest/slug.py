"""Human-readable, collision-free URL slugs derived from relative photo paths."""

import posixpath
import re
import time

import duckdb

from photodock.catalog.repository import url_path_exists
from photodock.config import SLUG_MAX_ATTEMPTS

_DISALLOWED = re.compile(r"[^a-z0-9/._ -]")
_HYPHEN_RUNS = re.compile(r"-+")


def sanitize_url_path(path: str) -> str:
    """Lower-case ``path`` and reduce it to ``[a-z0-9/._-]``.

    Spaces become hyphens, other characters are dropped, hyphen runs are
    collapsed and hyphens are trimmed from each segment and from the ends.
    """
    slug = path.replace("\\", "/").lower()
    slug = _DISALLOWED.sub("", slug).replace(" ", "-")
    slug = _HYPHEN_RUNS.sub("-", slug).strip("-")
    return "/".join(part.strip("-") for part in slug.split("/"))


def split_extension(slug: str) -> tuple[str, str]:
    """Split ``slug`` into (base, extension) on the last dot of its final segment."""
    base, ext = posixpath.splitext(slug)
    return base, ext


def unique_url_path(
    conn: duckdb.DuckDBPyConnection,
    path: str,
    max_attempts: int = SLUG_MAX_ATTEMPTS,
) -> str:
    """Return a slug for ``path`` that no photo uses yet.

    Collisions get ``-1``, ``-2``, ... before the extension. After
    ``max_attempts`` candidates a nanosecond timestamp suffix is used.
    """
    slug = sanitize_url_path(path)
    if not url_path_exists(conn, slug):
        return slug

    base, ext = split_extension(slug)
    for n in range(1, max_attempts):
        candidate = f"{base}-{n}{ext}"
        if not url_path_exists(conn, candidate):
            return candidate
    return f"{base}-{time.time_ns()}{ext}"
