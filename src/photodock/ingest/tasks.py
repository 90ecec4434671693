"""Background scan and cleanup jobs with pollable status handles."""

import threading
import uuid
from collections.abc import Callable
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

import duckdb
from loguru import logger

from photodock.catalog.repository import get_folder_by_path
from photodock.config import MEDIA_ROOT, SCAN_WORKERS
from photodock.derivatives.cache import DerivativeCache
from photodock.errors import NotFoundError
from photodock.ingest.scanner import Scanner
from photodock.metadata import MetadataExtractor

PENDING = "pending"
RUNNING = "running"
COMPLETED = "completed"
FAILED = "failed"


@dataclass
class ScanTask:
    """Status handle for one submitted job."""

    id: str
    kind: str
    status: str = PENDING
    result: Any = None
    error: str | None = None
    submitted_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    started_at: datetime | None = None
    finished_at: datetime | None = None
    _future: Future | None = field(default=None, repr=False)

    @property
    def done(self) -> bool:
        return self.status in (COMPLETED, FAILED)

    def wait(self, timeout: float | None = None) -> "ScanTask":
        """Block until the job finishes (or ``timeout`` elapses) and return self."""
        if self._future is None:
            return self
        try:
            # Errors are recorded on the handle, not re-raised here
            self._future.exception(timeout=timeout)
        except TimeoutError:
            pass
        return self


class ScanTaskRunner:
    """Run scans in a thread pool and return immediately with a task handle.

    Each job gets its own DuckDB cursor. The derivative cache is shared.
    """

    def __init__(
        self,
        conn: duckdb.DuckDBPyConnection,
        cache: DerivativeCache,
        extractor: MetadataExtractor,
        media_root: str | Path = MEDIA_ROOT,
        max_workers: int = SCAN_WORKERS,
    ) -> None:
        self.conn = conn
        self.cache = cache
        self.extractor = extractor
        self.media_root = Path(media_root)
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="scan")
        self._tasks: dict[str, ScanTask] = {}
        self._lock = threading.Lock()

    def submit_scan_all(self) -> ScanTask:
        return self._submit("scan_all", lambda scanner: scanner.scan_all())

    def submit_scan_folder(self, relative_path: str) -> ScanTask:
        """Schedule a subtree scan. Unknown folders are rejected before scheduling."""
        relative_path = relative_path.strip("/")
        if relative_path and get_folder_by_path(self.conn, relative_path) is None:
            raise NotFoundError(f"Folder not found: {relative_path}")
        return self._submit("scan_folder", lambda scanner: scanner.scan_folder(relative_path))

    def submit_clean(self) -> ScanTask:
        return self._submit("clean", lambda scanner: scanner.clean_orphans())

    def get(self, task_id: str) -> ScanTask | None:
        with self._lock:
            return self._tasks.get(task_id)

    def tasks(self) -> list[ScanTask]:
        """All submitted tasks, oldest first."""
        with self._lock:
            return sorted(self._tasks.values(), key=lambda t: t.submitted_at)

    def shutdown(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)

    def _submit(self, kind: str, job: Callable[[Scanner], Any]) -> ScanTask:
        task = ScanTask(id=uuid.uuid4().hex, kind=kind)
        with self._lock:
            self._tasks[task.id] = task
        task._future = self._executor.submit(self._run, task, job)
        logger.info("Submitted {} task {}", kind, task.id)
        return task

    def _run(self, task: ScanTask, job: Callable[[Scanner], Any]) -> None:
        task.status = RUNNING
        task.started_at = datetime.now(UTC)
        cursor = self.conn.cursor()
        try:
            scanner = Scanner(cursor, self.cache, self.extractor, self.media_root)
            task.result = job(scanner)
            task.status = COMPLETED
            logger.info("Task {} ({}) completed: {}", task.id, task.kind, task.result)
        except Exception as exc:
            task.error = str(exc)
            task.status = FAILED
            logger.exception("Task {} ({}) failed", task.id, task.kind)
        finally:
            task.finished_at = datetime.now(UTC)
            cursor.close()
