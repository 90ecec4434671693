"""Tests for background scan jobs."""

import pytest
from conftest import make_jpeg

from photodock.catalog.repository import get_photo_by_path, upsert_folder
from photodock.errors import NotFoundError
from photodock.ingest.scanner import CleanupStats, ScanStats
from photodock.ingest.tasks import COMPLETED, FAILED, ScanTaskRunner
from photodock.metadata.tiff import BuiltinExtractor


@pytest.fixture
def runner(db_conn, cache, media_root):
    runner = ScanTaskRunner(db_conn, cache, BuiltinExtractor(), media_root, max_workers=1)
    yield runner
    runner.shutdown()


def test_submit_scan_all(db_conn, runner, media_root):
    make_jpeg(media_root / "album" / "a.jpg")
    make_jpeg(media_root / "b.jpg")

    task = runner.submit_scan_all()
    assert task.kind == "scan_all"
    assert task.wait(timeout=30).status == COMPLETED
    assert isinstance(task.result, ScanStats)
    assert task.result.added == 2
    assert task.error is None
    assert task.started_at is not None and task.finished_at >= task.started_at
    assert get_photo_by_path(db_conn, "album/a.jpg") is not None


def test_submit_scan_folder_validates_up_front(db_conn, runner, media_root):
    with pytest.raises(NotFoundError):
        runner.submit_scan_folder("missing")
    assert runner.tasks() == []

    make_jpeg(media_root / "album" / "a.jpg")
    upsert_folder(db_conn, "album", "album", None)
    task = runner.submit_scan_folder("album").wait(timeout=30)
    assert task.status == COMPLETED
    assert task.result.added == 1


def test_submit_clean(runner):
    task = runner.submit_clean().wait(timeout=30)
    assert task.status == COMPLETED
    assert task.result == CleanupStats()


def test_failed_task_records_error(db_conn, cache, tmp_path):
    runner = ScanTaskRunner(db_conn, cache, BuiltinExtractor(), tmp_path / "gone")
    try:
        task = runner.submit_scan_all().wait(timeout=30)
    finally:
        runner.shutdown()
    assert task.status == FAILED
    assert "Cannot read" in task.error
    assert task.result is None


def test_get_and_list_tasks(runner):
    first = runner.submit_clean()
    second = runner.submit_scan_all()
    first.wait(timeout=30)
    second.wait(timeout=30)

    assert runner.get(first.id) is first
    assert runner.get("unknown") is None
    assert [t.id for t in runner.tasks()] == [first.id, second.id]
