"""Tests for the photodock command line."""

import sys

from photodock.catalog import main


def _run(monkeypatch, *args):
    monkeypatch.setattr(sys, "argv", ["photodock", *args])
    # Keep loguru's sinks untouched by the test process
    monkeypatch.setattr("photodock.log.init_logging", lambda **kwargs: None)
    main()


def test_no_command_prints_help(monkeypatch, capsys):
    _run(monkeypatch)
    assert "usage" in capsys.readouterr().out


def test_init_db_and_status(monkeypatch, capsys, tmp_path):
    db_path = str(tmp_path / "catalog.duckdb")
    _run(monkeypatch, "--db", db_path, "init-db")
    assert "initialized" in capsys.readouterr().out

    _run(monkeypatch, "--db", db_path, "status")
    out = capsys.readouterr().out
    assert "Folders:    0" in out
    assert "Photos:     0 (0 hidden)" in out


def test_list_unknown_folder(monkeypatch, capsys, tmp_path):
    _run(monkeypatch, "--db", str(tmp_path / "catalog.duckdb"), "list", "--folder", "nope")
    assert "folder not found" in capsys.readouterr().out
