import json
import logging

import fitz
import pytest

from terminal_reader import cli
from terminal_reader.reading import (
    JsonProgressStore,
    ReaderConfig,
    SqlAlchemyProgressStore,
    build_store,
)


def _write_pdf(path, page_count=3):
    doc = fitz.open()
    for i in range(page_count):
        doc.new_page().insert_text((72, 72), f"Page {i + 1}")
    doc.save(str(path))
    doc.close()
    return path


def test_config_from_env(monkeypatch, tmp_path):
    monkeypatch.setenv("READER_STATE_DIR", str(tmp_path / "state"))
    monkeypatch.setenv("READER_STORE_BACKEND", "SQLite")
    monkeypatch.setenv("READER_LINE_WIDTH", "72")
    monkeypatch.setenv("READER_NOTICE_DELAY", "0")
    monkeypatch.setenv("READER_LOG_LEVEL", "debug")
    config = ReaderConfig.from_env()
    assert config.state_dir == tmp_path / "state"
    assert config.store_backend == "sqlite"
    assert config.line_width == 72
    assert config.notice_delay == 0
    assert config.log_level == "DEBUG"
    assert config.paths.progress_file_path() == tmp_path / "state" / "state.json"


def test_config_defaults_use_user_config_dir(monkeypatch):
    for name in ("READER_STATE_DIR", "READER_STORE_BACKEND", "READER_LINE_WIDTH", "READER_NOTICE_DELAY"):
        monkeypatch.delenv(name, raising=False)
    config = ReaderConfig.from_env()
    assert config.state_dir.name == "terminal-reader"
    assert config.store_backend == "json"
    assert config.line_width == 80


@pytest.mark.parametrize(
    "kwargs",
    [{"store_backend": "yaml"}, {"line_width": 0}, {"notice_delay": -1.0}],
)
def test_config_rejects_invalid_values(tmp_path, kwargs):
    with pytest.raises(ValueError):
        ReaderConfig(state_dir=tmp_path, **kwargs)


def test_build_store_picks_backend(tmp_path):
    assert isinstance(build_store(ReaderConfig(state_dir=tmp_path)), JsonProgressStore)
    store = build_store(ReaderConfig(state_dir=tmp_path / "db", store_backend="sqlite"))
    assert isinstance(store, SqlAlchemyProgressStore)
    assert (tmp_path / "db").is_dir()


def test_cli_open_bookmarks_and_continue(monkeypatch, tmp_path, capsys):
    monkeypatch.setenv("READER_NOTICE_DELAY", "0")
    state_dir = tmp_path / "state"
    pdf_path = _write_pdf(tmp_path / "book.pdf")

    inputs = iter(["", "n", "n", "q", "", "p", "q"])
    monkeypatch.setattr("rich.console.Console.input", lambda self, prompt="", **kwargs: next(inputs))

    assert cli.main(["--state-dir", str(state_dir), "open", str(pdf_path)]) == 0
    payload = json.loads((state_dir / "state.json").read_text(encoding="utf-8"))
    document_id = str(pdf_path.resolve())
    assert payload["last_read"] == document_id
    assert payload["bookmarks"][document_id]["current_page"] == 2
    assert payload["bookmarks"][document_id]["total_pages"] == 3

    assert cli.main(["--state-dir", str(state_dir), "continue"]) == 0
    payload = json.loads((state_dir / "state.json").read_text(encoding="utf-8"))
    assert payload["bookmarks"][document_id]["current_page"] == 1

    assert cli.main(["--state-dir", str(state_dir), "bookmarks"]) == 0
    out = capsys.readouterr().out
    assert "1. book.pdf - Page 2 of 3 (66%)" in out
    assert (state_dir / "reader.log").exists()
    logging.shutdown()


def test_cli_open_missing_file_fails(monkeypatch, tmp_path):
    monkeypatch.setenv("READER_NOTICE_DELAY", "0")
    assert cli.main(["--state-dir", str(tmp_path), "open", str(tmp_path / "nope.epub")]) == 1


def test_cli_continue_without_history(monkeypatch, tmp_path, capsys):
    monkeypatch.setenv("READER_NOTICE_DELAY", "0")
    assert cli.main(["--state-dir", str(tmp_path), "--store", "sqlite", "continue"]) == 0
    assert "No book to continue" in capsys.readouterr().out


def test_cli_rejects_bad_width(tmp_path):
    with pytest.raises(SystemExit):
        cli.main(["--state-dir", str(tmp_path), "--width", "0", "bookmarks"])
