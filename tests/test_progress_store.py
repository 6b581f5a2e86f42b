import json
import logging
import os

import pytest

from terminal_reader.reading import (
    InMemoryProgressStore,
    JsonProgressStore,
    ProgressRecord,
    ProgressWriteError,
    SqlAlchemyProgressStore,
)


def test_json_store_missing_file_is_empty(tmp_path, caplog):
    caplog.set_level(logging.INFO)
    store = JsonProgressStore.load(tmp_path / "state.json")
    assert store.get("/books/a.epub") is None
    assert store.last_opened is None
    assert store.list_records() == []
    assert "starting with an empty store" in caplog.text


def test_json_store_corrupted_file_is_empty(tmp_path):
    path = tmp_path / "state.json"
    path.write_text("{not json", encoding="utf-8")
    store = JsonProgressStore.load(path)
    assert store.list_records() == []
    assert store.last_opened is None


def test_json_store_record_writes_expected_layout(tmp_path):
    path = tmp_path / "nested" / "state.json"
    store = JsonProgressStore.load(path)
    store.record("/books/a.epub", 3, 10, mark_last_opened=True)

    payload = json.loads(path.read_text(encoding="utf-8"))
    assert payload == {
        "bookmarks": {"/books/a.epub": {"path": "/books/a.epub", "current_page": 3, "total_pages": 10}},
        "last_read": "/books/a.epub",
    }
    assert not (tmp_path / "nested" / "state.json.tmp").exists()


def test_json_store_overwrites_and_survives_reload(tmp_path):
    path = tmp_path / "state.json"
    store = JsonProgressStore.load(path)
    store.record("/books/a.epub", 1, 10)
    store.record("/books/a.epub", 7, 10)
    store.record("/books/b.pdf", 0, 4)
    store.set_last_opened("/books/b.pdf")

    reloaded = JsonProgressStore.load(path)
    assert reloaded.get("/books/a.epub") == ProgressRecord("/books/a.epub", 7, 10)
    assert reloaded.get("/books/b.pdf") == ProgressRecord("/books/b.pdf", 0, 4)
    assert reloaded.last_opened == "/books/b.pdf"
    assert [r.document_id for r in reloaded.list_records()] == ["/books/a.epub", "/books/b.pdf"]


def test_json_store_skips_malformed_records(tmp_path):
    path = tmp_path / "state.json"
    path.write_text(
        json.dumps(
            {
                "bookmarks": {
                    "/books/good.epub": {"path": "/books/good.epub", "current_page": 2, "total_pages": 5},
                    "/books/bad.epub": {"path": "/books/bad.epub", "current_page": "x"},
                    "/books/negative.epub": {"current_page": -1, "total_pages": 5},
                    "/books/float.epub": {"current_page": 2.7, "total_pages": 5},
                    "/books/bool.epub": {"current_page": True, "total_pages": 5},
                    "/books/string.epub": {"current_page": "2", "total_pages": 5},
                },
                "last_read": 42,
            }
        ),
        encoding="utf-8",
    )
    store = JsonProgressStore.load(path)
    assert [r.document_id for r in store.list_records()] == ["/books/good.epub"]
    assert store.last_opened is None


def test_json_store_get_returns_copy(tmp_path):
    store = JsonProgressStore.load(tmp_path / "state.json")
    store.record("/books/a.epub", 1, 3)
    fetched = store.get("/books/a.epub")
    fetched.current_page = 2
    assert store.get("/books/a.epub").current_page == 1


def test_json_store_write_failure_keeps_memory(tmp_path):
    blocker = tmp_path / "not-a-dir"
    blocker.write_text("", encoding="utf-8")
    store = JsonProgressStore.load(blocker / "state.json")

    with pytest.raises(ProgressWriteError):
        store.record("/books/a.epub", 4, 9)
    assert store.get("/books/a.epub") == ProgressRecord("/books/a.epub", 4, 9)


def test_json_store_failed_replace_removes_temporary_file(tmp_path, monkeypatch):
    path = tmp_path / "state.json"
    store = JsonProgressStore.load(path)
    store.record("/books/a.epub", 1, 9)

    def failing_replace(src, dst):
        raise OSError("disk full")

    monkeypatch.setattr(os, "replace", failing_replace)
    with pytest.raises(ProgressWriteError):
        store.record("/books/a.epub", 2, 9)
    assert not (tmp_path / "state.json.tmp").exists()
    assert json.loads(path.read_text(encoding="utf-8"))["bookmarks"]["/books/a.epub"]["current_page"] == 1


def test_sqlalchemy_store_roundtrip(tmp_path):
    db_url = f"sqlite+pysqlite:///{tmp_path / 'state.db'}"
    store = SqlAlchemyProgressStore.load(db_url)
    assert store.list_records() == []

    store.record("/books/a.epub", 2, 8, mark_last_opened=True)
    store.record("/books/a.epub", 5, 8)
    store.record("/books/b.pdf", 0, 3)

    reloaded = SqlAlchemyProgressStore.load(db_url)
    assert reloaded.get("/books/a.epub") == ProgressRecord("/books/a.epub", 5, 8)
    assert reloaded.get("/books/b.pdf") == ProgressRecord("/books/b.pdf", 0, 3)
    assert reloaded.last_opened == "/books/a.epub"

    reloaded.set_last_opened("/books/b.pdf")
    assert SqlAlchemyProgressStore.load(db_url).last_opened == "/books/b.pdf"


def test_sqlalchemy_store_corrupted_file_is_empty(tmp_path):
    db_path = tmp_path / "state.db"
    db_path.write_bytes(b"this is not a sqlite database" * 10)
    store = SqlAlchemyProgressStore.load(f"sqlite+pysqlite:///{db_path}")
    assert store.list_records() == []
    with pytest.raises(ProgressWriteError):
        store.record("/books/a.epub", 0, 1)


def test_in_memory_store_counts_writes():
    store = InMemoryProgressStore.load()
    store.record("/books/a.epub", 0, 2, mark_last_opened=True)
    store.set_last_opened("/books/a.epub")
    assert store.write_count == 2
    assert store.last_opened == "/books/a.epub"
