from __future__ import annotations

import json
import logging
import os
from contextlib import suppress
from copy import deepcopy
from pathlib import Path
from typing import List, Optional

from sqlalchemy import Column, Integer, String, create_engine, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from .errors import ProgressWriteError
from .models import DocumentId, ProgressRecord, ReaderState

logger = logging.getLogger(__name__)

Base = declarative_base()

LAST_READ_KEY = "last_read"


class BookmarkModel(Base):
    __tablename__ = "bookmarks"
    path = Column(String, primary_key=True)
    current_page = Column(Integer, nullable=False)
    total_pages = Column(Integer, nullable=False)


class ReaderStateModel(Base):
    __tablename__ = "reader_state"
    key = Column(String, primary_key=True)
    value = Column(String)


class ProgressStore:
    """
    Durable mapping of document identity -> latest reading position, plus the
    pointer to the most recently opened document.

    Every implementation keeps the whole state in memory and writes it through
    on each mutation. Reads never touch the backing store. When a write fails
    the in-memory value is kept and ProgressWriteError is raised, so a session
    can go on unsynced.
    """

    def __init__(self, state: Optional[ReaderState] = None):
        self.state = state or ReaderState()

    # Queries
    def get(self, document_id: DocumentId) -> Optional[ProgressRecord]:
        record = self.state.bookmarks.get(document_id)
        return deepcopy(record) if record else None

    @property
    def last_opened(self) -> Optional[DocumentId]:
        return self.state.last_read

    def list_records(self) -> List[ProgressRecord]:
        return [deepcopy(self.state.bookmarks[key]) for key in sorted(self.state.bookmarks)]

    # Mutations
    def record(
        self,
        document_id: DocumentId,
        current_page: int,
        total_pages: int,
        mark_last_opened: bool = False,
    ) -> None:
        record = ProgressRecord(document_id=document_id, current_page=current_page, total_pages=total_pages)
        self.state.bookmarks[document_id] = record
        if mark_last_opened:
            self.state.last_read = document_id
        self._persist(record, last_read_changed=mark_last_opened)

    def set_last_opened(self, document_id: DocumentId) -> None:
        self.state.last_read = document_id
        self._persist(None, last_read_changed=True)

    def _persist(self, record: Optional[ProgressRecord], last_read_changed: bool) -> None:
        raise NotImplementedError


class InMemoryProgressStore(ProgressStore):
    """
    Non-durable store for tests and throwaway sessions. Counts writes so
    callers can assert how often persistence was requested.
    """

    def __init__(self, state: Optional[ReaderState] = None):
        super().__init__(state)
        self.write_count = 0

    @classmethod
    def load(cls) -> "InMemoryProgressStore":
        return cls()

    def _persist(self, record: Optional[ProgressRecord], last_read_changed: bool) -> None:
        self.write_count += 1


class JsonProgressStore(ProgressStore):
    """
    Single JSON file store. Each mutation rewrites the full file through a
    temporary sibling and os.replace.
    """

    def __init__(self, path: Path, state: Optional[ReaderState] = None):
        super().__init__(state)
        self.path = Path(path)

    @classmethod
    def load(cls, path: Path) -> "JsonProgressStore":
        path = Path(path)
        if not path.exists():
            logger.info("No progress file at %s, starting with an empty store", path)
            return cls(path)
        try:
            with path.open("r", encoding="utf-8") as f:
                payload = json.load(f)
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
            logger.info("Progress file %s is unreadable (%s), starting with an empty store", path, exc)
            return cls(path)
        return cls(path, _state_from_json(payload, source=str(path)))

    def _persist(self, record: Optional[ProgressRecord], last_read_changed: bool) -> None:
        tmp_path = self.path.with_name(self.path.name + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with tmp_path.open("w", encoding="utf-8") as f:
                json.dump(self.state.to_json(), f, ensure_ascii=False, indent=2)
            os.replace(tmp_path, self.path)
        except OSError as exc:
            with suppress(OSError):
                tmp_path.unlink(missing_ok=True)
            logger.error("Failed to write progress file %s: %s", self.path, exc)
            raise ProgressWriteError(f"Failed to write progress file {self.path}: {exc}") from exc


class SqlAlchemyProgressStore(ProgressStore):
    """
    SQL-backed store using SQLAlchemy. Works with any SQLite/Postgres URL;
    the reader uses a SQLite file next to where the JSON file would live.
    A mutation is one transaction covering the record and the last-read row.
    """

    def __init__(self, database_url: str, state: Optional[ReaderState] = None):
        super().__init__(state)
        self.database_url = database_url
        self.engine = create_engine(database_url, future=True)
        self.SessionLocal = sessionmaker(bind=self.engine, expire_on_commit=False, future=True)

    @classmethod
    def load(cls, database_url: str) -> "SqlAlchemyProgressStore":
        store = cls(database_url)
        try:
            Base.metadata.create_all(store.engine)
            store.state = store._read_state()
        except SQLAlchemyError as exc:
            logger.info("Progress database %s is unreadable (%s), starting with an empty store", database_url, exc)
            store.state = ReaderState()
        return store

    def _session(self) -> Session:
        return self.SessionLocal()

    def _read_state(self) -> ReaderState:
        state = ReaderState()
        with self._session() as session:
            for model in session.execute(select(BookmarkModel)).scalars().all():
                if model.current_page is None or model.total_pages is None:
                    logger.warning("Skipping incomplete progress row for %s", model.path)
                    continue
                state.bookmarks[model.path] = ProgressRecord(
                    document_id=model.path,
                    current_page=int(model.current_page),
                    total_pages=int(model.total_pages),
                )
            last_read = session.get(ReaderStateModel, LAST_READ_KEY)
            state.last_read = last_read.value if last_read else None
        return state

    def _persist(self, record: Optional[ProgressRecord], last_read_changed: bool) -> None:
        try:
            with self._session() as session:
                if record is not None:
                    session.merge(
                        BookmarkModel(
                            path=record.document_id,
                            current_page=record.current_page,
                            total_pages=record.total_pages,
                        )
                    )
                if last_read_changed:
                    session.merge(ReaderStateModel(key=LAST_READ_KEY, value=self.state.last_read))
                session.commit()
        except SQLAlchemyError as exc:
            logger.error("Failed to write progress database %s: %s", self.database_url, exc)
            raise ProgressWriteError(f"Failed to write progress database: {exc}") from exc


def _state_from_json(payload, source: str) -> ReaderState:
    if not isinstance(payload, dict):
        logger.info("Progress data in %s is not an object, starting with an empty store", source)
        return ReaderState()

    state = ReaderState()
    bookmarks = payload.get("bookmarks")
    if isinstance(bookmarks, dict):
        for key, entry in bookmarks.items():
            try:
                record = ProgressRecord.from_json(key, entry)
            except (KeyError, TypeError, ValueError) as exc:
                logger.warning("Skipping malformed progress record %r in %s: %s", key, source, exc)
                continue
            state.bookmarks[record.document_id] = record
    elif bookmarks is not None:
        logger.warning("Ignoring non-object bookmarks section in %s", source)

    last_read = payload.get("last_read")
    state.last_read = last_read if isinstance(last_read, str) else None
    return state
