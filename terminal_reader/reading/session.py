from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional, Tuple, Union

from .errors import InvalidDocumentError, NoOpenDocumentError, PageOutOfRangeError
from .models import (
    DocumentId,
    NavigationOutcome,
    SessionCursor,
    TocEntry,
    canonical_document_id,
    percent_complete,
)
from .rendering import Renderer
from .repository import ProgressStore
from .source import DocumentHandle, DocumentSource

logger = logging.getLogger(__name__)

# (metadata key, display label) in the order the info view shows them
BOOK_INFO_FIELDS: List[Tuple[str, str]] = [
    ("title", "Title"),
    ("creator", "Author"),
    ("publisher", "Publisher"),
    ("language", "Language"),
    ("description", "Description"),
]


class SessionController:
    """
    Owns the navigation state of one open document.

    The cursor is the live position; the progress store is its durable mirror
    and is written exactly once for every change of the current page. A
    ProgressWriteError from the store propagates after the cursor has already
    moved, so the caller can warn and keep reading.
    """

    def __init__(
        self,
        store: ProgressStore,
        source: DocumentSource,
        renderer: Renderer,
        line_width: int = 80,
    ):
        self.store = store
        self.source = source
        self.renderer = renderer
        self.line_width = line_width
        self._cursor: Optional[SessionCursor] = None
        self._handle: Optional[DocumentHandle] = None
        self.resumed = False

    def __enter__(self) -> "SessionController":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    # region Session lifecycle
    def open_document(self, path: Union[str, Path]) -> SessionCursor:
        document_id = canonical_document_id(path)
        handle = self.source.open(document_id)
        try:
            return self.open(document_id, self.source.page_count(handle), handle=handle)
        except Exception:
            if self._handle is not handle:
                self.source.close(handle)
            raise

    def open(
        self,
        document_id: DocumentId,
        total_pages: int,
        handle: Optional[DocumentHandle] = None,
    ) -> SessionCursor:
        if total_pages <= 0:
            raise InvalidDocumentError(f"Document has no pages: {document_id}")
        if self._cursor is not None:
            self.close()

        start_page = 0
        self.resumed = False
        previous = self.store.get(document_id)
        if previous is not None:
            if 0 <= previous.current_page < total_pages:
                start_page = previous.current_page
                self.resumed = True
            else:
                logger.info(
                    "Stored page %s for %s is outside 0-%s, starting at the first page",
                    previous.current_page,
                    document_id,
                    total_pages - 1,
                )

        self._cursor = SessionCursor(document_id=document_id, current_page=start_page, total_pages=total_pages)
        self._handle = handle
        self._sync_handle()
        logger.info("Opened %s at page %s of %s", document_id, start_page + 1, total_pages)
        self.store.record(document_id, start_page, total_pages, mark_last_opened=True)
        return self.cursor

    def close(self) -> None:
        if self._cursor is None:
            return
        cursor, handle = self._cursor, self._handle
        self._cursor, self._handle = None, None
        try:
            self.store.record(cursor.document_id, cursor.current_page, cursor.total_pages)
        finally:
            if handle is not None:
                self.source.close(handle)
            logger.info("Closed %s at page %s", cursor.document_id, cursor.current_page + 1)

    # endregion

    # region Navigation
    def next(self) -> NavigationOutcome:
        cursor = self._require_cursor()
        if cursor.current_page + 1 >= cursor.total_pages:
            return NavigationOutcome.AT_UPPER_BOUND
        self._move_to(cursor.current_page + 1)
        return NavigationOutcome.MOVED

    def prev(self) -> NavigationOutcome:
        cursor = self._require_cursor()
        if cursor.current_page == 0:
            return NavigationOutcome.AT_LOWER_BOUND
        self._move_to(cursor.current_page - 1)
        return NavigationOutcome.MOVED

    def goto(self, requested_page: int) -> NavigationOutcome:
        """Jump to a 1-based page number."""
        cursor = self._require_cursor()
        index = requested_page - 1
        if not 0 <= index < cursor.total_pages:
            raise PageOutOfRangeError(requested_page, cursor.total_pages)
        self._move_to(index)
        return NavigationOutcome.MOVED

    def bookmark(self) -> NavigationOutcome:
        cursor = self._require_cursor()
        self._persist(cursor)
        return NavigationOutcome.UNCHANGED

    def _move_to(self, index: int) -> None:
        cursor = self._require_cursor()
        cursor.current_page = index
        self._sync_handle()
        self._persist(cursor)

    def _persist(self, cursor: SessionCursor) -> None:
        self.store.record(cursor.document_id, cursor.current_page, cursor.total_pages)

    def _sync_handle(self) -> None:
        if self._handle is not None and self._cursor is not None:
            self.source.set_page(self._handle, self._cursor.current_page)

    # endregion

    # region Queries
    @property
    def cursor(self) -> SessionCursor:
        cursor = self._require_cursor()
        return SessionCursor(cursor.document_id, cursor.current_page, cursor.total_pages)

    @property
    def is_open(self) -> bool:
        return self._cursor is not None

    def percent_complete(self) -> int:
        cursor = self._require_cursor()
        return percent_complete(cursor.current_page, cursor.total_pages)

    def render_current_page(self) -> str:
        cursor = self._require_cursor()
        handle = self._require_handle()
        raw = self.source.raw_content(handle, cursor.current_page)
        return self.renderer.render(raw, self.line_width)

    def table_of_contents(self) -> List[TocEntry]:
        return self.source.table_of_contents(self._require_handle())

    def metadata(self, key: str) -> Optional[List[str]]:
        return self.source.metadata(self._require_handle(), key)

    def book_info(self) -> List[Tuple[str, str]]:
        info: List[Tuple[str, str]] = []
        for key, label in BOOK_INFO_FIELDS:
            values = self.metadata(key)
            if values:
                info.append((label, values[0]))
        return info

    # endregion

    def _require_cursor(self) -> SessionCursor:
        if self._cursor is None:
            raise NoOpenDocumentError("No document is open")
        return self._cursor

    def _require_handle(self) -> DocumentHandle:
        self._require_cursor()
        if self._handle is None:
            raise NoOpenDocumentError("The open session has no document handle")
        return self._handle
