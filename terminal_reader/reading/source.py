from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Protocol, Union

import fitz  # PyMuPDF

from .errors import DocumentOpenError
from .models import TocEntry, canonical_document_id

logger = logging.getLogger(__name__)


@dataclass
class DocumentHandle:
    path: str
    document: Any
    page_count: int
    page_index: int = 0


class DocumentSource(Protocol):
    def open(self, path: Union[str, Path]) -> DocumentHandle:
        ...

    def close(self, handle: DocumentHandle) -> None:
        ...

    def page_count(self, handle: DocumentHandle) -> int:
        ...

    def current_page_index(self, handle: DocumentHandle) -> int:
        ...

    def set_page(self, handle: DocumentHandle, index: int) -> None:
        ...

    def advance(self, handle: DocumentHandle) -> None:
        ...

    def retreat(self, handle: DocumentHandle) -> None:
        ...

    def raw_content(self, handle: DocumentHandle, index: int) -> bytes:
        ...

    def table_of_contents(self, handle: DocumentHandle) -> List[TocEntry]:
        ...

    def metadata(self, handle: DocumentHandle, key: str) -> Optional[List[str]]:
        ...


class BaseDocumentSource:
    """
    Page positioning shared by the concrete sources. The handle carries its
    own page index; content lookups always take an explicit index.
    """

    def page_count(self, handle: DocumentHandle) -> int:
        return handle.page_count

    def current_page_index(self, handle: DocumentHandle) -> int:
        return handle.page_index

    def set_page(self, handle: DocumentHandle, index: int) -> None:
        if not 0 <= index < handle.page_count:
            raise IndexError(f"Page index {index} outside 0-{handle.page_count - 1}")
        handle.page_index = index

    def advance(self, handle: DocumentHandle) -> None:
        if handle.page_index + 1 < handle.page_count:
            handle.page_index += 1

    def retreat(self, handle: DocumentHandle) -> None:
        if handle.page_index > 0:
            handle.page_index -= 1


class PyMuPdfDocumentSource(BaseDocumentSource):
    """
    EPUB/PDF/etc. source backed by PyMuPDF. Reflowable formats are laid out by
    PyMuPDF with its default page geometry, so page numbers stay stable across
    sessions for an unchanged file.
    """

    # Reader-facing metadata names -> PyMuPDF metadata keys
    METADATA_KEYS = {
        "title": "title",
        "creator": "author",
        "author": "author",
        "description": "subject",
        "subject": "subject",
        "keywords": "keywords",
    }

    def open(self, path: Union[str, Path]) -> DocumentHandle:
        path_str = str(path)
        try:
            doc = fitz.open(path_str)
        except Exception as exc:  # noqa: BLE001
            raise DocumentOpenError(f"Failed to open document {path_str}: {exc}") from exc
        logger.debug("Opened %s with %s pages", path_str, doc.page_count)
        return DocumentHandle(path=path_str, document=doc, page_count=doc.page_count)

    def close(self, handle: DocumentHandle) -> None:
        handle.document.close()

    def raw_content(self, handle: DocumentHandle, index: int) -> bytes:
        page = handle.document.load_page(index)
        return page.get_text("xhtml").encode("utf-8")

    def table_of_contents(self, handle: DocumentHandle) -> List[TocEntry]:
        entries: List[TocEntry] = []
        for level, title, page_number in handle.document.get_toc(simple=True):
            entries.append(
                TocEntry(
                    label=title,
                    page_index=page_number - 1 if page_number > 0 else None,
                    level=level,
                )
            )
        return entries

    def metadata(self, handle: DocumentHandle, key: str) -> Optional[List[str]]:
        if key == "language":
            value = getattr(handle.document, "language", None)
        else:
            meta = handle.document.metadata or {}
            value = meta.get(self.METADATA_KEYS.get(key, key))
        if not value:
            return None
        return [str(value)]


@dataclass
class StaticDocument:
    pages: List[bytes]
    toc: List[TocEntry] = field(default_factory=list)
    metadata: Dict[str, List[str]] = field(default_factory=dict)


class StaticDocumentSource(BaseDocumentSource):
    """
    In-memory source keyed by canonical path. Used by tests and demos where
    building a real container file is not worth it.
    """

    def __init__(self):
        self.documents: Dict[str, StaticDocument] = {}
        self.open_handles: List[DocumentHandle] = []

    def add(self, path: Union[str, Path], document: StaticDocument) -> str:
        document_id = canonical_document_id(path)
        self.documents[document_id] = document
        return document_id

    def open(self, path: Union[str, Path]) -> DocumentHandle:
        document = self.documents.get(str(path))
        if document is None:
            raise DocumentOpenError(f"Failed to open document {path}: not a registered document")
        handle = DocumentHandle(path=str(path), document=document, page_count=len(document.pages))
        self.open_handles.append(handle)
        return handle

    def close(self, handle: DocumentHandle) -> None:
        self.open_handles = [h for h in self.open_handles if h is not handle]

    def raw_content(self, handle: DocumentHandle, index: int) -> bytes:
        return handle.document.pages[index]

    def table_of_contents(self, handle: DocumentHandle) -> List[TocEntry]:
        return list(handle.document.toc)

    def metadata(self, handle: DocumentHandle, key: str) -> Optional[List[str]]:
        values = handle.document.metadata.get(key)
        return list(values) if values else None
