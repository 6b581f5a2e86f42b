"""
Reading subsystem exports.
"""

from .config import ReaderConfig, build_store, setup_logging
from .errors import (
    DocumentOpenError,
    InvalidDocumentError,
    InvalidInputError,
    NoOpenDocumentError,
    PageOutOfRangeError,
    ProgressWriteError,
    ReaderError,
)
from .models import (
    NavigationOutcome,
    ProgressRecord,
    ReaderState,
    SessionCursor,
    TocEntry,
    canonical_document_id,
    percent_complete,
)
from .rendering import HtmlTextRenderer, Renderer
from .repository import InMemoryProgressStore, JsonProgressStore, ProgressStore, SqlAlchemyProgressStore
from .session import SessionController
from .shell import ReaderShell
from .source import (
    DocumentHandle,
    DocumentSource,
    PyMuPdfDocumentSource,
    StaticDocument,
    StaticDocumentSource,
)
from .storage import StoragePaths

__all__ = [
    "DocumentHandle",
    "DocumentOpenError",
    "DocumentSource",
    "HtmlTextRenderer",
    "InMemoryProgressStore",
    "InvalidDocumentError",
    "InvalidInputError",
    "JsonProgressStore",
    "NavigationOutcome",
    "NoOpenDocumentError",
    "PageOutOfRangeError",
    "ProgressRecord",
    "ProgressStore",
    "ProgressWriteError",
    "PyMuPdfDocumentSource",
    "ReaderConfig",
    "ReaderError",
    "ReaderShell",
    "ReaderState",
    "Renderer",
    "SessionController",
    "SessionCursor",
    "SqlAlchemyProgressStore",
    "StaticDocument",
    "StaticDocumentSource",
    "StoragePaths",
    "TocEntry",
    "build_store",
    "canonical_document_id",
    "percent_complete",
    "setup_logging",
]
