from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Dict, Optional, Union

from .errors import DocumentOpenError

DocumentId = str


class NavigationOutcome(str, Enum):
    MOVED = "moved"
    AT_UPPER_BOUND = "at_upper_bound"
    AT_LOWER_BOUND = "at_lower_bound"
    UNCHANGED = "unchanged"


@dataclass
class ProgressRecord:
    document_id: DocumentId
    current_page: int
    total_pages: int

    def to_json(self) -> dict:
        return {
            "path": self.document_id,
            "current_page": self.current_page,
            "total_pages": self.total_pages,
        }

    @classmethod
    def from_json(cls, key: str, payload: dict) -> "ProgressRecord":
        current_page = payload["current_page"]
        total_pages = payload["total_pages"]
        for value in (current_page, total_pages):
            if isinstance(value, bool) or not isinstance(value, int):
                raise TypeError(f"Page values for {key} must be integers, got {value!r}")
        if current_page < 0 or total_pages < 0:
            raise ValueError(f"Negative page values for {key}")
        return cls(
            document_id=str(payload.get("path") or key),
            current_page=current_page,
            total_pages=total_pages,
        )


@dataclass
class ReaderState:
    bookmarks: Dict[DocumentId, ProgressRecord] = field(default_factory=dict)
    last_read: Optional[DocumentId] = None

    def to_json(self) -> dict:
        return {
            "bookmarks": {key: record.to_json() for key, record in self.bookmarks.items()},
            "last_read": self.last_read,
        }


@dataclass
class SessionCursor:
    document_id: DocumentId
    current_page: int
    total_pages: int

    def as_record(self) -> ProgressRecord:
        return ProgressRecord(
            document_id=self.document_id,
            current_page=self.current_page,
            total_pages=self.total_pages,
        )


@dataclass
class TocEntry:
    label: str
    page_index: Optional[int] = None
    level: int = 1


def canonical_document_id(path: Union[str, Path]) -> DocumentId:
    """
    Resolve a user-supplied path to the identity used as the progress key.
    Symlinks, `~` and relative segments all collapse to one absolute path.
    """
    try:
        resolved = Path(path).expanduser().resolve(strict=True)
    except (OSError, RuntimeError) as exc:
        raise DocumentOpenError(f"Failed to resolve path: {path}") from exc
    return str(resolved)


def percent_complete(current_page: int, total_pages: int) -> int:
    if total_pages <= 0:
        return 0
    return (current_page + 1) * 100 // total_pages
