from __future__ import annotations


class ReaderError(Exception):
    """Base class for errors surfaced to the reader shell."""


class DocumentOpenError(ReaderError):
    pass


class InvalidDocumentError(ReaderError):
    pass


class PageOutOfRangeError(ReaderError):
    def __init__(self, requested_page: int, total_pages: int):
        super().__init__(f"Page {requested_page} is outside 1-{total_pages}")
        self.requested_page = requested_page
        self.total_pages = total_pages


class InvalidInputError(ReaderError):
    pass


class ProgressWriteError(ReaderError):
    pass


class NoOpenDocumentError(ReaderError):
    pass
