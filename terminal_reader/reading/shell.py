from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import Callable, Dict, Optional, Union

from rich.console import Console
from rich.markup import escape

from .errors import (
    DocumentOpenError,
    InvalidDocumentError,
    InvalidInputError,
    PageOutOfRangeError,
    ProgressWriteError,
)
from .models import NavigationOutcome, percent_complete
from .session import SessionController

logger = logging.getLogger(__name__)

# int() rejects very long digit strings on Python 3.11+
MAX_PAGE_DIGITS = 18

COMMAND_LEGEND = (
    "  n: next page      p: previous page\n"
    "  b: bookmark       g: go to page\n"
    "  t: contents       i: book info\n"
    "  q: quit"
)


class ReaderShell:
    """
    Blocking command loop around a SessionController.

    One line of input is read, trimmed and dispatched per iteration; the page
    is redrawn after every command. Only `q` (or end of input) leaves the loop.
    """

    def __init__(
        self,
        controller: SessionController,
        console: Optional[Console] = None,
        read_line: Optional[Callable[[str], str]] = None,
        notice_delay: float = 1.0,
        sleep: Callable[[float], None] = time.sleep,
        wait_for_enter: bool = True,
    ):
        self.controller = controller
        self.console = console or Console()
        self.read_line = read_line or self.console.input
        self.notice_delay = notice_delay
        self.sleep = sleep
        self.wait_for_enter = wait_for_enter
        self.commands: Dict[str, Callable[[], bool]] = {
            "n": self.do_next,
            "p": self.do_prev,
            "b": self.do_bookmark,
            "g": self.do_goto,
            "t": self.do_contents,
            "i": self.do_info,
            "q": self.do_quit,
        }

    # region Entry points
    def run(self, path: Union[str, Path]) -> int:
        try:
            self.controller.open_document(path)
        except (DocumentOpenError, InvalidDocumentError) as exc:
            logger.error("Could not start a session for %s: %s", path, exc)
            self.error(str(exc))
            return 1
        except ProgressWriteError as exc:
            self.write_warning(exc)

        self.show_opening()
        self.loop()
        return 0

    def resume_last(self) -> int:
        last = self.controller.store.last_opened
        if not last:
            self.note("No book to continue")
            return 0
        self.console.print("[blue]Continuing[/blue] last book")
        return self.run(last)

    def list_bookmarks(self) -> None:
        records = self.controller.store.list_records()
        if not records:
            self.note("No bookmarks found")
            return
        self.console.print("[green]Your bookmarks:[/green]")
        for i, record in enumerate(records, start=1):
            self.console.print(
                f"{i}. {Path(record.document_id).name} - Page {record.current_page + 1} of "
                f"{record.total_pages} ({percent_complete(record.current_page, record.total_pages)}%)",
                markup=False,
                highlight=False,
            )

    # endregion

    # region Loop
    def show_opening(self) -> None:
        cursor = self.controller.cursor
        name = Path(cursor.document_id).name
        self.console.print(f"[green]Opened[/green] '{escape(name)}' ({cursor.total_pages} pages)", highlight=False)
        if self.controller.resumed:
            self.console.print(
                f"[blue]Resuming[/blue] at page {cursor.current_page + 1} of {cursor.total_pages}",
                highlight=False,
            )
        for label, key in (("Title", "title"), ("Author", "creator")):
            values = self.controller.metadata(key)
            if values:
                self.console.print(f"{label}: {values[0]}", markup=False, highlight=False)
        if self.wait_for_enter:
            self.prompt("\nPress Enter to start reading...")

    def loop(self) -> None:
        while True:
            self.draw()
            line = self.prompt("\n> ")
            if line is None:
                self.do_quit()
                return
            if not self.handle(line):
                return

    def handle(self, line: str) -> bool:
        """Dispatch one command. Returns False when the loop should stop."""
        command = self.commands.get(line.strip())
        if command is None:
            self.error("Unknown command")
            return True
        try:
            return command()
        except ProgressWriteError as exc:
            self.write_warning(exc)
            return True

    def draw(self) -> None:
        self.console.clear()
        try:
            text = self.controller.render_current_page()
        except Exception:  # noqa: BLE001
            logger.exception("Failed to render page %s", self.controller.cursor.current_page + 1)
            self.error("Failed to read page content")
        else:
            self.console.print(text + "\n", markup=False, highlight=False)

        cursor = self.controller.cursor
        self.console.print(
            f"\n[yellow]Page[/yellow] {cursor.current_page + 1} / {cursor.total_pages} "
            f"({self.controller.percent_complete()}%)",
            highlight=False,
        )
        self.console.print("\n[blue]Commands:[/blue]")
        self.console.print(COMMAND_LEGEND, markup=False, highlight=False)

    # endregion

    # region Commands
    def do_next(self) -> bool:
        if self.controller.next() == NavigationOutcome.AT_UPPER_BOUND:
            self.note("Already at the last page")
        return True

    def do_prev(self) -> bool:
        if self.controller.prev() == NavigationOutcome.AT_LOWER_BOUND:
            self.note("Already at the first page")
        return True

    def do_bookmark(self) -> bool:
        self.controller.bookmark()
        self.console.print("[green]Bookmarked[/green] current page")
        self.pause()
        return True

    def do_goto(self) -> bool:
        total = self.controller.cursor.total_pages
        line = self.prompt(f"Enter page number (1-{total}): ")
        try:
            page = parse_page_number(line or "")
            self.controller.goto(page)
        except PageOutOfRangeError:
            self.error("Invalid page number")
        except InvalidInputError:
            self.error("Invalid input")
        return True

    def do_contents(self) -> bool:
        self.console.print("\n[green]Contents:[/green]")
        try:
            entries = self.controller.table_of_contents()
        except Exception:  # noqa: BLE001
            logger.exception("Failed to read table of contents")
            self.error("Failed to read contents")
            return True
        if entries:
            for i, entry in enumerate(entries, start=1):
                indent = "  " * max(0, entry.level - 1)
                self.console.print(f"{indent}{i}. {entry.label}", markup=False, highlight=False)
        else:
            self.console.print("[yellow]Note[/yellow]: This book has no table of contents")
        self.prompt("\nPress Enter to continue reading...")
        return True

    def do_info(self) -> bool:
        self.console.print("\n[green]Book info:[/green]")
        try:
            info = self.controller.book_info()
        except Exception:  # noqa: BLE001
            logger.exception("Failed to read book metadata")
            self.error("Failed to read book info")
            return True
        if info:
            for label, value in info:
                self.console.print(f"{label}: {value}", markup=False, highlight=False)
        else:
            self.console.print("[yellow]Note[/yellow]: No metadata available")
        self.prompt("\nPress Enter to continue reading...")
        return True

    def do_quit(self) -> bool:
        try:
            self.controller.close()
        except ProgressWriteError as exc:
            self.write_warning(exc)
        return False

    # endregion

    # region Output helpers
    def prompt(self, text: str) -> Optional[str]:
        try:
            return self.read_line(text)
        except EOFError:
            return None

    def note(self, message: str) -> None:
        self.console.print(f"[yellow]Note[/yellow]: {escape(message)}", highlight=False)
        self.pause()

    def error(self, message: str) -> None:
        self.console.print(f"[red]Error[/red]: {escape(message)}", highlight=False)
        self.pause()

    def write_warning(self, exc: ProgressWriteError) -> None:
        self.console.print(
            "[red]Warning[/red]: reading progress could not be saved; continuing without saving",
            highlight=False,
        )
        logger.warning("Continuing with unsaved progress: %s", exc)
        self.pause()

    def pause(self) -> None:
        if self.notice_delay > 0:
            self.sleep(self.notice_delay)

    # endregion


def parse_page_number(text: str) -> int:
    text = text.strip()
    if not text or not text.isascii() or not text.isdigit():
        raise InvalidInputError(f"Not a page number: {text!r}")
    if len(text) > MAX_PAGE_DIGITS:
        raise InvalidInputError(f"Page number too long: {len(text)} digits")
    return int(text)
