"""
Command-line entry point for the terminal reader.

Usage:
    terminal-reader open /path/to/book.epub
    terminal-reader bookmarks
    terminal-reader continue
"""

from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import List, Optional

from rich.console import Console

from terminal_reader.reading import (
    HtmlTextRenderer,
    PyMuPdfDocumentSource,
    ReaderConfig,
    ReaderShell,
    SessionController,
    build_store,
    setup_logging,
)
from terminal_reader.reading.config import STORE_BACKENDS

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="terminal-reader", description="A simple terminal EPUB/PDF reader")
    parser.add_argument("--state-dir", type=Path, default=None, help="Directory holding reading progress and logs")
    parser.add_argument("--store", choices=STORE_BACKENDS, default=None, help="Progress store backend")
    parser.add_argument("--width", type=int, default=None, help="Line width used when rendering pages")
    parser.add_argument("--log-level", default=None, help="Log level for the reader log file")

    subparsers = parser.add_subparsers(dest="command", required=True)
    open_parser = subparsers.add_parser("open", help="Open a document and start reading")
    open_parser.add_argument("path", help="Path to the document")
    subparsers.add_parser("bookmarks", help="List saved reading positions")
    subparsers.add_parser("continue", help="Resume the most recently opened document")
    return parser


def load_config(args: argparse.Namespace) -> ReaderConfig:
    config = ReaderConfig.from_env()
    if args.state_dir is not None:
        config.state_dir = args.state_dir.expanduser()
    if args.store is not None:
        config.store_backend = args.store
    if args.width is not None:
        if args.width < 1:
            raise ValueError(f"Line width must be positive, got {args.width}")
        config.line_width = args.width
    if args.log_level is not None:
        config.log_level = args.log_level.upper()
    return config


def build_shell(config: ReaderConfig, console: Optional[Console] = None) -> ReaderShell:
    controller = SessionController(
        store=build_store(config),
        source=PyMuPdfDocumentSource(),
        renderer=HtmlTextRenderer(),
        line_width=config.line_width,
    )
    return ReaderShell(controller, console=console, notice_delay=config.notice_delay)


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        config = load_config(args)
    except ValueError as exc:
        parser.error(str(exc))

    setup_logging(config)
    logger.debug("Running %s with state dir %s", args.command, config.state_dir)
    shell = build_shell(config)

    if args.command == "open":
        return shell.run(args.path)
    if args.command == "bookmarks":
        shell.list_bookmarks()
        return 0
    return shell.resume_last()


if __name__ == "__main__":
    raise SystemExit(main())
