from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

from .repository import JsonProgressStore, ProgressStore, SqlAlchemyProgressStore
from .storage import StoragePaths, default_state_dir

STORE_BACKENDS = ("json", "sqlite")


@dataclass
class ReaderConfig:
    state_dir: Path = field(default_factory=default_state_dir)
    store_backend: str = "json"
    line_width: int = 80
    notice_delay: float = 1.0
    log_level: str = "INFO"

    def __post_init__(self):
        self.state_dir = Path(self.state_dir).expanduser()
        self.store_backend = self.store_backend.lower()
        if self.store_backend not in STORE_BACKENDS:
            raise ValueError(f"Unknown store backend {self.store_backend!r}, expected one of {STORE_BACKENDS}")
        if self.line_width < 1:
            raise ValueError(f"Line width must be positive, got {self.line_width}")
        if self.notice_delay < 0:
            raise ValueError(f"Notice delay must not be negative, got {self.notice_delay}")
        self.log_level = self.log_level.upper()

    @property
    def paths(self) -> StoragePaths:
        return StoragePaths(self.state_dir)

    @classmethod
    def from_env(cls) -> "ReaderConfig":
        state_dir = os.getenv("READER_STATE_DIR")
        return cls(
            state_dir=Path(state_dir) if state_dir else default_state_dir(),
            store_backend=os.getenv("READER_STORE_BACKEND", "json"),
            line_width=int(os.getenv("READER_LINE_WIDTH", "80")),
            notice_delay=float(os.getenv("READER_NOTICE_DELAY", "1.0")),
            log_level=os.getenv("READER_LOG_LEVEL", "INFO"),
        )


def build_store(config: ReaderConfig) -> ProgressStore:
    paths = config.paths
    if config.store_backend == "sqlite":
        paths.ensure_root()
        return SqlAlchemyProgressStore.load(paths.progress_db_url())
    return JsonProgressStore.load(paths.progress_file_path())


def setup_logging(config: ReaderConfig) -> None:
    """
    Send log records to a file under the state directory so they never
    interleave with the page being displayed.
    """
    log_path = config.paths.log_file_path()
    handlers = []
    try:
        config.paths.ensure_root()
        handlers.append(logging.FileHandler(log_path, encoding="utf-8"))
    except OSError:
        handlers.append(logging.NullHandler())

    logging.basicConfig(
        level=getattr(logging, config.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        handlers=handlers,
        force=True,
    )
