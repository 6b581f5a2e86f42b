from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import platformdirs


APP_NAME = "terminal-reader"


def default_state_dir() -> Path:
    return Path(platformdirs.user_config_dir(appname=APP_NAME, appauthor=False))


@dataclass
class StoragePaths:
    root: Path

    def progress_file_path(self) -> Path:
        return self.root / "state.json"

    def progress_db_path(self) -> Path:
        return self.root / "state.db"

    def progress_db_url(self) -> str:
        return f"sqlite+pysqlite:///{self.progress_db_path()}"

    def log_file_path(self) -> Path:
        return self.root / "reader.log"

    def ensure_root(self) -> Path:
        self.root.mkdir(parents=True, exist_ok=True)
        return self.root
