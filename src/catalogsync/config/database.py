"""Location of the local catalog mirror database."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Final

DATABASE_URI_ENV: Final[str] = "DATABASE_URI"
DATA_DIR_ENV: Final[str] = "CATALOGSYNC_DATA_DIR"
MIRROR_FILENAME: Final[str] = "catalog-mirror.db"


@dataclass(frozen=True, slots=True)
class DatabaseConfig:
    """SQLAlchemy URI of the mirror; SQLite under the data dir unless overridden."""

    uri: str

    @classmethod
    def from_environment(cls) -> DatabaseConfig:
        uri = os.getenv(DATABASE_URI_ENV)
        if uri and uri.strip():
            return cls(uri=uri.strip())
        return cls.in_data_dir(default_data_dir())

    @classmethod
    def in_data_dir(cls, data_dir: Path) -> DatabaseConfig:
        resolved = data_dir.expanduser().resolve()
        resolved.mkdir(parents=True, exist_ok=True)
        return cls(uri=f"sqlite+pysqlite:///{resolved / MIRROR_FILENAME}")


def default_data_dir() -> Path:
    configured = os.getenv(DATA_DIR_ENV)
    if configured:
        return Path(configured)
    xdg_data_home = os.getenv("XDG_DATA_HOME")
    base = Path(xdg_data_home) if xdg_data_home else Path.home() / ".local" / "share"
    return base / "catalogsync"


def get_database_config() -> DatabaseConfig:
    return DatabaseConfig.from_environment()
