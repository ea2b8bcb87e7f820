"""Where feedsync keeps its tracking database and HTTP cache."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from .env import optional_env

DATA_DIR_ENV = "FEEDSYNC_DATA_DIR"
DATABASE_URI_ENV = "DATABASE_URI"
DATABASE_FILENAME = "feedsync.db"
HTTP_CACHE_FILENAME = "http_cache.db"


@dataclass(frozen=True, slots=True)
class StorageConfig:
    data_dir: Path

    def _file(self, name: str) -> Path:
        directory = self.data_dir.expanduser().resolve()
        directory.mkdir(parents=True, exist_ok=True)
        return directory / name

    def database_path(self) -> Path:
        return self._file(DATABASE_FILENAME)

    def http_cache_path(self) -> Path:
        return self._file(HTTP_CACHE_FILENAME)

    def database_uri(self) -> str:
        return f"sqlite+pysqlite:///{self.database_path()}"


@dataclass(frozen=True, slots=True)
class DatabaseConfig:
    uri: str


def default_data_dir() -> Path:
    """Platform data directory: ``%LOCALAPPDATA%`` or ``$XDG_DATA_HOME``."""

    if os.name == "nt":
        root = optional_env("LOCALAPPDATA")
        base = Path(root) if root else Path.home() / "AppData" / "Local"
    else:
        root = optional_env("XDG_DATA_HOME")
        base = Path(root) if root else Path.home() / ".local" / "share"
    return base / "feedsync"


def get_storage_config() -> StorageConfig:
    configured = optional_env(DATA_DIR_ENV)
    return StorageConfig(data_dir=Path(configured) if configured else default_data_dir())


def get_database_config(*, storage: StorageConfig | None = None) -> DatabaseConfig:
    uri = optional_env(DATABASE_URI_ENV)
    if uri is None:
        uri = (storage or get_storage_config()).database_uri()
    return DatabaseConfig(uri=uri)
