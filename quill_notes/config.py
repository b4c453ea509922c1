"""Quill Notes configuration loaded from environment variables."""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic_settings import BaseSettings

StorageBackend = Literal["memory", "file", "redis"]


class Settings(BaseSettings):
    """Application settings loaded from .env file and QUILL_* variables."""

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "env_prefix": "QUILL_",
        "extra": "ignore",
    }

    # Persistence
    storage_backend: StorageBackend = "file"
    data_dir: Path = Path("~/.quill_notes")
    storage_key: str = "quill_notes_v2"
    redis_url: str = "redis://localhost:6379"

    # Editor behaviour
    debounce_seconds: float = 1.0
    preview_length: int = 60

    # MCP server
    server_host: str = "0.0.0.0"
    server_port: int = 8001
    log_level: str = "INFO"

    @property
    def resolved_data_dir(self) -> Path:
        """Data directory with ``~`` expanded."""
        return self.data_dir.expanduser()
