"""Key-value storage backends for the persisted note collection.

The store writes the whole collection under one fixed key after every
mutation, so backends only need whole-value get/set/delete.
"""

from __future__ import annotations

import logging
import os
import re
import tempfile
import threading
from pathlib import Path
from typing import Optional, Protocol

import redis

from .config import Settings
from .exceptions import MalformedPersistedState, PersistenceFailure

logger = logging.getLogger("quill_notes.storage")

_SAFE_KEY = re.compile(r"^[A-Za-z0-9_.-]+$")


class KeyValueStore(Protocol):
    """Minimal whole-value key-value interface."""

    def get(self, key: str) -> Optional[str]: ...

    def set(self, key: str, value: str) -> None: ...

    def delete(self, key: str) -> None: ...


class MemoryKeyValueStore:
    """Process-local store, mostly for tests and throwaway sessions."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._data: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def delete(self, key: str) -> None:
        self._data.pop(key, None)


class JsonFileKeyValueStore:
    """Stores each key as ``<directory>/<key>.json``.

    Writes go to a temp file in the same directory and are moved into place
    with ``os.replace``, under a lock, so readers never see a partial value.
    """

    def __init__(self, directory: Path) -> None:
        self._dir = directory
        self._lock = threading.Lock()

    def _path(self, key: str) -> Path:
        if not _SAFE_KEY.match(key):
            raise ValueError(f"Unsupported storage key: {key!r}")
        return self._dir / f"{key}.json"

    def get(self, key: str) -> Optional[str]:
        path = self._path(key)
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except UnicodeDecodeError as exc:
            raise MalformedPersistedState(
                f"Stored value for '{key}' is not UTF-8: {exc}"
            ) from exc
        except OSError as exc:
            raise PersistenceFailure(key, exc) from exc

    def set(self, key: str, value: str) -> None:
        path = self._path(key)
        with self._lock:
            try:
                self._dir.mkdir(parents=True, exist_ok=True)
                fd, tmp_name = tempfile.mkstemp(
                    dir=self._dir, prefix=f".{key}.", suffix=".tmp"
                )
                try:
                    with os.fdopen(fd, "w", encoding="utf-8") as fh:
                        fh.write(value)
                    os.replace(tmp_name, path)
                except BaseException:
                    Path(tmp_name).unlink(missing_ok=True)
                    raise
            except OSError as exc:
                raise PersistenceFailure(key, exc) from exc

    def delete(self, key: str) -> None:
        path = self._path(key)
        with self._lock:
            try:
                path.unlink(missing_ok=True)
            except OSError as exc:
                raise PersistenceFailure(key, exc) from exc


class RedisKeyValueStore:
    """Stores values in Redis under a namespaced key."""

    def __init__(self, redis_url: str, client: redis.Redis | None = None) -> None:
        self._redis_url = redis_url
        self._client = client or redis.Redis.from_url(
            redis_url, decode_responses=True
        )

    def get(self, key: str) -> Optional[str]:
        try:
            return self._client.get(key)
        except UnicodeDecodeError as exc:
            raise MalformedPersistedState(
                f"Stored value for '{key}' is not UTF-8: {exc}"
            ) from exc
        except redis.RedisError as exc:
            raise PersistenceFailure(key, exc) from exc

    def set(self, key: str, value: str) -> None:
        try:
            self._client.set(key, value)
        except redis.RedisError as exc:
            raise PersistenceFailure(key, exc) from exc

    def delete(self, key: str) -> None:
        try:
            self._client.delete(key)
        except redis.RedisError as exc:
            raise PersistenceFailure(key, exc) from exc

    def close(self) -> None:
        self._client.close()


def open_key_value_store(settings: Settings) -> KeyValueStore:
    """Build the backend named by ``settings.storage_backend``."""
    backend = settings.storage_backend
    if backend == "memory":
        logger.info("Using in-memory note storage (not durable)")
        return MemoryKeyValueStore()
    if backend == "file":
        directory = settings.resolved_data_dir
        logger.info("Using file note storage in %s", directory)
        return JsonFileKeyValueStore(directory)
    if backend == "redis":
        logger.info("Using Redis note storage at %s", settings.redis_url)
        return RedisKeyValueStore(settings.redis_url)
    raise ValueError(f"Unknown storage backend: {backend}")
