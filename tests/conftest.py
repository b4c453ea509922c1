"""Shared fixtures for the Quill Notes test suite."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest

from quill_notes.exceptions import PersistenceFailure
from quill_notes.storage import MemoryKeyValueStore
from quill_notes.store import NoteStore

STORAGE_KEY = "quill_notes_v2"


class TickingClock:
    """Deterministic clock that advances one second per reading."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2024, 1, 1, tzinfo=UTC)

    def __call__(self) -> datetime:
        self.now += timedelta(seconds=1)
        return self.now


class FailingKeyValueStore(MemoryKeyValueStore):
    """Reads work; writes fail once ``failing`` is set."""

    def __init__(self) -> None:
        super().__init__()
        self.failing = False

    def set(self, key: str, value: str) -> None:
        if self.failing:
            raise PersistenceFailure(key, OSError("quota exceeded"))
        super().set(key, value)


@pytest.fixture()
def clock() -> TickingClock:
    return TickingClock()


@pytest.fixture()
def kv() -> MemoryKeyValueStore:
    return MemoryKeyValueStore()


@pytest.fixture()
def store(kv: MemoryKeyValueStore, clock: TickingClock) -> NoteStore:
    return NoteStore.open_from(kv, storage_key=STORAGE_KEY, clock=clock)
