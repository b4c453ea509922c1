"""In-memory note collection synchronized with a key-value store.

The collection is ordered by recency of mutation: the most recently created
or saved note is always first.  Every mutating operation writes the full
collection back under a single storage key.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Callable, Optional, Union

from .exceptions import MalformedPersistedState, NoteNotFound, PersistenceFailure
from .metrics import (
    NOTE_OPERATIONS,
    NOTES_TOTAL,
    PERSIST_DURATION,
    PERSIST_FAILURES,
    REJECTED_RECORDS,
)
from .models import (
    DEFAULT_PREVIEW_LENGTH,
    Note,
    NotePreview,
    decode_notes,
    encode_notes,
    utc_now,
)
from .storage import KeyValueStore

logger = logging.getLogger("quill_notes.store")

DEFAULT_STORAGE_KEY = "quill_notes_v2"


class TagFilter(Enum):
    """Pseudo-tags the view renders alongside real tags.

    Not a ``str``, so it can never equal a tag a user typed.
    """

    ALL = "all"


ALL_TAGS = TagFilter.ALL

TagSelection = Union[str, TagFilter, None]


@dataclass(frozen=True)
class SelectionState:
    """Ephemeral editor state, never persisted."""

    current_note_id: Optional[str] = None
    selected_tag: Optional[str] = None
    search_query: str = ""


class NoteStore:
    """Owns the note collection and the current selection/filter state."""

    def __init__(
        self,
        kv: KeyValueStore,
        storage_key: str = DEFAULT_STORAGE_KEY,
        clock: Callable[[], datetime] = utc_now,
        preview_length: int = DEFAULT_PREVIEW_LENGTH,
    ) -> None:
        self._kv = kv
        self._key = storage_key
        self._clock = clock
        self._preview_length = preview_length
        self._notes: list[Note] = []
        self._last_id = 0
        self._current_note_id: Optional[str] = None
        self._selected_tag: Optional[str] = None
        self._search_query = ""

    @classmethod
    def open_from(cls, kv: KeyValueStore, **kwargs) -> NoteStore:
        """Create a store and load whatever is persisted under its key."""
        store = cls(kv, **kwargs)
        store.load()
        return store

    # ------------------------------------------------------------------
    # Loading / persistence
    # ------------------------------------------------------------------

    def load(self) -> None:
        """Replace the in-memory collection with the persisted one.

        An absent key gives an empty collection.  A malformed payload is
        logged and also gives an empty collection; the stored value is left
        alone until the next mutation overwrites it.
        """
        try:
            raw = self._kv.get(self._key)
            if raw is None:
                logger.info(
                    "No persisted notes under '%s' — starting fresh", self._key
                )
                self._replace([])
                return
            result = decode_notes(raw)
        except MalformedPersistedState as exc:
            logger.error("Failed to load notes: %s — starting fresh", exc)
            self._replace([])
            return

        if result.rejected:
            REJECTED_RECORDS.inc(result.rejected)
            logger.warning(
                "Dropped %d unreadable note record(s) from '%s'",
                result.rejected,
                self._key,
            )
        self._replace(result.notes)
        logger.info("Loaded %d notes from '%s'", len(self._notes), self._key)

    def _replace(self, notes: list[Note]) -> None:
        self._notes = notes
        self._current_note_id = None
        for note in notes:
            if note.id.isdigit():
                self._last_id = max(self._last_id, int(note.id))
        NOTES_TOTAL.set(len(self._notes))

    def persist(self) -> None:
        """Write the full collection under the storage key."""
        payload = encode_notes(self._notes)
        start = time.perf_counter()
        try:
            self._kv.set(self._key, payload)
        except PersistenceFailure:
            PERSIST_FAILURES.inc()
            logger.error("Failed to persist %d notes", len(self._notes))
            raise
        finally:
            PERSIST_DURATION.observe(time.perf_counter() - start)
        NOTES_TOTAL.set(len(self._notes))

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _index(self, note_id: str) -> int:
        for i, note in enumerate(self._notes):
            if note.id == note_id:
                return i
        return -1

    def _require(self, note_id: str, operation: str) -> Note:
        index = self._index(note_id)
        if index == -1:
            NOTE_OPERATIONS.labels(operation=operation, status="not_found").inc()
            raise NoteNotFound(note_id)
        return self._notes[index]

    def _next_id(self) -> str:
        candidate = int(self._clock().timestamp() * 1000)
        self._last_id = max(candidate, self._last_id + 1)
        return str(self._last_id)

    def _touch(self, note: Note) -> None:
        """Refresh the timestamp and move the note to the front."""
        now = self._clock()
        note.updated_at = max(now, note.updated_at)
        # Locate by id against current state, not a stale index.
        index = self._index(note.id)
        self._notes.insert(0, self._notes.pop(index))

    def _commit(self, operation: str) -> None:
        try:
            self.persist()
        except PersistenceFailure:
            NOTE_OPERATIONS.labels(
                operation=operation, status="persistence_failure"
            ).inc()
            raise
        NOTE_OPERATIONS.labels(operation=operation, status="ok").inc()

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def create(self) -> str:
        """Prepend an empty note, make it current, and return its id."""
        note = Note(id=self._next_id(), updated_at=self._clock())
        self._notes.insert(0, note)
        self._current_note_id = note.id
        logger.info("Created note %s", note.id)
        self._commit("create")
        return note.id

    def open(self, note_id: str) -> Note:
        """Select a note for editing.  No persistence."""
        note = self._require(note_id, "open")
        self._current_note_id = note_id
        NOTE_OPERATIONS.labels(operation="open", status="ok").inc()
        return note

    def save(self, note_id: str, title: str, content: str) -> Note:
        """Replace title and content, move the note to the front, persist."""
        note = self._require(note_id, "save")
        note.title = title
        note.content = content
        self._touch(note)
        logger.info("Saved note %s — '%s'", note.id, note.title)
        self._commit("save")
        return note

    def delete(self, note_id: str) -> None:
        """Remove a note permanently; clears the selection if it was current."""
        self._require(note_id, "delete")
        self._notes = [n for n in self._notes if n.id != note_id]
        if self._current_note_id == note_id:
            self._current_note_id = None
        logger.info("Deleted note %s", note_id)
        self._commit("delete")

    def add_tag(self, note_id: str, tag: str) -> Note:
        """Attach ``tag`` (exact, case-sensitive).  Already present: no-op."""
        note = self._require(note_id, "add_tag")
        if tag in note.tags:
            NOTE_OPERATIONS.labels(operation="add_tag", status="noop").inc()
            return note
        note.tags.append(tag)
        self._touch(note)
        self._commit("add_tag")
        return note

    def remove_tag(self, note_id: str, tag: str) -> Note:
        """Detach ``tag`` if present; absent tags are a no-op."""
        note = self._require(note_id, "remove_tag")
        if tag not in note.tags:
            NOTE_OPERATIONS.labels(operation="remove_tag", status="noop").inc()
            return note
        note.tags = [t for t in note.tags if t != tag]
        self._touch(note)
        self._commit("remove_tag")
        return note

    # ------------------------------------------------------------------
    # Selection state
    # ------------------------------------------------------------------

    def set_tag_filter(self, tag: TagSelection) -> Optional[str]:
        """Toggle the tag filter and return the new value.

        Selecting the active tag (or the ``ALL_TAGS`` pseudo-tag) clears it.
        """
        if tag is None or tag is ALL_TAGS or tag == self._selected_tag:
            self._selected_tag = None
        else:
            self._selected_tag = tag
        return self._selected_tag

    def set_search_query(self, text: str) -> None:
        self._search_query = text.lower()

    @property
    def state(self) -> SelectionState:
        return SelectionState(
            current_note_id=self._current_note_id,
            selected_tag=self._selected_tag,
            search_query=self._search_query,
        )

    @property
    def current_note(self) -> Optional[Note]:
        if self._current_note_id is None:
            return None
        index = self._index(self._current_note_id)
        return self._notes[index] if index != -1 else None

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get(self, note_id: str) -> Note:
        index = self._index(note_id)
        if index == -1:
            raise NoteNotFound(note_id)
        return self._notes[index]

    def list_visible(
        self, selected_tag: TagSelection = None, search_query: str = ""
    ) -> list[Note]:
        """Notes carrying ``selected_tag`` and matching ``search_query``.

        Empty arguments mean no filter.  Collection order is preserved.
        """
        notes = self._notes
        if isinstance(selected_tag, str) and selected_tag:
            notes = [n for n in notes if selected_tag in n.tags]
        if search_query:
            notes = [n for n in notes if n.matches(search_query)]
        return list(notes)

    def visible(self) -> list[Note]:
        """``list_visible`` using the store's own filter state."""
        return self.list_visible(self._selected_tag, self._search_query)

    def list_tags(self) -> set[str | TagFilter]:
        """Every distinct tag in use, plus the ``ALL_TAGS`` pseudo-tag."""
        tags: set[str | TagFilter] = {ALL_TAGS}
        for note in self._notes:
            tags.update(note.tags)
        return tags

    def previews(
        self, selected_tag: TagSelection = None, search_query: str = ""
    ) -> list[NotePreview]:
        return [
            n.preview(self._preview_length)
            for n in self.list_visible(selected_tag, search_query)
        ]

    @property
    def count(self) -> int:
        """Number of notes in the collection."""
        return len(self._notes)
