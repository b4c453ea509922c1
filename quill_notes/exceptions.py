"""Error kinds raised by the Quill Notes core."""

from __future__ import annotations


class QuillNotesError(Exception):
    """Base class for all Quill Notes errors."""


class NoteNotFound(QuillNotesError):
    """An operation referenced a note id that is not in the collection.

    Non-fatal: callers are expected to no-op or reset the editor.
    """

    def __init__(self, note_id: str) -> None:
        super().__init__(f"Note not found: {note_id}")
        self.note_id = note_id


class PersistenceFailure(QuillNotesError):
    """The key-value store rejected a read or write.

    The in-memory collection stays authoritative; only durability is lost.
    """

    def __init__(self, key: str, cause: Exception) -> None:
        super().__init__(f"Persistence failed for key '{key}': {cause}")
        self.key = key
        self.cause = cause


class MalformedPersistedState(QuillNotesError):
    """The persisted payload could not be decoded as a note sequence."""
