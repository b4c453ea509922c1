"""Editor session: translates user intents into NoteStore calls.

Text edits are coalesced with a cancellable deferred save that runs on the
asyncio event loop, so it never overlaps another store operation.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Literal, Optional

from .exceptions import NoteNotFound, PersistenceFailure
from .metrics import DEBOUNCED_SAVES
from .models import Note
from .store import NoteStore

logger = logging.getLogger("quill_notes.session")

DEFAULT_DEBOUNCE_SECONDS = 1.0

SaveStatus = Literal["saved", "saving", "error"]


class DebouncedSave:
    """Cancel-and-reschedule timer for a single pending call."""

    def __init__(
        self,
        delay: float,
        loop: asyncio.AbstractEventLoop | None = None,
    ) -> None:
        self._delay = delay
        self._loop = loop
        self._handle: Optional[asyncio.TimerHandle] = None
        self._call: Optional[tuple[Callable[..., Any], tuple[Any, ...]]] = None

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def schedule(self, callback: Callable[..., Any], *args: Any) -> None:
        """Arm the timer, replacing any call that has not fired yet."""
        if self._handle is not None:
            self._handle.cancel()
        loop = self._loop or asyncio.get_running_loop()
        self._call = (callback, args)
        self._handle = loop.call_later(self._delay, self._fire)

    def cancel(self) -> bool:
        """Drop the pending call.  Returns True if one was pending."""
        if self._handle is None:
            return False
        self._handle.cancel()
        self._handle = None
        self._call = None
        DEBOUNCED_SAVES.labels(outcome="cancelled").inc()
        return True

    def flush(self) -> bool:
        """Run the pending call now.  Returns True if one was pending."""
        if self._handle is None:
            return False
        self._handle.cancel()
        DEBOUNCED_SAVES.labels(outcome="flushed").inc()
        self._run()
        return True

    def _fire(self) -> None:
        DEBOUNCED_SAVES.labels(outcome="fired").inc()
        self._run()

    def _run(self) -> None:
        call = self._call
        self._handle = None
        self._call = None
        if call is not None:
            callback, args = call
            callback(*args)


class EditorSession:
    """View-side session owning the debounced save for the open note."""

    def __init__(
        self,
        store: NoteStore,
        debounce_seconds: float = DEFAULT_DEBOUNCE_SECONDS,
        loop: asyncio.AbstractEventLoop | None = None,
    ) -> None:
        self.store = store
        self._debounce = DebouncedSave(debounce_seconds, loop=loop)
        self._pending_note_id: Optional[str] = None
        self.save_status: SaveStatus = "saved"
        self.last_error: Optional[Exception] = None

    # ------------------------------------------------------------------
    # Intents
    # ------------------------------------------------------------------

    def new_note(self) -> str:
        self._debounce.flush()
        return self.store.create()

    def open_note(self, note_id: str) -> Optional[Note]:
        """Open a note, flushing any pending edit of the previous one.

        Returns None (empty editor) when the note does not exist.
        """
        self._debounce.flush()
        try:
            note = self.store.open(note_id)
        except NoteNotFound:
            logger.warning("Open requested for missing note %s", note_id)
            return None
        self.save_status = "saved"
        return note

    def edit(self, title: str, content: str) -> None:
        """Record a keystroke-level edit of the current note."""
        note_id = self.store.state.current_note_id
        if note_id is None:
            return
        self.save_status = "saving"
        self._pending_note_id = note_id
        self._debounce.schedule(self._save, note_id, title, content)

    def save_now(self, note_id: str, title: str, content: str) -> Note:
        """Save immediately, dropping any deferred edit of the same note.

        NoteNotFound and PersistenceFailure propagate to the caller.
        """
        if self.pending_note_id == note_id:
            self._debounce.cancel()
        try:
            note = self.store.save(note_id, title, content)
        except PersistenceFailure as exc:
            self.last_error = exc
            self.save_status = "error"
            raise
        self.last_error = None
        self.save_status = "saved"
        return note

    def enter_tag(self, text: str) -> None:
        tag = text.strip()
        note_id = self.store.state.current_note_id
        if not tag or note_id is None:
            return
        # Tag changes persist the note, so pending text must land first.
        self._debounce.flush()
        self._guard(self.store.add_tag, note_id, tag)

    def close_tag(self, tag: str) -> None:
        note_id = self.store.state.current_note_id
        if note_id is None:
            return
        self._debounce.flush()
        self._guard(self.store.remove_tag, note_id, tag)

    def delete_current(self) -> bool:
        """Delete the open note.  Confirmation is the caller's job."""
        note_id = self.store.state.current_note_id
        if note_id is None:
            return False
        self._debounce.cancel()
        return self._guard(self.store.delete, note_id)

    def search(self, text: str) -> list[Note]:
        self.store.set_search_query(text)
        return self.store.visible()

    def click_tag(self, tag: Optional[str]) -> list[Note]:
        self.store.set_tag_filter(tag)
        return self.store.visible()

    def close(self) -> None:
        """Flush any pending edit before the session goes away."""
        self._debounce.flush()

    @property
    def has_pending_save(self) -> bool:
        return self._debounce.pending

    @property
    def pending_note_id(self) -> Optional[str]:
        """Note the deferred save will write, if one is armed."""
        return self._pending_note_id if self._debounce.pending else None

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _save(self, note_id: str, title: str, content: str) -> None:
        self._guard(self.store.save, note_id, title, content)

    def _guard(self, operation: Callable[..., Any], *args: Any) -> bool:
        """Run a store operation, recording rather than raising failures."""
        try:
            operation(*args)
        except NoteNotFound as exc:
            logger.warning("Note %s vanished before %s", exc.note_id, operation.__name__)
            self.last_error = exc
            self.save_status = "saved"
            return False
        except PersistenceFailure as exc:
            logger.error("Could not persist notes: %s", exc)
            self.last_error = exc
            self.save_status = "error"
            return False
        self.last_error = None
        self.save_status = "saved"
        return True
