"""
Quill Notes MCP Server

Exposes the note store's operations as tools via the Model Context
Protocol, so any MCP client can act as the notes view.  Runs with SSE
transport on the configured port (8001 by default).
"""

import logging
from datetime import UTC, datetime
from typing import Any, Callable

from mcp.server.fastmcp import FastMCP

from .config import Settings
from .exceptions import NoteNotFound, PersistenceFailure
from .models import Note
from .presentation import note_cards, stats_line, tag_chips
from .session import EditorSession
from .storage import open_key_value_store
from .store import NoteStore

logger = logging.getLogger("quill_notes.server")


def _note_dict(note: Note) -> dict[str, Any]:
    return note.model_dump(mode="json", by_alias=True)


def _not_found(exc: NoteNotFound) -> dict[str, Any]:
    return {"error": "not_found", "note_id": exc.note_id, "message": str(exc)}


def _persistence_failure(exc: PersistenceFailure) -> dict[str, Any]:
    return {"error": "persistence_failure", "message": str(exc)}


class NoteTools:
    """Tool implementations; each returns a JSON-serialisable dict."""

    def __init__(self, session: EditorSession) -> None:
        self.session = session
        self.store = session.store

    def create_note(self) -> dict:
        """Create a new empty note and open it in the editor.

        Returns:
            Dictionary with the new note_id.
        """
        try:
            note_id = self.session.new_note()
        except PersistenceFailure as exc:
            return _persistence_failure(exc)
        logger.info("Tool create_note invoked — id=%s", note_id)
        return {"note_id": note_id, "message": "Note created."}

    def open_note(self, note_id: str) -> dict:
        """Open an existing note in the editor.

        Args:
            note_id: Identifier of the note to open.
        """
        note = self.session.open_note(note_id)
        if note is None:
            return _not_found(NoteNotFound(note_id))
        return {"note": _note_dict(note)}

    def save_note(self, note_id: str, title: str, content: str) -> dict:
        """Save a note's title and content immediately.

        Any pending edit of the same note is discarded in favour of this one.

        Args:
            note_id: Identifier of the note to save.
            title: New title (may be empty).
            content: New body text (may be empty).
        """
        try:
            note = self.session.save_now(note_id, title, content)
        except NoteNotFound as exc:
            return _not_found(exc)
        except PersistenceFailure as exc:
            return _persistence_failure(exc)
        logger.info("Tool save_note invoked — id=%s", note_id)
        return {"note": _note_dict(note), "message": "Saved."}

    async def edit_note(self, title: str, content: str) -> dict:
        """Record an edit of the open note; it is saved after a quiet period.

        Args:
            title: Current title text.
            content: Current body text.
        """
        if self.store.state.current_note_id is None:
            return {"error": "no_open_note", "message": "Open a note first."}
        self.session.edit(title, content)
        return {"status": self.session.save_status}

    def delete_note(self, note_id: str) -> dict:
        """Permanently delete a note. The caller must already have confirmed.

        Args:
            note_id: Identifier of the note to delete.
        """
        if self.store.state.current_note_id == note_id:
            if not self.session.delete_current():
                error = self.session.last_error
                if isinstance(error, PersistenceFailure):
                    return _persistence_failure(error)
                return _not_found(NoteNotFound(note_id))
        else:
            try:
                self.store.delete(note_id)
            except NoteNotFound as exc:
                return _not_found(exc)
            except PersistenceFailure as exc:
                return _persistence_failure(exc)
        logger.info("Tool delete_note invoked — id=%s", note_id)
        return {"deleted": note_id, "count": self.store.count}

    def add_tag(self, note_id: str, tag: str) -> dict:
        """Attach a tag to a note. Adding an existing tag does nothing.

        Args:
            note_id: Identifier of the note.
            tag: Tag text (exact match, case-sensitive).
        """
        return self._tag_op(self.store.add_tag, note_id, tag)

    def remove_tag(self, note_id: str, tag: str) -> dict:
        """Detach a tag from a note. Removing a missing tag does nothing.

        Args:
            note_id: Identifier of the note.
            tag: Tag text to remove.
        """
        return self._tag_op(self.store.remove_tag, note_id, tag)

    def list_notes(self, tag: str | None = None, query: str = "") -> dict:
        """List notes as preview cards, most recently saved first.

        Args:
            tag: Optional exact tag filter; defaults to the session filter.
            query: Optional case-insensitive search; defaults to the session query.
        """
        state = self.store.state
        previews = self.store.previews(
            tag if tag is not None else state.selected_tag,
            query or state.search_query,
        )
        cards = note_cards(previews, state.current_note_id)
        return {
            "count": len(cards),
            "stats": stats_line(self.store.count),
            "notes": [c.model_dump() for c in cards],
        }

    def list_tags(self) -> dict:
        """List every tag in use, with the "all" pseudo-tag first."""
        chips = tag_chips(self.store.list_tags(), self.store.state.selected_tag)
        return {"tags": [c.model_dump() for c in chips]}

    def set_tag_filter(self, tag: str | None = None) -> dict:
        """Toggle the tag filter. Selecting the active tag clears it.

        Args:
            tag: Tag to filter by; omit to clear.
        """
        selected = self.store.set_tag_filter(tag)
        return {"selected_tag": selected}

    def set_search_query(self, text: str) -> dict:
        """Set the case-insensitive search text used by list_notes.

        Args:
            text: Search text; empty clears the search.
        """
        self.store.set_search_query(text)
        return {"search_query": self.store.state.search_query}

    def get_state(self) -> dict:
        """Return the current selection state and save indicator."""
        state = self.store.state
        return {
            "current_note_id": state.current_note_id,
            "selected_tag": state.selected_tag,
            "search_query": state.search_query,
            "save_status": self.session.save_status,
        }

    def health_check(self) -> dict:
        """Check whether the Quill Notes server is healthy."""
        logger.info("Tool health_check invoked")
        return {
            "status": "healthy",
            "server": "quill-notes",
            "total_notes": self.store.count,
            "timestamp": datetime.now(UTC).isoformat(),
        }

    def _tag_op(self, op: Callable[[str, str], Note], note_id: str, tag: str) -> dict:
        try:
            note = op(note_id, tag)
        except NoteNotFound as exc:
            return _not_found(exc)
        except PersistenceFailure as exc:
            return _persistence_failure(exc)
        logger.info("Tool %s invoked — id=%s tag='%s'", op.__name__, note_id, tag)
        return {"note_id": note.id, "tags": list(note.tags)}

    def all_tools(self) -> list[Callable[..., Any]]:
        return [
            self.create_note,
            self.open_note,
            self.save_note,
            self.edit_note,
            self.delete_note,
            self.add_tag,
            self.remove_tag,
            self.list_notes,
            self.list_tags,
            self.set_tag_filter,
            self.set_search_query,
            self.get_state,
            self.health_check,
        ]


def build_server(tools: NoteTools, settings: Settings) -> FastMCP:
    mcp = FastMCP("quill-notes", host=settings.server_host, port=settings.server_port)
    for fn in tools.all_tools():
        mcp.add_tool(fn)
    return mcp


def main() -> None:
    settings = Settings()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s | %(name)s | %(levelname)s | %(message)s",
    )
    store = NoteStore.open_from(
        open_key_value_store(settings),
        storage_key=settings.storage_key,
        preview_length=settings.preview_length,
    )
    session = EditorSession(store, debounce_seconds=settings.debounce_seconds)
    mcp = build_server(NoteTools(session), settings)
    logger.info("Starting Quill Notes MCP server on port %d ...", settings.server_port)
    try:
        mcp.run(transport="sse")
    finally:
        session.close()


if __name__ == "__main__":
    main()
