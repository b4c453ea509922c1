"""Tests for the Quill Notes MCP server tools.

Tool implementations are exercised directly on a NoteTools instance backed
by an in-memory store; registration is checked against a FastMCP instance.
"""

from __future__ import annotations

import asyncio

import pytest

from conftest import FailingKeyValueStore
from quill_notes.config import Settings
from quill_notes.presentation import UNTITLED_LABEL
from quill_notes.server import NoteTools, build_server
from quill_notes.session import EditorSession
from quill_notes.store import NoteStore

DELAY = 0.02


@pytest.fixture()
def tools(store: NoteStore) -> NoteTools:
    return NoteTools(EditorSession(store, debounce_seconds=DELAY))


class TestNoteTools:
    def test_create_and_list(self, tools: NoteTools) -> None:
        created = tools.create_note()
        data = tools.list_notes()
        assert data["count"] == 1
        assert data["stats"] == "1 note"
        card = data["notes"][0]
        assert card["id"] == created["note_id"]
        assert card["heading"] == UNTITLED_LABEL
        assert card["active"] is True

    def test_save_and_open(self, tools: NoteTools) -> None:
        note_id = tools.create_note()["note_id"]
        saved = tools.save_note(note_id, "Hello", "World")
        assert saved["note"]["title"] == "Hello"
        assert "updatedAt" in saved["note"]
        opened = tools.open_note(note_id)
        assert opened["note"]["content"] == "World"

    def test_not_found_reported(self, tools: NoteTools) -> None:
        for result in (
            tools.open_note("missing"),
            tools.save_note("missing", "t", "c"),
            tools.delete_note("missing"),
            tools.add_tag("missing", "x"),
            tools.remove_tag("missing", "x"),
        ):
            assert result["error"] == "not_found"

    def test_tags_and_filter(self, tools: NoteTools) -> None:
        a = tools.create_note()["note_id"]
        tools.add_tag(a, "work")
        b = tools.create_note()["note_id"]

        tags = tools.list_tags()["tags"]
        assert [t["label"] for t in tags] == ["all", "work"]

        assert tools.set_tag_filter("work") == {"selected_tag": "work"}
        assert [n["id"] for n in tools.list_notes()["notes"]] == [a]
        assert tools.set_tag_filter("work") == {"selected_tag": None}
        assert [n["id"] for n in tools.list_notes()["notes"]] == [b, a]

        assert tools.remove_tag(a, "work")["tags"] == []

    def test_search(self, tools: NoteTools) -> None:
        a = tools.create_note()["note_id"]
        tools.save_note(a, "ABCdef", "")
        tools.create_note()
        assert tools.set_search_query("ABC") == {"search_query": "abc"}
        assert [n["id"] for n in tools.list_notes()["notes"]] == [a]

    def test_delete_current_and_other(self, tools: NoteTools) -> None:
        a = tools.create_note()["note_id"]
        b = tools.create_note()["note_id"]
        assert tools.delete_note(a) == {"deleted": a, "count": 1}
        assert tools.get_state()["current_note_id"] == b
        tools.delete_note(b)
        assert tools.get_state()["current_note_id"] is None

    def test_persistence_failure_reported(self, clock) -> None:
        kv = FailingKeyValueStore()
        tools = NoteTools(EditorSession(NoteStore(kv, clock=clock)))
        a = tools.create_note()["note_id"]
        kv.failing = True
        assert tools.save_note(a, "t", "c")["error"] == "persistence_failure"
        assert tools.delete_note(a)["error"] == "persistence_failure"

    def test_health_check(self, tools: NoteTools) -> None:
        tools.create_note()
        data = tools.health_check()
        assert data["status"] == "healthy"
        assert data["server"] == "quill-notes"
        assert data["total_notes"] == 1
        assert "timestamp" in data

    @pytest.mark.asyncio
    async def test_edit_note_debounced(self, tools: NoteTools) -> None:
        assert (await tools.edit_note("x", "y"))["error"] == "no_open_note"

        note_id = tools.create_note()["note_id"]
        assert (await tools.edit_note("Draft", "body")) == {"status": "saving"}
        await asyncio.sleep(DELAY * 5)

        assert tools.get_state()["save_status"] == "saved"
        assert tools.open_note(note_id)["note"]["title"] == "Draft"

    @pytest.mark.asyncio
    async def test_explicit_save_wins_over_pending_edit(self, tools: NoteTools) -> None:
        note_id = tools.create_note()["note_id"]
        await tools.edit_note("old draft", "")

        saved = tools.save_note(note_id, "final", "explicit")
        assert saved["note"]["title"] == "final"
        await asyncio.sleep(DELAY * 5)

        note = tools.open_note(note_id)["note"]
        assert (note["title"], note["content"]) == ("final", "explicit")

    def test_star_tag_filters_like_any_other(self, tools: NoteTools) -> None:
        a = tools.create_note()["note_id"]
        tools.add_tag(a, "*")
        tools.create_note()

        assert tools.set_tag_filter("*") == {"selected_tag": "*"}
        assert [n["id"] for n in tools.list_notes()["notes"]] == [a]
        chips = tools.list_tags()["tags"]
        assert [(t["tag"], t["label"]) for t in chips] == [(None, "all"), ("*", "*")]


class TestServerRegistration:
    @pytest.mark.asyncio
    async def test_all_tools_registered(self, tools: NoteTools) -> None:
        mcp = build_server(tools, Settings(storage_backend="memory"))
        names = {t.name for t in await mcp.list_tools()}
        assert names == {
            "create_note",
            "open_note",
            "save_note",
            "edit_note",
            "delete_note",
            "add_tag",
            "remove_tag",
            "list_notes",
            "list_tags",
            "set_tag_filter",
            "set_search_query",
            "get_state",
            "health_check",
        }
