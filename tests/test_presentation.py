"""Unit tests for quill_notes.presentation — placeholders and tag chips."""

from __future__ import annotations

from datetime import UTC, datetime

from quill_notes.models import NotePreview
from quill_notes.presentation import (
    ALL_TAGS_LABEL,
    EMPTY_CONTENT_LABEL,
    UNTITLED_LABEL,
    note_card,
    note_cards,
    stats_line,
    tag_chips,
)
from quill_notes.store import ALL_TAGS


def _preview(note_id: str, title: str = "", excerpt: str = "") -> NotePreview:
    return NotePreview(
        id=note_id,
        title=title,
        excerpt=excerpt,
        updated_at=datetime(2024, 1, 1, tzinfo=UTC),
    )


class TestNoteCards:
    def test_placeholders_for_empty_note(self) -> None:
        card = note_card(_preview("1"))
        assert card.heading == UNTITLED_LABEL
        assert card.excerpt == EMPTY_CONTENT_LABEL

    def test_real_values_shown(self) -> None:
        card = note_card(_preview("1", "Title", "Body"))
        assert (card.heading, card.excerpt) == ("Title", "Body")

    def test_active_card_marked(self) -> None:
        cards = note_cards([_preview("1"), _preview("2")], current_note_id="2")
        assert [c.active for c in cards] == [False, True]


class TestTagChips:
    def test_all_chip_active_without_filter(self) -> None:
        chips = tag_chips({ALL_TAGS, "work", "home"}, None)
        assert [c.label for c in chips] == [ALL_TAGS_LABEL, "home", "work"]
        assert [c.active for c in chips] == [True, False, False]

    def test_all_chip_carries_no_tag(self) -> None:
        chips = tag_chips({ALL_TAGS, "*"}, "*")
        assert [(c.tag, c.label, c.active) for c in chips] == [
            (None, ALL_TAGS_LABEL, False),
            ("*", "*", True),
        ]

    def test_selected_tag_active(self) -> None:
        chips = tag_chips(["work", "home"], "work")
        assert [c.active for c in chips] == [False, False, True]


class TestStats:
    def test_plural(self) -> None:
        assert stats_line(0) == "0 notes"
        assert stats_line(1) == "1 note"
        assert stats_line(12) == "12 notes"
