"""Display helpers for whatever renders the notes list and tag bar.

Placeholders are display-only; notes never store a default title.
"""

from __future__ import annotations

from typing import Iterable, Optional

from pydantic import BaseModel

from .models import NotePreview
from .store import TagFilter

UNTITLED_LABEL = "untitled note"
EMPTY_CONTENT_LABEL = "no content"
ALL_TAGS_LABEL = "all"


class NoteCard(BaseModel):
    id: str
    heading: str
    excerpt: str
    active: bool = False


class TagChip(BaseModel):
    # None for the "all" chip; selecting it clears the filter.
    tag: Optional[str] = None
    label: str
    active: bool = False


def note_card(preview: NotePreview, active: bool = False) -> NoteCard:
    return NoteCard(
        id=preview.id,
        heading=preview.title or UNTITLED_LABEL,
        excerpt=preview.excerpt or EMPTY_CONTENT_LABEL,
        active=active,
    )


def note_cards(
    previews: Iterable[NotePreview], current_note_id: Optional[str]
) -> list[NoteCard]:
    return [note_card(p, active=p.id == current_note_id) for p in previews]


def tag_chips(
    tags: Iterable[str | TagFilter], selected_tag: Optional[str]
) -> list[TagChip]:
    """The "all" chip first, then real tags sorted for a stable tag bar."""
    chips = [TagChip(tag=None, label=ALL_TAGS_LABEL, active=selected_tag is None)]
    for tag in sorted(t for t in set(tags) if isinstance(t, str)):
        chips.append(TagChip(tag=tag, label=tag, active=tag == selected_tag))
    return chips


def stats_line(count: int) -> str:
    return f"{count} note" if count == 1 else f"{count} notes"
