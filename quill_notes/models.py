"""Pydantic models and the persisted payload codec for Quill Notes."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .exceptions import MalformedPersistedState

logger = logging.getLogger("quill_notes.models")

DEFAULT_PREVIEW_LENGTH = 60


def utc_now() -> datetime:
    return datetime.now(UTC)


class Note(BaseModel):
    """A single note with its tags and last-modified timestamp."""

    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(..., min_length=1, description="Opaque unique identifier")
    title: str = Field(default="", description="Note title, may be empty")
    content: str = Field(default="", description="Note body, may be empty")
    tags: list[str] = Field(default_factory=list, description="Unique tag labels")
    updated_at: datetime = Field(
        default_factory=utc_now,
        alias="updatedAt",
        description="ISO-8601 last update timestamp",
    )

    @field_validator("tags")
    @classmethod
    def _dedupe_tags(cls, tags: list[str]) -> list[str]:
        return list(dict.fromkeys(tags))

    @field_validator("updated_at")
    @classmethod
    def _ensure_aware(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value

    def matches(self, query: str) -> bool:
        """Case-insensitive substring match against title or content."""
        q = query.lower()
        return q in self.title.lower() or q in self.content.lower()

    def preview(self, length: int = DEFAULT_PREVIEW_LENGTH) -> NotePreview:
        return NotePreview(
            id=self.id,
            title=self.title,
            excerpt=self.content[:length],
            tags=list(self.tags),
            updated_at=self.updated_at,
        )


class NotePreview(BaseModel):
    """Card data for the notes list: title plus the start of the content."""

    id: str
    title: str
    excerpt: str
    tags: list[str] = Field(default_factory=list)
    updated_at: datetime


# ---------------------------------------------------------------------------
# Payload codec
# ---------------------------------------------------------------------------


@dataclass
class DecodeResult:
    """Notes recovered from a persisted payload, plus how many were dropped."""

    notes: list[Note] = field(default_factory=list)
    rejected: int = 0


def encode_notes(notes: list[Note]) -> str:
    """Serialize the note sequence as a JSON array with camelCase field names."""
    return json.dumps(
        [n.model_dump(mode="json", by_alias=True) for n in notes],
        ensure_ascii=False,
    )


def decode_notes(raw: str) -> DecodeResult:
    """Decode a persisted payload, validating each record independently.

    Raises MalformedPersistedState when the payload is not a JSON array.
    Records that fail validation, or repeat an id already seen, are dropped.
    """
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise MalformedPersistedState(f"Payload is not valid JSON: {exc}") from exc

    if not isinstance(data, list):
        raise MalformedPersistedState(
            f"Payload must be a JSON array, got {type(data).__name__}"
        )

    result = DecodeResult()
    seen: set[str] = set()
    for index, record in enumerate(data):
        try:
            note = Note.model_validate(record)
        except ValidationError as exc:
            logger.warning(
                "Dropping invalid note record at index %d: %s",
                index,
                exc.errors()[0]["msg"],
            )
            result.rejected += 1
            continue
        if note.id in seen:
            logger.warning("Dropping duplicate note id %s at index %d", note.id, index)
            result.rejected += 1
            continue
        seen.add(note.id)
        result.notes.append(note)
    return result
