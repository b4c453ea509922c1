"""Seed a Quill Notes store with sample notes for screenshots and demos.

Uses the configured storage backend (QUILL_* environment variables or
.env), unless overridden on the command line.

Usage:
    python scripts/seed_notes.py [--data-dir ~/.quill_notes] [--backend file]
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from quill_notes.config import Settings
from quill_notes.exceptions import PersistenceFailure
from quill_notes.storage import open_key_value_store
from quill_notes.store import NoteStore

# Each entry: (title, content, tags)
NOTES: list[tuple[str, str, list[str]]] = [
    (
        "Project Ideas",
        "Build a code review assistant that runs static analysis on every "
        "pull request and posts a short summary.",
        ["ideas", "work"],
    ),
    (
        "Meeting Notes",
        "Discussed migrating the monolith to services. Decision: start with "
        "the billing module and keep the shared database for now.",
        ["meetings", "work"],
    ),
    (
        "Reading List",
        "Designing Data-Intensive Applications; The Pragmatic Programmer; "
        "A Philosophy of Software Design.",
        ["reading"],
    ),
    ("Groceries", "Eggs, milk, bread, coffee beans", ["personal"]),
    ("", "Quick thought with no title yet", []),
]


def main() -> int:
    parser = argparse.ArgumentParser(description="Seed Quill Notes with samples")
    parser.add_argument("--data-dir", type=Path, help="Directory for file storage")
    parser.add_argument(
        "--backend", choices=["memory", "file", "redis"], help="Storage backend"
    )
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s | %(name)s | %(levelname)s | %(message)s",
    )

    overrides = {}
    if args.data_dir:
        overrides["data_dir"] = args.data_dir
    if args.backend:
        overrides["storage_backend"] = args.backend
    settings = Settings(**overrides)

    store = NoteStore.open_from(
        open_key_value_store(settings), storage_key=settings.storage_key
    )
    print(f"Store has {store.count} notes before seeding.")

    try:
        for i, (title, content, tags) in enumerate(NOTES, 1):
            note_id = store.create()
            for tag in tags:
                store.add_tag(note_id, tag)
            store.save(note_id, title, content)
            print(f"[{i}/{len(NOTES)}] {title or '(untitled)'} -> {note_id}")
    except PersistenceFailure as exc:
        print(f"Seeding stopped: {exc}", file=sys.stderr)
        return 1

    print(f"Done. Store now has {store.count} notes.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
