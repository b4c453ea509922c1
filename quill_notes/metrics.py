"""Prometheus metrics for the Quill Notes store.

All metric objects are defined here so they can be imported from any module.
"""

from prometheus_client import Counter, Gauge, Histogram

# ---------------------------------------------------------------------------
# Store operations
# ---------------------------------------------------------------------------

NOTE_OPERATIONS = Counter(
    "quill_note_operations_total",
    "Total number of note store operations",
    ["operation", "status"],  # status: ok, not_found, persistence_failure, noop
)

NOTES_TOTAL = Gauge(
    "quill_notes_total",
    "Number of notes currently held in memory",
)

# ---------------------------------------------------------------------------
# Persistence
# ---------------------------------------------------------------------------

PERSIST_DURATION = Histogram(
    "quill_persist_duration_seconds",
    "Duration of full-collection writes to the key-value store",
    buckets=(0.001, 0.005, 0.01, 0.05, 0.1, 0.25, 0.5, 1.0),
)

PERSIST_FAILURES = Counter(
    "quill_persist_failures_total",
    "Total failed writes to the key-value store",
)

REJECTED_RECORDS = Counter(
    "quill_rejected_records_total",
    "Persisted note records dropped during load",
)

# ---------------------------------------------------------------------------
# Editor session
# ---------------------------------------------------------------------------

DEBOUNCED_SAVES = Counter(
    "quill_debounced_saves_total",
    "Deferred saves by outcome",
    ["outcome"],  # fired, cancelled, flushed
)
