"""History - Bounded, most-recent-first log of executions.

A HistoryLog is owned by the host and handed to the Executor; there is no
module-level log. Recording is prepend-then-truncate under one lock, so
concurrent executions never lose entries or overshoot the capacity.
"""

from __future__ import annotations

import json
from pathlib import Path
from threading import Lock

from pydantic import TypeAdapter, ValidationError

from apihive.models import HistoryEntry

DEFAULT_HISTORY_LIMIT = 20

_ENTRIES_ADAPTER = TypeAdapter(list[HistoryEntry])


class HistoryError(Exception):
    """Raised when a history file cannot be read or written."""


class HistoryLog:
    """Fixed-capacity list of HistoryEntry, newest first."""

    def __init__(
        self,
        capacity: int = DEFAULT_HISTORY_LIMIT,
        entries: list[HistoryEntry] | None = None,
    ) -> None:
        if capacity <= 0:
            raise ValueError(f"History capacity must be positive, got {capacity}")
        self._capacity = capacity
        self._entries: list[HistoryEntry] = list(entries or [])[:capacity]
        self._lock = Lock()

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def entries(self) -> list[HistoryEntry]:
        """Snapshot of the log, newest first."""
        with self._lock:
            return list(self._entries)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def record(self, entry: HistoryEntry) -> None:
        """Prepend an entry and drop the oldest beyond capacity."""
        with self._lock:
            self._entries = [entry, *self._entries][: self._capacity]

    def clear(self) -> None:
        with self._lock:
            self._entries = []

    @classmethod
    def load(cls, path: Path, capacity: int | None = DEFAULT_HISTORY_LIMIT) -> "HistoryLog":
        """Load a log saved by save(). A missing file gives an empty log.

        With capacity None the log keeps every entry in the file, and at
        least DEFAULT_HISTORY_LIMIT.
        """
        if not path.exists():
            return cls(capacity=DEFAULT_HISTORY_LIMIT if capacity is None else capacity)

        try:
            with open(path, "r", encoding="utf-8") as f:
                raw = json.load(f)
        except json.JSONDecodeError as e:
            raise HistoryError(f"Invalid JSON in history file {path}: {e}") from e
        except OSError as e:
            raise HistoryError(f"Cannot read history file {path}: {e}") from e

        try:
            entries = _ENTRIES_ADAPTER.validate_python(raw)
        except ValidationError as e:
            raise HistoryError(f"Invalid history structure in {path}: {e}") from e

        if capacity is None:
            capacity = max(len(entries), DEFAULT_HISTORY_LIMIT)
        return cls(capacity=capacity, entries=entries)

    def save(self, path: Path) -> None:
        """Write the log as a JSON array, newest first."""
        data = _ENTRIES_ADAPTER.dump_python(self.entries, mode="json")
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with open(path, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2)
        except OSError as e:
            raise HistoryError(f"Cannot write history file {path}: {e}") from e
