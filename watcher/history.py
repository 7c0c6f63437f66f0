"""
watcher/history.py — Bounded, newest-first history of summary records.

Memory only. A restart starts with an empty history and a fresh
"monitoring started" entry — that is the intended behaviour, not a gap.

Writes come from the poll loop; reads come from HTTP handlers on other
threads. record() and snapshot() share a lock, and snapshot() returns a
copy, so a reader never sees a half-applied prepend-and-truncate.

Eviction: a deque with maxlen=cap. appendleft() on a full deque drops the
rightmost (oldest) item, which is exactly "prepend, then keep the first
cap entries".

USAGE:
  from watcher.history import History

  history = History(cap=20)
  history.record(record)
  latest = history.latest()
  for entry in history.snapshot():   # newest first
      print(entry.summary)
"""

import threading
from collections import deque

from config import settings
from watcher.state import SummaryRecord


class History:
    """In-memory, insertion-ordered (newest first), size-bounded record list."""

    def __init__(self, cap: int | None = None) -> None:
        cap = settings.history_cap if cap is None else cap
        if cap < 1:
            raise ValueError(f"History cap must be at least 1, got {cap}")
        self._cap = cap
        self._entries: deque[SummaryRecord] = deque(maxlen=cap)
        self._lock = threading.Lock()

    @property
    def cap(self) -> int:
        return self._cap

    def record(self, entry: SummaryRecord) -> None:
        """Prepend entry; the oldest entry is evicted once the cap is reached."""
        with self._lock:
            self._entries.appendleft(entry)

    def snapshot(self) -> list[SummaryRecord]:
        """A copy of the history, newest first. Safe to iterate while polling continues."""
        with self._lock:
            return list(self._entries)

    def latest(self) -> SummaryRecord | None:
        with self._lock:
            return self._entries[0] if self._entries else None

    def updates_count(self) -> int:
        """How many retained records describe a real change."""
        with self._lock:
            return sum(1 for e in self._entries if e.has_changes)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
