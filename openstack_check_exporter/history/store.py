"""In-memory history of check results, newest first.

Every result gets a monotonically increasing ID so a detail view can address
it. The log is bounded: ``trim()`` drops the oldest entries beyond
``max_count``. Nothing is persisted across restarts.
"""

from __future__ import annotations

import itertools
import logging
import threading
from collections import deque
from dataclasses import dataclass

from ..checker.manager import CheckResult

logger = logging.getLogger(__name__)

DEFAULT_MAX_COUNT = 1000


@dataclass(frozen=True)
class HistoryEntry:
    """One retained check result."""

    id: int
    result: CheckResult


class History:
    """Thread-safe bounded log of check results."""

    def __init__(self, max_count: int = DEFAULT_MAX_COUNT) -> None:
        if max_count < 0:
            raise ValueError("max_count must not be negative")
        self.max_count = max_count
        self._lock = threading.Lock()
        self._ids = itertools.count()
        self._entries: deque[HistoryEntry] = deque()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def append(self, result: CheckResult) -> HistoryEntry:
        """Record a result in front of the log."""
        with self._lock:
            entry = HistoryEntry(id=next(self._ids), result=result)
            self._entries.appendleft(entry)
        return entry

    def trim(self) -> int:
        """Drop the oldest entries beyond ``max_count``. Returns how many went."""
        with self._lock:
            dropped = 0
            while len(self._entries) > self.max_count:
                self._entries.pop()
                dropped += 1
        if dropped:
            logger.debug("Trimmed %d history entries", dropped)
        return dropped

    def list(self, name: str | None = None) -> list[HistoryEntry]:
        """Snapshot of the log, newest first, optionally for one check."""
        with self._lock:
            if not name:
                return list(self._entries)
            return [e for e in self._entries if e.result.name == name]

    def get(self, entry_id: int) -> HistoryEntry | None:
        with self._lock:
            return next((e for e in self._entries if e.id == entry_id), None)
