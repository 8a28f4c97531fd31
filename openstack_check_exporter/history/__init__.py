"""History subsystem: bounded, most-recent-first log of check results."""

from .store import History, HistoryEntry
