"""History log backends.

This package provides append-only audit trail implementations for
memory value transitions.
"""

from __future__ import annotations

from .base import MAX_HISTORY_ENTRIES, InMemoryHistoryManager, NoopHistoryManager

try:
    from .sqlite_history import SQLiteHistoryManager

    __all__ = [
        "MAX_HISTORY_ENTRIES",
        "InMemoryHistoryManager",
        "NoopHistoryManager",
        "SQLiteHistoryManager",
    ]
except ImportError:
    # aiosqlite not installed
    __all__ = ["MAX_HISTORY_ENTRIES", "InMemoryHistoryManager", "NoopHistoryManager"]
