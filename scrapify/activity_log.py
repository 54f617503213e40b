"""Bounded in-memory ledger of extraction attempts.

The log is the only shared mutable state in the core. Appends are serialized
with a lock so eviction stays strictly FIFO when requests are served from
several threads. Nothing is persisted; the log starts empty on every process
start.
"""

from __future__ import annotations

import threading
import uuid
from collections import deque
from datetime import datetime, timezone

from scrapify.data_types import ActivityEntry

DEFAULT_CAPACITY = 100


class ActivityLog:
    """Append-only, capacity-bounded record of past attempts.

    Once ``capacity`` entries are held, each append evicts the oldest.
    """

    def __init__(self, capacity: int = DEFAULT_CAPACITY) -> None:
        if capacity <= 0:
            raise ValueError("Activity log capacity must be positive")
        self.capacity = capacity
        self._entries: deque[ActivityEntry] = deque(maxlen=capacity)
        self._lock = threading.Lock()

    def append(
        self,
        source_id: str,
        format: str,
        duration: int,
        record_count: int,
        success: bool,
    ) -> ActivityEntry:
        """Record one attempt.

        Args:
            source_id: Source that was requested.
            format: Output format that was requested.
            duration: Milliseconds spent on the attempt.
            record_count: Records returned (0 on failure).
            success: Whether the attempt succeeded.

        Returns:
            The stored entry.
        """
        entry = ActivityEntry(
            id=f"scrape_{uuid.uuid4().hex}",
            source_id=source_id,
            format=format,
            timestamp=datetime.now(timezone.utc),
            duration=duration,
            record_count=record_count,
            success=success,
        )
        with self._lock:
            self._entries.append(entry)
        return entry

    def entries(self) -> list[ActivityEntry]:
        """Return all retained entries, oldest first."""
        with self._lock:
            return list(self._entries)

    def recent(self, count: int = 10) -> list[ActivityEntry]:
        """Return up to ``count`` entries, newest first."""
        with self._lock:
            newest = list(self._entries)[-count:] if count > 0 else []
        newest.reverse()
        return newest

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
