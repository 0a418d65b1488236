from __future__ import annotations

import threading
from collections.abc import Sequence
from datetime import datetime

from servertrack.errors import sanitize_error
from servertrack.models import ServerRecord, Snapshot


class RefreshState:
    """Current server snapshot and last refresh error, shared by reference.

    The coordinator is the only writer. The lock guards reference reads and
    swaps only, it is never held across I/O. Snapshots are immutable, so a
    reader keeps a consistent generation for as long as it holds one.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._snapshot = Snapshot()
        self._last_error: str | None = None

    @property
    def snapshot(self) -> Snapshot:
        with self._lock:
            return self._snapshot

    @property
    def last_error(self) -> str | None:
        with self._lock:
            return self._last_error

    def publish(self, servers: Sequence[ServerRecord], refreshed_at: datetime) -> Snapshot:
        # Single writer: reading the generation and swapping later is safe.
        snapshot = Snapshot.build(servers, self.snapshot.generation + 1, refreshed_at)
        with self._lock:
            self._snapshot = snapshot
        return snapshot

    def set_error(self, message: str | None) -> None:
        cleaned = sanitize_error(message) if message else None
        with self._lock:
            self._last_error = cleaned
