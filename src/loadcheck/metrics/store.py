"""Time-series storage for per-tick snapshots, with change listeners."""

from __future__ import annotations

import threading
from typing import TYPE_CHECKING

from loadcheck._internal.logging import get_logger

if TYPE_CHECKING:
    from collections.abc import Callable

    from loadcheck.metrics.models import MetricSnapshot

logger = get_logger("metrics.store")


class MetricStore:
    """Thread-safe list of ``MetricSnapshot`` objects.

    The run session appends one snapshot per tick; the CLI's live display
    reads from its refresh thread. Listeners added with ``subscribe`` are
    called with every appended snapshot, outside the lock.
    """

    def __init__(self) -> None:
        self._snapshots: list[MetricSnapshot] = []
        self._listeners: list[Callable[[MetricSnapshot], None]] = []
        self._lock = threading.Lock()

    def subscribe(self, listener: Callable[[MetricSnapshot], None]) -> None:
        """Call *listener* with every snapshot appended from now on."""
        with self._lock:
            self._listeners.append(listener)

    def append(self, snapshot: MetricSnapshot) -> None:
        """Store *snapshot* and notify listeners.

        A failing listener is logged and skipped; it never stops the run.
        """
        with self._lock:
            self._snapshots.append(snapshot)
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(snapshot)
            except Exception:
                logger.warning("Snapshot listener %r failed", listener, exc_info=True)

    def get_all(self) -> list[MetricSnapshot]:
        """Return a copy of all snapshots in chronological order."""
        with self._lock:
            return list(self._snapshots)

    def get_latest(self) -> MetricSnapshot | None:
        """Return the most recent snapshot, or None if there is none."""
        with self._lock:
            return self._snapshots[-1] if self._snapshots else None

    def __len__(self) -> int:
        with self._lock:
            return len(self._snapshots)
