"""Thread-safe holder of the most recent metrics snapshot."""

from __future__ import annotations

import threading

from .models import Metrics


class SnapshotStore:
    """Keeps the latest Metrics; starts with an empty snapshot."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._snapshot = Metrics()

    def set(self, metrics: Metrics) -> None:
        with self._lock:
            self._snapshot = metrics

    def get(self) -> Metrics:
        with self._lock:
            return self._snapshot