"""Periodic sampling loop."""

from __future__ import annotations

import threading
import time
from collections.abc import Callable
from typing import Any

from .models import Metrics


class Scheduler:
    """Calls ``sample`` every ``interval`` seconds and hands the result to ``sink``."""

    def __init__(
        self,
        interval: float,
        log: Any,
        sample: Callable[[], Metrics] | None,
        sink: Callable[[Metrics], None] | None,
    ) -> None:
        self.interval = interval
        self.log = log
        self.sample = sample
        self.sink = sink

    def tick(self) -> None:
        """Take one sample and deliver it; does nothing if either callback is missing."""
        if self.sample is None or self.sink is None:
            return
        self.sink(self.sample())

    def start(self, stop: threading.Event) -> None:
        """Tick at once, then on every interval until ``stop`` is set."""
        self.tick()
        deadline = time.monotonic() + self.interval
        while True:
            if stop.wait(max(0.0, deadline - time.monotonic())):
                return
            self.tick()
            deadline += self.interval
            now = time.monotonic()
            if deadline < now:
                # Missed ticks are dropped rather than replayed.
                missed = int((now - deadline) // self.interval) + 1
                deadline += missed * self.interval