"""Network throughput from /proc/net/dev."""

from __future__ import annotations

import time
from collections.abc import Callable
from pathlib import Path
from typing import Any

from ..ema import EMA
from ..models import NetworkMetric

_U64_MASK = (1 << 64) - 1


class NetworkCollector:
    """Sums byte counters over all interfaces except loopback.

    Speeds are reported in Mbit/s and smoothed with an EMA.
    """

    def __init__(
        self,
        log: Any,
        proc_root: str | Path = "/proc",
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.log = log
        self.proc_root = Path(proc_root)
        self.clock = clock
        self._last_rx = 0
        self._last_tx = 0
        self._last_time: float | None = None
        self._rx_speed_ema = EMA(0.5)
        self._tx_speed_ema = EMA(0.5)

    def collect(self) -> NetworkMetric:
        """Take one network sample; raises OSError if /proc/net/dev is unreadable."""
        rx, tx = self._read_totals()
        now = self.clock()

        rx_speed = 0.0
        tx_speed = 0.0
        if self._last_time is not None:
            elapsed = now - self._last_time
            if elapsed > 0 and rx >= self._last_rx and tx >= self._last_tx:
                rx_speed = (rx - self._last_rx) * 8 / elapsed / 1e6
                tx_speed = (tx - self._last_tx) * 8 / elapsed / 1e6

        self._last_rx = rx
        self._last_tx = tx
        self._last_time = now

        self._rx_speed_ema.add(rx_speed)
        self._tx_speed_ema.add(tx_speed)

        return NetworkMetric(
            rx_bytes=rx,
            tx_bytes=tx,
            rx_speed=self._rx_speed_ema.value(),
            tx_speed=self._tx_speed_ema.value(),
        )

    def _read_totals(self) -> tuple[int, int]:
        path = self.proc_root / "net" / "dev"
        try:
            text = path.read_text()
        except OSError as exc:
            self.log.error("failed to open /proc/net/dev", error=exc)
            raise

        rx_total = 0
        tx_total = 0
        for line in text.splitlines()[2:]:
            parts = line.split()
            if len(parts) < 17:
                continue
            if parts[0].removesuffix(":") == "lo":
                continue
            rx_total = (rx_total + self._parse_uint(parts[1])) & _U64_MASK
            tx_total = (tx_total + self._parse_uint(parts[9])) & _U64_MASK
        return rx_total, tx_total

    def _parse_uint(self, text: str) -> int:
        if text.isascii() and text.isdigit() and int(text) <= _U64_MASK:
            return int(text)
        self.log.warn(
            "failed to parse network stats",
            value=text,
            error=f"invalid unsigned integer {text!r}",
        )
        return 0