"""Physical memory and swap usage from /proc/meminfo."""

from __future__ import annotations

from pathlib import Path
from typing import Any

from ..models import MemoryMetric

_U64_MASK = (1 << 64) - 1
_GIB = 1024 * 1024 * 1024
_KEYS = ("MemTotal", "MemAvailable", "SwapTotal", "SwapFree")


def _gib(count: int) -> float:
    return count / _GIB


class MemoryCollector:
    """Reads memory and swap totals, reported in GiB."""

    def __init__(self, log: Any, proc_root: str | Path = "/proc") -> None:
        self.log = log
        self.proc_root = Path(proc_root)

    def _read_meminfo(self) -> dict[str, int]:
        """Byte counts of the tracked keys; raises OSError if unreadable."""
        path = self.proc_root / "meminfo"
        try:
            text = path.read_text()
        except OSError as exc:
            self.log.error("failed to open /proc/meminfo", error=exc)
            raise

        values: dict[str, int] = {}
        for line in text.splitlines():
            fields = line.split()
            if len(fields) < 2:
                continue
            key = fields[0].removesuffix(":")
            raw = fields[1]
            if not (raw.isascii() and raw.isdigit()) or int(raw) > _U64_MASK:
                self.log.warn(
                    "failed to parse meminfo value",
                    line=line,
                    error=f"invalid unsigned integer {raw!r}",
                )
                continue
            if key in _KEYS:
                values[key] = (int(raw) * 1024) & _U64_MASK
        return values

    def collect(self) -> MemoryMetric:
        """Take one memory sample; raises OSError if /proc/meminfo is unreadable."""
        values = self._read_meminfo()
        mem_total = values.get("MemTotal", 0)
        mem_available = values.get("MemAvailable", 0)
        swap_total = values.get("SwapTotal", 0)
        swap_free = values.get("SwapFree", 0)

        return MemoryMetric(
            total_gb=_gib(mem_total),
            available_gb=_gib(mem_available),
            used_gb=_gib((mem_total - mem_available) & _U64_MASK),
            swap_total_gb=_gib(swap_total),
            swap_free_gb=_gib(swap_free),
            swap_used_gb=_gib((swap_total - swap_free) & _U64_MASK),
        )