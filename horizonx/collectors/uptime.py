"""System uptime from /proc/uptime."""

from __future__ import annotations

from pathlib import Path
from typing import Any


class UptimeCollector:
    """Reads the number of seconds since boot."""

    def __init__(self, log: Any, proc_root: str | Path = "/proc") -> None:
        self.log = log
        self.proc_root = Path(proc_root)

    def collect(self) -> float:
        """Return uptime in seconds.

        Raises OSError if the file cannot be read and ValueError if its
        first field is not a number; an empty file gives 0.0.
        """
        path = self.proc_root / "uptime"
        try:
            text = path.read_text()
        except OSError as exc:
            self.log.error("failed to read /proc/uptime", error=exc)
            raise

        fields = text.split()
        if not fields:
            self.log.warn("/proc/uptime is empty")
            return 0.0

        try:
            return float(fields[0])
        except ValueError as exc:
            self.log.warn("failed to parse uptime", value=fields[0], error=exc)
            raise