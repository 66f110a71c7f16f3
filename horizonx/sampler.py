"""Gathers one full metrics snapshot from every collector."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path
from typing import Any

from .collectors.cpu import CpuCollector
from .collectors.disk import DiskCollector
from .collectors.gpu import GpuCollector
from .collectors.memory import MemoryCollector
from .collectors.network import NetworkCollector
from .collectors.uptime import UptimeCollector
from .models import Metrics


class Sampler:
    """Runs all collectors; a failing collector is logged and its field left at its default."""

    def __init__(self, log: Any, sys_root: str | Path = "/sys", proc_root: str | Path = "/proc") -> None:
        self.log = log
        self.cpu = CpuCollector(log, sys_root, proc_root)
        self.gpu = GpuCollector(log, sys_root)
        self.memory = MemoryCollector(log, proc_root)
        self.disk = DiskCollector(log, sys_root, proc_root)
        self.network = NetworkCollector(log, proc_root)
        self.uptime = UptimeCollector(log, proc_root)

    def collect(self) -> Metrics:
        """Take one sample of everything."""
        metrics = Metrics()
        steps: list[tuple[str, Callable[[], Any], str]] = [
            ("cpu", self.cpu.collect, "cpu"),
            ("gpu", self.gpu.collect, "gpu"),
            ("memory", self.memory.collect, "memory"),
            ("disk", self.disk.collect, "disk"),
            ("network", self.network.collect, "network"),
            ("uptime", self.uptime.collect, "uptime_seconds"),
        ]
        for name, collect, attribute in steps:
            try:
                value = collect()
            except (OSError, ValueError) as exc:
                self.log.error("collector", name=name, error=exc)
                continue
            setattr(metrics, attribute, value)
        return metrics