"""Metric records exposed over HTTP and WebSocket."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any


@dataclass
class CPUMetric:
    usage: float = 0.0
    per_core: list[float] = field(default_factory=list)
    temperature: float = 0.0
    frequency: float = 0.0
    power_watt: float = 0.0


@dataclass
class GPUMetric:
    id: int = 0
    card: str = ""
    vendor: str = ""
    model: str = ""
    temperature: float = 0.0
    core_usage_percent: float = 0.0
    vram_total_gb: float = 0.0
    vram_used_gb: float = 0.0
    vram_percent: float = 0.0
    power_watt: float = 0.0
    fan_speed_percent: float = 0.0


@dataclass
class MemoryMetric:
    total_gb: float = 0.0
    used_gb: float = 0.0
    available_gb: float = 0.0
    swap_total_gb: float = 0.0
    swap_free_gb: float = 0.0
    swap_used_gb: float = 0.0


@dataclass
class FilesystemUsage:
    device: str = ""
    mountpoint: str = ""
    total_gb: float = 0.0
    used_gb: float = 0.0
    free_gb: float = 0.0
    percent: float = 0.0


@dataclass
class DiskMetric:
    name: str = ""
    raw_size_gb: float = 0.0
    temperature: float = 0.0
    filesystems: list[FilesystemUsage] = field(default_factory=list)


@dataclass
class NetworkMetric:
    rx_bytes: int = 0
    tx_bytes: int = 0
    rx_speed: float = 0.0
    tx_speed: float = 0.0


@dataclass
class Metrics:
    cpu: CPUMetric = field(default_factory=CPUMetric)
    gpu: list[GPUMetric] = field(default_factory=list)
    memory: MemoryMetric = field(default_factory=MemoryMetric)
    disk: list[DiskMetric] = field(default_factory=list)
    network: NetworkMetric = field(default_factory=NetworkMetric)
    uptime_seconds: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-ready dictionary keyed by the wire field names."""
        return asdict(self)