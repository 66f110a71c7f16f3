"""CPU usage, temperature, frequency and package power readings."""

from __future__ import annotations

import time
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from ..ema import EMA
from ..models import CPUMetric
from ..utils import contains_any

_U64_MASK = (1 << 64) - 1

TEMPERATURE_SENSORS = (
    "coretemp",
    "k10temp",
    "zenpower",
    "zenpower3",
    "amd_smu",
    "ryzen_smu",
)

POWER_SENSORS = (
    "zenpower",
    "zenpower3",
    "amd_smu",
    "ryzen_smu",
    "rapl",
    "intel-rapl",
    "intel-rapl-msr",
)


def _parse_uint(text: str) -> int:
    if not (text.isascii() and text.isdigit()):
        raise ValueError(f"invalid unsigned integer {text!r}")
    value = int(text)
    if value > _U64_MASK:
        raise ValueError(f"value out of range {text!r}")
    return value


@dataclass(frozen=True)
class CpuStat:
    """Cumulative jiffies of one CPU line: all time and idle time."""

    total: int = 0
    idle: int = 0


def parse_cpu_stat(fields: Sequence[str]) -> CpuStat:
    """Build a CpuStat from the counters of a ``/proc/stat`` cpu line.

    At least user, nice, system and idle are required; iowait, irq,
    softirq and steal are used when present. Raises ValueError otherwise.
    """
    if len(fields) < 4:
        raise ValueError(f"expected at least 4 cpu counters, got {len(fields)}")
    values = [_parse_uint(field) for field in fields[:8]]
    user, nice, system, idle = values[:4]
    iowait, irq, softirq, steal = (values[4:] + [0, 0, 0, 0])[:4]
    idle_total = (idle + iowait) & _U64_MASK
    total = (user + nice + system + idle_total + irq + softirq + steal) & _U64_MASK
    return CpuStat(total=total, idle=idle_total)


def calculate_usage(prev: CpuStat, current: CpuStat) -> float:
    """Busy percentage between two samples; 0.0 when no time has passed."""
    total_diff = (current.total - prev.total) & _U64_MASK
    idle_diff = (current.idle - prev.idle) & _U64_MASK
    if total_diff == 0:
        return 0.0
    usage = (1 - idle_diff / total_diff) * 100
    return max(usage, 0.0)


class CpuCollector:
    """Reads CPU metrics from procfs and sysfs, smoothing noisy values."""

    def __init__(self, log: Any, sys_root: str | Path = "/sys", proc_root: str | Path = "/proc") -> None:
        self.log = log
        self.sys_root = Path(sys_root)
        self.proc_root = Path(proc_root)
        self._prev_stats: dict[str, CpuStat] = {}
        self._usage_ema = EMA(0.5)
        self._per_core_ema: list[EMA] = []
        self._power_ema = EMA(0.3)
        self._last_energy = 0
        self._last_time = 0.0

    def collect(self) -> CPUMetric:
        """Take one CPU sample."""
        usage, per_core = self._read_usage()
        temperature = self._read_temperature()
        frequency = self._read_frequency()
        power_watt = self._read_power_watt()

        self._usage_ema.add(usage)
        if len(self._per_core_ema) != len(per_core):
            self._per_core_ema = [EMA(0.5) for _ in per_core]
        for ema, core_usage in zip(self._per_core_ema, per_core):
            ema.add(core_usage)

        return CPUMetric(
            usage=self._usage_ema.value(),
            per_core=[ema.value() for ema in self._per_core_ema],
            temperature=temperature,
            frequency=frequency,
            power_watt=power_watt,
        )

    def _read_usage(self) -> tuple[float, list[float]]:
        path = self.proc_root / "stat"
        try:
            text = path.read_text()
        except OSError as exc:
            self.log.warn("failed to read /proc/stat", error=exc)
            return 0.0, []

        new_stats: dict[str, CpuStat] = {}
        total_usage = 0.0
        per_core: list[float] = []

        for line in text.split("\n"):
            if not line.startswith("cpu"):
                continue
            fields = line.split()
            name = fields[0]
            if name != "cpu" and len(fields) <= 1:
                continue
            try:
                stat = parse_cpu_stat(fields[1:])
            except ValueError as exc:
                self.log.warn("failed to parse cpu stat", error=exc, line=line)
                continue
            new_stats[name] = stat

            prev = self._prev_stats.get(name)
            if prev is not None:
                usage = calculate_usage(prev, stat)
                if name == "cpu":
                    total_usage = usage
                else:
                    per_core.append(usage)

        self._prev_stats = new_stats
        return total_usage, per_core

    def _read_frequency(self) -> float:
        path = self.sys_root / "devices/system/cpu/cpu0/cpufreq/scaling_cur_freq"
        try:
            text = path.read_text()
        except OSError as exc:
            self.log.debug("failed to read scaling_cur_freq", error=exc)
            return 0.0
        try:
            value = float(text.strip())
        except ValueError as exc:
            self.log.warn("failed to parse cpu frequency", error=exc)
            return 0.0
        return value / 1e3

    def _read_hwmon(self, pattern: str, targets: Sequence[str], kind: str) -> float | None:
        """First matching hwmon input whose chip name is in ``targets``."""
        for path in sorted(self.sys_root.glob(pattern), key=str):
            name_path = path.parent / "name"
            try:
                name = name_path.read_text().strip()
            except OSError as exc:
                self.log.debug(f"failed to read hwmon name for {kind}", path=str(name_path), error=exc)
                continue
            if not contains_any(name, targets):
                continue
            try:
                text = path.read_text()
            except OSError as exc:
                self.log.debug(f"failed to read {kind} input", file=str(path), error=exc)
                continue
            try:
                return float(text.strip())
            except ValueError as exc:
                self.log.warn(f"failed to parse hwmon {kind}", file=str(path), error=exc)
        return None

    def _read_temperature(self) -> float:
        value = self._read_hwmon("class/hwmon/hwmon*/temp*_input", TEMPERATURE_SENSORS, "temperature")
        return 0.0 if value is None else value / 1e3

    def _read_hwmon_power(self) -> float:
        value = self._read_hwmon("class/hwmon/hwmon*/power*_input", POWER_SENSORS, "power")
        if value is None:
            self.log.debug("no suitable hwmon power input found")
            return 0.0
        return value / 1e6

    def _read_rapl(self) -> float:
        """Watts since the previous call; 0.0 on the first call.

        Raises OSError or ValueError when the energy counter is unusable.
        """
        path = self.sys_root / "class/powercap/intel-rapl/intel-rapl:0/energy_uj"
        energy = _parse_uint(path.read_text().strip())
        now = time.perf_counter()
        if self._last_energy == 0:
            self._last_energy = energy
            self._last_time = now
            return 0.0

        if energy < self._last_energy:
            delta_energy = (_U64_MASK - self._last_energy) + energy
        else:
            delta_energy = energy - self._last_energy
        delta_time = now - self._last_time

        self._last_energy = energy
        self._last_time = now

        if delta_time <= 0:
            return 0.0
        return (delta_energy / 1e6) / delta_time

    def _read_power_watt(self) -> float:
        raw = 0.0
        try:
            watt = self._read_rapl()
        except (OSError, ValueError) as exc:
            self.log.debug("failed to read RAPL power", error=exc)
        else:
            if watt > 0:
                raw = watt
            else:
                hwmon_watt = self._read_hwmon_power()
                if hwmon_watt > 0:
                    raw = hwmon_watt

        if raw > 0:
            self._power_ema.add(raw)
        return self._power_ema.value()