"""GPU readings from the DRM class in sysfs."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

from ..ema import EMA
from ..models import GPUMetric

_GIB = 1024 * 1024 * 1024
_DEFAULT_PWM_MAX = 255.0

VENDORS = {
    "0x1002": "AMD",
    "0x10de": "NVIDIA",
    "0x8086": "INTEL",
}


def vendor_name(code: str) -> str:
    """Map a PCI vendor id such as ``"0x1002"`` to a name; unknown ids pass through."""
    return VENDORS.get(code, code)


class GpuCollector:
    """Reads per-card GPU metrics, smoothing usage, power and fan speed."""

    def __init__(self, log: Any, sys_root: str | Path = "/sys") -> None:
        self.log = log
        self.sys_root = Path(sys_root)
        self._power_ema: dict[str, EMA] = {}
        self._usage_ema: dict[str, EMA] = {}
        self._fan_speed_ema: dict[str, EMA] = {}

    @property
    def _drm(self) -> Path:
        return self.sys_root / "class" / "drm"

    def _device(self, card: str) -> Path:
        return self._drm / card / "device"

    def collect(self) -> list[GPUMetric]:
        """Take one sample of every detected card."""
        outputs: list[GPUMetric] = []
        for index, card in enumerate(self._detect_gpus()):
            power_ema = self._power_ema.setdefault(card, EMA(0.3))
            usage_ema = self._usage_ema.setdefault(card, EMA(0.5))
            fan_ema = self._fan_speed_ema.setdefault(card, EMA(0.5))

            vendor = self._read_vendor(card)
            model = self._read_model(card)
            temperature = self._read_temperature(card)
            usage = self._read_core_usage(card)
            vram_total, vram_used, vram_percent = self._read_vram(card)
            power_watt = self._read_power(card)
            fan_speed = self._read_fan_speed_percent(card)

            usage_ema.add(usage)
            power_ema.add(power_watt)
            fan_ema.add(fan_speed)

            outputs.append(
                GPUMetric(
                    id=index,
                    card=card,
                    vendor=vendor,
                    model=model,
                    temperature=temperature,
                    core_usage_percent=usage_ema.value(),
                    vram_total_gb=vram_total,
                    vram_used_gb=vram_used,
                    vram_percent=vram_percent,
                    power_watt=power_ema.value(),
                    fan_speed_percent=fan_ema.value(),
                )
            )
        return outputs

    def _detect_gpus(self) -> list[str]:
        try:
            names = sorted(os.listdir(self._drm))
        except OSError as exc:
            self.log.warn("failed to read /sys/class/drm", error=exc)
            return []
        return [name for name in names if name.startswith("card") and "-" not in name]

    def _hwmons(self, card: str, purpose: str) -> tuple[Path, list[str]]:
        root = self._device(card) / "hwmon"
        try:
            return root, sorted(os.listdir(root))
        except OSError as exc:
            self.log.debug(f"failed to read hwmon for {purpose}", path=str(root), error=exc)
            return root, []

    def _read_vendor(self, card: str) -> str:
        path = self._device(card) / "vendor"
        try:
            text = path.read_text()
        except OSError as exc:
            self.log.debug("failed to read gpu vendor", path=str(path), error=exc)
            return "unknown"
        return vendor_name(text.strip())

    def _read_model(self, card: str) -> str:
        for filename, what in (("product_name", "product_name"), ("device", "device")):
            path = self._device(card) / filename
            try:
                return path.read_text().strip()
            except OSError as exc:
                self.log.debug(f"failed to read gpu {what}", path=str(path), error=exc)
        return "unknown"

    def _read_first_hwmon_value(self, card: str, filename: str, purpose: str) -> float | None:
        root, hwmons = self._hwmons(card, purpose)
        for hw in hwmons:
            path = root / hw / filename
            try:
                text = path.read_text()
            except OSError:
                continue
            try:
                return float(text.strip())
            except ValueError as exc:
                self.log.warn(f"failed to parse {purpose}", file=str(path), error=exc)
        return None

    def _read_temperature(self, card: str) -> float:
        value = self._read_first_hwmon_value(card, "temp1_input", "gpu temperature")
        return 0.0 if value is None else value / 1000

    def _read_power_raw(self, card: str) -> float:
        value = self._read_first_hwmon_value(card, "power1_input", "gpu power")
        return 0.0 if value is None else value / 1e6

    def _read_power(self, card: str) -> float:
        raw = self._read_power_raw(card)
        ema = self._power_ema[card]
        if raw > 0:
            ema.add(raw)
        return ema.value()

    def _read_core_usage(self, card: str) -> float:
        path = self._device(card) / "gpu_busy_percent"
        try:
            text = path.read_text()
        except OSError as exc:
            self.log.debug("failed to read gpu_busy_percent", path=str(path), error=exc)
            return 0.0
        try:
            return float(text.strip())
        except ValueError as exc:
            self.log.warn("failed to parse gpu_busy_percent", path=str(path), error=exc)
            return 0.0

    def _read_vram(self, card: str) -> tuple[float, float, float]:
        total_path = self._device(card) / "mem_info_vram_total"
        used_path = self._device(card) / "mem_info_vram_used"
        try:
            total_text = total_path.read_text()
        except OSError as exc:
            self.log.debug("failed to read vram total", path=str(total_path), error=exc)
            return 0.0, 0.0, 0.0
        try:
            used_text = used_path.read_text()
        except OSError as exc:
            self.log.debug("failed to read vram used", path=str(used_path), error=exc)
            return 0.0, 0.0, 0.0
        try:
            total_bytes = float(total_text.strip())
        except ValueError as exc:
            self.log.warn("failed to parse vram total", path=str(total_path), error=exc)
            return 0.0, 0.0, 0.0
        try:
            used_bytes = float(used_text.strip())
        except ValueError as exc:
            self.log.warn("failed to parse vram used", path=str(used_path), error=exc)
            return 0.0, 0.0, 0.0

        percent = used_bytes / total_bytes * 100 if total_bytes > 0 else 0.0
        return total_bytes / _GIB, used_bytes / _GIB, percent

    def _read_fan_speed_percent(self, card: str) -> float:
        root, hwmons = self._hwmons(card, "fan speed")
        for hw in hwmons:
            base = root / hw
            pwm_path = base / "pwm1"
            max_path = base / "pwm1_max"
            rpm_path = base / "fan1_input"

            try:
                pwm_text = pwm_path.read_text()
            except OSError:
                pwm_text = None
            if pwm_text is not None:
                try:
                    pwm = float(pwm_text.strip())
                except ValueError as exc:
                    self.log.warn("failed to parse pwm1", file=str(pwm_path), error=exc)
                    continue
                if pwm <= 0:
                    return 0.0
                pwm_max = _DEFAULT_PWM_MAX
                try:
                    max_text = max_path.read_text()
                except OSError:
                    max_text = None
                if max_text is not None:
                    try:
                        parsed = float(max_text.strip())
                    except ValueError as exc:
                        self.log.debug("failed to parse pwm1_max", file=str(max_path), error=exc)
                    else:
                        if parsed > 0:
                            pwm_max = parsed
                return pwm / pwm_max * 100.0

            try:
                rpm_text = rpm_path.read_text()
            except OSError:
                continue
            try:
                rpm = float(rpm_text.strip())
            except ValueError as exc:
                self.log.warn("failed to parse fan1_input", file=str(rpm_path), error=exc)
                continue
            if rpm > 0:
                return 1.0
        return 0.0