"""Block device sizes, temperatures and mounted filesystem usage."""

from __future__ import annotations

import os
import re
from pathlib import Path, PurePosixPath
from typing import Any

from ..models import DiskMetric, FilesystemUsage

_U64_MASK = (1 << 64) - 1
_GIB = 1024 * 1024 * 1024
_SECTOR_SIZE = 512
_IGNORED_PREFIXES = ("loop", "ram", "dm-")

_PARTITION_PATTERNS = (
    re.compile(r"nvme\d+n\d+p\d+", re.ASCII),
    re.compile(r"sd[a-z]+\d+", re.ASCII),
    re.compile(r"mmcblk\d+p\d+", re.ASCII),
)


def is_partition(name: str) -> bool:
    """True if ``name`` looks like an NVMe, SCSI/SATA or MMC partition."""
    return any(pattern.fullmatch(name) for pattern in _PARTITION_PATTERNS)


def _parse_uint(text: str) -> int:
    if not (text.isascii() and text.isdigit()) or int(text) > _U64_MASK:
        raise ValueError(f"invalid unsigned integer {text!r}")
    return int(text)


class DiskCollector:
    """Reads whole-disk metrics and the usage of each disk's mounted partitions."""

    def __init__(self, log: Any, sys_root: str | Path = "/sys", proc_root: str | Path = "/proc") -> None:
        self.log = log
        self.sys_root = Path(sys_root)
        self.proc_root = Path(proc_root)

    @property
    def _class_block(self) -> Path:
        return self.sys_root / "class" / "block"

    def collect(self) -> list[DiskMetric]:
        """Take one disk sample; raises OSError if block devices cannot be listed."""
        try:
            disks, parts = self._detect_block_devices()
        except OSError as exc:
            self.log.error("failed to detect block devices", error=exc)
            raise

        result: list[DiskMetric] = []
        for disk in disks:
            metric = DiskMetric(
                name=disk,
                raw_size_gb=self._read_raw_size_gib(disk),
                temperature=self._read_disk_temperature(disk),
            )
            for part in parts:
                if self._parent_disk(part) != disk:
                    continue
                metric.filesystems.extend(
                    self._read_fs_usage(mountpoint, part)
                    for mountpoint in self._mountpoints_of(part)
                )
            result.append(metric)
        return result

    def _detect_block_devices(self) -> tuple[list[str], list[str]]:
        try:
            names = sorted(os.listdir(self._class_block))
        except OSError as exc:
            self.log.error("failed to read /sys/class/block", error=exc)
            raise

        disks: list[str] = []
        parts: list[str] = []
        for name in names:
            if name.startswith(_IGNORED_PREFIXES):
                continue
            (parts if is_partition(name) else disks).append(name)
        return disks, parts

    def _parent_disk(self, part: str) -> str:
        base = self._class_block
        try:
            names = sorted(os.listdir(base))
        except OSError as exc:
            self.log.warn("failed to read /sys/class/block in getParentDisk", error=exc)
            return ""

        for disk in names:
            path = base / disk / part
            try:
                path.stat()
            except FileNotFoundError:
                continue
            except OSError as exc:
                self.log.debug("failed to stat parent disk path", path=str(path), error=exc)
                continue
            return disk
        return ""

    def _mountpoints_of(self, dev_name: str) -> list[str]:
        path = self.proc_root / "self" / "mountinfo"
        try:
            text = path.read_text()
        except OSError as exc:
            self.log.warn("failed to open /proc/self/mountinfo", error=exc)
            return []

        result: list[str] = []
        for line in text.splitlines():
            fields = line.split()
            if len(fields) < 10:
                continue
            mountpoint, source = fields[4], fields[9]
            if not source.startswith("/dev/"):
                continue
            real_source = source.split("[", 1)[0]
            if PurePosixPath(real_source).name == dev_name:
                result.append(mountpoint)
        return result

    def _read_raw_size_gib(self, disk: str) -> float:
        path = self.sys_root / "block" / disk / "size"
        try:
            text = path.read_text()
        except OSError as exc:
            self.log.warn("failed to read disk size", disk=disk, error=exc)
            return 0.0
        try:
            sectors = _parse_uint(text.strip())
        except ValueError as exc:
            self.log.warn("failed to parse disk size", disk=disk, error=exc)
            return 0.0
        return sectors * _SECTOR_SIZE / _GIB

    def _read_fs_usage(self, mountpoint: str, dev_name: str) -> FilesystemUsage:
        try:
            st = os.statvfs(mountpoint)
        except OSError as exc:
            self.log.warn("failed to stat filesystem", mountpoint=mountpoint, error=exc)
            return FilesystemUsage(device=dev_name, mountpoint=mountpoint)

        block_size = st.f_frsize or st.f_bsize
        total = float(st.f_blocks) * block_size
        free = float(st.f_bfree) * block_size
        used = total - free
        percent = used / total * 100 if total > 0 else 0.0

        return FilesystemUsage(
            device=dev_name,
            mountpoint=mountpoint,
            total_gb=total / _GIB,
            used_gb=used / _GIB,
            free_gb=free / _GIB,
            percent=percent,
        )

    def _read_disk_temperature(self, name: str) -> float:
        root = self.sys_root / "block" / name / "device"
        try:
            entries = sorted(os.listdir(root))
        except OSError as exc:
            self.log.debug("failed to read hwmon root for disk temp", path=str(root), error=exc)
            return 0.0

        for entry in entries:
            if not entry.startswith("hwmon"):
                continue
            path = root / entry / "temp1_input"
            try:
                text = path.read_text()
            except OSError as exc:
                self.log.debug("failed to read temp1_input for disk", file=str(path), error=exc)
                continue
            try:
                value = float(text.strip())
            except ValueError as exc:
                self.log.warn("failed to parse disk temperature", file=str(path), error=exc)
                continue
            return value / 1000.0
        return 0.0