"""Runtime configuration read from the environment and an optional .env file."""

from __future__ import annotations

import os
import re
from dataclasses import dataclass

from dotenv import load_dotenv

DEFAULT_ADDRESS = ":3000"
DEFAULT_INTERVAL = 1.0
DEFAULT_LOG_LEVEL = "info"
DEFAULT_LOG_FORMAT = "text"

_UNITS = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "μs": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}
_TERM = r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|μs|ms|s|m|h)"
_TERM_RE = re.compile(_TERM)
_DURATION_RE = re.compile(rf"(?:{_TERM})+")


@dataclass(frozen=True)
class Config:
    """Server settings; ``interval`` is in seconds."""

    address: str = DEFAULT_ADDRESS
    interval: float = DEFAULT_INTERVAL
    log_level: str = DEFAULT_LOG_LEVEL
    log_format: str = DEFAULT_LOG_FORMAT


def parse_duration(text: str) -> float:
    """Parse a duration such as ``"1.5s"`` or ``"1h30m"`` into seconds.

    Raises ValueError for malformed input.
    """
    body = text
    sign = 1.0
    if body[:1] in ("-", "+"):
        if body[0] == "-":
            sign = -1.0
        body = body[1:]
    if body == "0":
        return 0.0
    if not body or not _DURATION_RE.fullmatch(body):
        raise ValueError(f"invalid duration {text!r}")
    total = sum(float(number) * _UNITS[unit] for number, unit in _TERM_RE.findall(body))
    return sign * total


def load(env_file: str | os.PathLike[str] | None = ".env") -> Config:
    """Build a Config from the environment, after loading ``env_file`` if present."""
    if env_file is not None:
        load_dotenv(env_file)

    address = os.environ.get("HTTP_ADDR") or DEFAULT_ADDRESS

    interval = DEFAULT_INTERVAL
    raw = os.environ.get("SCRAPE_INTERVAL")
    if raw:
        try:
            parsed = parse_duration(raw)
        except ValueError:
            parsed = 0.0
        if parsed > 0:
            interval = parsed

    return Config(
        address=address,
        interval=interval,
        log_level=os.environ.get("LOG_LEVEL") or DEFAULT_LOG_LEVEL,
        log_format=os.environ.get("LOG_FORMAT") or DEFAULT_LOG_FORMAT,
    )