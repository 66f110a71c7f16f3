"""Structured key/value logger with text and JSON output."""

from __future__ import annotations

import json
import sys
import threading
from datetime import datetime
from enum import IntEnum
from typing import Any, TextIO


class Level(IntEnum):
    DEBUG = -4
    INFO = 0
    WARN = 4
    ERROR = 8


_LEVELS = {"debug": Level.DEBUG, "warn": Level.WARN, "error": Level.ERROR}


def _needs_quoting(text: str) -> bool:
    if not text:
        return True
    return any(ch.isspace() or ch in '="' or not ch.isprintable() for ch in text)


def _text_value(value: Any) -> str:
    if isinstance(value, bool):
        text = "true" if value else "false"
    elif value is None:
        text = "<nil>"
    else:
        text = str(value)
    return json.dumps(text, ensure_ascii=False) if _needs_quoting(text) else text


class Logger:
    """Writes one record per line to ``stream`` at or above ``level``."""

    def __init__(self, level: str = "info", fmt: str = "text", stream: TextIO | None = None) -> None:
        self.level = _LEVELS.get(level.lower(), Level.INFO)
        self.json = fmt == "json"
        self.stream = stream if stream is not None else sys.stdout
        self._lock = threading.Lock()

    def _log(self, level: Level, msg: str, fields: dict[str, Any]) -> None:
        if level < self.level:
            return
        now = datetime.now().astimezone()
        if self.json:
            record: dict[str, Any] = {
                "time": now.isoformat(timespec="microseconds"),
                "level": level.name,
                "msg": msg,
            }
            record.update(fields)
            line = json.dumps(record, default=str, ensure_ascii=False)
        else:
            parts = [
                f"time={now.isoformat(timespec='milliseconds')}",
                f"level={level.name}",
                f"msg={_text_value(msg)}",
            ]
            parts.extend(f"{_text_value(key)}={_text_value(value)}" for key, value in fields.items())
            line = " ".join(parts)
        with self._lock:
            self.stream.write(line + "\n")
            self.stream.flush()

    def debug(self, msg: str, **kwargs: Any) -> None:
        self._log(Level.DEBUG, msg, kwargs)

    def info(self, msg: str, **kwargs: Any) -> None:
        self._log(Level.INFO, msg, kwargs)

    def warn(self, msg: str, **kwargs: Any) -> None:
        self._log(Level.WARN, msg, kwargs)

    def error(self, msg: str, **kwargs: Any) -> None:
        self._log(Level.ERROR, msg, kwargs)


def new_logger(config: Any, stream: TextIO | None = None) -> Logger:
    """Create a Logger from a config's ``log_level`` and ``log_format``."""
    return Logger(config.log_level, config.log_format, stream)