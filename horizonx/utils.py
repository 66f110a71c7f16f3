"""Small string helpers."""

from __future__ import annotations

from collections.abc import Iterable


def contains_any(s: str, patterns: Iterable[str]) -> bool:
    """Return True if ``s`` matches any pattern, case-insensitively.

    A pattern ending in ``*`` matches as a prefix; any other pattern
    matches as a substring.
    """
    s = s.lower()
    for pattern in patterns:
        pattern = pattern.lower()
        if pattern.endswith("*"):
            if s.startswith(pattern[:-1]):
                return True
            continue
        if pattern in s:
            return True
    return False