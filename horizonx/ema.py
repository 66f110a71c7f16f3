"""Exponential moving average used to smooth noisy readings."""

from __future__ import annotations


class EMA:
    """Exponential moving average whose first sample seeds the value."""

    def __init__(self, alpha: float) -> None:
        self.alpha = alpha
        self._value = 0.0
        self._seeded = False

    def add(self, value: float) -> float:
        """Feed a new sample and return the updated average."""
        if not self._seeded:
            self._value = value
            self._seeded = True
        else:
            self._value = self.alpha * value + (1 - self.alpha) * self._value
        return self._value

    def value(self) -> float:
        """Return the current average (0.0 before any sample)."""
        return self._value

    def __repr__(self) -> str:
        return f"EMA(alpha={self.alpha!r}, value={self._value!r})"