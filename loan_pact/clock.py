"""Injectable time sources."""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Protocol


class Clock(Protocol):
    """Anything that can tell the current local time."""

    def now(self) -> datetime: ...


class SystemClock:
    """Wall-clock time."""

    def now(self) -> datetime:
        return datetime.now()


class FixedClock:
    """Clock frozen at a given instant until moved explicitly.

    Used by tests and demo scripts to make expiry and due-date
    comparisons deterministic.
    """

    def __init__(self, current: datetime) -> None:
        self.current = current

    def now(self) -> datetime:
        return self.current

    def set(self, current: datetime) -> None:
        self.current = current

    def advance(self, **delta: float) -> datetime:
        """Move forward by ``timedelta(**delta)`` and return the new time."""
        self.current = self.current + timedelta(**delta)
        return self.current


def epoch_millis(moment: datetime) -> int:
    """Milliseconds since the epoch for ``moment``."""
    return int(moment.replace(microsecond=0).timestamp()) * 1000 + moment.microsecond // 1000
