"""
Wall-clock sources.

Schedulers never call ``datetime.now()`` directly; they read a Clock so
tests and simulations can drive time by hand.
"""

from __future__ import annotations

import threading
from datetime import datetime, timedelta
from typing import Protocol, runtime_checkable


@runtime_checkable
class Clock(Protocol):
    """Source of naive local wall-clock time."""

    def now(self) -> datetime:
        ...


class SystemClock:
    """The process clock."""

    def now(self) -> datetime:
        return datetime.now()


class ManualClock:
    """Clock that only moves when told to.

    Example:
        clock = ManualClock(datetime(2024, 5, 1, 21, 29, 59))
        clock.advance(seconds=1)
        assert clock.now() == datetime(2024, 5, 1, 21, 30)
    """

    def __init__(self, start: datetime | None = None):
        self._now = start or datetime(2024, 1, 1, 8, 0, 0)
        self._lock = threading.Lock()

    def now(self) -> datetime:
        with self._lock:
            return self._now

    def set(self, value: datetime) -> None:
        with self._lock:
            self._now = value

    def advance(
        self,
        seconds: float = 0,
        minutes: float = 0,
        hours: float = 0,
    ) -> datetime:
        """Move the clock forward and return the new time."""
        with self._lock:
            self._now += timedelta(seconds=seconds, minutes=minutes, hours=hours)
            return self._now


__all__ = ["Clock", "SystemClock", "ManualClock"]
