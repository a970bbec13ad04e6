"""
Ducking - lower background media while an announcement is in progress.

The coordinator is bracketed by the announcement path, not by audio
playback: start is signalled when an announcement is requested and end
when the speech engine drains its queue. It drives a single external
volume multiplier and keeps no counts; pairing each start with one later
end is the caller's job.

Example:
    coordinator = DuckingCoordinator(CallbackMediaSink(player.set_volume))

    coordinator.on_announcement_start()   # media at 20%
    ...
    coordinator.on_announcement_end()     # media back to 100%
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Callable, Protocol, runtime_checkable

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DuckingEnvelope:
    """Media volume levels around an announcement.

    Fields:
        gain: Multiplier while ducked (0.0 - 1.0). 0.2 = 20% volume.
        restore_gain: Multiplier after the announcement ends.
    """
    gain: float = 0.2
    restore_gain: float = 1.0

    def __post_init__(self):
        if not 0.0 <= self.gain <= 1.0:
            raise ValueError(f"gain must be 0.0-1.0, got {self.gain}")
        if not 0.0 <= self.restore_gain <= 1.0:
            raise ValueError(f"restore_gain must be 0.0-1.0, got {self.restore_gain}")


@runtime_checkable
class MediaSink(Protocol):
    """External media stream whose volume can be scaled."""

    def set_volume_multiplier(self, value: float) -> None:
        ...


class CallbackMediaSink:
    """Adapts a plain ``fn(multiplier)`` callable to MediaSink."""

    def __init__(self, callback: Callable[[float], None]):
        self._callback = callback

    def set_volume_multiplier(self, value: float) -> None:
        self._callback(value)


class LoggingMediaSink:
    """Sink for headless runs; only records the requested level."""

    def __init__(self):
        self.multiplier = 1.0

    def set_volume_multiplier(self, value: float) -> None:
        self.multiplier = value
        logger.info("Media volume multiplier -> %.2f", value)


class DuckingCoordinator:
    """Applies and reverts the duck on an external media sink."""

    def __init__(self, sink: MediaSink, envelope: DuckingEnvelope | None = None):
        self._sink = sink
        self._envelope = envelope or DUCKING_ANNOUNCEMENT
        self._multiplier = self._envelope.restore_gain
        self._lock = threading.Lock()

    @property
    def envelope(self) -> DuckingEnvelope:
        return self._envelope

    @property
    def multiplier(self) -> float:
        """Last multiplier sent to the sink."""
        return self._multiplier

    @property
    def is_ducking(self) -> bool:
        """True between a start and its end."""
        return self._multiplier != self._envelope.restore_gain

    def on_announcement_start(self) -> None:
        self._apply(self._envelope.gain)

    def on_announcement_end(self) -> None:
        self._apply(self._envelope.restore_gain)

    def _apply(self, value: float) -> None:
        with self._lock:
            self._multiplier = value
        self._sink.set_volume_multiplier(value)


# =============================================================================
# Presets
# =============================================================================

DUCKING_SUBTLE = DuckingEnvelope(gain=0.6)
"""Subtle ducking - music stays clearly audible."""

DUCKING_STANDARD = DuckingEnvelope(gain=0.4)
"""Standard ducking - noticeable but not dramatic."""

DUCKING_ANNOUNCEMENT = DuckingEnvelope(gain=0.2)
"""Public-address ducking - speech dominates the room."""


__all__ = [
    "DuckingEnvelope",
    "MediaSink",
    "CallbackMediaSink",
    "LoggingMediaSink",
    "DuckingCoordinator",
    "DUCKING_SUBTLE",
    "DUCKING_STANDARD",
    "DUCKING_ANNOUNCEMENT",
]
