"""
Announcement Board - wires schedulers, speech and ducking together.

Data flow:

    Ticker (1s)  -> RecurringScheduler.tick, ClosingAnnouncer.tick
    Ticker (30s) -> ClosingAnnouncer.check_midnight, HourlyAnnouncer.tick
        -> AnnouncementBoard.announce
            -> DuckingCoordinator.on_announcement_start
            -> SpeechEngine.speak (closing notices use the priority lane)
    SpeechEngine.on_idle -> DuckingCoordinator.on_announcement_end

Example:
    with AnnouncementBoard(Config(data_dir="./data")) as board:
        board.on_announcement(lambda a: print(a.source, a.message))
        board.timers.start()
        board.start()
        ...
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable

from voice_announcer.clock import Clock, SystemClock
from voice_announcer.config import Config
from voice_announcer.monitoring.logging import StructuredLogger, get_logger
from voice_announcer.runtime.ducking import (
    DuckingCoordinator,
    DuckingEnvelope,
    LoggingMediaSink,
    MediaSink,
)
from voice_announcer.runtime.speech import SpeechEngine
from voice_announcer.scheduling.closing import ClosingAnnouncer
from voice_announcer.scheduling.hourly import HourlyAnnouncer
from voice_announcer.scheduling.ticker import Ticker
from voice_announcer.scheduling.timers import RecurringScheduler, TimerConfig
from voice_announcer.storage import JsonFileStore, KeyValueStore

logger = logging.getLogger(__name__)

SOURCE_CLOSING = "closing"
SOURCE_HOURLY = "hourly"
SOURCE_MANUAL = "manual"


@dataclass(frozen=True)
class Announcement:
    """The most recent thing the board asked to be spoken."""
    message: str
    source: str
    is_closing: bool = False
    timestamp: datetime = field(default_factory=datetime.now)
    timer: TimerConfig | None = None


class AnnouncementBoard:
    """Owns one instance of every announcer component."""

    def __init__(
        self,
        config: Config | None = None,
        *,
        media_sink: MediaSink | None = None,
        store: KeyValueStore | None = None,
        clock: Clock | None = None,
        speech: SpeechEngine | None = None,
        log: StructuredLogger | None = None,
    ):
        """Initialize the board.

        Args:
            config: Announcer configuration.
            media_sink: Background media whose volume is ducked.
            store: Persistence (a JsonFileStore in ``config.data_dir`` if omitted).
            clock: Wall-clock source shared by all schedulers.
            speech: Speech engine (built from ``config`` and ``store`` if omitted).
            log: Structured logger for announcement events.
        """
        self.config = config or Config()
        self._clock = clock or SystemClock()
        self._store = store if store is not None else JsonFileStore(self.config.data_dir)
        self._log = (log or get_logger()).bind(component="board")

        self.ducking = DuckingCoordinator(
            media_sink or LoggingMediaSink(),
            DuckingEnvelope(gain=self.config.ducked_volume),
        )
        self.speech = speech or SpeechEngine(store=self._store, config=self.config)
        self.speech.on_idle(self._on_speech_idle)

        self.timers = RecurringScheduler(self._on_timer, store=self._store, clock=self._clock)
        self.closing = ClosingAnnouncer(self._on_closing, clock=self._clock)
        self.hourly = HourlyAnnouncer(self._on_hourly, store=self._store, clock=self._clock)

        self._tick_driver = Ticker(self.config.tick_interval, self.tick, name="announcement-tick")
        self._rollover_driver = Ticker(
            self.config.rollover_interval, self.slow_tick, name="rollover-tick"
        )

        self._lock = threading.Lock()
        # Orders duck+speak against the idle check that lifts the duck
        self._duck_lock = threading.Lock()
        self._last_announcement: Announcement | None = None
        self._announcement_callbacks: list[Callable[[Announcement], None]] = []

    @property
    def last_announcement(self) -> Announcement | None:
        return self._last_announcement

    @property
    def is_running(self) -> bool:
        """True while the tick drivers are running."""
        return self._tick_driver.is_running

    def on_announcement(self, callback: Callable[[Announcement], None]) -> "AnnouncementBoard":
        """Called with every Announcement as it is requested."""
        self._announcement_callbacks.append(callback)
        return self

    # ------------------------------------------------------------------
    # Announce path
    # ------------------------------------------------------------------

    def announce(
        self,
        message: str,
        source: str = SOURCE_MANUAL,
        *,
        priority: bool = False,
        timer: TimerConfig | None = None,
    ) -> Announcement:
        """Duck the media and hand ``message`` to the speech engine."""
        announcement = Announcement(
            message=message,
            source=source,
            is_closing=source == SOURCE_CLOSING,
            timestamp=self._clock.now(),
            timer=timer,
        )
        with self._lock:
            self._last_announcement = announcement

        self._log.announcement(source, message, priority=priority)
        with self._duck_lock:
            self.ducking.on_announcement_start()
            self.speech.speak(message, priority=priority)
        self._log.ducking(self.ducking.multiplier)

        for callback in list(self._announcement_callbacks):
            try:
                callback(announcement)
            except Exception:
                logger.exception("Announcement observer %r failed", callback)
        return announcement

    def _on_timer(self, message: str, timer: TimerConfig) -> None:
        self.announce(message, timer.id, timer=timer)

    def _on_closing(self, message: str) -> None:
        self.announce(message, SOURCE_CLOSING, priority=True)

    def _on_hourly(self, message: str) -> None:
        self.announce(message, SOURCE_HOURLY)

    def _on_speech_idle(self) -> None:
        with self._duck_lock:
            if self.speech.is_busy:
                # Stale idle edge; a newer announcement is already queued
                return
            self.ducking.on_announcement_end()
        self._log.ducking(self.ducking.multiplier)

    # ------------------------------------------------------------------
    # Ticks
    # ------------------------------------------------------------------

    def tick(self) -> None:
        """Fine tick: recurring timers and the closing schedule."""
        self.timers.tick()
        self.closing.tick()

    def slow_tick(self) -> None:
        """Coarse tick: midnight ledger reset and the hourly chime."""
        self.closing.check_midnight()
        self.hourly.tick()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Start the tick drivers. Recurring timers are started separately."""
        self._tick_driver.start()
        self._rollover_driver.start()
        logger.info(
            "Announcement board started (tick=%.1fs, rollover=%.1fs)",
            self.config.tick_interval,
            self.config.rollover_interval,
        )

    def stop(self) -> None:
        """Stop the tick drivers."""
        self._tick_driver.stop()
        self._rollover_driver.stop()

    def close(self) -> None:
        """Stop ticking, stop the timers and silence speech."""
        self.stop()
        self.timers.stop()
        self.speech.stop()
        logger.info("Announcement board closed")

    def __enter__(self) -> "AnnouncementBoard":
        return self

    def __exit__(self, *args) -> None:
        self.close()


__all__ = [
    "Announcement",
    "AnnouncementBoard",
    "SOURCE_CLOSING",
    "SOURCE_HOURLY",
    "SOURCE_MANUAL",
]
