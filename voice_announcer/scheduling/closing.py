"""
Closing-Time Announcer - fixed daily announcements before closing.

Each entry fires at most once per calendar day. A tick matches an entry
when the clock is within one second of the entry's time; the trigger
ledger (id -> day fired) keeps later ticks inside the window, or later in
the day, from firing it again. The ledger is cleared at midnight.

Example:
    closing = ClosingAnnouncer(lambda message: speech.speak(message, priority=True))
    closing.tick()                  # called once per second
    closing.check_midnight()        # called every ~30 seconds
    closing.next_announcement       # ClosingAnnouncement(id='closing-30', ...)
    closing.time_until_next         # "1:12:09"
"""

from __future__ import annotations

import logging
import re
import threading
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Callable

from voice_announcer.clock import Clock, SystemClock
from voice_announcer.scheduling.countdown import format_countdown

logger = logging.getLogger(__name__)

MATCH_WINDOW = timedelta(seconds=1)

_HHMM = re.compile(r"^(\d{1,2}):(\d{2})$")


def parse_clock_time(value: str) -> time:
    """Parse ``HH:MM`` into a time of day.

    Raises:
        ValueError: If the value is malformed or out of range.
    """
    match = _HHMM.match(value or "")
    if not match:
        raise ValueError(f"Expected HH:MM, got {value!r}")
    hours, minutes = int(match.group(1)), int(match.group(2))
    if hours > 23 or minutes > 59:
        raise ValueError(f"Time out of range: {value!r}")
    return time(hours, minutes)


@dataclass(frozen=True)
class ClosingAnnouncement:
    """A fixed-time announcement before closing."""
    id: str
    time: str
    minutes_until_close: int

    def __post_init__(self):
        parse_clock_time(self.time)
        if self.minutes_until_close < 0:
            raise ValueError(
                f"minutes_until_close must be >= 0, got {self.minutes_until_close}"
            )

    @property
    def clock_time(self) -> time:
        return parse_clock_time(self.time)

    def time_on(self, day: date) -> datetime:
        """Absolute trigger time on a given day."""
        return datetime.combine(day, self.clock_time)

    @property
    def message(self) -> str:
        return closing_message(self.minutes_until_close)


DEFAULT_CLOSING_SCHEDULE: tuple[ClosingAnnouncement, ...] = (
    ClosingAnnouncement("closing-30", "21:30", 30),
    ClosingAnnouncement("closing-15", "21:45", 15),
    ClosingAnnouncement("closing-0", "22:00", 0),
)


def closing_message(minutes_until_close: int) -> str:
    """Announcement text for an entry."""
    if minutes_until_close == 0:
        return (
            "Atenção alunos, a academia está encerrando suas atividades por hoje. "
            "Agradecemos a presença de todos e desejamos uma ótima noite!"
        )
    return (
        f"Atenção, a academia encerrará suas atividades em {minutes_until_close} minutos. "
        "Por favor, prepare-se para finalizar seus treinos e guarde os pesos e "
        "aparelhos utilizados. Obrigado."
    )


def day_key(moment: datetime) -> str:
    """Ledger key for the calendar day of ``moment``."""
    return moment.date().isoformat()


def validate_schedule(schedule: tuple[ClosingAnnouncement, ...]) -> None:
    """Check ids are unique, times ascend, and one entry marks closing.

    Raises:
        ValueError: If the schedule is inconsistent.
    """
    if not schedule:
        raise ValueError("Closing schedule must not be empty")

    ids = [a.id for a in schedule]
    if len(set(ids)) != len(ids):
        raise ValueError("Closing announcement ids must be unique")

    times = [a.clock_time for a in schedule]
    if any(later <= earlier for earlier, later in zip(times, times[1:])):
        raise ValueError("Closing announcements must be in ascending time order")

    closing = [a for a in schedule if a.minutes_until_close == 0]
    if len(closing) != 1:
        raise ValueError(
            f"Closing schedule needs exactly one zero-minute entry, found {len(closing)}"
        )


class ClosingAnnouncer:
    """Fires the closing schedule once per day.

    The enabled flag and the ledger live in memory only; a restart
    re-arms every entry for the current day.
    """

    def __init__(
        self,
        on_announce: Callable[[str], None],
        *,
        schedule: tuple[ClosingAnnouncement, ...] | list[ClosingAnnouncement] | None = None,
        clock: Clock | None = None,
        enabled: bool = True,
    ):
        self._on_announce = on_announce
        self._schedule = tuple(schedule) if schedule is not None else DEFAULT_CLOSING_SCHEDULE
        validate_schedule(self._schedule)
        self._clock = clock or SystemClock()
        self._enabled = enabled
        self._ledger: dict[str, str] = {}
        self._lock = threading.Lock()

    @property
    def announcements(self) -> tuple[ClosingAnnouncement, ...]:
        return self._schedule

    @property
    def closing_time(self) -> str:
        """Time of the zero-minute entry."""
        return next(a.time for a in self._schedule if a.minutes_until_close == 0)

    @property
    def enabled(self) -> bool:
        return self._enabled

    def toggle_enabled(self) -> bool:
        """Flip the flag gating scheduled fires. Returns the new value."""
        with self._lock:
            self._enabled = not self._enabled
            enabled = self._enabled
        logger.info("Closing announcements %s", "enabled" if enabled else "disabled")
        return enabled

    @property
    def ledger(self) -> dict[str, str]:
        """Copy of the trigger ledger (id -> ISO day fired)."""
        with self._lock:
            return dict(self._ledger)

    def has_fired_today(self, announcement_id: str) -> bool:
        today = day_key(self._clock.now())
        with self._lock:
            return self._ledger.get(announcement_id) == today

    def tick(self) -> list[str]:
        """Fire every entry whose time is within the matching window.

        Returns:
            Messages announced on this tick.
        """
        if not self._enabled:
            return []

        now = self._clock.now()
        today = day_key(now)
        fired: list[str] = []
        with self._lock:
            for announcement in self._schedule:
                if self._ledger.get(announcement.id) == today:
                    continue
                if abs(now - announcement.time_on(now.date())) < MATCH_WINDOW:
                    self._ledger[announcement.id] = today
                    fired.append(announcement.message)
                    logger.debug("Closing announcement %s due", announcement.id)

        for message in fired:
            self._announce(message)
        return fired

    def check_midnight(self) -> bool:
        """Clear the ledger during the first minute of the day.

        Returns:
            True if the ledger was cleared.
        """
        now = self._clock.now()
        if now.hour != 0 or now.minute != 0:
            return False
        with self._lock:
            if not self._ledger:
                return False
            self._ledger.clear()
        logger.info("Closing announcement ledger reset for %s", day_key(now))
        return True

    def trigger_manually(self, announcement_id: str) -> bool:
        """Announce an entry now, enabled or not, without touching the ledger.

        Returns:
            False if the id is unknown.
        """
        announcement = self._find(announcement_id)
        if announcement is None:
            return False
        self._announce(announcement.message)
        return True

    @property
    def next_announcement(self) -> ClosingAnnouncement | None:
        """First entry still ahead today and not yet fired."""
        now = self._clock.now()
        today = day_key(now)
        with self._lock:
            for announcement in self._schedule:
                if self._ledger.get(announcement.id) == today:
                    continue
                if now < announcement.time_on(now.date()):
                    return announcement
        return None

    @property
    def time_until_next(self) -> str | None:
        """Countdown to next_announcement, ``None`` when nothing is left today."""
        announcement = self.next_announcement
        if announcement is None:
            return None
        now = self._clock.now()
        return format_countdown(announcement.time_on(now.date()) - now, with_hours=True)

    def _find(self, announcement_id: str) -> ClosingAnnouncement | None:
        for announcement in self._schedule:
            if announcement.id == announcement_id:
                return announcement
        return None

    def _announce(self, message: str) -> None:
        try:
            self._on_announce(message)
        except Exception:
            logger.exception("Closing announce callback failed")


__all__ = [
    "ClosingAnnouncement",
    "ClosingAnnouncer",
    "DEFAULT_CLOSING_SCHEDULE",
    "MATCH_WINDOW",
    "closing_message",
    "day_key",
    "parse_clock_time",
    "validate_schedule",
]
