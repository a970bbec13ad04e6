"""
Scheduling - decides when something should be announced.

Schedulers never speak; they hand messages to a callback on each tick.
"""

from voice_announcer.scheduling.countdown import format_countdown

from voice_announcer.scheduling.timers import (
    TimerConfig,
    TimerRuntimeState,
    RecurringScheduler,
    DEFAULT_TIMERS,
    TIMERS_STORAGE_KEY,
    default_timers,
)

from voice_announcer.scheduling.closing import (
    ClosingAnnouncement,
    ClosingAnnouncer,
    DEFAULT_CLOSING_SCHEDULE,
    closing_message,
)

from voice_announcer.scheduling.hourly import (
    HourlyAnnouncer,
    HOURLY_STORAGE_KEY,
    hourly_message,
    time_message,
)

from voice_announcer.scheduling.ticker import Ticker

__all__ = [
    "format_countdown",
    # Recurring timers
    "TimerConfig",
    "TimerRuntimeState",
    "RecurringScheduler",
    "DEFAULT_TIMERS",
    "TIMERS_STORAGE_KEY",
    "default_timers",
    # Closing
    "ClosingAnnouncement",
    "ClosingAnnouncer",
    "DEFAULT_CLOSING_SCHEDULE",
    "closing_message",
    # Hourly
    "HourlyAnnouncer",
    "HOURLY_STORAGE_KEY",
    "hourly_message",
    "time_message",
    # Driver
    "Ticker",
]
