"""
Hourly time announcer - speaks the time on the hour.

Off by default. The enabled flag is persisted; which hour was last
announced is not.
"""

from __future__ import annotations

import logging
import threading
from datetime import datetime
from typing import Callable

from voice_announcer.clock import Clock, SystemClock
from voice_announcer.storage import KeyValueStore

logger = logging.getLogger(__name__)

HOURLY_STORAGE_KEY = "hourly-announcement"

HOUR_WORDS = {
    0: "meia noite",
    1: "uma hora",
    2: "duas horas",
    3: "três horas",
    4: "quatro horas",
    5: "cinco horas",
    6: "seis horas",
    7: "sete horas",
    8: "oito horas",
    9: "nove horas",
    10: "dez horas",
    11: "onze horas",
    12: "meio dia",
    13: "treze horas",
    14: "quatorze horas",
    15: "quinze horas",
    16: "dezesseis horas",
    17: "dezessete horas",
    18: "dezoito horas",
    19: "dezenove horas",
    20: "vinte horas",
    21: "vinte e uma horas",
    22: "vinte e duas horas",
    23: "vinte e três horas",
}


def hourly_message(hour: int) -> str:
    """Text spoken on the hour."""
    return f"São {HOUR_WORDS[hour]}"


def time_message(moment: datetime) -> str:
    """Text for an arbitrary time, e.g. ``"São vinte horas e 5 minutos"``."""
    if moment.minute == 0:
        minutes = ""
    elif moment.minute == 1:
        minutes = " e um minuto"
    else:
        minutes = f" e {moment.minute} minutos"
    return f"{hourly_message(moment.hour)}{minutes}"


def load_enabled(store: KeyValueStore | None) -> bool:
    if store is None:
        return False
    data = store.load(HOURLY_STORAGE_KEY)
    if data is None:
        return False
    if not isinstance(data, dict) or not isinstance(data.get("enabled"), bool):
        logger.warning("Corrupt hourly announcement setting, using default (off)")
        return False
    return data["enabled"]


class HourlyAnnouncer:
    """Announces the hour once, during minute zero of each hour."""

    def __init__(
        self,
        on_announce: Callable[[str], None],
        *,
        store: KeyValueStore | None = None,
        clock: Clock | None = None,
    ):
        self._on_announce = on_announce
        self._store = store
        self._clock = clock or SystemClock()
        self._enabled = load_enabled(store)
        self._last_announced: tuple[str, int] | None = None
        self._lock = threading.Lock()

    @property
    def enabled(self) -> bool:
        return self._enabled

    def toggle_enabled(self) -> bool:
        """Flip and persist the flag. Returns the new value."""
        with self._lock:
            self._enabled = not self._enabled
            enabled = self._enabled
        if self._store is not None:
            self._store.save(HOURLY_STORAGE_KEY, {"enabled": enabled})
        logger.info("Hourly announcement %s", "enabled" if enabled else "disabled")
        return enabled

    def tick(self) -> str | None:
        """Announce the hour if due. Returns the message spoken, if any."""
        if not self._enabled:
            return None
        now = self._clock.now()
        if now.minute != 0:
            return None

        hour_key = (now.date().isoformat(), now.hour)
        with self._lock:
            if self._last_announced == hour_key:
                return None
            self._last_announced = hour_key

        message = hourly_message(now.hour)
        logger.debug("Hourly announcement: %s", message)
        self._announce(message)
        return message

    def test_announcement(self) -> str:
        """Speak the current hour and minutes now."""
        message = time_message(self._clock.now())
        self._announce(message)
        return message

    def _announce(self, message: str) -> None:
        try:
            self._on_announce(message)
        except Exception:
            logger.exception("Hourly announce callback failed")


__all__ = [
    "HourlyAnnouncer",
    "HOURLY_STORAGE_KEY",
    "HOUR_WORDS",
    "hourly_message",
    "time_message",
    "load_enabled",
]
