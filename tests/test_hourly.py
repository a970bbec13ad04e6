"""Tests for the hourly time announcer."""

from datetime import datetime

from voice_announcer.clock import ManualClock
from voice_announcer.scheduling.hourly import (
    HOURLY_STORAGE_KEY,
    HourlyAnnouncer,
    hourly_message,
    time_message,
)
from voice_announcer.storage import MemoryStore


def make(start, store=None):
    spoken = []
    clock = ManualClock(start)
    announcer = HourlyAnnouncer(spoken.append, store=store, clock=clock)
    return announcer, clock, spoken


class TestMessages:
    """Tests for the Portuguese time wording."""

    def test_special_hours(self):
        assert hourly_message(0) == "São meia noite"
        assert hourly_message(12) == "São meio dia"
        assert hourly_message(1) == "São uma hora"

    def test_evening_hour(self):
        assert hourly_message(21) == "São vinte e uma horas"

    def test_time_message_minutes(self):
        assert time_message(datetime(2024, 5, 1, 20, 0)) == "São vinte horas"
        assert time_message(datetime(2024, 5, 1, 20, 1)) == "São vinte horas e um minuto"
        assert time_message(datetime(2024, 5, 1, 20, 5)) == "São vinte horas e 5 minutos"


class TestEnabled:
    """Tests for the persisted flag."""

    def test_default_off(self):
        announcer, _, _ = make(datetime(2024, 5, 1, 9, 0))
        assert announcer.enabled is False

    def test_toggle_persists(self):
        store = MemoryStore()
        announcer, _, _ = make(datetime(2024, 5, 1, 9, 0), store=store)

        assert announcer.toggle_enabled() is True
        assert store.load(HOURLY_STORAGE_KEY) == {"enabled": True}

        reloaded, _, _ = make(datetime(2024, 5, 1, 9, 0), store=store)
        assert reloaded.enabled is True

    def test_corrupt_is_off(self):
        store = MemoryStore({HOURLY_STORAGE_KEY: '"yes"'})
        announcer, _, _ = make(datetime(2024, 5, 1, 9, 0), store=store)
        assert announcer.enabled is False


class TestTick:
    """Tests for the on-the-hour chime."""

    def test_disabled_is_silent(self):
        announcer, _, spoken = make(datetime(2024, 5, 1, 9, 0))

        assert announcer.tick() is None
        assert spoken == []

    def test_announces_once_per_hour(self):
        announcer, clock, spoken = make(datetime(2024, 5, 1, 8, 59, 45))
        announcer.toggle_enabled()

        for _ in range(4):
            clock.advance(seconds=30)
            announcer.tick()

        assert spoken == ["São nove horas"]

    def test_not_on_the_hour(self):
        announcer, _, spoken = make(datetime(2024, 5, 1, 9, 15))
        announcer.toggle_enabled()

        assert announcer.tick() is None
        assert spoken == []

    def test_same_hour_next_day(self):
        announcer, clock, spoken = make(datetime(2024, 5, 1, 9, 0))
        announcer.toggle_enabled()
        announcer.tick()

        clock.set(datetime(2024, 5, 2, 9, 0, 20))
        announcer.tick()

        assert spoken == ["São nove horas", "São nove horas"]

    def test_test_announcement(self):
        announcer, _, spoken = make(datetime(2024, 5, 1, 21, 37))

        assert announcer.test_announcement() == "São vinte e uma horas e 37 minutos"
        assert spoken == ["São vinte e uma horas e 37 minutos"]
