"""
Recurring Timer Scheduler Tests - rotation, timing and persistence.

All timing goes through ManualClock; no test sleeps.
"""

import json
from datetime import datetime, timedelta

import pytest

from voice_announcer.clock import ManualClock
from voice_announcer.scheduling.countdown import format_countdown
from voice_announcer.scheduling.timers import (
    DEFAULT_TIMERS,
    TIMERS_STORAGE_KEY,
    RecurringScheduler,
    TimerConfig,
    TimerRuntimeState,
)
from voice_announcer.storage import MemoryStore

T0 = datetime(2024, 5, 1, 8, 0, 0)


class Recorder:
    """Collects (message, timer id) pairs from on_announce."""

    def __init__(self):
        self.calls = []

    def __call__(self, message, timer):
        self.calls.append((message, timer.id))

    def count(self, timer_id):
        return sum(1 for _, tid in self.calls if tid == timer_id)

    def messages(self, timer_id):
        return [m for m, tid in self.calls if tid == timer_id]


def rotation_store():
    timers = [{
        "id": "rot",
        "name": "Rotation",
        "intervalMinutes": 1,
        "messages": ["m0", "m1", "m2"],
        "enabled": True,
        "icon": "",
        "color": "",
    }]
    return MemoryStore({TIMERS_STORAGE_KEY: json.dumps(timers)})


def run_seconds(scheduler, clock, seconds):
    for _ in range(seconds):
        clock.advance(seconds=1)
        scheduler.tick()


class TestTimerConfig:
    """Tests for TimerConfig validation."""

    def test_blank_messages_dropped(self):
        config = TimerConfig("x", "X", 5, ["a", "  ", "", "b"])
        assert config.messages == ["a", "b"]

    def test_all_blank_rejected(self):
        with pytest.raises(ValueError, match="at least one non-empty message"):
            TimerConfig("x", "X", 5, ["", "   "])

    def test_zero_interval_rejected(self):
        with pytest.raises(ValueError, match="interval_minutes must be > 0"):
            TimerConfig("x", "X", 0, ["a"])

    def test_negative_interval_rejected(self):
        with pytest.raises(ValueError, match="interval_minutes must be > 0"):
            TimerConfig("x", "X", -10, ["a"])

    def test_round_trip_uses_camel_case(self):
        config = TimerConfig("ads", "Propagandas", 10, ["a"], icon="🎯", color="accent")
        data = config.to_dict()

        assert data["intervalMinutes"] == 10
        assert TimerConfig.from_dict(data) == config

    def test_from_dict_snake_case(self):
        config = TimerConfig.from_dict({"id": "x", "interval_minutes": 3, "messages": ["a"]})
        assert config.interval_minutes == 3
        assert config.name == "x"
        assert config.enabled

    def test_merged_rejects_id_change(self):
        config = TimerConfig("x", "X", 5, ["a"])
        with pytest.raises(ValueError, match="cannot be changed"):
            config.merged(id="y")

    def test_merged_validates(self):
        config = TimerConfig("x", "X", 5, ["a"])
        with pytest.raises(ValueError):
            config.merged(messages=[" "])


class TestDefaults:
    """Tests for the seeded configuration."""

    def test_default_timers(self):
        assert [(t.id, t.interval_minutes) for t in DEFAULT_TIMERS] == [
            ("announcements", 30),
            ("ads", 10),
            ("motivation", 20),
        ]
        assert all(t.enabled for t in DEFAULT_TIMERS)

    def test_seeds_and_persists_defaults(self):
        store = MemoryStore()
        scheduler = RecurringScheduler(Recorder(), store=store, clock=ManualClock(T0))

        assert [t.id for t in scheduler.timers] == ["announcements", "ads", "motivation"]
        assert store.load(TIMERS_STORAGE_KEY)[1]["id"] == "ads"

    def test_editing_does_not_touch_defaults(self):
        scheduler = RecurringScheduler(Recorder(), clock=ManualClock(T0))
        scheduler.update_timer("ads", messages=["only"])

        assert len(DEFAULT_TIMERS[1].messages) == 4

    def test_initial_state(self):
        scheduler = RecurringScheduler(Recorder(), clock=ManualClock(T0))
        state = scheduler.state_for("ads")

        assert state.next_trigger == T0 + timedelta(minutes=10)
        assert state.last_triggered is None
        assert state.message_index == 0


class TestPersistence:
    """Tests for loading and saving the configuration list."""

    def test_corrupt_json_uses_defaults(self):
        store = MemoryStore({TIMERS_STORAGE_KEY: "{not json"})
        scheduler = RecurringScheduler(Recorder(), store=store, clock=ManualClock(T0))

        assert [t.id for t in scheduler.timers] == ["announcements", "ads", "motivation"]

    def test_wrong_shape_uses_defaults(self):
        store = MemoryStore({TIMERS_STORAGE_KEY: '[{"id": "x"}]'})
        scheduler = RecurringScheduler(Recorder(), store=store, clock=ManualClock(T0))

        assert len(scheduler.timers) == 3

    def test_invalid_interval_uses_defaults(self):
        bad = [{"id": "x", "name": "X", "intervalMinutes": 0, "messages": ["a"]}]
        store = MemoryStore({TIMERS_STORAGE_KEY: json.dumps(bad)})
        scheduler = RecurringScheduler(Recorder(), store=store, clock=ManualClock(T0))

        assert scheduler.get_timer("x") is None

    def test_stored_timers_loaded(self):
        scheduler = RecurringScheduler(Recorder(), store=rotation_store(), clock=ManualClock(T0))
        assert [t.id for t in scheduler.timers] == ["rot"]

    def test_update_persisted(self):
        store = MemoryStore()
        scheduler = RecurringScheduler(Recorder(), store=store, clock=ManualClock(T0))
        scheduler.update_timer("ads", interval_minutes=15, enabled=False)

        reloaded = RecurringScheduler(Recorder(), store=store, clock=ManualClock(T0))
        ads = reloaded.get_timer("ads")
        assert ads.interval_minutes == 15
        assert ads.enabled is False

    def test_add_and_remove_persisted(self):
        store = MemoryStore()
        scheduler = RecurringScheduler(Recorder(), store=store, clock=ManualClock(T0))
        scheduler.add_timer(TimerConfig("water", "Água", 45, ["Beba água!"]))
        scheduler.remove_timer("ads")

        reloaded = RecurringScheduler(Recorder(), store=store, clock=ManualClock(T0))
        assert [t.id for t in reloaded.timers] == ["announcements", "motivation", "water"]


class TestRotation:
    """Messages rotate circularly."""

    def test_trigger_now_rotates(self):
        recorder = Recorder()
        scheduler = RecurringScheduler(recorder, store=rotation_store(), clock=ManualClock(T0))

        for _ in range(4):
            scheduler.trigger_now("rot")

        assert recorder.messages("rot") == ["m0", "m1", "m2", "m0"]

    def test_tick_rotates(self):
        recorder = Recorder()
        clock = ManualClock(T0)
        scheduler = RecurringScheduler(recorder, store=rotation_store(), clock=clock)
        scheduler.start()

        run_seconds(scheduler, clock, 4 * 60)

        assert recorder.messages("rot") == ["m0", "m1", "m2", "m0"]

    def test_shrinking_messages_keeps_valid_index(self):
        recorder = Recorder()
        scheduler = RecurringScheduler(recorder, store=rotation_store(), clock=ManualClock(T0))
        scheduler.trigger_now("rot")
        scheduler.trigger_now("rot")
        scheduler.update_timer("rot", messages=["only"])

        scheduler.trigger_now("rot")

        assert recorder.messages("rot")[-1] == "only"

    def test_trigger_chosen_message(self):
        recorder = Recorder()
        scheduler = RecurringScheduler(recorder, store=rotation_store(), clock=ManualClock(T0))

        scheduler.trigger_now("rot", message_index=2)
        scheduler.trigger_now("rot")

        assert recorder.messages("rot") == ["m2", "m0"]

    def test_trigger_index_out_of_range(self):
        recorder = Recorder()
        scheduler = RecurringScheduler(recorder, store=rotation_store(), clock=ManualClock(T0))

        with pytest.raises(ValueError, match="message index must be 0-2"):
            scheduler.trigger_now("rot", message_index=3)
        assert recorder.messages("rot") == []


class TestTick:
    """Tests for tick-driven firing."""

    def test_thirty_ten_twenty_scenario(self):
        recorder = Recorder()
        clock = ManualClock(T0)
        scheduler = RecurringScheduler(recorder, clock=clock)
        scheduler.start()

        run_seconds(scheduler, clock, 600)
        assert recorder.count("ads") == 1
        assert recorder.count("motivation") == 0
        assert recorder.count("announcements") == 0

        run_seconds(scheduler, clock, 600)
        assert recorder.count("ads") == 2
        assert recorder.count("motivation") == 1
        assert recorder.count("announcements") == 0

    def test_no_fire_when_stopped(self):
        recorder = Recorder()
        clock = ManualClock(T0)
        scheduler = RecurringScheduler(recorder, clock=clock)

        clock.advance(hours=2)
        assert scheduler.tick() == []
        assert recorder.calls == []

    def test_disabled_timer_skipped(self):
        recorder = Recorder()
        clock = ManualClock(T0)
        scheduler = RecurringScheduler(recorder, clock=clock)
        scheduler.update_timer("ads", enabled=False)
        scheduler.start()

        run_seconds(scheduler, clock, 1200)

        assert recorder.count("ads") == 0
        assert recorder.count("motivation") == 1

    def test_same_tick_fires_in_config_order(self):
        recorder = Recorder()
        clock = ManualClock(T0)
        scheduler = RecurringScheduler(recorder, clock=clock)
        scheduler.start()

        clock.advance(minutes=30)
        fired = scheduler.tick()

        assert [timer.id for _, timer in fired] == ["announcements", "ads", "motivation"]
        assert [tid for _, tid in recorder.calls] == ["announcements", "ads", "motivation"]

    def test_late_tick_fires_once(self):
        recorder = Recorder()
        clock = ManualClock(T0)
        scheduler = RecurringScheduler(recorder, clock=clock)
        scheduler.start()

        clock.advance(minutes=25)
        scheduler.tick()

        assert recorder.count("ads") == 1

    def test_reschedule_is_drift_relative(self):
        clock = ManualClock(T0)
        scheduler = RecurringScheduler(Recorder(), clock=clock)
        scheduler.start()

        clock.advance(seconds=605)
        scheduler.tick()

        state = scheduler.state_for("ads")
        assert state.last_triggered == T0 + timedelta(seconds=605)
        assert state.next_trigger == T0 + timedelta(seconds=1205)
        assert state.message_index == 1

    def test_failing_callback_does_not_block_others(self):
        calls = []

        def on_announce(message, timer):
            calls.append(timer.id)
            if timer.id == "announcements":
                raise RuntimeError("presentation bug")

        clock = ManualClock(T0)
        scheduler = RecurringScheduler(on_announce, clock=clock)
        scheduler.start()
        clock.advance(minutes=30)
        scheduler.tick()

        assert calls == ["announcements", "ads", "motivation"]


class TestLifecycle:
    """Tests for start/stop semantics."""

    def test_start_rearms(self):
        clock = ManualClock(T0)
        scheduler = RecurringScheduler(Recorder(), clock=clock)

        clock.advance(minutes=7)
        scheduler.start()

        assert scheduler.is_running
        assert scheduler.state_for("ads").next_trigger == T0 + timedelta(minutes=17)

    def test_start_while_running_restarts_countdown(self):
        clock = ManualClock(T0)
        scheduler = RecurringScheduler(Recorder(), clock=clock)
        scheduler.start()
        clock.advance(minutes=5)
        scheduler.start()

        assert scheduler.get_time_until_next("ads") == "10:00"

    def test_stop_preserves_state(self):
        recorder = Recorder()
        clock = ManualClock(T0)
        scheduler = RecurringScheduler(recorder, clock=clock)
        scheduler.start()
        run_seconds(scheduler, clock, 600)

        scheduler.stop()

        assert not scheduler.is_running
        assert scheduler.state_for("ads").message_index == 1

    def test_trigger_now_while_stopped(self):
        recorder = Recorder()
        clock = ManualClock(T0)
        scheduler = RecurringScheduler(recorder, clock=clock)
        clock.advance(minutes=3)

        assert scheduler.trigger_now("ads")

        state = scheduler.state_for("ads")
        assert recorder.messages("ads") == [DEFAULT_TIMERS[1].messages[0]]
        assert state.next_trigger == T0 + timedelta(minutes=13)

    def test_trigger_unknown_is_noop(self):
        recorder = Recorder()
        scheduler = RecurringScheduler(recorder, clock=ManualClock(T0))

        assert scheduler.trigger_now("nope") is False
        assert recorder.calls == []

    def test_update_unknown_is_noop(self):
        scheduler = RecurringScheduler(Recorder(), clock=ManualClock(T0))
        assert scheduler.update_timer("nope", enabled=False) is False

    def test_update_interval_does_not_rearm(self):
        clock = ManualClock(T0)
        scheduler = RecurringScheduler(Recorder(), clock=clock)
        scheduler.start()

        scheduler.update_timer("ads", interval_minutes=1)

        assert scheduler.state_for("ads").next_trigger == T0 + timedelta(minutes=10)

    def test_add_timer_creates_state(self):
        clock = ManualClock(T0)
        scheduler = RecurringScheduler(Recorder(), clock=clock)
        scheduler.add_timer(TimerConfig("water", "Água", 45, ["Beba água!"]))

        assert scheduler.state_for("water").next_trigger == T0 + timedelta(minutes=45)

    def test_add_duplicate_rejected(self):
        scheduler = RecurringScheduler(Recorder(), clock=ManualClock(T0))
        with pytest.raises(ValueError, match="already exists"):
            scheduler.add_timer(TimerConfig("ads", "Ads", 5, ["x"]))

    def test_remove_timer_destroys_state(self):
        scheduler = RecurringScheduler(Recorder(), clock=ManualClock(T0))

        assert scheduler.remove_timer("ads")
        assert scheduler.state_for("ads") is None
        assert scheduler.remove_timer("ads") is False

    def test_states_snapshot(self):
        scheduler = RecurringScheduler(Recorder(), clock=ManualClock(T0))
        states = scheduler.states

        assert all(isinstance(s, TimerRuntimeState) for s in states)
        states[0].message_index = 99
        assert scheduler.state_for(states[0].id).message_index == 0


class TestCountdown:
    """Tests for get_time_until_next and format_countdown."""

    def test_due_in_125_seconds(self):
        clock = ManualClock(T0)
        scheduler = RecurringScheduler(Recorder(), clock=clock)
        scheduler.start()

        clock.advance(seconds=600 - 125)

        assert scheduler.get_time_until_next("ads") == "2:05"

    def test_not_running_is_none(self):
        scheduler = RecurringScheduler(Recorder(), clock=ManualClock(T0))
        assert scheduler.get_time_until_next("ads") is None

    def test_unknown_is_none(self):
        scheduler = RecurringScheduler(Recorder(), clock=ManualClock(T0))
        scheduler.start()
        assert scheduler.get_time_until_next("nope") is None

    def test_overdue_is_zero(self):
        clock = ManualClock(T0)
        scheduler = RecurringScheduler(Recorder(), clock=clock)
        scheduler.start()

        clock.advance(minutes=10, seconds=42)

        assert scheduler.get_time_until_next("ads") == "0:00"

    def test_minutes_not_split_into_hours(self):
        assert format_countdown(timedelta(minutes=75, seconds=3)) == "75:03"

    def test_hours_format(self):
        assert format_countdown(timedelta(hours=1, minutes=2, seconds=3), with_hours=True) == "1:02:03"
        assert format_countdown(timedelta(minutes=2, seconds=3), with_hours=True) == "2:03"

    def test_partial_seconds_truncated(self):
        assert format_countdown(timedelta(seconds=125.9)) == "2:05"
        assert format_countdown(timedelta(milliseconds=500)) == "0:00"
