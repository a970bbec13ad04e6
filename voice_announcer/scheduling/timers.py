"""
Recurring Timer Scheduler - independent interval timers with message rotation.

Each timer speaks its messages in turn, one every ``interval_minutes``.
Rescheduling is drift-relative: the next trigger is computed from the
moment a timer actually fired, not from its nominal due time.

Example:
    scheduler = RecurringScheduler(
        lambda message, timer: speech.speak(message),
        store=JsonFileStore("./data"),
    )
    scheduler.start()
    scheduler.tick()                       # called once per second
    scheduler.get_time_until_next("ads")   # "9:59"
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from typing import Any, Callable

from voice_announcer.clock import Clock, SystemClock
from voice_announcer.scheduling.countdown import format_countdown
from voice_announcer.storage import KeyValueStore

logger = logging.getLogger(__name__)

TIMERS_STORAGE_KEY = "gym-announcement-timers"

AnnounceCallback = Callable[[str, "TimerConfig"], None]


@dataclass
class TimerConfig:
    """User-editable configuration of one recurring timer.

    Attributes:
        id: Stable unique identifier.
        name: Display name.
        interval_minutes: Minutes between announcements.
        messages: Rotation of messages; blank entries are dropped.
        enabled: Whether the timer fires while the scheduler runs.
        icon: Presentation hint.
        color: Presentation hint.
    """
    id: str
    name: str
    interval_minutes: float
    messages: list[str]
    enabled: bool = True
    icon: str = ""
    color: str = ""

    def __post_init__(self):
        if not self.id:
            raise ValueError("Timer id must not be empty")
        if isinstance(self.messages, str) or not isinstance(self.messages, (list, tuple)):
            raise ValueError("messages must be a list of strings")
        if isinstance(self.interval_minutes, bool) or not isinstance(self.interval_minutes, (int, float)):
            raise ValueError(f"interval_minutes must be a number, got {self.interval_minutes!r}")
        if self.interval_minutes <= 0:
            raise ValueError(f"interval_minutes must be > 0, got {self.interval_minutes}")

        self.messages = [m for m in self.messages if isinstance(m, str) and m.strip()]
        if not self.messages:
            raise ValueError(f"Timer {self.id!r} needs at least one non-empty message")

    @property
    def interval(self) -> timedelta:
        return timedelta(minutes=self.interval_minutes)

    def merged(self, **changes: Any) -> "TimerConfig":
        """Return a validated copy with ``changes`` applied."""
        unknown = set(changes) - set(self.__dataclass_fields__)
        if unknown:
            raise ValueError(f"Unknown timer fields: {', '.join(sorted(unknown))}")
        if "id" in changes and changes["id"] != self.id:
            raise ValueError("Timer id cannot be changed")
        if "messages" not in changes:
            changes["messages"] = list(self.messages)
        return replace(self, **changes)

    def to_dict(self) -> dict:
        """Serialize with the camelCase keys used on disk."""
        return {
            "id": self.id,
            "name": self.name,
            "intervalMinutes": self.interval_minutes,
            "messages": list(self.messages),
            "enabled": self.enabled,
            "icon": self.icon,
            "color": self.color,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "TimerConfig":
        """Parse a stored record. Accepts camelCase or snake_case keys.

        Raises:
            KeyError: If a required field is missing.
            ValueError: If a field is invalid.
        """
        interval = data.get("intervalMinutes", data.get("interval_minutes"))
        if interval is None:
            raise KeyError("intervalMinutes")
        return cls(
            id=data["id"],
            name=data.get("name", data["id"]),
            interval_minutes=interval,
            messages=data["messages"],
            enabled=bool(data.get("enabled", True)),
            icon=data.get("icon", ""),
            color=data.get("color", ""),
        )


@dataclass
class TimerRuntimeState:
    """Derived, in-memory progress of one timer."""
    id: str
    next_trigger: datetime
    last_triggered: datetime | None = None
    message_index: int = 0

    def current_message(self, config: TimerConfig) -> str:
        """Message the timer will speak next."""
        return config.messages[self.message_index % len(config.messages)]

    def advance(self, config: TimerConfig, now: datetime) -> None:
        """Roll forward after a fire at ``now``."""
        self.last_triggered = now
        self.next_trigger = now + config.interval
        self.message_index = (self.message_index + 1) % len(config.messages)


DEFAULT_TIMERS: tuple[TimerConfig, ...] = (
    TimerConfig(
        id="announcements",
        name="Avisos",
        interval_minutes=30,
        messages=[
            "Atenção atletas! Lembrem-se de se hidratar durante o treino.",
            "Aviso importante: mantenha sua toalha sempre com você.",
            "Lembre-se de guardar os equipamentos após o uso.",
            "Atenção: respeite o limite de tempo nos aparelhos.",
        ],
        icon="📢",
        color="primary",
    ),
    TimerConfig(
        id="ads",
        name="Propagandas",
        interval_minutes=10,
        messages=[
            "Conheça nossos planos especiais com desconto! Fale com a recepção.",
            "Aulas de spinning e funcional com vagas abertas. Inscreva-se já!",
            "Traga um amigo e ganhe 30 dias grátis!",
            "Suplementos com preço especial na nossa loja.",
        ],
        icon="🎯",
        color="accent",
    ),
    TimerConfig(
        id="motivation",
        name="Motivação",
        interval_minutes=20,
        messages=[
            "Você está indo muito bem! Continue assim!",
            "Cada repetição te deixa mais forte. Não desista!",
            "O único treino ruim é o que você não faz. Parabéns por estar aqui!",
            "Sua dedicação de hoje é o resultado de amanhã!",
            "Força, foco e determinação! Você consegue!",
        ],
        icon="💪",
        color="success",
    ),
)


def default_timers() -> list[TimerConfig]:
    """Fresh, independently mutable copies of DEFAULT_TIMERS."""
    return [replace(t, messages=list(t.messages)) for t in DEFAULT_TIMERS]


def load_timers(store: KeyValueStore | None) -> list[TimerConfig] | None:
    """Load the stored timer list.

    Returns:
        The timers, or None when nothing usable is stored.
    """
    if store is None:
        return None
    data = store.load(TIMERS_STORAGE_KEY)
    if data is None:
        return None
    try:
        if not isinstance(data, list) or not data:
            raise ValueError("expected a non-empty list of timers")
        timers = [TimerConfig.from_dict(item) for item in data]
        ids = [t.id for t in timers]
        if len(set(ids)) != len(ids):
            raise ValueError("duplicate timer ids")
    except (AttributeError, KeyError, TypeError, ValueError) as e:
        logger.warning("Corrupt timer configuration, using defaults: %s", e)
        return None
    return timers


def save_timers(store: KeyValueStore | None, timers: list[TimerConfig]) -> None:
    if store is not None:
        store.save(TIMERS_STORAGE_KEY, [t.to_dict() for t in timers])


class RecurringScheduler:
    """Drives a set of recurring timers from a shared clock tick.

    The scheduler owns both the configuration list and the runtime state.
    Configuration changes are persisted immediately; runtime state lives
    only in memory.
    """

    def __init__(
        self,
        on_announce: AnnounceCallback,
        *,
        store: KeyValueStore | None = None,
        clock: Clock | None = None,
    ):
        """Initialize the scheduler.

        Args:
            on_announce: Called as ``on_announce(message, config)`` per fire.
            store: Persistence for the configuration list.
            clock: Wall-clock source (system clock if omitted).
        """
        self._on_announce = on_announce
        self._store = store
        self._clock = clock or SystemClock()
        self._lock = threading.RLock()
        self._running = False

        timers = load_timers(store)
        if timers is None:
            timers = default_timers()
            save_timers(store, timers)
        self._timers: list[TimerConfig] = timers

        now = self._clock.now()
        self._states: dict[str, TimerRuntimeState] = {
            t.id: TimerRuntimeState(id=t.id, next_trigger=now + t.interval)
            for t in self._timers
        }

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def timers(self) -> list[TimerConfig]:
        """Configuration list, in firing order."""
        with self._lock:
            return list(self._timers)

    @property
    def states(self) -> list[TimerRuntimeState]:
        """Snapshot of the runtime state of every timer."""
        with self._lock:
            return [replace(self._states[t.id]) for t in self._timers]

    def get_timer(self, timer_id: str) -> TimerConfig | None:
        with self._lock:
            return self._find(timer_id)

    def state_for(self, timer_id: str) -> TimerRuntimeState | None:
        with self._lock:
            state = self._states.get(timer_id)
            return replace(state) if state else None

    def get_time_until_next(self, timer_id: str) -> str | None:
        """Countdown to the timer's next fire, ``None`` if stopped or unknown."""
        with self._lock:
            state = self._states.get(timer_id)
            if state is None or not self._running:
                return None
            next_trigger = state.next_trigger
        return format_countdown(next_trigger - self._clock.now())

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Re-arm every timer one interval from now and start firing.

        Calling start() while running restarts all countdowns.
        """
        with self._lock:
            now = self._clock.now()
            for timer in self._timers:
                self._states[timer.id].next_trigger = now + timer.interval
            self._running = True
        logger.info("Recurring timers started (%d configured)", len(self._timers))

    def stop(self) -> None:
        """Stop firing. Runtime state is kept."""
        with self._lock:
            self._running = False
        logger.info("Recurring timers stopped")

    def tick(self) -> list[tuple[str, TimerConfig]]:
        """Fire every enabled timer that is due, in configuration order.

        Returns:
            The ``(message, config)`` pairs announced on this tick.
        """
        fired: list[tuple[str, TimerConfig]] = []
        with self._lock:
            if not self._running:
                return fired
            now = self._clock.now()
            for timer in self._timers:
                if not timer.enabled:
                    continue
                state = self._states[timer.id]
                if now >= state.next_trigger:
                    fired.append((state.current_message(timer), timer))
                    state.advance(timer, now)

        for message, timer in fired:
            logger.debug("Timer %s due: %s", timer.id, message)
            self._announce(message, timer)
        return fired

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def trigger_now(self, timer_id: str, message_index: int | None = None) -> bool:
        """Announce a timer's current message immediately, running or not.

        Args:
            timer_id: Timer to announce.
            message_index: Speak this message instead; the rotation
                continues after it.

        Returns:
            False if the timer is unknown.

        Raises:
            ValueError: If ``message_index`` is out of range.
        """
        with self._lock:
            timer = self._find(timer_id)
            if timer is None:
                return False
            state = self._states[timer_id]
            if message_index is not None:
                if not 0 <= message_index < len(timer.messages):
                    raise ValueError(
                        f"message index must be 0-{len(timer.messages) - 1}, got {message_index}"
                    )
                state.message_index = message_index
            message = state.current_message(timer)
            state.advance(timer, self._clock.now())

        logger.debug("Timer %s triggered manually", timer_id)
        self._announce(message, timer)
        return True

    def update_timer(self, timer_id: str, **changes: Any) -> bool:
        """Merge changes into a timer's configuration and persist.

        A running timer's next trigger is not recomputed; a new interval
        applies from its next fire.

        Returns:
            False if the timer is unknown.

        Raises:
            ValueError: If the merged configuration is invalid.
        """
        with self._lock:
            for index, timer in enumerate(self._timers):
                if timer.id == timer_id:
                    self._timers[index] = timer.merged(**changes)
                    break
            else:
                return False
            save_timers(self._store, self._timers)
        logger.info("Timer %s updated: %s", timer_id, ", ".join(sorted(changes)))
        return True

    def add_timer(self, config: TimerConfig) -> TimerConfig:
        """Append a timer. Its first fire is one interval from now.

        Raises:
            ValueError: If a timer with the same id exists.
        """
        with self._lock:
            if self._find(config.id) is not None:
                raise ValueError(f"Timer {config.id!r} already exists")
            self._timers.append(config)
            self._states[config.id] = TimerRuntimeState(
                id=config.id,
                next_trigger=self._clock.now() + config.interval,
            )
            save_timers(self._store, self._timers)
        logger.info("Timer %s added", config.id)
        return config

    def remove_timer(self, timer_id: str) -> bool:
        """Remove a timer and its runtime state.

        Returns:
            False if the timer is unknown.
        """
        with self._lock:
            timer = self._find(timer_id)
            if timer is None:
                return False
            self._timers.remove(timer)
            del self._states[timer_id]
            save_timers(self._store, self._timers)
        logger.info("Timer %s removed", timer_id)
        return True

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _find(self, timer_id: str) -> TimerConfig | None:
        for timer in self._timers:
            if timer.id == timer_id:
                return timer
        return None

    def _announce(self, message: str, timer: TimerConfig) -> None:
        try:
            self._on_announce(message, timer)
        except Exception:
            logger.exception("Announce callback failed for timer %s", timer.id)


__all__ = [
    "TimerConfig",
    "TimerRuntimeState",
    "DEFAULT_TIMERS",
    "TIMERS_STORAGE_KEY",
    "RecurringScheduler",
    "default_timers",
    "load_timers",
    "save_timers",
]
