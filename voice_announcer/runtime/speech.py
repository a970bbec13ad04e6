"""
Speech Delivery Engine - serialized announcement speech with engine fallback.

State machine:

    IDLE -> LOADING (remote synthesis in flight) -> SPEAKING -> IDLE
      \\__________________ stop() ___________________/-> STOPPED -> IDLE

Guarantees:
    - speak() never blocks; items are spoken strictly one at a time
    - at most one audio resource (player clip or local utterance) is alive
    - stop() discards everything queued and silences the current item
    - remote failures fall through MURF -> ELEVENLABS -> LOCAL, once per item

A worker thread exists only while there is something to say. Every
stop() starts a new generation; a worker from an older generation never
touches engine state again and never starts audio.
"""

from __future__ import annotations

import logging
import threading
import time
from collections import deque
from enum import Enum
from typing import Callable, TypeVar

from voice_announcer.config import Config
from voice_announcer.engine.base import LocalSpeechBackend, RemoteSpeechBackend
from voice_announcer.engine.loader import load_local_backend, load_remote_backend
from voice_announcer.errors import LocalSpeechError, PlaybackError, SynthesisError
from voice_announcer.monitoring.logging import StructuredLogger, get_logger
from voice_announcer.runtime.playback import AudioPlayer, SoundDevicePlayer
from voice_announcer.settings import (
    DEFAULT_SETTINGS,
    ELEVENLABS_VOICES,
    MURF_VOICES,
    EngineKind,
    SpeechSettings,
    VoiceInfo,
    default_settings,
    load_settings,
    save_settings,
    voices_for_engine,
)
from voice_announcer.storage import KeyValueStore

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Seconds a new worker waits for a stopped one to release the audio device
WORKER_HANDOFF_TIMEOUT = 5.0


class SpeechState(Enum):
    """State of the speech engine."""

    IDLE = "idle"
    LOADING = "loading"
    SPEAKING = "speaking"
    STOPPED = "stopped"


FALLBACK_CHAINS: dict[EngineKind, tuple[EngineKind, ...]] = {
    EngineKind.MURF: (EngineKind.MURF, EngineKind.ELEVENLABS, EngineKind.LOCAL),
    EngineKind.ELEVENLABS: (EngineKind.ELEVENLABS, EngineKind.LOCAL),
    EngineKind.LOCAL: (EngineKind.LOCAL,),
}


def fallback_chain(engine: EngineKind | str) -> tuple[EngineKind, ...]:
    """Engines tried, in order, for an item when ``engine`` is configured."""
    return FALLBACK_CHAINS[EngineKind.parse(engine)]


class SpeechEngine:
    """Queue-driven speech delivery.

    Example:
        engine = SpeechEngine(store=JsonFileStore("./data"))
        engine.on_idle(ducking.on_announcement_end)

        engine.speak("Atenção atletas!")
        engine.speak("A academia fecha em 15 minutos.", priority=True)

        engine.update_settings(engine="elevenlabs", voice_id="XrExE9yKIg1WjnnlVkGX")
        engine.stop()
    """

    def __init__(
        self,
        settings: SpeechSettings | None = None,
        *,
        store: KeyValueStore | None = None,
        backends: dict[EngineKind, RemoteSpeechBackend] | None = None,
        local_backend: LocalSpeechBackend | None = None,
        player: AudioPlayer | None = None,
        config: Config | None = None,
        log: StructuredLogger | None = None,
    ):
        """Initialize the engine.

        Args:
            settings: Initial settings (loaded from ``store`` if omitted, else
                the defaults for ``config.default_engine``).
            store: Where settings are persisted on update.
            backends: Remote backends by engine; missing ones are loaded
                from ``config`` on first use.
            local_backend: On-device engine (pyttsx3 if omitted).
            player: Audio output for remote payloads (sounddevice if omitted).
            config: Credentials and locale for lazily loaded backends.
            log: Structured logger for lifecycle events.
        """
        self._store = store
        default = default_settings(config.default_engine) if config else DEFAULT_SETTINGS
        self._settings = settings or load_settings(store, default)
        self._config = config
        self._locale = config.locale if config else "pt-BR"
        self._backends: dict[EngineKind, RemoteSpeechBackend] = {
            EngineKind.parse(k): v for k, v in (backends or {}).items()
        }
        self._local = local_backend
        self._player = player
        self._log = (log or get_logger()).bind(component="speech")

        self._lock = threading.RLock()
        self._priority_lane: deque[str] = deque()
        self._queue: deque[str] = deque()
        self._processing = False
        self._generation = 0
        self._worker: threading.Thread | None = None
        self._state = SpeechState.IDLE
        self._idle = threading.Event()
        self._idle.set()

        self._start_callbacks: list[Callable[[str], None]] = []
        self._complete_callbacks: list[Callable[[str], None]] = []
        self._idle_callbacks: list[Callable[[], None]] = []
        self._state_callbacks: list[Callable[[SpeechState], None]] = []

    # ------------------------------------------------------------------
    # Observable state
    # ------------------------------------------------------------------

    @property
    def state(self) -> SpeechState:
        """Current engine state."""
        return self._state

    @property
    def is_speaking(self) -> bool:
        return self._state is SpeechState.SPEAKING

    @property
    def is_loading(self) -> bool:
        return self._state is SpeechState.LOADING

    @property
    def is_busy(self) -> bool:
        """True while a worker is processing the queue."""
        return self._processing

    @property
    def queue_depth(self) -> int:
        """Items waiting behind the current one."""
        with self._lock:
            return len(self._queue) + len(self._priority_lane)

    @property
    def settings(self) -> SpeechSettings:
        return self._settings

    @property
    def voices(self) -> list[VoiceInfo]:
        """Remote voice catalog for the configured engine."""
        return voices_for_engine(self._settings.engine)

    # ------------------------------------------------------------------
    # Observers
    # ------------------------------------------------------------------

    def on_start(self, callback: Callable[[str], None]) -> "SpeechEngine":
        """Called with the text when an item becomes audible."""
        self._start_callbacks.append(callback)
        return self

    def on_complete(self, callback: Callable[[str], None]) -> "SpeechEngine":
        """Called with the text when an item was spoken to the end."""
        self._complete_callbacks.append(callback)
        return self

    def on_idle(self, callback: Callable[[], None]) -> "SpeechEngine":
        """Called when the queue has drained or was stopped."""
        self._idle_callbacks.append(callback)
        return self

    def on_state_change(self, callback: Callable[[SpeechState], None]) -> "SpeechEngine":
        """Called on every state transition."""
        self._state_callbacks.append(callback)
        return self

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def speak(self, text: str, priority: bool = False) -> None:
        """Queue text for speech. Returns immediately.

        Args:
            text: Text to speak. Blank text is ignored.
            priority: Speak before any regular items still waiting.
        """
        if not text or not text.strip():
            logger.debug("Ignoring blank speech request")
            return

        with self._lock:
            lane = self._priority_lane if priority else self._queue
            lane.append(text)
            if self._processing:
                return
            self._processing = True
            self._idle.clear()
            generation = self._generation
            previous = self._worker
            worker = threading.Thread(
                target=self._worker_loop,
                args=(generation, previous),
                daemon=True,
                name="speech-queue-worker",
            )
            self._worker = worker
        worker.start()

    def stop(self) -> None:
        """Silence the current item and discard everything queued.

        Safe to call when idle.
        """
        with self._lock:
            self._generation += 1
            dropped = len(self._queue) + len(self._priority_lane)
            self._queue.clear()
            self._priority_lane.clear()
            was_busy = self._processing
            self._processing = False
            previous = self._state
            self._state = SpeechState.IDLE
            # Under the lock so no worker can be starting audio meanwhile
            if self._player is not None:
                self._player.stop()
            if self._local is not None:
                self._local.stop()
            self._idle.set()

        if previous is not SpeechState.IDLE:
            self._notify(self._state_callbacks, SpeechState.STOPPED)
            self._notify(self._state_callbacks, SpeechState.IDLE)
        if was_busy:
            self._log.info("speech_stopped", "Speech stopped", dropped=dropped)
            self._notify(self._idle_callbacks)

    def update_settings(self, **changes) -> SpeechSettings:
        """Merge setting changes. The item being spoken is not affected.

        Raises:
            ValueError: If a value is invalid or a field is unknown.
        """
        with self._lock:
            self._settings = self._settings.merged(**changes)
            settings = self._settings
        save_settings(self._store, settings)
        logger.info("Speech settings updated: %s", ", ".join(sorted(changes)))
        return settings

    def wait_until_idle(self, timeout: float | None = None) -> bool:
        """Block until the queue has drained. Returns False on timeout."""
        return self._idle.wait(timeout)

    # ------------------------------------------------------------------
    # Worker
    # ------------------------------------------------------------------

    def _worker_loop(self, generation: int, previous: threading.Thread | None) -> None:
        if previous is not None and previous.is_alive():
            # A stopped worker may still be inside player.wait() or local.wait()
            previous.join(WORKER_HANDOFF_TIMEOUT)
            if previous.is_alive():
                logger.warning(
                    "Previous speech worker still busy after %.1fs", WORKER_HANDOFF_TIMEOUT
                )

        while True:
            with self._lock:
                if generation != self._generation:
                    return
                text = self._dequeue()
                if text is None:
                    self._processing = False
                    break

            try:
                self._deliver(text, generation)
            except Exception:
                logger.exception("Unexpected error while speaking; item dropped")
                self._transition(generation, SpeechState.IDLE)

        with self._lock:
            if self._processing:
                # speak() already began a new busy period; its worker owns the idle edge
                return
        self._notify(self._idle_callbacks)
        with self._lock:
            if not self._processing:
                self._idle.set()

    def _dequeue(self) -> str | None:
        if self._priority_lane:
            return self._priority_lane.popleft()
        if self._queue:
            return self._queue.popleft()
        return None

    def _deliver(self, text: str, generation: int) -> None:
        settings = self._settings
        chain = fallback_chain(settings.engine)
        started = time.perf_counter()

        for position, kind in enumerate(chain):
            if self._is_stale(generation):
                return
            try:
                if kind is EngineKind.LOCAL:
                    spoke = self._speak_local(text, settings, generation)
                else:
                    spoke = self._speak_remote(kind, text, settings, generation)
            except SynthesisError as e:
                next_kind = chain[position + 1]
                self._log.speech_fallback(
                    text,
                    failed=kind.value,
                    next_engine=next_kind.value,
                    reason=e.reason,
                )
                continue
            except (PlaybackError, LocalSpeechError) as e:
                self._log.speech_error(e, engine=kind.value)
                break

            if spoke and not self._is_stale(generation):
                duration_ms = (time.perf_counter() - started) * 1000
                self._log.speech_complete(text, engine=kind.value, duration_ms=duration_ms)
                self._notify(self._complete_callbacks, text)
            break

        self._transition(generation, SpeechState.IDLE)

    def _speak_remote(
        self,
        kind: EngineKind,
        text: str,
        settings: SpeechSettings,
        generation: int,
    ) -> bool:
        backend = self._remote_backend(kind)
        if not self._transition(generation, SpeechState.LOADING):
            return False

        response = backend.synthesize(text, self._voice_for(kind, settings))
        if not response.success:
            raise SynthesisError(kind.value, response.error or "synthesis failed")
        audio = response.audio_bytes()
        if not audio:
            raise SynthesisError(kind.value, "empty audio payload")

        player = self._get_player()
        try:
            clip = player.decode(audio)
        except PlaybackError as e:
            raise SynthesisError(kind.value, f"undecodable audio payload: {e}")

        with self._lock:
            if generation != self._generation:
                return False
            player.start(clip, settings.volume)
        self._transition(generation, SpeechState.SPEAKING)
        self._log.speech_start(text, engine=kind.value)
        self._notify(self._start_callbacks, text)

        player.wait()
        return True

    def _speak_local(self, text: str, settings: SpeechSettings, generation: int) -> bool:
        local = self._get_local()
        with self._lock:
            if generation != self._generation:
                return False
            local.begin(
                text,
                volume=settings.volume,
                rate=settings.rate,
                pitch=settings.pitch,
                language=self._locale,
            )
        self._transition(generation, SpeechState.SPEAKING)
        self._log.speech_start(text, engine=EngineKind.LOCAL.value)
        self._notify(self._start_callbacks, text)

        local.wait()
        return True

    @staticmethod
    def _voice_for(kind: EngineKind, settings: SpeechSettings) -> str:
        if kind is settings.engine:
            return settings.voice_id
        # Fallback engines use their own default voice
        if kind is EngineKind.ELEVENLABS:
            return ELEVENLABS_VOICES[0].id
        return MURF_VOICES[0].id

    # ------------------------------------------------------------------
    # Resources
    # ------------------------------------------------------------------

    def _remote_backend(self, kind: EngineKind) -> RemoteSpeechBackend:
        backend = self._backends.get(kind)
        if backend is None:
            backend = load_remote_backend(kind, self._config)
            self._backends[kind] = backend
        return backend

    def _get_local(self) -> LocalSpeechBackend:
        with self._lock:
            if self._local is None:
                self._local = load_local_backend(self._config)
            return self._local

    def _get_player(self) -> AudioPlayer:
        with self._lock:
            if self._player is None:
                self._player = SoundDevicePlayer()
            return self._player

    # ------------------------------------------------------------------
    # State helpers
    # ------------------------------------------------------------------

    def _is_stale(self, generation: int) -> bool:
        with self._lock:
            return generation != self._generation

    def _transition(self, generation: int, state: SpeechState) -> bool:
        """Move to ``state`` if ``generation`` is still current."""
        with self._lock:
            if generation != self._generation:
                return False
            changed = self._state is not state
            self._state = state
        if changed:
            logger.debug("Speech state -> %s", state.value)
            self._notify(self._state_callbacks, state)
        return True

    def _notify(self, callbacks: list[Callable[..., T]], *args) -> None:
        for callback in list(callbacks):
            try:
                callback(*args)
            except Exception:
                logger.exception("Speech observer %r failed", callback)


__all__ = [
    "SpeechEngine",
    "SpeechState",
    "FALLBACK_CHAINS",
    "fallback_chain",
]
