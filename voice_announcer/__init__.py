"""
Voice Announcer - spoken announcements for a gym display.

Architecture:
    Clock tick → Schedulers → AnnouncementBoard → SpeechEngine → audio
                                    ↓
                            DuckingCoordinator → background media volume

Public API (stable):
    AnnouncementBoard   - Composition root. Owns every component below.
    SpeechEngine        - Serialized speech with Murf → ElevenLabs → local fallback.
    RecurringScheduler  - Interval timers with message rotation.
    ClosingAnnouncer    - Fixed daily closing notices, once per day each.
    HourlyAnnouncer     - Speaks the time on the hour (off by default).
    DuckingCoordinator  - Lowers background media while announcing.
    Config              - Announcer configuration.

Internals:
    voice_announcer.engine      - Remote and local speech backends
    voice_announcer.runtime     - Speech queue, playback, ducking
    voice_announcer.scheduling  - Timers, closing schedule, hourly chime, ticker
    voice_announcer.testing     - ManualClock, RecordingPlayer, mock backends

Example:
    from voice_announcer import AnnouncementBoard, Config

    with AnnouncementBoard(Config(data_dir="./data")) as board:
        board.timers.start()
        board.start()
        board.announce("Bom treino a todos!")
"""

from voice_announcer.config import Config
from voice_announcer.errors import (
    AnnouncerError,
    SynthesisError,
    PlaybackError,
    LocalSpeechError,
)
from voice_announcer.settings import (
    EngineKind,
    SpeechSettings,
    VoiceInfo,
    DEFAULT_SETTINGS,
)
from voice_announcer.storage import JsonFileStore, MemoryStore
from voice_announcer.clock import SystemClock, ManualClock
from voice_announcer.runtime import (
    SpeechEngine,
    SpeechState,
    DuckingCoordinator,
    DuckingEnvelope,
)
from voice_announcer.scheduling import (
    RecurringScheduler,
    TimerConfig,
    ClosingAnnouncer,
    ClosingAnnouncement,
    HourlyAnnouncer,
)
from voice_announcer.board import AnnouncementBoard, Announcement

__version__ = "1.0.0"

__all__ = [
    # Composition
    "AnnouncementBoard",
    "Announcement",
    "Config",
    # Speech
    "SpeechEngine",
    "SpeechState",
    "EngineKind",
    "SpeechSettings",
    "VoiceInfo",
    "DEFAULT_SETTINGS",
    # Scheduling
    "RecurringScheduler",
    "TimerConfig",
    "ClosingAnnouncer",
    "ClosingAnnouncement",
    "HourlyAnnouncer",
    # Ducking
    "DuckingCoordinator",
    "DuckingEnvelope",
    # Infrastructure
    "JsonFileStore",
    "MemoryStore",
    "SystemClock",
    "ManualClock",
    # Errors
    "AnnouncerError",
    "SynthesisError",
    "PlaybackError",
    "LocalSpeechError",
    "__version__",
]
