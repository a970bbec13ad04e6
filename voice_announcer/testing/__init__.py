"""
Testing Utilities

Doubles for running the announcer without network, audio devices or
real time.

Components:
    ManualClock         - Clock moved by hand
    RecordingPlayer     - AudioPlayer that records payloads
    RecordingMediaSink  - MediaSink that records multipliers
    MockRemoteBackend   - Remote TTS with failure injection
    MockLocalBackend    - On-device TTS with failure injection

Usage:
    from voice_announcer.testing import ManualClock, RecordingPlayer, MockRemoteBackend

    clock = ManualClock(datetime(2024, 5, 1, 21, 29, 59))
    engine = SpeechEngine(
        backends={EngineKind.MURF: MockRemoteBackend("murf", fail=True)},
        player=RecordingPlayer(),
    )
"""

from voice_announcer.clock import ManualClock

from voice_announcer.testing.mock import (
    RecordingPlayer,
    RecordingMediaSink,
)

from voice_announcer.engine.backends.mock import (
    CallRecord,
    MockRemoteBackend,
    MockLocalBackend,
)

__all__ = [
    "ManualClock",
    "RecordingPlayer",
    "RecordingMediaSink",
    "CallRecord",
    "MockRemoteBackend",
    "MockLocalBackend",
]
