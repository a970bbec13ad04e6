"""
Engine backends.

Murf and the mock backends have no optional imports. ElevenLabs needs the
elevenlabs SDK and the local engine needs pyttsx3; both are imported
lazily, so the flags below only report whether they can work.
"""

from voice_announcer.engine.backends.mock import MockRemoteBackend, MockLocalBackend
from voice_announcer.engine.backends.murf import MurfBackend
from voice_announcer.engine.backends.elevenlabs import ElevenLabsBackend, ELEVENLABS_AVAILABLE
from voice_announcer.engine.backends.local import Pyttsx3Backend, is_available as local_available

LOCAL_AVAILABLE = local_available()

__all__ = [
    "MockRemoteBackend",
    "MockLocalBackend",
    "MurfBackend",
    "ElevenLabsBackend",
    "ELEVENLABS_AVAILABLE",
    "Pyttsx3Backend",
    "LOCAL_AVAILABLE",
]
