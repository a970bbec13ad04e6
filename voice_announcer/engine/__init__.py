"""
Engine module - speech backends and their contracts.

The engine knows nothing about scheduling; it turns one text into audio
(remote) or speech (local).
"""

from voice_announcer.engine.base import (
    SynthesisResponse,
    RemoteSpeechBackend,
    BaseRemoteBackend,
    LocalSpeechBackend,
    select_voice,
)
from voice_announcer.engine.loader import load_remote_backend, load_local_backend, list_backends
from voice_announcer.engine.backends import (
    MockRemoteBackend,
    MockLocalBackend,
    ELEVENLABS_AVAILABLE,
    LOCAL_AVAILABLE,
)

__all__ = [
    "SynthesisResponse",
    "RemoteSpeechBackend",
    "BaseRemoteBackend",
    "LocalSpeechBackend",
    "select_voice",
    "load_remote_backend",
    "load_local_backend",
    "list_backends",
    "MockRemoteBackend",
    "MockLocalBackend",
    "ELEVENLABS_AVAILABLE",
    "LOCAL_AVAILABLE",
]
