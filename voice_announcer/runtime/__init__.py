"""
Runtime module - speech delivery, playback, and media ducking.

Playback and ducking are runtime concerns; the engine package only turns
text into audio payloads.
"""

from voice_announcer.runtime.speech import (
    SpeechEngine,
    SpeechState,
    FALLBACK_CHAINS,
    fallback_chain,
)

from voice_announcer.runtime.playback import (
    AudioClip,
    AudioPlayer,
    SoundDevicePlayer,
    apply_volume,
    decode_audio,
    save_wav,
)

from voice_announcer.runtime.ducking import (
    DuckingEnvelope,
    DuckingCoordinator,
    MediaSink,
    CallbackMediaSink,
    LoggingMediaSink,
    DUCKING_SUBTLE,
    DUCKING_STANDARD,
    DUCKING_ANNOUNCEMENT,
)

__all__ = [
    # Speech
    "SpeechEngine",
    "SpeechState",
    "FALLBACK_CHAINS",
    "fallback_chain",
    # Playback
    "AudioClip",
    "AudioPlayer",
    "SoundDevicePlayer",
    "apply_volume",
    "decode_audio",
    "save_wav",
    # Ducking
    "DuckingEnvelope",
    "DuckingCoordinator",
    "MediaSink",
    "CallbackMediaSink",
    "LoggingMediaSink",
    "DUCKING_SUBTLE",
    "DUCKING_STANDARD",
    "DUCKING_ANNOUNCEMENT",
]
