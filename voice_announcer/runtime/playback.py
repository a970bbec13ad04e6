"""
Playback - decode synthesized audio and play it on the output device.

A player owns at most one live stream. Playback is split into start()
(non-blocking) and wait() so the speech engine can start a clip while
holding its lock and cancel it from any thread with stop().
"""

from __future__ import annotations

import io
import logging
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path

import numpy as np

from voice_announcer.errors import PlaybackError

logger = logging.getLogger(__name__)


@dataclass
class AudioClip:
    """Decoded mono PCM, float32 in [-1, 1]."""
    pcm: np.ndarray
    sample_rate: int

    @property
    def duration_seconds(self) -> float:
        if self.sample_rate <= 0:
            return 0.0
        return len(self.pcm) / self.sample_rate


def apply_volume(pcm: np.ndarray, volume: float) -> np.ndarray:
    """Apply constant gain to PCM audio.

    Args:
        pcm: Float32 PCM audio samples
        volume: Gain level (0.0-1.0)

    Returns:
        PCM audio with gain applied (the input itself at full volume)
    """
    if not 0.0 <= volume <= 1.0:
        raise ValueError(f"volume must be 0.0-1.0, got {volume}")
    if volume >= 1.0 or len(pcm) == 0:
        return pcm
    return (pcm * volume).astype(np.float32)


def decode_audio(audio: bytes) -> AudioClip:
    """Decode an encoded payload (MP3 from the remote engines) to PCM.

    Raises:
        PlaybackError: If the payload is empty or cannot be decoded.
    """
    if not audio:
        raise PlaybackError("Empty audio payload")

    try:
        from pydub import AudioSegment
    except ImportError:
        raise PlaybackError("pydub package required for decoding. Install with: pip install pydub")

    try:
        segment = AudioSegment.from_file(io.BytesIO(audio))
    except Exception as e:
        # pydub surfaces ffmpeg problems as CouldntDecodeError, OSError or IndexError
        raise PlaybackError(f"Could not decode audio: {e}")

    segment = segment.set_channels(1)
    samples = np.array(segment.get_array_of_samples(), dtype=np.float32)
    full_scale = float(1 << (8 * segment.sample_width - 1))
    return AudioClip(pcm=samples / full_scale, sample_rate=segment.frame_rate)


def save_wav(clip: AudioClip, path: Path | str) -> Path:
    """Write a clip to a WAV file."""
    import soundfile as sf

    path = Path(path)
    if path.suffix.lower() != ".wav":
        path = path.with_suffix(".wav")
    path.parent.mkdir(parents=True, exist_ok=True)
    sf.write(str(path), clip.pcm, clip.sample_rate)
    return path


class AudioPlayer(ABC):
    """Plays one clip at a time."""

    def decode(self, audio: bytes) -> AudioClip:
        return decode_audio(audio)

    @abstractmethod
    def start(self, clip: AudioClip, volume: float) -> None:
        """Begin playback. Must not block until the clip ends."""
        ...

    @abstractmethod
    def wait(self) -> None:
        """Block until playback ends or is stopped.

        Raises:
            PlaybackError: If the device failed during playback.
        """
        ...

    @abstractmethod
    def stop(self) -> None:
        """Stop playback. Safe to call when nothing is playing."""
        ...


class SoundDevicePlayer(AudioPlayer):
    """Player backed by the sounddevice default output stream."""

    def __init__(self, device: int | str | None = None):
        self._device = device
        self._lock = threading.Lock()
        self._starts = 0
        # Token of the clip currently playing, None when silent
        self._playing: int | None = None

    @property
    def is_playing(self) -> bool:
        return self._playing is not None

    def _sd(self):
        try:
            import sounddevice as sd
        except ImportError:
            raise PlaybackError("sounddevice package required. Install with: pip install sounddevice")
        except OSError as e:
            raise PlaybackError(f"PortAudio library not found: {e}")
        return sd

    def start(self, clip: AudioClip, volume: float) -> None:
        sd = self._sd()
        data = apply_volume(clip.pcm, volume)
        try:
            sd.play(data, clip.sample_rate, device=self._device)
        except sd.PortAudioError as e:
            raise PlaybackError(f"Audio device error: {e}")
        with self._lock:
            self._starts += 1
            self._playing = self._starts

    def wait(self) -> None:
        with self._lock:
            token = self._playing
        if token is None:
            return
        sd = self._sd()
        try:
            sd.wait()
        except sd.PortAudioError as e:
            raise PlaybackError(f"Audio device error: {e}")
        finally:
            with self._lock:
                # Only the clip this call waited on is marked finished
                if self._playing == token:
                    self._playing = None

    def stop(self) -> None:
        with self._lock:
            if self._playing is None:
                return
            self._playing = None
        self._sd().stop()


__all__ = [
    "AudioClip",
    "AudioPlayer",
    "SoundDevicePlayer",
    "apply_volume",
    "decode_audio",
    "save_wav",
]
