"""
Local speech backend - on-device synthesis via pyttsx3.

No network, no credentials. This is the last step of the fallback
chain and is expected to work wherever a platform speech driver exists
(SAPI5, NSSpeechSynthesizer, espeak).
"""

from __future__ import annotations

import logging
import threading
from typing import Any

from voice_announcer.engine.base import LocalSpeechBackend, select_voice
from voice_announcer.errors import LocalSpeechError

logger = logging.getLogger(__name__)

# pyttsx3 rate is words per minute; 1.0x maps to this
BASE_WORDS_PER_MINUTE = 170


class Pyttsx3Backend(LocalSpeechBackend):
    """Platform text-to-speech through pyttsx3.

    The engine is created lazily on first use and reused. Voice choice
    is cached per language.
    """

    def __init__(self, *, driver_name: str | None = None, base_rate: int = BASE_WORDS_PER_MINUTE):
        self._driver_name = driver_name
        self._base_rate = base_rate
        self._engine = None
        self._voice_cache: dict[str, Any] = {}
        self._lock = threading.Lock()

    @property
    def name(self) -> str:
        return "local"

    def _get_engine(self):
        """Lazy-load the pyttsx3 engine."""
        if self._engine is None:
            try:
                import pyttsx3
                self._engine = pyttsx3.init(self._driver_name)
            except ImportError:
                raise LocalSpeechError("pyttsx3 package required. Install with: pip install pyttsx3")
            except (RuntimeError, OSError) as e:
                raise LocalSpeechError(f"No platform speech driver available: {e}")
        return self._engine

    def list_voices(self) -> list[Any]:
        try:
            return list(self._get_engine().getProperty("voices") or [])
        except LocalSpeechError as e:
            logger.warning("Cannot list local voices: %s", e)
            return []

    def _voice_for(self, language: str) -> Any | None:
        if language not in self._voice_cache:
            voice = select_voice(self.list_voices(), language)
            if voice is None:
                logger.info("No %s voice installed, using platform default", language)
            self._voice_cache[language] = voice
        return self._voice_cache[language]

    def begin(
        self,
        text: str,
        *,
        volume: float = 1.0,
        rate: float = 1.0,
        pitch: float = 1.0,
        language: str = "pt",
    ) -> None:
        engine = self._get_engine()
        voice = self._voice_for(language)
        with self._lock:
            if voice is not None:
                engine.setProperty("voice", voice.id)
            engine.setProperty("volume", volume)
            engine.setProperty("rate", int(self._base_rate * rate))
            # pyttsx3 drivers expose no pitch property; pitch is accepted and ignored
            engine.say(text)

    def wait(self) -> None:
        engine = self._get_engine()
        try:
            engine.runAndWait()
        except (RuntimeError, OSError) as e:
            raise LocalSpeechError(f"Local speech failed: {e}")

    def stop(self) -> None:
        if self._engine is None:
            return
        with self._lock:
            self._engine.stop()


def is_available() -> bool:
    try:
        import pyttsx3  # noqa: F401
        return True
    except ImportError:
        return False


__all__ = ["Pyttsx3Backend", "is_available"]
