"""
ElevenLabs TTS Backend - secondary remote engine.

Usage:
    backend = ElevenLabsBackend(api_key="...")
    response = backend.synthesize("Bom treino!", "XrExE9yKIg1WjnnlVkGX")

Requires:
    - ELEVENLABS_API_KEY environment variable
    - elevenlabs package
"""

from __future__ import annotations

import os
import logging

from voice_announcer.engine.base import BaseRemoteBackend, SynthesisResponse
from voice_announcer.settings import ELEVENLABS_VOICES

logger = logging.getLogger(__name__)


# Voice settings tuned for public-address announcements
ANNOUNCEMENT_VOICE_SETTINGS = {
    "stability": 0.6,
    "similarity_boost": 0.8,
    "style": 0.4,
    "use_speaker_boost": True,
    "speed": 0.95,
}


class ElevenLabsBackend(BaseRemoteBackend):
    """ElevenLabs TTS backend using the ElevenLabs SDK.

    Audio comes back as MP3 bytes and is base64-encoded into the shared
    response shape.

    Limitations:
        - Requires API key and internet
        - Paid API (character-based pricing)
    """

    def __init__(
        self,
        *,
        api_key: str | None = None,
        model: str = "eleven_multilingual_v2",
        output_format: str = "mp3_44100_128",
        voice_settings: dict | None = None,
    ):
        """Initialize ElevenLabs TTS backend.

        Args:
            api_key: ElevenLabs API key (defaults to ELEVENLABS_API_KEY env var)
            model: Model to use (eleven_multilingual_v2, eleven_turbo_v2)
            output_format: Vendor output format
            voice_settings: Override for ANNOUNCEMENT_VOICE_SETTINGS
        """
        self._api_key = api_key or os.environ.get("ELEVENLABS_API_KEY")
        if not self._api_key:
            raise ValueError(
                "ElevenLabs API key required. Set ELEVENLABS_API_KEY environment "
                "variable or pass api_key parameter."
            )

        self._model = model
        self._output_format = output_format
        self._voice_settings = {**ANNOUNCEMENT_VOICE_SETTINGS, **(voice_settings or {})}

        # Lazy client
        self._client = None

    def _get_client(self):
        """Lazy-load ElevenLabs client."""
        if self._client is None:
            try:
                from elevenlabs.client import ElevenLabs
                self._client = ElevenLabs(api_key=self._api_key)
            except ImportError:
                raise ImportError(
                    "elevenlabs package required. Install with: pip install elevenlabs"
                )
        return self._client

    @property
    def name(self) -> str:
        return "elevenlabs"

    def resolve_voice(self, voice_id: str | None) -> str:
        """Map a catalog voice name to its id; pass raw ids through."""
        if not voice_id:
            return ELEVENLABS_VOICES[0].id
        for voice in ELEVENLABS_VOICES:
            if voice.name.lower() == voice_id.lower():
                return voice.id
        return voice_id

    def synthesize(self, text: str, voice_id: str) -> SynthesisResponse:
        if not text:
            return SynthesisResponse.failure("Text is required")

        try:
            client = self._get_client()
        except ImportError as e:
            return SynthesisResponse.failure(str(e))

        resolved = self.resolve_voice(voice_id)
        logger.debug("ElevenLabs request: voice=%s chars=%d", resolved, len(text))

        try:
            from elevenlabs import VoiceSettings

            audio_stream = client.text_to_speech.convert(
                voice_id=resolved,
                text=text,
                model_id=self._model,
                output_format=self._output_format,
                voice_settings=VoiceSettings(**self._voice_settings),
            )
            # Collect audio bytes
            audio_bytes = b"".join(chunk for chunk in audio_stream if chunk)
        except Exception as e:
            logger.error(f"ElevenLabs synthesis failed: {e}")
            return SynthesisResponse.failure(f"ElevenLabs API error: {e}")

        if not audio_bytes:
            return SynthesisResponse.failure("ElevenLabs returned no audio")

        logger.debug("ElevenLabs audio generated: %d bytes", len(audio_bytes))
        return SynthesisResponse.ok(audio_bytes)


# Check availability
try:
    from elevenlabs import ElevenLabs as _ElevenLabsCheck
    ELEVENLABS_AVAILABLE = True
except ImportError:
    ELEVENLABS_AVAILABLE = False


__all__ = ["ElevenLabsBackend", "ELEVENLABS_AVAILABLE"]
