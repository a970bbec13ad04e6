"""
Murf TTS Backend - primary remote engine.

Usage:
    backend = MurfBackend(api_key="...")
    response = backend.synthesize("Bom treino!", "pt-BR-leila")

Vendor parameters (locale, format, model, sample rate) are fixed here
and never exposed to the speech engine.

Requires:
    - MURF_API_KEY environment variable
"""

from __future__ import annotations

import json
import logging
import os
import urllib.error
import urllib.request

from voice_announcer.engine.base import BaseRemoteBackend, SynthesisResponse

logger = logging.getLogger(__name__)

MURF_API_URL = "https://api.murf.ai/v1/speech/generate"
DEFAULT_VOICE = "pt-BR-leila"


class MurfBackend(BaseRemoteBackend):
    """Murf speech generation over its REST API.

    The API is asked to return the audio base64-encoded, which is
    already the shape the speech engine consumes.
    """

    def __init__(
        self,
        *,
        api_key: str | None = None,
        locale: str = "pt-BR",
        model_version: str = "GEN2",
        sample_rate: int = 48000,
        timeout: float = 30.0,
        url: str = MURF_API_URL,
    ):
        """Initialize Murf backend.

        Args:
            api_key: Murf API key (defaults to MURF_API_KEY env var)
            locale: Output locale for multilingual voices
            model_version: Murf model generation
            sample_rate: Output sample rate in Hz
            timeout: HTTP timeout in seconds
            url: Endpoint override
        """
        self._api_key = api_key or os.environ.get("MURF_API_KEY")
        if not self._api_key:
            raise ValueError(
                "Murf API key required. Set MURF_API_KEY environment "
                "variable or pass api_key parameter."
            )
        self._locale = locale
        self._model_version = model_version
        self._sample_rate = sample_rate
        self._timeout = timeout
        self._url = url

    @property
    def name(self) -> str:
        return "murf"

    def _build_payload(self, text: str, voice_id: str) -> dict:
        return {
            "text": text,
            "voiceId": voice_id or DEFAULT_VOICE,
            "locale": self._locale,
            "format": "MP3",
            "encodeAsBase64": True,
            "modelVersion": self._model_version,
            "channelType": "MONO",
            "sampleRate": self._sample_rate,
        }

    def synthesize(self, text: str, voice_id: str) -> SynthesisResponse:
        if not text:
            return SynthesisResponse.failure("Text is required")

        payload = self._build_payload(text, voice_id)
        logger.debug(
            "Murf request: voice=%s locale=%s chars=%d",
            payload["voiceId"], self._locale, len(text),
        )
        req = urllib.request.Request(
            self._url,
            data=json.dumps(payload).encode("utf-8"),
            headers={
                "api-key": self._api_key,
                "Content-Type": "application/json",
                "Accept": "application/json",
            },
            method="POST",
        )

        try:
            with urllib.request.urlopen(req, timeout=self._timeout) as response:
                data = json.loads(response.read().decode("utf-8"))
        except urllib.error.HTTPError as e:
            logger.error("Murf API error: %s", e.code)
            return SynthesisResponse.failure(f"Murf API error: {e.code}")
        except (urllib.error.URLError, TimeoutError, OSError) as e:
            logger.error("Murf request failed: %s", e)
            return SynthesisResponse.failure(f"Murf request failed: {e}")
        except json.JSONDecodeError as e:
            logger.error("Murf returned invalid JSON: %s", e)
            return SynthesisResponse.failure("Murf returned invalid JSON")

        return self._parse_response(data)

    @staticmethod
    def _parse_response(data: dict) -> SynthesisResponse:
        audio = data.get("encodedAudio") if isinstance(data, dict) else None
        if not audio:
            warning = data.get("warning") if isinstance(data, dict) else None
            return SynthesisResponse.failure(warning or "Failed to generate audio")
        return SynthesisResponse(success=True, audio_content=audio)


__all__ = ["MurfBackend", "MURF_API_URL"]
