"""
Engine Base - speech backend contracts.

Two kinds of backend exist:

    RemoteSpeechBackend
        Turns text into an encoded audio payload over the network.
        Returns a SynthesisResponse; vendor errors are reported in the
        response, not raised.

    LocalSpeechBackend
        Speaks text on the device. Playback is split into begin() (queue
        the utterance, non-blocking) and wait() (block until it ends) so
        the caller can start it while holding its own lock and cancel it
        from another thread with stop().

REMOTE RESPONSE SHAPE (shared by every vendor):
    {"success": bool, "audioContent": <base64 audio>, "error": str}
"""

from __future__ import annotations

import base64
import binascii
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Iterable, Protocol, runtime_checkable


@dataclass(frozen=True)
class SynthesisResponse:
    """Result of one remote synthesis call."""
    success: bool
    audio_content: str = ""
    error: str = ""

    def audio_bytes(self) -> bytes:
        """Decoded audio payload (empty if the payload is not valid base64)."""
        if not self.audio_content:
            return b""
        try:
            return base64.b64decode(self.audio_content, validate=True)
        except (binascii.Error, ValueError):
            return b""

    @classmethod
    def ok(cls, audio: bytes) -> "SynthesisResponse":
        return cls(success=True, audio_content=base64.b64encode(audio).decode("ascii"))

    @classmethod
    def failure(cls, error: str) -> "SynthesisResponse":
        return cls(success=False, error=error)

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {"success": self.success}
        if self.success:
            d["audioContent"] = self.audio_content
        else:
            d["error"] = self.error
        return d

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SynthesisResponse":
        return cls(
            success=bool(data.get("success")),
            audio_content=data.get("audioContent") or "",
            error=data.get("error") or "",
        )


@runtime_checkable
class RemoteSpeechBackend(Protocol):
    """Protocol for remote TTS vendors."""

    @property
    def name(self) -> str:
        """Backend identifier (e.g., 'murf', 'elevenlabs')."""
        ...

    def synthesize(self, text: str, voice_id: str) -> SynthesisResponse:
        """Synthesize text with the given vendor voice."""
        ...


class BaseRemoteBackend(ABC):
    """Base class for remote backends."""

    @property
    @abstractmethod
    def name(self) -> str:
        ...

    @abstractmethod
    def synthesize(self, text: str, voice_id: str) -> SynthesisResponse:
        ...


class LocalSpeechBackend(ABC):
    """Base class for on-device speech."""

    @property
    @abstractmethod
    def name(self) -> str:
        ...

    @abstractmethod
    def begin(
        self,
        text: str,
        *,
        volume: float = 1.0,
        rate: float = 1.0,
        pitch: float = 1.0,
        language: str = "pt",
    ) -> None:
        """Queue an utterance. Must not block on playback."""
        ...

    @abstractmethod
    def wait(self) -> None:
        """Block until the queued utterance has finished or was stopped.

        Raises:
            LocalSpeechError: If the platform engine failed.
        """
        ...

    @abstractmethod
    def stop(self) -> None:
        """Cancel the current utterance. Safe to call when idle."""
        ...

    def list_voices(self) -> list[Any]:
        """Platform voices (objects with ``id``, ``name``, ``languages``)."""
        return []


def _language_tags(voice: Any) -> list[str]:
    tags: list[str] = []
    for raw in getattr(voice, "languages", None) or []:
        if isinstance(raw, bytes):
            # espeak reports languages as b"\x05pt-br"
            raw = raw.decode("utf-8", "ignore")
        tag = str(raw).strip().lstrip("\x00\x01\x02\x03\x04\x05\x06\x07\x08")
        if tag:
            tags.append(tag.replace("_", "-").lower())
    return tags


def select_voice(voices: Iterable[Any], language: str) -> Any | None:
    """Pick the first voice whose locale belongs to ``language``.

    Matches the language family prefix ("pt" matches "pt-BR", "pt_PT"),
    then a region hint ("BR") or the id, and returns None when nothing
    fits so the platform default is used.
    """
    family, _, region = language.replace("_", "-").lower().partition("-")
    voices = list(voices)

    for voice in voices:
        if any(tag == family or tag.startswith(family + "-") for tag in _language_tags(voice)):
            return voice

    for voice in voices:
        tags = _language_tags(voice)
        if region and any(tag.endswith("-" + region) for tag in tags):
            return voice
        voice_id = str(getattr(voice, "id", "")).lower()
        if family and (f"{family}-" in voice_id or f"{family}_" in voice_id or voice_id.endswith("/" + family)):
            return voice

    return None
