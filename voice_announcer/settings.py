"""
Speech settings and voice catalogs.

SpeechSettings are persisted under a fixed key and only change through
an explicit merge (``SpeechEngine.update_settings``).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, asdict, replace
from enum import Enum
from typing import Any

from voice_announcer.storage import KeyValueStore

logger = logging.getLogger(__name__)

SETTINGS_STORAGE_KEY = "speech-settings"


class EngineKind(Enum):
    """Speech backends, in fallback order."""

    MURF = "murf"
    """Primary remote vendor."""

    ELEVENLABS = "elevenlabs"
    """Secondary remote vendor."""

    LOCAL = "local"
    """On-device synthesis. Always available, no network."""

    @property
    def is_remote(self) -> bool:
        return self is not EngineKind.LOCAL

    @classmethod
    def parse(cls, value: "EngineKind | str") -> "EngineKind":
        """Accept an EngineKind or its name ("webspeech" is an alias for local)."""
        if isinstance(value, cls):
            return value
        name = str(value).strip().lower()
        if name == "webspeech":
            return cls.LOCAL
        try:
            return cls(name)
        except ValueError:
            valid = ", ".join(k.value for k in cls)
            raise ValueError(f"Unknown speech engine {value!r} (expected one of: {valid})")


@dataclass(frozen=True)
class VoiceInfo:
    """A selectable remote voice."""
    id: str
    name: str
    description: str = ""


# Portuguese voices from Murf
MURF_VOICES = [
    VoiceInfo("pt-BR-leila", "Leila", "Feminina, brasileira, profissional"),
    VoiceInfo("pt-BR-marcos", "Marcos", "Masculino, brasileiro, claro"),
    VoiceInfo("pt-BR-rafaela", "Rafaela", "Feminina, brasileira, amigável"),
    VoiceInfo("pt-BR-rodrigo", "Rodrigo", "Masculino, brasileiro, natural"),
]

# ElevenLabs multilingual voices. The first entry is the fallback voice.
ELEVENLABS_VOICES = [
    VoiceInfo("XrExE9yKIg1WjnnlVkGX", "Matilda", "Feminina, acolhedora e amigável"),
    VoiceInfo("EXAVITQu4vr4xnSDxMaL", "Sarah", "Feminina, clara e profissional"),
    VoiceInfo("pFZP5JQG7iQjIQuC4Bku", "Lily", "Feminina, suave e gentil"),
    VoiceInfo("JBFqnCBsd6RMkjVDRZzb", "George", "Masculino, profissional"),
    VoiceInfo("nPczCjzI2devNBz1zQrb", "Brian", "Masculino, autoritário"),
    VoiceInfo("onwK4e9ZLuTAKqWW03F9", "Daniel", "Masculino, voz grave"),
]


def voices_for_engine(kind: EngineKind | str) -> list[VoiceInfo]:
    """Catalog for an engine. Local voices come from the platform instead."""
    kind = EngineKind.parse(kind)
    if kind is EngineKind.MURF:
        return list(MURF_VOICES)
    if kind is EngineKind.ELEVENLABS:
        return list(ELEVENLABS_VOICES)
    return []


@dataclass(frozen=True)
class SpeechSettings:
    """Engine, voice and output level for announcements.

    Fields:
        engine: Configured primary engine.
        voice_id: Vendor voice id for the configured engine.
        voice_name: Display name of the voice.
        volume: Output level, 0.0 - 1.0.
        rate: Local engine speaking rate multiplier.
        pitch: Local engine pitch multiplier.
    """
    engine: EngineKind = EngineKind.MURF
    voice_id: str = MURF_VOICES[0].id
    voice_name: str = MURF_VOICES[0].name
    volume: float = 1.0
    rate: float = 1.0
    pitch: float = 1.0

    def __post_init__(self):
        object.__setattr__(self, "engine", EngineKind.parse(self.engine))
        if not 0.0 <= self.volume <= 1.0:
            raise ValueError(f"volume must be 0.0-1.0, got {self.volume}")
        if not 0.5 <= self.rate <= 2.0:
            raise ValueError(f"rate must be 0.5-2.0, got {self.rate}")
        if not 0.0 <= self.pitch <= 2.0:
            raise ValueError(f"pitch must be 0.0-2.0, got {self.pitch}")

    def merged(self, **changes: Any) -> "SpeechSettings":
        """Return a validated copy with ``changes`` applied."""
        unknown = set(changes) - set(self.__dataclass_fields__)
        if unknown:
            raise ValueError(f"Unknown speech settings: {', '.join(sorted(unknown))}")
        return replace(self, **changes)

    def to_dict(self) -> dict:
        d = asdict(self)
        d["engine"] = self.engine.value
        return d

    @classmethod
    def from_dict(cls, data: dict) -> "SpeechSettings":
        return cls(
            engine=data.get("engine", EngineKind.MURF),
            voice_id=data.get("voice_id", data.get("voiceId", MURF_VOICES[0].id)),
            voice_name=data.get("voice_name", data.get("voiceName", MURF_VOICES[0].name)),
            volume=float(data.get("volume", 1.0)),
            rate=float(data.get("rate", 1.0)),
            pitch=float(data.get("pitch", 1.0)),
        )


DEFAULT_SETTINGS = SpeechSettings()


def default_settings(engine: EngineKind | str = EngineKind.MURF) -> SpeechSettings:
    """Factory settings for ``engine``, voiced by the first entry of its catalog."""
    kind = EngineKind.parse(engine)
    if kind is DEFAULT_SETTINGS.engine:
        return DEFAULT_SETTINGS
    catalog = voices_for_engine(kind)
    if not catalog:
        return DEFAULT_SETTINGS.merged(engine=kind)
    return DEFAULT_SETTINGS.merged(engine=kind, voice_id=catalog[0].id, voice_name=catalog[0].name)


def load_settings(
    store: KeyValueStore | None,
    default: SpeechSettings = DEFAULT_SETTINGS,
) -> SpeechSettings:
    """Load persisted settings, falling back to ``default`` on any problem."""
    if store is None:
        return default
    data = store.load(SETTINGS_STORAGE_KEY)
    if data is None:
        return default
    try:
        return SpeechSettings.from_dict(data)
    except (AttributeError, TypeError, ValueError) as e:
        logger.warning("Corrupt speech settings, using defaults: %s", e)
        return default


def save_settings(store: KeyValueStore | None, settings: SpeechSettings) -> None:
    if store is not None:
        store.save(SETTINGS_STORAGE_KEY, settings.to_dict())


__all__ = [
    "EngineKind",
    "VoiceInfo",
    "MURF_VOICES",
    "ELEVENLABS_VOICES",
    "voices_for_engine",
    "SpeechSettings",
    "DEFAULT_SETTINGS",
    "default_settings",
    "SETTINGS_STORAGE_KEY",
    "load_settings",
    "save_settings",
]
