"""
Engine Loader - build speech backends from configuration.
"""

from __future__ import annotations

import logging

from voice_announcer.config import Config
from voice_announcer.engine.base import LocalSpeechBackend, RemoteSpeechBackend
from voice_announcer.errors import SynthesisError
from voice_announcer.settings import EngineKind

logger = logging.getLogger(__name__)


def load_remote_backend(kind: EngineKind | str, config: Config | None = None) -> RemoteSpeechBackend:
    """Load a remote TTS backend.

    Args:
        kind: EngineKind.MURF or EngineKind.ELEVENLABS (or their names)
        config: Source of API keys and locale (environment if omitted)

    Returns:
        Initialized backend

    Raises:
        SynthesisError: If credentials or the vendor SDK are missing
        ValueError: If ``kind`` is not a remote engine
    """
    kind = EngineKind.parse(kind)

    try:
        if kind is EngineKind.MURF:
            from voice_announcer.engine.backends.murf import MurfBackend
            return MurfBackend(
                api_key=config.murf_api_key if config else None,
                locale=config.locale if config else "pt-BR",
            )

        if kind is EngineKind.ELEVENLABS:
            from voice_announcer.engine.backends.elevenlabs import ElevenLabsBackend
            return ElevenLabsBackend(api_key=config.elevenlabs_api_key if config else None)
    except (ValueError, ImportError) as e:
        raise SynthesisError(kind.value, str(e))

    raise ValueError(f"Not a remote engine: {kind.value}")


def load_local_backend(config: Config | None = None) -> LocalSpeechBackend:
    """Load the on-device backend."""
    from voice_announcer.engine.backends.local import Pyttsx3Backend
    return Pyttsx3Backend()


def list_backends(config: Config | None = None) -> list[str]:
    """List engines that are usable with the current configuration."""
    available = []

    try:
        load_remote_backend(EngineKind.MURF, config)
        available.append(EngineKind.MURF.value)
    except SynthesisError as e:
        logger.debug("Murf unavailable: %s", e)

    from voice_announcer.engine.backends.elevenlabs import ELEVENLABS_AVAILABLE
    if ELEVENLABS_AVAILABLE:
        try:
            load_remote_backend(EngineKind.ELEVENLABS, config)
            available.append(EngineKind.ELEVENLABS.value)
        except SynthesisError as e:
            logger.debug("ElevenLabs unavailable: %s", e)

    from voice_announcer.engine.backends.local import is_available
    if is_available():
        available.append(EngineKind.LOCAL.value)

    return available
