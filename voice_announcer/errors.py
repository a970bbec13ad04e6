"""
Announcer Errors - Domain-specific error types.

Error hierarchy:
    AnnouncerError (base)
    ├── SynthesisError      (recovered by the engine fallback chain)
    ├── PlaybackError       (item dropped, never retried)
    └── LocalSpeechError    (terminal, engine returns to idle)
"""

from __future__ import annotations

from typing import Any


class AnnouncerError(Exception):
    """Base error for all announcer errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class SynthesisError(AnnouncerError):
    """
    Raised when a remote engine cannot produce audio for a text.

    Covers network errors, non-success responses, empty payloads and
    missing credentials or SDKs. The speech engine catches it and moves
    on to the next engine in the chain.
    """

    def __init__(
        self,
        engine: str,
        message: str,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(f"[{engine}] {message}", details)
        self.engine = engine
        self.reason = message


class PlaybackError(AnnouncerError):
    """Raised when synthesized audio cannot be decoded or played."""


class LocalSpeechError(AnnouncerError):
    """Raised when the on-device speech engine fails."""


__all__ = [
    "AnnouncerError",
    "SynthesisError",
    "PlaybackError",
    "LocalSpeechError",
]
