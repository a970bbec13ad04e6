"""
Mock Backends - For testing without network or audio devices.

Features:
    - Call recording
    - Failure injection
    - Optional blocking to hold the engine in a given state
"""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass, field

from voice_announcer.engine.base import BaseRemoteBackend, LocalSpeechBackend, SynthesisResponse
from voice_announcer.errors import LocalSpeechError


@dataclass
class CallRecord:
    """Record of a mock backend call."""

    text: str
    voice_id: str = ""
    timestamp: float = field(default_factory=time.time)
    success: bool = True


class MockRemoteBackend(BaseRemoteBackend):
    """Mock remote TTS backend.

    The payload is the UTF-8 text itself, base64-encoded, so a recording
    player can tell which text it was handed.

    Example:
        murf = MockRemoteBackend("murf", fail=True)
        eleven = MockRemoteBackend("elevenlabs")
        ...
        assert murf.call_count == 1
        assert eleven.last_call.text == "Hello"
    """

    def __init__(
        self,
        name: str = "mock",
        *,
        fail: bool = False,
        error: str = "forced failure",
        empty_audio: bool = False,
        hold: bool = False,
    ):
        """Initialize mock backend.

        Args:
            name: Backend identifier to report.
            fail: Return an unsuccessful response.
            error: Error text for failures.
            empty_audio: Return success with no payload.
            hold: Block synthesize() until release() is called.
        """
        self._name = name
        self.fail = fail
        self.error = error
        self.empty_audio = empty_audio
        self.calls: list[CallRecord] = []
        self.hold = hold
        self._released = threading.Event()
        self.entered = threading.Event()

    @property
    def name(self) -> str:
        return self._name

    @property
    def call_count(self) -> int:
        return len(self.calls)

    @property
    def last_call(self) -> CallRecord | None:
        return self.calls[-1] if self.calls else None

    def release(self) -> None:
        """Let a held synthesize() return."""
        self._released.set()

    def synthesize(self, text: str, voice_id: str) -> SynthesisResponse:
        self.entered.set()
        if self.hold:
            self._released.wait(timeout=5.0)

        record = CallRecord(text=text, voice_id=voice_id, success=not self.fail)
        self.calls.append(record)

        if self.fail:
            return SynthesisResponse.failure(self.error)
        if self.empty_audio:
            return SynthesisResponse(success=True, audio_content="")
        return SynthesisResponse.ok(text.encode("utf-8"))


class MockLocalBackend(LocalSpeechBackend):
    """Mock on-device engine.

    Records every utterance. With ``hold=True`` each wait() blocks until
    release() or stop() is called.
    """

    def __init__(self, *, fail: bool = False, hold: bool = False):
        self.fail = fail
        self.spoken: list[str] = []
        self.stop_count = 0
        self.last_options: dict = {}
        self.hold = hold
        self._done = threading.Event()
        self.started = threading.Event()

    @property
    def name(self) -> str:
        return "local"

    def begin(
        self,
        text: str,
        *,
        volume: float = 1.0,
        rate: float = 1.0,
        pitch: float = 1.0,
        language: str = "pt",
    ) -> None:
        self._done.clear()
        self.last_options = {"volume": volume, "rate": rate, "pitch": pitch, "language": language}
        self.spoken.append(text)
        self.started.set()

    def wait(self) -> None:
        if self.fail:
            raise LocalSpeechError("forced local failure")
        if self.hold:
            self._done.wait(timeout=5.0)

    def release(self) -> None:
        self._done.set()

    def stop(self) -> None:
        self.stop_count += 1
        self._done.set()


__all__ = ["CallRecord", "MockRemoteBackend", "MockLocalBackend"]
