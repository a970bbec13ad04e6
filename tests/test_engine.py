"""Tests for the engine module."""

import base64
import io
import json
import urllib.error
from types import SimpleNamespace

import pytest

from voice_announcer.config import Config
from voice_announcer.engine import (
    MockLocalBackend,
    MockRemoteBackend,
    RemoteSpeechBackend,
    SynthesisResponse,
    list_backends,
    load_local_backend,
    load_remote_backend,
    select_voice,
)
from voice_announcer.engine.backends import murf as murf_module
from voice_announcer.engine.backends.murf import MURF_API_URL, MurfBackend
from voice_announcer.errors import LocalSpeechError, SynthesisError
from voice_announcer.settings import ELEVENLABS_VOICES, EngineKind


class TestSynthesisResponse:
    """Tests for the shared remote response shape."""

    def test_ok_encodes_base64(self):
        response = SynthesisResponse.ok(b"mp3-bytes")

        assert response.success
        assert response.audio_content == base64.b64encode(b"mp3-bytes").decode("ascii")
        assert response.audio_bytes() == b"mp3-bytes"

    def test_failure(self):
        response = SynthesisResponse.failure("boom")

        assert not response.success
        assert response.audio_bytes() == b""
        assert response.error == "boom"

    def test_invalid_base64_is_empty(self):
        response = SynthesisResponse(success=True, audio_content="not base64!!")
        assert response.audio_bytes() == b""

    def test_wire_keys(self):
        ok = SynthesisResponse.ok(b"x").to_dict()
        assert set(ok) == {"success", "audioContent"}

        failed = SynthesisResponse.failure("nope").to_dict()
        assert failed == {"success": False, "error": "nope"}

    def test_from_dict(self):
        response = SynthesisResponse.from_dict({"success": True, "audioContent": "eA=="})
        assert response.audio_bytes() == b"x"

        missing = SynthesisResponse.from_dict({})
        assert not missing.success


class TestMockRemoteBackend:
    """Tests for MockRemoteBackend."""

    def test_properties(self):
        backend = MockRemoteBackend("murf")
        assert backend.name == "murf"
        assert backend.call_count == 0
        assert backend.last_call is None
        assert isinstance(backend, RemoteSpeechBackend)

    def test_payload_is_text(self):
        backend = MockRemoteBackend()
        response = backend.synthesize("Olá", "v1")

        assert response.audio_bytes() == "Olá".encode("utf-8")
        assert backend.last_call.voice_id == "v1"

    def test_failure_injection(self):
        backend = MockRemoteBackend(fail=True, error="quota")
        response = backend.synthesize("x", "v")

        assert not response.success
        assert response.error == "quota"
        assert backend.last_call.success is False

    def test_empty_audio(self):
        response = MockRemoteBackend(empty_audio=True).synthesize("x", "v")
        assert response.success
        assert response.audio_bytes() == b""


class TestMockLocalBackend:
    """Tests for MockLocalBackend."""

    def test_records_utterances(self):
        backend = MockLocalBackend()
        backend.begin("Olá", volume=0.5, language="pt-BR")
        backend.wait()

        assert backend.spoken == ["Olá"]
        assert backend.last_options["volume"] == 0.5

    def test_failure(self):
        backend = MockLocalBackend(fail=True)
        backend.begin("x")
        with pytest.raises(LocalSpeechError):
            backend.wait()

    def test_stop_counts(self):
        backend = MockLocalBackend()
        backend.stop()
        assert backend.stop_count == 1


class TestSelectVoice:
    """Tests for local voice selection."""

    def voice(self, id, languages=()):
        return SimpleNamespace(id=id, name=id, languages=list(languages))

    def test_family_prefix(self):
        voices = [self.voice("en", ["en-US"]), self.voice("br", ["pt-BR"])]
        assert select_voice(voices, "pt").id == "br"

    def test_full_locale_matches_family(self):
        voices = [self.voice("pt-pt", ["pt_PT"])]
        assert select_voice(voices, "pt-BR").id == "pt-pt"

    def test_espeak_byte_tags(self):
        voices = [self.voice("en", [b"\x05en-us"]), self.voice("pt", [b"\x05pt-br"])]
        assert select_voice(voices, "pt-BR").id == "pt"

    def test_region_fallback(self):
        voices = [self.voice("x", ["xx-BR"])]
        assert select_voice(voices, "pt-BR").id == "x"

    def test_id_fallback(self):
        voices = [self.voice("com.apple.voice.pt-BR.Luciana")]
        assert select_voice(voices, "pt").id == "com.apple.voice.pt-BR.Luciana"

    def test_no_match(self):
        voices = [self.voice("en", ["en-US"])]
        assert select_voice(voices, "pt-BR") is None

    def test_empty(self):
        assert select_voice([], "pt") is None


class FakeResponse(io.BytesIO):
    """urlopen() result stand-in."""


class TestMurfBackend:
    """Tests for MurfBackend without network."""

    def test_requires_key(self, monkeypatch):
        monkeypatch.delenv("MURF_API_KEY", raising=False)
        with pytest.raises(ValueError, match="Murf API key required"):
            MurfBackend()

    def test_request_shape(self, monkeypatch):
        captured = {}

        def fake_urlopen(req, timeout=None):
            captured["url"] = req.full_url
            captured["headers"] = dict(req.header_items())
            captured["body"] = json.loads(req.data.decode("utf-8"))
            return FakeResponse(json.dumps({"encodedAudio": "eA=="}).encode("utf-8"))

        monkeypatch.setattr(murf_module.urllib.request, "urlopen", fake_urlopen)
        response = MurfBackend(api_key="k").synthesize("Olá", "pt-BR-marcos")

        assert response.success
        assert response.audio_bytes() == b"x"
        assert captured["url"] == MURF_API_URL
        assert captured["headers"]["Api-key"] == "k"
        assert captured["body"] == {
            "text": "Olá",
            "voiceId": "pt-BR-marcos",
            "locale": "pt-BR",
            "format": "MP3",
            "encodeAsBase64": True,
            "modelVersion": "GEN2",
            "channelType": "MONO",
            "sampleRate": 48000,
        }

    def test_http_error(self, monkeypatch):
        def fake_urlopen(req, timeout=None):
            raise urllib.error.HTTPError(req.full_url, 500, "Server Error", None, None)

        monkeypatch.setattr(murf_module.urllib.request, "urlopen", fake_urlopen)
        response = MurfBackend(api_key="k").synthesize("x", "v")

        assert not response.success
        assert "500" in response.error

    def test_network_error(self, monkeypatch):
        def fake_urlopen(req, timeout=None):
            raise urllib.error.URLError("unreachable")

        monkeypatch.setattr(murf_module.urllib.request, "urlopen", fake_urlopen)
        response = MurfBackend(api_key="k").synthesize("x", "v")

        assert not response.success

    def test_missing_audio(self, monkeypatch):
        monkeypatch.setattr(
            murf_module.urllib.request,
            "urlopen",
            lambda req, timeout=None: FakeResponse(b'{"warning": "quota exceeded"}'),
        )
        response = MurfBackend(api_key="k").synthesize("x", "v")

        assert not response.success
        assert response.error == "quota exceeded"

    def test_empty_text(self):
        response = MurfBackend(api_key="k").synthesize("", "v")
        assert not response.success


class FakeTextToSpeech:
    def __init__(self, chunks=(b"ab", b"cd"), error=None):
        self.chunks = chunks
        self.error = error
        self.kwargs = None

    def convert(self, **kwargs):
        self.kwargs = kwargs
        if self.error:
            raise self.error
        return iter(self.chunks)


class TestElevenLabsBackend:
    """Tests for ElevenLabsBackend with an injected client."""

    def make(self, tts):
        pytest.importorskip("elevenlabs")
        from voice_announcer.engine.backends.elevenlabs import ElevenLabsBackend

        backend = ElevenLabsBackend(api_key="k")
        backend._client = SimpleNamespace(text_to_speech=tts)
        return backend

    def test_requires_key(self, monkeypatch):
        from voice_announcer.engine.backends.elevenlabs import ElevenLabsBackend

        monkeypatch.delenv("ELEVENLABS_API_KEY", raising=False)
        with pytest.raises(ValueError, match="ElevenLabs API key required"):
            ElevenLabsBackend()

    def test_synthesize_joins_chunks(self):
        tts = FakeTextToSpeech()
        response = self.make(tts).synthesize("Olá", "XrExE9yKIg1WjnnlVkGX")

        assert response.audio_bytes() == b"abcd"
        assert tts.kwargs["model_id"] == "eleven_multilingual_v2"
        assert tts.kwargs["output_format"] == "mp3_44100_128"

    def test_voice_name_resolved(self):
        tts = FakeTextToSpeech()
        self.make(tts).synthesize("x", "George")

        assert tts.kwargs["voice_id"] == "JBFqnCBsd6RMkjVDRZzb"

    def test_default_voice_is_first_in_catalog(self):
        from voice_announcer.engine.backends.elevenlabs import ElevenLabsBackend

        backend = ElevenLabsBackend(api_key="k")

        assert backend.resolve_voice(None) == ELEVENLABS_VOICES[0].id
        assert backend.resolve_voice("sarah") == "EXAVITQu4vr4xnSDxMaL"
        assert backend.resolve_voice("custom-id") == "custom-id"

    def test_vendor_error_is_failure(self):
        tts = FakeTextToSpeech(error=RuntimeError("401"))
        response = self.make(tts).synthesize("x", "v")

        assert not response.success
        assert "401" in response.error

    def test_no_audio_is_failure(self):
        response = self.make(FakeTextToSpeech(chunks=())).synthesize("x", "v")
        assert not response.success


class TestLoader:
    """Tests for backend loading."""

    def test_missing_murf_key(self, tmp_path, monkeypatch):
        monkeypatch.delenv("MURF_API_KEY", raising=False)
        config = Config(data_dir=tmp_path, murf_api_key=None)

        with pytest.raises(SynthesisError) as info:
            load_remote_backend("murf", config)
        assert info.value.engine == "murf"

    def test_murf_from_config(self, tmp_path):
        config = Config(data_dir=tmp_path, murf_api_key="k")
        backend = load_remote_backend(EngineKind.MURF, config)

        assert backend.name == "murf"

    def test_local_is_not_remote(self):
        with pytest.raises(ValueError, match="Not a remote engine"):
            load_remote_backend(EngineKind.LOCAL)

    def test_unknown_engine(self):
        with pytest.raises(ValueError, match="Unknown speech engine"):
            load_remote_backend("polly")

    def test_local_backend(self):
        assert load_local_backend().name == "local"

    def test_list_backends_skips_missing_keys(self, tmp_path, monkeypatch):
        monkeypatch.delenv("MURF_API_KEY", raising=False)
        monkeypatch.delenv("ELEVENLABS_API_KEY", raising=False)
        config = Config(data_dir=tmp_path, murf_api_key=None, elevenlabs_api_key=None)

        available = list_backends(config)

        assert "murf" not in available
        assert "elevenlabs" not in available

    def test_list_backends_with_murf_key(self, tmp_path):
        config = Config(data_dir=tmp_path, murf_api_key="k")
        assert "murf" in list_backends(config)
