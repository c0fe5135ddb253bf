"""
Tests for TTSService, the synthesis orchestrator.

espeak-ng and onnxruntime are replaced by in-process fakes (see fakes.py);
everything else (DSL, voice registry, id mapping, engine cache, WAV
encoding) runs for real.
"""
import threading
from concurrent.futures import ThreadPoolExecutor
from unittest.mock import patch

import pytest

from fakes import VOICE_ID, FakeEngine, FakePhonemizer, voice_config, write_voice
from piper_server.core.errors import (
    EmptyOrOversizedTextError,
    ErrorCode,
    InferenceError,
    InvalidConfigurationError,
    PhonemizationError,
    VoiceNotFoundError,
)
from piper_server.services.tts_service import SpeakRequest, TTSService
from piper_server.tts.engine_cache import EngineCache

EXPECTED_IDS = [1, 20, 0, 59, 0, 24, 0, 27, 0, 3, 0, 35, 0, 62, 0, 24, 0, 17, 0, 2]


@pytest.fixture
def engines():
    return {}


@pytest.fixture
def service(settings, phonemizer, engines):
    def loader(voice_id):
        engines[voice_id] = FakeEngine(voice_id)
        return engines[voice_id]

    return TTSService(settings, phonemizer=phonemizer, engine_cache=EngineCache(loader))


class TestSpeak:
    """End-to-end synthesis through the fakes."""

    def test_returns_wav(self, service):
        wav = service.speak("hello world", VOICE_ID)
        assert wav[:4] == b"RIFF"
        assert wav[8:12] == b"WAVE"
        assert len(wav) > 44

    def test_pipeline_wiring(self, service, phonemizer, engines):
        result = service.synthesize(SpeakRequest("Hello [pause] world", VOICE_ID), "req-1")

        assert phonemizer.calls == [("Hello ... world", "en-us")]
        ids, scales = engines[VOICE_ID].calls[0]
        assert ids == EXPECTED_IDS
        assert (scales.noise_scale, scales.length_scale, scales.noise_w) == (0.667, 1.0, 0.8)

        assert result.request_id == "req-1"
        assert result.voice_id == VOICE_ID
        assert result.sample_rate == 22050
        assert result.processed_text == "Hello ... world"
        assert result.total_seconds >= 0
        for stage in ("dsl", "voice", "phonemize", "engine", "inference", "wav_encode"):
            assert stage in result.timings

    def test_dsl_applied_before_phonemizer(self, service, phonemizer):
        service.speak("[spell]bbc[/spell] [whisper]Quiet[/whisper]", VOICE_ID)
        assert phonemizer.calls[0][0] == "B. B. C. (quiet)"

    def test_default_locale_when_voice_has_none(self, service, phonemizer, voices_dir):
        write_voice(voices_dir, "plain", voice_config(espeak=None))
        service.speak("hi", "plain")
        assert phonemizer.calls[-1][1] == "en"

    def test_voice_inference_overrides(self, service, engines, voices_dir):
        write_voice(voices_dir, "tuned", voice_config(inference={"length_scale": 1.4}))
        service.speak("hi", "tuned")
        scales = engines["tuned"].calls[0][1]
        assert scales.length_scale == 1.4
        assert scales.noise_scale == 0.667

    def test_engine_loaded_once_per_voice(self, service, engines):
        service.speak("one", VOICE_ID)
        service.speak("two", VOICE_ID)
        assert list(engines) == [VOICE_ID]
        assert len(engines[VOICE_ID].calls) == 2
        assert service.engine_cache.load_count == 1

    def test_concurrent_requests_share_one_load(self, settings, phonemizer):
        loads = []
        gate = threading.Event()

        def loader(voice_id):
            loads.append(voice_id)
            gate.wait(timeout=10)
            return FakeEngine(voice_id)

        service = TTSService(settings, phonemizer=phonemizer, engine_cache=EngineCache(loader))
        with ThreadPoolExecutor(max_workers=6) as pool:
            futures = [pool.submit(service.speak, f"request {i}", VOICE_ID) for i in range(6)]
            gate.set()
            results = [f.result(timeout=10) for f in futures]

        assert loads == [VOICE_ID]
        assert all(r[:4] == b"RIFF" for r in results)


class TestErrors:
    """Pipeline failures propagate as SynthesisError subclasses."""

    @pytest.mark.parametrize("text", ["", "   ", "\n\t"])
    def test_empty_text(self, service, phonemizer, text):
        with pytest.raises(EmptyOrOversizedTextError) as exc_info:
            service.speak(text, VOICE_ID)
        assert exc_info.value.details["reason"] == "empty"
        assert phonemizer.calls == []

    def test_text_too_long(self, service):
        with pytest.raises(EmptyOrOversizedTextError) as exc_info:
            service.speak("a" * 201, VOICE_ID)
        assert exc_info.value.details == {"reason": "too_long", "chars": 201, "max_chars": 200}

    def test_length_counts_raw_markup(self, service):
        text = "[pause]" * 29  # 203 chars of markup
        with pytest.raises(EmptyOrOversizedTextError):
            service.speak(text, VOICE_ID)

    def test_text_at_limit_accepted(self, service):
        assert service.speak("a" * 200, VOICE_ID)[:4] == b"RIFF"

    def test_unknown_voice(self, service):
        with pytest.raises(VoiceNotFoundError) as exc_info:
            service.speak("hello", "en_US-nobody-low")
        assert exc_info.value.code == ErrorCode.VOICE_NOT_FOUND

    def test_empty_voice(self, service):
        with pytest.raises(VoiceNotFoundError):
            service.speak("hello", "")

    def test_invalid_voice_config(self, service, voices_dir):
        write_voice(voices_dir, "broken", "{")
        with pytest.raises(InvalidConfigurationError):
            service.speak("hello", "broken")

    def test_phonemizer_error(self, settings):
        service = TTSService(
            settings,
            phonemizer=FakePhonemizer(exc=PhonemizationError("espeak-ng not found")),
            engine_cache=EngineCache(FakeEngine),
        )
        with pytest.raises(PhonemizationError):
            service.speak("hello", VOICE_ID)

    def test_engine_load_error_not_cached(self, settings, phonemizer):
        attempts = []

        def loader(voice_id):
            attempts.append(voice_id)
            if len(attempts) == 1:
                raise InferenceError("cannot load")
            return FakeEngine(voice_id)

        service = TTSService(settings, phonemizer=phonemizer, engine_cache=EngineCache(loader))
        with pytest.raises(InferenceError):
            service.speak("hello", VOICE_ID)
        assert service.speak("hello", VOICE_ID)[:4] == b"RIFF"
        assert len(attempts) == 2

    def test_default_loader_wraps_model_errors(self, settings, phonemizer):
        """Without an injected cache the placeholder .onnx fails to load."""
        service = TTSService(settings, phonemizer=phonemizer)
        with patch("piper_server.tts.engine.ort.InferenceSession", side_effect=RuntimeError("bad model")):
            with pytest.raises(InferenceError):
                service.speak("hello", VOICE_ID)
        assert len(service.engine_cache) == 0

    def test_default_loader_uses_piper_engine(self, settings, phonemizer):
        with patch("piper_server.services.tts_service.PiperEngine.load", return_value=FakeEngine()) as load:
            service = TTSService(settings, phonemizer=phonemizer)
            service.speak("hello", VOICE_ID)
            service.speak("again", VOICE_ID)

        assert load.call_count == 1
        voice = load.call_args[0][0]
        assert voice.voice_id == VOICE_ID
        assert load.call_args[1]["providers"] == ["CPUExecutionProvider"]


class TestInfo:
    """Tests for list_voices() and get_health_info()."""

    def test_list_voices(self, service, voices_dir):
        write_voice(voices_dir, "de_DE-thorsten-low", voice_config(espeak="de"))
        assert [v.id for v in service.list_voices()] == ["de_DE-thorsten-low", VOICE_ID]

    def test_health_info(self, service, voices_dir):
        from piper_server import __version__

        service.speak("hello", VOICE_ID)
        info = service.get_health_info()
        assert info["status"] == "ok"
        assert info["version"] == __version__
        assert info["voices_dir"] == str(voices_dir)
        assert info["loaded_voices"] == [VOICE_ID]
        assert info["engine_loads"] == 1


class TestInstances:
    """Separate services share no state."""

    def test_services_have_separate_engine_caches(self, settings, phonemizer):
        first = TTSService(settings, phonemizer=phonemizer, engine_cache=EngineCache(FakeEngine))
        second = TTSService(settings, phonemizer=phonemizer, engine_cache=EngineCache(FakeEngine))

        first.speak("hello", VOICE_ID)

        assert first.engine_cache.loaded_voices() == [VOICE_ID]
        assert second.engine_cache.loaded_voices() == []

    def test_default_engine_caches_are_not_shared(self, settings):
        assert TTSService(settings).engine_cache is not TTSService(settings).engine_cache
