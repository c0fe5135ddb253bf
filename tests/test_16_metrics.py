"""
Tests for Prometheus metrics.

Each test builds its own ServiceMetrics so counts start at zero.
"""
from piper_server.core.metrics import ServiceMetrics


class TestServiceMetrics:
    """Tests for ServiceMetrics recording."""

    def test_record_success(self):
        m = ServiceMetrics()
        m.record_request("alba", "success", 0.3, audio_bytes=1000)

        reg = m.registry
        assert reg.get_sample_value("piper_requests_total", {"voice": "alba", "status": "success"}) == 1
        assert reg.get_sample_value("piper_request_duration_seconds_count", {"status": "success"}) == 1
        assert reg.get_sample_value("piper_audio_bytes_total") == 1000

    def test_record_error_groups_duration(self):
        m = ServiceMetrics()
        m.record_request("alba", "VOICE_NOT_FOUND", 0.01)
        m.record_request("alba", "PHONEMIZATION_FAILED", 0.02)

        reg = m.registry
        assert reg.get_sample_value("piper_requests_total", {"voice": "alba", "status": "VOICE_NOT_FOUND"}) == 1
        assert reg.get_sample_value("piper_request_duration_seconds_count", {"status": "error"}) == 2
        assert reg.get_sample_value("piper_audio_bytes_total") == 0

    def test_engine_loads_and_gauge(self):
        m = ServiceMetrics()
        m.record_engine_load("alba", "success")
        m.record_engine_load("amy", "error")
        m.set_engines_loaded(1)

        reg = m.registry
        assert reg.get_sample_value("piper_engine_loads_total", {"voice": "alba", "status": "success"}) == 1
        assert reg.get_sample_value("piper_engine_loads_total", {"voice": "amy", "status": "error"}) == 1
        assert reg.get_sample_value("piper_engines_loaded") == 1

    def test_instances_are_isolated(self):
        a, b = ServiceMetrics(), ServiceMetrics()
        a.record_request("alba", "success", 0.1)
        assert b.registry.get_sample_value("piper_requests_total", {"voice": "alba", "status": "success"}) is None

    def test_exposition(self):
        m = ServiceMetrics()
        m.record_request("alba", "success", 0.1)
        content, content_type = m.get_metrics_response()
        assert content_type.startswith("text/plain")
        assert b'piper_requests_total{voice="alba",status="success"} 1.0' in content


def test_service_records_request_metrics(settings, phonemizer):
    """The global metrics instance sees requests made through TTSService."""
    import pytest

    from fakes import FakeEngine
    from piper_server.core.errors import VoiceNotFoundError
    from piper_server.core.metrics import metrics
    from piper_server.services.tts_service import TTSService
    from piper_server.tts.engine_cache import EngineCache

    service = TTSService(settings, phonemizer=phonemizer, engine_cache=EngineCache(FakeEngine))
    labels = {"voice": "nobody", "status": "VOICE_NOT_FOUND"}
    before = metrics.registry.get_sample_value("piper_requests_total", labels) or 0

    with pytest.raises(VoiceNotFoundError):
        service.speak("hello", "nobody")

    assert metrics.registry.get_sample_value("piper_requests_total", labels) == before + 1
