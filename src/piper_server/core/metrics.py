"""
Prometheus Metrics for piper-server.

Metrics Exposed:
    piper_requests_total             - Counter of speak requests by voice and status
    piper_request_duration_seconds   - Histogram of request latency
    piper_audio_bytes_total          - Counter of WAV bytes produced
    piper_engine_loads_total         - Counter of model loads by voice and status
    piper_engines_loaded             - Gauge of voices resident in the engine cache

Usage:
    from piper_server.core.metrics import metrics

    metrics.record_request(voice="en_US-lessac-medium", status="success",
                           duration=0.5, audio_bytes=44100)
    metrics.record_engine_load("en_US-lessac-medium", "success")
    content, content_type = metrics.get_metrics_response()

Metrics live in a private CollectorRegistry so several instances (tests,
embedded use) never collide with the default registry.
"""
from __future__ import annotations

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    generate_latest,
)


class ServiceMetrics:
    """
    Metrics collection for the synthesis pipeline.

    Thread Safety:
        Prometheus metric operations are thread-safe.
    """

    def __init__(self):
        self._registry = CollectorRegistry()

        self._requests_total = Counter(
            "piper_requests_total",
            "Total speak requests",
            ["voice", "status"],
            registry=self._registry,
        )
        self._request_duration = Histogram(
            "piper_request_duration_seconds",
            "Speak request duration in seconds",
            ["status"],
            buckets=(0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0),
            registry=self._registry,
        )
        self._audio_bytes_total = Counter(
            "piper_audio_bytes_total",
            "Total WAV bytes generated",
            registry=self._registry,
        )
        self._engine_loads_total = Counter(
            "piper_engine_loads_total",
            "Voice model loads",
            ["voice", "status"],
            registry=self._registry,
        )
        self._engines_loaded = Gauge(
            "piper_engines_loaded",
            "Voices resident in the engine cache",
            registry=self._registry,
        )

    @property
    def registry(self) -> CollectorRegistry:
        return self._registry

    def record_request(
        self,
        voice: str,
        status: str,
        duration: float,
        audio_bytes: int = 0,
    ) -> None:
        """
        Record a completed speak request.

        Args:
            voice: Voice id from the request
            status: "success" or an error code
            duration: Request duration in seconds
            audio_bytes: Size of generated audio in bytes
        """
        self._requests_total.labels(voice=voice, status=status).inc()
        self._request_duration.labels(status="success" if status == "success" else "error").observe(duration)
        if audio_bytes > 0:
            self._audio_bytes_total.inc(audio_bytes)

    def record_engine_load(self, voice: str, status: str) -> None:
        """Record a model load attempt ("success" or "error")."""
        self._engine_loads_total.labels(voice=voice, status=status).inc()

    def set_engines_loaded(self, count: int) -> None:
        self._engines_loaded.set(count)

    def get_metrics_response(self) -> tuple[bytes, str]:
        """
        Get metrics in Prometheus format.

        Returns:
            Tuple of (content_bytes, content_type)
        """
        return generate_latest(self._registry), CONTENT_TYPE_LATEST


# Process-wide instance used by the service and the /metrics endpoint
metrics = ServiceMetrics()
