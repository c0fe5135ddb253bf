"""
TTSService - Synthesis Orchestrator.

Single entry point for turning marked-up text into WAV audio. The HTTP
routes and the CLI both go through this service.

Pipeline (strictly sequential per request, each failure short-circuits):
    validate -> DSL -> voice registry -> phonemize -> phoneme ids
             -> engine cache (get-or-load) -> inference -> WAV encode

Errors:
    Every failure is a SynthesisError subclass from core/errors.py and is
    propagated unchanged to the caller; nothing is retried here.

Concurrency:
    create_app() builds one TTSService per application and keeps it on
    app.state; it is shared by all request threads. Its only mutable shared
    state is the EngineCache, which handles its own locking; every other
    stage works on request-local data.

Example:
    >>> from piper_server.core.config import Settings
    >>> from piper_server.services import TTSService
    >>>
    >>> service = TTSService(Settings(raw={"voices": {"dir": "./voices"}}))
    >>> wav = service.speak("Hello [pause] world", "en_US-lessac-medium")
    >>> wav[:4]
    b'RIFF'
"""
from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Protocol, Sequence

import numpy as np

from piper_server import __version__
from piper_server.core.config import ServiceConfig, Settings
from piper_server.core.errors import SynthesisError
from piper_server.core.logging import debug, fail, get_logger, info, set_request_id, success, verbose
from piper_server.core.metrics import metrics
from piper_server.dsl import process
from piper_server.services.validators import validate_text, validate_voice_id
from piper_server.tts.engine import PiperEngine, SynthesisScales
from piper_server.tts.engine_cache import EngineCache
from piper_server.tts.phonemizer import EspeakPhonemizer, phonemes_to_ids
from piper_server.tts.voices import VoiceSummary, list_available, load_voice
from piper_server.utils.audio import wav_bytes_from_float32
from piper_server.utils.timeit import timeit

_LOG = get_logger("piper-server.service")


class Phonemizer(Protocol):
    def phonemize(self, text: str, locale: str) -> str: ...


class Engine(Protocol):
    def synthesize(self, phoneme_ids: Sequence[int], scales: SynthesisScales) -> np.ndarray: ...


# =============================================================================
# Request/Response Dataclasses
# =============================================================================

@dataclass
class SpeakRequest:
    """
    Request for synthesis.

    Attributes:
        text: Marked-up text (DSL tags allowed).
        voice: Voice id, e.g. "en_GB-alba-medium".
    """
    text: str
    voice: str


@dataclass
class SpeakResult:
    """
    Result of synthesis.

    Attributes:
        wav_bytes: 16-bit mono PCM WAV.
        sample_rate: Sample rate of the voice.
        voice_id: Voice used.
        processed_text: Text after DSL processing.
        total_seconds: Total processing time.
        request_id: Request ID for tracing.
        timings: Per-stage timing breakdown in seconds.
    """
    wav_bytes: bytes
    sample_rate: int
    voice_id: str
    processed_text: str
    total_seconds: float
    request_id: str
    timings: Dict[str, float] = field(default_factory=dict)


# =============================================================================
# Main Service Class
# =============================================================================

class TTSService:
    """
    Synthesis orchestrator owning the phonemizer and the engine cache.

    Args:
        settings: Application settings (validated into ServiceConfig).
        phonemizer: Phonemizer to use; defaults to espeak-ng per settings.
        engine_cache: Engine cache to use; defaults to a new cache that
            loads PiperEngine models from the voices directory.

    Usage:
        service = TTSService(load_settings("config/settings.yaml"))
        result = service.synthesize(SpeakRequest("Hi [pause] there", "en_US-amy-low"), "req-1")
    """

    def __init__(
        self,
        settings: Settings,
        phonemizer: Optional[Phonemizer] = None,
        engine_cache: Optional[EngineCache] = None,
    ):
        self._settings = settings
        self._config = ServiceConfig.from_settings(settings)
        self._voices_dir = Path(self._config.voices.dir)

        self._phonemizer: Phonemizer = phonemizer or EspeakPhonemizer(
            executable=self._config.phonemizer.executable,
            timeout_s=self._config.phonemizer.timeout_s,
        )
        self._engine_cache: EngineCache = engine_cache or EngineCache(self._load_engine)
        self._text_preview_chars = self._config.logging.text_preview_chars

    # =========================================================================
    # Properties
    # =========================================================================

    @property
    def settings(self) -> Settings:
        return self._settings

    @property
    def config(self) -> ServiceConfig:
        return self._config

    @property
    def voices_dir(self) -> Path:
        return self._voices_dir

    @property
    def engine_cache(self) -> EngineCache:
        return self._engine_cache

    # =========================================================================
    # Engine loading
    # =========================================================================

    def _load_engine(self, voice_id: str) -> PiperEngine:
        """Loader used by the default EngineCache; runs outside any cache lock."""
        try:
            voice = load_voice(self._voices_dir, voice_id)
            engine = PiperEngine.load(
                voice,
                providers=self._config.engine.providers,
                intra_op_threads=self._config.engine.intra_op_threads,
            )
        except SynthesisError:
            metrics.record_engine_load(voice_id, "error")
            raise
        metrics.record_engine_load(voice_id, "success")
        return engine

    # =========================================================================
    # Public API
    # =========================================================================

    def speak(self, text: str, voice_id: str) -> bytes:
        """
        Synthesize marked-up text and return WAV bytes.

        Raises:
            SynthesisError: Any pipeline failure (see core/errors.py).
        """
        result = self.synthesize(SpeakRequest(text=text, voice=voice_id), request_id=uuid.uuid4().hex[:12])
        return result.wav_bytes

    def synthesize(self, request: SpeakRequest, request_id: str) -> SpeakResult:
        """
        Run the full pipeline for one request.

        Args:
            request: Text and voice id.
            request_id: Unique ID for log correlation.

        Returns:
            SpeakResult with WAV bytes and per-stage timings.

        Raises:
            EmptyOrOversizedTextError: Text empty, blank or too long.
            VoiceNotFoundError: Unknown or invalid voice id.
            InvalidConfigurationError: Voice config missing or malformed.
            PhonemizationError: espeak-ng failed.
            InferenceError: Model load or inference failed.
            EncodingError: WAV encoding failed.
        """
        set_request_id(request_id)
        timings: Dict[str, float] = {}
        voice_id = request.voice

        preview = request.text[:self._text_preview_chars] if self._text_preview_chars > 0 else ""
        info(_LOG, "request", chars=len(request.text or ""), voice=voice_id, text_preview=preview)

        try:
            with timeit("request_total") as total_t:
                wav_bytes, sample_rate, processed = self._run_pipeline(request, timings)
        except SynthesisError as e:
            total_s = total_t.seconds
            metrics.record_request(voice_id or "-", e.code, total_s)
            fail(_LOG, "speak_failed", voice=voice_id, code=e.code, error=e.message,
                 seconds=round(total_s, 3))
            raise

        total_s = total_t.seconds
        metrics.record_request(voice_id, "success", total_s, audio_bytes=len(wav_bytes))
        success(_LOG, "speak_done", voice=voice_id, bytes=len(wav_bytes), seconds=round(total_s, 3))

        return SpeakResult(
            wav_bytes=wav_bytes,
            sample_rate=sample_rate,
            voice_id=voice_id,
            processed_text=processed,
            total_seconds=total_s,
            request_id=request_id,
            timings=timings,
        )

    def _run_pipeline(self, request: SpeakRequest, timings: Dict[str, float]) -> tuple[bytes, int, str]:
        def _stage(t: timeit, **fields: Any) -> None:
            timings[t.name] = t.seconds
            verbose(_LOG, "stage", event=t.name, seconds=round(t.seconds, 4), **fields)

        # ─────────────────────────────────────────────────────────────────────
        # Stage 1: Validate
        # ─────────────────────────────────────────────────────────────────────
        text = validate_text(request.text, max_length=self._config.synthesis.max_text_chars)
        voice_id = validate_voice_id(request.voice)

        # ─────────────────────────────────────────────────────────────────────
        # Stage 2: DSL
        # ─────────────────────────────────────────────────────────────────────
        with timeit("dsl") as t:
            processed = process(text)
        _stage(t, chars=len(processed))
        debug(_LOG, "dsl_processed", text=processed)

        # ─────────────────────────────────────────────────────────────────────
        # Stage 3: Resolve voice
        # ─────────────────────────────────────────────────────────────────────
        with timeit("voice") as t:
            voice = load_voice(self._voices_dir, voice_id)
        _stage(t)
        locale = voice.espeak_voice or self._config.voices.default_locale

        # ─────────────────────────────────────────────────────────────────────
        # Stage 4: Phonemize + map to ids
        # ─────────────────────────────────────────────────────────────────────
        with timeit("phonemize") as t:
            phonemes = self._phonemizer.phonemize(processed, locale)
            ids = phonemes_to_ids(phonemes, voice.config.phoneme_id_map)
        _stage(t, locale=locale, ids=len(ids))

        # ─────────────────────────────────────────────────────────────────────
        # Stage 5: Engine + inference
        # ─────────────────────────────────────────────────────────────────────
        with timeit("engine") as t:
            engine = self._engine_cache.get_or_load(voice_id)
        _stage(t)
        metrics.set_engines_loaded(len(self._engine_cache))

        scales = SynthesisScales.for_voice(self._config.synthesis, voice)
        with timeit("inference") as t:
            samples = engine.synthesize(ids, scales)
        _stage(t, samples=int(np.asarray(samples).size))

        # ─────────────────────────────────────────────────────────────────────
        # Stage 6: Encode
        # ─────────────────────────────────────────────────────────────────────
        wav_bytes, enc_timings = wav_bytes_from_float32(samples, voice.sample_rate)
        timings.update(enc_timings)

        return wav_bytes, voice.sample_rate, processed

    def list_voices(self) -> List[VoiceSummary]:
        """
        List voices available in the voices directory.

        Raises:
            IOFailureError: If the directory cannot be read.
        """
        return list_available(self._voices_dir)

    def get_health_info(self) -> Dict[str, Any]:
        """Health summary for /api/health."""
        return {
            "status": "ok",
            "version": __version__,
            "voices_dir": str(self._voices_dir),
            "loaded_voices": self._engine_cache.loaded_voices(),
            "engine_loads": self._engine_cache.load_count,
        }
