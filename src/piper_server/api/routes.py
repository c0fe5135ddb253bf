"""
HTTP API Routes.

Endpoints:
    POST /api/speak   - Synthesize marked-up text, returns audio/wav
    GET  /api/voices  - List voices in the voices directory
    GET  /api/health  - Health check for load balancers and monitors
    GET  /metrics     - Prometheus metrics

Error Handling:
    Errors are returned as JSON:
    {
        "ok": false,
        "error": "<ERROR_CODE>",
        "message": "<human readable message>",
        "request_id": "<id>"
    }

    HTTP status codes are mapped from SynthesisError codes:
        - VOICE_NOT_FOUND -> 404 Not Found
        - EMPTY_OR_OVERSIZED_TEXT -> 400 Bad Request
        - everything else -> 500 Internal Server Error

Example Usage:
    curl -X POST http://localhost:3000/api/speak \\
        -H "Content-Type: application/json" \\
        -d '{"text": "Hello [pause] world", "voice": "en_US-lessac-medium"}' \\
        --output speech.wav
"""
from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, Response
from fastapi.responses import JSONResponse

from piper_server.api.dependencies import get_tts_service
from piper_server.api.schemas import HealthResponse, SpeechRequest, VoiceInfo, VoicesResponse
from piper_server.core.errors import ErrorCode, SynthesisError
from piper_server.core.logging import error, get_logger, set_request_id
from piper_server.core.metrics import metrics
from piper_server.services.tts_service import SpeakRequest, TTSService

router = APIRouter()

_LOG = get_logger("piper-server.api")

STATUS_MAP = {
    ErrorCode.VOICE_NOT_FOUND: 404,
    ErrorCode.EMPTY_OR_OVERSIZED_TEXT: 400,
}


def status_for(code: str) -> int:
    """HTTP status for an error code; unknown codes are server errors."""
    return STATUS_MAP.get(code, 500)


def _error_response(err: SynthesisError, request_id: str) -> JSONResponse:
    content = err.to_dict()
    content["request_id"] = request_id
    return JSONResponse(status_code=status_for(err.code), content=content)


def _internal_error(request_id: str) -> JSONResponse:
    return JSONResponse(
        status_code=500,
        content={
            "ok": False,
            "error": ErrorCode.INTERNAL_ERROR,
            "message": "Internal server error",
            "request_id": request_id,
        },
    )


@router.post("/api/speak", response_class=Response)
def speak(
    req: SpeechRequest,
    service: TTSService = Depends(get_tts_service),
):
    """
    Synthesize speech.

    Returns:
        WAV audio with headers:
            - X-Request-Id: Unique request identifier for tracing
            - X-Sample-Rate: Audio sample rate of the voice
            - X-Bytes: Size of audio data in bytes
    """
    rid = str(uuid.uuid4())[:12]
    set_request_id(rid)

    try:
        result = service.synthesize(SpeakRequest(text=req.text, voice=req.voice), rid)
    except SynthesisError as e:
        return _error_response(e, rid)
    except Exception as e:
        # Log internally but don't expose details
        error(_LOG, "unhandled_error", error_type=type(e).__name__, error=str(e))
        return _internal_error(rid)

    headers = {
        "X-Request-Id": rid,
        "X-Sample-Rate": str(result.sample_rate),
        "X-Bytes": str(len(result.wav_bytes)),
    }
    return Response(content=result.wav_bytes, media_type="audio/wav", headers=headers)


@router.get("/api/voices", response_model=VoicesResponse)
def list_voices(service: TTSService = Depends(get_tts_service)):
    """List voices whose model and config load cleanly."""
    rid = str(uuid.uuid4())[:12]
    set_request_id(rid)
    try:
        voices = service.list_voices()
    except SynthesisError as e:
        return _error_response(e, rid)
    return VoicesResponse(voices=[VoiceInfo(**v.to_dict()) for v in voices])


@router.get("/api/health", response_model=HealthResponse)
def health(service: TTSService = Depends(get_tts_service)):
    """
    Health check endpoint for load balancers and orchestration.

    Reports version, voices directory and which voices are loaded.
    """
    return HealthResponse(**service.get_health_info())


@router.get("/metrics")
def prometheus_metrics():
    """Prometheus metrics in text exposition format."""
    content, content_type = metrics.get_metrics_response()
    return Response(content=content, media_type=content_type)
