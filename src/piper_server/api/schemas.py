"""
API Request/Response Schemas.

Models:
    SpeechRequest: Input for POST /api/speak
    VoiceInfo / VoicesResponse: Output of GET /api/voices
    HealthResponse: Output of GET /api/health

Example Request:
    {
        "text": "Hello [pause] [emphasis]world[/emphasis]",
        "voice": "en_US-lessac-medium"
    }

Text limits are enforced by the service (see services/validators.py)
so that violations come back as EMPTY_OR_OVERSIZED_TEXT rather than a
generic 422.
"""
from __future__ import annotations

from typing import List

from pydantic import BaseModel, Field


class SpeechRequest(BaseModel):
    """
    Synthesis request for /api/speak.

    Attributes:
        text: Marked-up text; DSL tags such as [pause] or [spell] allowed.
        voice: Voice id matching {voices_dir}/{voice}.onnx.
    """
    text: str = Field(..., description="Text to synthesize, DSL tags allowed")
    voice: str = Field(..., description="Voice id, e.g. 'en_GB-alba-medium'")


class VoiceInfo(BaseModel):
    id: str
    name: str
    language: str


class VoicesResponse(BaseModel):
    voices: List[VoiceInfo]


class HealthResponse(BaseModel):
    """
    Service health.

    Attributes:
        status: Always "ok" when the process answers.
        version: Package version.
        voices_dir: Directory voices are loaded from.
        loaded_voices: Voice ids resident in the engine cache.
        engine_loads: Number of successful model loads so far.
    """
    status: str
    version: str
    voices_dir: str
    loaded_voices: List[str] = Field(default_factory=list)
    engine_loads: int = 0
