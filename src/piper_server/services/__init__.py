"""
piper-server Services Layer.

Business logic between the API/CLI and the synthesis building blocks.

Components:
    - tts_service.py: TTSService (synthesis orchestrator)
    - validators.py: Request validation
"""
from .tts_service import (
    SpeakRequest,
    SpeakResult,
    TTSService,
)

__all__ = [
    "TTSService",
    "SpeakRequest",
    "SpeakResult",
]
