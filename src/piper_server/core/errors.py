"""
Error Codes and Exceptions for piper-server.

Every failure that can leave the synthesis pipeline is a SynthesisError
subclass carrying a stable error code. The DSL tokenizer and transform
engine never raise; all failures come from I/O-adjacent steps (voice
registry, phonemizer, inference, encoding).

Hierarchy:
    SynthesisError
        VoiceNotFoundError         - model file missing or unsafe voice id
        InvalidConfigurationError  - voice .onnx.json missing/invalid
        EmptyOrOversizedTextError  - caller-facing validation
        PhonemizationError         - espeak-ng failed
        InferenceError             - model load or run failed
        EncodingError              - WAV encoding failed
        IOFailureError             - filesystem error outside config parsing

The API layer maps codes to HTTP status codes (see api/routes.py):
    VOICE_NOT_FOUND -> 404, EMPTY_OR_OVERSIZED_TEXT -> 400, others -> 500.
"""
from __future__ import annotations

from typing import Any, Dict, Optional


class ErrorCode:
    """
    Standardized error codes for API responses.
    """
    VOICE_NOT_FOUND = "VOICE_NOT_FOUND"
    INVALID_CONFIGURATION = "INVALID_CONFIGURATION"
    EMPTY_OR_OVERSIZED_TEXT = "EMPTY_OR_OVERSIZED_TEXT"
    PHONEMIZATION_FAILED = "PHONEMIZATION_FAILED"
    INFERENCE_FAILED = "INFERENCE_FAILED"
    ENCODING_FAILED = "ENCODING_FAILED"
    IO_ERROR = "IO_ERROR"
    INTERNAL_ERROR = "INTERNAL_ERROR"


class SynthesisError(Exception):
    """
    Base exception for synthesis errors.

    Attributes:
        message: Human-readable error message.
        code: Error code from ErrorCode class.
        details: Optional dictionary with additional context.
    """
    code: str = ErrorCode.INTERNAL_ERROR

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None, code: Optional[str] = None):
        self.message = message
        if code is not None:
            self.code = code
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to standardized error response dict for API."""
        result: Dict[str, Any] = {
            "ok": False,
            "error": self.code,
            "message": self.message,
        }
        if self.details:
            result["details"] = self.details
        return result


class VoiceNotFoundError(SynthesisError):
    """Raised when a voice id does not resolve to a model file."""
    code = ErrorCode.VOICE_NOT_FOUND

    def __init__(self, voice_id: str, details: Optional[Dict[str, Any]] = None):
        self.voice_id = voice_id
        super().__init__(f"Voice '{voice_id}' not found", details)


class InvalidConfigurationError(SynthesisError):
    """Raised when a voice configuration file is missing or malformed."""
    code = ErrorCode.INVALID_CONFIGURATION


class EmptyOrOversizedTextError(SynthesisError):
    """Raised when request text is empty or exceeds the length limit."""
    code = ErrorCode.EMPTY_OR_OVERSIZED_TEXT


class PhonemizationError(SynthesisError):
    """Raised when the phonemizer fails."""
    code = ErrorCode.PHONEMIZATION_FAILED


class InferenceError(SynthesisError):
    """Raised when a model cannot be loaded or inference fails."""
    code = ErrorCode.INFERENCE_FAILED


class EncodingError(SynthesisError):
    """Raised when audio samples cannot be encoded."""
    code = ErrorCode.ENCODING_FAILED


class IOFailureError(SynthesisError):
    """Raised on filesystem errors (e.g. unreadable voices directory)."""
    code = ErrorCode.IO_ERROR
