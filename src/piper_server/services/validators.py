"""
Input Validation for the Synthesis Service.

Validation runs before any DSL processing or file access so bad requests
fail fast with a client-facing error code.

Validation Rules:
    - Text: required (whitespace-only counts as empty), at most
      synthesis.max_text_chars characters (default 10000), measured on
      the raw markup before DSL processing.
    - Voice: required; the registry rejects ids that could leave the
      voices directory.

Usage:
    from piper_server.services.validators import validate_text

    text = validate_text(request.text, max_length=10000)
"""
from __future__ import annotations

from piper_server.core.errors import EmptyOrOversizedTextError, VoiceNotFoundError

DEFAULT_MAX_TEXT_CHARS = 10000


def validate_text(text: str, max_length: int = DEFAULT_MAX_TEXT_CHARS) -> str:
    """
    Validate request text.

    Returns:
        The text, unchanged.

    Raises:
        EmptyOrOversizedTextError: If empty, blank, or too long.
    """
    if not text or not text.strip():
        raise EmptyOrOversizedTextError("Text cannot be empty", {"reason": "empty"})

    if len(text) > max_length:
        raise EmptyOrOversizedTextError(
            f"Text too long ({len(text)} > {max_length} chars)",
            {"reason": "too_long", "chars": len(text), "max_chars": max_length},
        )

    return text


def validate_voice_id(voice_id: str) -> str:
    """
    Reject a missing voice id before touching the filesystem.

    Raises:
        VoiceNotFoundError: If voice_id is empty or blank.
    """
    if not voice_id or not voice_id.strip():
        raise VoiceNotFoundError(voice_id or "", {"reason": "voice id is required"})
    return voice_id
