"""
piper-server: DSL-driven Piper Text-to-Speech Service.

Turns plain text annotated with a small bracket-tag markup language into
speech using Piper (VITS) voices exported to ONNX.

Markup:
    [pause]             short pause ("...")
    [pause:800]         timed pause (one dot per 200ms, at least three)
    [slow]...[/slow]    stretch words apart with ellipses
    [fast]...[/fast]    strip ellipses and commas
    [emphasis]...       uppercase
    [spell]BBC[/spell]  spell letter by letter ("B. B. C.")
    [whisper]...        lowercase, wrapped in parentheses

Key Features:
    - Hand-written DSL tokenizer with tolerant tag nesting
    - Per-voice ONNX engine cache with single-flight loading
    - espeak-ng phonemization and WAV encoding
    - FastAPI endpoints (/api/speak, /api/voices, /api/health, /metrics)
    - Prometheus metrics and structured logging

Example Usage:
    >>> from piper_server.core.config import Settings
    >>> from piper_server.services import TTSService
    >>>
    >>> settings = Settings(raw={"voices": {"dir": "./voices"}})
    >>> service = TTSService(settings)
    >>> wav = service.speak("Hello [pause] world", "en_US-lessac-medium")
    >>> with open("output.wav", "wb") as f:
    ...     f.write(wav)
"""

__version__ = "0.1.0"
__all__ = ["__version__"]
