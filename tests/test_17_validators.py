"""Tests for request validation."""
import pytest

from piper_server.core.errors import EmptyOrOversizedTextError, ErrorCode, VoiceNotFoundError
from piper_server.services.validators import DEFAULT_MAX_TEXT_CHARS, validate_text, validate_voice_id


class TestValidateText:
    """Tests for validate_text()."""

    def test_valid_text_returned_unchanged(self):
        assert validate_text("  Hello [pause] world  ") == "  Hello [pause] world  "

    @pytest.mark.parametrize("text", ["", " ", "\n\t ", None])
    def test_empty(self, text):
        with pytest.raises(EmptyOrOversizedTextError) as exc_info:
            validate_text(text)
        assert exc_info.value.code == ErrorCode.EMPTY_OR_OVERSIZED_TEXT
        assert exc_info.value.details["reason"] == "empty"

    def test_default_limit(self):
        assert DEFAULT_MAX_TEXT_CHARS == 10000
        validate_text("a" * DEFAULT_MAX_TEXT_CHARS)
        with pytest.raises(EmptyOrOversizedTextError):
            validate_text("a" * (DEFAULT_MAX_TEXT_CHARS + 1))

    def test_custom_limit(self):
        with pytest.raises(EmptyOrOversizedTextError) as exc_info:
            validate_text("abcdef", max_length=5)
        assert exc_info.value.details == {"reason": "too_long", "chars": 6, "max_chars": 5}

    def test_length_in_characters_not_bytes(self):
        assert validate_text("ğ" * 5, max_length=5) == "ğğğğğ"


class TestValidateVoiceId:
    """Tests for validate_voice_id()."""

    def test_valid(self):
        assert validate_voice_id("en_GB-alba-medium") == "en_GB-alba-medium"

    @pytest.mark.parametrize("voice_id", ["", "   ", None])
    def test_missing(self, voice_id):
        with pytest.raises(VoiceNotFoundError) as exc_info:
            validate_voice_id(voice_id)
        assert exc_info.value.code == ErrorCode.VOICE_NOT_FOUND
