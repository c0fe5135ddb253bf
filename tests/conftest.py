"""Shared fixtures: a temporary voices directory and default settings."""
from __future__ import annotations

import pytest

from fakes import VOICE_ID, FakePhonemizer, voice_config, write_voice
from piper_server.core.config import Settings


@pytest.fixture
def voices_dir(tmp_path):
    d = tmp_path / "voices"
    d.mkdir()
    write_voice(d, VOICE_ID, voice_config())
    return d


@pytest.fixture
def settings(voices_dir):
    return Settings(raw={
        "voices": {"dir": str(voices_dir), "default_locale": "en"},
        "synthesis": {"max_text_chars": 200},
        "logging": {"level": 1, "text_preview_chars": 20},
    })


@pytest.fixture
def phonemizer():
    return FakePhonemizer(result="həlo wɜld")
