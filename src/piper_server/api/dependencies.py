"""
FastAPI Dependency Injection Providers.

Hierarchy:
    1. get_settings() - Loads and caches application configuration
    2. get_tts_service() - Returns the TTSService owned by the running app

The settings path comes from PIPER_SERVER_SETTINGS (default
config/settings.yaml). A missing file means built-in defaults plus
environment overrides; an invalid file fails at startup.

Tests replace either provider with app.dependency_overrides.
"""
from __future__ import annotations

import os
from functools import lru_cache

from fastapi import Request

from piper_server.core.config import Settings, default_settings, load_settings
from piper_server.services.tts_service import TTSService

SETTINGS_ENV = "PIPER_SERVER_SETTINGS"
DEFAULT_SETTINGS_PATH = "config/settings.yaml"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Load and cache application settings.

    Settings are immutable once loaded; restart to pick up changes.
    """
    path = os.getenv(SETTINGS_ENV, DEFAULT_SETTINGS_PATH)
    try:
        return load_settings(path)
    except FileNotFoundError:
        return default_settings()


def get_tts_service(request: Request) -> TTSService:
    """
    Get the app's TTSService.

    create_app() stores one service on app.state; all requests to that
    app share it, and with it one engine cache, so a voice model is
    loaded once per app.
    """
    return request.app.state.tts_service
