"""
FastAPI Application Entry Point.

Usage:
    # Run with uvicorn
    uvicorn piper_server.main:app --host 0.0.0.0 --port 3000

    # Or through the CLI
    piper-server --serve
"""

from __future__ import annotations

from typing import Optional

from fastapi import FastAPI

from piper_server import __version__
from piper_server.api.dependencies import get_settings
from piper_server.api.routes import router
from piper_server.core.config import Settings
from piper_server.core.logging import configure_logging
from piper_server.services.tts_service import TTSService


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        settings: Settings for the app's TTSService; defaults to
            get_settings() (PIPER_SERVER_SETTINGS or config/settings.yaml).

    Returns:
        FastAPI: Configured application owning its TTSService (app.state.tts_service).
    """
    # Reads PIPER_SERVER_LOG_LEVEL and the logging section of settings
    configure_logging()

    app = FastAPI(title="piper-server", version=__version__)
    app.state.tts_service = TTSService(settings or get_settings())
    app.include_router(router)
    return app


# Global application instance for ASGI servers (uvicorn, gunicorn, etc.)
app = create_app()
