"""
Request Context and Configuration State for Logging.

The request id lives in a ContextVar so it follows a request through
threadpool and asyncio boundaries. Level and configuration are
module-level state shared by the whole process.

Environment Variables:
    - PIPER_SERVER_SETTINGS: Settings file to read the logging section from
    - PIPER_SERVER_LOG_LEVEL: Override log level (1-4 or name)
    - PIPER_SERVER_LOG_DIR: Directory for the JSONL log file
    - PIPER_SERVER_JSONL_FILE: JSONL filename
    - PIPER_SERVER_LOG_ROTATE_BYTES: Max log file size
    - PIPER_SERVER_LOG_ROTATE_BACKUP: Number of backup files
"""
from __future__ import annotations

import os
from contextvars import ContextVar
from pathlib import Path
from typing import Any, Dict

import yaml

from .levels import LEVEL_NAMES, LogLevel

# "-" outside of a request
_request_id: ContextVar[str] = ContextVar("request_id", default="-")

_configured: bool = False
_log_config: Dict[str, Any] = {}
_current_level: LogLevel = LogLevel.NORMAL


def get_request_id() -> str:
    """Get current request ID from context ("-" if not set)."""
    return _request_id.get()


def set_request_id(rid: str) -> None:
    """
    Set request ID in context for log correlation.

    Args:
        rid: Request identifier string (typically a 12 char UUID prefix).
    """
    _request_id.set(rid)


def get_level() -> LogLevel:
    """Get current log level."""
    return _current_level


def set_level(level: LogLevel) -> None:
    """Set current log level."""
    global _current_level
    _current_level = level


def get_level_name() -> str:
    """Get current log level as human-readable name."""
    return LEVEL_NAMES.get(_current_level, "NORMAL")


def is_configured() -> bool:
    return _configured


def set_configured(value: bool) -> None:
    global _configured
    _configured = value


def get_log_config() -> Dict[str, Any]:
    return _log_config


def set_log_config(config: Dict[str, Any]) -> None:
    global _log_config
    _log_config = config


def _read_settings_section(path: str) -> Dict[str, Any]:
    # Runs before settings are validated; a broken file means defaults.
    p = Path(path)
    if not p.is_file():
        return {}
    try:
        with p.open("r", encoding="utf-8") as f:
            raw = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError):
        return {}
    section = raw.get("logging", {}) if isinstance(raw, dict) else {}
    return dict(section) if isinstance(section, dict) else {}


def read_logging_config() -> Dict[str, Any]:
    """
    Read logging configuration from settings file and environment.

    Configuration priority (highest to lowest):
        1. Environment variables (PIPER_SERVER_LOG_LEVEL, etc.)
        2. settings.yaml logging section
        3. Default values

    Returns:
        Dictionary with resolved logging configuration.
    """
    cfg = _read_settings_section(os.getenv("PIPER_SERVER_SETTINGS", "config/settings.yaml"))

    if os.getenv("PIPER_SERVER_LOG_LEVEL"):
        cfg["level"] = os.environ["PIPER_SERVER_LOG_LEVEL"]
    if os.getenv("PIPER_SERVER_LOG_DIR"):
        cfg["log_dir"] = os.environ["PIPER_SERVER_LOG_DIR"]
    if os.getenv("PIPER_SERVER_JSONL_FILE"):
        cfg["jsonl_file"] = os.environ["PIPER_SERVER_JSONL_FILE"]
    for env_name, key in (
        ("PIPER_SERVER_LOG_ROTATE_BYTES", "rotate_max_bytes"),
        ("PIPER_SERVER_LOG_ROTATE_BACKUP", "rotate_backup_count"),
    ):
        value = os.getenv(env_name)
        if value and value.isdigit():
            cfg[key] = int(value)

    return cfg
