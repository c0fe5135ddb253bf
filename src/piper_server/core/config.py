"""
Configuration Management for piper-server.

This module provides centralized configuration handling with:
    - Default values (Defaults class)
    - Dataclass-based configuration objects
    - YAML file loading with environment variable overrides
    - Validation with meaningful error messages

Configuration Hierarchy (highest priority first):
    1. Environment variables (PIPER_SERVER_VOICES_DIR, HOST, PORT)
    2. YAML config file (config/settings.yaml)
    3. Defaults class values

Example settings.yaml:
    voices:
      dir: ./voices
      default_locale: en

    synthesis:
      max_text_chars: 10000
      noise_scale: 0.667
      length_scale: 1.0
      noise_w: 0.8

    engine:
      providers: [CPUExecutionProvider]

    phonemizer:
      executable: espeak-ng
      timeout_s: 30

    logging:
      level: 2  # NORMAL
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List
import os
import yaml


class ConfigValidationError(Exception):
    """
    Raised when configuration validation fails.

    This exception is thrown when a configuration value is outside
    acceptable bounds or of the wrong type.
    """
    pass


class Defaults:
    """
    Centralized default configuration values.

    Sections:
        - Voices: Where models live and the fallback phonemizer locale
        - Synthesis: Text limits and inference scale constants
        - Engine: onnxruntime session options
        - Phonemizer: espeak-ng invocation
        - Server: Bind address for --serve
        - Logging: Log level and text preview
    """

    # ─────────────────────────────────────────────────────────────────────────
    # Voices
    # ─────────────────────────────────────────────────────────────────────────
    VOICES_DIR = "./voices"             # {dir}/{id}.onnx + {id}.onnx.json
    VOICES_DEFAULT_LOCALE = "en"        # Used when a voice has no espeak block

    # ─────────────────────────────────────────────────────────────────────────
    # Synthesis
    # ─────────────────────────────────────────────────────────────────────────
    SYNTHESIS_MAX_TEXT_CHARS = 10000    # Request text limit
    SYNTHESIS_NOISE_SCALE = 0.667       # Prosodic variability
    SYNTHESIS_LENGTH_SCALE = 1.0        # Speaking rate (higher = slower)
    SYNTHESIS_NOISE_W = 0.8             # Phoneme duration variability

    # ─────────────────────────────────────────────────────────────────────────
    # Engine (onnxruntime)
    # ─────────────────────────────────────────────────────────────────────────
    ENGINE_PROVIDERS = ("CPUExecutionProvider",)
    ENGINE_INTRA_OP_THREADS = 0         # 0 = let onnxruntime decide

    # ─────────────────────────────────────────────────────────────────────────
    # Phonemizer
    # ─────────────────────────────────────────────────────────────────────────
    PHONEMIZER_EXECUTABLE = "espeak-ng"
    PHONEMIZER_TIMEOUT_S = 30.0

    # ─────────────────────────────────────────────────────────────────────────
    # Server
    # ─────────────────────────────────────────────────────────────────────────
    SERVER_HOST = "0.0.0.0"
    SERVER_PORT = 3000

    # ─────────────────────────────────────────────────────────────────────────
    # Logging
    # ─────────────────────────────────────────────────────────────────────────
    LOGGING_TEXT_PREVIEW_CHARS = 80     # Characters to show in text preview
    LOGGING_LEVEL = 2                   # 1=MINIMAL, 2=NORMAL, 3=VERBOSE, 4=DEBUG


@dataclass
class VoicesConfig:
    """
    Voice registry configuration.
    """
    dir: str = Defaults.VOICES_DIR
    default_locale: str = Defaults.VOICES_DEFAULT_LOCALE


@dataclass
class SynthesisConfig:
    """
    Synthesis policy constants.

    The three scales are service-wide defaults; a voice's own
    ``inference`` block overrides them. They are never taken from requests.
    """
    max_text_chars: int = Defaults.SYNTHESIS_MAX_TEXT_CHARS
    noise_scale: float = Defaults.SYNTHESIS_NOISE_SCALE
    length_scale: float = Defaults.SYNTHESIS_LENGTH_SCALE
    noise_w: float = Defaults.SYNTHESIS_NOISE_W


@dataclass
class EngineConfig:
    """
    onnxruntime session configuration shared by every loaded voice.
    """
    providers: List[str] = field(default_factory=lambda: list(Defaults.ENGINE_PROVIDERS))
    intra_op_threads: int = Defaults.ENGINE_INTRA_OP_THREADS


@dataclass
class PhonemizerConfig:
    """
    espeak-ng invocation settings.
    """
    executable: str = Defaults.PHONEMIZER_EXECUTABLE
    timeout_s: float = Defaults.PHONEMIZER_TIMEOUT_S


@dataclass
class ServerConfig:
    """
    Bind address used by ``piper-server --serve``.
    """
    host: str = Defaults.SERVER_HOST
    port: int = Defaults.SERVER_PORT


@dataclass
class LoggingConfig:
    """
    Logging configuration.

    Log levels:
        1 = MINIMAL: Startup, shutdown, critical errors only
        2 = NORMAL: Request lifecycle (default)
        3 = VERBOSE: Per-stage timing, skipped voices
        4 = DEBUG: Internal state, full tracing
    """
    text_preview_chars: int = Defaults.LOGGING_TEXT_PREVIEW_CHARS
    level: int = Defaults.LOGGING_LEVEL


@dataclass
class ServiceConfig:
    """
    Validated configuration for TTSService.

    Usage:
        settings = load_settings("config/settings.yaml")
        config = ServiceConfig.from_settings(settings)
        print(config.synthesis.max_text_chars)
    """
    voices: VoicesConfig = field(default_factory=VoicesConfig)
    synthesis: SynthesisConfig = field(default_factory=SynthesisConfig)
    engine: EngineConfig = field(default_factory=EngineConfig)
    phonemizer: PhonemizerConfig = field(default_factory=PhonemizerConfig)
    server: ServerConfig = field(default_factory=ServerConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def from_settings(cls, settings: "Settings") -> "ServiceConfig":
        """
        Create ServiceConfig from Settings with validation.

        Args:
            settings: Raw Settings object loaded from YAML.

        Returns:
            Validated ServiceConfig instance.

        Raises:
            ConfigValidationError: If any value fails validation.
        """
        raw = settings.raw

        # ─────────────────────────────────────────────────────────────────────
        # Voices
        # ─────────────────────────────────────────────────────────────────────
        voices_raw = raw.get("voices", {}) or {}
        voices = VoicesConfig(
            dir=str(voices_raw.get("dir", Defaults.VOICES_DIR)),
            default_locale=str(voices_raw.get("default_locale", Defaults.VOICES_DEFAULT_LOCALE)),
        )
        cls._validate_non_empty("voices.dir", voices.dir)
        cls._validate_non_empty("voices.default_locale", voices.default_locale)

        # ─────────────────────────────────────────────────────────────────────
        # Synthesis
        # ─────────────────────────────────────────────────────────────────────
        synthesis_raw = raw.get("synthesis", {}) or {}
        try:
            synthesis = SynthesisConfig(
                max_text_chars=int(synthesis_raw.get("max_text_chars", Defaults.SYNTHESIS_MAX_TEXT_CHARS)),
                noise_scale=float(synthesis_raw.get("noise_scale", Defaults.SYNTHESIS_NOISE_SCALE)),
                length_scale=float(synthesis_raw.get("length_scale", Defaults.SYNTHESIS_LENGTH_SCALE)),
                noise_w=float(synthesis_raw.get("noise_w", Defaults.SYNTHESIS_NOISE_W)),
            )
        except (TypeError, ValueError) as e:
            raise ConfigValidationError(f"synthesis: {e}") from e
        cls._validate_positive("synthesis.max_text_chars", synthesis.max_text_chars)
        cls._validate_non_negative("synthesis.noise_scale", synthesis.noise_scale)
        cls._validate_positive("synthesis.length_scale", synthesis.length_scale)
        cls._validate_non_negative("synthesis.noise_w", synthesis.noise_w)

        # ─────────────────────────────────────────────────────────────────────
        # Engine
        # ─────────────────────────────────────────────────────────────────────
        engine_raw = raw.get("engine", {}) or {}
        providers = engine_raw.get("providers", list(Defaults.ENGINE_PROVIDERS))
        if isinstance(providers, str):
            providers = [providers]
        engine = EngineConfig(
            providers=[str(p) for p in providers],
            intra_op_threads=int(engine_raw.get("intra_op_threads", Defaults.ENGINE_INTRA_OP_THREADS)),
        )
        if not engine.providers:
            raise ConfigValidationError("engine.providers must not be empty")
        cls._validate_non_negative("engine.intra_op_threads", engine.intra_op_threads)

        # ─────────────────────────────────────────────────────────────────────
        # Phonemizer
        # ─────────────────────────────────────────────────────────────────────
        phonemizer_raw = raw.get("phonemizer", {}) or {}
        phonemizer = PhonemizerConfig(
            executable=str(phonemizer_raw.get("executable", Defaults.PHONEMIZER_EXECUTABLE)),
            timeout_s=float(phonemizer_raw.get("timeout_s", Defaults.PHONEMIZER_TIMEOUT_S)),
        )
        cls._validate_non_empty("phonemizer.executable", phonemizer.executable)
        cls._validate_positive("phonemizer.timeout_s", phonemizer.timeout_s)

        # ─────────────────────────────────────────────────────────────────────
        # Server
        # ─────────────────────────────────────────────────────────────────────
        server_raw = raw.get("server", {}) or {}
        try:
            server = ServerConfig(
                host=str(server_raw.get("host", Defaults.SERVER_HOST)),
                port=int(server_raw.get("port", Defaults.SERVER_PORT)),
            )
        except (TypeError, ValueError) as e:
            raise ConfigValidationError(f"server: {e}") from e
        cls._validate_range("server.port", server.port, 1, 65535)

        # ─────────────────────────────────────────────────────────────────────
        # Logging
        # ─────────────────────────────────────────────────────────────────────
        logging_raw = raw.get("logging", {}) or {}
        log_level_raw = logging_raw.get("level", Defaults.LOGGING_LEVEL)

        # Handle string log levels (e.g., "INFO", "DEBUG")
        if isinstance(log_level_raw, str):
            level_map = {
                "MINIMAL": 1, "1": 1,
                "NORMAL": 2, "INFO": 2, "2": 2,
                "VERBOSE": 3, "3": 3,
                "DEBUG": 4, "TRACE": 4, "4": 4,
            }
            log_level = level_map.get(log_level_raw.upper(), Defaults.LOGGING_LEVEL)
        else:
            log_level = int(log_level_raw)

        logging_cfg = LoggingConfig(
            text_preview_chars=int(logging_raw.get("text_preview_chars", Defaults.LOGGING_TEXT_PREVIEW_CHARS)),
            level=log_level,
        )
        cls._validate_non_negative("logging.text_preview_chars", logging_cfg.text_preview_chars)
        cls._validate_range("logging.level", logging_cfg.level, 1, 4)

        return cls(
            voices=voices,
            synthesis=synthesis,
            engine=engine,
            phonemizer=phonemizer,
            server=server,
            logging=logging_cfg,
        )

    @staticmethod
    def _validate_positive(name: str, value: int | float) -> None:
        """Validate that a value is positive (> 0)."""
        if value <= 0:
            raise ConfigValidationError(f"{name} must be positive, got {value}")

    @staticmethod
    def _validate_non_negative(name: str, value: int | float) -> None:
        """Validate that a value is non-negative (>= 0)."""
        if value < 0:
            raise ConfigValidationError(f"{name} must be non-negative, got {value}")

    @staticmethod
    def _validate_range(name: str, value: int | float, min_val: int | float, max_val: int | float) -> None:
        """Validate that a value is within a range [min_val, max_val]."""
        if not (min_val <= value <= max_val):
            raise ConfigValidationError(f"{name} must be between {min_val} and {max_val}, got {value}")

    @staticmethod
    def _validate_non_empty(name: str, value: str) -> None:
        """Validate that a string value is not blank."""
        if not value.strip():
            raise ConfigValidationError(f"{name} must not be empty")


@dataclass(frozen=True)
class Settings:
    """
    Immutable settings container loaded from YAML.

    This is the raw settings object before validation. Use
    get_service_config() to get validated ServiceConfig.

    Attributes:
        raw: Dictionary of raw configuration values.
    """
    raw: Dict[str, Any]

    @property
    def voices_dir(self) -> Path:
        """Get the directory holding voice models."""
        return Path((self.raw.get("voices", {}) or {}).get("dir", Defaults.VOICES_DIR))

    @property
    def default_locale(self) -> str:
        """Get the phonemizer locale used when a voice has none."""
        return (self.raw.get("voices", {}) or {}).get("default_locale", Defaults.VOICES_DEFAULT_LOCALE)

    def get_service_config(self) -> ServiceConfig:
        """
        Get validated ServiceConfig from these settings.

        Raises:
            ConfigValidationError: If validation fails.
        """
        return ServiceConfig.from_settings(self)


def _apply_env_overrides(raw: Dict[str, Any]) -> Dict[str, Any]:
    """Apply environment variable overrides in place and return raw."""
    voices_dir = os.getenv("PIPER_SERVER_VOICES_DIR")
    if voices_dir:
        raw["voices"] = raw.get("voices") or {}
        raw["voices"]["dir"] = voices_dir

    host = os.getenv("HOST")
    if host:
        raw["server"] = raw.get("server") or {}
        raw["server"]["host"] = host

    port = os.getenv("PORT")
    if port:
        raw["server"] = raw.get("server") or {}
        raw["server"]["port"] = port

    return raw


def load_settings(path: str = "config/settings.yaml") -> Settings:
    """
    Load settings from a YAML configuration file.

    Environment variable overrides:
        - PIPER_SERVER_VOICES_DIR: Override voices.dir
        - HOST / PORT: Override server.host / server.port

    Args:
        path: Path to the YAML configuration file.

    Returns:
        Settings object with loaded configuration.

    Raises:
        FileNotFoundError: If the settings file doesn't exist.
    """
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(f"settings file not found: {p.resolve()}")

    with p.open("r", encoding="utf-8") as f:
        raw: Dict[str, Any] = yaml.safe_load(f) or {}

    return Settings(raw=_apply_env_overrides(raw))


def default_settings() -> Settings:
    """Settings built from defaults plus environment overrides only."""
    return Settings(raw=_apply_env_overrides({}))
