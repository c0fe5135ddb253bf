"""
Voice Registry.

A voice is a Piper ONNX model plus its JSON config, stored side by side:

    {voices_dir}/{voice_id}.onnx
    {voices_dir}/{voice_id}.onnx.json

Config fields used (everything else in the file is ignored):

    {
      "audio": {"sample_rate": 22050},
      "espeak": {"voice": "en-us"},
      "language": {"code": "en_US"},
      "num_speakers": 1,
      "inference": {"noise_scale": 0.667, "length_scale": 1, "noise_w": 0.8},
      "phoneme_id_map": {"_": [0], "^": [1], "$": [2], "a": [14], ...}
    }

Voices are rebuilt from disk on every request; only engines are cached
(see tts/engine_cache.py).
"""
from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Tuple

from piper_server.core.errors import (
    InvalidConfigurationError,
    IOFailureError,
    VoiceNotFoundError,
)
from piper_server.core.logging import get_logger, verbose

_LOG = get_logger("piper-server.voices")

MODEL_SUFFIX = ".onnx"
CONFIG_SUFFIX = ".onnx.json"
DEFAULT_LANGUAGE = "en"


@dataclass(frozen=True)
class InferenceOverrides:
    """Per-voice scale overrides from the config's ``inference`` block."""
    noise_scale: Optional[float] = None
    length_scale: Optional[float] = None
    noise_w: Optional[float] = None


@dataclass(frozen=True)
class VoiceConfig:
    """
    Parsed contents of a voice's .onnx.json file.

    Attributes:
        sample_rate: Output sample rate in Hz (positive).
        espeak_voice: Phonemizer locale, None if the config has no espeak block.
        phoneme_id_map: Phoneme symbol -> one or more integer ids (non-empty).
        inference: Optional scale overrides.
        num_speakers: Number of speakers in the model (1 for single-speaker).
        language_code: Informational language code (e.g. "en_US").
    """
    sample_rate: int
    phoneme_id_map: Mapping[str, Tuple[int, ...]]
    espeak_voice: Optional[str] = None
    inference: InferenceOverrides = field(default_factory=InferenceOverrides)
    num_speakers: int = 1
    language_code: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Any) -> "VoiceConfig":
        """
        Validate and build a VoiceConfig from decoded JSON.

        Raises:
            InvalidConfigurationError: On any structural problem.
        """
        if not isinstance(data, dict):
            raise InvalidConfigurationError("voice config must be a JSON object")

        audio = data.get("audio")
        sample_rate = audio.get("sample_rate") if isinstance(audio, dict) else None
        if isinstance(sample_rate, bool) or not isinstance(sample_rate, int) or sample_rate <= 0:
            raise InvalidConfigurationError(
                "audio.sample_rate must be a positive integer",
                {"sample_rate": sample_rate},
            )

        espeak_voice = None
        espeak = data.get("espeak")
        if espeak is not None:
            if not isinstance(espeak, dict) or not isinstance(espeak.get("voice"), str):
                raise InvalidConfigurationError("espeak.voice must be a string")
            espeak_voice = espeak["voice"] or None

        id_map = _parse_phoneme_id_map(data.get("phoneme_id_map"))
        inference = _parse_inference(data.get("inference"))

        num_speakers = data.get("num_speakers", 1)
        if isinstance(num_speakers, bool) or not isinstance(num_speakers, int) or num_speakers < 1:
            num_speakers = 1

        language = data.get("language")
        language_code = language.get("code") if isinstance(language, dict) else None

        return cls(
            sample_rate=sample_rate,
            phoneme_id_map=id_map,
            espeak_voice=espeak_voice,
            inference=inference,
            num_speakers=num_speakers,
            language_code=language_code if isinstance(language_code, str) else None,
        )


def _parse_phoneme_id_map(raw: Any) -> Dict[str, Tuple[int, ...]]:
    if not isinstance(raw, dict) or not raw:
        raise InvalidConfigurationError("phoneme_id_map must be a non-empty object")

    id_map: Dict[str, Tuple[int, ...]] = {}
    for symbol, ids in raw.items():
        if isinstance(ids, int) and not isinstance(ids, bool):
            ids = [ids]
        if (
            not isinstance(ids, list)
            or not ids
            or any(isinstance(i, bool) or not isinstance(i, int) for i in ids)
        ):
            raise InvalidConfigurationError(
                f"phoneme_id_map entry for {symbol!r} must be a list of integers",
            )
        id_map[symbol] = tuple(ids)
    return id_map


def _parse_inference(raw: Any) -> InferenceOverrides:
    if raw is None:
        return InferenceOverrides()
    if not isinstance(raw, dict):
        raise InvalidConfigurationError("inference must be an object")

    values: Dict[str, Optional[float]] = {}
    for key in ("noise_scale", "length_scale", "noise_w"):
        value = raw.get(key)
        if value is None:
            values[key] = None
        elif isinstance(value, (int, float)) and not isinstance(value, bool):
            values[key] = float(value)
        else:
            raise InvalidConfigurationError(f"inference.{key} must be a number")
    return InferenceOverrides(**values)


@dataclass(frozen=True)
class Voice:
    """A resolved voice: id, parsed config and file locations."""
    voice_id: str
    config: VoiceConfig
    model_path: Path
    config_path: Path

    @property
    def espeak_voice(self) -> Optional[str]:
        return self.config.espeak_voice

    @property
    def sample_rate(self) -> int:
        return self.config.sample_rate


@dataclass(frozen=True)
class VoiceSummary:
    """Listing entry returned by list_available()."""
    id: str
    name: str
    language: str

    def to_dict(self) -> Dict[str, str]:
        return {"id": self.id, "name": self.name, "language": self.language}


def parse_voice_name(voice_id: str) -> str:
    """
    Display name from a Piper voice id (language-name-quality).

    Examples:
        >>> parse_voice_name("en_GB-alba-medium")
        'Alba'
        >>> parse_voice_name("custom")
        'custom'
    """
    parts = voice_id.split("-")
    if len(parts) >= 2 and parts[1]:
        name = parts[1]
        return name[0].upper() + name[1:]
    return voice_id


def _is_safe_voice_id(voice_id: str) -> bool:
    if not voice_id or voice_id.strip() != voice_id:
        return False
    if voice_id in (".", ".."):
        return False
    return "/" not in voice_id and "\\" not in voice_id and "\x00" not in voice_id


def load_voice(voices_dir: str | Path, voice_id: str) -> Voice:
    """
    Resolve a voice id to a Voice.

    Raises:
        VoiceNotFoundError: Unsafe/empty id or missing model file.
        InvalidConfigurationError: Config missing, unreadable or malformed.
    """
    if not _is_safe_voice_id(voice_id):
        raise VoiceNotFoundError(voice_id, {"reason": "invalid voice id"})

    base = Path(voices_dir)
    model_path = base / f"{voice_id}{MODEL_SUFFIX}"
    config_path = base / f"{voice_id}{CONFIG_SUFFIX}"

    if not model_path.is_file():
        raise VoiceNotFoundError(voice_id)

    if not config_path.is_file():
        raise InvalidConfigurationError(
            f"Voice '{voice_id}' has no config file",
            {"voice": voice_id, "path": str(config_path)},
        )

    try:
        with config_path.open("r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, UnicodeDecodeError) as e:
        raise InvalidConfigurationError(
            f"Cannot read config for voice '{voice_id}': {e}", {"voice": voice_id},
        ) from e
    except json.JSONDecodeError as e:
        raise InvalidConfigurationError(
            f"Config for voice '{voice_id}' is not valid JSON: {e}", {"voice": voice_id},
        ) from e

    try:
        config = VoiceConfig.from_dict(data)
    except InvalidConfigurationError as e:
        e.details.setdefault("voice", voice_id)
        raise

    return Voice(voice_id=voice_id, config=config, model_path=model_path, config_path=config_path)


def list_available(voices_dir: str | Path) -> List[VoiceSummary]:
    """
    Enumerate loadable voices in voices_dir, sorted by id.

    A missing directory yields an empty list. Voices whose config fails
    to load are skipped.

    Raises:
        IOFailureError: If the directory exists but cannot be read.
    """
    base = Path(voices_dir)
    if not base.exists():
        return []

    try:
        model_files = sorted(
            p for p in base.iterdir()
            if p.name.endswith(MODEL_SUFFIX) and p.is_file()
        )
    except OSError as e:
        raise IOFailureError(f"Cannot read voices directory: {e}", {"path": str(base)}) from e

    summaries: List[VoiceSummary] = []
    for model_file in model_files:
        voice_id = model_file.name[: -len(MODEL_SUFFIX)]
        try:
            voice = load_voice(base, voice_id)
        except (VoiceNotFoundError, InvalidConfigurationError) as e:
            verbose(_LOG, "voice_skipped", voice=voice_id, code=e.code, reason=e.message)
            continue
        summaries.append(
            VoiceSummary(
                id=voice_id,
                name=parse_voice_name(voice_id),
                language=voice.espeak_voice or DEFAULT_LANGUAGE,
            )
        )
    return summaries
