"""
Audio Encoding Utilities.

All audio produced by piper-server uses the following format:
    - WAV container
    - PCM 16-bit encoding
    - Mono channel
    - Sample rate taken from the voice config (16000, 22050, ...)

Piper models output float32 samples nominally in [-1, 1]; values outside
that range are clipped before quantization.

Example:
    >>> import numpy as np
    >>> audio = np.zeros(22050, dtype=np.float32)
    >>> wav_bytes, timings = wav_bytes_from_float32(audio, 22050)
    >>> wav_bytes[:4]
    b'RIFF'
"""
from __future__ import annotations

import io
from typing import Dict

import numpy as np
import soundfile as sf

from piper_server.core.errors import EncodingError
from piper_server.core.logging import debug, get_logger
from piper_server.utils.timeit import timeit

_LOG = get_logger("piper-server.audio")


def wav_bytes_from_float32(waveform: np.ndarray, sample_rate: int) -> tuple[bytes, Dict[str, float]]:
    """
    Convert a float32 waveform to WAV bytes (PCM 16-bit, mono).

    Args:
        waveform: Audio samples. Multi-dimensional input is flattened.
        sample_rate: Audio sample rate in Hz.

    Returns:
        Tuple of (wav_bytes, timing_dict) where timing_dict holds
        'wav_encode' in seconds.

    Raises:
        EncodingError: If the sample rate is invalid or libsndfile fails.
    """
    if int(sample_rate) <= 0:
        raise EncodingError(f"invalid sample rate: {sample_rate}", {"sample_rate": sample_rate})

    timings: Dict[str, float] = {}

    with timeit("wav_encode") as t:
        wav = np.asarray(waveform, dtype=np.float32)
        if wav.ndim > 1:
            wav = wav.reshape(-1)
        wav = np.clip(np.nan_to_num(wav), -1.0, 1.0)

        buf = io.BytesIO()
        try:
            sf.write(buf, wav, int(sample_rate), format="WAV", subtype="PCM_16")
        except (RuntimeError, ValueError, TypeError) as e:
            raise EncodingError(f"WAV encoding failed: {e}") from e
        out = buf.getvalue()

    timings["wav_encode"] = t.seconds
    debug(_LOG, "wav_encoded", bytes=len(out), sr=sample_rate, seconds=round(timings["wav_encode"], 4))
    return out, timings
