"""
Piper ONNX Inference Engine.

Runs a Piper (VITS) voice exported to ONNX with onnxruntime.

Model inputs:
    input          int64   [1, N]   phoneme ids
    input_lengths  int64   [1]      N
    scales         float32 [3]      noise_scale, length_scale, noise_w
    sid            int64   [1]      speaker id (multi-speaker models only)

Model output 0 holds the waveform, usually shaped [1, 1, samples]; it is
flattened to a 1-D float32 array.

One PiperEngine is created per voice by the EngineCache and shared by
all requests for that voice. InferenceSession.run() is safe to call
concurrently on a single session.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional, Sequence

import numpy as np
import onnxruntime as ort

from piper_server.core.config import SynthesisConfig
from piper_server.core.errors import InferenceError
from piper_server.core.logging import debug, get_logger, info
from piper_server.tts.voices import Voice
from piper_server.utils.timeit import timeit

_LOG = get_logger("piper-server.engine")

SPEAKER_INPUT = "sid"


@dataclass(frozen=True)
class SynthesisScales:
    """
    VITS sampling parameters.

    Attributes:
        noise_scale: Prosodic variability.
        length_scale: Speaking rate; higher is slower.
        noise_w: Phoneme duration variability.
    """
    noise_scale: float = 0.667
    length_scale: float = 1.0
    noise_w: float = 0.8

    @classmethod
    def for_voice(cls, synthesis: SynthesisConfig, voice: Voice) -> "SynthesisScales":
        """Service defaults, overridden by the voice's own inference block."""
        overrides = voice.config.inference
        return cls(
            noise_scale=overrides.noise_scale if overrides.noise_scale is not None else synthesis.noise_scale,
            length_scale=overrides.length_scale if overrides.length_scale is not None else synthesis.length_scale,
            noise_w=overrides.noise_w if overrides.noise_w is not None else synthesis.noise_w,
        )

    def as_array(self) -> np.ndarray:
        return np.array([self.noise_scale, self.length_scale, self.noise_w], dtype=np.float32)


class PiperEngine:
    """
    Loaded Piper voice model.

    Build with PiperEngine.load(); the constructor takes an existing
    session so tests can supply a fake one.
    """

    def __init__(self, voice_id: str, session: Any, sample_rate: int):
        self.voice_id = voice_id
        self.sample_rate = sample_rate
        self._session = session
        self._input_names = {i.name for i in session.get_inputs()}

    @classmethod
    def load(
        cls,
        voice: Voice,
        providers: Optional[Sequence[str]] = None,
        intra_op_threads: int = 0,
    ) -> "PiperEngine":
        """
        Create an onnxruntime session for a voice model.

        Raises:
            InferenceError: If the model cannot be loaded.
        """
        options = ort.SessionOptions()
        if intra_op_threads > 0:
            options.intra_op_num_threads = intra_op_threads

        with timeit("load_model") as t:
            try:
                session = ort.InferenceSession(
                    str(voice.model_path),
                    sess_options=options,
                    providers=list(providers or ["CPUExecutionProvider"]),
                )
            except Exception as e:
                # onnxruntime raises its own exception types for bad models
                raise InferenceError(
                    f"Failed to load model for voice '{voice.voice_id}': {e}",
                    {"voice": voice.voice_id, "path": str(voice.model_path)},
                ) from e

        info(_LOG, "model_loaded", voice=voice.voice_id, seconds=round(t.seconds, 3))
        return cls(voice.voice_id, session, voice.sample_rate)

    @property
    def is_multispeaker(self) -> bool:
        return SPEAKER_INPUT in self._input_names

    def _build_inputs(self, phoneme_ids: Sequence[int], scales: SynthesisScales) -> Dict[str, np.ndarray]:
        ids = np.asarray(phoneme_ids, dtype=np.int64).reshape(1, -1)
        inputs = {
            "input": ids,
            "input_lengths": np.array([ids.shape[1]], dtype=np.int64),
            "scales": scales.as_array(),
        }
        if self.is_multispeaker:
            inputs[SPEAKER_INPUT] = np.array([0], dtype=np.int64)
        return inputs

    def synthesize(self, phoneme_ids: Sequence[int], scales: SynthesisScales) -> np.ndarray:
        """
        Run inference and return float32 samples.

        Raises:
            InferenceError: If the session fails or returns no output.
        """
        if len(phoneme_ids) == 0:
            return np.zeros(0, dtype=np.float32)

        inputs = self._build_inputs(phoneme_ids, scales)
        try:
            outputs = self._session.run(None, inputs)
        except Exception as e:
            raise InferenceError(
                f"Inference failed for voice '{self.voice_id}': {e}", {"voice": self.voice_id},
            ) from e

        if not outputs:
            raise InferenceError("Model returned no output tensor", {"voice": self.voice_id})

        audio = np.asarray(outputs[0], dtype=np.float32).reshape(-1)
        debug(_LOG, "inference_done", voice=self.voice_id, ids=len(phoneme_ids), samples=int(audio.size))
        return audio
