"""
Timing Utilities for Per-Stage Measurement.

The synthesis pipeline times each stage (dsl, phonemize, engine_load,
inference, wav_encode) and reports the timings in logs and in
SpeakResult.timings.

Example Usage:
    with timeit("phonemize") as t:
        phonemes = phonemizer.phonemize(text, "en-us")
    print(f"Took {t.seconds:.3f}s")
"""
from __future__ import annotations

from dataclasses import dataclass
from time import perf_counter
from typing import Any, Dict, Optional


@dataclass
class Timing:
    """
    Timing measurement result.

    Attributes:
        name: Stage identifier (e.g., "inference").
        seconds: Duration in seconds.
        meta: Optional metadata dictionary for additional context.
    """
    name: str
    seconds: float
    meta: Optional[Dict[str, Any]] = None


class timeit:
    """
    Context manager for timing code blocks.

    The timing is recorded even when the block raises, so failed stages
    still show up in logs.

    Example:
        with timeit("inference", meta={"ids": len(ids)}) as t:
            samples = engine.synthesize(ids, scales)
        # t.timing.meta == {"ids": 87}
    """

    def __init__(self, name: str, meta: Optional[Dict[str, Any]] = None):
        self.name = name
        self.meta = meta
        self._t0: float | None = None
        self.timing: Timing | None = None

    def __enter__(self) -> "timeit":
        self._t0 = perf_counter()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        t1 = perf_counter()
        assert self._t0 is not None
        self.timing = Timing(name=self.name, seconds=(t1 - self._t0), meta=self.meta)

    @property
    def seconds(self) -> float:
        """Elapsed seconds, or -1.0 while the block is still running."""
        return self.timing.seconds if self.timing else -1.0
