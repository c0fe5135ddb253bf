"""
Per-Voice Engine Cache with Single-Flight Loading.

Keeps one loaded engine per voice id for the life of the cache. Loading
a Piper model takes hundreds of milliseconds and a lot of memory, so
concurrent first requests for the same voice must share one load:

    Thread A: get_or_load("alba") -> becomes leader, loads
    Thread B: get_or_load("alba") -> waits for A's load, gets same engine
    Thread C: get_or_load("amy")  -> loads independently, never waits on A

Locking:
    - Lookups of loaded engines read the dict without taking the lock.
    - The lock guards the engines/pending dictionaries only; it is never
      held while a loader runs.
    - A failed load is raised to the leader and every waiter of that
      flight, then forgotten; the next call loads again. Each waiter gets
      its own copy of the error, chained to the leader's original.
    - A load runs to completion even if every caller has given up on it.

Example:
    >>> cache = EngineCache(lambda voice_id: PiperEngine.load(load_voice(d, voice_id)))
    >>> engine = cache.get_or_load("en_US-lessac-medium")
    >>> cache.get_or_load("en_US-lessac-medium") is engine
    True
"""
from __future__ import annotations

import threading
from typing import Callable, Dict, Generic, List, Optional, TypeVar

from piper_server.core.logging import debug, get_logger, verbose

_LOG = get_logger("piper-server.engine_cache")

E = TypeVar("E")


class _PendingLoad:
    """One in-flight load shared by the leader and its waiters."""

    def __init__(self) -> None:
        self.done = threading.Event()
        self.result: Optional[object] = None
        self.error: Optional[BaseException] = None

    def raise_error(self) -> None:
        """Raise a per-waiter copy of the leader's error (same type and attributes)."""
        err = self.error
        clone = type(err).__new__(type(err), *err.args)
        clone.__dict__.update(err.__dict__)
        raise clone from err


class EngineCache(Generic[E]):
    """
    Thread-safe voice id -> engine map with at most one load per id.

    Args:
        loader: Callable that builds an engine for a voice id. May raise;
            the exception is propagated to every caller of that flight.
    """

    def __init__(self, loader: Callable[[str], E]):
        self._loader = loader
        self._engines: Dict[str, E] = {}
        self._pending: Dict[str, _PendingLoad] = {}
        self._lock = threading.Lock()
        self._load_count = 0

    def get_or_load(self, voice_id: str) -> E:
        """
        Return the engine for voice_id, loading it on first use.

        Raises:
            Whatever the loader raised for this flight.
        """
        engine = self._engines.get(voice_id)
        if engine is not None:
            return engine

        with self._lock:
            engine = self._engines.get(voice_id)
            if engine is not None:
                return engine
            pending = self._pending.get(voice_id)
            leader = pending is None
            if leader:
                pending = _PendingLoad()
                self._pending[voice_id] = pending

        if not leader:
            verbose(_LOG, "engine_load_wait", voice=voice_id)
            pending.done.wait()
            if pending.error is not None:
                pending.raise_error()
            return pending.result  # type: ignore[return-value]

        return self._lead_load(voice_id, pending)

    def _lead_load(self, voice_id: str, pending: _PendingLoad) -> E:
        try:
            engine = self._loader(voice_id)
        except BaseException as e:
            with self._lock:
                del self._pending[voice_id]
            pending.error = e
            pending.done.set()
            debug(_LOG, "engine_load_failed", voice=voice_id, error=type(e).__name__)
            raise

        with self._lock:
            self._engines[voice_id] = engine
            del self._pending[voice_id]
            self._load_count += 1
        pending.result = engine
        pending.done.set()
        return engine

    def get(self, voice_id: str) -> Optional[E]:
        """Return an already loaded engine without loading."""
        return self._engines.get(voice_id)

    def loaded_voices(self) -> List[str]:
        with self._lock:
            return sorted(self._engines)

    @property
    def load_count(self) -> int:
        """Number of successful loads performed by this cache."""
        return self._load_count

    def __contains__(self, voice_id: object) -> bool:
        return voice_id in self._engines

    def __len__(self) -> int:
        return len(self._engines)
