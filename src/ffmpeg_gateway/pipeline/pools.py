"""Process-wide bounded worker pools with FIFO admission."""

from __future__ import annotations

import logging
import os
import threading
from collections.abc import Callable
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from typing import ParamSpec, TypeVar

logger = logging.getLogger(__name__)

DEFAULT_DOWNLOAD_CONCURRENCY = 12
MIN_EXECUTION_CONCURRENCY = 2
MAX_EXECUTION_CONCURRENCY = 8

_P = ParamSpec("_P")
_T = TypeVar("_T")


def execution_pool_size(core_count: int | None = None) -> int:
    """Half of the cores, clamped to [2, 8].

    ffmpeg is itself multi-threaded, so oversubscribing the CPU slows every
    running job instead of adding throughput.
    """

    cores = core_count if core_count is not None else (os.cpu_count() or 1)
    return min(max(cores // 2, MIN_EXECUTION_CONCURRENCY), MAX_EXECUTION_CONCURRENCY)


@dataclass(slots=True, frozen=True)
class PoolStats:
    """Point-in-time pool occupancy."""

    name: str
    capacity: int
    active: int
    queued: int

    def to_payload(self) -> dict[str, object]:
        return {
            "capacity": self.capacity,
            "active": self.active,
            "queued": self.queued,
        }


class BoundedPool:
    """At most `capacity` units run at once; the rest wait in submission order."""

    def __init__(self, *, name: str, capacity: int) -> None:
        if capacity < 1:
            raise ValueError(f"Pool capacity must be >= 1, got {capacity}.")
        self.name = name
        self.capacity = capacity
        self._executor = ThreadPoolExecutor(max_workers=capacity, thread_name_prefix=f"{name}-pool")
        self._lock = threading.Lock()
        self._active = 0
        self._queued = 0

    def submit(self, fn: Callable[_P, _T], /, *args: _P.args, **kwargs: _P.kwargs) -> Future[_T]:
        with self._lock:
            self._queued += 1
        try:
            future = self._executor.submit(self._run_tracked, fn, *args, **kwargs)
        except RuntimeError:
            with self._lock:
                self._queued -= 1
            raise
        future.add_done_callback(self._forget_cancelled)
        return future

    def run(self, fn: Callable[_P, _T], /, *args: _P.args, **kwargs: _P.kwargs) -> _T:
        """Submit and block until the unit finishes, re-raising its error."""

        return self.submit(fn, *args, **kwargs).result()

    def stats(self) -> PoolStats:
        with self._lock:
            return PoolStats(
                name=self.name,
                capacity=self.capacity,
                active=self._active,
                queued=self._queued,
            )

    def shutdown(self, *, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait, cancel_futures=True)

    def _run_tracked(self, fn: Callable[..., _T], *args: object, **kwargs: object) -> _T:
        with self._lock:
            self._queued -= 1
            self._active += 1
        try:
            return fn(*args, **kwargs)
        finally:
            with self._lock:
                self._active -= 1

    def _forget_cancelled(self, future: Future[object]) -> None:
        if future.cancelled():
            with self._lock:
                self._queued -= 1

    def __enter__(self) -> BoundedPool:
        return self

    def __exit__(self, *_: object) -> None:
        self.shutdown()
