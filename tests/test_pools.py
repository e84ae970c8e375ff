"""Tests for the bounded worker pools."""

from __future__ import annotations

import threading
import time

import allure
import pytest

from ffmpeg_gateway.pipeline.pools import BoundedPool, execution_pool_size

pytestmark = [
    allure.epic("Transcode Pipeline"),
    allure.feature("Bounded Pools"),
]


@pytest.mark.parametrize(
    ("cores", "expected"),
    [(1, 2), (2, 2), (4, 2), (6, 3), (8, 4), (16, 8), (64, 8)],
)
def test_execution_pool_size_is_half_the_cores_clamped(cores: int, expected: int) -> None:
    assert execution_pool_size(cores) == expected


def test_capacity_must_be_positive() -> None:
    with pytest.raises(ValueError, match="capacity"):
        BoundedPool(name="bad", capacity=0)


def test_pool_never_exceeds_capacity() -> None:
    lock = threading.Lock()
    running = 0
    peak = 0

    def _work() -> None:
        nonlocal running, peak
        with lock:
            running += 1
            peak = max(peak, running)
        time.sleep(0.02)
        with lock:
            running -= 1

    with BoundedPool(name="test", capacity=3) as pool:
        futures = [pool.submit(_work) for _ in range(20)]
        for future in futures:
            future.result()

    assert 1 <= peak <= 3


def test_admission_is_first_submitted_first_admitted() -> None:
    started: list[int] = []

    with BoundedPool(name="fifo", capacity=1) as pool:
        futures = [pool.submit(started.append, index) for index in range(10)]
        for future in futures:
            future.result()

    assert started == list(range(10))


def test_stats_report_active_and_queued() -> None:
    release = threading.Event()
    entered = threading.Event()

    def _block() -> None:
        entered.set()
        release.wait(5)

    with BoundedPool(name="stats", capacity=1) as pool:
        first = pool.submit(_block)
        entered.wait(5)
        second = pool.submit(_block)

        stats = pool.stats()
        assert (stats.capacity, stats.active, stats.queued) == (1, 1, 1)

        release.set()
        first.result()
        second.result()
        assert pool.stats().to_payload() == {"capacity": 1, "active": 0, "queued": 0}


def test_run_reraises_unit_error() -> None:
    def _fail() -> None:
        raise LookupError("missing")

    with BoundedPool(name="errors", capacity=1) as pool, pytest.raises(LookupError):
        pool.run(_fail)
