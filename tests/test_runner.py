"""Tests for the subprocess runner and its timeout handling."""

from __future__ import annotations

import sys
import time
from pathlib import Path

import allure
import pytest

from ffmpeg_gateway.pipeline.errors import (
    ErrorKind,
    ExecutionError,
    ExecutionTimeoutError,
    SpawnError,
)
from ffmpeg_gateway.pipeline.runner import OutcomeLatch, ProcessRunner, RunOutcome

pytestmark = [
    allure.epic("Transcode Pipeline"),
    allure.feature("Process Runner"),
]


def test_successful_run_keeps_both_streams(tmp_path: Path, fake_ffmpeg_command) -> None:
    runner = ProcessRunner(command=fake_ffmpeg_command, timeout_seconds=30)

    output = runner.run(["-i", str(Path(__file__)), "-f", "null", "-"], cwd=tmp_path)

    assert output.exit_code == 0
    assert "fake ffmpeg args: -i" in output.stdout
    assert output.stderr == "fake ffmpeg progress\n"


def test_large_output_is_not_truncated(tmp_path: Path) -> None:
    script = "import sys; sys.stdout.write('o' * 300000); sys.stderr.write('e' * 300000)"
    runner = ProcessRunner(command=(sys.executable, "-c", script))

    output = runner.run([], cwd=tmp_path)

    assert len(output.stdout) == 300000
    assert len(output.stderr) == 300000


def test_nonzero_exit_carries_code_and_stderr(
    tmp_path: Path,
    monkeypatch,
    fake_ffmpeg_command,
) -> None:
    monkeypatch.setenv("FAKE_FFMPEG_EXIT_CODE", "3")
    monkeypatch.setenv("FAKE_FFMPEG_STDERR", "Invalid argument\n")
    runner = ProcessRunner(command=fake_ffmpeg_command)

    with pytest.raises(ExecutionError) as excinfo:
        runner.run(["-f", "null", "-"], cwd=tmp_path)

    assert excinfo.value.exit_code == 3
    assert excinfo.value.stderr == "Invalid argument\n"
    assert str(excinfo.value) == "ffmpeg process exited with code 3\nInvalid argument\n"


def test_signal_exit_is_normalized_to_minus_one(tmp_path: Path) -> None:
    script = "import os, signal; os.kill(os.getpid(), signal.SIGTERM)"
    runner = ProcessRunner(command=(sys.executable, "-c", script))

    with pytest.raises(ExecutionError) as excinfo:
        runner.run([], cwd=tmp_path)

    assert excinfo.value.exit_code == -1


def test_missing_binary_is_a_spawn_error(tmp_path: Path) -> None:
    runner = ProcessRunner(command=(str(tmp_path / "no-such-ffmpeg"),))

    with pytest.raises(SpawnError) as excinfo:
        runner.run(["-version"], cwd=tmp_path)

    assert excinfo.value.kind == ErrorKind.SPAWN
    assert str(excinfo.value).startswith("Failed to spawn ffmpeg process:")


def test_timeout_kills_the_process(tmp_path: Path, monkeypatch, fake_ffmpeg_command) -> None:
    monkeypatch.setenv("FAKE_FFMPEG_SLEEP", "30")
    runner = ProcessRunner(command=fake_ffmpeg_command, timeout_seconds=30)

    started = time.monotonic()
    with pytest.raises(ExecutionTimeoutError) as excinfo:
        runner.run(["-f", "null", "-"], cwd=tmp_path, timeout_seconds=0.5)

    assert time.monotonic() - started < 15
    assert excinfo.value.kind == ErrorKind.TIMEOUT
    assert str(excinfo.value) == "ffmpeg process timed out after 0.5 seconds"


def test_timeout_kills_descendants_of_a_forking_launcher(tmp_path: Path) -> None:
    runner = ProcessRunner(command=("sh", "-c", "sleep 30; echo done", "ffmpeg"))

    started = time.monotonic()
    with pytest.raises(ExecutionTimeoutError):
        runner.run([], cwd=tmp_path, timeout_seconds=0.5)

    assert time.monotonic() - started < 10


def test_background_descendant_does_not_hold_the_run(tmp_path: Path) -> None:
    runner = ProcessRunner(command=("sh", "-c", "sleep 30 & echo ready", "ffmpeg"))

    started = time.monotonic()
    output = runner.run([], cwd=tmp_path, timeout_seconds=60)

    assert time.monotonic() - started < 10
    assert output.exit_code == 0
    assert output.stdout == "ready\n"


def test_outcome_latch_is_single_assignment() -> None:
    latch = OutcomeLatch()

    assert latch.decide(RunOutcome.TIMED_OUT) is True
    assert latch.decide(RunOutcome.EXITED) is False
    assert latch.outcome == RunOutcome.TIMED_OUT
