"""Subprocess runner for the external transcoding binary."""

from __future__ import annotations

import logging
import os
import signal
import subprocess
import threading
import time
from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import IO, cast

from ffmpeg_gateway.pipeline.errors import ExecutionError, ExecutionTimeoutError, SpawnError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 5 * 60
UNKNOWN_EXIT_CODE = -1
_READ_CHUNK_BYTES = 64 * 1024
_KILL_WAIT_SECONDS = 5.0
_DRAIN_WAIT_SECONDS = 2.0


@dataclass(slots=True, frozen=True)
class ProcessOutput:
    """Captured output of a successful run."""

    stdout: str
    stderr: str
    exit_code: int
    duration_seconds: float


class RunOutcome(str, Enum):
    EXITED = "exited"
    TIMED_OUT = "timed_out"


class OutcomeLatch:
    """Single-assignment flag: the first decided outcome wins."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._outcome: RunOutcome | None = None

    def decide(self, outcome: RunOutcome) -> bool:
        """Record outcome if none was recorded yet; report whether it won."""

        with self._lock:
            if self._outcome is not None:
                return False
            self._outcome = outcome
            return True

    @property
    def outcome(self) -> RunOutcome | None:
        with self._lock:
            return self._outcome


class _StreamCollector:
    """Drain one pipe on a background thread, keeping every byte."""

    def __init__(self, stream: IO[bytes], name: str) -> None:
        self._stream = stream
        self._chunks: list[bytes] = []
        self._thread = threading.Thread(target=self._drain, name=name, daemon=True)
        self._thread.start()

    def _drain(self) -> None:
        with self._stream:
            for chunk in iter(lambda: self._stream.read(_READ_CHUNK_BYTES), b""):
                self._chunks.append(chunk)

    def wait(self, timeout: float) -> bool:
        """Wait for the pipe to close; report whether it did."""

        self._thread.join(timeout)
        return not self._thread.is_alive()

    def text(self) -> str:
        return b"".join(list(self._chunks)).decode("utf-8", errors="replace")


class ProcessRunner:
    """Spawn the binary, collect stdout/stderr, enforce a wall-clock timeout."""

    def __init__(
        self,
        *,
        command: Sequence[str] = ("ffmpeg",),
        binary_name: str = "ffmpeg",
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        env: dict[str, str] | None = None,
    ) -> None:
        if not command:
            raise ValueError("Process command must not be empty.")
        self.command = tuple(command)
        self.binary_name = binary_name
        self.timeout_seconds = timeout_seconds
        self.env = env

    def run(
        self,
        args: Sequence[str],
        *,
        cwd: Path | None = None,
        timeout_seconds: float | None = None,
    ) -> ProcessOutput:
        timeout = timeout_seconds if timeout_seconds is not None else self.timeout_seconds
        run_args = [*self.command, *args]

        try:
            process = subprocess.Popen(  # noqa: S603
                run_args,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                cwd=cwd,
                env=self.env,
                start_new_session=True,
            )
        except OSError as error:
            raise SpawnError(f"Failed to spawn {self.binary_name} process: {error}") from error

        started = time.monotonic()
        logger.info("Spawned %s pid=%s timeout=%ss", self.binary_name, process.pid, timeout)

        stdout = _StreamCollector(
            cast(IO[bytes], process.stdout),
            f"{self.binary_name}-{process.pid}-stdout",
        )
        stderr = _StreamCollector(
            cast(IO[bytes], process.stderr),
            f"{self.binary_name}-{process.pid}-stderr",
        )

        latch = OutcomeLatch()
        timer = threading.Timer(timeout, self._on_timeout, args=(process, latch))
        timer.daemon = True
        timer.start()
        try:
            returncode = process.wait()
        finally:
            timer.cancel()

        # Descendants of the launcher can keep the pipes open after it exits.
        if not (stdout.wait(_DRAIN_WAIT_SECONDS) and stderr.wait(_DRAIN_WAIT_SECONDS)):
            logger.warning(
                "%s pid=%s left processes holding its output; killing the process group",
                self.binary_name,
                process.pid,
            )
            _kill_process(process)
            stdout.wait(_DRAIN_WAIT_SECONDS)
            stderr.wait(_DRAIN_WAIT_SECONDS)

        stdout_text = stdout.text()
        stderr_text = stderr.text()
        duration = time.monotonic() - started

        if not latch.decide(RunOutcome.EXITED):
            logger.warning(
                "%s pid=%s timed out after %.1fs",
                self.binary_name,
                process.pid,
                duration,
            )
            raise ExecutionTimeoutError(timeout, binary_name=self.binary_name)

        exit_code = _normalize_exit_code(returncode)
        logger.info(
            "%s pid=%s exited with code %d after %.1fs",
            self.binary_name,
            process.pid,
            exit_code,
            duration,
        )
        if exit_code != 0:
            raise ExecutionError(
                exit_code,
                stderr=stderr_text,
                stdout=stdout_text,
                binary_name=self.binary_name,
            )
        return ProcessOutput(
            stdout=stdout_text,
            stderr=stderr_text,
            exit_code=exit_code,
            duration_seconds=duration,
        )

    def _on_timeout(self, process: subprocess.Popen[bytes], latch: OutcomeLatch) -> None:
        if latch.decide(RunOutcome.TIMED_OUT):
            _kill_process(process)


def _normalize_exit_code(returncode: int | None) -> int:
    # Negative codes mean the process died from a signal; no exit status exists.
    if returncode is None or returncode < 0:
        return UNKNOWN_EXIT_CODE
    return returncode


def _kill_process(process: subprocess.Popen[bytes]) -> None:
    """SIGKILL the whole session the process leads, launcher and descendants alike."""

    try:
        os.killpg(process.pid, signal.SIGKILL)
    except OSError:
        try:
            process.kill()
        except OSError:
            return
    try:
        process.wait(timeout=_KILL_WAIT_SECONDS)
    except subprocess.TimeoutExpired:
        logger.warning("Process pid=%s did not exit after kill", process.pid)
