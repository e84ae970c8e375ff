"""Tagged errors raised by pipeline stages."""

from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    """Closed failure taxonomy reported to callers."""

    VALIDATION = "validation"
    PARSE = "parse"
    SPAWN = "spawn"
    TIMEOUT = "timeout"
    EXECUTION = "execution"
    STORAGE = "storage"


class PipelineError(RuntimeError):
    """Base class for failures raised at a known pipeline stage."""

    kind: ErrorKind = ErrorKind.EXECUTION
    status_code: int = 500
    transient: bool = False

    def __init__(self, message: str, *, transient: bool | None = None) -> None:
        super().__init__(message)
        if transient is not None:
            self.transient = transient

    @property
    def message(self) -> str:
        return str(self)


class ValidationError(PipelineError):
    """Request shape is malformed."""

    kind = ErrorKind.VALIDATION
    status_code = 400


class ParseError(PipelineError):
    """Command text cannot be turned into a safe argument vector."""

    kind = ErrorKind.PARSE
    status_code = 400


class SpawnError(PipelineError):
    """The external binary could not be started."""

    kind = ErrorKind.SPAWN
    status_code = 500


class ExecutionTimeoutError(PipelineError):
    """The subprocess exceeded its deadline and was killed."""

    kind = ErrorKind.TIMEOUT
    status_code = 408
    transient = True

    def __init__(self, timeout_seconds: float, *, binary_name: str = "ffmpeg") -> None:
        super().__init__(
            f"{binary_name} process timed out after {timeout_seconds:g} seconds",
        )
        self.timeout_seconds = timeout_seconds


class ExecutionError(PipelineError):
    """The subprocess ran and exited with a nonzero code."""

    kind = ErrorKind.EXECUTION
    status_code = 400

    def __init__(
        self,
        exit_code: int,
        *,
        stderr: str = "",
        stdout: str = "",
        binary_name: str = "ffmpeg",
    ) -> None:
        super().__init__(f"{binary_name} process exited with code {exit_code}\n{stderr}")
        self.exit_code = exit_code
        self.stderr = stderr
        self.stdout = stdout


class DownloadError(PipelineError):
    """An input locator could not be fetched."""

    kind = ErrorKind.EXECUTION
    status_code = 500
    transient = True

    def __init__(self, url: str, cause: str) -> None:
        super().__init__(f"Failed to download {url}: {cause}")
        self.url = url
        self.cause = cause


class TranslationError(PipelineError):
    """The natural-language task could not be turned into a command."""

    kind = ErrorKind.EXECUTION
    status_code = 500


class StorageError(PipelineError):
    """An output file could not be published."""

    kind = ErrorKind.STORAGE
    status_code = 500
    transient = True
