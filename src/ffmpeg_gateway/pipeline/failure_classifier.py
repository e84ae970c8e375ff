"""Deterministic failure classification for the request boundary."""

from __future__ import annotations

from dataclasses import dataclass

from ffmpeg_gateway.pipeline.errors import ErrorKind, ExecutionError, PipelineError

_UNKNOWN_ERROR_MESSAGE = "Unknown error occurred"


@dataclass(slots=True, frozen=True)
class FailureClassification:
    """Normalized failure classification result."""

    kind: ErrorKind
    message: str
    status_code: int
    retriable: bool
    exit_code: int | None = None

    @property
    def client_fault(self) -> bool:
        return 400 <= self.status_code < 500 and self.kind != ErrorKind.TIMEOUT

    def to_payload(self) -> dict[str, object]:
        """Serialize as the failure body returned to HTTP callers."""

        payload: dict[str, object] = {
            "success": False,
            "error": self.message,
            "errorType": self.kind.value,
        }
        if self.exit_code is not None:
            payload["exitCode"] = self.exit_code
        return payload


def classify_failure(error: BaseException) -> FailureClassification:
    """Map any failure into the closed taxonomy.

    Typed pipeline errors carry their kind and status from the point of
    failure. Anything else is an unexpected server-side execution failure.
    """

    if isinstance(error, PipelineError):
        return FailureClassification(
            kind=error.kind,
            message=error.message,
            status_code=error.status_code,
            retriable=error.transient,
            exit_code=error.exit_code if isinstance(error, ExecutionError) else None,
        )

    message = str(error) if isinstance(error, Exception) and str(error) else _UNKNOWN_ERROR_MESSAGE
    return FailureClassification(
        kind=ErrorKind.EXECUTION,
        message=message,
        status_code=500,
        retriable=False,
    )
