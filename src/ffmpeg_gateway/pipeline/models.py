"""Data model for one transcode job and its outcome."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Literal

from ffmpeg_gateway.pipeline.errors import ErrorKind
from ffmpeg_gateway.pipeline.failure_classifier import FailureClassification
from ffmpeg_gateway.pipeline.references import ArgumentVector
from ffmpeg_gateway.pipeline.workspace import RequestWorkspace


@dataclass(slots=True)
class Job:
    """One request flowing through the pipeline.

    The vector is rewritten twice over the job's life: downloaded locators
    become local input paths, then output names become absolute paths.
    """

    request_id: str
    raw_command: str
    vector: ArgumentVector
    workspace: RequestWorkspace
    timeout_seconds: float


@dataclass(slots=True, frozen=True)
class OutputFile:
    """A file the binary left in the outputs directory."""

    local_path: Path
    declared_name: str
    size: int
    content_type: str


@dataclass(slots=True, frozen=True)
class PublishedArtifact:
    filename: str
    key: str
    url: str
    size: int
    content_type: str

    def to_payload(self) -> dict[str, object]:
        return {
            "filename": self.filename,
            "path": self.key,
            "url": self.url,
            "size": self.size,
            "contentType": self.content_type,
        }


@dataclass(slots=True, frozen=True)
class JobSuccess:
    stdout: str
    stderr: str
    exit_code: int
    outputs: list[PublishedArtifact] = field(default_factory=list)
    success: Literal[True] = True

    @property
    def status_code(self) -> int:
        return 200

    def to_payload(self) -> dict[str, object]:
        return {
            "success": True,
            "stdout": self.stdout,
            "stderr": self.stderr,
            "exitCode": self.exit_code,
            "outputs": [artifact.to_payload() for artifact in self.outputs],
        }


@dataclass(slots=True, frozen=True)
class JobFailure:
    classification: FailureClassification
    success: Literal[False] = False

    @property
    def kind(self) -> ErrorKind:
        return self.classification.kind

    @property
    def message(self) -> str:
        return self.classification.message

    @property
    def exit_code(self) -> int | None:
        return self.classification.exit_code

    @property
    def status_code(self) -> int:
        return self.classification.status_code

    def to_payload(self) -> dict[str, object]:
        return self.classification.to_payload()


ExecutionResult = JobSuccess | JobFailure
