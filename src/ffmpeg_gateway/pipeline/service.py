"""Top-level request handler: parse, download, run, publish, clean up."""

from __future__ import annotations

import dataclasses
import logging
import uuid
from collections.abc import Sequence
from pathlib import PurePosixPath
from typing import Protocol

from ffmpeg_gateway.pipeline.command_parser import DEFAULT_BINARY_NAME, parse_command
from ffmpeg_gateway.pipeline.downloads import DownloadCoordinator, DownloadedInput
from ffmpeg_gateway.pipeline.errors import PipelineError, ValidationError
from ffmpeg_gateway.pipeline.failure_classifier import classify_failure
from ffmpeg_gateway.pipeline.models import ExecutionResult, Job, JobFailure, JobSuccess
from ffmpeg_gateway.pipeline.pools import BoundedPool
from ffmpeg_gateway.pipeline.references import ArgumentVector, extract_input_locators
from ffmpeg_gateway.pipeline.runner import ProcessRunner
from ffmpeg_gateway.pipeline.uploads import UploadPipeline
from ffmpeg_gateway.pipeline.workspace import RequestWorkspace, WorkspaceManager

logger = logging.getLogger(__name__)


def new_request_id() -> str:
    return str(uuid.uuid4())


@dataclasses.dataclass(slots=True, frozen=True)
class TaskInput:
    """Remote input named in a natural-language task request."""

    url: str
    name: str | None = None


class CommandTranslator(Protocol):
    """Turns a task description plus downloaded inputs into command text."""

    def translate(self, task: str, inputs: Sequence[DownloadedInput]) -> str: ...


class TranscodePipeline:
    """Single owner of a request's workspace and its final result.

    Every stage raises a typed error and never retries. This class is the
    only place errors are classified, and the workspace is erased before
    any result is returned.
    """

    def __init__(  # noqa: PLR0913
        self,
        *,
        workspaces: WorkspaceManager,
        downloads: DownloadCoordinator,
        execution_pool: BoundedPool,
        runner: ProcessRunner,
        uploads: UploadPipeline,
        binary_name: str = DEFAULT_BINARY_NAME,
    ) -> None:
        self.workspaces = workspaces
        self.downloads = downloads
        self.execution_pool = execution_pool
        self.runner = runner
        self.uploads = uploads
        self.binary_name = binary_name

    def execute(self, command_text: str, request_id: str | None = None) -> ExecutionResult:
        """Run one command end to end and report a definite outcome."""

        request_id = request_id or new_request_id()
        try:
            with self.workspaces.scoped(request_id) as workspace:
                return self._run(command_text, workspace)
        except PipelineError as exc:
            logger.error(
                "Request %s failed (%s): %s",
                request_id,
                exc.kind.value,
                _first_line(exc.message),
            )
            return JobFailure(classify_failure(exc))
        except Exception as exc:  # noqa: BLE001
            logger.exception("Request %s unexpected error", request_id)
            return JobFailure(classify_failure(exc))

    def execute_task(
        self,
        task: str,
        inputs: Sequence[TaskInput],
        *,
        translator: CommandTranslator,
        request_id: str | None = None,
    ) -> ExecutionResult:
        """Download inputs, have the translator write the command, then run it."""

        request_id = request_id or new_request_id()
        try:
            if not task.strip():
                raise ValidationError("Task description is required")
            if not inputs:
                raise ValidationError("At least one input file is required")
            with self.workspaces.scoped(request_id) as workspace:
                downloaded = self.downloads.download(
                    [item.url for item in inputs],
                    workspace.inputs_dir,
                )
                labelled = [
                    dataclasses.replace(result, label=item.name)
                    for item, result in zip(inputs, downloaded, strict=True)
                ]
                command_text = _with_binary_prefix(
                    translator.translate(task, labelled),
                    self.binary_name,
                )
                logger.info("Request %s translated task to: %s", request_id, command_text)
                return self._run(command_text, workspace)
        except PipelineError as exc:
            logger.error(
                "Request %s failed (%s): %s",
                request_id,
                exc.kind.value,
                _first_line(exc.message),
            )
            return JobFailure(classify_failure(exc))
        except Exception as exc:  # noqa: BLE001
            logger.exception("Request %s unexpected error", request_id)
            return JobFailure(classify_failure(exc))

    def prepare(self, command_text: str, workspace: RequestWorkspace) -> tuple[Job, dict[str, str]]:
        """Build the job with a fully rewritten argument vector.

        Returns the job and a map from produced local filename back to the
        output name the caller wrote.
        """

        tokens = parse_command(command_text, self.binary_name)
        vector = ArgumentVector.from_tokens(tokens)

        locators = extract_input_locators(tokens)
        if locators:
            downloaded = self.downloads.download(locators, workspace.inputs_dir)
            vector = vector.replace_locators(
                {item.url: str(item.local_path) for item in downloaded},
            )

        output_paths: dict[str, str] = {}
        declared_by_local: dict[str, str] = {}
        for index, declared in enumerate(dict.fromkeys(vector.output_names())):
            local_name = _local_output_name(declared, index, declared_by_local)
            declared_by_local[local_name] = declared
            output_paths[declared] = str(workspace.outputs_dir / local_name)
        vector = vector.replace_outputs(output_paths)

        job = Job(
            request_id=workspace.request_id,
            raw_command=command_text,
            vector=vector,
            workspace=workspace,
            timeout_seconds=self.runner.timeout_seconds,
        )
        return job, declared_by_local

    def _run(self, command_text: str, workspace: RequestWorkspace) -> JobSuccess:
        job, declared_by_local = self.prepare(command_text, workspace)

        stats = self.execution_pool.stats()
        logger.info(
            "Request %s waiting for execution slot: queued=%d active=%d capacity=%d",
            job.request_id,
            stats.queued,
            stats.active,
            stats.capacity,
        )
        output = self.execution_pool.run(
            self.runner.run,
            job.vector.as_list(),
            cwd=workspace.inputs_dir,
            timeout_seconds=job.timeout_seconds,
        )

        files = self.uploads.collect(workspace.outputs_dir, declared_by_local)
        artifacts = self.uploads.publish(files)
        return JobSuccess(
            stdout=output.stdout,
            stderr=output.stderr,
            exit_code=output.exit_code,
            outputs=artifacts,
        )


def _local_output_name(declared: str, index: int, taken: dict[str, str]) -> str:
    # Outputs always land directly in the outputs directory, whatever path was written.
    name = PurePosixPath(declared.replace("\\", "/")).name
    if name in {"", ".", ".."}:
        name = f"output-{index}"
    candidate, counter = name, index
    while candidate in taken:
        candidate = f"{counter}-{name}"
        counter += 1
    return candidate


def _with_binary_prefix(command_text: str, binary_name: str) -> str:
    command_text = command_text.strip()
    if command_text.startswith(f"{binary_name} "):
        return command_text
    return f"{binary_name} {command_text}"


def _first_line(text: str) -> str:
    return text.splitlines()[0] if text else ""
