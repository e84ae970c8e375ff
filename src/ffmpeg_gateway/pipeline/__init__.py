"""Job execution pipeline: parse, download, run, publish."""

from ffmpeg_gateway.pipeline.command_parser import parse_command
from ffmpeg_gateway.pipeline.downloads import DownloadCoordinator, DownloadedInput
from ffmpeg_gateway.pipeline.errors import ErrorKind, PipelineError
from ffmpeg_gateway.pipeline.failure_classifier import FailureClassification, classify_failure
from ffmpeg_gateway.pipeline.models import (
    ExecutionResult,
    JobFailure,
    JobSuccess,
    OutputFile,
    PublishedArtifact,
)
from ffmpeg_gateway.pipeline.pools import BoundedPool, execution_pool_size
from ffmpeg_gateway.pipeline.references import ArgumentVector
from ffmpeg_gateway.pipeline.runner import ProcessRunner
from ffmpeg_gateway.pipeline.service import CommandTranslator, TaskInput, TranscodePipeline
from ffmpeg_gateway.pipeline.uploads import UploadPipeline
from ffmpeg_gateway.pipeline.workspace import WorkspaceManager

__all__ = [
    "ArgumentVector",
    "BoundedPool",
    "CommandTranslator",
    "DownloadCoordinator",
    "DownloadedInput",
    "ErrorKind",
    "ExecutionResult",
    "FailureClassification",
    "JobFailure",
    "JobSuccess",
    "OutputFile",
    "PipelineError",
    "ProcessRunner",
    "PublishedArtifact",
    "TaskInput",
    "TranscodePipeline",
    "UploadPipeline",
    "WorkspaceManager",
    "classify_failure",
    "execution_pool_size",
    "parse_command",
]
