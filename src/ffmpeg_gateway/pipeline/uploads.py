"""Publish produced output files to the storage backend."""

from __future__ import annotations

import logging
import mimetypes
import time
from collections.abc import Callable, Mapping, Sequence
from pathlib import Path

from ffmpeg_gateway.pipeline.errors import StorageError
from ffmpeg_gateway.pipeline.models import OutputFile, PublishedArtifact
from ffmpeg_gateway.storage.base import StorageBackend, StorageBackendError

logger = logging.getLogger(__name__)

MAX_FILE_SIZE_BYTES = 100 * 1024 * 1024
DEFAULT_CONTENT_TYPE = "application/octet-stream"


def detect_content_type(filename: str) -> str:
    content_type, _ = mimetypes.guess_type(filename)
    return content_type or DEFAULT_CONTENT_TYPE


class UploadPipeline:
    """Uploads a batch of outputs; any failure fails the whole batch.

    Objects uploaded before a failure stay in storage. The backend has no
    multi-object transaction, so the guarantee is a uniform failure report.
    """

    def __init__(
        self,
        *,
        storage: StorageBackend,
        max_file_size_bytes: int = MAX_FILE_SIZE_BYTES,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.storage = storage
        self.max_file_size_bytes = max_file_size_bytes
        self._clock = clock

    def collect(
        self,
        outputs_dir: Path,
        declared_names: Mapping[str, str] | None = None,
    ) -> list[OutputFile]:
        """List regular files in outputs_dir, keyed back to their declared names."""

        declared_names = declared_names or {}
        files: list[OutputFile] = []
        for path in sorted(outputs_dir.iterdir()):
            if not path.is_file():
                continue
            declared = declared_names.get(path.name, path.name)
            files.append(
                OutputFile(
                    local_path=path,
                    declared_name=declared,
                    size=path.stat().st_size,
                    content_type=detect_content_type(declared),
                ),
            )
        missing = set(declared_names.values()) - {item.declared_name for item in files}
        if missing:
            logger.warning("Declared outputs not produced: %s", ", ".join(sorted(missing)))
        return files

    def publish(self, files: Sequence[OutputFile]) -> list[PublishedArtifact]:
        for item in files:
            if item.size > self.max_file_size_bytes:
                raise StorageError(
                    f"File {item.declared_name} exceeds maximum size of "
                    f"{_format_limit(self.max_file_size_bytes)} ({item.size} bytes)",
                )

        published: list[PublishedArtifact] = []
        for item in files:
            published.append(self._publish_one(item))
        return published

    def _publish_one(self, item: OutputFile) -> PublishedArtifact:
        key = f"{int(self._clock() * 1000)}-{item.local_path.name}"
        try:
            data = item.local_path.read_bytes()
            self.storage.upload(key, data, item.content_type)
            url = self.storage.public_url(key)
        except (OSError, StorageBackendError) as error:
            logger.warning("Upload of %s failed: %s", item.declared_name, error)
            raise StorageError(
                f"Failed to upload {item.declared_name} to storage: {error}",
            ) from error
        logger.info("Published %s as %s (%d bytes)", item.declared_name, key, item.size)
        return PublishedArtifact(
            filename=item.declared_name,
            key=key,
            url=url,
            size=item.size,
            content_type=item.content_type,
        )


def _format_limit(size_bytes: int) -> str:
    mebibytes = size_bytes / (1024 * 1024)
    if mebibytes >= 1 and mebibytes == int(mebibytes):
        return f"{int(mebibytes)}MB"
    return f"{size_bytes} bytes"
