"""Process-wide objects built once at startup and shared by all requests."""

from __future__ import annotations

import logging
import time

from ffmpeg_gateway.config import Settings, StorageSettings
from ffmpeg_gateway.health import BinaryCheck, build_health_report, check_binary
from ffmpeg_gateway.http.fetcher import HttpFetcher
from ffmpeg_gateway.pipeline.downloads import DownloadCoordinator
from ffmpeg_gateway.pipeline.pools import BoundedPool
from ffmpeg_gateway.pipeline.runner import ProcessRunner
from ffmpeg_gateway.pipeline.service import CommandTranslator, TranscodePipeline
from ffmpeg_gateway.pipeline.uploads import UploadPipeline
from ffmpeg_gateway.pipeline.workspace import WorkspaceManager
from ffmpeg_gateway.storage.base import StorageBackend
from ffmpeg_gateway.storage.memory import MemoryStorage
from ffmpeg_gateway.storage.s3 import S3Storage, build_s3_client
from ffmpeg_gateway.translate.cli_translator import CliCommandTranslator

logger = logging.getLogger(__name__)


def build_storage(settings: StorageSettings) -> StorageBackend:
    if settings.backend == "memory":
        return MemoryStorage()
    client = build_s3_client(
        endpoint_url=settings.endpoint_url,
        region=settings.region,
        access_key=settings.access_key,
        secret_key=settings.secret_key,
    )
    return S3Storage(
        client=client,
        bucket=settings.bucket,
        public_endpoint=settings.resolved_public_endpoint(),
    )


class GatewayRuntime:
    """Owns the two bounded pools and the pipeline that uses them."""

    def __init__(
        self,
        settings: Settings,
        *,
        storage: StorageBackend | None = None,
        fetcher: HttpFetcher | None = None,
        translator: CommandTranslator | None = None,
    ) -> None:
        self.settings = settings
        self.started_at = time.monotonic()
        self.download_pool = BoundedPool(
            name="download",
            capacity=settings.downloads.concurrency,
        )
        self.execution_pool = BoundedPool(
            name="execution",
            capacity=settings.execution.max_concurrent,
        )
        self.fetcher = fetcher or HttpFetcher(timeout_seconds=settings.downloads.timeout_seconds)
        self.storage = storage or build_storage(settings.storage)
        self.translator = translator or CliCommandTranslator(
            command_template=settings.translator.command_template,
            model=settings.translator.model,
            timeout_seconds=settings.translator.timeout_seconds,
        )
        self.pipeline = TranscodePipeline(
            workspaces=WorkspaceManager(settings.execution.workspace_root),
            downloads=DownloadCoordinator(pool=self.download_pool, fetcher=self.fetcher),
            execution_pool=self.execution_pool,
            runner=ProcessRunner(
                command=settings.execution.binary_command,
                binary_name=settings.execution.binary_name,
                timeout_seconds=settings.execution.timeout_seconds,
            ),
            uploads=UploadPipeline(
                storage=self.storage,
                max_file_size_bytes=settings.storage.max_file_size_bytes,
            ),
            binary_name=settings.execution.binary_name,
        )
        logger.info(
            "Runtime ready: execution pool=%d download pool=%d storage=%s",
            self.execution_pool.capacity,
            self.download_pool.capacity,
            getattr(self.storage, "name", type(self.storage).__name__),
        )

    @property
    def uptime_seconds(self) -> float:
        return time.monotonic() - self.started_at

    def check_binary(self) -> BinaryCheck:
        return check_binary(
            self.settings.execution.binary_command,
            binary_name=self.settings.execution.binary_name,
        )

    def health(self) -> tuple[int, dict[str, object]]:
        return build_health_report(
            check=self.check_binary(),
            binary_name=self.settings.execution.binary_name,
            uptime_seconds=self.uptime_seconds,
            pools=(self.download_pool.stats(), self.execution_pool.stats()),
        )

    def shutdown(self) -> None:
        self.execution_pool.shutdown(wait=True)
        self.download_pool.shutdown(wait=True)
        self.fetcher.close()
        logger.info("Runtime stopped")

    def __enter__(self) -> GatewayRuntime:
        return self

    def __exit__(self, *_: object) -> None:
        self.shutdown()
