"""Shared test fixtures."""

from __future__ import annotations

import sys
from collections.abc import Callable, Iterator
from dataclasses import dataclass
from pathlib import Path

import httpx
import pytest

from ffmpeg_gateway.http.fetcher import HttpFetcher
from ffmpeg_gateway.pipeline.downloads import DownloadCoordinator
from ffmpeg_gateway.pipeline.pools import BoundedPool
from ffmpeg_gateway.pipeline.runner import ProcessRunner
from ffmpeg_gateway.pipeline.service import TranscodePipeline
from ffmpeg_gateway.pipeline.uploads import UploadPipeline
from ffmpeg_gateway.pipeline.workspace import WorkspaceManager
from ffmpeg_gateway.storage.base import StorageBackend
from ffmpeg_gateway.storage.memory import MemoryStorage

FAKE_FFMPEG_COMMAND = (sys.executable, str(Path(__file__).parent / "fake_ffmpeg.py"))


def media_transport(routes: dict[str, bytes] | None = None) -> httpx.MockTransport:
    """Serve `routes` by URL; everything else is a 404."""

    routes = routes or {}

    def _handler(request: httpx.Request) -> httpx.Response:
        body = routes.get(str(request.url))
        if body is None:
            return httpx.Response(404)
        return httpx.Response(200, content=body, headers={"content-type": "video/mp4"})

    return httpx.MockTransport(_handler)


@dataclass(slots=True)
class PipelineHarness:
    pipeline: TranscodePipeline
    storage: StorageBackend
    workspace_root: Path
    execution_pool: BoundedPool
    download_pool: BoundedPool

    def workspace_entries(self) -> list[Path]:
        return list(self.workspace_root.iterdir())


@pytest.fixture()
def make_pipeline(tmp_path: Path) -> Iterator[Callable[..., PipelineHarness]]:
    """Build pipelines wired to the fake binary; pools are shut down afterwards."""

    pools: list[BoundedPool] = []

    def _make(  # noqa: PLR0913
        *,
        storage: StorageBackend | None = None,
        routes: dict[str, bytes] | None = None,
        timeout_seconds: float = 30.0,
        execution_capacity: int = 2,
        command: tuple[str, ...] = FAKE_FFMPEG_COMMAND,
        max_file_size_bytes: int = 100 * 1024 * 1024,
    ) -> PipelineHarness:
        workspace_root = tmp_path / "workspaces"
        workspace_root.mkdir(exist_ok=True)
        execution_pool = BoundedPool(name="execution", capacity=execution_capacity)
        download_pool = BoundedPool(name="download", capacity=4)
        pools.extend([execution_pool, download_pool])
        backend = storage if storage is not None else MemoryStorage()
        pipeline = TranscodePipeline(
            workspaces=WorkspaceManager(workspace_root),
            downloads=DownloadCoordinator(
                pool=download_pool,
                fetcher=HttpFetcher(transport=media_transport(routes)),
            ),
            execution_pool=execution_pool,
            runner=ProcessRunner(command=command, timeout_seconds=timeout_seconds),
            uploads=UploadPipeline(storage=backend, max_file_size_bytes=max_file_size_bytes),
        )
        return PipelineHarness(
            pipeline=pipeline,
            storage=backend,
            workspace_root=workspace_root,
            execution_pool=execution_pool,
            download_pool=download_pool,
        )

    yield _make

    for pool in pools:
        pool.shutdown()


@pytest.fixture()
def fake_ffmpeg_command() -> tuple[str, ...]:
    return FAKE_FFMPEG_COMMAND
