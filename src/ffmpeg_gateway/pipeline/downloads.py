"""Fetch remote input locators into a request workspace."""

from __future__ import annotations

import logging
import time
import uuid
from collections.abc import Sequence
from concurrent.futures import FIRST_EXCEPTION, Future, wait
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from urllib.parse import unquote, urlparse

from ffmpeg_gateway.http.fetcher import HttpFetcher
from ffmpeg_gateway.pipeline.errors import DownloadError
from ffmpeg_gateway.pipeline.pools import BoundedPool

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class DownloadedInput:
    """One fetched locator and where it landed."""

    url: str
    local_path: Path
    filename: str
    label: str | None = None

    @property
    def display_name(self) -> str:
        return self.label or self.filename


class DownloadCoordinator:
    """Runs fetches on the shared download pool.

    The pool is shared by every request in the process, so one request's
    fetches only wait behind others for pool capacity.
    """

    def __init__(self, *, pool: BoundedPool, fetcher: HttpFetcher) -> None:
        self.pool = pool
        self.fetcher = fetcher

    def download(self, urls: Sequence[str], target_dir: Path) -> list[DownloadedInput]:
        """Fetch every URL into target_dir; any failure fails the whole call."""

        if not urls:
            return []

        filenames = _assign_filenames(urls)
        futures: list[Future[DownloadedInput]] = [
            self.pool.submit(self._download_one, url, target_dir / filename)
            for url, filename in zip(urls, filenames, strict=True)
        ]

        _, pending = wait(futures, return_when=FIRST_EXCEPTION)
        if pending:
            for future in pending:
                future.cancel()
            # Running fetches must land before the caller may erase target_dir.
            wait(futures)

        results: list[DownloadedInput] = []
        for future in futures:
            if future.cancelled():
                continue
            error = future.exception()
            if error is not None:
                raise error
            results.append(future.result())
        return results

    def _download_one(self, url: str, local_path: Path) -> DownloadedInput:
        result = self.fetcher.fetch(url)
        if not result.is_success:
            logger.warning("Download failed for %s: %s", url, result.error)
            raise DownloadError(url, result.error or "unknown transport error")
        try:
            local_path.write_bytes(result.content)
        except OSError as error:
            raise DownloadError(url, str(error)) from error
        logger.debug("Downloaded %s -> %s (%d bytes)", url, local_path, len(result.content))
        return DownloadedInput(url=url, local_path=local_path, filename=local_path.name)


def extract_filename(url: str) -> str:
    """Use the URL path basename when it has an extension, else a generated name."""

    name = unquote(PurePosixPath(urlparse(url).path).name)
    if name and "." in name.strip(".") and "/" not in name and "\\" not in name:
        return name
    return f"input-{int(time.time() * 1000)}-{uuid.uuid4().hex[:6]}.bin"


def _assign_filenames(urls: Sequence[str]) -> list[str]:
    used: set[str] = set()
    filenames: list[str] = []
    for index, url in enumerate(urls):
        filename = extract_filename(url)
        if filename in used:
            filename = f"{index}-{filename}"
        used.add(filename)
        filenames.append(filename)
    return filenames
