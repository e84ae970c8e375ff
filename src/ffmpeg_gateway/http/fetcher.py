"""HTTP client used to fetch remote input media."""

from __future__ import annotations

import logging
from dataclasses import dataclass

import httpx

from ffmpeg_gateway import __version__

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 60.0
DEFAULT_CONNECT_TIMEOUT_SECONDS = 10.0
DEFAULT_USER_AGENT = f"ffmpeg-gateway/{__version__}"


@dataclass(slots=True)
class FetchResult:
    """Result of an HTTP fetch operation."""

    url: str
    status_code: int
    content: bytes
    content_type: str
    is_success: bool
    error: str | None = None


class HttpFetcher:
    """httpx client wrapper with timeout and user-agent configuration.

    Fetches are single attempt: transport failures are reported, not retried.
    """

    def __init__(
        self,
        *,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        user_agent: str = DEFAULT_USER_AGENT,
        headers: dict[str, str] | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._timeout = httpx.Timeout(timeout_seconds, connect=DEFAULT_CONNECT_TIMEOUT_SECONDS)
        base_headers = {"User-Agent": user_agent}
        if headers:
            base_headers.update(headers)
        self._client = httpx.Client(
            timeout=self._timeout,
            headers=base_headers,
            transport=transport,
            follow_redirects=True,
        )

    def fetch(self, url: str) -> FetchResult:
        """Fetch URL body as bytes, returning structured result."""

        try:
            response = self._client.get(url)
            content_type = response.headers.get("content-type", "")
            return FetchResult(
                url=url,
                status_code=response.status_code,
                content=response.content,
                content_type=content_type,
                is_success=response.is_success,
                error=(
                    None
                    if response.is_success
                    else f"HTTP {response.status_code} {response.reason_phrase}".strip()
                ),
            )
        except httpx.TimeoutException:
            logger.warning("Timeout fetching %s", url)
            return FetchResult(
                url=url,
                status_code=0,
                content=b"",
                content_type="",
                is_success=False,
                error="timeout",
            )
        except httpx.HTTPError as exc:
            logger.warning("HTTP error fetching %s: %s", url, exc)
            return FetchResult(
                url=url,
                status_code=0,
                content=b"",
                content_type="",
                is_success=False,
                error=str(exc) or exc.__class__.__name__,
            )

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> HttpFetcher:
        return self

    def __exit__(self, *_: object) -> None:
        self.close()
