"""HTTP client helpers."""

from ffmpeg_gateway.http.fetcher import FetchResult, HttpFetcher

__all__ = ["FetchResult", "HttpFetcher"]
