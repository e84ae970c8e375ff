"""Storage backend contract for published artifacts."""

from __future__ import annotations

from typing import Protocol


class StorageBackendError(RuntimeError):
    """Backend rejected or failed an object operation."""


class StorageBackend(Protocol):
    """Object store that refuses to overwrite existing keys."""

    name: str

    def upload(self, key: str, data: bytes, content_type: str) -> None: ...

    def public_url(self, key: str) -> str: ...
