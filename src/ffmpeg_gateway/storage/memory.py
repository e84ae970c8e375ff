"""In-process object store for dry runs and tests."""

from __future__ import annotations

import threading
from dataclasses import dataclass
from urllib.parse import quote

from ffmpeg_gateway.storage.base import StorageBackendError


@dataclass(slots=True, frozen=True)
class StoredObject:
    data: bytes
    content_type: str


class MemoryStorage:
    name = "memory"

    def __init__(self, *, base_url: str = "memory://ffmpeg-gateway") -> None:
        self.base_url = base_url.rstrip("/")
        self._lock = threading.Lock()
        self._objects: dict[str, StoredObject] = {}

    def upload(self, key: str, data: bytes, content_type: str) -> None:
        with self._lock:
            if key in self._objects:
                raise StorageBackendError(f"Object already exists: {key}")
            self._objects[key] = StoredObject(data=data, content_type=content_type)

    def public_url(self, key: str) -> str:
        return f"{self.base_url}/{quote(key)}"

    def get(self, key: str) -> StoredObject | None:
        with self._lock:
            return self._objects.get(key)

    def keys(self) -> list[str]:
        with self._lock:
            return sorted(self._objects)
