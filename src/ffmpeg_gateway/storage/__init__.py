from ffmpeg_gateway.storage.base import StorageBackend, StorageBackendError
from ffmpeg_gateway.storage.memory import MemoryStorage
from ffmpeg_gateway.storage.s3 import S3Storage, build_s3_client

__all__ = [
    "MemoryStorage",
    "S3Storage",
    "StorageBackend",
    "StorageBackendError",
    "build_s3_client",
]
