"""Runtime configuration for the gateway server and pipeline."""

from __future__ import annotations

import os
import shlex
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from urllib.parse import urlparse

from ffmpeg_gateway.pipeline.pools import DEFAULT_DOWNLOAD_CONCURRENCY, execution_pool_size

STORAGE_BACKENDS = ("s3", "memory")


@dataclass(slots=True)
class ServerSettings:
    """HTTP listener settings."""

    host: str = "0.0.0.0"  # noqa: S104
    port: int = 5675
    cors_origins: tuple[str, ...] = ("*",)
    access_log: bool = True


@dataclass(slots=True)
class ExecutionSettings:
    """External binary and execution pool settings."""

    binary_name: str = "ffmpeg"
    binary_command: tuple[str, ...] = ("ffmpeg",)
    timeout_seconds: float = 300.0
    max_concurrent: int = field(default_factory=execution_pool_size)
    workspace_root: Path = field(default_factory=lambda: Path(tempfile.gettempdir()))


@dataclass(slots=True)
class DownloadSettings:
    """Remote input fetch settings."""

    concurrency: int = DEFAULT_DOWNLOAD_CONCURRENCY
    timeout_seconds: float = 60.0


@dataclass(slots=True)
class StorageSettings:
    """Artifact storage settings."""

    backend: str = "s3"
    max_file_size_bytes: int = 100 * 1024 * 1024
    bucket: str | None = None
    endpoint_url: str | None = None
    region: str = "us-east-1"
    access_key: str | None = None
    secret_key: str | None = None
    public_endpoint: str | None = None

    def resolved_public_endpoint(self) -> str:
        if self.public_endpoint:
            return self.public_endpoint.rstrip("/")
        if self.endpoint_url:
            return self.endpoint_url.rstrip("/")
        return f"https://s3.{self.region}.amazonaws.com"


@dataclass(slots=True)
class TranslatorSettings:
    """CLI agent used to turn task descriptions into commands."""

    command_template: str = "claude -p --model {model} {prompt}"
    model: str = "sonnet"
    timeout_seconds: float = 120.0


@dataclass(slots=True)
class Settings:
    """Application settings grouped by concern."""

    server: ServerSettings = field(default_factory=ServerSettings)
    execution: ExecutionSettings = field(default_factory=ExecutionSettings)
    downloads: DownloadSettings = field(default_factory=DownloadSettings)
    storage: StorageSettings = field(default_factory=StorageSettings)
    translator: TranslatorSettings = field(default_factory=TranslatorSettings)

    @classmethod
    def from_env(cls) -> Settings:
        """Load settings from environment with defaults for local development."""

        binary_name = os.getenv("FFMPEG_GATEWAY_BINARY_NAME", "ffmpeg").strip() or "ffmpeg"
        binary_command = tuple(shlex.split(os.getenv("FFMPEG_GATEWAY_BINARY_COMMAND", binary_name)))
        max_concurrent_raw = os.getenv("FFMPEG_GATEWAY_MAX_CONCURRENT", "").strip()
        return cls(
            server=ServerSettings(
                host=os.getenv("FFMPEG_GATEWAY_HOST", "0.0.0.0"),  # noqa: S104
                port=int(os.getenv("PORT", os.getenv("FFMPEG_GATEWAY_PORT", "5675"))),
                cors_origins=_split_csv(os.getenv("FFMPEG_GATEWAY_CORS_ORIGINS", "*")),
                access_log=_env_bool("FFMPEG_GATEWAY_ACCESS_LOG", default=True),
            ),
            execution=ExecutionSettings(
                binary_name=binary_name,
                binary_command=binary_command,
                timeout_seconds=float(os.getenv("FFMPEG_GATEWAY_TIMEOUT_SECONDS", "300")),
                max_concurrent=(
                    int(max_concurrent_raw) if max_concurrent_raw else execution_pool_size()
                ),
                workspace_root=Path(
                    os.getenv("FFMPEG_GATEWAY_WORKSPACE_ROOT", tempfile.gettempdir()),
                ),
            ),
            downloads=DownloadSettings(
                concurrency=int(
                    os.getenv(
                        "FFMPEG_GATEWAY_DOWNLOAD_CONCURRENCY",
                        str(DEFAULT_DOWNLOAD_CONCURRENCY),
                    ),
                ),
                timeout_seconds=float(
                    os.getenv("FFMPEG_GATEWAY_DOWNLOAD_TIMEOUT_SECONDS", "60"),
                ),
            ),
            storage=StorageSettings(
                backend=os.getenv("FFMPEG_GATEWAY_STORAGE_BACKEND", "s3").strip().lower(),
                max_file_size_bytes=int(
                    os.getenv("FFMPEG_GATEWAY_MAX_FILE_SIZE_BYTES", str(100 * 1024 * 1024)),
                ),
                bucket=_env_optional("FFMPEG_GATEWAY_S3_BUCKET"),
                endpoint_url=_env_optional("FFMPEG_GATEWAY_S3_ENDPOINT_URL"),
                region=os.getenv("FFMPEG_GATEWAY_S3_REGION", "us-east-1"),
                access_key=_env_optional("FFMPEG_GATEWAY_S3_ACCESS_KEY"),
                secret_key=_env_optional("FFMPEG_GATEWAY_S3_SECRET_KEY"),
                public_endpoint=_env_optional("FFMPEG_GATEWAY_S3_PUBLIC_ENDPOINT"),
            ),
            translator=TranslatorSettings(
                command_template=os.getenv(
                    "FFMPEG_GATEWAY_TRANSLATOR_COMMAND",
                    "claude -p --model {model} {prompt}",
                ),
                model=os.getenv("FFMPEG_GATEWAY_TRANSLATOR_MODEL", "sonnet"),
                timeout_seconds=float(
                    os.getenv("FFMPEG_GATEWAY_TRANSLATOR_TIMEOUT_SECONDS", "120"),
                ),
            ),
        )

    def validate(self) -> None:  # noqa: C901
        """Raise configuration error for values the server cannot start with."""

        if not 0 < self.server.port < 65536:
            raise ValueError("PORT must be between 1 and 65535.")
        if not self.execution.binary_command:
            raise ValueError("FFMPEG_GATEWAY_BINARY_COMMAND must not be empty.")
        if " " in self.execution.binary_name:
            raise ValueError("FFMPEG_GATEWAY_BINARY_NAME must be a single word.")
        if self.execution.timeout_seconds <= 0:
            raise ValueError("FFMPEG_GATEWAY_TIMEOUT_SECONDS must be > 0.")
        if self.execution.max_concurrent < 1:
            raise ValueError("FFMPEG_GATEWAY_MAX_CONCURRENT must be >= 1.")
        if self.downloads.concurrency < 1:
            raise ValueError("FFMPEG_GATEWAY_DOWNLOAD_CONCURRENCY must be >= 1.")
        if self.downloads.timeout_seconds <= 0:
            raise ValueError("FFMPEG_GATEWAY_DOWNLOAD_TIMEOUT_SECONDS must be > 0.")
        if self.storage.max_file_size_bytes <= 0:
            raise ValueError("FFMPEG_GATEWAY_MAX_FILE_SIZE_BYTES must be > 0.")
        if self.storage.backend not in STORAGE_BACKENDS:
            raise ValueError(
                f"FFMPEG_GATEWAY_STORAGE_BACKEND must be one of: {', '.join(STORAGE_BACKENDS)}.",
            )
        if self.storage.backend == "s3":
            if not self.storage.bucket:
                raise ValueError("FFMPEG_GATEWAY_S3_BUCKET is required for the s3 backend.")
            for name, value in (
                ("FFMPEG_GATEWAY_S3_ENDPOINT_URL", self.storage.endpoint_url),
                ("FFMPEG_GATEWAY_S3_PUBLIC_ENDPOINT", self.storage.public_endpoint),
            ):
                if value:
                    _validate_http_url(name, value)
        if "{prompt}" not in self.translator.command_template:
            raise ValueError("FFMPEG_GATEWAY_TRANSLATOR_COMMAND must include {prompt}.")
        if self.translator.timeout_seconds <= 0:
            raise ValueError("FFMPEG_GATEWAY_TRANSLATOR_TIMEOUT_SECONDS must be > 0.")


def _split_csv(raw: str) -> tuple[str, ...]:
    return tuple(item.strip() for item in raw.split(",") if item.strip())


def _env_optional(name: str) -> str | None:
    value = os.getenv(name, "").strip()
    return value or None


def _validate_http_url(name: str, value: str) -> None:
    parsed = urlparse(value)
    if parsed.scheme not in {"http", "https"} or not parsed.netloc:
        raise ValueError(f"{name} must be an absolute http(s) URL, got {value!r}.")


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "on"}:
        return True
    if normalized in {"0", "false", "no", "off"}:
        return False
    raise ValueError(f"Invalid boolean value for {name}: {value!r}")
