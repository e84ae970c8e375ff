"""Binary availability probe used by the health endpoint and CLI."""

from __future__ import annotations

import re
import subprocess
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import UTC, datetime

from ffmpeg_gateway.pipeline.pools import PoolStats

PROBE_TIMEOUT_SECONDS = 5.0


@dataclass(slots=True, frozen=True)
class BinaryCheck:
    ok: bool
    version: str | None = None
    error: str | None = None

    def to_payload(self) -> dict[str, object]:
        if self.ok:
            return {"status": "ok", "version": self.version}
        return {"status": "error", "error": self.error}


def check_binary(
    command: Sequence[str],
    *,
    binary_name: str = "ffmpeg",
    timeout_seconds: float = PROBE_TIMEOUT_SECONDS,
) -> BinaryCheck:
    """Run `<binary> -version` and read the version from the first line."""

    try:
        completed = subprocess.run(  # noqa: S603
            [*command, "-version"],
            check=False,
            capture_output=True,
            text=True,
            errors="replace",
            timeout=timeout_seconds,
        )
    except subprocess.TimeoutExpired:
        return BinaryCheck(
            ok=False,
            error=f"{binary_name} check failed: probe timed out after {timeout_seconds:g}s",
        )
    except OSError as error:
        return BinaryCheck(ok=False, error=f"{binary_name} check failed: {error}")

    if completed.returncode != 0:
        detail = completed.stderr.strip() or f"exit code {completed.returncode}"
        return BinaryCheck(ok=False, error=f"{binary_name} check failed: {detail}")

    first_line = completed.stdout.splitlines()[0] if completed.stdout else ""
    match = re.search(rf"{re.escape(binary_name)} version (\S+)", first_line)
    return BinaryCheck(ok=True, version=match.group(1) if match else "unknown")


def build_health_report(
    *,
    check: BinaryCheck,
    binary_name: str,
    uptime_seconds: float,
    pools: Sequence[PoolStats] = (),
) -> tuple[int, dict[str, object]]:
    """Return HTTP status and body: 200 when the binary answers, else 503."""

    payload: dict[str, object] = {
        "status": "healthy" if check.ok else "unhealthy",
        "timestamp": datetime.now(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z"),
        "checks": {
            "server": {"status": "ok", "uptime": int(uptime_seconds)},
            binary_name: check.to_payload(),
        },
        "queues": {stats.name: stats.to_payload() for stats in pools},
    }
    return (200 if check.ok else 503), payload
