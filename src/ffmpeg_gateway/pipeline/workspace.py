"""Per-request workspace directories."""

from __future__ import annotations

import logging
import re
import shutil
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path

from ffmpeg_gateway.pipeline.errors import ValidationError

logger = logging.getLogger(__name__)

_SAFE_REQUEST_ID = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_-]{0,127}$")


@dataclass(slots=True, frozen=True)
class RequestWorkspace:
    """Materialized workspace paths for one request."""

    request_id: str
    root_dir: Path
    inputs_dir: Path
    outputs_dir: Path


class WorkspaceManager:
    """Creates and erases `{root}/{request_id}/{inputs,outputs}` trees.

    Request ids are fresh random identifiers, so workspaces of concurrent
    requests never overlap and need no locking.
    """

    def __init__(self, root_dir: Path) -> None:
        self.root_dir = root_dir

    def path_for(self, request_id: str) -> Path:
        if not _SAFE_REQUEST_ID.match(request_id):
            raise ValidationError(f"Invalid request id: {request_id!r}")
        return self.root_dir / request_id

    def create(self, request_id: str) -> RequestWorkspace:
        base_dir = self.path_for(request_id)
        inputs_dir = base_dir / "inputs"
        outputs_dir = base_dir / "outputs"
        inputs_dir.mkdir(parents=True, exist_ok=True)
        outputs_dir.mkdir(parents=True, exist_ok=True)
        return RequestWorkspace(
            request_id=request_id,
            root_dir=base_dir,
            inputs_dir=inputs_dir,
            outputs_dir=outputs_dir,
        )

    def destroy(self, request_id: str) -> None:
        """Remove the workspace tree; failures are logged, never raised."""

        try:
            base_dir = self.path_for(request_id)
        except ValidationError:
            return
        try:
            shutil.rmtree(base_dir)
        except FileNotFoundError:
            return
        except OSError as error:
            logger.warning("Failed to cleanup workspace %s: %s", base_dir, error)

    @contextmanager
    def scoped(self, request_id: str) -> Iterator[RequestWorkspace]:
        """Yield a fresh workspace and erase it exactly once on exit."""

        try:
            yield self.create(request_id)
        finally:
            self.destroy(request_id)
