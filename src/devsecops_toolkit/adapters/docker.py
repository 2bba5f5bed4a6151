"""Docker CLI adapter."""

from __future__ import annotations

from pathlib import Path

from ..observability import get_logger
from .runner import ToolAdapter, ToolExecutionError

log = get_logger(__name__)


class DockerAdapter(ToolAdapter):
    tool_name = "docker"

    def build(self, context: Path, tag: str, *, dockerfile: Path | None = None) -> None:
        args = ["build", "-t", tag]
        if dockerfile is not None:
            args.extend(["-f", str(dockerfile)])
        args.append(str(context))
        self._run(*args)

    def remove_image(self, tag: str) -> bool:
        """Remove a local image; failures are logged and reported as ``False``."""

        try:
            completed = self._run("rmi", tag, check=False)
        except ToolExecutionError as exc:
            log.warning("docker_rmi_failed", image=tag, error=str(exc))
            return False
        return completed.returncode == 0
