"""Subprocess execution shared by all tool adapters."""

from __future__ import annotations

import os
import shutil
import subprocess
from pathlib import Path
from typing import Mapping, Optional, Sequence

from ..observability import get_logger

log = get_logger(__name__)


class ToolExecutionError(RuntimeError):
    """Raised when an external tool fails."""

    def __init__(
        self,
        message: str,
        *,
        command: Sequence[str] | None = None,
        returncode: int | None = None,
        stderr: str = "",
    ) -> None:
        super().__init__(message)
        self.command = list(command or [])
        self.returncode = returncode
        self.stderr = stderr


class ToolNotFoundError(ToolExecutionError):
    """Raised when an executable is not available."""


class CommandRunner:
    """Run external commands with text I/O and captured output."""

    def __init__(
        self,
        *,
        env: Optional[Mapping[str, str]] = None,
        inherit_environment: bool = True,
    ) -> None:
        self.env = dict(env or {})
        self.inherit_environment = inherit_environment

    def which(self, name: str) -> str | None:
        return shutil.which(name)

    def run(
        self,
        args: Sequence[str],
        *,
        cwd: Path | str | None = None,
        input: str | None = None,
        check: bool = True,
        env: Optional[Mapping[str, str]] = None,
    ) -> subprocess.CompletedProcess[str]:
        command = [str(arg) for arg in args]
        log.debug("command_started", command=command, cwd=str(cwd) if cwd else None)

        try:
            completed = subprocess.run(
                command,
                cwd=cwd,
                env=self._build_environment(env),
                input=input,
                capture_output=True,
                text=True,
                check=False,
            )
        except FileNotFoundError as exc:
            raise ToolNotFoundError(
                f"Executable not found: {command[0]}", command=command
            ) from exc

        log.debug("command_finished", command=command, returncode=completed.returncode)

        if check and completed.returncode != 0:
            stderr = (completed.stderr or "").strip()
            message = f"Command '{' '.join(command)}' failed with exit code {completed.returncode}"
            if stderr:
                message = f"{message}: {stderr}"
            raise ToolExecutionError(
                message,
                command=command,
                returncode=completed.returncode,
                stderr=stderr,
            )

        return completed

    def _build_environment(self, extra: Optional[Mapping[str, str]]) -> dict[str, str] | None:
        if not self.env and not extra and self.inherit_environment:
            return None

        if self.inherit_environment:
            env_vars = os.environ.copy()
        else:
            env_vars = {"PATH": os.environ.get("PATH", "")}

        env_vars.update(self.env)
        if extra:
            env_vars.update(extra)
        return env_vars


class ToolAdapter:
    """Base class for adapters wrapping a single executable."""

    tool_name = ""

    def __init__(
        self, *, executable: str | None = None, runner: CommandRunner | None = None
    ) -> None:
        self.executable = executable or self.tool_name
        self.runner = runner or CommandRunner()

    def available(self) -> bool:
        return self.runner.which(self.executable) is not None

    def _run(
        self,
        *args: str,
        cwd: Path | str | None = None,
        input: str | None = None,
        check: bool = True,
    ) -> subprocess.CompletedProcess[str]:
        return self.runner.run([self.executable, *args], cwd=cwd, input=input, check=check)


__all__ = ["CommandRunner", "ToolAdapter", "ToolExecutionError", "ToolNotFoundError"]
