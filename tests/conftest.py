from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace

import pytest
import structlog

from devsecops_toolkit.adapters import CommandRunner, ToolExecutionError

FIXTURES = Path(__file__).resolve().parent / "fixtures"


def completed(stdout: str = "", returncode: int = 0, stderr: str = "") -> SimpleNamespace:
    return SimpleNamespace(stdout=stdout, returncode=returncode, stderr=stderr)


class FakeRunner(CommandRunner):
    """Records commands and answers them from prefix-matched canned results."""

    def __init__(self, responses=None, available=()):
        super().__init__()
        self.responses = list(responses or [])
        self.available = set(available)
        self.calls = []

    def which(self, name):
        return f"/usr/bin/{name}" if name in self.available else None

    def respond(self, prefix, result):
        self.responses.append((list(prefix), result))

    def commands(self):
        return [call.args for call in self.calls]

    def run(self, args, *, cwd=None, input=None, check=True, env=None):
        command = [str(arg) for arg in args]
        self.calls.append(SimpleNamespace(args=command, cwd=cwd, input=input, check=check))

        result = completed()
        for prefix, response in self.responses:
            if command[: len(prefix)] == prefix:
                result = response(command) if callable(response) else response
                break

        if check and result.returncode != 0:
            message = f"Command '{' '.join(command)}' failed with exit code {result.returncode}"
            if result.stderr:
                message = f"{message}: {result.stderr}"
            raise ToolExecutionError(
                message,
                command=command,
                returncode=result.returncode,
                stderr=result.stderr,
            )
        return result


@pytest.fixture
def fake_runner():
    return FakeRunner


@pytest.fixture
def make_completed():
    return completed


@pytest.fixture
def fixture_text():
    def _read(name: str) -> str:
        return (FIXTURES / name).read_text(encoding="utf-8")

    return _read


@pytest.fixture(autouse=True)
def _reset_structlog():
    """Keep structlog's global configuration from leaking between tests."""
    yield
    structlog.reset_defaults()
