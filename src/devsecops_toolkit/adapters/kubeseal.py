"""kubeseal client adapter."""

from __future__ import annotations

from pathlib import Path

from .runner import CommandRunner, ToolAdapter


class KubesealAdapter(ToolAdapter):
    tool_name = "kubeseal"

    def __init__(
        self,
        *,
        controller_namespace: str | None = None,
        controller_name: str | None = None,
        executable: str | None = None,
        runner: CommandRunner | None = None,
    ) -> None:
        super().__init__(executable=executable, runner=runner)
        self.controller_namespace = controller_namespace
        self.controller_name = controller_name

    def seal(
        self,
        input_path: Path,
        output_path: Path,
        *,
        cert: Path | str | None = None,
        output_format: str = "yaml",
    ) -> None:
        args = ["-f", str(input_path), "-w", str(output_path), "-o", output_format]
        if cert is not None:
            args.extend(["--cert", str(cert)])
        args.extend(self._controller_args())
        self._run(*args)

    def fetch_cert(self) -> str:
        return self._run("--fetch-cert", *self._controller_args()).stdout

    def _controller_args(self) -> list[str]:
        args: list[str] = []
        if self.controller_namespace:
            args.append(f"--controller-namespace={self.controller_namespace}")
        if self.controller_name:
            args.append(f"--controller-name={self.controller_name}")
        return args
