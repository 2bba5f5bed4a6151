"""Install tfsec, Trivy and kubeseal when they are missing from ``PATH``."""

from __future__ import annotations

import io
import os
import platform as platform_module
import shutil
import sys
import tarfile
import tempfile
from pathlib import Path
from typing import Dict

import httpx

from ..adapters.runner import CommandRunner, ToolExecutionError
from ..observability import get_logger

log = get_logger(__name__)

INSTALL_SCRIPTS: Dict[str, str] = {
    "tfsec": "https://raw.githubusercontent.com/aquasecurity/tfsec/master/scripts/install_linux.sh",
    "trivy": "https://raw.githubusercontent.com/aquasecurity/trivy/main/contrib/install.sh",
}

KUBESEAL_RELEASE_URL = (
    "https://github.com/bitnami-labs/sealed-secrets/releases/download/"
    "v{version}/kubeseal-{version}-{os}-{arch}.tar.gz"
)

_ARCH_ALIASES = {
    "x86_64": "amd64",
    "amd64": "amd64",
    "aarch64": "arm64",
    "arm64": "arm64",
}


class InstallationError(ToolExecutionError):
    """Raised when a tool cannot be installed automatically."""


class ToolInstaller:
    """Install missing tools using Homebrew on macOS or upstream artifacts on Linux."""

    def __init__(
        self,
        *,
        runner: CommandRunner | None = None,
        platform: str | None = None,
        machine: str | None = None,
        install_dir: Path | str = Path("/usr/local/bin"),
        transport: httpx.BaseTransport | None = None,
        timeout: float = 60.0,
    ) -> None:
        self.runner = runner or CommandRunner()
        self.platform = platform or sys.platform
        self.machine = machine or platform_module.machine()
        self.install_dir = Path(install_dir)
        self._transport = transport
        self.timeout = timeout

    # ------------------------------------------------------------------
    def ensure(
        self, tool: str, *, executable: str | None = None, version: str | None = None
    ) -> str:
        """Return the path to ``tool``, installing it first when it is missing."""

        binary = executable or tool
        found = self.runner.which(binary)
        if found:
            return found

        log.warning("tool_missing_installing", tool=tool, platform=self.platform)

        if self.platform == "darwin":
            self.runner.run(["brew", "install", tool])
        elif self.platform.startswith("linux") and tool in INSTALL_SCRIPTS:
            self._run_install_script(tool)
        elif self.platform.startswith("linux") and tool == "kubeseal":
            self.install_kubeseal(version or "0.24.0")
        else:
            raise InstallationError(f"Please install {tool} manually")

        found = self.runner.which(binary)
        if not found:
            raise InstallationError(f"{tool} installation did not produce an executable on PATH")

        log.info("tool_installed", tool=tool, path=found)
        return found

    def install_kubeseal(self, version: str) -> Path:
        """Download the kubeseal release tarball and install the binary."""

        version = version[1:] if version.startswith("v") else version
        os_name = "darwin" if self.platform == "darwin" else "linux"
        arch = _ARCH_ALIASES.get(self.machine.lower(), "amd64")
        url = KUBESEAL_RELEASE_URL.format(version=version, os=os_name, arch=arch)

        archive_bytes = self._download(url)
        destination = self.install_dir / "kubeseal"

        with tempfile.TemporaryDirectory() as tmpdir:
            extracted = Path(tmpdir) / "kubeseal"
            try:
                with tarfile.open(fileobj=io.BytesIO(archive_bytes), mode="r:gz") as archive:
                    member = archive.extractfile("kubeseal")
                    if member is None:
                        raise InstallationError(f"kubeseal entry in {url} is not a file")
                    extracted.write_bytes(member.read())
            except (tarfile.TarError, KeyError) as exc:
                raise InstallationError(f"Failed to extract kubeseal from {url}") from exc

            extracted.chmod(0o755)
            self._install_binary(extracted, destination)

        log.info("kubeseal_installed", version=version, path=str(destination))
        return destination

    # ------------------------------------------------------------------
    def _run_install_script(self, tool: str) -> None:
        script = self._download(INSTALL_SCRIPTS[tool]).decode("utf-8")
        if tool == "trivy":
            self.runner.run(["sh", "-s", "--", "-b", str(self.install_dir)], input=script)
        else:
            self.runner.run(["bash"], input=script)

    def _install_binary(self, source: Path, destination: Path) -> None:
        if os.access(destination.parent, os.W_OK):
            destination.parent.mkdir(parents=True, exist_ok=True)
            shutil.copy2(source, destination)
            destination.chmod(0o755)
            return

        self.runner.run(["sudo", "install", "-m", "755", str(source), str(destination)])

    def _download(self, url: str) -> bytes:
        log.debug("download_started", url=url)
        try:
            with httpx.Client(
                transport=self._transport,
                follow_redirects=True,
                timeout=self.timeout,
            ) as client:
                response = client.get(url)
                response.raise_for_status()
        except httpx.HTTPError as exc:
            raise InstallationError(f"Failed to download {url}: {exc}") from exc
        return response.content


__all__ = ["INSTALL_SCRIPTS", "InstallationError", "KUBESEAL_RELEASE_URL", "ToolInstaller"]
