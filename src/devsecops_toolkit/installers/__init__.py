"""On-demand installation of missing scanner and client binaries."""

from .tool_installer import (
    INSTALL_SCRIPTS,
    KUBESEAL_RELEASE_URL,
    InstallationError,
    ToolInstaller,
)

__all__ = ["INSTALL_SCRIPTS", "InstallationError", "KUBESEAL_RELEASE_URL", "ToolInstaller"]
