"""Configuration loading for the toolkit."""

from .settings import (
    DEFAULT_CONFIG_FILENAME,
    LOG_LEVELS,
    BootstrapSettings,
    DeploySettings,
    ScanSettings,
    SealedSecretsSettings,
    SettingsError,
    ToolkitSettings,
    ToolPaths,
    load_settings,
)

__all__ = [
    "DEFAULT_CONFIG_FILENAME",
    "LOG_LEVELS",
    "BootstrapSettings",
    "DeploySettings",
    "ScanSettings",
    "SealedSecretsSettings",
    "SettingsError",
    "ToolPaths",
    "ToolkitSettings",
    "load_settings",
]
