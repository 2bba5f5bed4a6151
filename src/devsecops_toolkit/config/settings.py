"""Toolkit settings.

Values come from (highest precedence first) an optional YAML config file,
``DEVSECOPS_*`` environment variables and the defaults below. Nested sections
use ``__`` in environment variable names, e.g. ``DEVSECOPS_SCAN__FAIL_ON=critical``.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, List, Literal, Mapping

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from ..models import FindingSeverity

DEFAULT_CONFIG_FILENAME = ".devsecops.yaml"
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class SettingsError(RuntimeError):
    """Raised when a configuration file cannot be loaded or validated."""


class ToolPaths(BaseModel):
    """Executable names or paths for the wrapped tools."""

    terraform: str = "terraform"
    tfsec: str = "tfsec"
    checkov: str = "checkov"
    trivy: str = "trivy"
    hadolint: str = "hadolint"
    docker: str = "docker"
    kubectl: str = "kubectl"
    kubeseal: str = "kubeseal"
    aws: str = "aws"
    git: str = "git"


class ScanSettings(BaseModel):
    """Local security scan configuration."""

    fail_on: FindingSeverity = FindingSeverity.HIGH
    dockerfile: Path = Path("app/Dockerfile")
    image_tag: str = "local-security-scan:latest"
    trivy_severities: List[str] = Field(default_factory=lambda: ["HIGH", "CRITICAL"])
    soft_fail_tools: List[str] = Field(default_factory=lambda: ["checkov"])
    skip_checks: List[str] = Field(default_factory=list)
    auto_install: bool = True
    exclude_dirs: List[str] = Field(
        default_factory=lambda: [".git", ".terraform", "node_modules"]
    )
    exclude_globs: List[str] = Field(default_factory=lambda: ["*.md"])
    max_file_size: int = Field(default=1_048_576, ge=1)
    commit_count: int = Field(default=10, ge=1)

    @field_validator("trivy_severities")
    @classmethod
    def _upper_severities(cls, value: List[str]) -> List[str]:
        return [item.strip().upper() for item in value if item.strip()]


class SealedSecretsSettings(BaseModel):
    """Sealed Secrets controller and kubeseal configuration."""

    version: str = "0.24.0"
    controller_namespace: str = "kube-system"
    controller_name: str = "sealed-secrets-controller"
    wait_timeout: int = Field(default=300, ge=1)
    cert_path: Path = Path("sealed-secrets-public.pem")
    install_dir: Path = Path("/usr/local/bin")

    @field_validator("version")
    @classmethod
    def _strip_v_prefix(cls, value: str) -> str:
        return value[1:] if value.startswith("v") else value

    @property
    def controller_manifest_url(self) -> str:
        return (
            "https://github.com/bitnami-labs/sealed-secrets/releases/download/"
            f"v{self.version}/controller.yaml"
        )


class BootstrapSettings(BaseModel):
    """Infrastructure bootstrap configuration."""

    tfvars_file: Path = Path("terraform.tfvars")
    plan_file: str = "tfplan"
    state_key: str = "terraform.tfstate"
    cluster_suffix: str = "-eks-cluster"


class DeploySettings(BaseModel):
    """Defaults for rolling an application image out to the cluster."""

    deployment: str = "devopsasg1-app"
    namespace: str = "devopsasg1"
    container: str = "app"
    port: int = 80
    target_port: int = 80
    service_type: str = "LoadBalancer"
    timeout: int = Field(default=300, ge=1)


class ToolkitSettings(BaseSettings):
    """Root settings object."""

    model_config = SettingsConfigDict(
        env_prefix="DEVSECOPS_",
        env_nested_delimiter="__",
        extra="ignore",
    )

    log_level: str = "WARNING"
    log_format: Literal["console", "json"] = "console"
    tools: ToolPaths = Field(default_factory=ToolPaths)
    scan: ScanSettings = Field(default_factory=ScanSettings)
    sealed_secrets: SealedSecretsSettings = Field(default_factory=SealedSecretsSettings)
    bootstrap: BootstrapSettings = Field(default_factory=BootstrapSettings)
    deploy: DeploySettings = Field(default_factory=DeploySettings)

    @field_validator("log_level")
    @classmethod
    def _known_log_level(cls, value: str) -> str:
        level = value.strip().upper()
        if level not in LOG_LEVELS:
            raise ValueError(f"log_level must be one of {', '.join(LOG_LEVELS)}")
        return level


def _read_config_file(path: Path) -> Mapping[str, Any]:
    try:
        content = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise SettingsError(f"Failed to read config file {path}") from exc

    try:
        data = yaml.safe_load(content) or {}
    except yaml.YAMLError as exc:
        raise SettingsError(f"Invalid YAML in config file {path}") from exc

    if not isinstance(data, Mapping):
        raise SettingsError(f"Config file must be a mapping: {path}")
    return data


def load_settings(config_path: Path | str | None = None) -> ToolkitSettings:
    """Build settings from the environment and an optional YAML file.

    When ``config_path`` is omitted, ``.devsecops.yaml`` in the current
    directory is used if it exists. An explicit path that does not exist is
    an error.
    """

    data: Mapping[str, Any] = {}
    if config_path is not None:
        path = Path(config_path)
        if not path.exists():
            raise SettingsError(f"Config file not found: {path}")
        data = _read_config_file(path)
    else:
        default = Path.cwd() / DEFAULT_CONFIG_FILENAME
        if default.exists():
            data = _read_config_file(default)

    try:
        return ToolkitSettings(**dict(data))
    except ValidationError as exc:
        raise SettingsError(f"Invalid configuration: {exc}") from exc
