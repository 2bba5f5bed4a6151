"""Creation of sealed secrets and installation of the Sealed Secrets controller."""

from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, Mapping, Sequence

from .adapters import KubectlAdapter, KubesealAdapter
from .config import SealedSecretsSettings
from .installers import ToolInstaller
from .observability import get_logger

log = get_logger(__name__)

_SECRET_KEY_PATTERN = re.compile(r"^[-._a-zA-Z0-9]+$")

ConfirmCallback = Callable[[str], bool]


class SealingError(RuntimeError):
    """Raised when a sealed secret cannot be created."""


@dataclass(slots=True)
class SealedSecretResult:
    name: str
    namespace: str
    path: Path
    applied: bool


def parse_literals(values: Sequence[str]) -> Dict[str, str]:
    """Parse ``key=value`` arguments into an ordered mapping."""

    if not values:
        raise SealingError("At least one key=value pair is required")

    literals: Dict[str, str] = {}
    for value in values:
        if "=" not in value:
            raise SealingError(f"Invalid format: {value} (expected key=value)")
        key, raw = value.split("=", 1)
        _validate_key(key)
        literals[key] = raw
    return literals


def _validate_key(key: str) -> None:
    if not _SECRET_KEY_PATTERN.match(key):
        raise SealingError(f"Invalid secret key: {key!r}")


class SealedSecretService:
    """Wrap kubectl and kubeseal to produce sealed secrets safe for version control."""

    def __init__(
        self,
        settings: SealedSecretsSettings | None = None,
        *,
        kubectl: KubectlAdapter | None = None,
        kubeseal: KubesealAdapter | None = None,
        installer: ToolInstaller | None = None,
        confirm: ConfirmCallback | None = None,
    ) -> None:
        self.settings = settings or SealedSecretsSettings()
        self.kubectl = kubectl or KubectlAdapter()
        self.kubeseal = kubeseal or KubesealAdapter(
            controller_namespace=self.settings.controller_namespace,
            controller_name=self.settings.controller_name,
        )
        self.installer = installer or ToolInstaller(
            runner=self.kubectl.runner, install_dir=self.settings.install_dir
        )
        self.confirm = confirm or (lambda _question: False)

    # ------------------------------------------------------------------
    def create(
        self,
        name: str,
        namespace: str,
        literals: Mapping[str, str],
        *,
        output_dir: Path = Path("."),
        cert: Path | None = None,
        output_format: str = "yaml",
        apply: bool | None = None,
    ) -> SealedSecretResult:
        """Create ``<name>-sealed.<ext>`` from the literals and optionally apply it.

        ``apply=None`` asks the confirm callback. The plaintext manifest is
        removed even when sealing fails.
        """

        if not literals:
            raise SealingError("At least one key=value pair is required")
        for key in literals:
            _validate_key(key)
        self._require(self.kubectl, self.kubeseal)

        log.info("sealed_secret_create_started", secret=name, namespace=namespace)
        self.kubectl.ensure_namespace(namespace)

        output_dir.mkdir(parents=True, exist_ok=True)
        extension = "json" if output_format == "json" else "yaml"
        plaintext_path = output_dir / f"{name}-secret.yaml"
        sealed_path = output_dir / f"{name}-sealed.{extension}"

        manifest = self.kubectl.secret_manifest(name, namespace, literals)
        plaintext_path.write_text(manifest, encoding="utf-8")
        try:
            plaintext_path.chmod(0o600)
            self.kubeseal.seal(plaintext_path, sealed_path, cert=cert, output_format=output_format)
        finally:
            plaintext_path.unlink(missing_ok=True)

        log.info("sealed_secret_created", secret=name, path=str(sealed_path))

        should_apply = apply
        if should_apply is None:
            should_apply = self.confirm(
                "Do you want to apply this sealed secret to the cluster now?"
            )

        if should_apply:
            self.kubectl.apply(sealed_path)
            log.info("sealed_secret_applied", secret=name, namespace=namespace)

        return SealedSecretResult(
            name=name, namespace=namespace, path=sealed_path, applied=bool(should_apply)
        )

    def setup_controller(
        self,
        *,
        version: str | None = None,
        timeout: int | None = None,
        cert_path: Path | None = None,
        install_kubeseal: bool = True,
    ) -> Path:
        """Install the controller, wait for it and save its public certificate."""

        self._require(self.kubectl)

        version = version or self.settings.version
        version = version[1:] if version.startswith("v") else version

        if not self.kubeseal.available():
            if not install_kubeseal:
                raise SealingError(f"{self.kubeseal.executable} is not installed")
            self.installer.ensure("kubeseal", executable=self.kubeseal.executable, version=version)

        manifest_url = self.settings.model_copy(update={"version": version}).controller_manifest_url
        log.info("sealed_secrets_controller_install", url=manifest_url)
        self.kubectl.apply(manifest_url)

        self.kubectl.wait_for_deployment(
            self.settings.controller_name,
            self.settings.controller_namespace,
            timeout=timeout or self.settings.wait_timeout,
        )

        destination = cert_path or self.settings.cert_path
        destination.parent.mkdir(parents=True, exist_ok=True)
        destination.write_text(self.kubeseal.fetch_cert(), encoding="utf-8")
        log.info("sealed_secrets_cert_saved", path=str(destination))
        return destination

    # ------------------------------------------------------------------
    def _require(self, *adapters: KubectlAdapter | KubesealAdapter) -> None:
        for adapter in adapters:
            if not adapter.available():
                raise SealingError(f"{adapter.executable} is not installed")


__all__ = [
    "SealedSecretResult",
    "SealedSecretService",
    "SealingError",
    "parse_literals",
]
