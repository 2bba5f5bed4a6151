"""kubectl adapter covering namespaces, secrets, rollouts and services."""

from __future__ import annotations

from pathlib import Path
from typing import Mapping

from .runner import ToolAdapter, ToolExecutionError


class KubectlAdapter(ToolAdapter):
    tool_name = "kubectl"

    def namespace_manifest(self, namespace: str) -> str:
        completed = self._run(
            "create", "namespace", namespace, "--dry-run=client", "-o", "yaml"
        )
        return completed.stdout

    def ensure_namespace(self, namespace: str) -> None:
        """Create ``namespace`` unless it already exists (client dry-run piped to apply)."""

        self.apply_manifest(self.namespace_manifest(namespace))

    def secret_manifest(self, name: str, namespace: str, literals: Mapping[str, str]) -> str:
        args = [
            "create",
            "secret",
            "generic",
            name,
            f"--namespace={namespace}",
            "--dry-run=client",
            "-o",
            "yaml",
        ]
        for key, value in literals.items():
            args.append(f"--from-literal={key}={value}")
        return self._run(*args).stdout

    def apply(self, source: Path | str) -> str:
        """Apply a manifest file or URL."""

        return self._run("apply", "-f", str(source)).stdout

    def apply_manifest(self, manifest: str) -> str:
        return self._run("apply", "-f", "-", input=manifest).stdout

    def wait_for_deployment(self, name: str, namespace: str, *, timeout: int = 300) -> None:
        self._run(
            "wait",
            "--for=condition=Available",
            f"deployment/{name}",
            "-n",
            namespace,
            f"--timeout={timeout}s",
        )

    def set_image(self, deployment: str, container: str, image: str, namespace: str) -> bool:
        """Update a deployment's container image; ``False`` when the deployment is missing."""

        completed = self._run(
            "set",
            "image",
            f"deployment/{deployment}",
            f"{container}={image}",
            "-n",
            namespace,
            check=False,
        )
        return completed.returncode == 0

    def create_deployment(self, name: str, image: str, namespace: str) -> None:
        self._run("create", "deployment", name, f"--image={image}", "-n", namespace)

    def expose(
        self,
        deployment: str,
        namespace: str,
        *,
        port: int = 80,
        target_port: int = 80,
        service_type: str = "LoadBalancer",
    ) -> bool:
        """Create the service; ``False`` when it already exists, other failures raise."""

        completed = self._run(
            "expose",
            "deployment",
            deployment,
            f"--port={port}",
            f"--target-port={target_port}",
            f"--type={service_type}",
            "-n",
            namespace,
            check=False,
        )
        if completed.returncode == 0:
            return True
        stderr = completed.stderr or ""
        if "AlreadyExists" in stderr or "already exists" in stderr:
            return False
        raise ToolExecutionError(
            f"kubectl expose failed with exit code {completed.returncode}: {stderr.strip()}",
            command=[self.executable, "expose", "deployment", deployment],
            returncode=completed.returncode,
            stderr=stderr,
        )

    def rollout_status(self, deployment: str, namespace: str, *, timeout: int = 300) -> None:
        self._run(
            "rollout",
            "status",
            f"deployment/{deployment}",
            "-n",
            namespace,
            f"--timeout={timeout}s",
        )

    def get_service(self, name: str, namespace: str) -> str:
        return self._run("get", "service", name, "-n", namespace).stdout
