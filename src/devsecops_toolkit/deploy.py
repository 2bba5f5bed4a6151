"""Roll an application image out to the cluster."""

from __future__ import annotations

from .adapters import KubectlAdapter
from .config import DeploySettings
from .observability import get_logger

log = get_logger(__name__)


class DeploymentService:
    def __init__(
        self,
        settings: DeploySettings | None = None,
        *,
        kubectl: KubectlAdapter | None = None,
    ) -> None:
        self.settings = settings or DeploySettings()
        self.kubectl = kubectl or KubectlAdapter()

    def rollout(
        self,
        image: str,
        *,
        deployment: str | None = None,
        namespace: str | None = None,
        container: str | None = None,
        port: int | None = None,
        target_port: int | None = None,
        service_type: str | None = None,
        timeout: int | None = None,
    ) -> str:
        """Update (or create) the deployment, expose it and wait for the rollout.

        Arguments left as ``None`` fall back to :class:`DeploySettings`.
        Returns the ``kubectl get service`` output for the exposed deployment.
        """

        settings = self.settings
        deployment = deployment or settings.deployment
        namespace = namespace or settings.namespace
        container = container or settings.container

        if self.kubectl.set_image(deployment, container, image, namespace):
            log.info("deployment_image_updated", deployment=deployment, image=image)
        else:
            log.info("deployment_created", deployment=deployment, image=image)
            self.kubectl.create_deployment(deployment, image, namespace)

        if not self.kubectl.expose(
            deployment,
            namespace,
            port=settings.port if port is None else port,
            target_port=settings.target_port if target_port is None else target_port,
            service_type=service_type or settings.service_type,
        ):
            log.info("deployment_already_exposed", deployment=deployment)

        self.kubectl.rollout_status(
            deployment, namespace, timeout=settings.timeout if timeout is None else timeout
        )
        return self.kubectl.get_service(deployment, namespace)


__all__ = ["DeploymentService"]
