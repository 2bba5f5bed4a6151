"""First-time setup of the Terraform state, infrastructure and cluster access."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, List, Mapping

from .adapters import (
    AwsCliAdapter,
    CommandRunner,
    KubectlAdapter,
    TerraformAdapter,
    ToolExecutionError,
)
from .config import BootstrapSettings, ToolPaths
from .observability import get_logger
from .sealing import SealedSecretService

log = get_logger(__name__)

INSTALL_GUIDES: Mapping[str, str] = {
    "aws": "https://docs.aws.amazon.com/cli/latest/userguide/getting-started-install.html",
    "terraform": "https://learn.hashicorp.com/tutorials/terraform/install-cli",
    "kubectl": "https://kubernetes.io/docs/tasks/tools/",
    "docker": "https://docs.docker.com/get-docker/",
}

REQUIRED_GITHUB_SECRETS: Mapping[str, str] = {
    "AWS_ACCESS_KEY_ID": "Your AWS access key",
    "AWS_SECRET_ACCESS_KEY": "Your AWS secret key",
    "TF_STATE_BUCKET": "Terraform state bucket name",
    "AWS_ACCOUNT_ID": "Your AWS account ID",
    "DB_USERNAME": "Database username for sealed secrets",
    "DB_PASSWORD": "Database password for sealed secrets",
}


class BootstrapError(RuntimeError):
    """Raised when the bootstrap flow cannot continue."""


def read_tfvars_value(path: Path, key: str) -> str:
    """Return the quoted string value assigned to ``key`` in a ``.tfvars`` file."""

    try:
        content = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise BootstrapError(f"Failed to read {path}") from exc

    pattern = re.compile(rf'^\s*{re.escape(key)}\s*=\s*"([^"]*)"', re.MULTILINE)
    match = pattern.search(content)
    if match is None:
        raise BootstrapError(f"{key} not found in {path}")
    return match.group(1)


@dataclass(slots=True)
class BootstrapResult:
    bucket: str
    region: str
    bucket_created: bool = False
    applied: bool = False
    cluster: str | None = None
    sealed_secrets_cert: Path | None = None
    steps: List[str] = field(default_factory=list)


class BootstrapService:
    """Walk an operator through provisioning the stack end to end."""

    def __init__(
        self,
        settings: BootstrapSettings | None = None,
        *,
        tools: ToolPaths | None = None,
        runner: CommandRunner | None = None,
        aws: AwsCliAdapter | None = None,
        terraform: TerraformAdapter | None = None,
        kubectl: KubectlAdapter | None = None,
        sealed_secrets: SealedSecretService | None = None,
        confirm: Callable[[str], bool] | None = None,
        echo: Callable[[str], None] = print,
    ) -> None:
        self.settings = settings or BootstrapSettings()
        self.tools = tools or ToolPaths()
        self.runner = runner or CommandRunner()
        self.aws = aws or AwsCliAdapter(executable=self.tools.aws, runner=self.runner)
        self.terraform = terraform or TerraformAdapter(
            executable=self.tools.terraform, runner=self.runner
        )
        self.kubectl = kubectl or KubectlAdapter(executable=self.tools.kubectl, runner=self.runner)
        self.sealed_secrets = sealed_secrets
        self.confirm = confirm or (lambda _question: False)
        self.echo = echo

    # ------------------------------------------------------------------
    def run(self, root: Path, *, setup_sealed_secrets: bool = True) -> BootstrapResult:
        root = root.resolve()
        tfvars = self._resolve_tfvars(root)

        self.check_prerequisites()

        bucket = read_tfvars_value(tfvars, "bucket_name")
        region = read_tfvars_value(tfvars, "aws_region")
        result = BootstrapResult(bucket=bucket, region=region)

        self.verify_credentials()
        result.bucket_created = self.ensure_state_bucket(bucket, region)
        result.steps.append("state-bucket")

        self.prepare_terraform(root, tfvars, bucket=bucket, region=region)
        result.steps.append("terraform-plan")

        self.review_github_secrets(bucket)

        if self.confirm("Do you want to deploy the infrastructure now?"):
            self.terraform.apply(root, self.settings.plan_file)
            project = read_tfvars_value(tfvars, "project_name")
            result.cluster = f"{project}{self.settings.cluster_suffix}"
            self.aws.update_kubeconfig(result.cluster, region)
            result.applied = True
            result.steps.append("terraform-apply")
            self.echo(f"Kubeconfig updated for EKS cluster {result.cluster}")
        else:
            self.echo("Skipping infrastructure deployment")
            self.echo(f"To deploy later, run: terraform apply {self.settings.plan_file}")

        plan_exists = (root / self.settings.plan_file).exists()
        if setup_sealed_secrets and self.sealed_secrets is not None:
            if not plan_exists:
                self.echo("Infrastructure not deployed yet. Skipping Sealed Secrets setup.")
            elif self.confirm("Do you want to setup Sealed Secrets? (EKS cluster must be running)"):
                result.sealed_secrets_cert = self.sealed_secrets.setup_controller()
                result.steps.append("sealed-secrets")

        log.info("bootstrap_completed", steps=result.steps)
        return result

    # ------------------------------------------------------------------
    def check_prerequisites(self) -> None:
        executables = {
            "aws": self.aws.executable,
            "terraform": self.terraform.executable,
            "kubectl": self.kubectl.executable,
            "docker": self.tools.docker,
        }
        missing = [
            tool for tool, executable in executables.items() if not self.runner.which(executable)
        ]
        if missing:
            guides = "\n".join(f"- {tool}: {INSTALL_GUIDES[tool]}" for tool in missing)
            raise BootstrapError(
                f"Missing required tools: {' '.join(missing)}\n\nInstallation guides:\n{guides}"
            )

    def verify_credentials(self) -> Mapping[str, object]:
        try:
            identity = self.aws.caller_identity()
        except ToolExecutionError as exc:
            raise BootstrapError(
                "AWS credentials not configured. Please run 'aws configure' first."
            ) from exc
        log.info("aws_identity", account=identity.get("Account"), arn=identity.get("Arn"))
        return identity

    def ensure_state_bucket(self, bucket: str, region: str) -> bool:
        """Create the versioned state bucket when missing; returns ``True`` if created."""

        if self.aws.bucket_exists(bucket):
            self.echo(f"S3 bucket {bucket} already exists")
            return False

        self.echo(f"Creating S3 bucket: {bucket}")
        self.aws.create_bucket(bucket, region)
        self.aws.enable_versioning(bucket)
        self.echo("S3 bucket created with versioning enabled")
        return True

    def prepare_terraform(self, root: Path, tfvars: Path, *, bucket: str, region: str) -> None:
        self.terraform.init(
            root,
            backend_config={"bucket": bucket, "key": self.settings.state_key, "region": region},
        )
        valid, findings = self.terraform.validate(root)
        if not valid:
            details = "; ".join(finding.message for finding in findings)
            message = "Terraform validation failed"
            raise BootstrapError(f"{message}: {details}" if details else message)

        self.terraform.plan(root, var_file=tfvars, out=self.settings.plan_file)
        self.echo("Terraform plan created successfully")

    def review_github_secrets(self, bucket: str) -> bool:
        self.echo("Please ensure the following secrets are configured in your GitHub repository:")
        self.echo("Repository Settings > Secrets and variables > Actions")
        for name, description in REQUIRED_GITHUB_SECRETS.items():
            if name == "TF_STATE_BUCKET":
                description = bucket
            self.echo(f"  {name:<22} - {description}")

        confirmed = self.confirm("Have you configured all GitHub secrets?")
        if not confirmed:
            self.echo("Please configure GitHub secrets before proceeding with deployment")
        return confirmed

    def _resolve_tfvars(self, root: Path) -> Path:
        tfvars = self.settings.tfvars_file
        tfvars = tfvars if tfvars.is_absolute() else root / tfvars
        if not tfvars.is_file():
            raise BootstrapError(f"Terraform variables file not found: {tfvars}")
        return tfvars


__all__ = [
    "BootstrapError",
    "BootstrapResult",
    "BootstrapService",
    "INSTALL_GUIDES",
    "REQUIRED_GITHUB_SECRETS",
    "read_tfvars_value",
]
