"""Adapter layer wrapping the external tools the toolkit drives."""

from .aws import AwsCliAdapter
from .checkov import CheckovAdapter
from .docker import DockerAdapter
from .git import GitAdapter
from .hadolint import HadolintAdapter
from .kubectl import KubectlAdapter
from .kubeseal import KubesealAdapter
from .runner import CommandRunner, ToolAdapter, ToolExecutionError, ToolNotFoundError
from .terraform import TerraformAdapter
from .tfsec import TfsecAdapter
from .trivy import TrivyAdapter

__all__ = [
    "AwsCliAdapter",
    "CheckovAdapter",
    "CommandRunner",
    "DockerAdapter",
    "GitAdapter",
    "HadolintAdapter",
    "KubectlAdapter",
    "KubesealAdapter",
    "TerraformAdapter",
    "TfsecAdapter",
    "ToolAdapter",
    "ToolExecutionError",
    "ToolNotFoundError",
    "TrivyAdapter",
]
