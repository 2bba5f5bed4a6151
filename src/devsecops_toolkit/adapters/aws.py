"""AWS CLI adapter for the bootstrap flow."""

from __future__ import annotations

import json
from typing import Any, Dict

from .runner import ToolAdapter, ToolExecutionError


class AwsCliAdapter(ToolAdapter):
    tool_name = "aws"

    def caller_identity(self) -> Dict[str, Any]:
        """Return the STS caller identity; raises when credentials are not configured."""

        completed = self._run("sts", "get-caller-identity", "--output", "json")
        try:
            return json.loads(completed.stdout or "{}")
        except json.JSONDecodeError as exc:
            raise ToolExecutionError("Failed to parse sts get-caller-identity output") from exc

    def bucket_exists(self, bucket: str) -> bool:
        completed = self._run("s3api", "head-bucket", "--bucket", bucket, check=False)
        return completed.returncode == 0

    def create_bucket(self, bucket: str, region: str) -> None:
        args = ["s3api", "create-bucket", "--bucket", bucket, "--region", region]
        # us-east-1 rejects an explicit LocationConstraint
        if region != "us-east-1":
            args.extend(["--create-bucket-configuration", f"LocationConstraint={region}"])
        self._run(*args)

    def enable_versioning(self, bucket: str) -> None:
        self._run(
            "s3api",
            "put-bucket-versioning",
            "--bucket",
            bucket,
            "--versioning-configuration",
            "Status=Enabled",
        )

    def update_kubeconfig(self, cluster: str, region: str) -> None:
        self._run("eks", "update-kubeconfig", "--region", region, "--name", cluster)
