"""Trivy container image vulnerability scanning adapter."""

from __future__ import annotations

import json
from typing import Any, List, Mapping, Sequence

from ..models import Finding, parse_severity
from .runner import ToolAdapter, ToolExecutionError

DEFAULT_SEVERITIES = ("HIGH", "CRITICAL")


class TrivyAdapter(ToolAdapter):
    """Scan container images with Trivy."""

    tool_name = "trivy"

    def scan_image(
        self, image: str, *, severities: Sequence[str] = DEFAULT_SEVERITIES
    ) -> List[Finding]:
        args = ["image", "--quiet", "--format", "json"]
        if severities:
            args.extend(["--severity", ",".join(severity.upper() for severity in severities)])
        args.append(image)

        completed = self._run(*args)
        return self.parse_results(completed.stdout, image=image)

    def parse_results(self, stdout: str | None, *, image: str | None = None) -> List[Finding]:
        try:
            data = json.loads(stdout or "{}")
        except json.JSONDecodeError as exc:
            raise ToolExecutionError("Failed to parse Trivy output") from exc

        findings: List[Finding] = []
        if not isinstance(data, Mapping):
            return findings

        for result in data.get("Results", []) or []:
            target = result.get("Target")
            for vuln in result.get("Vulnerabilities", []) or []:
                findings.append(self._vulnerability_to_finding(vuln, target=target, image=image))
        return findings

    def _vulnerability_to_finding(
        self,
        vuln: Mapping[str, Any],
        *,
        target: str | None,
        image: str | None,
    ) -> Finding:
        vuln_id = str(vuln.get("VulnerabilityID") or "UNKNOWN")
        package = str(vuln.get("PkgName") or "")
        installed = str(vuln.get("InstalledVersion") or "")
        resource = f"{package}@{installed}" if package and installed else package or None

        title = str(vuln.get("Title") or vuln.get("Description") or vuln_id).strip()
        metadata = {
            "image": image,
            "target": target,
            "fixed_version": vuln.get("FixedVersion"),
            "link": vuln.get("PrimaryURL"),
        }
        metadata = {key: value for key, value in metadata.items() if value}

        return Finding(
            rule_id=vuln_id,
            message=title,
            severity=parse_severity(vuln.get("Severity")),
            tool=self.tool_name,
            resource=resource,
            metadata=metadata,
        )
