"""Checkov static analysis adapter."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Iterable, List, Mapping

from ..models import Finding, FindingSeverity, parse_severity
from .runner import ToolAdapter, ToolExecutionError


class CheckovAdapter(ToolAdapter):
    """Run Checkov and convert its failed checks into findings."""

    tool_name = "checkov"

    def scan(self, working_dir: Path, *, framework: str = "terraform") -> List[Finding]:
        completed = self._run(
            "-d",
            str(working_dir),
            "--framework",
            framework,
            "-o",
            "json",
            "--quiet",
            "--soft-fail",
            "--compact",
        )
        return self.parse_results(completed.stdout)

    def parse_results(self, stdout: str | None) -> List[Finding]:
        try:
            data = json.loads(stdout or "{}")
        except json.JSONDecodeError as exc:
            raise ToolExecutionError("Failed to parse Checkov output") from exc

        # Checkov emits a list when more than one framework produced results.
        reports: Iterable[Any] = data if isinstance(data, list) else [data]

        findings: List[Finding] = []
        for report in reports:
            if not isinstance(report, Mapping):
                continue
            results = report.get("results") or {}
            for check in results.get("failed_checks", []) or []:
                findings.append(self._check_to_finding(check))
        return findings

    def _check_to_finding(self, check: Mapping[str, Any]) -> Finding:
        line_range = check.get("file_line_range") or []
        file_path = str(check.get("file_path") or "").lstrip("/") or None

        metadata = {
            "file": file_path,
            "line": line_range[0] if len(line_range) > 0 else None,
            "end_line": line_range[1] if len(line_range) > 1 else None,
            "guideline": check.get("guideline"),
        }
        metadata = {key: value for key, value in metadata.items() if value}

        rule_id = str(check.get("check_id") or "CKV_UNKNOWN")
        return Finding(
            rule_id=rule_id,
            message=str(check.get("check_name") or rule_id),
            severity=parse_severity(check.get("severity"), FindingSeverity.MEDIUM),
            tool=self.tool_name,
            resource=check.get("resource") or None,
            metadata=metadata,
        )
