"""tfsec static analysis adapter."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Iterable, List, Mapping

from ..models import Finding, parse_severity
from .runner import ToolAdapter, ToolExecutionError


class TfsecAdapter(ToolAdapter):
    """Run tfsec against a Terraform directory and parse its JSON results."""

    tool_name = "tfsec"

    def scan(self, working_dir: Path) -> List[Finding]:
        completed = self._run(
            str(working_dir),
            "--format",
            "json",
            "--no-colour",
            "--soft-fail",
        )
        return self.parse_results(completed.stdout)

    def parse_results(self, stdout: str | None) -> List[Finding]:
        try:
            data = json.loads(stdout or "{}")
        except json.JSONDecodeError as exc:
            raise ToolExecutionError("Failed to parse tfsec output") from exc

        results: Iterable[Mapping[str, Any]] = []
        if isinstance(data, Mapping):
            results = data.get("results") or []

        findings: List[Finding] = []
        for entry in results:
            rule_id = str(entry.get("long_id") or entry.get("rule_id") or "").strip()
            if not rule_id:
                continue

            message = str(entry.get("description") or entry.get("rule_description") or "").strip()
            location = entry.get("location") or {}
            metadata = {
                "file": location.get("filename"),
                "line": location.get("start_line"),
                "end_line": location.get("end_line"),
                "resolution": entry.get("resolution"),
                "links": entry.get("links"),
                "impact": entry.get("impact"),
            }
            metadata = {key: value for key, value in metadata.items() if value}

            findings.append(
                Finding(
                    rule_id=rule_id,
                    message=message or rule_id,
                    severity=parse_severity(entry.get("severity")),
                    tool=self.tool_name,
                    resource=entry.get("resource") or None,
                    metadata=metadata,
                )
            )

        return findings
