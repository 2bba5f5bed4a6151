"""hadolint Dockerfile linting adapter."""

from __future__ import annotations

import json
from pathlib import Path
from typing import List

from ..models import Finding, parse_severity
from .runner import ToolAdapter, ToolExecutionError


class HadolintAdapter(ToolAdapter):
    tool_name = "hadolint"

    def lint(self, dockerfile: Path) -> List[Finding]:
        # hadolint exits with 1 when it reports issues
        completed = self._run("-f", "json", str(dockerfile), check=False)
        failed = completed.returncode not in (0, 1)
        if failed or (completed.returncode == 1 and not completed.stdout):
            raise ToolExecutionError(
                f"hadolint failed with exit code {completed.returncode}",
                command=[self.executable, "-f", "json", str(dockerfile)],
                returncode=completed.returncode,
                stderr=completed.stderr or "",
            )

        try:
            issues = json.loads(completed.stdout or "[]")
        except json.JSONDecodeError as exc:
            raise ToolExecutionError("Failed to parse hadolint output") from exc

        findings: List[Finding] = []
        for issue in issues if isinstance(issues, list) else []:
            code = str(issue.get("code") or "hadolint")
            metadata = {
                "file": issue.get("file") or str(dockerfile),
                "line": issue.get("line"),
                "column": issue.get("column"),
            }
            findings.append(
                Finding(
                    rule_id=code,
                    message=str(issue.get("message") or code),
                    severity=parse_severity(issue.get("level")),
                    tool=self.tool_name,
                    metadata={key: value for key, value in metadata.items() if value is not None},
                )
            )
        return findings
