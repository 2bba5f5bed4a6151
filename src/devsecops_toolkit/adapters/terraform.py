"""Terraform CLI adapter."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, List, Mapping, Tuple

from ..models import Finding, FindingSeverity, parse_severity
from .runner import ToolAdapter, ToolExecutionError


class TerraformAdapter(ToolAdapter):
    """Wrap ``terraform`` subcommands used by the scan and bootstrap flows."""

    tool_name = "terraform"

    def fmt_check(self, working_dir: Path, *, recursive: bool = True) -> Tuple[bool, str]:
        """Return whether files are formatted, plus the diff when they are not."""

        args = ["fmt", "-check", "-diff"]
        if recursive:
            args.append("-recursive")
        completed = self._run(*args, cwd=working_dir, check=False)
        return completed.returncode == 0, completed.stdout or ""

    def init(
        self,
        working_dir: Path,
        *,
        backend: bool = True,
        backend_config: Mapping[str, str] | None = None,
    ) -> None:
        args = ["init", "-input=false"]
        if not backend:
            args.append("-backend=false")
        for key, value in (backend_config or {}).items():
            args.append(f"-backend-config={key}={value}")
        self._run(*args, cwd=working_dir)

    def validate(self, working_dir: Path) -> Tuple[bool, List[Finding]]:
        """Run ``terraform validate -json`` and convert diagnostics to findings."""

        completed = self._run("validate", "-json", cwd=working_dir, check=False)
        try:
            data = json.loads(completed.stdout or "")
        except json.JSONDecodeError as exc:
            raise ToolExecutionError(
                "terraform validate did not return JSON output",
                command=[self.executable, "validate", "-json"],
                returncode=completed.returncode,
                stderr=completed.stderr or "",
            ) from exc

        findings = [
            self._diagnostic_to_finding(diagnostic)
            for diagnostic in data.get("diagnostics", []) or []
        ]
        return bool(data.get("valid")), findings

    def plan(self, working_dir: Path, *, var_file: Path | None = None, out: str = "tfplan") -> None:
        args = ["plan", "-input=false", f"-out={out}"]
        if var_file is not None:
            args.append(f"-var-file={var_file}")
        self._run(*args, cwd=working_dir)

    def apply(self, working_dir: Path, plan_file: str, *, auto_approve: bool = False) -> None:
        args = ["apply", "-input=false"]
        if auto_approve:
            args.append("-auto-approve")
        args.append(plan_file)
        self._run(*args, cwd=working_dir)

    # ------------------------------------------------------------------
    def _diagnostic_to_finding(self, diagnostic: Mapping[str, Any]) -> Finding:
        summary = str(diagnostic.get("summary") or "").strip()
        detail = str(diagnostic.get("detail") or "").strip()
        message = f"{summary}: {detail}" if summary and detail else summary or detail

        metadata: dict[str, Any] = {}
        diag_range = diagnostic.get("range")
        if isinstance(diag_range, Mapping):
            start = diag_range.get("start") or {}
            end = diag_range.get("end") or {}
            metadata = {
                "file": diag_range.get("filename"),
                "line": start.get("line"),
                "end_line": end.get("line"),
                "column": start.get("column"),
            }
            metadata = {key: value for key, value in metadata.items() if value is not None}

        return Finding(
            rule_id="terraform-validate",
            message=message or "Terraform validation diagnostic",
            severity=parse_severity(diagnostic.get("severity"), FindingSeverity.HIGH),
            tool=self.tool_name,
            metadata=metadata,
        )
