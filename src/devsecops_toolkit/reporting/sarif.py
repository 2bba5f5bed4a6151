"""SARIF 2.1.0 export for uploading findings to GitHub code scanning."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List, Mapping

from .. import __version__
from ..models import Finding, FindingSeverity, ScanReport, repository_path

SARIF_VERSION = "2.1.0"
SARIF_SCHEMA = "https://json.schemastore.org/sarif-2.1.0.json"

SARIF_LEVELS = {
    FindingSeverity.CRITICAL: "error",
    FindingSeverity.HIGH: "error",
    FindingSeverity.MEDIUM: "warning",
    FindingSeverity.LOW: "note",
    FindingSeverity.INFO: "note",
}

TOOL_URIS: Mapping[str, str] = {
    "tfsec": "https://github.com/aquasecurity/tfsec",
    "checkov": "https://www.checkov.io",
    "trivy": "https://github.com/aquasecurity/trivy",
    "hadolint": "https://github.com/hadolint/hadolint",
    "terraform": "https://developer.hashicorp.com/terraform",
}


def build_sarif(report: ScanReport) -> Dict[str, Any]:
    """Return a SARIF log with one run per tool that produced findings.

    Artifact URIs are made relative to the report's ``working_dir`` so code
    scanning can attach results to repository files.
    """

    by_tool: Dict[str, List[Finding]] = {}
    for finding in report.findings:
        by_tool.setdefault(finding.tool, []).append(finding)

    working_dir = report.metadata.get("working_dir")
    root = Path(working_dir) if working_dir else None

    return {
        "$schema": SARIF_SCHEMA,
        "version": SARIF_VERSION,
        "runs": [_build_run(tool, findings, root) for tool, findings in by_tool.items()],
    }


def _build_run(tool: str, findings: List[Finding], root: Path | None) -> Dict[str, Any]:
    rules: Dict[str, Dict[str, Any]] = {}
    for finding in findings:
        if finding.rule_id in rules:
            continue
        rule: Dict[str, Any] = {
            "id": finding.rule_id,
            "shortDescription": {"text": finding.message},
            "defaultConfiguration": {"level": SARIF_LEVELS[finding.severity]},
            "properties": {"severity": finding.severity.value},
        }
        link = finding.metadata.get("link") or finding.metadata.get("guideline")
        if isinstance(link, str):
            rule["helpUri"] = link
        rules[finding.rule_id] = rule

    driver: Dict[str, Any] = {
        "name": tool,
        "rules": list(rules.values()),
    }
    if tool in TOOL_URIS:
        driver["informationUri"] = TOOL_URIS[tool]
    else:
        driver["version"] = __version__

    return {
        "tool": {"driver": driver},
        "results": [_build_result(finding, root) for finding in findings],
    }


def _build_result(finding: Finding, root: Path | None) -> Dict[str, Any]:
    message = finding.message
    if finding.resource:
        message = f"{message} ({finding.resource})"

    result: Dict[str, Any] = {
        "ruleId": finding.rule_id,
        "level": SARIF_LEVELS[finding.severity],
        "message": {"text": message},
    }

    if finding.file:
        region: Dict[str, int] = {}
        if finding.line is not None:
            region["startLine"] = finding.line
            end_line = finding.metadata.get("end_line")
            if isinstance(end_line, int) and end_line >= finding.line:
                region["endLine"] = end_line
        column = finding.metadata.get("column")
        if isinstance(column, int) and region:
            region["startColumn"] = column

        uri = repository_path(finding.file, root) if root is not None else finding.file
        physical: Dict[str, Any] = {"artifactLocation": {"uri": uri}}
        if region:
            physical["region"] = region
        result["locations"] = [{"physicalLocation": physical}]
    elif finding.metadata.get("commit"):
        commit = str(finding.metadata["commit"])
        result["locations"] = [{"logicalLocations": [{"name": commit, "kind": "commit"}]}]

    return result
