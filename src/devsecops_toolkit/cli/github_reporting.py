"""Publish scan reports to GitHub Actions job summaries and annotations.

Reads the JSON document written by ``devsecops scan --format json`` (or
``--output``), appends a Markdown digest to ``$GITHUB_STEP_SUMMARY`` and prints
one ``::error``/``::warning``/``::notice`` workflow command per finding.
"""

from __future__ import annotations

import argparse
import json
import os
from pathlib import Path
from typing import Any, Iterator, Mapping, NamedTuple, Sequence

from ..models import SEVERITY_RANK, repository_path

SEVERITIES = [
    severity.value
    for severity in sorted(SEVERITY_RANK, key=SEVERITY_RANK.get, reverse=True)
]
WORKFLOW_COMMANDS = {
    "critical": "error",
    "high": "error",
    "medium": "warning",
    "low": "notice",
    "info": "notice",
}
STATUS_LABELS = {
    "passed": "Passed",
    "warning": "Passed with warnings",
    "failed": "Failed",
    "skipped": "Skipped",
}
SUMMARY_FINDING_LIMIT = 10


class SourceLocation(NamedTuple):
    file: str | None
    line: int | None
    end_line: int | None
    column: int | None


def source_location(metadata: Mapping[str, Any]) -> SourceLocation:
    """Read the position keys adapters attach to finding metadata."""

    file_path = str(metadata.get("file") or "").strip()
    return SourceLocation(
        file=file_path or None,
        line=_as_int(metadata.get("line")),
        end_line=_as_int(metadata.get("end_line")),
        column=_as_int(metadata.get("column")),
    )


def _as_int(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().isdigit():
        return int(value)
    return None


def _cell(value: Any) -> str:
    return str(value).replace("|", "\\|").replace("\n", " ")


def _label(status: str) -> str:
    return STATUS_LABELS.get(status, status.title())


def _checks_table(checks: Sequence[Mapping[str, Any]]) -> list[str]:
    rows = [
        "## Checks",
        "",
        "| Check | Status | Findings | Details |",
        "| --- | --- | ---: | --- |",
    ]
    for check in checks:
        status = _label(str(check.get("status", "")).lower())
        rows.append(
            f"| {_cell(check.get('name', ''))} | {status} "
            f"| {int(check.get('finding_count', 0))} | {_cell(check.get('message', ''))} |"
        )
    return rows


def _severity_table(counts: Mapping[str, Any]) -> list[str]:
    normalized = {str(key).lower(): int(value) for key, value in counts.items()}
    rows = ["| Severity | Findings |", "| --- | ---: |"]
    rows.extend(f"| {name.title()} | {normalized.get(name, 0)} |" for name in SEVERITIES)
    return rows


def _finding_line(finding: Mapping[str, Any]) -> str:
    severity = str(finding.get("severity") or "info").lower()
    parts = [f"- **{severity.title()}**"]
    if finding.get("tool"):
        parts.append(f"[{finding['tool']}]")
    if finding.get("rule_id"):
        parts.append(f"`{finding['rule_id']}`")
    message = str(finding.get("message") or "").strip()
    if message:
        parts.append(f"- {message}")

    where = source_location(finding.get("metadata") or {})
    if where.file:
        target = where.file if where.line is None else f"{where.file}:{where.line}"
        parts.append(f"_(`{target}`)_")
    elif finding.get("resource"):
        parts.append(f"_(Resource: `{finding['resource']}`)_")
    return " ".join(parts)


def format_summary(report: Mapping[str, Any]) -> str:
    """Render a Markdown job summary for a scan or audit report."""

    summary = report.get("summary") or {}
    findings = report.get("findings") or []
    highest = summary.get("highest_severity")

    sections: list[list[str]] = [
        [
            "# DevSecOps Security Report",
            "",
            f"**Status:** {_label(str(summary.get('status') or 'passed').lower())}",
            f"**Total findings:** {int(summary.get('total_findings', len(findings)))}",
            f"**Highest severity:** {str(highest).title() if highest else 'None'}",
        ]
    ]
    if summary.get("checks"):
        sections.append(_checks_table(summary["checks"]))
    sections.append(_severity_table(summary.get("counts") or {}))

    metadata = report.get("metadata") or {}
    if metadata:
        listed = [f"- **{key}:** {metadata[key]}" for key in sorted(metadata)]
        sections.append(["## Metadata", ""] + listed)

    if findings:
        listed = ["## Findings", ""]
        listed.extend(_finding_line(item) for item in findings[:SUMMARY_FINDING_LIMIT])
        hidden = len(findings) - SUMMARY_FINDING_LIMIT
        if hidden > 0:
            listed.append(f"- ...and {hidden} more findings.")
        sections.append(listed)

    return "\n\n".join("\n".join(section) for section in sections) + "\n"


def _escape_data(value: str) -> str:
    return value.replace("%", "%25").replace("\r", "").replace("\n", "%0A")


def _escape_property(value: str) -> str:
    return _escape_data(value).replace(":", "%3A").replace(",", "%2C")


def iter_annotations(report: Mapping[str, Any]) -> Iterator[str]:
    """Yield one workflow command per finding, anchored to a file when known."""

    working_dir = (report.get("metadata") or {}).get("working_dir")
    for finding in report.get("findings") or []:
        severity = str(finding.get("severity") or "info").lower()
        tool = str(finding.get("tool") or "").strip()
        rule_id = str(finding.get("rule_id") or "").strip()
        message = str(finding.get("message") or "").strip()
        resource = str(finding.get("resource") or "").strip()

        text = "; ".join(
            part for part in (message, f"Resource: {resource}" if resource else "") if part
        )
        text = text or "Security finding reported without message."
        where = source_location(finding.get("metadata") or {})

        properties: dict[str, Any] = {}
        if where.file:
            path = repository_path(where.file, Path(working_dir)) if working_dir else where.file
            properties["file"] = _escape_property(path)
        if where.line is not None:
            properties["line"] = where.line
        if where.end_line is not None and where.end_line != where.line:
            properties["endLine"] = where.end_line
        if where.column is not None:
            properties["col"] = where.column
        title = " - ".join(part for part in (severity.title(), tool, rule_id) if part)
        properties["title"] = _escape_property(title)

        rendered = ",".join(f"{key}={value}" for key, value in properties.items())
        command = WORKFLOW_COMMANDS.get(severity, "notice")
        yield f"::{command} {rendered}::{_escape_data(text)}"


def read_report(path: Path) -> Mapping[str, Any]:
    text = path.read_text(encoding="utf-8-sig")
    if not text.strip():
        return {}
    try:
        document = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ValueError(f"Failed to parse report JSON from '{path}': {exc.msg}.") from exc
    if not isinstance(document, dict):
        raise ValueError(f"Report in '{path}' must be a JSON object.")
    return document


def append_summary(report: Mapping[str, Any], path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("a", encoding="utf-8") as stream:
        stream.write(format_summary(report))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="devsecops-github-report",
        description="Publish a scan report as GitHub job summary and annotations.",
    )
    parser.add_argument(
        "report", type=Path, help="JSON report written by 'devsecops scan --output'."
    )
    parser.add_argument(
        "--summary-path",
        type=Path,
        help="Job summary file to append to; defaults to $GITHUB_STEP_SUMMARY.",
    )
    parser.add_argument(
        "--fail-on-status",
        action="store_true",
        help="Exit with status 1 when the report status is failed.",
    )
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        report = read_report(args.report)
    except (OSError, ValueError) as exc:
        print(f"Error: {exc}")
        return 2

    summary_path = args.summary_path
    if summary_path is None and os.environ.get("GITHUB_STEP_SUMMARY"):
        summary_path = Path(os.environ["GITHUB_STEP_SUMMARY"])
    if summary_path is not None:
        append_summary(report, summary_path)

    for command in iter_annotations(report):
        print(command)

    status = str((report.get("summary") or {}).get("status", "")).lower()
    return 1 if args.fail_on_status and status == "failed" else 0


def run() -> None:  # pragma: no cover - console entry point
    raise SystemExit(main())


if __name__ == "__main__":  # pragma: no cover
    run()
