"""Tests for GitHub Actions reporting helpers."""

from __future__ import annotations

import json

from devsecops_toolkit.cli import github_reporting
from devsecops_toolkit.cli.github_reporting import format_summary, iter_annotations


def _build_report(findings: list[dict[str, object]] | None = None) -> dict[str, object]:
    if findings is None:
        findings = [
            {
                "rule_id": "aws-s3-block-public-acls",
                "message": "No public access block so not blocking public acls",
                "severity": "high",
                "tool": "tfsec",
                "resource": "aws_s3_bucket.state",
                "metadata": {"file": "s3.tf", "line": 1, "end_line": 4},
            },
            {
                "rule_id": "CVE-2023-5363",
                "message": "openssl: Incorrect cipher key and IV length processing",
                "severity": "medium",
                "tool": "trivy",
                "resource": "libcrypto3@3.1.3-r0",
                "metadata": {"image": "local-security-scan:latest"},
            },
        ]
    return {
        "metadata": {"working_dir": "/repo", "fail_on": "high"},
        "summary": {
            "status": "failed",
            "total_findings": len(findings),
            "highest_severity": "high",
            "counts": {"critical": 0, "high": 1, "medium": 1, "low": 0, "info": 0},
            "checks": [
                {
                    "name": "tfsec",
                    "status": "failed",
                    "message": "1 finding(s) at or above high",
                    "finding_count": 1,
                },
                {
                    "name": "checkov",
                    "status": "skipped",
                    "message": "checkov not found, skipping",
                    "finding_count": 0,
                },
            ],
        },
        "findings": findings,
    }


def test_format_summary_includes_key_sections() -> None:
    summary = format_summary(_build_report())

    assert "# DevSecOps Security Report" in summary
    assert "**Status:** Failed" in summary
    assert "**Total findings:** 2" in summary
    assert "| tfsec | Failed | 1 | 1 finding(s) at or above high |" in summary
    assert "| checkov | Skipped | 0 | checkov not found, skipping |" in summary
    assert "| High | 1 |" in summary
    assert "- **fail_on:** high" in summary
    assert "[tfsec] `aws-s3-block-public-acls`" in summary
    assert "_(`s3.tf:1`)_" in summary
    assert "_(Resource: `libcrypto3@3.1.3-r0`)_" in summary


def test_format_summary_truncates_long_finding_lists() -> None:
    findings = [
        {"rule_id": f"SECRET-{index}", "message": "m", "severity": "high", "tool": "secret-scan"}
        for index in range(12)
    ]

    summary = format_summary(_build_report(findings))

    assert "`SECRET-9`" in summary
    assert "`SECRET-10`" not in summary
    assert "- ...and 2 more findings." in summary


def test_iter_annotations_maps_severity_levels() -> None:
    annotations = list(iter_annotations(_build_report()))

    assert annotations[0] == (
        "::error file=s3.tf,line=1,endLine=4,"
        "title=High - tfsec - aws-s3-block-public-acls"
        "::No public access block so not blocking public acls; Resource: aws_s3_bucket.state"
    )
    assert annotations[1].startswith("::warning title=Medium - trivy - CVE-2023-5363::openssl: ")
    assert "Resource: libcrypto3@3.1.3-r0" in annotations[1]


def test_main_writes_summary_and_prints_annotations(tmp_path, monkeypatch, capsys) -> None:
    report_path = tmp_path / "security-report.json"
    report_path.write_text(json.dumps(_build_report()), encoding="utf-8")
    summary_path = tmp_path / "summary.md"
    monkeypatch.setenv("GITHUB_STEP_SUMMARY", str(summary_path))

    exit_code = github_reporting.main([str(report_path)])

    assert exit_code == 0
    assert "# DevSecOps Security Report" in summary_path.read_text(encoding="utf-8")
    assert capsys.readouterr().out.count("::") >= 4


def test_main_fail_on_status(tmp_path, capsys) -> None:
    report_path = tmp_path / "security-report.json"
    report_path.write_text(json.dumps(_build_report()), encoding="utf-8")

    exit_code = github_reporting.main(
        [
            str(report_path),
            "--summary-path",
            str(tmp_path / "out" / "summary.md"),
            "--fail-on-status",
        ]
    )

    assert exit_code == 1
    assert (tmp_path / "out" / "summary.md").exists()


def test_main_rejects_invalid_json(tmp_path, capsys) -> None:
    report_path = tmp_path / "security-report.json"
    report_path.write_text("{not json", encoding="utf-8")

    assert github_reporting.main([str(report_path)]) == 2
    assert capsys.readouterr().out.startswith("Error: Failed to parse report JSON")


def test_source_location_reads_adapter_metadata() -> None:
    location = github_reporting.source_location(
        {"file": " Dockerfile ", "line": "7", "end_line": True, "column": 3}
    )

    assert location == github_reporting.SourceLocation("Dockerfile", 7, None, 3)
    assert github_reporting.source_location({}) == (None, None, None, None)


def test_annotation_paths_are_repository_relative_and_escaped() -> None:
    report = _build_report(
        [
            {
                "rule_id": "DL3006",
                "message": "Always tag the version of an image explicitly",
                "severity": "low",
                "tool": "hadolint",
                "metadata": {"file": "/repo/app/Dockerfile", "line": 1},
            },
            {
                "rule_id": "SECRET-PASSWORD",
                "message": "Hard-coded password assignment detected",
                "severity": "high",
                "tool": "secret-scan",
                "metadata": {"file": "config/a,b:c.env", "line": 2},
            },
        ]
    )

    first, second = iter_annotations(report)

    assert first.startswith("::notice file=app/Dockerfile,line=1,title=")
    assert second.startswith("::error file=config/a%2Cb%3Ac.env,line=2,title=")
