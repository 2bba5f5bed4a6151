import pytest

from devsecops_toolkit.models import (
    CheckResult,
    CheckStatus,
    Finding,
    FindingSeverity,
    ScanReport,
    meets_threshold,
    parse_severity,
)


def make_finding(severity: FindingSeverity, rule_id: str = "RULE") -> Finding:
    return Finding(
        rule_id=rule_id,
        message="message",
        severity=severity,
        tool="tfsec",
        metadata={"file": "main.tf", "line": 7},
    )


@pytest.mark.parametrize(
    "label, expected",
    [
        ("CRITICAL", FindingSeverity.CRITICAL),
        ("error", FindingSeverity.HIGH),
        ("warning", FindingSeverity.MEDIUM),
        (" Low ", FindingSeverity.LOW),
        ("UNKNOWN", FindingSeverity.INFO),
        ("style", FindingSeverity.INFO),
    ],
)
def test_parse_severity_labels(label, expected):
    assert parse_severity(label) is expected


def test_parse_severity_default_for_unrecognised_values():
    assert parse_severity(None, FindingSeverity.MEDIUM) is FindingSeverity.MEDIUM
    assert parse_severity("bogus") is FindingSeverity.INFO


def test_meets_threshold():
    assert meets_threshold(FindingSeverity.CRITICAL, FindingSeverity.HIGH)
    assert meets_threshold(FindingSeverity.HIGH, FindingSeverity.HIGH)
    assert not meets_threshold(FindingSeverity.MEDIUM, FindingSeverity.HIGH)


def test_report_status_precedence():
    passed = CheckResult("tfsec", CheckStatus.PASSED)
    warning = CheckResult("hadolint", CheckStatus.WARNING)
    failed = CheckResult("secrets", CheckStatus.FAILED)
    skipped = CheckResult("checkov", CheckStatus.SKIPPED)

    assert ScanReport([passed, skipped]).status is CheckStatus.PASSED
    assert ScanReport([passed, warning]).status is CheckStatus.WARNING
    assert ScanReport([warning, failed]).status is CheckStatus.FAILED


def test_report_aggregates_findings():
    report = ScanReport(
        [
            CheckResult(
                "tfsec",
                CheckStatus.FAILED,
                "1 finding(s) at or above high",
                [make_finding(FindingSeverity.HIGH, "A"), make_finding(FindingSeverity.LOW, "B")],
            ),
            CheckResult("secrets", CheckStatus.PASSED, "No obvious secrets found in code"),
        ],
        metadata={"working_dir": "/repo"},
    )

    assert [finding.rule_id for finding in report.findings] == ["A", "B"]
    assert report.highest_severity is FindingSeverity.HIGH
    assert report.has_findings_at_or_above(FindingSeverity.HIGH)
    assert not report.has_findings_at_or_above(FindingSeverity.CRITICAL)
    assert report.check("secrets").status is CheckStatus.PASSED
    assert report.check("missing") is None

    payload = report.to_dict()
    assert payload["metadata"] == {"working_dir": "/repo"}
    assert payload["summary"]["status"] == "failed"
    assert payload["summary"]["total_findings"] == 2
    assert payload["summary"]["highest_severity"] == "high"
    assert payload["summary"]["counts"] == {
        "info": 0,
        "low": 1,
        "medium": 0,
        "high": 1,
        "critical": 0,
    }
    assert payload["summary"]["checks"][0] == {
        "name": "tfsec",
        "status": "failed",
        "message": "1 finding(s) at or above high",
        "finding_count": 2,
    }
    assert payload["findings"][0] == {
        "rule_id": "A",
        "message": "message",
        "severity": "high",
        "tool": "tfsec",
        "resource": None,
        "metadata": {"file": "main.tf", "line": 7},
    }


def test_empty_report():
    report = ScanReport([])

    assert report.status is CheckStatus.PASSED
    assert report.highest_severity is None
    assert report.to_dict()["summary"]["highest_severity"] is None


def test_finding_location_properties():
    finding = Finding("R", "m", FindingSeverity.INFO, "trivy", metadata={"line": "3"})

    assert finding.file is None
    assert finding.line is None
