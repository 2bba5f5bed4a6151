import json

import pytest

from devsecops_toolkit.adapters import (
    CheckovAdapter,
    HadolintAdapter,
    TfsecAdapter,
    ToolExecutionError,
    TrivyAdapter,
)
from devsecops_toolkit.models import FindingSeverity


def test_tfsec_scan_runs_soft_fail_json(fake_runner, make_completed, fixture_text, tmp_path):
    runner = fake_runner()
    runner.respond(["tfsec"], make_completed(fixture_text("tfsec-results.json")))
    adapter = TfsecAdapter(runner=runner)

    findings = adapter.scan(tmp_path)

    assert runner.commands() == [
        ["tfsec", str(tmp_path), "--format", "json", "--no-colour", "--soft-fail"]
    ]
    assert [finding.rule_id for finding in findings] == [
        "aws-s3-block-public-acls",
        "aws-ec2-require-vpc-flow-logs-for-all-vpcs",
    ]
    first = findings[0]
    assert first.severity is FindingSeverity.HIGH
    assert first.tool == "tfsec"
    assert first.resource == "aws_s3_bucket.state"
    assert first.message == "No public access block so not blocking public acls"
    assert first.metadata["file"] == "s3.tf"
    assert first.metadata["line"] == 1
    assert first.metadata["end_line"] == 4
    assert first.metadata["links"][0].endswith("/block-public-acls/")
    assert "links" not in findings[1].metadata


def test_tfsec_handles_null_results():
    assert TfsecAdapter().parse_results(json.dumps({"results": None})) == []


def test_tfsec_rejects_invalid_json():
    with pytest.raises(ToolExecutionError, match="tfsec"):
        TfsecAdapter().parse_results("not json")


def test_checkov_scan_parses_failed_checks(fake_runner, make_completed, fixture_text, tmp_path):
    runner = fake_runner()
    runner.respond(["checkov"], make_completed(fixture_text("checkov-results.json")))

    findings = CheckovAdapter(runner=runner).scan(tmp_path)

    command = runner.commands()[0]
    assert command[:3] == ["checkov", "-d", str(tmp_path)]
    assert "--soft-fail" in command
    assert command[command.index("--framework") + 1] == "terraform"

    assert [finding.rule_id for finding in findings] == ["CKV_AWS_58", "CKV_AWS_39"]
    unscored, scored = findings
    assert unscored.severity is FindingSeverity.MEDIUM
    assert scored.severity is FindingSeverity.HIGH
    assert unscored.metadata["file"] == "eks.tf"
    assert unscored.metadata["line"] == 1
    assert unscored.metadata["end_line"] == 25
    assert unscored.metadata["guideline"].startswith("https://")
    assert "guideline" not in scored.metadata
    assert scored.resource == "aws_eks_cluster.main"


def test_checkov_accepts_multiple_framework_reports(fixture_text):
    report = json.loads(fixture_text("checkov-results.json"))
    payload = json.dumps([report, {"check_type": "secrets", "results": {"failed_checks": []}}])

    findings = CheckovAdapter().parse_results(payload)

    assert len(findings) == 2


def test_trivy_scan_image_passes_severities(fake_runner, make_completed, fixture_text):
    runner = fake_runner()
    runner.respond(["trivy"], make_completed(fixture_text("trivy-results.json")))

    findings = TrivyAdapter(runner=runner).scan_image("app:test", severities=["high", "critical"])

    assert runner.commands() == [
        [
            "trivy",
            "image",
            "--quiet",
            "--format",
            "json",
            "--severity",
            "HIGH,CRITICAL",
            "app:test",
        ]
    ]
    assert [finding.rule_id for finding in findings] == ["CVE-2023-5363", "CVE-2024-29041"]

    openssl, express = findings
    assert openssl.resource == "libcrypto3@3.1.3-r0"
    assert openssl.severity is FindingSeverity.HIGH
    assert openssl.metadata["fixed_version"] == "3.1.4-r0"
    assert openssl.metadata["image"] == "app:test"
    assert openssl.metadata["link"] == "https://avd.aquasec.com/nvd/cve-2023-5363"

    assert express.severity is FindingSeverity.CRITICAL
    assert express.message.startswith("Express.js")
    assert "fixed_version" not in express.metadata


def test_trivy_empty_results():
    assert TrivyAdapter().parse_results('{"Results": null}') == []


def test_hadolint_lint_maps_levels(fake_runner, make_completed, fixture_text, tmp_path):
    dockerfile = tmp_path / "Dockerfile"
    runner = fake_runner()
    runner.respond(["hadolint"], make_completed(fixture_text("hadolint-results.json"), 1))

    findings = HadolintAdapter(runner=runner).lint(dockerfile)

    assert runner.calls[0].args == ["hadolint", "-f", "json", str(dockerfile)]
    assert runner.calls[0].check is False
    assert [(finding.rule_id, finding.severity) for finding in findings] == [
        ("DL3006", FindingSeverity.MEDIUM),
        ("DL3059", FindingSeverity.INFO),
    ]
    assert findings[0].metadata == {"file": "app/Dockerfile", "line": 1, "column": 1}


def test_hadolint_clean_run(fake_runner, make_completed, tmp_path):
    runner = fake_runner()
    runner.respond(["hadolint"], make_completed("[]"))

    assert HadolintAdapter(runner=runner).lint(tmp_path / "Dockerfile") == []


@pytest.mark.parametrize("returncode, stdout", [(1, ""), (2, "[]")])
def test_hadolint_errors_raise(fake_runner, make_completed, tmp_path, returncode, stdout):
    runner = fake_runner()
    runner.respond(["hadolint"], make_completed(stdout, returncode, "cannot read"))

    with pytest.raises(ToolExecutionError) as excinfo:
        HadolintAdapter(runner=runner).lint(tmp_path / "Dockerfile")

    assert excinfo.value.returncode == returncode
    assert excinfo.value.stderr == "cannot read"
