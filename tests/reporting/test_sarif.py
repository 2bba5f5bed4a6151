from devsecops_toolkit.models import CheckResult, CheckStatus, Finding, FindingSeverity, ScanReport
from devsecops_toolkit.reporting import SARIF_VERSION, build_sarif


def make_report() -> ScanReport:
    tfsec = [
        Finding(
            rule_id="aws-s3-block-public-acls",
            message="No public access block so not blocking public acls",
            severity=FindingSeverity.HIGH,
            tool="tfsec",
            resource="aws_s3_bucket.state",
            metadata={"file": "s3.tf", "line": 1, "end_line": 4},
        ),
        Finding(
            rule_id="aws-s3-block-public-acls",
            message="No public access block so not blocking public acls",
            severity=FindingSeverity.HIGH,
            tool="tfsec",
            metadata={"file": "logs.tf", "line": 9, "end_line": 2},
        ),
    ]
    trivy = [
        Finding(
            rule_id="CVE-2023-5363",
            message="openssl: Incorrect cipher key and IV length processing",
            severity=FindingSeverity.MEDIUM,
            tool="trivy",
            resource="libcrypto3@3.1.3-r0",
            metadata={"link": "https://avd.aquasec.com/nvd/cve-2023-5363"},
        )
    ]
    secrets = [
        Finding(
            rule_id="SECRET-PASSWORD",
            message="Hard-coded password assignment detected",
            severity=FindingSeverity.HIGH,
            tool="secret-scan",
            metadata={"file": "app/config.js", "line": 2, "column": 7},
        )
    ]
    return ScanReport(
        [
            CheckResult("tfsec", CheckStatus.FAILED, findings=tfsec),
            CheckResult("image-scan", CheckStatus.WARNING, findings=trivy),
            CheckResult("secrets", CheckStatus.FAILED, findings=secrets),
        ]
    )


def test_build_sarif_groups_runs_by_tool():
    sarif = build_sarif(make_report())

    assert sarif["version"] == SARIF_VERSION
    assert [run["tool"]["driver"]["name"] for run in sarif["runs"]] == [
        "tfsec",
        "trivy",
        "secret-scan",
    ]


def test_rules_are_deduplicated_per_run():
    tfsec_run = build_sarif(make_report())["runs"][0]

    assert [rule["id"] for rule in tfsec_run["tool"]["driver"]["rules"]] == [
        "aws-s3-block-public-acls"
    ]
    assert len(tfsec_run["results"]) == 2
    assert tfsec_run["tool"]["driver"]["informationUri"] == "https://github.com/aquasecurity/tfsec"


def test_results_carry_locations_and_levels():
    tfsec_run, trivy_run, secrets_run = build_sarif(make_report())["runs"]

    first, second = tfsec_run["results"]
    assert first["level"] == "error"
    assert first["message"]["text"].endswith("(aws_s3_bucket.state)")
    assert first["locations"][0]["physicalLocation"] == {
        "artifactLocation": {"uri": "s3.tf"},
        "region": {"startLine": 1, "endLine": 4},
    }
    assert second["locations"][0]["physicalLocation"]["region"] == {"startLine": 9}

    vulnerability = trivy_run["results"][0]
    assert vulnerability["level"] == "warning"
    assert "locations" not in vulnerability
    assert trivy_run["tool"]["driver"]["rules"][0]["helpUri"].endswith("cve-2023-5363")

    secret = secrets_run["results"][0]
    assert secret["locations"][0]["physicalLocation"]["region"] == {
        "startLine": 2,
        "startColumn": 7,
    }
    assert "version" in secrets_run["tool"]["driver"]


def test_empty_report_has_no_runs():
    assert build_sarif(ScanReport([]))["runs"] == []


def test_absolute_paths_are_relative_to_working_dir(tmp_path):
    finding = Finding(
        rule_id="AUDIT-BASE-IMAGE-LATEST",
        message="Base image node:latest is not pinned to a version",
        severity=FindingSeverity.LOW,
        tool="audit",
        metadata={"file": str(tmp_path / "app" / "Dockerfile"), "line": 1},
    )
    report = ScanReport(
        [CheckResult("base-images", CheckStatus.WARNING, findings=[finding])],
        metadata={"working_dir": str(tmp_path)},
    )

    result = build_sarif(report)["runs"][0]["results"][0]

    location = result["locations"][0]["physicalLocation"]
    assert location["artifactLocation"]["uri"] == "app/Dockerfile"
    assert location["region"] == {"startLine": 1}


def test_commit_findings_use_logical_locations():
    finding = Finding(
        rule_id="AUDIT-COMMIT-MESSAGE",
        message="Commit message may reference a secret: Rotate token",
        severity=FindingSeverity.MEDIUM,
        tool="audit",
        resource="abc1234",
        metadata={"commit": "abc1234"},
    )

    result = build_sarif(
        ScanReport([CheckResult("commit-messages", CheckStatus.WARNING, findings=[finding])])
    )["runs"][0]["results"][0]

    assert result["locations"] == [
        {"logicalLocations": [{"name": "abc1234", "kind": "commit"}]}
    ]
