"""Check results and the aggregated report produced by scan and audit runs."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Mapping, MutableMapping, Sequence

from .finding import SEVERITY_RANK, Finding, FindingSeverity, meets_threshold


class CheckStatus(str, Enum):
    """Outcome of an individual check."""

    PASSED = "passed"
    WARNING = "warning"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass(slots=True)
class CheckResult:
    """Result of a single check within a scan run."""

    name: str
    status: CheckStatus
    message: str = ""
    findings: List[Finding] = field(default_factory=list)

    @property
    def failed(self) -> bool:
        return self.status is CheckStatus.FAILED


@dataclass(slots=True)
class ScanReport:
    """Ordered check results plus contextual metadata."""

    checks: Sequence[CheckResult]
    metadata: Mapping[str, Any] = field(default_factory=dict)

    @property
    def findings(self) -> List[Finding]:
        return [finding for check in self.checks for finding in check.findings]

    @property
    def status(self) -> CheckStatus:
        if any(check.failed for check in self.checks):
            return CheckStatus.FAILED
        if any(check.status is CheckStatus.WARNING for check in self.checks):
            return CheckStatus.WARNING
        return CheckStatus.PASSED

    @property
    def highest_severity(self) -> FindingSeverity | None:
        findings = self.findings
        if not findings:
            return None
        return max(findings, key=lambda finding: SEVERITY_RANK[finding.severity]).severity

    def counts_by_severity(self) -> dict[str, int]:
        counts: MutableMapping[FindingSeverity, int] = {
            severity: 0 for severity in FindingSeverity
        }
        for finding in self.findings:
            counts[finding.severity] += 1
        return {severity.value: count for severity, count in counts.items()}

    def has_findings_at_or_above(self, threshold: FindingSeverity) -> bool:
        return any(meets_threshold(finding.severity, threshold) for finding in self.findings)

    def check(self, name: str) -> CheckResult | None:
        for check in self.checks:
            if check.name == name:
                return check
        return None

    def to_dict(self) -> Dict[str, Any]:
        highest = self.highest_severity
        return {
            "metadata": dict(self.metadata),
            "summary": {
                "status": self.status.value,
                "total_findings": len(self.findings),
                "highest_severity": highest.value if highest else None,
                "counts": self.counts_by_severity(),
                "checks": [
                    {
                        "name": check.name,
                        "status": check.status.value,
                        "message": check.message,
                        "finding_count": len(check.findings),
                    }
                    for check in self.checks
                ],
            },
            "findings": [finding.to_dict() for finding in self.findings],
        }
