"""Data models for scan findings, check results and reports."""

from .finding import (
    SEVERITY_RANK,
    Finding,
    FindingSeverity,
    meets_threshold,
    parse_severity,
    repository_path,
)
from .report import CheckResult, CheckStatus, ScanReport

__all__ = [
    "SEVERITY_RANK",
    "CheckResult",
    "CheckStatus",
    "Finding",
    "FindingSeverity",
    "ScanReport",
    "meets_threshold",
    "parse_severity",
    "repository_path",
]
