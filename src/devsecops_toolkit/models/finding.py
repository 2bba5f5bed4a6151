"""Finding models shared across adapters and reporting layers."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional


class FindingSeverity(str, Enum):
    """Severity levels supported by the toolkit."""

    INFO = "info"
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


SEVERITY_RANK = {
    FindingSeverity.INFO: 0,
    FindingSeverity.LOW: 1,
    FindingSeverity.MEDIUM: 2,
    FindingSeverity.HIGH: 3,
    FindingSeverity.CRITICAL: 4,
}

_LABEL_TO_SEVERITY = {
    "unknown": FindingSeverity.INFO,
    "informational": FindingSeverity.INFO,
    "information": FindingSeverity.INFO,
    "info": FindingSeverity.INFO,
    "style": FindingSeverity.INFO,
    "note": FindingSeverity.INFO,
    "low": FindingSeverity.LOW,
    "warning": FindingSeverity.MEDIUM,
    "moderate": FindingSeverity.MEDIUM,
    "medium": FindingSeverity.MEDIUM,
    "high": FindingSeverity.HIGH,
    "error": FindingSeverity.HIGH,
    "critical": FindingSeverity.CRITICAL,
}


def parse_severity(
    label: object, default: FindingSeverity = FindingSeverity.INFO
) -> FindingSeverity:
    """Map a tool specific severity label onto :class:`FindingSeverity`."""

    if isinstance(label, FindingSeverity):
        return label

    if isinstance(label, str):
        normalized = label.strip().lower()
        if normalized in _LABEL_TO_SEVERITY:
            return _LABEL_TO_SEVERITY[normalized]

    return default


def meets_threshold(severity: FindingSeverity, threshold: FindingSeverity) -> bool:
    return SEVERITY_RANK[severity] >= SEVERITY_RANK[threshold]


def repository_path(path: str | Path, root: Path) -> str:
    """Express ``path`` relative to ``root`` (POSIX form) when it lies inside it."""

    candidate = Path(path)
    if candidate.is_absolute() and candidate.is_relative_to(root):
        candidate = candidate.relative_to(root)
    return candidate.as_posix()


@dataclass(slots=True)
class Finding:
    """A single issue reported by a scanner or audit check."""

    rule_id: str
    message: str
    severity: FindingSeverity
    tool: str
    resource: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def file(self) -> str | None:
        value = self.metadata.get("file")
        return str(value) if value else None

    @property
    def line(self) -> int | None:
        value = self.metadata.get("line")
        return value if isinstance(value, int) else None

    def to_dict(self) -> dict[str, Any]:
        return {
            "rule_id": self.rule_id,
            "message": self.message,
            "severity": self.severity.value,
            "tool": self.tool,
            "resource": self.resource,
            "metadata": dict(self.metadata),
        }
