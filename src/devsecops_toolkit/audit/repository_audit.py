"""Repository hygiene checks run by the scheduled security audit."""

from __future__ import annotations

import fnmatch
import os
import re
from pathlib import Path
from typing import List, Sequence

from ..adapters import GitAdapter
from ..models import Finding, FindingSeverity

SENSITIVE_FILE_PATTERNS = ("*.pem", "*.key", "*.p12", "*.pfx")

_FROM_PATTERN = re.compile(
    r"^\s*FROM\s+(?:--platform=\S+\s+)?(?P<image>\S+)(?:\s+AS\s+(?P<alias>\S+))?",
    re.IGNORECASE,
)
_COMMIT_KEYWORDS = re.compile(r"password|secret|key|token", re.IGNORECASE)


class RepositoryAuditor:
    """Audit checks for sensitive files, base images and commit messages."""

    tool_name = "audit"

    def __init__(
        self,
        *,
        git: GitAdapter | None = None,
        exclude_dirs: Sequence[str] = (".git",),
        sensitive_patterns: Sequence[str] = SENSITIVE_FILE_PATTERNS,
    ) -> None:
        self.git = git or GitAdapter()
        self.exclude_dirs = set(exclude_dirs)
        self.sensitive_patterns = tuple(sensitive_patterns)

    # ------------------------------------------------------------------
    def find_sensitive_files(self, root: Path) -> List[Finding]:
        root = root.resolve()
        findings: List[Finding] = []
        for dirpath, dirnames, filenames in os.walk(root):
            dirnames[:] = sorted(name for name in dirnames if name not in self.exclude_dirs)
            for filename in sorted(filenames):
                patterns = self.sensitive_patterns
                if not any(fnmatch.fnmatch(filename, pattern) for pattern in patterns):
                    continue
                relative = (Path(dirpath) / filename).relative_to(root).as_posix()
                findings.append(
                    Finding(
                        rule_id="AUDIT-SENSITIVE-FILE",
                        message=f"Sensitive file committed to the repository: {relative}",
                        severity=FindingSeverity.MEDIUM,
                        tool=self.tool_name,
                        metadata={"file": relative},
                    )
                )
        return findings

    def base_images(self, dockerfile: Path) -> List[Finding]:
        """Report each external base image; untagged or ``latest`` images rank higher."""

        if not dockerfile.is_file():
            return []

        stages: set[str] = set()
        findings: List[Finding] = []
        for line_number, line in enumerate(
            dockerfile.read_text(encoding="utf-8").splitlines(), start=1
        ):
            match = _FROM_PATTERN.match(line)
            if match is None:
                continue

            image = match.group("image")
            alias = match.group("alias")
            if alias:
                stages.add(alias.lower())

            if image.lower() == "scratch" or image.lower() in stages:
                continue

            floating = _is_floating_tag(image)
            findings.append(
                Finding(
                    rule_id="AUDIT-BASE-IMAGE-LATEST" if floating else "AUDIT-BASE-IMAGE",
                    message=(
                        f"Base image {image} is not pinned to a version"
                        if floating
                        else f"Base image {image} should be checked for updates"
                    ),
                    severity=FindingSeverity.LOW if floating else FindingSeverity.INFO,
                    tool=self.tool_name,
                    resource=image,
                    metadata={"file": str(dockerfile), "line": line_number},
                )
            )
        return findings

    def suspicious_commits(self, root: Path, *, count: int = 10) -> List[Finding]:
        findings: List[Finding] = []
        for entry in self.git.recent_commits(root, count=count):
            if not _COMMIT_KEYWORDS.search(entry):
                continue
            sha, _, subject = entry.partition(" ")
            findings.append(
                Finding(
                    rule_id="AUDIT-COMMIT-MESSAGE",
                    message=f"Commit message may reference a secret: {subject.strip()}",
                    severity=FindingSeverity.MEDIUM,
                    tool=self.tool_name,
                    resource=sha,
                    metadata={"commit": sha},
                )
            )
        return findings


def _is_floating_tag(image: str) -> bool:
    if "@" in image:
        return False
    name = image.rsplit("/", 1)[-1]
    if ":" not in name:
        return True
    return name.rsplit(":", 1)[1].lower() == "latest"
