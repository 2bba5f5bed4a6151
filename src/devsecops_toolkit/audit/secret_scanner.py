"""Pattern based detection of credentials committed to the working tree."""

from __future__ import annotations

import fnmatch
import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, List, Sequence

from ..models import Finding, FindingSeverity
from ..observability import get_logger

log = get_logger(__name__)


@dataclass(frozen=True, slots=True)
class SecretPattern:
    rule_id: str
    description: str
    regex: re.Pattern[str]


SECRET_PATTERNS: tuple[SecretPattern, ...] = (
    SecretPattern(
        "SECRET-PASSWORD",
        "Hard-coded password assignment",
        re.compile(r"password\s*=\s*['\"][^'\"]*['\"]", re.IGNORECASE),
    ),
    SecretPattern(
        "SECRET-API-KEY",
        "Hard-coded API key assignment",
        re.compile(r"api[_-]?key\s*=\s*['\"][^'\"]*['\"]", re.IGNORECASE),
    ),
    SecretPattern(
        "SECRET-GENERIC",
        "Hard-coded secret assignment",
        re.compile(r"secret\s*=\s*['\"][^'\"]*['\"]", re.IGNORECASE),
    ),
    SecretPattern(
        "SECRET-TOKEN",
        "Hard-coded token assignment",
        re.compile(r"token\s*=\s*['\"][^'\"]*['\"]", re.IGNORECASE),
    ),
    SecretPattern(
        "SECRET-AWS-ACCESS-KEY",
        "AWS access key id",
        re.compile(r"AKIA[0-9A-Z]{16}"),
    ),
    SecretPattern(
        "SECRET-GITHUB-TOKEN",
        "GitHub personal access token",
        re.compile(r"ghp_[0-9a-zA-Z]{36}"),
    ),
)

_BINARY_SNIFF_BYTES = 1024


class SecretScanner:
    """Walk a directory tree and report lines matching known secret patterns.

    Matched values are never copied into findings; only the rule, file, line
    and column are reported.
    """

    tool_name = "secret-scan"

    def __init__(
        self,
        *,
        patterns: Sequence[SecretPattern] = SECRET_PATTERNS,
        exclude_dirs: Sequence[str] = (".git", ".terraform", "node_modules"),
        exclude_globs: Sequence[str] = ("*.md",),
        max_file_size: int = 1_048_576,
    ) -> None:
        self.patterns = tuple(patterns)
        self.exclude_dirs = set(exclude_dirs)
        self.exclude_globs = tuple(exclude_globs)
        self.max_file_size = max_file_size

    def scan(self, root: Path) -> List[Finding]:
        root = root.resolve()
        findings: List[Finding] = []
        for path in self.iter_files(root):
            findings.extend(self.scan_file(path, root=root))

        log.info("secret_scan_completed", root=str(root), findings=len(findings))
        return findings

    def iter_files(self, root: Path) -> Iterator[Path]:
        for dirpath, dirnames, filenames in os.walk(root):
            dirnames[:] = sorted(name for name in dirnames if name not in self.exclude_dirs)
            for filename in sorted(filenames):
                if any(fnmatch.fnmatch(filename, pattern) for pattern in self.exclude_globs):
                    continue
                path = Path(dirpath) / filename
                if path.is_symlink() or not path.is_file():
                    continue
                yield path

    def scan_file(self, path: Path, *, root: Path | None = None) -> List[Finding]:
        try:
            if path.stat().st_size > self.max_file_size:
                return []
            raw = path.read_bytes()
        except OSError as exc:
            log.warning("secret_scan_unreadable", path=str(path), error=str(exc))
            return []

        if b"\0" in raw[:_BINARY_SNIFF_BYTES]:
            return []

        text = raw.decode("utf-8", errors="replace")
        display_path = _relative(path, root)

        findings: List[Finding] = []
        for line_number, line in enumerate(text.splitlines(), start=1):
            for pattern in self.patterns:
                match = pattern.regex.search(line)
                if match is None:
                    continue
                findings.append(
                    Finding(
                        rule_id=pattern.rule_id,
                        message=f"{pattern.description} detected",
                        severity=FindingSeverity.HIGH,
                        tool=self.tool_name,
                        metadata={
                            "file": display_path,
                            "line": line_number,
                            "column": match.start() + 1,
                        },
                    )
                )
        return findings


def _relative(path: Path, root: Path | None) -> str:
    if root is None:
        return str(path)
    try:
        return path.relative_to(root).as_posix()
    except ValueError:
        return str(path)
