"""Orchestration of the local security scan and repository audit."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, List, Sequence

from .adapters import (
    CheckovAdapter,
    CommandRunner,
    DockerAdapter,
    GitAdapter,
    HadolintAdapter,
    TerraformAdapter,
    TfsecAdapter,
    ToolExecutionError,
    TrivyAdapter,
)
from .audit import RepositoryAuditor, SecretScanner
from .config import ScanSettings, ToolPaths
from .installers import InstallationError, ToolInstaller
from .models import (
    CheckResult,
    CheckStatus,
    Finding,
    FindingSeverity,
    ScanReport,
    meets_threshold,
    repository_path,
)
from .observability import get_logger

log = get_logger(__name__)

CHECK_NAMES = (
    "terraform-format",
    "terraform-validate",
    "tfsec",
    "checkov",
    "hadolint",
    "image-scan",
    "secrets",
)

AUDIT_CHECK_NAMES = ("sensitive-files", "base-images", "commit-messages")


class MissingDependencyError(RuntimeError):
    """Raised when required tools are missing and could not be installed."""

    def __init__(self, tools: Sequence[str]) -> None:
        super().__init__(f"Missing required tools: {' '.join(tools)}")
        self.tools = list(tools)


@dataclass(slots=True)
class ScanAdapters:
    """Tool adapters used by :class:`SecurityScanService`."""

    terraform: TerraformAdapter
    tfsec: TfsecAdapter
    checkov: CheckovAdapter
    trivy: TrivyAdapter
    hadolint: HadolintAdapter
    docker: DockerAdapter
    git: GitAdapter

    @classmethod
    def from_tool_paths(
        cls, tools: ToolPaths, *, runner: CommandRunner | None = None
    ) -> "ScanAdapters":
        runner = runner or CommandRunner()
        return cls(
            terraform=TerraformAdapter(executable=tools.terraform, runner=runner),
            tfsec=TfsecAdapter(executable=tools.tfsec, runner=runner),
            checkov=CheckovAdapter(executable=tools.checkov, runner=runner),
            trivy=TrivyAdapter(executable=tools.trivy, runner=runner),
            hadolint=HadolintAdapter(executable=tools.hadolint, runner=runner),
            docker=DockerAdapter(executable=tools.docker, runner=runner),
            git=GitAdapter(executable=tools.git, runner=runner),
        )


@dataclass(slots=True)
class _ScanContext:
    root: Path
    dockerfile: Path
    skipped_tools: Dict[str, str] = field(default_factory=dict)


class SecurityScanService:
    """Run the pre-push security checks and aggregate them into a report."""

    def __init__(
        self,
        settings: ScanSettings | None = None,
        *,
        adapters: ScanAdapters | None = None,
        installer: ToolInstaller | None = None,
        secret_scanner: SecretScanner | None = None,
        auditor: RepositoryAuditor | None = None,
    ) -> None:
        self.settings = settings or ScanSettings()
        self.adapters = adapters or ScanAdapters.from_tool_paths(ToolPaths())
        self.runner = self.adapters.terraform.runner
        self.installer = installer or ToolInstaller(runner=self.runner)
        self.secret_scanner = secret_scanner or SecretScanner(
            exclude_dirs=self.settings.exclude_dirs,
            exclude_globs=self.settings.exclude_globs,
            max_file_size=self.settings.max_file_size,
        )
        self.auditor = auditor or RepositoryAuditor(git=self.adapters.git)

    # ------------------------------------------------------------------
    def run(self, root: Path) -> ScanReport:
        """Execute every enabled check against ``root``.

        Raises :class:`MissingDependencyError` before any check runs when a
        required tool is unavailable.
        """

        root = root.resolve()
        context = _ScanContext(root=root, dockerfile=self._resolve_dockerfile(root))
        enabled = [name for name in CHECK_NAMES if name not in self.settings.skip_checks]

        self.check_dependencies(enabled, context)

        handlers: Dict[str, Callable[[_ScanContext], CheckResult]] = {
            "terraform-format": self._check_terraform_format,
            "terraform-validate": self._check_terraform_validate,
            "tfsec": self._check_tfsec,
            "checkov": self._check_checkov,
            "hadolint": self._check_hadolint,
            "image-scan": self._check_image,
            "secrets": self._check_secrets,
        }

        checks: List[CheckResult] = []
        for name in CHECK_NAMES:
            if name not in enabled:
                checks.append(CheckResult(name, CheckStatus.SKIPPED, "Disabled by configuration"))
                continue

            log.info("check_started", check=name)
            try:
                result = handlers[name](context)
            except ToolExecutionError as exc:
                result = CheckResult(name, CheckStatus.FAILED, str(exc))
            _anchor_findings(result.findings, root)
            log.info(
                "check_finished",
                check=name,
                status=result.status.value,
                findings=len(result.findings),
            )
            checks.append(result)

        metadata = {
            "working_dir": str(root),
            "fail_on": self.settings.fail_on.value,
        }
        return ScanReport(checks=checks, metadata=metadata)

    def audit(self, root: Path, *, commit_count: int | None = None) -> ScanReport:
        """Run the repository audit checks and report them without gating on tools."""

        root = root.resolve()
        dockerfile = self._resolve_dockerfile(root)
        count = commit_count or self.settings.commit_count

        sensitive = self.auditor.find_sensitive_files(root)
        images = self.auditor.base_images(dockerfile)
        commits = self.auditor.suspicious_commits(root, count=count)

        checks = [
            self._gate("sensitive-files", sensitive, "No sensitive files found"),
            (
                self._gate("base-images", images, "Base images reviewed")
                if dockerfile.is_file()
                else CheckResult("base-images", CheckStatus.SKIPPED, "No Dockerfile found")
            ),
            self._gate("commit-messages", commits, "No suspicious commit messages"),
        ]
        for check in checks:
            _anchor_findings(check.findings, root)
        return ScanReport(
            checks=checks,
            metadata={"working_dir": str(root), "fail_on": self.settings.fail_on.value},
        )

    # ------------------------------------------------------------------
    def check_dependencies(
        self, enabled: Sequence[str], context: _ScanContext | None = None
    ) -> None:
        required: List[tuple[str, str, bool]] = []
        if "terraform-format" in enabled or "terraform-validate" in enabled:
            required.append(("terraform", self.adapters.terraform.executable, False))
        if "image-scan" in enabled:
            required.append(("docker", self.adapters.docker.executable, False))
        if "tfsec" in enabled:
            required.append(("tfsec", self.adapters.tfsec.executable, True))
        if "image-scan" in enabled:
            required.append(("trivy", self.adapters.trivy.executable, True))

        missing: List[str] = []
        for tool, executable, installable in required:
            if self.runner.which(executable):
                continue
            if installable and self.settings.auto_install:
                try:
                    self.installer.ensure(tool, executable=executable)
                    continue
                except (InstallationError, ToolExecutionError) as exc:
                    log.error("tool_install_failed", tool=tool, error=str(exc))
            missing.append(tool)

        if missing:
            raise MissingDependencyError(missing)

        if context is not None:
            for tool, adapter in (
                ("checkov", self.adapters.checkov),
                ("hadolint", self.adapters.hadolint),
            ):
                if tool in enabled and not adapter.available():
                    context.skipped_tools[tool] = f"{tool} not found, skipping"

    # ------------------------------------------------------------------
    def _check_terraform_format(self, context: _ScanContext) -> CheckResult:
        formatted, diff = self.adapters.terraform.fmt_check(context.root)
        if formatted:
            return CheckResult(
                "terraform-format", CheckStatus.PASSED, "Terraform formatting is correct"
            )

        findings = [
            Finding(
                rule_id="terraform-fmt",
                message=f"File is not formatted: {path}",
                severity=FindingSeverity.INFO,
                tool="terraform",
                metadata={"file": path},
            )
            for path in _unformatted_files(diff)
        ]
        return CheckResult(
            "terraform-format",
            CheckStatus.WARNING,
            "Terraform files need formatting. Run 'terraform fmt -recursive' to fix.",
            findings,
        )

    def _check_terraform_validate(self, context: _ScanContext) -> CheckResult:
        if not any(context.root.glob("*.tf")):
            return CheckResult(
                "terraform-validate",
                CheckStatus.SKIPPED,
                "No Terraform files found, skipping validation",
            )

        self.adapters.terraform.init(context.root, backend=False)
        valid, findings = self.adapters.terraform.validate(context.root)
        if valid:
            return CheckResult(
                "terraform-validate",
                CheckStatus.PASSED,
                "Terraform configuration is valid",
                findings,
            )
        return CheckResult(
            "terraform-validate", CheckStatus.FAILED, "Terraform validation failed", findings
        )

    def _check_tfsec(self, context: _ScanContext) -> CheckResult:
        findings = self.adapters.tfsec.scan(context.root)
        return self._gate("tfsec", findings, "tfsec scan completed - no issues found")

    def _check_checkov(self, context: _ScanContext) -> CheckResult:
        if "checkov" in context.skipped_tools:
            return CheckResult("checkov", CheckStatus.SKIPPED, context.skipped_tools["checkov"])
        findings = self.adapters.checkov.scan(context.root)
        return self._gate("checkov", findings, "Checkov scan completed - no issues found")

    def _check_hadolint(self, context: _ScanContext) -> CheckResult:
        if not context.dockerfile.is_file():
            return CheckResult("hadolint", CheckStatus.SKIPPED, "No Dockerfile found, skipping")
        if "hadolint" in context.skipped_tools:
            return CheckResult("hadolint", CheckStatus.SKIPPED, context.skipped_tools["hadolint"])

        findings = self.adapters.hadolint.lint(context.dockerfile)
        if findings:
            return CheckResult(
                "hadolint", CheckStatus.WARNING, "Dockerfile linting found issues", findings
            )
        return CheckResult("hadolint", CheckStatus.PASSED, "Dockerfile linting passed")

    def _check_image(self, context: _ScanContext) -> CheckResult:
        if not context.dockerfile.is_file():
            return CheckResult(
                "image-scan", CheckStatus.SKIPPED, "No Dockerfile found, skipping Docker scan"
            )

        tag = self.settings.image_tag
        docker = self.adapters.docker
        docker.build(context.dockerfile.parent, tag, dockerfile=context.dockerfile)
        try:
            findings = self.adapters.trivy.scan_image(
                tag, severities=self.settings.trivy_severities
            )
        finally:
            docker.remove_image(tag)

        _anchor_findings(findings, context.root, fallback=context.dockerfile)
        return self._gate("image-scan", findings, "Docker image scan completed", tool="trivy")

    def _check_secrets(self, context: _ScanContext) -> CheckResult:
        findings = self.secret_scanner.scan(context.root)
        if findings:
            return CheckResult(
                "secrets",
                CheckStatus.FAILED,
                "Potential secrets found in code. Please review and remove them.",
                findings,
            )
        return CheckResult("secrets", CheckStatus.PASSED, "No obvious secrets found in code")

    # ------------------------------------------------------------------
    def _gate(
        self,
        name: str,
        findings: Sequence[Finding],
        success_message: str,
        *,
        tool: str | None = None,
    ) -> CheckResult:
        """Derive a check status from findings and the ``fail_on`` threshold."""

        findings = list(findings)
        if not findings:
            return CheckResult(name, CheckStatus.PASSED, success_message)

        threshold = self.settings.fail_on
        blocking = [finding for finding in findings if meets_threshold(finding.severity, threshold)]
        soft = (tool or name) in self.settings.soft_fail_tools
        if blocking and not soft:
            return CheckResult(
                name,
                CheckStatus.FAILED,
                f"{len(blocking)} finding(s) at or above {threshold.value}",
                findings,
            )
        return CheckResult(
            name, CheckStatus.WARNING, f"{len(findings)} finding(s) reported", findings
        )

    def _resolve_dockerfile(self, root: Path) -> Path:
        dockerfile = self.settings.dockerfile
        return dockerfile if dockerfile.is_absolute() else root / dockerfile


def _anchor_findings(
    findings: Sequence[Finding], root: Path, *, fallback: Path | None = None
) -> None:
    """Point finding locations at repository-relative files, using ``fallback`` when unset."""

    for finding in findings:
        target = finding.file or fallback
        if target is not None:
            finding.metadata["file"] = repository_path(target, root)


def _unformatted_files(output: str) -> List[str]:
    """Extract file names from `terraform fmt -check -diff` output, skipping diff bodies."""

    files: List[str] = []
    for line in output.splitlines():
        if not line or line.startswith(("-", "+", " ", "@", "\\")):
            continue
        if line.endswith((".tf", ".tfvars")) and line not in files:
            files.append(line)
    return files


__all__ = [
    "AUDIT_CHECK_NAMES",
    "CHECK_NAMES",
    "MissingDependencyError",
    "ScanAdapters",
    "SecurityScanService",
]
