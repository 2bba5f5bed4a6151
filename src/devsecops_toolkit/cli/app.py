"""Command-line interface implementation for the toolkit."""

from __future__ import annotations

import argparse
import json
from pathlib import Path
from typing import Any, Callable, Sequence

from ..adapters import (
    CommandRunner,
    KubectlAdapter,
    KubesealAdapter,
    ToolExecutionError,
)
from ..bootstrap import BootstrapError, BootstrapService
from ..config import LOG_LEVELS, SettingsError, ToolkitSettings, load_settings
from ..deploy import DeploymentService
from ..installers import ToolInstaller
from ..models import CheckStatus, FindingSeverity, ScanReport
from ..observability import configure_logging, get_logger
from ..reporting import build_sarif
from ..sealing import SealedSecretService, SealingError, parse_literals
from ..service import CHECK_NAMES, MissingDependencyError, ScanAdapters, SecurityScanService

log = get_logger(__name__)

STATUS_ICONS = {
    CheckStatus.PASSED: "PASS",
    CheckStatus.WARNING: "WARN",
    CheckStatus.FAILED: "FAIL",
    CheckStatus.SKIPPED: "SKIP",
}

HANDLED_ERRORS = (
    ToolExecutionError,
    MissingDependencyError,
    SealingError,
    BootstrapError,
    SettingsError,
    OSError,
    ValueError,
)


def prompt_yes_no(question: str) -> bool:
    """Ask an interactive yes/no question; anything but ``y`` means no."""

    try:
        reply = input(f"{question} (y/N): ")
    except EOFError:
        return False
    return reply.strip().lower().startswith("y")


def _table(headers: tuple[str, ...], rows: Sequence[tuple[str, ...]]) -> list[str]:
    table = [headers, *rows]
    widths = [max(len(str(row[idx])) for row in table) for idx in range(len(headers))]

    def format_row(values: tuple[str, ...]) -> str:
        return "  ".join(
            str(value).ljust(width) for value, width in zip(values, widths, strict=True)
        ).rstrip()

    lines = [format_row(headers), "  ".join("=" * width for width in widths)]
    lines.extend(format_row(row) for row in rows)
    return lines


def render_table(report: ScanReport) -> str:
    """Render check outcomes and findings as plain text tables."""

    check_rows = [
        (STATUS_ICONS[check.status], check.name, check.message) for check in report.checks
    ]
    lines = _table(("Status", "Check", "Details"), check_rows)

    findings = report.findings
    lines.append("")
    if not findings:
        lines.append("No findings detected.")
    else:
        finding_rows = []
        for finding in findings:
            location = finding.file or finding.resource or "-"
            if finding.file and finding.line is not None:
                location = f"{finding.file}:{finding.line}"
            finding_rows.append(
                (finding.severity.value, finding.tool, finding.rule_id, location, finding.message)
            )
        lines.extend(_table(("Severity", "Tool", "Rule ID", "Location", "Message"), finding_rows))

    lines.append("")
    if report.status is CheckStatus.FAILED:
        lines.append("Some security checks failed. Please fix the issues before pushing.")
    else:
        lines.append("All security checks passed. Ready to push to repository.")
    return "\n".join(lines)


def _format_report(report: ScanReport, output_format: str) -> str:
    if output_format == "json":
        return json.dumps(report.to_dict(), indent=2)
    if output_format == "sarif":
        return json.dumps(build_sarif(report), indent=2)
    if output_format == "table":
        return render_table(report)
    raise ValueError("format must be one of 'table', 'json' or 'sarif'")


def _write_file(path: Path, content: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")


def _report_exit_code(report: ScanReport) -> int:
    return 1 if report.status is CheckStatus.FAILED else 0


def build_parser() -> argparse.ArgumentParser:
    """Construct the CLI argument parser."""

    parser = argparse.ArgumentParser(
        prog="devsecops",
        description="Security scanning, sealed secrets and bootstrap tooling for Terraform/EKS",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="YAML configuration file (defaults to .devsecops.yaml when present).",
    )
    parser.add_argument(
        "--log-level",
        type=str.upper,
        choices=LOG_LEVELS,
        default=None,
        help="Log level written to stderr.",
    )
    parser.add_argument(
        "--log-format",
        choices=["console", "json"],
        default=None,
        help="Log output format written to stderr.",
    )
    subparsers = parser.add_subparsers(dest="command")

    severities = [severity.value for severity in FindingSeverity]

    scan_parser = subparsers.add_parser(
        "scan", help="Run the local security scan before pushing code."
    )
    scan_parser.add_argument(
        "path",
        type=Path,
        nargs="?",
        default=Path.cwd(),
        help="Repository root containing Terraform configuration and the application.",
    )
    scan_parser.add_argument(
        "--dockerfile", type=Path, default=None, help="Dockerfile to lint, build and scan."
    )
    scan_parser.add_argument("--image-tag", default=None, help="Tag used for the scanned image.")
    scan_parser.add_argument(
        "--skip",
        dest="skip_checks",
        action="append",
        choices=list(CHECK_NAMES),
        default=None,
        help="Skip a check; may be repeated.",
    )
    scan_parser.add_argument(
        "--no-install",
        dest="auto_install",
        action="store_false",
        default=None,
        help="Do not install missing tfsec/trivy binaries.",
    )
    scan_parser.add_argument(
        "--fail-on",
        choices=severities,
        default=None,
        help="Fail scanner checks with findings at or above this severity.",
    )
    scan_parser.add_argument(
        "--format", choices=["table", "json", "sarif"], default="table", help="Output format."
    )
    scan_parser.add_argument(
        "--output", type=Path, default=None, help="Also write the JSON report to this file."
    )
    scan_parser.add_argument(
        "--sarif-output", type=Path, default=None, help="Also write a SARIF log to this file."
    )

    audit_parser = subparsers.add_parser(
        "audit", help="Audit the repository for sensitive files, base images and commit messages."
    )
    audit_parser.add_argument("path", type=Path, nargs="?", default=Path.cwd())
    audit_parser.add_argument("--dockerfile", type=Path, default=None)
    audit_parser.add_argument("--commit-count", type=int, default=None)
    audit_parser.add_argument("--fail-on", choices=severities, default=None)
    audit_parser.add_argument("--format", choices=["table", "json", "sarif"], default="table")
    audit_parser.add_argument("--output", type=Path, default=None)

    seal_parser = subparsers.add_parser("seal", help="Create and seal a Kubernetes secret.")
    seal_parser.add_argument("name", help="Secret name.")
    seal_parser.add_argument("namespace", help="Target namespace (created when missing).")
    seal_parser.add_argument("literals", nargs="+", metavar="KEY=VALUE", help="Secret data.")
    seal_parser.add_argument("--output-dir", type=Path, default=Path("."))
    seal_parser.add_argument(
        "--cert", type=Path, default=None, help="Seal offline with this public certificate."
    )
    seal_parser.add_argument("--controller-namespace", default=None)
    seal_parser.add_argument("--controller-name", default=None)
    seal_parser.add_argument("--sealed-format", choices=["yaml", "json"], default="yaml")
    apply_group = seal_parser.add_mutually_exclusive_group()
    apply_group.add_argument(
        "--apply",
        dest="apply",
        action="store_const",
        const=True,
        default=None,
        help="Apply the sealed secret without prompting.",
    )
    apply_group.add_argument(
        "--no-apply",
        dest="apply",
        action="store_const",
        const=False,
        help="Do not apply the sealed secret.",
    )

    setup_parser = subparsers.add_parser(
        "setup-sealed-secrets",
        help="Install the Sealed Secrets controller and fetch its certificate.",
    )
    setup_parser.add_argument("--version", default=None, help="Release to install, e.g. 0.24.0.")
    setup_parser.add_argument(
        "--timeout", type=int, default=None, help="Seconds to wait for the controller."
    )
    setup_parser.add_argument("--cert-out", type=Path, default=None)
    setup_parser.add_argument(
        "--no-install", dest="install_kubeseal", action="store_false", default=True
    )

    bootstrap_parser = subparsers.add_parser(
        "bootstrap",
        help="Provision Terraform state, plan and apply the stack, configure cluster access.",
    )
    bootstrap_parser.add_argument("path", type=Path, nargs="?", default=Path.cwd())
    bootstrap_parser.add_argument("--tfvars", type=Path, default=None)
    bootstrap_parser.add_argument("--yes", action="store_true", help="Answer yes to every prompt.")
    bootstrap_parser.add_argument(
        "--skip-sealed-secrets", dest="sealed_secrets", action="store_false", default=True
    )

    deploy_parser = subparsers.add_parser("deploy", help="Roll an image out to the cluster.")
    deploy_parser.add_argument("--image", required=True)
    deploy_parser.add_argument("--deployment", default=None)
    deploy_parser.add_argument("--namespace", default=None)
    deploy_parser.add_argument("--container", default=None)
    deploy_parser.add_argument("--port", type=int, default=None)
    deploy_parser.add_argument("--target-port", type=int, default=None)
    deploy_parser.add_argument("--service-type", default=None)
    deploy_parser.add_argument("--timeout", type=int, default=None)

    return parser


def create_scan_service(settings: ToolkitSettings) -> SecurityScanService:
    """Create a scan service wired to the configured tool executables."""

    runner = CommandRunner()
    adapters = ScanAdapters.from_tool_paths(settings.tools, runner=runner)
    installer = ToolInstaller(runner=runner, install_dir=settings.sealed_secrets.install_dir)
    return SecurityScanService(settings.scan, adapters=adapters, installer=installer)


def create_sealed_secret_service(
    settings: ToolkitSettings,
    *,
    controller_namespace: str | None = None,
    controller_name: str | None = None,
    confirm: Callable[[str], bool] = prompt_yes_no,
) -> SealedSecretService:
    runner = CommandRunner()
    sealed = settings.sealed_secrets
    if controller_namespace or controller_name:
        sealed = sealed.model_copy(
            update={
                key: value
                for key, value in {
                    "controller_namespace": controller_namespace,
                    "controller_name": controller_name,
                }.items()
                if value
            }
        )
    return SealedSecretService(
        sealed,
        kubectl=KubectlAdapter(executable=settings.tools.kubectl, runner=runner),
        kubeseal=KubesealAdapter(
            controller_namespace=sealed.controller_namespace,
            controller_name=sealed.controller_name,
            executable=settings.tools.kubeseal,
            runner=runner,
        ),
        installer=ToolInstaller(runner=runner, install_dir=sealed.install_dir),
        confirm=confirm,
    )


def create_bootstrap_service(
    settings: ToolkitSettings, *, assume_yes: bool = False
) -> BootstrapService:
    confirm: Callable[[str], bool] = (lambda _question: True) if assume_yes else prompt_yes_no
    runner = CommandRunner()
    return BootstrapService(
        settings.bootstrap,
        tools=settings.tools,
        runner=runner,
        sealed_secrets=create_sealed_secret_service(settings, confirm=confirm),
        confirm=confirm,
    )


def create_deployment_service(settings: ToolkitSettings) -> DeploymentService:
    return DeploymentService(
        settings.deploy,
        kubectl=KubectlAdapter(executable=settings.tools.kubectl, runner=CommandRunner()),
    )


# ----------------------------------------------------------------------
def _scan_overrides(args: argparse.Namespace) -> dict[str, Any]:
    overrides: dict[str, Any] = {}
    if getattr(args, "dockerfile", None) is not None:
        overrides["dockerfile"] = args.dockerfile
    if getattr(args, "image_tag", None):
        overrides["image_tag"] = args.image_tag
    if getattr(args, "skip_checks", None):
        overrides["skip_checks"] = list(args.skip_checks)
    if getattr(args, "auto_install", None) is not None:
        overrides["auto_install"] = args.auto_install
    if getattr(args, "fail_on", None):
        overrides["fail_on"] = FindingSeverity(args.fail_on)
    if getattr(args, "commit_count", None):
        overrides["commit_count"] = args.commit_count
    return overrides


def _emit_report(report: ScanReport, args: argparse.Namespace) -> int:
    print(_format_report(report, args.format))

    if args.output is not None:
        _write_file(args.output, json.dumps(report.to_dict(), indent=2))
    sarif_output = getattr(args, "sarif_output", None)
    if sarif_output is not None:
        _write_file(sarif_output, json.dumps(build_sarif(report), indent=2))

    return _report_exit_code(report)


def _handle_scan(args: argparse.Namespace, settings: ToolkitSettings) -> int:
    settings.scan = settings.scan.model_copy(update=_scan_overrides(args))
    service = create_scan_service(settings)
    report = service.run(args.path)
    return _emit_report(report, args)


def _handle_audit(args: argparse.Namespace, settings: ToolkitSettings) -> int:
    settings.scan = settings.scan.model_copy(update=_scan_overrides(args))
    service = create_scan_service(settings)
    report = service.audit(args.path)
    return _emit_report(report, args)


def _handle_seal(args: argparse.Namespace, settings: ToolkitSettings) -> int:
    literals = parse_literals(args.literals)
    service = create_sealed_secret_service(
        settings,
        controller_namespace=args.controller_namespace,
        controller_name=args.controller_name,
    )
    print(f"Creating sealed secret: {args.name} in namespace: {args.namespace}")
    result = service.create(
        args.name,
        args.namespace,
        literals,
        output_dir=args.output_dir,
        cert=args.cert,
        output_format=args.sealed_format,
        apply=args.apply,
    )

    print(f"Sealed secret created: {result.path}")
    print("")
    print("You can now:")
    print(f"1. Commit {result.path.name} to your Git repository")
    print(f"2. Apply it to your cluster: kubectl apply -f {result.path.name}")
    print("3. The sealed secret will be automatically decrypted by the controller")
    if result.applied:
        print("Sealed secret applied to cluster successfully!")
    return 0


def _handle_setup_sealed_secrets(args: argparse.Namespace, settings: ToolkitSettings) -> int:
    service = create_sealed_secret_service(settings)
    cert_path = service.setup_controller(
        version=args.version,
        timeout=args.timeout,
        cert_path=args.cert_out,
        install_kubeseal=args.install_kubeseal,
    )
    print("Sealed Secrets Controller is ready!")
    print(f"Public key saved to: {cert_path}")
    print("")
    print("Next steps:")
    print("1. Use 'devsecops seal' to encrypt your secrets")
    print("2. Store the sealed secrets in your Git repository")
    print("3. Apply sealed secrets to your cluster")
    return 0


def _handle_bootstrap(args: argparse.Namespace, settings: ToolkitSettings) -> int:
    if args.tfvars is not None:
        settings.bootstrap = settings.bootstrap.model_copy(update={"tfvars_file": args.tfvars})
    service = create_bootstrap_service(settings, assume_yes=args.yes)
    result = service.run(args.path, setup_sealed_secrets=args.sealed_secrets)

    print("")
    print("Setup complete!")
    print("Next steps:")
    print("1. Commit and push your code to GitHub")
    print("2. GitHub Actions will automatically run the DevSecOps pipeline")
    print("3. Create sealed secrets using: devsecops seal")
    print("4. Deploy your applications to the Kubernetes cluster")
    if result.cluster:
        print(f"Cluster: {result.cluster} ({result.region})")
    return 0


def _handle_deploy(args: argparse.Namespace, settings: ToolkitSettings) -> int:
    service = create_deployment_service(settings)
    output = service.rollout(
        args.image,
        deployment=args.deployment,
        namespace=args.namespace,
        container=args.container,
        port=args.port,
        target_port=args.target_port,
        service_type=args.service_type,
        timeout=args.timeout,
    )
    print(output)
    return 0


HANDLERS: dict[str, Callable[[argparse.Namespace, ToolkitSettings], int]] = {
    "scan": _handle_scan,
    "audit": _handle_audit,
    "seal": _handle_seal,
    "setup-sealed-secrets": _handle_setup_sealed_secrets,
    "bootstrap": _handle_bootstrap,
    "deploy": _handle_deploy,
}


def main(argv: Sequence[str] | None = None) -> int:
    """Entry point used by tests and the console script."""

    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0

    try:
        settings = load_settings(args.config)
    except SettingsError as exc:
        print(f"Error: {exc}")
        return 2

    try:
        configure_logging(
            args.log_level or settings.log_level, args.log_format or settings.log_format
        )
        return HANDLERS[args.command](args, settings)
    except HANDLED_ERRORS as exc:
        log.error("command_failed", command=args.command, error=str(exc))
        print(f"Error: {exc}")
        return 2


def run() -> None:  # pragma: no cover - thin wrapper for console entry point
    """Execute the CLI and exit with the produced status code."""

    raise SystemExit(main())


if __name__ == "__main__":  # pragma: no cover - module execution guard
    run()
