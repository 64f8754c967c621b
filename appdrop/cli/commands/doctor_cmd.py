from __future__ import annotations

import typer

from appdrop.cli.commands._helpers import exit_on_error
from appdrop.cli.context import CLIContext, build_context
from appdrop.core.errors import ErrorCode
from appdrop.output.console import Style
from appdrop.services.checks import CheckResult, CheckStatus
from appdrop.services.doctor import apply_fixes, diagnose
from appdrop.services.release.detector import detect_pipeline


def doctor(
    scheme: str | None = typer.Option(None, "--scheme", help="Xcode scheme (default: project name)"),
    project: str | None = typer.Option(None, "--project", help="Path to the .xcodeproj"),
    fix: bool = typer.Option(
        False, "--fix", help="Create missing entitlements/Info.plist and update the project"
    ),
) -> None:
    """Check the project and tools needed for a release."""
    ctx = build_context()
    descriptor = ctx.project(scheme, project)
    options = ctx.detection_options()
    decision = detect_pipeline(descriptor, options)

    ctx.console.print(f"Project: {descriptor.project_path}", Style.DIM)

    if fix:
        fixed = apply_fixes(descriptor, decision)
        exit_on_error(fixed, ctx, error_code=ErrorCode.IO_ERROR)
        report = fixed.unwrap()
        for path in report.created:
            ctx.console.success(f"Created {path}")
        if report.project_updated:
            ctx.console.success("Updated project build settings")
        if not report.changed:
            ctx.console.print("Nothing to fix", Style.DIM)
        decision = detect_pipeline(descriptor, options)

    results = diagnose(descriptor, decision)
    _print_results(ctx, results)

    if any(r.is_error for r in results):
        raise typer.Exit(code=int(ErrorCode.ENV_ERROR))


def _print_results(ctx: CLIContext, results: list[CheckResult]) -> None:
    console = ctx.console
    console.header("Doctor")
    for r in results:
        console.print(f"{r.name}: {r.message}", _style_for_status(r.status))
        if r.hint and r.status != CheckStatus.OK:
            console.print(f"hint: {r.hint}", Style.DIM)


def _style_for_status(status: CheckStatus) -> Style:
    if status == CheckStatus.OK:
        return Style.SUCCESS
    if status == CheckStatus.WARNING:
        return Style.WARNING
    return Style.ERROR
