from __future__ import annotations

from pathlib import Path

import typer

from appdrop.cli.commands._helpers import exit_on_release_error, print_json
from appdrop.cli.context import CLIContext, build_context
from appdrop.core.project import ProjectDescriptor
from appdrop.output.console import Style
from appdrop.platform.signals import termination_guard
from appdrop.services.release.detector import detect_pipeline
from appdrop.services.release.model import NotarySettings, PipelineDecision, ReleaseContext
from appdrop.services.release.orchestrator import run_release
from appdrop.services.release.secrets import load_secrets, required_secrets
from appdrop.services.release.stages import STAGES, Stage, dependents_of, disable_stages


def stage_overrides(*, no_notarize: bool, no_dmg: bool, no_sparkle: bool) -> list[Stage]:
    """Stages switched off by the ``--no-*`` flags (dependents follow via the cascade)."""
    stages: list[Stage] = []
    if no_notarize:
        stages.extend(("notarize_app", "notarize_dmg"))
    if no_dmg:
        stages.append("create_dmg")
    if no_sparkle:
        stages.append("feed_enabled")
    return stages


def print_plan(
    ctx: CLIContext,
    project: ProjectDescriptor,
    decision: PipelineDecision,
    overrides: list[Stage] | None = None,
) -> None:
    console = ctx.console
    console.print(f"Project: {project.project_path}")
    console.print(f"Scheme: {project.scheme}")
    flags = decision.stage_flags()
    for stage in STAGES:
        console.print(f"  {stage}: {'yes' if flags[stage] else 'no'}", Style.DIM)
    skipped = set(overrides or [])
    for stage in overrides or []:
        also = sorted(dependents_of(stage) - skipped)
        if also:
            console.print(f"Skipping {stage} also skips: {', '.join(also)}", Style.DIM)
    console.print(f"Output: {decision.output_dir}", Style.DIM)
    if decision.feed_declared and not decision.feed_enabled:
        console.warning("Info.plist declares an update feed but it is disabled")
    if decision.missing_entitlements:
        console.warning("Missing entitlements. Run `appdrop doctor --fix`.")
    if decision.missing_info_plist:
        console.warning("Missing Info.plist.")


def release(
    scheme: str | None = typer.Option(None, "--scheme", help="Xcode scheme (default: project name)"),
    project: str | None = typer.Option(None, "--project", help="Path to the .xcodeproj"),
    output: Path | None = typer.Option(None, "--output", help="Output directory"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Print the plan and exit"),
    no_notarize: bool = typer.Option(False, "--no-notarize", help="Skip notarization"),
    no_dmg: bool = typer.Option(False, "--no-dmg", help="Skip the disk image (and the feed)"),
    no_sparkle: bool = typer.Option(False, "--no-sparkle", help="Skip the Sparkle update feed"),
    notary_timeout: str | None = typer.Option(
        None, "--notary-timeout", help="Notarization deadline, e.g. 2h"
    ),
    notary_poll: str | None = typer.Option(
        None, "--notary-poll", help="Notarization poll interval, e.g. 30s"
    ),
    json_output: bool = typer.Option(False, "--json", help="Print the plan as JSON"),
) -> None:
    """Build, sign, notarize, package and publish the app."""
    ctx = build_context()
    descriptor = ctx.project(scheme, project)
    decision = detect_pipeline(descriptor, ctx.detection_options(output))
    overrides = stage_overrides(no_notarize=no_notarize, no_dmg=no_dmg, no_sparkle=no_sparkle)
    decision = disable_stages(decision, overrides)
    if decision.needs_notarization:
        settings = ctx.notary_settings(notary_timeout, notary_poll)
    else:
        settings = NotarySettings()

    if json_output:
        print_json(ctx, {"project": descriptor.as_dict(), "pipeline": decision.as_dict()})
    else:
        print_plan(ctx, descriptor, decision, overrides)

    if dry_run:
        return

    secrets = load_secrets(required_secrets(decision), ctx.environ)
    exit_on_release_error(secrets, ctx)

    context = ReleaseContext(
        project=descriptor,
        decision=decision,
        secrets=secrets.unwrap(),
        notary=settings,
    )
    with termination_guard():
        result = run_release(context, console=ctx.console)
    exit_on_release_error(result, ctx)
