from __future__ import annotations

from pathlib import Path

import typer

from appdrop.cli.commands._helpers import exit_on_release_error, print_json
from appdrop.cli.context import build_context
from appdrop.platform.signals import termination_guard
from appdrop.services.release.detector import detect_pipeline
from appdrop.services.release.model import ReleaseContext
from appdrop.services.release.orchestrator import ReleaseLayout, run_release
from appdrop.services.release.secrets import load_secrets, required_secrets
from appdrop.services.release.stages import disable_stages


def build(
    scheme: str | None = typer.Option(None, "--scheme", help="Xcode scheme (default: project name)"),
    project: str | None = typer.Option(None, "--project", help="Path to the .xcodeproj"),
    output: Path | None = typer.Option(None, "--output", help="Output directory"),
    json_output: bool = typer.Option(False, "--json", help="Print the result as JSON"),
) -> None:
    """Archive, export and sign the app (no notarization, no disk image)."""
    ctx = build_context()
    descriptor = ctx.project(scheme, project)
    decision = disable_stages(
        detect_pipeline(descriptor, ctx.detection_options(output)),
        ("notarize_app", "create_dmg"),
    )

    secrets = load_secrets(required_secrets(decision), ctx.environ)
    exit_on_release_error(secrets, ctx)

    context = ReleaseContext(project=descriptor, decision=decision, secrets=secrets.unwrap())
    with termination_guard():
        result = run_release(context, console=ctx.console)
    exit_on_release_error(result, ctx)

    if json_output:
        app_path = ReleaseLayout.create(descriptor, decision).app_path
        print_json(ctx, {"project": descriptor.as_dict(), "app": str(app_path)})
