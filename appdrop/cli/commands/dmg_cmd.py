from __future__ import annotations

from pathlib import Path

import typer

from appdrop.cli.commands._helpers import exit_on_release_error, exit_usage, print_json
from appdrop.cli.context import build_context
from appdrop.services.release.detector import detect_pipeline
from appdrop.services.release.orchestrator import ReleaseLayout, create_dmg
from appdrop.services.release.secrets import DEVELOPER_ID_APPLICATION, load_secrets


def dmg(
    scheme: str | None = typer.Option(None, "--scheme", help="Xcode scheme (default: project name)"),
    project: str | None = typer.Option(None, "--project", help="Path to the .xcodeproj"),
    app_path: Path | None = typer.Option(None, "--app-path", help="App bundle to package"),
    output: Path | None = typer.Option(
        None, "--output", help="Directory for the disk image (default: build directory)"
    ),
    json_output: bool = typer.Option(False, "--json", help="Print the result as JSON"),
) -> None:
    """Package a signed app into a signed disk image."""
    ctx = build_context()
    descriptor = ctx.project(scheme, project)
    decision = detect_pipeline(descriptor, ctx.detection_options())
    layout = ReleaseLayout.create(descriptor, decision)

    app = ctx.resolve_path(app_path) if app_path is not None else layout.app_path
    if not app.is_dir():
        exit_usage(ctx, f"App not found at {app}")

    dmg_path = layout.dmg_path
    if output is not None:
        out_dir = ctx.resolve_path(output)
        out_dir.mkdir(parents=True, exist_ok=True)
        dmg_path = out_dir / dmg_path.name

    secrets = load_secrets((DEVELOPER_ID_APPLICATION,), ctx.environ)
    exit_on_release_error(secrets, ctx)

    ctx.console.header("Creating DMG")
    result = create_dmg(
        app,
        dmg_path,
        layout.dmg_staging,
        descriptor.name,
        secrets.unwrap()[DEVELOPER_ID_APPLICATION],
        cwd=descriptor.root,
        console=ctx.console,
    )
    exit_on_release_error(result, ctx)

    if json_output:
        print_json(ctx, {"dmgPath": str(dmg_path)})
    else:
        ctx.console.success(f"DMG: {dmg_path}")
