from __future__ import annotations

from pathlib import Path

import typer

from appdrop.cli.commands._helpers import exit_on_release_error, exit_usage, print_json
from appdrop.cli.context import build_context
from appdrop.core.result import Err
from appdrop.platform.files import ScopedTempDirs
from appdrop.platform.signals import termination_guard
from appdrop.services.release.detector import find_feed_tools
from appdrop.services.release.errors import config_missing
from appdrop.services.release.orchestrator import generate_appcast
from appdrop.services.release.secrets import SPARKLE_PRIVATE_KEY, load_secrets


def appcast(
    dmg_path: Path | None = typer.Option(None, "--dmg-path", help="Signed disk image"),
    output: Path | None = typer.Option(
        None, "--output", help="Directory for appcast.xml (default: next to the dmg)"
    ),
    json_output: bool = typer.Option(False, "--json", help="Print the result as JSON"),
) -> None:
    """Sign an update and regenerate the Sparkle appcast."""
    ctx = build_context()

    if dmg_path is None:
        exit_usage(ctx, "Provide --dmg-path")
    dmg = ctx.resolve_path(dmg_path)
    if not dmg.is_file():
        exit_usage(ctx, f"DMG not found at {dmg}")

    tools = find_feed_tools(ctx.sparkle_bin())
    if tools is None:
        exit_on_release_error(
            Err(config_missing("Sparkle tools not found", hint="Set SPARKLE_BIN or install sparkle.")),
            ctx,
        )
        return

    secrets = load_secrets((SPARKLE_PRIVATE_KEY,), ctx.environ, optional=())
    exit_on_release_error(secrets, ctx)

    output_dir = ctx.resolve_path(output) if output is not None else dmg.parent
    output_dir.mkdir(parents=True, exist_ok=True)

    with termination_guard(), ScopedTempDirs() as scope:
        result = generate_appcast(
            tools=tools,
            dmg_path=dmg,
            output_dir=output_dir,
            private_key=secrets.unwrap()[SPARKLE_PRIVATE_KEY],
            scope=scope,
            console=ctx.console,
            cwd=ctx.root,
        )
    exit_on_release_error(result, ctx)

    appcast_path = output_dir / "appcast.xml"
    if json_output:
        print_json(ctx, {"appcast": str(appcast_path)})
    else:
        ctx.console.success(f"Appcast: {appcast_path}")
