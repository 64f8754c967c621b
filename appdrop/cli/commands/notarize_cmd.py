from __future__ import annotations

from pathlib import Path

import typer

from appdrop.cli.commands._helpers import exit_on_release_error, exit_usage, print_json
from appdrop.cli.context import build_context
from appdrop.platform.signals import termination_guard
from appdrop.services.release.notary import notarize_file
from appdrop.services.release.secrets import NOTARY_SECRETS, load_secrets


def notarize(
    zip_path: Path | None = typer.Option(None, "--zip-path", help="Zipped app to notarize"),
    dmg_path: Path | None = typer.Option(None, "--dmg-path", help="Disk image to notarize"),
    notary_timeout: str | None = typer.Option(
        None, "--notary-timeout", help="Notarization deadline, e.g. 2h"
    ),
    notary_poll: str | None = typer.Option(
        None, "--notary-poll", help="Notarization poll interval, e.g. 30s"
    ),
    json_output: bool = typer.Option(False, "--json", help="Print the result as JSON"),
) -> None:
    """Submit a zip or disk image for notarization and wait for the verdict."""
    ctx = build_context()

    chosen = zip_path if zip_path is not None else dmg_path
    if chosen is None or (zip_path is not None and dmg_path is not None):
        exit_usage(ctx, "Provide exactly one of --zip-path or --dmg-path")
    target = ctx.resolve_path(chosen)
    if not target.is_file():
        exit_usage(ctx, f"File not found: {target}")

    settings = ctx.notary_settings(notary_timeout, notary_poll)
    secrets = load_secrets(NOTARY_SECRETS, ctx.environ)
    exit_on_release_error(secrets, ctx)

    with termination_guard():
        result = notarize_file(
            target=target,
            secrets=secrets.unwrap(),
            settings=settings,
            console=ctx.console,
        )
    exit_on_release_error(result, ctx)

    if json_output:
        print_json(ctx, {"target": str(target)})
    else:
        ctx.console.success(f"Notarized {target}")
