from __future__ import annotations

import os
from pathlib import Path

import typer

from appdrop import __version__
from appdrop.cli.commands.appcast_cmd import appcast
from appdrop.cli.commands.build_cmd import build
from appdrop.cli.commands.dmg_cmd import dmg
from appdrop.cli.commands.doctor_cmd import doctor
from appdrop.cli.commands.notarize_cmd import notarize
from appdrop.cli.commands.release_cmd import release
from appdrop.cli.context import ROOT_ENV, VERBOSITY_ENV
from appdrop.core.errors import ErrorCode


app = typer.Typer(
    add_completion=False,
    no_args_is_help=True,
    rich_markup_mode="rich",
)


# Commands
app.command()(release)
app.command()(build)
app.command()(dmg)
app.command()(notarize)
app.command()(appcast)
app.command()(doctor)


@app.callback()
def _main(  # pyright: ignore[reportUnusedFunction]
    version: bool = typer.Option(False, "--version", help="Show version and exit."),
    root: Path | None = typer.Option(
        None,
        "--root",
        help="Project root (default: current directory)",
    ),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Only print warnings and errors."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Also print tool command lines."),
) -> None:
    if version:
        typer.echo(__version__)
        raise typer.Exit(code=0)

    if quiet and verbose:
        typer.echo("error: --quiet and --verbose are mutually exclusive", err=True)
        raise typer.Exit(code=int(ErrorCode.USER_ERROR))
    if quiet:
        os.environ[VERBOSITY_ENV] = "quiet"
    elif verbose:
        os.environ[VERBOSITY_ENV] = "verbose"

    if root is not None:
        try:
            resolved = root.expanduser().resolve()
        except OSError as e:
            typer.echo(f"error: invalid --root: {e}", err=True)
            raise typer.Exit(code=int(ErrorCode.USER_ERROR))

        if not resolved.is_dir():
            typer.echo(f"error: --root '{resolved}' is not a directory", err=True)
            raise typer.Exit(code=int(ErrorCode.USER_ERROR))

        os.environ[ROOT_ENV] = str(resolved)


def main() -> None:
    app()
