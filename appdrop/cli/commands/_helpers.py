"""Shared helpers for CLI commands."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, NoReturn, TypeVar

import typer

from appdrop.core.errors import ErrorCode
from appdrop.core.result import Err, Result
from appdrop.output.console import Style
from appdrop.services.release.errors import ReleaseError, ReleaseErrorKind

if TYPE_CHECKING:
    from appdrop.cli.context import CLIContext

T = TypeVar("T")
E = TypeVar("E")


_KIND_CODES: dict[ReleaseErrorKind, ErrorCode] = {
    "config_missing": ErrorCode.ENV_ERROR,
    "stage_failed": ErrorCode.BUILD_ERROR,
    "notarization_failed": ErrorCode.NOTARY_ERROR,
    "notarization_timeout": ErrorCode.NOTARY_ERROR,
    "invalid_input": ErrorCode.USER_ERROR,
}


def release_error_code(kind: ReleaseErrorKind) -> ErrorCode:
    return _KIND_CODES.get(kind, ErrorCode.BUILD_ERROR)


def exit_on_error(
    result: Result[T, E],
    ctx: CLIContext,
    error_code: ErrorCode = ErrorCode.BUILD_ERROR,
) -> None:
    """Exit with error if result is Err, otherwise return.

    Expects error objects to have 'message' and optional 'hint' attributes.
    """
    if isinstance(result, Err):
        error = result.error
        message: str = getattr(error, "message", str(error))
        hint: str | None = getattr(error, "hint", None)
        ctx.console.error(message)
        if hint:
            ctx.console.print(f"hint: {hint}", Style.DIM)
        raise typer.Exit(code=int(error_code))


def exit_on_release_error(result: Result[T, ReleaseError], ctx: CLIContext) -> None:
    """Like ``exit_on_error``, with the exit code taken from the error kind."""
    if isinstance(result, Err):
        error = result.error
        ctx.console.error(error.message)
        if error.hint:
            ctx.console.print(f"hint: {error.hint}", Style.DIM)
        if error.submission_id:
            ctx.console.print(f"submission id: {error.submission_id}", Style.DIM)
        raise typer.Exit(code=int(release_error_code(error.kind)))


def exit_usage(ctx: CLIContext, message: str) -> NoReturn:
    ctx.console.error(message)
    raise typer.Exit(code=int(ErrorCode.USER_ERROR))


def print_json(ctx: CLIContext, payload: object) -> None:
    ctx.console.data(json.dumps(payload, indent=2, sort_keys=True))
