from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

import typer

from appdrop.core.config import AppdropConfig, load_config_or_default
from appdrop.core.errors import ErrorCode
from appdrop.core.project import ProjectDescriptor, find_project
from appdrop.core.result import Err
from appdrop.output.console import ConsoleProtocol, RichConsole, Style, Verbosity
from appdrop.services.release.detector import DetectionOptions
from appdrop.services.release.model import NotarySettings

# Set by the root callback (--root, --quiet, --verbose)
ROOT_ENV = "APPDROP_ROOT"
VERBOSITY_ENV = "APPDROP_VERBOSITY"

NOTARY_TIMEOUT_ENV = "APPDROP_NOTARY_TIMEOUT"
NOTARY_POLL_ENV = "APPDROP_NOTARY_POLL"
SPARKLE_BIN_ENV = "SPARKLE_BIN"


@dataclass(frozen=True, slots=True)
class CLIContext:
    root: Path
    config: AppdropConfig
    console: ConsoleProtocol
    environ: Mapping[str, str]

    def resolve_path(self, value: str | Path) -> Path:
        """Expand ``~`` and resolve relative paths against the project root."""
        return (self.root / Path(value).expanduser()).resolve()

    def sparkle_bin(self) -> Path | None:
        raw = self.environ.get(SPARKLE_BIN_ENV, "").strip() or self.config.sparkle.bin
        return self.resolve_path(raw) if raw else None

    def detection_options(self, output: Path | None = None) -> DetectionOptions:
        """Flag > config for the output dir; env > config for the Sparkle bin."""
        return DetectionOptions(
            output_dir=output if output is not None else self.config.paths.output,
            build_dir=self.config.paths.build,
            sparkle_bin=self.sparkle_bin(),
        )

    def notary_settings(
        self,
        timeout: str | None = None,
        poll: str | None = None,
    ) -> NotarySettings:
        """Flag > env > config > defaults; a bad duration is a usage error."""
        timeout = (
            timeout
            or self.environ.get(NOTARY_TIMEOUT_ENV, "").strip()
            or self.config.notary.timeout
        )
        poll = poll or self.environ.get(NOTARY_POLL_ENV, "").strip() or self.config.notary.poll
        result = NotarySettings.from_strings(timeout, poll)
        if isinstance(result, Err):
            self.console.error(result.error.message)
            if result.error.hint:
                self.console.print(f"hint: {result.error.hint}", Style.DIM)
            raise typer.Exit(code=int(ErrorCode.USER_ERROR))
        return result.value

    def project(self, scheme: str | None = None, project: str | None = None) -> ProjectDescriptor:
        result = find_project(self.root, scheme=scheme, project=project)
        if isinstance(result, Err):
            self.console.error(result.error.message)
            raise typer.Exit(code=int(ErrorCode.ENV_ERROR))
        return result.value


def _verbosity(environ: Mapping[str, str]) -> Verbosity:
    raw = environ.get(VERBOSITY_ENV, "").strip().lower()
    if raw == "quiet":
        return Verbosity.QUIET
    if raw == "verbose":
        return Verbosity.VERBOSE
    return Verbosity.NORMAL


def build_context() -> CLIContext:
    environ = dict(os.environ)
    root = Path(environ.get(ROOT_ENV) or Path.cwd()).resolve()

    config_result = load_config_or_default(root)
    if isinstance(config_result, Err):
        typer.echo(f"error: {config_result.error.message}", err=True)
        raise typer.Exit(code=int(ErrorCode.ENV_ERROR))

    return CLIContext(
        root=root,
        config=config_result.value,
        console=RichConsole(_verbosity(environ)),
        environ=environ,
    )
