from __future__ import annotations

import os
from pathlib import Path

import pytest
import typer

from appdrop import __version__
from appdrop.cli import app as app_mod
from appdrop.cli.context import ROOT_ENV, VERBOSITY_ENV
from appdrop.core.errors import ErrorCode


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv(ROOT_ENV, raising=False)
    monkeypatch.delenv(VERBOSITY_ENV, raising=False)


def test_version(capsys: pytest.CaptureFixture[str]) -> None:
    with pytest.raises(typer.Exit) as exc:
        app_mod._main(version=True, root=None, quiet=False, verbose=False)  # pyright: ignore[reportPrivateUsage]

    assert exc.value.exit_code == 0
    assert capsys.readouterr().out.strip() == __version__


def test_quiet_and_verbose_conflict() -> None:
    with pytest.raises(typer.Exit) as exc:
        app_mod._main(version=False, root=None, quiet=True, verbose=True)  # pyright: ignore[reportPrivateUsage]

    assert exc.value.exit_code == int(ErrorCode.USER_ERROR)


def test_root_must_be_a_directory(tmp_path: Path) -> None:
    missing = tmp_path / "missing"

    with pytest.raises(typer.Exit) as exc:
        app_mod._main(version=False, root=missing, quiet=False, verbose=False)  # pyright: ignore[reportPrivateUsage]

    assert exc.value.exit_code == int(ErrorCode.USER_ERROR)
    assert ROOT_ENV not in os.environ


def test_root_and_verbosity_are_exported(tmp_path: Path) -> None:
    app_mod._main(version=False, root=tmp_path, quiet=False, verbose=True)  # pyright: ignore[reportPrivateUsage]

    assert os.environ[ROOT_ENV] == str(tmp_path.resolve())
    assert os.environ[VERBOSITY_ENV] == "verbose"


def test_all_commands_registered() -> None:
    names = {info.callback.__name__ for info in app_mod.app.registered_commands if info.callback}

    assert names == {"release", "build", "dmg", "notarize", "appcast", "doctor"}
