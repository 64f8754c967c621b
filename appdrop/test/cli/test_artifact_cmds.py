from __future__ import annotations

import json
from pathlib import Path

import pytest
import typer

from appdrop.cli.context import CLIContext
from appdrop.core.config import AppdropConfig
from appdrop.core.errors import ErrorCode
from appdrop.core.result import Ok, Result
from appdrop.output.console import MockConsole
from appdrop.services.release.errors import ReleaseError

IDENTITY = "Developer ID Application: Example Corp (ABCDE12345)"


def _ctx(tmp_path: Path, environ: dict[str, str] | None = None) -> CLIContext:
    return CLIContext(
        root=tmp_path,
        config=AppdropConfig(),
        console=MockConsole(),
        environ=environ or {},
    )


def _file(path: Path) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(b"data")
    return path


def _messages(ctx: CLIContext) -> list[str]:
    assert isinstance(ctx.console, MockConsole)
    return ctx.console.messages


def test_notarize_requires_exactly_one_target(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    import appdrop.cli.commands.notarize_cmd as notarize_cmd

    ctx = _ctx(tmp_path)
    monkeypatch.setattr(notarize_cmd, "build_context", lambda: ctx)

    with pytest.raises(typer.Exit) as exc:
        notarize_cmd.notarize(
            zip_path=None, dmg_path=None, notary_timeout=None, notary_poll=None, json_output=False
        )
    assert exc.value.exit_code == int(ErrorCode.USER_ERROR)

    with pytest.raises(typer.Exit) as exc:
        notarize_cmd.notarize(
            zip_path=Path("a.zip"),
            dmg_path=Path("a.dmg"),
            notary_timeout=None,
            notary_poll=None,
            json_output=False,
        )
    assert exc.value.exit_code == int(ErrorCode.USER_ERROR)


def test_notarize_missing_file(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    import appdrop.cli.commands.notarize_cmd as notarize_cmd

    ctx = _ctx(tmp_path)
    monkeypatch.setattr(notarize_cmd, "build_context", lambda: ctx)

    with pytest.raises(typer.Exit) as exc:
        notarize_cmd.notarize(
            zip_path=Path("missing.zip"),
            dmg_path=None,
            notary_timeout=None,
            notary_poll=None,
            json_output=False,
        )

    assert exc.value.exit_code == int(ErrorCode.USER_ERROR)
    assert any("File not found" in m for m in _messages(ctx))


def test_notarize_submits_resolved_target(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    import appdrop.cli.commands.notarize_cmd as notarize_cmd

    _file(tmp_path / "build" / "Clipper.dmg")
    ctx = _ctx(
        tmp_path,
        {"APP_STORE_CONNECT_KEY_ID": "KEY123", "APP_STORE_CONNECT_PRIVATE_KEY": "p8-body"},
    )
    monkeypatch.setattr(notarize_cmd, "build_context", lambda: ctx)
    seen: dict[str, object] = {}

    def fake_notarize_file(**kwargs: object) -> Result[None, ReleaseError]:
        seen.update(kwargs)
        return Ok(None)

    monkeypatch.setattr(notarize_cmd, "notarize_file", fake_notarize_file)

    notarize_cmd.notarize(
        zip_path=None,
        dmg_path=Path("build/Clipper.dmg"),
        notary_timeout="1h",
        notary_poll=None,
        json_output=True,
    )

    target = (tmp_path / "build" / "Clipper.dmg").resolve()
    assert seen["target"] == target
    assert json.loads(_messages(ctx)[-1]) == {"target": str(target)}


def test_notarize_missing_secrets(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    import appdrop.cli.commands.notarize_cmd as notarize_cmd

    _file(tmp_path / "Clipper.zip")
    ctx = _ctx(tmp_path, {"APP_STORE_CONNECT_KEY_ID": "KEY123"})
    monkeypatch.setattr(notarize_cmd, "build_context", lambda: ctx)

    with pytest.raises(typer.Exit) as exc:
        notarize_cmd.notarize(
            zip_path=Path("Clipper.zip"),
            dmg_path=None,
            notary_timeout=None,
            notary_poll=None,
            json_output=False,
        )

    assert exc.value.exit_code == int(ErrorCode.ENV_ERROR)
    assert any("APP_STORE_CONNECT_PRIVATE_KEY" in m for m in _messages(ctx))


def test_appcast_without_tools(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    import appdrop.cli.commands.appcast_cmd as appcast_cmd

    _file(tmp_path / "release" / "Clipper.dmg")
    ctx = _ctx(tmp_path, {"SPARKLE_BIN": str(tmp_path / "empty")})
    monkeypatch.setattr(appcast_cmd, "build_context", lambda: ctx)

    with pytest.raises(typer.Exit) as exc:
        appcast_cmd.appcast(dmg_path=Path("release/Clipper.dmg"), output=None, json_output=False)

    assert exc.value.exit_code == int(ErrorCode.ENV_ERROR)
    assert any("Sparkle tools not found" in m for m in _messages(ctx))


def test_appcast_missing_dmg(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    import appdrop.cli.commands.appcast_cmd as appcast_cmd

    ctx = _ctx(tmp_path)
    monkeypatch.setattr(appcast_cmd, "build_context", lambda: ctx)

    with pytest.raises(typer.Exit) as exc:
        appcast_cmd.appcast(dmg_path=Path("nope.dmg"), output=None, json_output=False)

    assert exc.value.exit_code == int(ErrorCode.USER_ERROR)


def test_appcast_writes_next_to_dmg(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    import appdrop.cli.commands.appcast_cmd as appcast_cmd

    dmg = _file(tmp_path / "release" / "Clipper.dmg")
    bin_dir = tmp_path / "sparkle"
    _file(bin_dir / "sign_update")
    _file(bin_dir / "generate_appcast")
    ctx = _ctx(tmp_path, {"SPARKLE_BIN": str(bin_dir), "SPARKLE_PRIVATE_KEY": "feed-key"})
    monkeypatch.setattr(appcast_cmd, "build_context", lambda: ctx)
    seen: dict[str, object] = {}

    def fake_generate_appcast(**kwargs: object) -> Result[Path, ReleaseError]:
        seen.update(kwargs)
        output_dir = kwargs["output_dir"]
        assert isinstance(output_dir, Path)
        return Ok(output_dir / "appcast.xml")

    monkeypatch.setattr(appcast_cmd, "generate_appcast", fake_generate_appcast)

    appcast_cmd.appcast(dmg_path=Path("release/Clipper.dmg"), output=None, json_output=True)

    assert seen["dmg_path"] == dmg.resolve()
    assert seen["output_dir"] == dmg.resolve().parent
    assert seen["private_key"] == "feed-key"
    assert json.loads(_messages(ctx)[-1]) == {"appcast": str(dmg.resolve().parent / "appcast.xml")}


def test_dmg_requires_built_app(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    import appdrop.cli.commands.dmg_cmd as dmg_cmd

    (tmp_path / "Clipper.xcodeproj").mkdir()
    ctx = _ctx(tmp_path, {"SPARKLE_BIN": str(tmp_path / "empty")})
    monkeypatch.setattr(dmg_cmd, "build_context", lambda: ctx)

    with pytest.raises(typer.Exit) as exc:
        dmg_cmd.dmg(scheme=None, project=None, app_path=None, output=None, json_output=False)

    assert exc.value.exit_code == int(ErrorCode.USER_ERROR)
    assert any("App not found" in m for m in _messages(ctx))


def test_dmg_packages_into_output(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    import appdrop.cli.commands.dmg_cmd as dmg_cmd

    (tmp_path / "Clipper.xcodeproj").mkdir()
    (tmp_path / "build" / "Clipper.app").mkdir(parents=True)
    ctx = _ctx(
        tmp_path,
        {"SPARKLE_BIN": str(tmp_path / "empty"), "DEVELOPER_ID_APPLICATION": IDENTITY},
    )
    monkeypatch.setattr(dmg_cmd, "build_context", lambda: ctx)
    seen: dict[str, object] = {}

    def fake_create_dmg(
        app_path: Path,
        dmg_path: Path,
        staging_dir: Path,
        name: str,
        identity: str,
        *,
        cwd: Path,
        console: object,
    ) -> Result[Path, ReleaseError]:
        seen.update(app=app_path, dmg=dmg_path, name=name, identity=identity)
        return Ok(dmg_path)

    monkeypatch.setattr(dmg_cmd, "create_dmg", fake_create_dmg)

    dmg_cmd.dmg(scheme=None, project=None, app_path=None, output=Path("dist"), json_output=False)

    root = tmp_path.resolve()
    assert seen == {
        "app": root / "build" / "Clipper.app",
        "dmg": root / "dist" / "Clipper.dmg",
        "name": "Clipper",
        "identity": IDENTITY,
    }
    assert (root / "dist").is_dir()
