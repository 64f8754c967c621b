"""Release orchestration: build, sign, notarize, package and publish.

Stages run strictly in order and only when their ``PipelineDecision`` flag
is set:

    build_app          xcodebuild archive + -exportArchive, stage <name>.app
    (entitlements)     render per-run entitlements copies
    sign_update_feed   codesign Sparkle helpers (narrow entitlements)
    sign_app           codesign the app (primary entitlements)
    notarize_app       ditto zip -> notarytool -> staple app
    create_dmg         staging dir -> hdiutil UDZO -> codesign dmg
    notarize_dmg       notarytool -> staple dmg
    (publish)          copy dmg to output_dir
    generate_feed_entry sign_update + generate_appcast

Every credential (notary key, feed key, rendered entitlements, export
options) lives in directories owned by a ``ScopedTempDirs`` that is cleaned
up on every exit path. The first failing stage ends the run.
"""

from __future__ import annotations

import shutil
from dataclasses import dataclass
from pathlib import Path

from appdrop.core.project import ProjectDescriptor
from appdrop.core.result import Err, Ok, Result
from appdrop.output.console import ConsoleProtocol
from appdrop.platform.files import ScopedTempDirs, replace_tree, write_private_text
from appdrop.platform.process import run as run_process
from appdrop.services.release.commands import (
    archive_args,
    codesign_args,
    ditto_zip_args,
    export_args,
    generate_appcast_args,
    hdiutil_create_args,
    sign_update_args,
    staple_args,
)
from appdrop.services.release.errors import ReleaseError, config_missing
from appdrop.services.release.model import FeedTools, PipelineDecision, ReleaseContext
from appdrop.services.release.notary import NOTARY_KEY_FILENAME, notarize
from appdrop.services.release.secrets import (
    APP_STORE_CONNECT_PRIVATE_KEY,
    DEVELOPER_ID_APPLICATION,
    DEVELOPMENT_TEAM,
    SPARKLE_PRIVATE_KEY,
    missing_secrets,
    required_secrets,
)
from appdrop.services.release.templater import (
    prepare_entitlements,
    resolve_bundle_identifier,
    resolve_team_id,
    write_export_options,
)

DOCTOR_HINT = "Run: appdrop doctor --fix"

SPARKLE_FRAMEWORK = Path("Contents") / "Frameworks" / "Sparkle.framework"

# Signed innermost first; the framework itself is signed after its helpers.
UPDATER_HELPERS: tuple[str, ...] = (
    "Versions/Current/XPCServices/Installer.xpc",
    "Versions/Current/XPCServices/Downloader.xpc",
    "Versions/Current/Autoupdate",
    "Versions/Current/Updater.app",
)

FEED_KEY_FILENAME = "sparkle_private_key"


@dataclass(frozen=True, slots=True)
class ReleaseLayout:
    """Where a run puts its intermediate and final artifacts."""

    build_dir: Path
    output_dir: Path
    derived_data: Path
    archive_path: Path
    export_dir: Path
    app_path: Path
    app_zip: Path
    dmg_path: Path
    dmg_staging: Path

    @classmethod
    def create(cls, project: ProjectDescriptor, decision: PipelineDecision) -> ReleaseLayout:
        build_dir = decision.build_dir
        return cls(
            build_dir=build_dir,
            output_dir=decision.output_dir,
            derived_data=build_dir / "DerivedData",
            archive_path=build_dir / f"{project.name}.xcarchive",
            export_dir=build_dir / "export",
            app_path=build_dir / f"{project.name}.app",
            app_zip=build_dir / f"{project.name}.zip",
            dmg_path=build_dir / f"{project.name}.dmg",
            dmg_staging=build_dir / "dmg",
        )

    @property
    def published_dmg(self) -> Path:
        return self.output_dir / self.dmg_path.name


def _run_stage(
    stage: str,
    cmd: list[str],
    *,
    cwd: Path,
    console: ConsoleProtocol,
) -> Result[str, ReleaseError]:
    console.debug(" ".join(cmd))
    result = run_process(cmd, cwd=cwd)
    if isinstance(result, Err):
        e = result.error
        return Err(
            ReleaseError(
                kind="stage_failed",
                message=f"{stage}: {e}",
                hint=e.tail(),
                stage=stage,
            )
        )
    return result


def _fs_failure(stage: str, error: OSError) -> ReleaseError:
    return ReleaseError(
        kind="stage_failed",
        message=f"{stage}: {error.strerror or error}",
        hint=str(error.filename) if error.filename else None,
        stage=stage,
    )


def preflight(context: ReleaseContext, layout: ReleaseLayout) -> Result[str | None, ReleaseError]:
    """Check everything that can be known before touching the disk.

    Returns the team id when the build stage needs one.
    """
    decision = context.decision
    secrets = context.secrets

    if (decision.sign_app or decision.sign_update_feed) and decision.missing_entitlements:
        return Err(config_missing("Missing entitlements", hint=DOCTOR_HINT))
    if decision.missing_info_plist:
        return Err(config_missing("Missing Info.plist", hint=DOCTOR_HINT))
    if decision.generate_feed_entry and decision.updater_tools is None:
        return Err(
            config_missing(
                "Sparkle tools not found",
                hint="Set SPARKLE_BIN or install sparkle.",
            )
        )

    missing = missing_secrets(secrets, required_secrets(decision))
    if missing:
        return Err(config_missing(f"missing secrets: {', '.join(missing)}"))

    if not decision.build_app:
        if (decision.sign_app or decision.create_dmg) and not layout.app_path.is_dir():
            return Err(
                config_missing(
                    f"App not found at {layout.app_path}",
                    hint="Enable the build stage or build the app first.",
                )
            )
        return Ok(None)

    team = resolve_team_id(secrets[DEVELOPER_ID_APPLICATION], secrets.get(DEVELOPMENT_TEAM))
    if isinstance(team, Err):
        return team
    return Ok(team.value)


def run_release(context: ReleaseContext, *, console: ConsoleProtocol) -> Result[None, ReleaseError]:
    """Run every enabled stage of ``context``; stop at the first failure."""
    layout = ReleaseLayout.create(context.project, context.decision)
    ready = preflight(context, layout)
    if isinstance(ready, Err):
        return ready

    try:
        layout.build_dir.mkdir(parents=True, exist_ok=True)
        layout.output_dir.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        return Err(_fs_failure("prepare", e))

    with ScopedTempDirs(layout.build_dir) as scope:
        return _run_stages(context, layout, ready.value, scope, console)


def _run_stages(
    context: ReleaseContext,
    layout: ReleaseLayout,
    team_id: str | None,
    scope: ScopedTempDirs,
    console: ConsoleProtocol,
) -> Result[None, ReleaseError]:
    project = context.project
    decision = context.decision
    secrets = context.secrets
    cwd = project.root
    identity = secrets.get(DEVELOPER_ID_APPLICATION, "")

    notary_key: Path | None = None
    if decision.needs_notarization:
        try:
            notary_key = scope.write_secret(
                "notary-", NOTARY_KEY_FILENAME, secrets[APP_STORE_CONNECT_PRIVATE_KEY]
            )
        except OSError as e:
            return Err(_fs_failure("prepare", e))

    if decision.build_app:
        console.header(f"Building {project.name} ({project.scheme})")
        built = build_archive(
            project, layout, identity, team_id, scope=scope, console=console
        )
        if isinstance(built, Err):
            return built

    if decision.sign_app or decision.sign_update_feed:
        rendered = materialize_entitlements(
            decision, resolve_bundle_identifier(project), scope=scope
        )
        if isinstance(rendered, Err):
            return rendered
        app_entitlements, updater_entitlements = rendered.value

        if decision.sign_update_feed:
            console.header("Signing Sparkle helpers")
            signed = sign_updater(
                layout.app_path, identity, updater_entitlements, cwd=cwd, console=console
            )
            if isinstance(signed, Err):
                return signed

        if decision.sign_app:
            console.header("Signing app")
            signed = sign_app(layout.app_path, identity, app_entitlements, cwd=cwd, console=console)
            if isinstance(signed, Err):
                return signed

    if decision.notarize_app and notary_key is not None:
        console.header("Notarizing app")
        try:
            zipped = _run_stage(
                "notarize_app",
                ditto_zip_args(layout.app_path, layout.app_zip),
                cwd=cwd,
                console=console,
            )
            if isinstance(zipped, Err):
                return zipped
            notarized = notarize(
                key_path=notary_key,
                secrets=secrets,
                target=layout.app_zip,
                label="app",
                settings=context.notary,
                console=console,
                cwd=cwd,
            )
            if isinstance(notarized, Err):
                return notarized
            stapled = _run_stage(
                "notarize_app", staple_args(layout.app_path), cwd=cwd, console=console
            )
            if isinstance(stapled, Err):
                return stapled
        finally:
            layout.app_zip.unlink(missing_ok=True)

    if not decision.create_dmg:
        console.success(f"App: {layout.app_path}")
        return Ok(None)

    console.header("Creating DMG")
    dmg = create_dmg(
        layout.app_path,
        layout.dmg_path,
        layout.dmg_staging,
        project.name,
        identity,
        cwd=cwd,
        console=console,
    )
    if isinstance(dmg, Err):
        return dmg

    if decision.notarize_dmg and notary_key is not None:
        console.header("Notarizing DMG")
        notarized = notarize(
            key_path=notary_key,
            secrets=secrets,
            target=layout.dmg_path,
            label="dmg",
            settings=context.notary,
            console=console,
            cwd=cwd,
        )
        if isinstance(notarized, Err):
            return notarized
        stapled = _run_stage("notarize_dmg", staple_args(layout.dmg_path), cwd=cwd, console=console)
        if isinstance(stapled, Err):
            return stapled

    try:
        shutil.copy2(layout.dmg_path, layout.published_dmg)
    except OSError as e:
        return Err(_fs_failure("publish", e))

    if decision.generate_feed_entry and decision.updater_tools is not None:
        console.header("Generating appcast")
        feed = generate_appcast(
            tools=decision.updater_tools,
            dmg_path=layout.dmg_path,
            output_dir=layout.output_dir,
            private_key=secrets[SPARKLE_PRIVATE_KEY],
            scope=scope,
            console=console,
            cwd=cwd,
        )
        if isinstance(feed, Err):
            return feed

    console.success(f"Release: {layout.published_dmg}")
    return Ok(None)


def materialize_entitlements(
    decision: PipelineDecision,
    bundle_id: str | None,
    *,
    scope: ScopedTempDirs,
) -> Result[tuple[Path | None, Path | None], ReleaseError]:
    """Entitlements to sign the app and (when the feed is signed) the Sparkle helpers with.

    Rendered copies go into a scoped directory; the sources are only read.
    """
    sources: list[tuple[Path | None, str]] = [(decision.entitlements_path, "app")]
    if decision.sign_update_feed:
        sources.append((decision.updater_entitlements_path, "sparkle"))

    rendered: list[Path | None] = []
    try:
        output_dir = scope.make("entitlements-")
        for source, label in sources:
            try:
                rendered.append(prepare_entitlements(source, bundle_id, output_dir, label))
            except UnicodeDecodeError:
                return Err(
                    config_missing(
                        f"Entitlements file is not UTF-8 text: {source}",
                        hint="Re-save it as UTF-8 XML.",
                    )
                )
    except OSError as e:
        return Err(_fs_failure("entitlements", e))

    updater = rendered[1] if len(rendered) > 1 else None
    return Ok((rendered[0], updater))


def build_archive(
    project: ProjectDescriptor,
    layout: ReleaseLayout,
    identity: str,
    team_id: str | None,
    *,
    scope: ScopedTempDirs,
    console: ConsoleProtocol,
) -> Result[Path, ReleaseError]:
    """Archive, export and stage ``<build>/<name>.app`` (replacing any old one)."""
    cwd = project.root
    archived = _run_stage(
        "build_app",
        archive_args(project, layout.derived_data, layout.archive_path, identity, team_id),
        cwd=cwd,
        console=console,
    )
    if isinstance(archived, Err):
        return archived

    try:
        options_plist = write_export_options(
            scope.make("export-") / "ExportOptions.plist", team_id or ""
        )
        if layout.export_dir.exists():
            shutil.rmtree(layout.export_dir)
    except OSError as e:
        return Err(_fs_failure("export", e))

    exported = _run_stage(
        "export",
        export_args(layout.archive_path, layout.export_dir, options_plist),
        cwd=cwd,
        console=console,
    )
    if isinstance(exported, Err):
        return exported

    exported_app = layout.export_dir / layout.app_path.name
    if not exported_app.is_dir():
        return Err(
            ReleaseError(
                kind="stage_failed",
                message=f"export: exported app not found at {exported_app}",
                stage="export",
            )
        )

    try:
        layout.app_zip.unlink(missing_ok=True)
        layout.dmg_path.unlink(missing_ok=True)
        replace_tree(exported_app, layout.app_path)
    except OSError as e:
        return Err(_fs_failure("export", e))

    return Ok(layout.app_path)


def sign_updater(
    app_path: Path,
    identity: str,
    entitlements: Path | None,
    *,
    cwd: Path,
    console: ConsoleProtocol,
) -> Result[None, ReleaseError]:
    """Sign the Sparkle helpers embedded in ``app_path``, then the framework.

    Apps without an embedded Sparkle.framework are left alone.
    """
    framework = app_path / SPARKLE_FRAMEWORK
    if not framework.exists():
        return Ok(None)

    for helper in UPDATER_HELPERS:
        target = framework / helper
        if not target.exists():
            continue
        signed = _run_stage(
            "sign_update_feed",
            codesign_args(target, identity, entitlements=entitlements),
            cwd=cwd,
            console=console,
        )
        if isinstance(signed, Err):
            return signed

    signed = _run_stage(
        "sign_update_feed", codesign_args(framework, identity), cwd=cwd, console=console
    )
    if isinstance(signed, Err):
        return signed
    return Ok(None)


def sign_app(
    app_path: Path,
    identity: str,
    entitlements: Path | None,
    *,
    cwd: Path,
    console: ConsoleProtocol,
) -> Result[None, ReleaseError]:
    if entitlements is None:
        return Err(config_missing("Missing app entitlements", hint=DOCTOR_HINT))
    signed = _run_stage(
        "sign_app",
        codesign_args(app_path, identity, entitlements=entitlements),
        cwd=cwd,
        console=console,
    )
    if isinstance(signed, Err):
        return signed
    return Ok(None)


def create_dmg(
    app_path: Path,
    dmg_path: Path,
    staging_dir: Path,
    name: str,
    identity: str,
    *,
    cwd: Path,
    console: ConsoleProtocol,
) -> Result[Path, ReleaseError]:
    """Build a compressed read-only image holding only the app, then sign it."""
    try:
        if staging_dir.exists():
            shutil.rmtree(staging_dir)
        staging_dir.mkdir(parents=True)
        shutil.copytree(app_path, staging_dir / f"{name}.app", symlinks=True)
        dmg_path.unlink(missing_ok=True)
    except OSError as e:
        return Err(_fs_failure("create_dmg", e))

    try:
        created = _run_stage(
            "create_dmg",
            hdiutil_create_args(name, staging_dir, dmg_path),
            cwd=cwd,
            console=console,
        )
        if isinstance(created, Err):
            return created
    finally:
        shutil.rmtree(staging_dir, ignore_errors=True)

    signed = _run_stage(
        "create_dmg", codesign_args(dmg_path, identity, runtime=False), cwd=cwd, console=console
    )
    if isinstance(signed, Err):
        return signed
    return Ok(dmg_path)


def generate_appcast(
    *,
    tools: FeedTools,
    dmg_path: Path,
    output_dir: Path,
    private_key: str,
    scope: ScopedTempDirs,
    console: ConsoleProtocol,
    cwd: Path,
) -> Result[Path, ReleaseError]:
    """Sign the update and regenerate ``output_dir/appcast.xml``.

    The private key file is deleted before returning, whether or not the
    Sparkle tools succeed.
    """
    try:
        key_path = write_private_text(
            scope.make("sparkle-") / FEED_KEY_FILENAME, private_key.strip()
        )
    except OSError as e:
        return Err(_fs_failure("generate_feed_entry", e))

    try:
        signed = _run_stage(
            "generate_feed_entry",
            sign_update_args(tools, key_path, dmg_path),
            cwd=cwd,
            console=console,
        )
        if isinstance(signed, Err):
            return signed
        generated = _run_stage(
            "generate_feed_entry",
            generate_appcast_args(tools, key_path, output_dir),
            cwd=cwd,
            console=console,
        )
        if isinstance(generated, Err):
            return generated
    finally:
        key_path.unlink(missing_ok=True)

    return Ok(output_dir / "appcast.xml")
