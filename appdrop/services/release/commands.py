"""Command lines for the external release tools.

Pure builders: no I/O, so argument shape is testable on any platform.
"""

from __future__ import annotations

from pathlib import Path

from appdrop.core.project import ProjectDescriptor
from appdrop.services.release.model import FeedTools

BUILD_CONFIGURATION = "Release"
BUILD_DESTINATION = "generic/platform=macOS"


def archive_args(
    project: ProjectDescriptor,
    derived_data: Path,
    archive_path: Path,
    identity: str,
    team_id: str | None = None,
) -> list[str]:
    args = [
        "xcodebuild",
        "-project",
        str(project.project_path),
        "-scheme",
        project.scheme,
        "-configuration",
        BUILD_CONFIGURATION,
        "-derivedDataPath",
        str(derived_data),
        "-archivePath",
        str(archive_path),
        "-destination",
        BUILD_DESTINATION,
        f"CODE_SIGN_IDENTITY={identity}",
        "CODE_SIGN_STYLE=Manual",
    ]
    if team_id:
        args.append(f"DEVELOPMENT_TEAM={team_id}")
    args.append("archive")
    return args


def export_args(archive_path: Path, export_path: Path, options_plist: Path) -> list[str]:
    return [
        "xcodebuild",
        "-exportArchive",
        "-archivePath",
        str(archive_path),
        "-exportPath",
        str(export_path),
        "-exportOptionsPlist",
        str(options_plist),
    ]


def show_build_settings_args(project: ProjectDescriptor) -> list[str]:
    return [
        "xcodebuild",
        "-project",
        str(project.project_path),
        "-scheme",
        project.scheme,
        "-configuration",
        BUILD_CONFIGURATION,
        "-showBuildSettings",
    ]


def codesign_args(
    target: Path,
    identity: str,
    *,
    entitlements: Path | None = None,
    runtime: bool = True,
) -> list[str]:
    args = ["/usr/bin/codesign", "--force"]
    if runtime:
        args.extend(["--options", "runtime"])
    args.append("--timestamp")
    if entitlements is not None:
        args.extend(["--entitlements", str(entitlements)])
    args.extend(["--sign", identity, str(target)])
    return args


def ditto_zip_args(source: Path, zip_path: Path) -> list[str]:
    return ["/usr/bin/ditto", "-c", "-k", "--keepParent", str(source), str(zip_path)]


def hdiutil_create_args(volume_name: str, source_folder: Path, dmg_path: Path) -> list[str]:
    return [
        "hdiutil",
        "create",
        "-volname",
        volume_name,
        "-srcfolder",
        str(source_folder),
        "-ov",
        "-format",
        "UDZO",
        str(dmg_path),
    ]


def _notary_auth(key_path: Path, key_id: str, issuer_id: str | None) -> list[str]:
    args = ["--key", str(key_path), "--key-id", key_id, "--output-format", "json"]
    if issuer_id:
        args.extend(["--issuer", issuer_id])
    return args


def notary_submit_args(
    target: Path, key_path: Path, key_id: str, issuer_id: str | None = None
) -> list[str]:
    return ["xcrun", "notarytool", "submit", str(target), *_notary_auth(key_path, key_id, issuer_id)]


def notary_info_args(
    submission_id: str, key_path: Path, key_id: str, issuer_id: str | None = None
) -> list[str]:
    return ["xcrun", "notarytool", "info", submission_id, *_notary_auth(key_path, key_id, issuer_id)]


def staple_args(target: Path) -> list[str]:
    return ["xcrun", "stapler", "staple", str(target)]


def sign_update_args(tools: FeedTools, key_path: Path, dmg_path: Path) -> list[str]:
    return [str(tools.sign_update), "-f", str(key_path), str(dmg_path)]


def generate_appcast_args(tools: FeedTools, key_path: Path, output_dir: Path) -> list[str]:
    return [
        str(tools.generate_appcast),
        "--ed-key-file",
        str(key_path),
        "-o",
        str(output_dir / "appcast.xml"),
        str(output_dir),
    ]
