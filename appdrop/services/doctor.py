"""Project diagnostics (``appdrop doctor``) and scaffolding (``--fix``).

Diagnosis is read-only and reuses the pipeline decision, so doctor and
release always agree on what is missing. Fixing only ever adds: existing
entitlements and Info.plist files are never overwritten, and the Xcode
project file only gains build settings it does not already have.
"""

from __future__ import annotations

import os
import plistlib
import re
from dataclasses import dataclass, field
from pathlib import Path

from appdrop.core.project import ProjectDescriptor
from appdrop.core.result import Err, Ok, Result
from appdrop.platform.files import atomic_write_text
from appdrop.platform.process import which
from appdrop.services.checks import CheckResult
from appdrop.services.release.detector import INFO_PLIST_NAME, UPDATER_ENTITLEMENTS_NAME
from appdrop.services.release.model import PipelineDecision

FIX_HINT = "appdrop doctor --fix"
XCODE_TOOLS_HINT = "xcode-select --install"
SPARKLE_HINT = "Set SPARKLE_BIN or: brew install --cask sparkle"

REQUIRED_TOOLS: tuple[str, ...] = ("xcodebuild", "xcrun", "codesign", "ditto", "hdiutil")

PBXPROJ_NAME = "project.pbxproj"

APP_ENTITLEMENTS: dict[str, object] = {
    "com.apple.security.app-sandbox": True,
    "com.apple.security.files.user-selected.read-only": True,
    "com.apple.security.network.client": True,
}

UPDATER_ENTITLEMENTS: dict[str, object] = {
    "com.apple.security.app-sandbox": True,
    "com.apple.security.network.client": True,
}

# Anchored at line start so GENERATE_INFOPLIST_FILE never matches; group 1 is the indent.
_INFOPLIST_SETTING_RE = re.compile(r"^([ \t]*)INFOPLIST_FILE\s*=\s*[^;]+;", re.MULTILINE)
_BUNDLE_ID_SETTING_RE = re.compile(r"^([ \t]*)PRODUCT_BUNDLE_IDENTIFIER\s*=\s*[^;]+;", re.MULTILINE)
_BUILD_SETTINGS_OPEN_RE = re.compile(r"^([ \t]*)buildSettings = \{", re.MULTILINE)


@dataclass(frozen=True, slots=True)
class DoctorError:
    message: str
    path: Path | None = None


@dataclass(frozen=True, slots=True)
class FixReport:
    created: list[Path] = field(default_factory=list)
    project_updated: bool = False

    @property
    def changed(self) -> bool:
        return bool(self.created) or self.project_updated


def diagnose(project: ProjectDescriptor, decision: PipelineDecision) -> list[CheckResult]:
    """Check project files, the update feed and the required command line tools."""
    results: list[CheckResult] = [CheckResult.success("project", str(project.project_path))]
    results.append(_check_info_plist(decision))
    results.extend(_check_entitlements(project, decision))
    results.append(_check_feed(decision))
    results.extend(_check_tool(name) for name in REQUIRED_TOOLS)
    return results


def _check_info_plist(decision: PipelineDecision) -> CheckResult:
    if decision.info_plist_path is not None:
        return CheckResult.success(INFO_PLIST_NAME, str(decision.info_plist_path))
    if decision.missing_info_plist:
        return CheckResult.error(INFO_PLIST_NAME, "not found", hint=FIX_HINT)
    return CheckResult.warning(INFO_PLIST_NAME, "not found", hint=FIX_HINT)


def _check_entitlements(project: ProjectDescriptor, decision: PipelineDecision) -> list[CheckResult]:
    name = f"{project.name}.entitlements"
    results: list[CheckResult] = []
    if decision.entitlements_path is None:
        results.append(CheckResult.error(name, "not found", hint=FIX_HINT))
    else:
        results.append(CheckResult.success(name, str(decision.entitlements_path)))

    if decision.updater_entitlements_path is not None:
        results.append(
            CheckResult.success(UPDATER_ENTITLEMENTS_NAME, str(decision.updater_entitlements_path))
        )
    elif decision.feed_enabled:
        results.append(CheckResult.error(UPDATER_ENTITLEMENTS_NAME, "not found", hint=FIX_HINT))
    return results


def _check_feed(decision: PipelineDecision) -> CheckResult:
    if decision.feed_enabled and decision.updater_tools is not None:
        return CheckResult.success(
            "sparkle", f"enabled ({decision.updater_tools.sign_update.parent})"
        )
    if decision.feed_declared:
        return CheckResult.warning(
            "sparkle",
            "SUFeedURL and SUPublicEDKey are set but the Sparkle tools were not found",
            hint=SPARKLE_HINT,
        )
    return CheckResult.success("sparkle", "disabled (no SUFeedURL/SUPublicEDKey in Info.plist)")


def _check_tool(name: str) -> CheckResult:
    path = which(name)
    if path is None:
        return CheckResult.error(name, "not found on PATH", hint=XCODE_TOOLS_HINT)
    return CheckResult.success(name, str(path))


def locate_resources_dir(project: ProjectDescriptor) -> Path:
    """``Resources/`` at the root or inside ``<name>/``; the root one if neither exists."""
    candidates = (project.root / "Resources", project.root / project.name / "Resources")
    for candidate in candidates:
        if candidate.is_dir():
            return candidate
    return candidates[0]


def render_plist(payload: dict[str, object]) -> str:
    return plistlib.dumps(payload, sort_keys=True).decode("utf-8")


def default_info_plist(app_name: str) -> str:
    return render_plist(
        {
            "CFBundleDisplayName": app_name,
            "CFBundleExecutable": "$(EXECUTABLE_NAME)",
            "CFBundleIdentifier": "$(PRODUCT_BUNDLE_IDENTIFIER)",
            "CFBundleName": "$(PRODUCT_NAME)",
            "CFBundlePackageType": "APPL",
            "CFBundleShortVersionString": "$(MARKETING_VERSION)",
            "CFBundleVersion": "$(CURRENT_PROJECT_VERSION)",
            "LSApplicationCategoryType": "public.app-category.utilities",
            "LSMinimumSystemVersion": "$(MACOSX_DEPLOYMENT_TARGET)",
            "NSPrincipalClass": "NSApplication",
        }
    )


def inject_build_setting(content: str, key: str, value: str) -> str:
    """Add ``key = value;`` to every build settings block of a pbxproj."""
    line = f"{key} = {value};"
    for pattern in (_INFOPLIST_SETTING_RE, _BUNDLE_ID_SETTING_RE):
        if pattern.search(content):
            return pattern.sub(lambda m: f"{m.group(0)}\n{m.group(1)}{line}", content)
    return _BUILD_SETTINGS_OPEN_RE.sub(lambda m: f"{m.group(0)}\n{m.group(1)}\t{line}", content)


def patch_project_settings(content: str, *, entitlements: str, info_plist: str) -> str:
    """Point the project at the entitlements and Info.plist files.

    Settings already present are left alone. A generated Info.plist is
    switched off so the file on disk is the one that ships.
    """
    if "CODE_SIGN_ENTITLEMENTS" not in content:
        content = inject_build_setting(content, "CODE_SIGN_ENTITLEMENTS", entitlements)
    if not _INFOPLIST_SETTING_RE.search(content):
        content = inject_build_setting(content, "INFOPLIST_FILE", info_plist)
    return content.replace("GENERATE_INFOPLIST_FILE = YES;", "GENERATE_INFOPLIST_FILE = NO;")


def _project_relative(project: ProjectDescriptor, path: Path) -> str:
    return Path(os.path.relpath(path, project.project_path.parent)).as_posix()


def apply_fixes(
    project: ProjectDescriptor,
    decision: PipelineDecision,
) -> Result[FixReport, DoctorError]:
    """Create missing signing files and wire them into the Xcode project."""
    resources = locate_resources_dir(project)
    created: list[Path] = []

    entitlements_path = decision.entitlements_path or resources / f"{project.name}.entitlements"
    updater_path = decision.updater_entitlements_path or resources / UPDATER_ENTITLEMENTS_NAME
    info_plist_path = decision.info_plist_path or resources / INFO_PLIST_NAME

    scaffold: list[tuple[Path, str]] = [
        (entitlements_path, render_plist(APP_ENTITLEMENTS)),
        (updater_path, render_plist(UPDATER_ENTITLEMENTS)),
        (info_plist_path, default_info_plist(project.name)),
    ]

    try:
        resources.mkdir(parents=True, exist_ok=True)
        for path, content in scaffold:
            if path.exists():
                continue
            atomic_write_text(path, content)
            created.append(path)
    except OSError as e:
        return Err(DoctorError(f"Failed to write {e.filename}: {e.strerror}", path=resources))

    pbxproj = project.project_path / PBXPROJ_NAME
    if not pbxproj.is_file():
        return Ok(FixReport(created=created))

    try:
        original = pbxproj.read_text(encoding="utf-8")
        patched = patch_project_settings(
            original,
            entitlements=_project_relative(project, entitlements_path),
            info_plist=_project_relative(project, info_plist_path),
        )
        if patched != original:
            atomic_write_text(pbxproj, patched)
    except (OSError, UnicodeDecodeError) as e:
        return Err(DoctorError(f"Failed to update {pbxproj}: {e}", path=pbxproj))

    return Ok(FixReport(created=created, project_updated=patched != original))
