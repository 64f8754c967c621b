"""Per-run signing configuration: entitlements, team id, export options.

Source entitlements are never edited in place. When they carry a bundle
identifier placeholder, a rendered copy is written into a run-scoped
directory and that copy is what gets signed.
"""

from __future__ import annotations

import plistlib
import re
from pathlib import Path

from appdrop.core.project import ProjectDescriptor
from appdrop.core.result import Err, Ok, Result
from appdrop.platform.files import atomic_write_text
from appdrop.platform.process import run as run_process
from appdrop.services.release.commands import show_build_settings_args
from appdrop.services.release.errors import ReleaseError

BUNDLE_ID_PLACEHOLDERS: tuple[str, ...] = (
    "$(PRODUCT_BUNDLE_IDENTIFIER)",
    "${PRODUCT_BUNDLE_IDENTIFIER}",
)

_TEAM_ID_RE = re.compile(r"\(([A-Za-z0-9]{10})\)")
_BUNDLE_ID_RE = re.compile(r"^\s*PRODUCT_BUNDLE_IDENTIFIER\s*=\s*(\S.*?)\s*$", re.MULTILINE)

SIGNING_CERTIFICATE = "Developer ID Application"
EXPORT_METHOD = "developer-id"


def prepare_entitlements(
    source: Path | None,
    bundle_id: str | None,
    output_dir: Path,
    label: str,
) -> Path | None:
    """Return the entitlements file to sign with.

    Args:
        source: Entitlements found in the project (None if not found).
        bundle_id: Resolved PRODUCT_BUNDLE_IDENTIFIER (None if unknown).
        output_dir: Run-scoped directory for rendered copies.
        label: Output file stem (``app``, ``sparkle``).

    Returns:
        None when the source is absent; the source itself when there is
        nothing to substitute; otherwise ``output_dir/<label>.entitlements``.
    """
    if source is None or not source.is_file():
        return None
    if not bundle_id:
        return source

    content = source.read_text(encoding="utf-8")
    if not any(marker in content for marker in BUNDLE_ID_PLACEHOLDERS):
        return source

    for marker in BUNDLE_ID_PLACEHOLDERS:
        content = content.replace(marker, bundle_id)

    output_path = output_dir / f"{label}.entitlements"
    atomic_write_text(output_path, content)
    return output_path


def resolve_team_id(identity: str, explicit_team_id: str | None = None) -> Result[str, ReleaseError]:
    """Team id for export options.

    ``explicit_team_id`` wins; otherwise the ``(XXXXXXXXXX)`` suffix of a
    signing identity such as ``Developer ID Application: Example (ABCDE12345)``.
    """
    explicit = (explicit_team_id or "").strip()
    if explicit:
        return Ok(explicit)

    match = _TEAM_ID_RE.search(identity)
    if match is not None:
        return Ok(match.group(1))

    return Err(
        ReleaseError(
            kind="config_missing",
            message="cannot determine team id",
            hint="Set DEVELOPMENT_TEAM or use an identity ending in '(TEAMID)'.",
        )
    )


def render_export_options(team_id: str) -> str:
    payload = {
        "method": EXPORT_METHOD,
        "signingStyle": "manual",
        "signingCertificate": SIGNING_CERTIFICATE,
        "teamID": team_id,
    }
    return plistlib.dumps(payload, sort_keys=True).decode("utf-8")


def write_export_options(path: Path, team_id: str) -> Path:
    atomic_write_text(path, render_export_options(team_id))
    return path


def parse_bundle_identifier(build_settings: str) -> str | None:
    match = _BUNDLE_ID_RE.search(build_settings)
    return match.group(1) if match else None


def resolve_bundle_identifier(project: ProjectDescriptor) -> str | None:
    """Ask xcodebuild for PRODUCT_BUNDLE_IDENTIFIER; None if it cannot say."""
    result = run_process(show_build_settings_args(project), cwd=project.root)
    if isinstance(result, Err):
        return None
    return parse_bundle_identifier(result.value)
