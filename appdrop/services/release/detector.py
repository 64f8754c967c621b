"""Pipeline detection: which release stages apply to a project.

Detection only reads the filesystem. It walks the project once, collecting
the Info.plist and entitlements files by exact name, reads the Info.plist for
the Sparkle feed keys and looks for the Sparkle command line tools.

When several files share a name, the one with the fewest path components
below the root wins, ties broken by lexical order of the relative POSIX path.
That keeps ``App/Info.plist`` ahead of ``App/Tests/Info.plist`` on every
filesystem.
"""

from __future__ import annotations

import os
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from pathlib import Path

from appdrop.core.config import DEFAULT_BUILD_DIR, DEFAULT_OUTPUT_DIR
from appdrop.core.project import ProjectDescriptor
from appdrop.platform.paths import home
from appdrop.services.release.model import FeedTools, PipelineDecision

INFO_PLIST_NAME = "Info.plist"
UPDATER_ENTITLEMENTS_NAME = "sparkle.entitlements"

FEED_URL_KEY = b"SUFeedURL"
FEED_PUBLIC_KEY_KEY = b"SUPublicEDKey"

SIGN_UPDATE_TOOL = "sign_update"
GENERATE_APPCAST_TOOL = "generate_appcast"

# Version control and dependency manager metadata
EXCLUDED_DIR_NAMES: frozenset[str] = frozenset(
    {".git", ".hg", ".svn", "node_modules", "Pods", "Carthage", ".build", "DerivedData"}
)

CASKROOM_ROOTS: tuple[Path, ...] = (
    Path("/opt/homebrew/Caskroom/sparkle"),
    Path("/usr/local/Caskroom/sparkle"),
)


@dataclass(frozen=True, slots=True)
class DetectionOptions:
    """Inputs to detection besides the project itself.

    Attributes:
        output_dir: Output directory, relative to the project root.
        build_dir: Build directory, relative to the project root.
        sparkle_bin: Directory holding the Sparkle tools; when set it is the
            only place searched.
        tool_roots: Directories scanned for Sparkle when ``sparkle_bin`` is
            unset. None means ``~/.local/bin`` plus the Homebrew Caskroom.
    """

    output_dir: str | Path | None = None
    build_dir: str | Path | None = None
    sparkle_bin: Path | None = None
    tool_roots: Sequence[Path] | None = None


def detect_pipeline(
    project: ProjectDescriptor,
    options: DetectionOptions | None = None,
) -> PipelineDecision:
    """Decide the release pipeline for ``project``."""
    options = options or DetectionOptions()
    output_dir = (project.root / (options.output_dir or DEFAULT_OUTPUT_DIR)).resolve()
    build_dir = (project.root / (options.build_dir or DEFAULT_BUILD_DIR)).resolve()

    entitlements_name = f"{project.name}.entitlements"
    found = scan_project_files(
        project.root,
        names=(INFO_PLIST_NAME, entitlements_name, UPDATER_ENTITLEMENTS_NAME),
        skip_dirs=(output_dir, build_dir),
    )
    info_plist_path = found[INFO_PLIST_NAME]

    feed_declared = info_plist_path is not None and has_feed_keys(info_plist_path)
    tools = find_feed_tools(options.sparkle_bin, options.tool_roots)
    feed_enabled = feed_declared and tools is not None

    decision = PipelineDecision(
        build_app=True,
        sign_app=True,
        notarize_app=True,
        create_dmg=True,
        notarize_dmg=True,
        feed_enabled=feed_enabled,
        sign_update_feed=feed_enabled,
        generate_feed_entry=feed_enabled,
        output_dir=output_dir,
        build_dir=build_dir,
        info_plist_path=info_plist_path,
        entitlements_path=found[entitlements_name],
        updater_entitlements_path=found[UPDATER_ENTITLEMENTS_NAME],
        updater_tools=tools,
        feed_declared=feed_declared,
    )
    return decision.with_stage_flags(decision.stage_flags())


def scan_project_files(
    root: Path,
    *,
    names: Iterable[str],
    skip_dirs: Iterable[Path] = (),
) -> dict[str, Path | None]:
    """Find the preferred file for each of ``names`` below ``root``.

    Returns a mapping with every requested name; None when nothing matched.
    """
    wanted = set(names)
    skipped = {p.resolve() for p in skip_dirs}
    matches: dict[str, list[Path]] = {name: [] for name in wanted}

    for dirpath, dirnames, filenames in os.walk(root):
        current = Path(dirpath)
        dirnames[:] = sorted(
            d
            for d in dirnames
            if d not in EXCLUDED_DIR_NAMES and (current / d).resolve() not in skipped
        )
        for filename in filenames:
            if filename in wanted:
                matches[filename].append((current / filename).relative_to(root))

    return {
        name: (root / min(paths, key=_preference)) if paths else None
        for name, paths in matches.items()
    }


def _preference(relative: Path) -> tuple[int, str]:
    return (len(relative.parts), relative.as_posix())


def has_feed_keys(info_plist_path: Path) -> bool:
    """True when the Info.plist declares both SUFeedURL and SUPublicEDKey.

    Bytes are searched so binary plists work too.
    """
    try:
        content = info_plist_path.read_bytes()
    except OSError:
        return False
    return FEED_URL_KEY in content and FEED_PUBLIC_KEY_KEY in content


def default_tool_roots() -> list[Path]:
    """``~/.local/bin``, then each Caskroom version's ``bin``, newest first."""
    roots: list[Path] = [home() / ".local" / "bin"]
    for base in CASKROOM_ROOTS:
        if not base.is_dir():
            continue
        versions = sorted((p for p in base.iterdir() if p.is_dir()), key=lambda p: p.name)
        roots.extend(version / "bin" for version in reversed(versions))
    return roots


def find_feed_tools(
    explicit_bin: Path | None = None,
    tool_roots: Sequence[Path] | None = None,
) -> FeedTools | None:
    """Locate ``sign_update`` and ``generate_appcast`` in the same directory."""
    if explicit_bin is not None:
        candidates: Sequence[Path] = [explicit_bin]
    elif tool_roots is not None:
        candidates = tool_roots
    else:
        candidates = default_tool_roots()

    for candidate in candidates:
        sign_update = candidate / SIGN_UPDATE_TOOL
        generate_appcast = candidate / GENERATE_APPCAST_TOOL
        if sign_update.is_file() and generate_appcast.is_file():
            return FeedTools(sign_update=sign_update, generate_appcast=generate_appcast)
    return None
