"""Project resolution.

A project is an Xcode project (``*.xcodeproj``) below a root directory. The
release core only ever sees the resolved, immutable ``ProjectDescriptor``.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from .result import Err, Ok, Result

__all__ = ["ProjectDescriptor", "ProjectError", "find_project"]


@dataclass(frozen=True)
class ProjectError:
    """Error when no usable Xcode project can be resolved."""

    message: str
    searched_from: Path | None = None


@dataclass(frozen=True, slots=True)
class ProjectDescriptor:
    """A resolved Xcode project.

    Attributes:
        name: Product name (the ``.xcodeproj`` stem), also the ``.app`` name.
        root: Project root directory; detection scans below it.
        project_path: Path to the ``.xcodeproj`` bundle.
        scheme: Build scheme (defaults to ``name``).
    """

    name: str
    root: Path
    project_path: Path
    scheme: str

    def as_dict(self) -> dict[str, str]:
        return {
            "name": self.name,
            "root": str(self.root),
            "projectPath": str(self.project_path),
            "scheme": self.scheme,
        }


def find_project(
    root: Path,
    scheme: str | None = None,
    project: str | None = None,
) -> Result[ProjectDescriptor, ProjectError]:
    """Resolve the Xcode project under ``root``.

    Args:
        root: Directory to search (not recursive).
        scheme: Scheme override; defaults to the project name.
        project: Explicit ``.xcodeproj`` path, relative to ``root`` or absolute.

    Returns:
        Ok(ProjectDescriptor), or Err when the project is missing or ambiguous.
    """
    root = root.resolve()

    if project is not None:
        project_path = (root / project).resolve()
        if not project_path.is_dir() or project_path.suffix != ".xcodeproj":
            return Err(ProjectError(f"Xcode project not found: {project_path}", searched_from=root))
    else:
        candidates = sorted(p for p in root.glob("*.xcodeproj") if p.is_dir())
        if not candidates:
            return Err(ProjectError(f"No .xcodeproj found in {root}", searched_from=root))
        if len(candidates) > 1:
            names = ", ".join(p.name for p in candidates)
            return Err(
                ProjectError(
                    f"Multiple Xcode projects found ({names}); pass --project",
                    searched_from=root,
                )
            )
        project_path = candidates[0]

    name = project_path.stem
    return Ok(
        ProjectDescriptor(
            name=name,
            root=root,
            project_path=project_path,
            scheme=(scheme or "").strip() or name,
        )
    )
