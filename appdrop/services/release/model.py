from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field, fields, replace
from pathlib import Path

from appdrop.core.config import DEFAULT_NOTARY_POLL, DEFAULT_NOTARY_TIMEOUT
from appdrop.core.duration import parse_duration
from appdrop.core.project import ProjectDescriptor
from appdrop.core.result import Err, Ok, Result
from appdrop.services.release.errors import ReleaseError
from appdrop.services.release.stages import STAGES, Stage, apply_cascade

# Secret name -> value, built by appdrop.services.release.secrets.load_secrets
SecretsMap = Mapping[str, str]

NOTARY_IN_PROGRESS = "In Progress"
NOTARY_ACCEPTED = "Accepted"


@dataclass(frozen=True, slots=True)
class FeedTools:
    """Sparkle command line tools used to sign updates and build the appcast."""

    sign_update: Path
    generate_appcast: Path


@dataclass(frozen=True, slots=True)
class PipelineDecision:
    """What a release run should do, decided before it starts.

    Stage flags are kept consistent with ``STAGE_PREREQUISITES``;
    ``missing_entitlements`` and ``missing_info_plist`` are derived from the
    paths and the feed flag. Build new values with ``with_stage_flags`` or
    ``appdrop.services.release.stages.disable_stages`` so both stay true.
    """

    build_app: bool
    sign_app: bool
    notarize_app: bool
    create_dmg: bool
    notarize_dmg: bool
    feed_enabled: bool
    sign_update_feed: bool
    generate_feed_entry: bool
    output_dir: Path
    build_dir: Path
    info_plist_path: Path | None
    entitlements_path: Path | None
    updater_entitlements_path: Path | None
    updater_tools: FeedTools | None
    missing_entitlements: bool = False
    missing_info_plist: bool = False
    # Info.plist declares a feed (both keys), whether or not the tools exist.
    feed_declared: bool = False

    def stage_flags(self) -> dict[Stage, bool]:
        return {stage: bool(getattr(self, stage)) for stage in STAGES}

    def with_stage_flags(self, flags: Mapping[Stage, bool]) -> PipelineDecision:
        """Apply flags through the cascade table and recompute derived fields."""
        settled = apply_cascade(flags)
        feed_enabled = settled["feed_enabled"]
        return replace(
            self,
            **settled,
            missing_entitlements=(
                self.entitlements_path is None
                or (feed_enabled and self.updater_entitlements_path is None)
            ),
            missing_info_plist=feed_enabled and self.info_plist_path is None,
        )

    @property
    def needs_notarization(self) -> bool:
        return self.notarize_app or self.notarize_dmg

    def as_dict(self) -> dict[str, object]:
        """JSON-safe view (paths as strings)."""
        out: dict[str, object] = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if isinstance(value, Path):
                value = str(value)
            elif isinstance(value, FeedTools):
                value = {
                    "signUpdate": str(value.sign_update),
                    "generateAppcast": str(value.generate_appcast),
                }
            out[f.name] = value
        return out


@dataclass(frozen=True, slots=True)
class NotarySettings:
    """Notarization deadline and poll interval, in seconds."""

    timeout_seconds: float = 2 * 60 * 60.0
    poll_seconds: float = 30.0

    @classmethod
    def from_strings(
        cls,
        timeout: str = DEFAULT_NOTARY_TIMEOUT,
        poll: str = DEFAULT_NOTARY_POLL,
    ) -> Result[NotarySettings, ReleaseError]:
        """Parse duration strings; zero or malformed values are rejected."""
        timeout_seconds = parse_duration(timeout)
        if timeout_seconds <= 0:
            return Err(
                ReleaseError(
                    kind="invalid_input",
                    message=f"invalid notarization timeout: {timeout!r}",
                    hint="Use <int>[s|m|h], e.g. 2h",
                )
            )
        poll_seconds = parse_duration(poll)
        if poll_seconds <= 0:
            return Err(
                ReleaseError(
                    kind="invalid_input",
                    message=f"invalid notarization poll interval: {poll!r}",
                    hint="Use <int>[s|m|h], e.g. 30s",
                )
            )
        return Ok(cls(timeout_seconds=timeout_seconds, poll_seconds=poll_seconds))


@dataclass(frozen=True, slots=True)
class ReleaseContext:
    """Unit of work for one release run."""

    project: ProjectDescriptor
    decision: PipelineDecision
    secrets: SecretsMap
    notary: NotarySettings = field(default_factory=NotarySettings)


@dataclass(frozen=True, slots=True)
class SubmissionRecord:
    """What notarytool reported for one submission."""

    id: str | None
    status: str | None

    @property
    def accepted(self) -> bool:
        return self.status == NOTARY_ACCEPTED

    @property
    def in_progress(self) -> bool:
        return self.status is None or self.status == NOTARY_IN_PROGRESS

    @property
    def terminal(self) -> bool:
        return not self.in_progress
