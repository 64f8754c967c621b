"""Release stage flags and their prerequisites.

A stage can only run when every stage it requires is enabled. Overrides
(``--no-dmg``, ``--no-sparkle``, ``--no-notarize``) turn stages off and the
table below propagates that to dependents, so a new stage only has to
declare its prerequisites here to be covered.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from types import MappingProxyType
from typing import TYPE_CHECKING, Literal

if TYPE_CHECKING:
    from appdrop.services.release.model import PipelineDecision

Stage = Literal[
    "build_app",
    "sign_app",
    "notarize_app",
    "create_dmg",
    "notarize_dmg",
    "feed_enabled",
    "sign_update_feed",
    "generate_feed_entry",
]

STAGES: tuple[Stage, ...] = (
    "build_app",
    "sign_app",
    "notarize_app",
    "create_dmg",
    "notarize_dmg",
    "feed_enabled",
    "sign_update_feed",
    "generate_feed_entry",
)

STAGE_PREREQUISITES: Mapping[Stage, tuple[Stage, ...]] = MappingProxyType(
    {
        "notarize_app": ("sign_app",),
        "notarize_dmg": ("create_dmg",),
        "sign_update_feed": ("feed_enabled",),
        "generate_feed_entry": ("sign_update_feed", "create_dmg"),
    }
)


def apply_cascade(flags: Mapping[Stage, bool]) -> dict[Stage, bool]:
    """Force off every stage whose prerequisites are not all enabled.

    Evaluated to a fixed point, so chains (feed -> sign -> entry) settle in
    one call regardless of table order.
    """
    out: dict[Stage, bool] = {stage: bool(flags[stage]) for stage in STAGES}
    changed = True
    while changed:
        changed = False
        for stage, prerequisites in STAGE_PREREQUISITES.items():
            if out[stage] and not all(out[p] for p in prerequisites):
                out[stage] = False
                changed = True
    return out


def dependents_of(stage: Stage) -> frozenset[Stage]:
    """All stages that are forced off when ``stage`` is off."""
    found: set[Stage] = set()
    frontier: list[Stage] = [stage]
    while frontier:
        current = frontier.pop()
        for dependent, prerequisites in STAGE_PREREQUISITES.items():
            if current in prerequisites and dependent not in found:
                found.add(dependent)
                frontier.append(dependent)
    return frozenset(found)


def disable_stages(decision: PipelineDecision, stages: Iterable[Stage]) -> PipelineDecision:
    """Return ``decision`` with ``stages`` and their dependents turned off."""
    flags = decision.stage_flags()
    for stage in stages:
        flags[stage] = False
    return decision.with_stage_flags(flags)
