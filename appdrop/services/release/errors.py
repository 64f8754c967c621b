from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

ReleaseErrorKind = Literal[
    "config_missing",
    "stage_failed",
    "notarization_failed",
    "notarization_timeout",
    "invalid_input",
]


@dataclass(frozen=True, slots=True)
class ReleaseError:
    """Canonical release error payload.

    Attributes:
        kind: Error category; the CLI maps it to an exit code.
        message: One-line description, prefixed with the stage when known.
        hint: Follow-up for the operator (captured tool output, a command).
        stage: Release stage that failed, if any.
        submission_id: Notarization submission id, for manual follow-up.
    """

    kind: ReleaseErrorKind
    message: str
    hint: str | None = None
    stage: str | None = None
    submission_id: str | None = None

    def pretty(self) -> str:
        if self.hint:
            return f"{self.message} (hint: {self.hint})"
        return self.message


def config_missing(message: str, hint: str | None = None) -> ReleaseError:
    return ReleaseError(kind="config_missing", message=message, hint=hint)
