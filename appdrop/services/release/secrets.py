"""Secret names and the loader that builds a ``SecretsMap``.

This is the only place in the release package that looks at an environment
mapping, and even here the mapping is passed in by the caller.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping

from appdrop.core.result import Err, Ok, Result
from appdrop.services.release.errors import ReleaseError
from appdrop.services.release.model import PipelineDecision

DEVELOPER_ID_APPLICATION = "DEVELOPER_ID_APPLICATION"
APP_STORE_CONNECT_KEY_ID = "APP_STORE_CONNECT_KEY_ID"
APP_STORE_CONNECT_PRIVATE_KEY = "APP_STORE_CONNECT_PRIVATE_KEY"
APP_STORE_CONNECT_ISSUER_ID = "APP_STORE_CONNECT_ISSUER_ID"
SPARKLE_PRIVATE_KEY = "SPARKLE_PRIVATE_KEY"
DEVELOPMENT_TEAM = "DEVELOPMENT_TEAM"

NOTARY_SECRETS: tuple[str, ...] = (APP_STORE_CONNECT_KEY_ID, APP_STORE_CONNECT_PRIVATE_KEY)
OPTIONAL_SECRETS: tuple[str, ...] = (APP_STORE_CONNECT_ISSUER_ID, DEVELOPMENT_TEAM)


def required_secrets(decision: PipelineDecision) -> tuple[str, ...]:
    """Secrets a run of ``decision`` cannot do without."""
    required: list[str] = []
    if decision.build_app or decision.sign_app or decision.create_dmg:
        required.append(DEVELOPER_ID_APPLICATION)
    if decision.needs_notarization:
        required.extend(NOTARY_SECRETS)
    if decision.generate_feed_entry:
        required.append(SPARKLE_PRIVATE_KEY)
    return tuple(required)


def load_secrets(
    required: Iterable[str],
    environ: Mapping[str, str],
    optional: Iterable[str] = OPTIONAL_SECRETS,
) -> Result[dict[str, str], ReleaseError]:
    """Collect ``required`` (non-empty) and any present ``optional`` secrets.

    All missing names are reported at once.
    """
    secrets: dict[str, str] = {}
    missing: list[str] = []
    for name in required:
        value = environ.get(name, "")
        if not value.strip():
            missing.append(name)
            continue
        secrets[name] = value

    if missing:
        return Err(
            ReleaseError(
                kind="config_missing",
                message=f"missing secrets: {', '.join(missing)}",
                hint="Export them in the environment (CI secrets) before running.",
            )
        )

    for name in optional:
        value = environ.get(name, "").strip()
        if value:
            secrets[name] = value

    return Ok(secrets)


def missing_secrets(secrets: Mapping[str, str], names: Iterable[str]) -> list[str]:
    return [name for name in names if not secrets.get(name, "").strip()]
