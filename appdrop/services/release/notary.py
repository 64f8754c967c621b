"""Notarization: submit an artifact to notarytool and wait for a verdict.

State machine:

    submitted --(Accepted)--------------------------> done
        |     --(other terminal status)-------------> failed
        v
    polling  --(Accepted)---------------------------> done
             --(other terminal status)--------------> failed
             --(deadline)---------------------------> timed out

A failing ``notarytool info`` call ends the wait; it is not retried.
"""

from __future__ import annotations

import json
from pathlib import Path
from time import monotonic, sleep

from appdrop.core.result import Err, Ok, Result
from appdrop.core.structured import as_str_dict, get_str
from appdrop.output.console import ConsoleProtocol, Style
from appdrop.platform.files import ScopedTempDirs
from appdrop.platform.process import run as run_process
from appdrop.services.release.commands import notary_info_args, notary_submit_args
from appdrop.services.release.errors import ReleaseError
from appdrop.services.release.model import NotarySettings, SecretsMap, SubmissionRecord
from appdrop.services.release.secrets import (
    APP_STORE_CONNECT_ISSUER_ID,
    APP_STORE_CONNECT_KEY_ID,
    APP_STORE_CONNECT_PRIVATE_KEY,
    NOTARY_SECRETS,
    missing_secrets,
)

NOTARY_KEY_FILENAME = "AuthKey.p8"
MIN_POLL_SECONDS = 1.0


def _failure(
    label: str,
    detail: str,
    *,
    submission_id: str | None = None,
    hint: str | None = None,
) -> ReleaseError:
    return ReleaseError(
        kind="notarization_failed",
        message=f"Notarization failed for {label}: {detail}",
        hint=hint,
        stage=f"notarize_{label}",
        submission_id=submission_id,
    )


def parse_submission(label: str, stdout: str) -> Result[SubmissionRecord, ReleaseError]:
    """Parse notarytool ``--output-format json`` output."""
    text = stdout.strip()
    if not text:
        return Err(_failure(label, "empty response"))

    try:
        obj: object = json.loads(text)
    except json.JSONDecodeError:
        return Err(_failure(label, text))

    data = as_str_dict(obj)
    if data is None:
        return Err(_failure(label, text))

    return Ok(SubmissionRecord(id=get_str(data, "id"), status=get_str(data, "status")))


def _query(
    cmd: list[str],
    *,
    label: str,
    cwd: Path,
    console: ConsoleProtocol,
    submission_id: str | None = None,
) -> Result[SubmissionRecord, ReleaseError]:
    console.debug(" ".join(cmd))
    result = run_process(cmd, cwd=cwd)
    if isinstance(result, Err):
        e = result.error
        return Err(
            _failure(
                label,
                str(e),
                submission_id=submission_id,
                hint=e.tail(),
            )
        )
    return parse_submission(label, result.value)


def notarize(
    *,
    key_path: Path,
    secrets: SecretsMap,
    target: Path,
    label: str,
    settings: NotarySettings,
    console: ConsoleProtocol,
    cwd: Path,
) -> Result[None, ReleaseError]:
    """Submit ``target`` and block until it is accepted, rejected or late.

    Args:
        key_path: App Store Connect API key (.p8) on disk.
        secrets: Must hold the key id; the issuer id is optional.
        target: Zip or dmg to submit.
        label: Short name used in messages (``app``, ``dmg``).
        settings: Deadline and poll interval.
        console: Progress output.
        cwd: Working directory for notarytool.
    """
    key_id = secrets[APP_STORE_CONNECT_KEY_ID]
    issuer_id = secrets.get(APP_STORE_CONNECT_ISSUER_ID) or None
    deadline = monotonic() + settings.timeout_seconds
    poll_seconds = max(MIN_POLL_SECONDS, settings.poll_seconds)

    console.print(f"Submitting notarization for {label}...")
    submitted = _query(
        notary_submit_args(target, key_path, key_id, issuer_id),
        label=label,
        cwd=cwd,
        console=console,
    )
    if isinstance(submitted, Err):
        return submitted

    submission = submitted.value
    submission_id = submission.id
    if submission_id is None:
        return Err(_failure(label, "missing submission id"))

    console.print(f"Notarization {label} submission id: {submission_id}", Style.DIM)
    if submission.accepted:
        return Ok(None)
    if submission.terminal:
        return Err(_failure(label, str(submission.status), submission_id=submission_id))

    info_cmd = notary_info_args(submission_id, key_path, key_id, issuer_id)
    while monotonic() < deadline:
        console.print(f"Checking notarization {label}...", Style.DIM)
        polled = _query(
            info_cmd,
            label=label,
            cwd=cwd,
            console=console,
            submission_id=submission_id,
        )
        if isinstance(polled, Err):
            return polled

        record = polled.value
        if record.accepted:
            return Ok(None)
        if record.terminal:
            return Err(
                _failure(
                    label,
                    str(record.status),
                    submission_id=submission_id,
                    hint=f"xcrun notarytool log {submission_id}",
                )
            )

        remaining = deadline - monotonic()
        if remaining <= 0:
            break
        sleep(min(poll_seconds, remaining))

    return Err(
        ReleaseError(
            kind="notarization_timeout",
            message=f"Notarization timed out for {label}: {submission_id}",
            hint=f"Check later with: xcrun notarytool info {submission_id}",
            stage=f"notarize_{label}",
            submission_id=submission_id,
        )
    )


def notarize_file(
    *,
    target: Path,
    secrets: SecretsMap,
    settings: NotarySettings,
    console: ConsoleProtocol,
    label: str = "artifact",
) -> Result[None, ReleaseError]:
    """Notarize a single file, writing the API key to a private temp dir."""
    missing = missing_secrets(secrets, NOTARY_SECRETS)
    if missing:
        return Err(
            ReleaseError(kind="config_missing", message=f"missing secrets: {', '.join(missing)}")
        )

    with ScopedTempDirs() as scope:
        key_path = scope.write_secret(
            "appdrop-notary-", NOTARY_KEY_FILENAME, secrets[APP_STORE_CONNECT_PRIVATE_KEY]
        )
        return notarize(
            key_path=key_path,
            secrets=secrets,
            target=target,
            label=label,
            settings=settings,
            console=console,
            cwd=target.parent,
        )
