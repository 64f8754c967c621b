"""Tests for appdrop.platform.signals module."""

from __future__ import annotations

import os
import signal
import threading
from pathlib import Path

import pytest

from appdrop.platform.files import ScopedTempDirs
from appdrop.platform.signals import termination_guard

pytestmark = pytest.mark.skipif(not hasattr(signal, "SIGTERM"), reason="POSIX signals")


def test_sigterm_becomes_system_exit() -> None:
    with pytest.raises(SystemExit) as exc:
        with termination_guard():
            os.kill(os.getpid(), signal.SIGTERM)

    assert exc.value.code == 128 + signal.SIGTERM


def test_cleanup_runs_on_sigterm(tmp_path: Path) -> None:
    with pytest.raises(SystemExit):
        with termination_guard(), ScopedTempDirs(tmp_path) as scope:
            scope.write_secret("notary-", "AuthKey.p8", "secret")
            os.kill(os.getpid(), signal.SIGTERM)

    assert list(tmp_path.iterdir()) == []


def test_previous_handler_restored() -> None:
    before = signal.getsignal(signal.SIGTERM)
    with termination_guard():
        assert signal.getsignal(signal.SIGTERM) is not before
    assert signal.getsignal(signal.SIGTERM) == before


def test_off_main_thread_is_a_no_op() -> None:
    errors: list[BaseException] = []

    def body() -> None:
        try:
            with termination_guard():
                pass
        except BaseException as e:  # noqa: BLE001
            errors.append(e)

    thread = threading.Thread(target=body)
    thread.start()
    thread.join()

    assert errors == []
