"""Turn polite termination signals into normal unwinding.

A release keeps credentials on disk while it runs and removes them in
``finally`` blocks. Those only run when Python unwinds, so SIGTERM (CI job
cancellation) and SIGHUP (closed terminal) are converted into ``SystemExit``
for the duration of the guard. SIGKILL cannot be intercepted.
"""

from __future__ import annotations

import signal
from collections.abc import Iterator
from contextlib import contextmanager
from types import FrameType

__all__ = ["termination_guard"]

_GUARDED_SIGNALS: tuple[signal.Signals, ...] = tuple(
    getattr(signal, name) for name in ("SIGTERM", "SIGHUP") if hasattr(signal, name)
)


def _raise_exit(signum: int, frame: FrameType | None) -> None:
    del frame
    raise SystemExit(128 + signum)


@contextmanager
def termination_guard() -> Iterator[None]:
    """Install exit-raising handlers, restoring the previous ones after."""
    previous: dict[signal.Signals, object] = {}
    try:
        for sig in _GUARDED_SIGNALS:
            previous[sig] = signal.signal(sig, _raise_exit)
    except ValueError:
        # Not on the main thread: handlers cannot be installed there.
        pass

    try:
        yield
    finally:
        for sig, handler in previous.items():
            if handler is not None:
                signal.signal(sig, handler)  # type: ignore[arg-type]
