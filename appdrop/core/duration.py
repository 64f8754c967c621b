"""Duration strings such as ``30s``, ``15m`` or ``2h``."""

from __future__ import annotations

import re

__all__ = ["parse_duration"]

_DURATION_RE = re.compile(r"^(\d+)([smh])?$", re.IGNORECASE)
_UNIT_SECONDS = {"s": 1, "m": 60, "h": 60 * 60}


def parse_duration(text: str) -> float:
    """Parse ``<int>[s|m|h]`` into seconds.

    The unit defaults to seconds. Anything that does not match returns 0.0;
    callers must treat zero as invalid.
    """
    match = _DURATION_RE.match(text.strip())
    if match is None:
        return 0.0
    unit = (match.group(2) or "s").lower()
    return float(int(match.group(1)) * _UNIT_SECONDS[unit])
