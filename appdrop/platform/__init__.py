"""Platform abstraction layer."""

from .files import ScopedTempDirs, atomic_write_text, replace_tree, write_private_text
from .paths import home
from .process import ProcessError, run, which
from .signals import termination_guard

__all__ = [
    # files
    "ScopedTempDirs",
    "atomic_write_text",
    "replace_tree",
    "write_private_text",
    # paths
    "home",
    # process
    "ProcessError",
    "run",
    "which",
    # signals
    "termination_guard",
]
