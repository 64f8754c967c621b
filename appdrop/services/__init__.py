"""Application services for appdrop.

Services hold the release logic and coordinate between the domain layer
(core/) and the platform layer (platform/). The release pipeline itself
lives in ``appdrop.services.release``.
"""

from appdrop.services.checks import CheckResult, CheckStatus

__all__ = [
    "CheckResult",
    "CheckStatus",
]
