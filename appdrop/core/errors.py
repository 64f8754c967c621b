"""Error codes for CLI exit status.

Every command exits with one of these codes. Release errors are mapped onto
them by ``appdrop.cli.commands._helpers.release_error_code``.
"""

from enum import IntEnum

__all__ = ["ErrorCode"]


class ErrorCode(IntEnum):
    """Exit codes for CLI commands.

    These values are used as process exit codes and should remain stable:
    - 0: Success
    - 1: User error (bad flags, missing input file)
    - 2: Environment error (missing entitlements, secrets, project)
    - 3: Build error (xcodebuild, codesign, hdiutil... failed)
    - 5: I/O error (cannot write output)
    - 6: Notarization error (rejected, invalid response, timed out)
    """

    OK = 0
    USER_ERROR = 1
    ENV_ERROR = 2
    BUILD_ERROR = 3
    IO_ERROR = 5
    NOTARY_ERROR = 6

    def __str__(self) -> str:
        return self.name.lower().replace("_", " ")

    @property
    def is_success(self) -> bool:
        return self == ErrorCode.OK
