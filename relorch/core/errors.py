"""Exit codes for CLI commands.

Every command maps its outcome onto one of these codes. Operators and CI
jobs rely on them to tell a partial release (some assets missing) apart
from a release that never got created.
"""

from enum import IntEnum

__all__ = ["ErrorCode"]


class ErrorCode(IntEnum):
    """Process exit codes. The numeric values are stable.

    - 0: Success, every asset attached
    - 1: User error (bad tag, unknown target, bad arguments)
    - 2: Environment error (invalid config, duplicate asset names, no token)
    - 3: Release creation failed, nothing was built
    - 4: Partial failure, some assets attached and some missing
    - 5: Build failure, the release exists but no asset was attached
    - 6: Handoff failure, no release handle available for this run
    """

    OK = 0
    USER_ERROR = 1
    ENV_ERROR = 2
    RELEASE_FAILED = 3
    PARTIAL_FAILURE = 4
    BUILD_FAILURE = 5
    HANDOFF_FAILURE = 6

    def __str__(self) -> str:
        return self.name.lower().replace("_", " ")

    @property
    def is_success(self) -> bool:
        return self == ErrorCode.OK
