"""BumpGate exception classes.

Policy outcomes are never raised; these cover operator errors and
failures talking to the hosting platform.
"""


class BumpGateError(Exception):
    """Base exception for all BumpGate errors."""

    exit_code = 1

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class ConfigError(BumpGateError):
    """Raised when inputs or configuration are malformed."""

    exit_code = 2


class UnknownMergeMethodError(ConfigError):
    """Raised when the merge method is not MERGE, SQUASH or REBASE."""

    exit_code = 11


class ManifestError(BumpGateError):
    """Raised when manifest content cannot be decoded."""

    exit_code = 2


class HostingAPIError(BumpGateError):
    """Raised when the hosting API returns an unexpected response."""

    exit_code = 20

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class MergeConflictError(HostingAPIError):
    """Raised when a merge is refused because the head moved (409)."""


class MergeTriggerError(BumpGateError):
    """Raised when auto-merge could not be enabled."""

    exit_code = 20


class MergeTimeoutError(BumpGateError):
    """Raised when polling for mergeability runs past the ceiling."""

    exit_code = 21
