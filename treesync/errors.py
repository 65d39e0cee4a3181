"""
Error taxonomy for tree synchronization.

NotFound is not an error here: the probe turns it into ProbeResult.ABSENT.
"""
from typing import Optional


class ErrorCode:
    """Structured error codes reported by the remote store client."""
    NOT_FOUND = "NoSuchKey"
    TIMEOUT = "ETIMEDOUT"
    CONNECTION_RESET = "ECONNRESET"
    HOST_UNREACHABLE = "EHOSTUNREACH"
    GENERIC_TRANSPORT = "RequestError"
    ACCESS_DENIED = "AccessDenied"
    INVALID_ARGUMENT = "InvalidArgument"
    QUOTA_EXCEEDED = "QuotaExceeded"

    TRANSIENT = frozenset({TIMEOUT, CONNECTION_RESET, HOST_UNREACHABLE, GENERIC_TRANSPORT})


class SyncError(Exception):
    """Base class for treesync errors."""


class ConfigError(SyncError):
    """Raised when configuration is missing or invalid."""


class LocalIOError(SyncError):
    """Raised when the local tree cannot be listed. Aborts the whole run."""


class StoreError(SyncError):
    """Raw failure from the remote store, carrying a structured code."""

    def __init__(self, code: str, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.code = code
        self.message = message
        self.status = status

    def __repr__(self) -> str:
        return f"StoreError(code={self.code!r}, message={self.message!r}, status={self.status!r})"


class TransientError(SyncError):
    """Failure believed to be recoverable by retrying."""

    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        self.code = code


class FatalError(SyncError):
    """Failure not expected to succeed on retry."""

    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        self.code = code


class RetryError(SyncError):
    """
    Terminal failure of a retried operation.

    Attributes:
        cause: Last error raised by the operation
        attempts: Number of times the operation was invoked
        exhausted: True if the attempt budget ran out on a transient error
    """

    def __init__(self, cause: BaseException, attempts: int, exhausted: bool = False):
        super().__init__(str(cause) or type(cause).__name__)
        self.cause = cause
        self.attempts = attempts
        self.exhausted = exhausted
