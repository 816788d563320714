"""
Error taxonomy for the release resolution and rendering engine.

Every error raised while refreshing is caught at the smallest enclosing
entity (one source's catalog, one deployment's record) and converted into
a ``has_error`` flag, so siblings keep being processed.
"""


class ReleaseDriftError(Exception):
    """Base class for refresh-time errors."""


class FetchError(ReleaseDriftError):
    """Raised when an upstream API call (GitHub, Director) fails."""

    def __init__(self, message: str, status_code: int = 0):
        super().__init__(message)
        self.status_code = status_code


class NoReleaseFoundError(ReleaseDriftError):
    """Raised when a source has no reference matching its accepted types."""

    def __init__(self, message: str = "unable to find any release"):
        super().__init__(message)


class ParseError(ReleaseDriftError):
    """Raised on a malformed ops, variables or manifest document."""


class RenderError(ReleaseDriftError):
    """Raised when template evaluation fails."""


class NotFoundError(ReleaseDriftError):
    """Raised when a deployment cannot be correlated to a known version."""


class RefreshCancelled(ReleaseDriftError):
    """Raised between sources when a refresh cycle has been cancelled."""
