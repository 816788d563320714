"""
Exit codes of releasedrift commands.

Codes above 64 follow the sysexits.h ranges so that cron jobs and CI
steps running ``releasedrift check`` can tell failures apart.
"""

SUCCESS = 0              # Snapshot built and printed
GENERAL_ERROR = 1        # Unexpected failure
USAGE_ERROR = 2          # Bad options (raised by click)

API_ERROR = 65           # GitHub or BOSH director unreachable
CONFIG_ERROR = 66        # Missing or invalid configuration
AUTH_ERROR = 69          # Director rejected the configured credentials
PARTIAL_SUCCESS = 71     # Snapshot built, some sources or deployments errored
INTERRUPTED = 130        # SIGINT


class CommandError(Exception):
    """
    Error carrying the exit code a command should terminate with.
    """
    def __init__(self, message: str, exit_code: int = GENERAL_ERROR):
        super().__init__(message)
        self.exit_code = exit_code


class APIError(CommandError):
    """Raised when the director cannot be reached at startup."""
    def __init__(self, message: str):
        super().__init__(message, API_ERROR)


class AuthError(CommandError):
    """Raised when the director rejects our credentials."""
    def __init__(self, message: str):
        super().__init__(message, AUTH_ERROR)


class ConfigError(CommandError):
    """Raised on a missing, unreadable or invalid configuration."""
    def __init__(self, message: str):
        super().__init__(message, CONFIG_ERROR)


class PartialSuccessError(CommandError):
    """Raised by ``check --fail-on-error`` when the snapshot has errored entities."""
    def __init__(self, message: str, failed: int = 0):
        super().__init__(message, PARTIAL_SUCCESS)
        self.failed = failed
