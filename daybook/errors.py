"""Exception hierarchy for daybook."""

from typing import Optional


class DaybookError(Exception):
    """Base class for all daybook errors."""


class ConfigError(DaybookError):
    """Configuration is missing or invalid."""


class BackendError(DaybookError):
    """A call to the record store or auth collaborator failed.

    Raised for network and backend failures. These are the only errors
    the retry policy retries by default.
    """


class AuthError(DaybookError):
    """Authentication failed (bad credentials, invalid or expired token)."""


class SessionExpiredError(AuthError):
    """No active session was found when one was required."""

    def __init__(self, message: str = "Your session has expired. Log in again"):
        super().__init__(message)


class ValidationError(DaybookError):
    """User input was rejected before any backend call."""


class FieldValidationError(ValidationError):
    """A single form field is missing or invalid."""

    def __init__(self, field: str, message: str):
        super().__init__(message)
        self.field = field


class EntryValidationError(ValidationError):
    """Detailed entries for a day do not reconcile."""

    def __init__(self, message: str, symbols: Optional[list[str]] = None):
        super().__init__(message)
        self.symbols = symbols or []


class ModeLockedError(DaybookError):
    """Entry mode cannot be switched while the draft holds data."""


class ShareNotFoundError(DaybookError):
    """No profile matches the requested share token."""

    def __init__(self, message: str = "Share link not found"):
        super().__init__(message)
