"""Error taxonomy for the Lumen portal.

Only ConfigurationError is fatal. The other errors are either surfaced to the
user (AuthError, DataError), degraded silently (ProfileFetchError) or turned
into a displayable reply (CompletionServiceError).
"""


class PortalError(Exception):
    """Base class for portal errors."""


class ConfigurationError(PortalError, ValueError):
    """Required Identity Store settings are missing."""


class AuthError(PortalError):
    """Sign-in, sign-up or sign-out failed.

    The message is the Identity Store's own wording and is shown to the user
    as is. ``email_not_confirmed`` only changes how the login page words it.
    """

    def __init__(self, message: str, email_not_confirmed: bool = False) -> None:
        super().__init__(message)
        self.message = message
        self.email_not_confirmed = email_not_confirmed


class RegistrationValidationError(AuthError):
    """A registration precondition failed before contacting the Identity Store."""

    PASSWORD_MISMATCH = "password_mismatch"
    PASSWORD_TOO_SHORT = "password_too_short"
    STUDENT_FIELDS_REQUIRED = "student_fields_required"
    MISSING_FIELDS = "missing_fields"

    def __init__(self, reason: str, message: str) -> None:
        super().__init__(message)
        self.reason = reason


class ProfileFetchError(PortalError):
    """The profile row for a session could not be read or is invalid."""

    def __init__(self, user_id: str, message: str) -> None:
        super().__init__(f"Profile {user_id}: {message}")
        self.user_id = user_id


class DataError(PortalError):
    """A read or write against the profiles or materials table failed."""

    def __init__(self, operation: str, message: str) -> None:
        super().__init__(f"{operation} failed: {message}")
        self.operation = operation


class SelfDeletionError(DataError):
    """An admin tried to delete its own profile."""

    def __init__(self, user_id: str) -> None:
        super().__init__("delete_profile", "administrators cannot delete their own account")
        self.user_id = user_id


class CompletionServiceError(PortalError):
    """Base class for completion failures; carries the user-facing reply."""

    def __init__(self, message: str, user_message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.user_message = user_message
        self.status_code = status_code


class QuotaExceededError(CompletionServiceError):
    """HTTP 429 with provider code ``insufficient_quota``."""


class CompletionRequestError(CompletionServiceError):
    """Any other completion failure: HTTP error, transport error, bad payload."""
