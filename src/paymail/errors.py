from abc import ABC


class UserError(ABC, Exception):
    """Base class for user-related errors.

    All errors that inherit from UserError will have their messages
    displayed to the user. These errors should not contain any
    sensitive information (tokens, session ids).
    """


class NotFoundError(UserError):
    """Raised when a requested resource is not found."""

    def __init__(self, message: str = "Document not found") -> None:
        super().__init__(message)


class AuthenticationError(UserError):
    """Raised when authentication fails."""

    def __init__(self, message: str = "Authentication required") -> None:
        super().__init__(message)


class InvalidSessionError(AuthenticationError):
    """Session cookie was presented but does not map to a live session.

    The web layer clears the session cookie when this is raised.
    """


class SessionNotFoundError(InvalidSessionError):
    def __init__(self, message: str = "Invalid session") -> None:
        super().__init__(message)


class SessionExpiredError(InvalidSessionError):
    def __init__(self, message: str = "Session expired") -> None:
        super().__init__(message)


class TokenRefreshError(AuthenticationError):
    """Refresh token missing, invalid or revoked; the user has to sign in again."""

    def __init__(self, message: str = "Failed to refresh token") -> None:
        super().__init__(message)


class ValidationError(UserError):
    """Raised when user input fails validation."""


class IntegrationError(Exception):
    """An external service (identity provider, Graph) failed.

    Messages are logged, never returned to the client.
    """


class AuthExchangeError(IntegrationError):
    """Authorization code was rejected or the identity provider was unreachable."""


class ProfileFetchError(IntegrationError):
    """Profile lookup failed after a successful token exchange."""


class MailSendError(IntegrationError):
    """Graph refused or failed to send an email."""


class StoreError(Exception):
    """Session or log store I/O failed (including timeouts)."""
