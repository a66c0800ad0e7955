"""
Error types for the SEAP client.

Every error raised by the library derives from SEAPError so that a view can
recover from any of them with a single handler.
"""

from typing import Optional


GENERIC_FAILURE = "Request failed"
NETWORK_FAILURE = "Network error: could not reach the SEAP server"
UNEXPECTED_RESPONSE = "Unexpected response from server"


class SEAPError(Exception):
    """Base class for all client errors."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class ValidationError(SEAPError):
    """
    Raised before any network call when user input is malformed.

    Attributes:
        field: Name of the offending input field
    """

    def __init__(self, field: str, message: str):
        self.field = field
        super().__init__(message)


class APIError(SEAPError):
    """
    Raised when the backend answers with a non-2xx status or an unusable body.

    Attributes:
        status: HTTP status code (0 when the body, not the status, was wrong)
        message: Backend-supplied error message, or a generic fallback
    """

    def __init__(self, status: int, message: Optional[str] = None):
        self.status = status
        super().__init__(message or GENERIC_FAILURE)

    @property
    def is_unauthorized(self) -> bool:
        return self.status == 401


class TransportError(SEAPError):
    """Raised when the request never produced an HTTP response."""

    def __init__(self, message: str = NETWORK_FAILURE):
        super().__init__(message)


class ConfigError(SEAPError):
    """Raised when configuration cannot be loaded or is invalid."""
