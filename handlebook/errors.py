"""
Error taxonomy for Handlebook.

Every claim outcome maps to exactly one ErrorKind. Kinds carry the HTTP
status family, the public error code and whether a caller may retry.
"""

from enum import Enum


class ErrorKind(Enum):
    """Caller-facing error categories."""

    VALIDATION_ERROR = ("VALIDATION_ERROR", 400, False)
    AUTHENTICATION_ERROR = ("INVALID_SIGNATURE", 401, False)
    CONFLICT_ERROR = ("USERNAME_TAKEN", 409, False)
    RATE_LIMIT_ERROR = ("RATE_LIMIT_EXCEEDED", 429, True)
    INTERNAL_ERROR = ("INTERNAL_ERROR", 500, True)

    def __init__(self, code: str, status_code: int, retryable: bool):
        self.code = code
        self.status_code = status_code
        self.retryable = retryable


# Public messages. Internal errors never carry implementation detail.
ERROR_MESSAGES = {
    ErrorKind.VALIDATION_ERROR: "Invalid request data",
    ErrorKind.AUTHENTICATION_ERROR: "Invalid signature. Please sign the message with your wallet.",
    ErrorKind.CONFLICT_ERROR: "This username is unavailable",
    ErrorKind.RATE_LIMIT_ERROR: "Too many requests. Please try again later.",
    ErrorKind.INTERNAL_ERROR: "Internal server error",
}


class HandlebookError(Exception):
    """Base class for Handlebook exceptions."""


class StoreError(HandlebookError):
    """The key-value store could not complete an operation."""


class ConfigurationError(HandlebookError, ValueError):
    """Invalid service configuration."""


class RateLimitExceeded(HandlebookError):
    """A caller used up its claim attempts for the current window."""
