# ABOUTME: This file defines custom exception classes for the TTS gateway.
# ABOUTME: These exceptions map to specific HTTP status codes in the main application's handlers.

from typing import Optional


class InvalidInputError(Exception):
    """Raised when caller-supplied text or parameters fail validation.
    Maps to HTTP 400 Bad Request.
    """
    pass


class UnauthorizedError(Exception):
    """Raised when the shared secret header is missing or wrong.
    Maps to HTTP 401 Unauthorized.
    """
    pass


class ApiKeyNotConfiguredError(Exception):
    """Raised when no upstream API key is configured.
    Maps to HTTP 500 Internal Server Error.
    """
    pass


class QuotaExhaustedError(Exception):
    """Raised when every candidate model was throttled by the upstream.
    Maps to HTTP 429 Too Many Requests.
    """

    def __init__(self, message: str, retry_after_seconds: Optional[int] = None):
        super().__init__(message)
        self.retry_after_seconds = retry_after_seconds


class UpstreamFailureError(Exception):
    """Raised when every candidate model failed for a non-quota reason.
    Maps to HTTP 502 Bad Gateway; status_code is the last upstream status seen.
    """

    def __init__(self, message: str, status_code: int = 502):
        super().__init__(message)
        self.status_code = status_code
