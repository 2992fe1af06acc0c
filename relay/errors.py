"""
Errors - Relay Module
Typed failures surfaced by the analysis pipeline, each with an HTTP status
"""

from typing import Optional


class RelayError(Exception):
    """Base exception for analysis relay errors."""

    status_code: int = 500

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        if status_code is not None:
            self.status_code = status_code


class RequestValidationError(RelayError):
    """Raised when userData or exerciseData is missing."""

    status_code = 400


class NoModelsAvailableError(RelayError):
    """Raised when the model catalog came back empty after retries."""


class NoSuitableModelError(RelayError):
    """Raised when no catalog model supports a known generation method."""


class UpstreamError(RelayError):
    """Raised for a terminal non-2xx response from the generation endpoint."""

    status_code = 502

    def __init__(self, message: str, upstream_status: int, details: str = "") -> None:
        # Pass the provider's status through when it is an error code.
        super().__init__(message, status_code=upstream_status if upstream_status >= 400 else None)
        self.upstream_status = upstream_status
        self.details = details


class UpstreamTimeoutError(RelayError):
    """Raised when the final generation attempt exceeded its deadline."""

    status_code = 504


class UpstreamTransportError(RelayError):
    """Raised for connection-level failures after retries."""

    status_code = 502
