"""
Centralized error handling for provider/attendance failures.
Domain exceptions plus a reusable helper so routes stay thin and new error types are easy to add.
"""
from __future__ import annotations

from fastapi import HTTPException

# ---------------------------------------------------------------------------
# Domain exceptions
# ---------------------------------------------------------------------------


class ProviderError(Exception):
    """Google Places returned a status other than OK / ZERO_RESULTS, or the request failed.

    http_status is the upstream HTTP status when Google answered with a non-2xx response.
    """

    def __init__(self, status: str, message: str | None = None, *, http_status: int | None = None) -> None:
        self.status = status
        self.http_status = http_status
        super().__init__(message or f"Google Places API error: {status}")


class ConflictError(Exception):
    """Concurrent membership change or first join for the same user/restaurant. Retryable."""


class ConfigurationError(Exception):
    """Required configuration (e.g. GOOGLE_PLACES_API_KEY) is missing. Fatal at startup."""


# ---------------------------------------------------------------------------
# Constants: status codes and user-facing messages
# ---------------------------------------------------------------------------

MSG_TRY_AGAIN = "Someone else changed this dinner group at the same time. Please try again."
MSG_PROVIDER_UNAVAILABLE = "Restaurant provider is unavailable right now."

STATUS_CONFLICT = 409
STATUS_BAD_GATEWAY = 502  # provider down or rejected the request
STATUS_INTERNAL_ERROR = 500


# ---------------------------------------------------------------------------
# Error rules: (exception type, status_code, detail_message)
# Add new rules here instead of scattering checks in routes.
# ---------------------------------------------------------------------------

# First match wins.
ERROR_RULES: list[tuple[type[Exception], int, str]] = [
    (ConflictError, STATUS_CONFLICT, MSG_TRY_AGAIN),
    (ProviderError, STATUS_BAD_GATEWAY, MSG_PROVIDER_UNAVAILABLE),
]


def error_to_http(exc: Exception) -> HTTPException:
    """
    Map a domain exception into an HTTPException.
    Uses ERROR_RULES for known error types; otherwise returns 500 with the exception message.
    """
    for exc_type, status_code, detail in ERROR_RULES:
        if isinstance(exc, exc_type):
            return HTTPException(status_code=status_code, detail=detail)
    return HTTPException(status_code=STATUS_INTERNAL_ERROR, detail=str(exc))
