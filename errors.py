"""
Application errors and the HTTP status each one maps to.
"""

from typing import Any, Optional


class CountryAPIError(Exception):
    """Base class for errors surfaced to API clients."""

    status_code: int = 500
    error: str = "Internal server error"

    def __init__(self, details: Optional[Any] = None, error: Optional[str] = None):
        if error:
            self.error = error
        super().__init__(details or self.error)
        self.details = details

    def to_dict(self) -> dict:
        body = {"error": self.error}
        if self.details is not None:
            body["details"] = self.details
        return body


class UpstreamUnavailable(CountryAPIError):
    """An external data source failed or returned an unusable payload."""

    status_code = 503
    error = "External data source unavailable"


class NotFound(CountryAPIError):
    """A name lookup matched no country."""

    status_code = 404
    error = "Country not found"


class InternalError(CountryAPIError):
    """Storage or rendering failure."""

    status_code = 500
    error = "Internal server error"
