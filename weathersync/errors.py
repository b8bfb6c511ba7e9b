"""Error taxonomy shared by the provider client, sync engine and services.

Errors carry a kind, never an HTTP status. The API layer maps kinds to
status codes.
"""

from enum import StrEnum


class ErrorKind(StrEnum):
    NOT_FOUND = "RESOURCE_NOT_FOUND"
    DUPLICATE = "DUPLICATE_RESOURCE"
    INVALID_RESPONSE = "INVALID_RESPONSE"
    PROVIDER_UNAVAILABLE = "PROVIDER_UNAVAILABLE"
    RATE_LIMITED = "RATE_LIMIT_EXCEEDED"
    INVALID_CITY = "INVALID_CITY"


class WeatherSyncError(Exception):
    """Base class for all domain errors."""

    kind: ErrorKind

    def __init__(self, message: str, kind: ErrorKind):
        super().__init__(message)
        self.message = message
        self.kind = kind


class NotFoundError(WeatherSyncError):
    def __init__(self, resource: str, identifier: str):
        super().__init__(
            f"{resource} not found with identifier: {identifier}",
            ErrorKind.NOT_FOUND,
        )
        self.resource = resource
        self.identifier = identifier


class DuplicateError(WeatherSyncError):
    def __init__(self, resource: str, identifier: str):
        super().__init__(
            f"{resource} already exists: {identifier}", ErrorKind.DUPLICATE
        )
        self.resource = resource
        self.identifier = identifier


class ExternalApiError(WeatherSyncError):
    """The provider answered with an error status or an unusable body."""

    def __init__(
        self,
        api_name: str,
        message: str,
        kind: ErrorKind = ErrorKind.INVALID_RESPONSE,
        status_code: int | None = None,
    ):
        super().__init__(f"External API error ({api_name}): {message}", kind)
        self.api_name = api_name
        self.status_code = status_code


class InvalidResponseError(ExternalApiError):
    """Provider rejected the request (4xx other than 429)."""

    def __init__(self, api_name: str, message: str, status_code: int | None = None):
        super().__init__(api_name, message, ErrorKind.INVALID_RESPONSE, status_code)


class ProviderUnavailableError(ExternalApiError):
    """Provider failed server-side, timed out, or returned an empty body."""

    def __init__(self, api_name: str, message: str, status_code: int | None = None):
        super().__init__(api_name, message, ErrorKind.PROVIDER_UNAVAILABLE, status_code)


class RateLimitedError(WeatherSyncError):
    """Provider returned 429. Callers back off instead of giving up."""

    def __init__(self, api_name: str, retry_after: str | None = None):
        message = f"Rate limit exceeded ({api_name}). Please try again later."
        super().__init__(message, ErrorKind.RATE_LIMITED)
        self.api_name = api_name
        self.retry_after = retry_after


class InvalidCityError(WeatherSyncError):
    def __init__(self, city: str):
        super().__init__(
            f"Invalid or unrecognized city: {city}", ErrorKind.INVALID_CITY
        )
        self.city = city
