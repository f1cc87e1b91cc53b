"""
Exception types for Site Analytics.

Each error carries the HTTP status it maps to at the request boundary.
"""


class AnalyticsError(Exception):
    """Base class for all Site Analytics errors."""

    status_code = 500

    def __init__(self, message: str, details: list | None = None):
        super().__init__(message)
        self.message = message
        self.details = details


class AuthenticationError(AnalyticsError):
    """Missing or invalid bearer credential or site access key."""

    status_code = 401


class NotFoundError(AnalyticsError):
    """Site does not exist or is not owned by the caller."""

    status_code = 404


class ValidationError(AnalyticsError):
    """Request is missing a required field or has a malformed value."""

    status_code = 400


class StoreError(AnalyticsError):
    """The D1 query API failed or returned an unsuccessful response."""


class IdentityProviderError(AnalyticsError):
    """The identity provider could not be reached or answered unexpectedly."""


class ConfigError(ValueError):
    """Raised when configuration is missing or invalid."""
