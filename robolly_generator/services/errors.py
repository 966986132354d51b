"""Custom exceptions for service layer operations."""


class RobollyError(Exception):
    """Base class for every error raised by robolly_generator."""


class ConfigError(RobollyError):
    """Raised when the configuration is invalid or the API key is missing."""


class ApiError(RobollyError):
    """Raised when a Robolly API call fails (HTTP status or network)."""

    def __init__(self, message, status=None, url=None):
        super().__init__(message)
        self.status = status
        self.url = url


class InvalidResponseError(ApiError):
    """Raised when the API answers with an unexpected JSON shape."""


class RenderTimeoutError(RobollyError):
    """Raised when an asynchronous render job never produced a file."""


class AssetDownloadError(RobollyError):
    """Raised when downloading a rendered file fails."""


class ConversionError(RobollyError):
    """Raised when converting a render to another format fails."""


class UnsupportedOperationError(RobollyError):
    """Raised when dispatch receives an unknown operation name."""
