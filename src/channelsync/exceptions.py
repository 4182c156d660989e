"""
Custom exceptions for channelsync.

This module defines domain-specific exceptions that provide better error
categorization and more informative error messages for users and developers.
Every error raised by the cache engine is terminal for the run; callers decide
whether to re-invoke.
"""

from typing import Iterable


class ChannelSyncError(Exception):
    """
    Base exception for all channelsync errors.

    All custom exceptions in channelsync inherit from this class so the
    command line front end can catch every application-specific error at once.
    """

    def __init__(self, message: str, details: str | None = None) -> None:
        """
        Initialize the exception.

        Args:
            message: The primary error message.
            details: Optional additional context about the error.
        """
        self.message = message
        self.details = details
        super().__init__(message)

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} - {self.details}"
        return self.message


# =============================================================================
# Configuration Errors
# =============================================================================


class ConfigurationError(ChannelSyncError):
    """
    Exception raised when configuration is invalid or missing.

    This includes:
    - Unreadable configuration files
    - Invalid configuration values
    - Configuration file parsing errors
    """

    pass


class ConfigFileError(ConfigurationError):
    """Exception raised when the configuration file cannot be read or parsed."""

    pass


class ConfigValidationError(ConfigurationError):
    """Exception raised when configuration validation fails."""

    pass


# =============================================================================
# Validation Errors
# =============================================================================


class ValidationError(ChannelSyncError):
    """
    Exception raised when an input value fails validation.

    Attributes:
        field: The name of the field that failed validation.
        value: The value that failed validation.
    """

    def __init__(
        self,
        message: str,
        field: str | None = None,
        value: str | None = None,
        details: str | None = None,
    ) -> None:
        super().__init__(message, details)
        self.field = field
        self.value = value


class ChannelParseError(ValidationError):
    """Exception raised when a channel string does not follow `NAME:VERSION` or `NAME:DATE`."""

    pass


class ManifestError(ValidationError):
    """Exception raised when a channel manifest cannot be decoded or is inconsistent."""

    pass


# =============================================================================
# Channel Errors
# =============================================================================


class ChannelOverlapError(ChannelSyncError):
    """
    Exception raised when two channels claim the same cache path with different content.

    Attributes:
        path: The relative cache path both channels map to.
        channels: Channel strings involved in the collision.
    """

    def __init__(
        self,
        path: str,
        channels: Iterable[str] = (),
        details: str | None = None,
    ) -> None:
        self.path = path
        self.channels = tuple(channels)
        message = f"Channels overlap at '{path}'"
        if self.channels:
            message = f"{message} ({', '.join(self.channels)})"
        super().__init__(message, details)


class MixedChannelKindError(ChannelSyncError):
    """Exception raised when stable and date-based channels share one display name."""

    def __init__(self, name: str) -> None:
        super().__init__(
            f"Channel name '{name}' is used by both stable and date-based channels",
            details="aliases cannot be ordered across channel kinds",
        )
        self.name = name


# =============================================================================
# Download Errors
# =============================================================================


class DownloadError(ChannelSyncError):
    """
    Base exception for download-related errors.

    Attributes:
        url: The URL that was being downloaded when the error occurred.
    """

    def __init__(
        self,
        message: str,
        url: str | None = None,
        details: str | None = None,
    ) -> None:
        super().__init__(message, details)
        self.url = url


class UnsupportedSchemeError(DownloadError):
    """Exception raised for artefact URLs whose scheme the transport cannot fetch."""

    def __init__(self, scheme: str, url: str | None = None) -> None:
        super().__init__(f"Unsupported URL scheme '{scheme}'", url=url)
        self.scheme = scheme


class NetworkError(DownloadError):
    """
    Exception raised for transport failures.

    This includes:
    - Connection timeouts
    - DNS resolution failures
    - Connection resets mid-transfer
    """

    pass


class HTTPError(DownloadError):
    """
    Exception raised when the server answers with a non-success status.

    Attributes:
        status_code: The HTTP status code returned by the server.
    """

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        url: str | None = None,
        details: str | None = None,
    ) -> None:
        super().__init__(message, url, details)
        self.status_code = status_code


class BadChecksumError(DownloadError):
    """Exception raised when downloaded bytes do not hash to the declared digest."""

    def __init__(
        self,
        url: str,
        expected: str | None = None,
        actual: str | None = None,
    ) -> None:
        details = None
        if expected and actual:
            details = f"expected {expected}, got {actual}"
        super().__init__(f"Bad checksum for '{url}'", url=url, details=details)
        self.expected = expected
        self.actual = actual


# =============================================================================
# File System Errors
# =============================================================================


class FileSystemError(ChannelSyncError):
    """
    Exception raised for file system failures while pruning, reading or writing the cache.

    Attributes:
        path: The file path that caused the error.
    """

    def __init__(
        self,
        message: str,
        path: str | None = None,
        details: str | None = None,
    ) -> None:
        super().__init__(message, details)
        self.path = path
