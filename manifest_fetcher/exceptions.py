"""
Defines custom exceptions for the application to allow for more specific error handling.
"""


class ManifestFetcherError(Exception):
    """Base exception for all application-specific errors."""


class MissingParameterError(ManifestFetcherError):
    """Raised when the target identifier or a credential field is absent or empty."""


class CredentialResolutionError(ManifestFetcherError):
    """Raised when the external credential tool cannot supply a usable session."""


class ConfigurationError(ManifestFetcherError):
    """Raised for issues related to configuration loading or validation."""


class BrowserSessionError(ManifestFetcherError):
    """Raised when the browser cannot be launched or prepared for downloads."""


class AuthenticationError(ManifestFetcherError):
    """Raised when frontdoor login does not produce an authenticated session."""


class ControlNotFoundError(ManifestFetcherError):
    """
    Raised when the download control never becomes visible or cannot be clicked.
    """


class DownloadTimeoutError(ManifestFetcherError):
    """Raised when the manifest does not finish downloading within the timeout."""


class ManifestIntegrityError(ManifestFetcherError):
    """Raised when the downloaded manifest fails a post-download sanity check."""
