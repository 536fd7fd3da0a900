"""
Exceptions for passage sync.
"""


class PassageSyncError(Exception):
    """Base exception for passage sync operations."""


class ConfigError(PassageSyncError):
    """Raised when the configuration file is missing or invalid."""


class StateError(PassageSyncError):
    """Raised when the persisted sync state cannot be read."""


class ProviderError(PassageSyncError):
    """Raised when the remote memory provider rejects a request."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class ProviderConnectionError(ProviderError):
    """Raised when the remote memory provider cannot be reached."""


class AuthenticationError(ProviderError):
    """Raised when the provider refuses our credentials."""


class NotFoundError(ProviderError):
    """Raised when an agent, passage or memory block does not exist."""
