"""Exception hierarchy for the flat-file pipeline."""

from __future__ import annotations


class FlatFileError(Exception):
    """Base exception for all flat-file operations."""

    def __init__(
        self,
        message: str,
        key: str | None = None,
        cause: Exception | None = None,
    ) -> None:
        self.key = key
        self.cause = cause
        super().__init__(message)


class ConfigurationError(FlatFileError):
    """Raised when store credentials or settings are missing or invalid."""


class InvalidArgumentError(FlatFileError):
    """Raised when a caller supplies a missing or malformed argument."""


class StoreError(FlatFileError):
    """Raised when the remote object store returns an error."""


class StoreNotFoundError(StoreError):
    """Raised when a requested key does not exist."""


class StorePermissionError(StoreError):
    """Raised when credentials are rejected or access is denied."""


class StoreThrottledError(StoreError):
    """Raised when the store throttles the request."""


class StoreConnectionError(StoreError):
    """Raised when the store is unreachable."""


class StreamReadError(FlatFileError):
    """Raised when reading an object body fails mid-stream."""


class CorruptStreamError(StreamReadError):
    """Raised when a compressed stream cannot be decoded."""


class FilesystemError(FlatFileError):
    """Raised when a local directory or file operation fails."""
