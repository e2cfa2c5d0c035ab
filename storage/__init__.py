"""Storage module for the S3-compatible flat-file store."""

from .exceptions import (
    ConfigurationError,
    CorruptStreamError,
    FilesystemError,
    FlatFileError,
    InvalidArgumentError,
    StoreConnectionError,
    StoreError,
    StoreNotFoundError,
    StorePermissionError,
    StoreThrottledError,
    StreamReadError,
)
from .object_store import StoreClient, get_client, reset_client, uri_for
from .streams import ObjectStream, StreamKind, open_object_stream

__all__ = [
    "ConfigurationError",
    "CorruptStreamError",
    "FilesystemError",
    "FlatFileError",
    "InvalidArgumentError",
    "StoreConnectionError",
    "StoreError",
    "StoreNotFoundError",
    "StorePermissionError",
    "StoreThrottledError",
    "StreamReadError",
    "StoreClient",
    "get_client",
    "reset_client",
    "uri_for",
    "ObjectStream",
    "StreamKind",
    "open_object_stream",
]
