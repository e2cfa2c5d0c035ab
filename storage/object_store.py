"""
Store client for the S3-compatible flat-file bucket.

This module owns the credentials and the boto3 client used by every
flat-file operation. The client is built lazily on first use and cached for
the process lifetime; configuration changes require reset_client() or an
explicitly constructed StoreClient.

All methods here are blocking boto3 calls. The async service layer runs them
with asyncio.to_thread.
"""

import logging
from functools import lru_cache
from typing import Any, Optional

import boto3
from botocore.client import BaseClient
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from config.flatfile_config import StoreConfig
from storage.exceptions import (
    ConfigurationError,
    StoreConnectionError,
    StoreError,
    StoreNotFoundError,
    StorePermissionError,
    StoreThrottledError,
)

logger = logging.getLogger(__name__)

_ERROR_CODE_MAP = {
    "NoSuchKey": StoreNotFoundError,
    "NoSuchBucket": StoreNotFoundError,
    "NotFound": StoreNotFoundError,
    "404": StoreNotFoundError,
    "AccessDenied": StorePermissionError,
    "403": StorePermissionError,
    "InvalidAccessKeyId": StorePermissionError,
    "SignatureDoesNotMatch": StorePermissionError,
    "SlowDown": StoreThrottledError,
    "Throttling": StoreThrottledError,
    "ThrottlingException": StoreThrottledError,
    "RequestLimitExceeded": StoreThrottledError,
    "503": StoreThrottledError,
}


def translate_error(error: Exception, key: str | None = None) -> StoreError:
    """Map a botocore exception onto the StoreError hierarchy."""
    if isinstance(error, ClientError):
        code = error.response.get("Error", {}).get("Code", "")
        exc_cls = _ERROR_CODE_MAP.get(str(code), StoreError)
        return exc_cls(str(error), key=key, cause=error)
    if isinstance(error, BotoCoreError):
        return StoreConnectionError(str(error), key=key, cause=error)
    return StoreError(str(error), key=key, cause=error)


def validate_config(config: StoreConfig) -> None:
    """Raise ConfigurationError if the store cannot be used with config."""
    if not config.has_credentials:
        raise ConfigurationError(
            "Flat-file store credentials are not configured. "
            "Set FLATFILES_S3_ACCESS_KEY and FLATFILES_S3_SECRET_KEY."
        )
    if not config.bucket:
        raise ConfigurationError("FLATFILES_S3_BUCKET must not be empty.")


class StoreClient:
    """Authenticated access to one bucket of the flat-file store."""

    def __init__(self, config: StoreConfig, s3_client: Optional[BaseClient] = None) -> None:
        validate_config(config)
        self._config = config
        if s3_client is None:
            s3_client = boto3.client(
                "s3",
                endpoint_url=config.endpoint_url,
                region_name=config.region,
                aws_access_key_id=config.access_key,
                aws_secret_access_key=config.secret_key,
                config=Config(
                    signature_version="s3v4",
                    s3={"addressing_style": "path"},
                    retries={"max_attempts": 1, "mode": "standard"},
                ),
            )
        self._client = s3_client

    @property
    def config(self) -> StoreConfig:
        return self._config

    @property
    def bucket(self) -> str:
        return self._config.bucket

    def list_objects(
        self,
        prefix: str,
        max_keys: int,
        continuation_token: str | None = None,
    ) -> dict[str, Any]:
        """Issue one ListObjectsV2 call and return the raw response."""
        params: dict[str, Any] = {
            "Bucket": self.bucket,
            "Prefix": prefix,
            "MaxKeys": max_keys,
        }
        if continuation_token:
            params["ContinuationToken"] = continuation_token
        try:
            return self._client.list_objects_v2(**params)
        except (ClientError, BotoCoreError) as exc:
            logger.debug("Failed to list s3://%s/%s: %s", self.bucket, prefix, exc)
            raise translate_error(exc) from exc

    def presign_get(self, key: str, expires_in: int) -> str:
        """Sign a GET URL for key. Does not contact the store."""
        try:
            return self._client.generate_presigned_url(
                "get_object",
                Params={"Bucket": self.bucket, "Key": key},
                ExpiresIn=expires_in,
            )
        except (ClientError, BotoCoreError) as exc:
            logger.debug("Failed to sign URL for s3://%s/%s: %s", self.bucket, key, exc)
            raise translate_error(exc, key) from exc

    def get_object_body(self, key: str) -> Any:
        """Open key and return its unread streaming body."""
        try:
            response = self._client.get_object(Bucket=self.bucket, Key=key)
        except (ClientError, BotoCoreError) as exc:
            logger.debug("Failed to open s3://%s/%s: %s", self.bucket, key, exc)
            raise translate_error(exc, key) from exc
        return response["Body"]


@lru_cache
def get_client() -> StoreClient:
    """
    Get or create the process-wide StoreClient.

    Raises ConfigurationError when credentials are missing; a failed call is
    not cached, so the next call validates again.
    """
    config = StoreConfig.from_env()
    client = StoreClient(config)
    logger.info("Flat-file store client created for %s (bucket %s)", config.endpoint_url, config.bucket)
    return client


def reset_client() -> None:
    """Drop the cached client so the next get_client() rebuilds it."""
    get_client.cache_clear()


def uri_for(bucket: str, key: str) -> str:
    return f"s3://{bucket}/{key}"
