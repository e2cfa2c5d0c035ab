"""Flat-file store and pipeline configuration.

Environment Variables:
    FLATFILES_S3_ACCESS_KEY: Access key (required)
    FLATFILES_S3_SECRET_KEY: Secret key (required)
    FLATFILES_S3_ENDPOINT: S3-compatible endpoint (default: https://files.polygon.io)
    FLATFILES_S3_BUCKET: Bucket name (default: flatfiles)
    FLATFILES_S3_REGION: Signing region (default: us-east-1)
    FLATFILES_DESTINATION_DIR: Import directory (default: <project>/uploads/flatfiles)
    FLATFILES_CHUNK_SIZE: Streaming chunk size in bytes (default: 65536)
    FLATFILES_KEEP_RAW_ON_FAILURE: Keep the raw download when extraction fails (default: true)
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from services.settings_helpers import get_bool_setting, get_int_setting, get_setting

DEFAULT_ENDPOINT = "https://files.polygon.io"
DEFAULT_BUCKET = "flatfiles"
DEFAULT_REGION = "us-east-1"
DEFAULT_CHUNK_SIZE = 64 * 1024
DEFAULT_DESTINATION_DIR = Path(__file__).resolve().parent.parent / "uploads" / "flatfiles"


@dataclass(frozen=True)
class StoreConfig:
    """Connection settings for the remote object store."""

    access_key: str
    secret_key: str
    endpoint_url: str = DEFAULT_ENDPOINT
    bucket: str = DEFAULT_BUCKET
    region: str = DEFAULT_REGION

    @classmethod
    def from_env(cls) -> "StoreConfig":
        return cls(
            access_key=get_setting("FLATFILES_S3_ACCESS_KEY", ""),
            secret_key=get_setting("FLATFILES_S3_SECRET_KEY", ""),
            endpoint_url=get_setting("FLATFILES_S3_ENDPOINT", DEFAULT_ENDPOINT),
            bucket=get_setting("FLATFILES_S3_BUCKET", DEFAULT_BUCKET),
            region=get_setting("FLATFILES_S3_REGION", DEFAULT_REGION),
        )

    @property
    def has_credentials(self) -> bool:
        return bool(self.access_key) and bool(self.secret_key)


@dataclass(frozen=True)
class PipelineSettings:
    """Local settings for preview and import."""

    destination_dir: Path = DEFAULT_DESTINATION_DIR
    chunk_size: int = DEFAULT_CHUNK_SIZE
    keep_raw_on_failure: bool = True

    @classmethod
    def from_env(cls) -> "PipelineSettings":
        chunk_size = get_int_setting("FLATFILES_CHUNK_SIZE", DEFAULT_CHUNK_SIZE)
        return cls(
            destination_dir=Path(
                get_setting("FLATFILES_DESTINATION_DIR", str(DEFAULT_DESTINATION_DIR))
            ),
            chunk_size=chunk_size if chunk_size > 0 else DEFAULT_CHUNK_SIZE,
            keep_raw_on_failure=get_bool_setting("FLATFILES_KEEP_RAW_ON_FAILURE", True),
        )
