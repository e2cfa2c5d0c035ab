"""Model definitions for flat-file request/response objects."""

from .flatfile_models import (  # noqa: F401
    DownloadGrant,
    DownloadResult,
    ImportRequest,
    ImportResponse,
    ImportResult,
    ListingPage,
    ObjectSummary,
    PreviewResult,
)
