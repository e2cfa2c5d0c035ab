"""Flat-file API routes.

Endpoints for listing, signing, sampling and importing objects from the
flat-file store. Responses use camelCase field names.
"""

import logging
from typing import NoReturn, Optional

from fastapi import APIRouter, HTTPException, Query

from models.flatfile_models import (
    DownloadGrant,
    ImportRequest,
    ImportResponse,
    ListingPage,
    PreviewResult,
)
from services import flatfile_service
from storage.exceptions import (
    ConfigurationError,
    FilesystemError,
    FlatFileError,
    InvalidArgumentError,
    StoreError,
    StoreNotFoundError,
    StreamReadError,
)

logger = logging.getLogger("uvicorn")

router = APIRouter(prefix="/v1/flatfiles", tags=["flatfiles"])


# Most specific first
_STATUS_CODES: tuple[tuple[type[FlatFileError], int], ...] = (
    (InvalidArgumentError, 400),
    (StoreNotFoundError, 404),
    (StoreError, 502),
    (StreamReadError, 502),
    (ConfigurationError, 500),
    (FilesystemError, 500),
)


def _status_for(exc: FlatFileError) -> int:
    for exc_cls, status_code in _STATUS_CODES:
        if isinstance(exc, exc_cls):
            return status_code
    return 500


def _raise_http(exc: FlatFileError) -> NoReturn:
    status_code = _status_for(exc)
    if status_code >= 500:
        logger.error("Flat-file request failed: %s", exc, exc_info=exc)
    raise HTTPException(
        status_code=status_code,
        detail={"error": {"type": type(exc).__name__, "message": str(exc), "key": exc.key}},
    ) from exc


@router.get("/list", response_model=ListingPage)
async def list_flat_files(
    prefix: str = Query(default=""),
    limit: int = Query(default=50, ge=1, le=1000),
    token: Optional[str] = Query(default=None),
) -> ListingPage:
    """List one page of objects under prefix."""
    try:
        return await flatfile_service.list_flat_files(
            prefix=prefix.strip(),
            continuation_token=token.strip() if token else None,
            max_keys=limit,
        )
    except FlatFileError as e:
        _raise_http(e)


@router.get("/download-url", response_model=DownloadGrant)
async def get_download_url(
    object_key: str = Query(alias="objectKey"),
    expires_in: Optional[int] = Query(default=None, alias="expiresIn"),
) -> DownloadGrant:
    """Sign a short-lived GET URL (expiry clamped to 60-3600 seconds)."""
    try:
        return await flatfile_service.get_download_url(object_key, expires_in=expires_in)
    except FlatFileError as e:
        _raise_http(e)


@router.get("/sample", response_model=PreviewResult)
async def sample_flat_file(
    object_key: str = Query(alias="objectKey"),
    limit: int = Query(default=10, ge=1, le=50),
) -> PreviewResult:
    """Return the first lines of an object, gunzipped when named *.gz."""
    try:
        return await flatfile_service.preview_flat_file(object_key, max_lines=limit)
    except FlatFileError as e:
        _raise_http(e)


@router.post("/import", response_model=ImportResponse)
async def import_flat_file(request: ImportRequest) -> ImportResponse:
    """Download an object locally, extracting and counting rows if gzipped."""
    try:
        result = await flatfile_service.import_flat_file(request.object_key)
    except FlatFileError as e:
        _raise_http(e)
    return ImportResponse(**result.model_dump())
