"""
Flat-file service: listing, signed URLs, previews and imports.

This service handles:
1. Paginated listing of objects under a prefix
2. Signing short-lived download URLs
3. Previewing the first lines of an object (gunzipped when named *.gz)
4. Importing an object to local disk, extracting and counting rows

Local structure:
    {destination_dir}/
    ├── {basename}.csv.gz    raw download
    └── {basename}.csv       extracted copy (compressed objects only)

Every store call is issued once; retries belong to the caller. Each
operation accepts an explicit StoreClient and PipelineSettings, and falls
back to the process-wide client and environment settings.
"""

import asyncio
import logging
from contextlib import aclosing
from pathlib import Path, PurePosixPath
from typing import AsyncIterator, Optional

from config.flatfile_config import PipelineSettings
from models.flatfile_models import (
    DownloadGrant,
    DownloadResult,
    ImportResult,
    ListingPage,
    ObjectSummary,
    PreviewResult,
)
from storage.exceptions import FilesystemError, InvalidArgumentError, StoreError
from storage.object_store import StoreClient, get_client, uri_for
from storage.streams import (
    COMPRESSED_SUFFIX,
    StreamKind,
    gunzip_chunks,
    is_compressed_key,
    iter_lines,
    open_object_stream,
)

logger = logging.getLogger(__name__)

DEFAULT_MAX_KEYS = 50
MIN_MAX_KEYS = 1
MAX_MAX_KEYS = 1000
DEFAULT_EXPIRES_IN = 300
MIN_EXPIRES_IN = 60
MAX_EXPIRES_IN = 3600
DEFAULT_PREVIEW_LINES = 10


def _clamp(value: int, low: int, high: int) -> int:
    return min(max(value, low), high)


def _require_key(object_key: Optional[str], action: str) -> str:
    if not object_key:
        raise InvalidArgumentError(f"objectKey is required to {action}.")
    return object_key


def _local_filename(object_key: str) -> str:
    """Final path segment of object_key, used as the local file name."""
    filename = PurePosixPath(object_key).name
    if filename in ("", ".", ".."):
        raise InvalidArgumentError(
            f"objectKey {object_key!r} has no file name to save to.", key=object_key
        )
    return filename


def _remove_quietly(path: Path) -> None:
    try:
        path.unlink(missing_ok=True)
    except OSError as exc:
        logger.warning("Could not remove partial file %s: %s", path, exc)


# ============================================================
# Listing
# ============================================================

async def list_flat_files(
    prefix: str = "",
    continuation_token: Optional[str] = None,
    max_keys: Optional[int] = DEFAULT_MAX_KEYS,
    client: Optional[StoreClient] = None,
) -> ListingPage:
    """
    List one page of objects under prefix.

    Args:
        prefix: Key prefix; empty matches every object
        continuation_token: Token from a previous truncated page
        max_keys: Page size, clamped to [1, 1000] (default 50)
        client: Store client (default: process-wide client)

    Returns:
        ListingPage in store order

    Raises:
        ConfigurationError: If credentials are missing
        StoreError: If the store rejects or fails the call
    """
    client = client or get_client()
    page_size = _clamp(max_keys or DEFAULT_MAX_KEYS, MIN_MAX_KEYS, MAX_MAX_KEYS)

    response = await asyncio.to_thread(
        client.list_objects, prefix or "", page_size, continuation_token or None
    )

    items = tuple(
        ObjectSummary(
            key=item["Key"],
            last_modified=item.get("LastModified"),
            size=item.get("Size", 0),
            storage_class=item.get("StorageClass"),
        )
        for item in response.get("Contents") or []
    )
    is_truncated = bool(response.get("IsTruncated"))
    next_token = response.get("NextContinuationToken") or None
    if is_truncated and next_token is None:
        raise StoreError(
            f"Store returned a truncated listing for prefix {prefix!r} without a continuation token"
        )

    logger.debug(
        "Listed %d objects under s3://%s/%s (truncated=%s)",
        len(items), client.bucket, prefix, is_truncated,
    )
    return ListingPage(
        items=items,
        is_truncated=is_truncated,
        continuation_token=next_token if is_truncated else None,
    )


# ============================================================
# Signed URLs
# ============================================================

async def get_download_url(
    object_key: str,
    expires_in: Optional[int] = DEFAULT_EXPIRES_IN,
    client: Optional[StoreClient] = None,
) -> DownloadGrant:
    """Sign a read-only URL for object_key, valid for 60-3600 seconds.

    The object's existence is not checked.
    """
    object_key = _require_key(object_key, "generate a download URL")
    client = client or get_client()
    seconds = _clamp(
        DEFAULT_EXPIRES_IN if expires_in is None else int(expires_in),
        MIN_EXPIRES_IN,
        MAX_EXPIRES_IN,
    )
    url = await asyncio.to_thread(client.presign_get, object_key, seconds)
    return DownloadGrant(url=url, expires_in_seconds=seconds)


# ============================================================
# Preview
# ============================================================

async def preview_flat_file(
    object_key: str,
    max_lines: int = DEFAULT_PREVIEW_LINES,
    client: Optional[StoreClient] = None,
    settings: Optional[PipelineSettings] = None,
) -> PreviewResult:
    """
    Read up to max_lines lines from the start of object_key.

    The object body is closed before returning on every path; reading stops
    as soon as max_lines lines are collected, without draining the rest.

    Raises:
        InvalidArgumentError: If object_key is empty or max_lines < 1
        StoreError: If the object cannot be opened
        StreamReadError: If reading or decompressing fails (no partial result)
    """
    object_key = _require_key(object_key, "preview a flat file")
    if max_lines is None or max_lines < 1:
        raise InvalidArgumentError("maxLines must be at least 1.", key=object_key)
    client = client or get_client()
    settings = settings or PipelineSettings.from_env()

    sample: list[str] = []
    stream = await open_object_stream(client, object_key, chunk_size=settings.chunk_size)
    async with stream:
        async with aclosing(stream.iter_lines()) as lines:
            async for line in lines:
                sample.append(line)
                if len(sample) >= max_lines:
                    break

    return PreviewResult(
        object_key=object_key,
        total_lines_read=len(sample),
        sample=tuple(sample),
        compressed=stream.compressed,
    )


# ============================================================
# Download and import
# ============================================================

async def _iter_file_chunks(path: Path, chunk_size: int) -> AsyncIterator[bytes]:
    try:
        handle = await asyncio.to_thread(open, path, "rb")
    except OSError as exc:
        raise FilesystemError(f"Cannot open {path}: {exc}", cause=exc) from exc
    try:
        while True:
            try:
                chunk = await asyncio.to_thread(handle.read, chunk_size)
            except OSError as exc:
                raise FilesystemError(f"Cannot read {path}: {exc}", cause=exc) from exc
            if not chunk:
                return
            yield chunk
    finally:
        handle.close()


async def _write_chunks(chunks: AsyncIterator[bytes], path: Path) -> int:
    """Write chunks to path in order; returns bytes written. Closes chunks on exit."""
    written = 0
    async with aclosing(chunks) as source:
        try:
            handle = await asyncio.to_thread(open, path, "wb")
        except OSError as exc:
            raise FilesystemError(f"Cannot create {path}: {exc}", cause=exc) from exc
        try:
            async for chunk in source:
                try:
                    await asyncio.to_thread(handle.write, chunk)
                except OSError as exc:
                    raise FilesystemError(f"Cannot write {path}: {exc}", cause=exc) from exc
                written += len(chunk)
        finally:
            handle.close()
    return written


async def download_flat_file(
    object_key: str,
    destination_dir: Optional[Path] = None,
    client: Optional[StoreClient] = None,
    settings: Optional[PipelineSettings] = None,
) -> DownloadResult:
    """
    Stream object_key byte-for-byte into destination_dir.

    The local file is named after the key's final segment. Keys sharing a
    basename under different prefixes overwrite each other. A failed
    download removes its partial file.
    """
    object_key = _require_key(object_key, "download a flat file")
    filename = _local_filename(object_key)
    client = client or get_client()
    settings = settings or PipelineSettings.from_env()
    target_dir = Path(destination_dir) if destination_dir else settings.destination_dir

    try:
        await asyncio.to_thread(target_dir.mkdir, parents=True, exist_ok=True)
    except OSError as exc:
        raise FilesystemError(f"Cannot create directory {target_dir}: {exc}", cause=exc) from exc
    destination_path = target_dir / filename

    stream = await open_object_stream(
        client, object_key, chunk_size=settings.chunk_size, kind=StreamKind.RAW
    )
    logger.info("Downloading %s to %s", uri_for(client.bucket, object_key), destination_path)
    try:
        async with stream:
            size = await _write_chunks(stream.iter_raw(), destination_path)
    except (Exception, asyncio.CancelledError) as exc:
        logger.warning(
            "Download of %s failed (%s); removing %s", object_key, type(exc).__name__, destination_path
        )
        _remove_quietly(destination_path)
        raise

    logger.info("Downloaded %s (%d bytes)", destination_path, size)
    return DownloadResult(destination_path=str(destination_path), filename=filename)


async def extract_gzip_file(source: Path, target: Path, chunk_size: int) -> None:
    """Gunzip source into target. A partial target is removed on failure."""
    try:
        await _write_chunks(
            gunzip_chunks(_iter_file_chunks(source, chunk_size), chunk_size, object_key=str(source)),
            target,
        )
    except (Exception, asyncio.CancelledError):
        _remove_quietly(target)
        raise


async def count_lines(path: Path, chunk_size: int) -> int:
    """Count CR/LF/CRLF-delimited lines in path without keeping them."""
    rows = 0
    async with aclosing(iter_lines(_iter_file_chunks(path, chunk_size))) as lines:
        async for _line in lines:
            rows += 1
    return rows


async def import_flat_file(
    object_key: str,
    destination_dir: Optional[Path] = None,
    client: Optional[StoreClient] = None,
    settings: Optional[PipelineSettings] = None,
) -> ImportResult:
    """
    Download object_key, then extract and count rows if it is gzipped.

    Steps run strictly in order: download, extraction, row count. When
    extraction or counting fails, the raw download is kept unless
    settings.keep_raw_on_failure is false.

    Returns:
        ImportResult; extracted_path and row_count are None for
        uncompressed objects
    """
    object_key = _require_key(object_key, "import a flat file")
    settings = settings or PipelineSettings.from_env()
    filename = _local_filename(object_key)
    if filename == COMPRESSED_SUFFIX:
        raise InvalidArgumentError(
            f"objectKey {object_key!r} has no file name left after removing {COMPRESSED_SUFFIX}.",
            key=object_key,
        )

    download = await download_flat_file(
        object_key, destination_dir=destination_dir, client=client, settings=settings
    )
    saved_to = Path(download.destination_path)

    if not is_compressed_key(download.filename):
        return ImportResult(object_key=object_key, saved_to=str(saved_to))

    extracted_path = saved_to.with_name(saved_to.name[: -len(COMPRESSED_SUFFIX)])
    try:
        await extract_gzip_file(saved_to, extracted_path, settings.chunk_size)
        row_count = await count_lines(extracted_path, settings.chunk_size)
    except (Exception, asyncio.CancelledError):
        if settings.keep_raw_on_failure:
            logger.warning("Import of %s failed after download; keeping %s", object_key, saved_to)
        else:
            logger.warning("Import of %s failed after download; removing %s", object_key, saved_to)
            _remove_quietly(saved_to)
        raise

    logger.info("Imported %s: %d rows in %s", object_key, row_count, extracted_path)
    return ImportResult(
        object_key=object_key,
        saved_to=str(saved_to),
        extracted_path=str(extracted_path),
        row_count=row_count,
    )
