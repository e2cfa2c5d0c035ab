"""
Streaming decoder for flat-file object bodies.

An ObjectStream is tagged RAW or GZIP purely by the key's suffix. Consumers
own its lifetime and should use it as an async context manager so the HTTP
body is released on every exit path, including early termination.
"""

from __future__ import annotations

import asyncio
import codecs
import enum
import logging
import re
import zlib
from contextlib import aclosing
from typing import Any, AsyncIterator, Optional

from botocore.exceptions import BotoCoreError
from urllib3.exceptions import HTTPError as Urllib3HTTPError

from storage.exceptions import CorruptStreamError, StreamReadError
from storage.object_store import StoreClient

logger = logging.getLogger(__name__)

COMPRESSED_SUFFIX = ".gz"
DEFAULT_CHUNK_SIZE = 64 * 1024

# gzip header, any number of members
_GZIP_WBITS = 16 + zlib.MAX_WBITS
_LINE_BREAK = re.compile(r"\r\n|\r|\n")


class StreamKind(str, enum.Enum):
    RAW = "raw"
    GZIP = "gzip"


def is_compressed_key(name: str) -> bool:
    return name.endswith(COMPRESSED_SUFFIX)


def stream_kind_for(name: str) -> StreamKind:
    return StreamKind.GZIP if is_compressed_key(name) else StreamKind.RAW


class ObjectStream:
    """An open object body plus the decoding stage its key selects."""

    def __init__(
        self,
        object_key: str,
        body: Any,
        kind: StreamKind,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
    ) -> None:
        self.object_key = object_key
        self.kind = kind
        self.chunk_size = chunk_size
        self._body = body
        self._closed = False

    @property
    def compressed(self) -> bool:
        return self.kind is StreamKind.GZIP

    @property
    def closed(self) -> bool:
        return self._closed

    async def __aenter__(self) -> "ObjectStream":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Release the body without draining it. Safe to call repeatedly."""
        if self._closed:
            return
        self._closed = True
        close = getattr(self._body, "close", None)
        if close is None:
            return
        try:
            await asyncio.to_thread(close)
        except (OSError, BotoCoreError, Urllib3HTTPError) as exc:
            logger.warning("Error closing stream for %s: %s", self.object_key, exc)

    async def _read_chunk(self) -> bytes:
        if self._closed:
            raise StreamReadError("Stream already closed", key=self.object_key)
        try:
            return await asyncio.to_thread(self._body.read, self.chunk_size)
        except (OSError, BotoCoreError, Urllib3HTTPError) as exc:
            raise StreamReadError(
                f"Failed reading {self.object_key}: {exc}", key=self.object_key, cause=exc
            ) from exc

    async def iter_raw(self) -> AsyncIterator[bytes]:
        """Yield the body's bytes as stored, one chunk per read."""
        while True:
            chunk = await self._read_chunk()
            if not chunk:
                return
            yield chunk

    async def iter_decoded(self) -> AsyncIterator[bytes]:
        """Yield content bytes, decompressed when the stream is GZIP."""
        if self.kind is StreamKind.RAW:
            source = self.iter_raw()
        else:
            source = gunzip_chunks(self.iter_raw(), self.chunk_size, object_key=self.object_key)
        async with aclosing(source) as chunks:
            async for chunk in chunks:
                yield chunk

    def iter_lines(self) -> AsyncIterator[str]:
        """Yield the decoded content one text line at a time."""
        return iter_lines(self.iter_decoded())


async def open_object_stream(
    client: StoreClient,
    object_key: str,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    kind: Optional[StreamKind] = None,
) -> ObjectStream:
    """
    Open object_key on the store.

    The kind defaults to the key's suffix; pass StreamKind.RAW to read a
    compressed object byte-for-byte. Raises StoreNotFoundError/StoreError
    when the object cannot be opened.
    """
    body = await asyncio.to_thread(client.get_object_body, object_key)
    return ObjectStream(
        object_key,
        body,
        kind if kind is not None else stream_kind_for(object_key),
        chunk_size=chunk_size,
    )


async def _close_source(chunks: AsyncIterator[Any]) -> None:
    aclose = getattr(chunks, "aclose", None)
    if aclose is not None:
        await aclose()


async def gunzip_chunks(
    chunks: AsyncIterator[bytes],
    max_output: int = DEFAULT_CHUNK_SIZE,
    object_key: str | None = None,
) -> AsyncIterator[bytes]:
    """
    Incrementally gunzip an async stream of bytes.

    At most max_output bytes are produced per step so a highly compressed
    input never inflates into memory all at once. Concatenated gzip members
    are decoded in order, and zero padding after a member is skipped the way
    the gzip module skips it. The upstream iterator is closed on every exit.
    """
    decompressor = zlib.decompressobj(_GZIP_WBITS)
    member_started = False
    members_done = 0
    try:
        async for chunk in chunks:
            data = chunk
            while True:
                if members_done and not member_started:
                    data = data.lstrip(b"\0")
                if data:
                    member_started = True
                out = decompressor.decompress(data, max_output)
                if out:
                    yield out
                if decompressor.eof:
                    data = decompressor.unused_data
                    decompressor = zlib.decompressobj(_GZIP_WBITS)
                    member_started = False
                    members_done += 1
                    if not data:
                        break
                    continue
                data = decompressor.unconsumed_tail
                # zlib may still hold output after consuming all input
                if not data and not out:
                    break
        if member_started:
            raise CorruptStreamError(
                f"Truncated gzip data in {object_key or 'stream'}", key=object_key
            )
    except zlib.error as exc:
        raise CorruptStreamError(
            f"Invalid gzip data in {object_key or 'stream'}: {exc}", key=object_key, cause=exc
        ) from exc
    finally:
        await _close_source(chunks)


def split_lines(buffer: str, final: bool = False) -> tuple[list[str], str]:
    """
    Split buffer on CR, LF or CRLF.

    Returns the complete lines and the unterminated remainder. A trailing CR
    is held back until the next chunk shows whether it starts a CRLF. With
    final=True the remainder is emitted as a last line when non-empty.
    """
    held = ""
    if not final and buffer.endswith("\r"):
        buffer, held = buffer[:-1], "\r"
    parts = _LINE_BREAK.split(buffer)
    rest = parts.pop()
    if final:
        if rest:
            parts.append(rest)
        return parts, ""
    return parts, rest + held


async def iter_lines(
    chunks: AsyncIterator[bytes],
    encoding: str = "utf-8",
) -> AsyncIterator[str]:
    """Yield text lines from an async stream of bytes, closing it on exit."""
    decoder = codecs.getincrementaldecoder(encoding)(errors="replace")
    pending = ""
    try:
        async for chunk in chunks:
            lines, pending = split_lines(pending + decoder.decode(chunk))
            for line in lines:
                yield line
    finally:
        await _close_source(chunks)
    lines, _ = split_lines(pending + decoder.decode(b"", final=True), final=True)
    for line in lines:
        yield line
