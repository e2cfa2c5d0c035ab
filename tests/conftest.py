"""Shared test fixtures for flat-file tests."""

import sys
from pathlib import Path

# Add project root to path so imports work without PYTHONPATH
PROJECT_ROOT = Path(__file__).parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

import gzip
import time
from datetime import datetime, timezone
from typing import Any, Generator, Optional

import pytest
from botocore.exceptions import ClientError
from urllib3.exceptions import ProtocolError

from config.flatfile_config import PipelineSettings, StoreConfig
from storage.object_store import StoreClient, reset_client

FLATFILE_ENV_VARS = [
    "FLATFILES_S3_ACCESS_KEY",
    "FLATFILES_S3_SECRET_KEY",
    "FLATFILES_S3_ENDPOINT",
    "FLATFILES_S3_BUCKET",
    "FLATFILES_S3_REGION",
    "FLATFILES_DESTINATION_DIR",
    "FLATFILES_CHUNK_SIZE",
    "FLATFILES_KEEP_RAW_ON_FAILURE",
    "FLATFILES_LOG_CONSOLE_LEVEL",
]


class FakeBody:
    """Streaming body that records how much was read and whether it was closed."""

    def __init__(self, data: bytes, fail_after: Optional[int] = None, read_delay: float = 0.0) -> None:
        self._data = data
        self._pos = 0
        self._fail_after = fail_after
        self._read_delay = read_delay
        self.closed = False

    @property
    def bytes_read(self) -> int:
        return self._pos

    @property
    def size(self) -> int:
        return len(self._data)

    def read(self, amt: Optional[int] = None) -> bytes:
        if self._read_delay:
            time.sleep(self._read_delay)
        if self.closed:
            raise ValueError("I/O operation on closed body")
        if self._fail_after is not None and self._pos >= self._fail_after:
            raise ProtocolError("Connection broken: connection reset by peer")
        end = len(self._data) if amt is None else self._pos + amt
        if self._fail_after is not None:
            end = min(end, self._fail_after)
        chunk = self._data[self._pos:end]
        self._pos += len(chunk)
        return chunk

    def close(self) -> None:
        self.closed = True


class FakeS3:
    """In-memory stand-in for the boto3 S3 client methods the store uses."""

    def __init__(self) -> None:
        self.objects: dict[str, bytes] = {}
        self.fail_after: dict[str, int] = {}
        self.read_delay: dict[str, float] = {}
        self.calls: list[tuple[str, dict[str, Any]]] = []
        self.bodies: list[FakeBody] = []

    def put(self, key: str, data: bytes) -> None:
        self.objects[key] = data

    def list_objects_v2(self, **params: Any) -> dict[str, Any]:
        self.calls.append(("list_objects_v2", params))
        keys = sorted(k for k in self.objects if k.startswith(params.get("Prefix", "")))
        start = int(params["ContinuationToken"].split(":", 1)[1]) if "ContinuationToken" in params else 0
        end = start + params["MaxKeys"]
        page = keys[start:end]
        response: dict[str, Any] = {
            "KeyCount": len(page),
            "IsTruncated": end < len(keys),
            "Contents": [
                {
                    "Key": key,
                    "LastModified": datetime(2024, 1, 2, tzinfo=timezone.utc),
                    "Size": len(self.objects[key]),
                    "StorageClass": "STANDARD",
                }
                for key in page
            ],
        }
        if end < len(keys):
            response["NextContinuationToken"] = f"cursor:{end}"
        if not page:
            del response["Contents"]
        return response

    def get_object(self, **params: Any) -> dict[str, Any]:
        self.calls.append(("get_object", params))
        key = params["Key"]
        if key not in self.objects:
            raise ClientError(
                {"Error": {"Code": "NoSuchKey", "Message": "The specified key does not exist."}},
                "GetObject",
            )
        body = FakeBody(
            self.objects[key],
            fail_after=self.fail_after.get(key),
            read_delay=self.read_delay.get(key, 0.0),
        )
        self.bodies.append(body)
        return {"Body": body, "ContentLength": len(self.objects[key])}

    def generate_presigned_url(self, operation: str, Params: dict, ExpiresIn: int) -> str:
        self.calls.append(("generate_presigned_url", {"Params": Params, "ExpiresIn": ExpiresIn}))
        return (
            f"https://files.example.test/{Params['Bucket']}/{Params['Key']}"
            f"?X-Amz-Expires={ExpiresIn}&X-Amz-Signature=fake"
        )


def make_lines(count: int, header: str = "ticker,price,size") -> list[str]:
    rows = [header] if header else []
    rows.extend(f"AAPL,{180 + i}.00,{100 * (i + 1)}" for i in range(count - len(rows)))
    return rows


def gzip_lines(lines: list[str], newline: str = "\n") -> bytes:
    return gzip.compress((newline.join(lines) + newline).encode("utf-8"))


@pytest.fixture(autouse=True)
def clean_env(monkeypatch) -> Generator[None, None, None]:
    """Isolate tests from FLATFILES_* variables and the cached client."""
    for var in FLATFILE_ENV_VARS:
        monkeypatch.delenv(var, raising=False)
    reset_client()
    yield
    reset_client()


@pytest.fixture
def fake_s3() -> FakeS3:
    return FakeS3()


@pytest.fixture
def store_client(fake_s3: FakeS3) -> StoreClient:
    config = StoreConfig(access_key="test-access", secret_key="test-secret", bucket="flatfiles")
    return StoreClient(config, s3_client=fake_s3)


@pytest.fixture
def settings(tmp_path: Path) -> PipelineSettings:
    # Small chunks so line and gzip boundaries fall mid-chunk
    return PipelineSettings(destination_dir=tmp_path / "flatfiles", chunk_size=16)
