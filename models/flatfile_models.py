"""Pydantic models for the flat-file API.

All models are frozen value types. Field names are snake_case in Python and
camelCase on the wire.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel


class FlatFileModel(BaseModel):
    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )


class ObjectSummary(FlatFileModel):
    """One object in a listing page."""

    key: str
    last_modified: Optional[datetime] = None
    size: int = 0
    storage_class: Optional[str] = None


class ListingPage(FlatFileModel):
    """A page of objects under a prefix, in store order."""

    items: tuple[ObjectSummary, ...] = ()
    is_truncated: bool = False
    continuation_token: Optional[str] = None

    @model_validator(mode="after")
    def _token_iff_truncated(self) -> "ListingPage":
        if self.is_truncated != (self.continuation_token is not None):
            raise ValueError("continuation_token must be present exactly when is_truncated is true")
        return self


class DownloadGrant(FlatFileModel):
    """A short-lived signed GET URL."""

    url: str
    expires_in_seconds: int = Field(alias="expiresIn", ge=60, le=3600)


class PreviewResult(FlatFileModel):
    """The first lines of an object."""

    object_key: str
    total_lines_read: int = Field(ge=0)
    sample: tuple[str, ...] = ()
    compressed: bool = False


class ImportResult(FlatFileModel):
    """Local paths and row count produced by an import."""

    object_key: str
    saved_to: str
    extracted_path: Optional[str] = None
    row_count: Optional[int] = None


class DownloadResult(FlatFileModel):
    destination_path: str
    filename: str


class ImportRequest(FlatFileModel):
    object_key: str


class ImportResponse(ImportResult):
    message: str = "Flat file downloaded successfully"
