"""
Protocol definitions for the collaborators a query source talks to.

This module defines explicit interfaces (Protocols) for the external clients,
enabling:
- Easy faking in tests (see tests/cloud_mocks.py)
- Clear contracts between the sources and the SDKs

Usage:
    from contracts.interfaces import GCSClientProtocol, BigQueryClientProtocol

    # In production, use real google-cloud / boto3 clients
    # In tests, use the fakes from tests/cloud_mocks.py
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from typing import Any, Protocol, runtime_checkable

# -----------------------------------------------------------------------------
# Object store Protocols
# -----------------------------------------------------------------------------


@runtime_checkable
class BlobProtocol(Protocol):
    """Protocol for a google-cloud-storage Blob."""

    name: str

    def download_as_bytes(self) -> bytes:
        """Download the whole object."""
        ...

    def open(self, mode: str = "r", **kwargs: Any) -> Any:
        """Open the object as a (streaming) file-like object."""
        ...


@runtime_checkable
class BucketProtocol(Protocol):
    """Protocol for a google-cloud-storage Bucket."""

    def blob(self, blob_name: str) -> BlobProtocol:
        """Return a Blob handle (no network call)."""
        ...


@runtime_checkable
class GCSClientProtocol(Protocol):
    """Protocol for google-cloud-storage Client interactions."""

    def list_blobs(self, bucket_or_name: Any, *, prefix: str | None = None,
                   delimiter: str | None = None) -> Iterable[BlobProtocol]:
        """List blobs; with a delimiter only the current "directory" level."""
        ...

    def bucket(self, bucket_name: str) -> BucketProtocol:
        """Return a Bucket handle (no network call)."""
        ...


@runtime_checkable
class S3ClientProtocol(Protocol):
    """Protocol for S3 client interactions."""

    def get_paginator(self, operation_name: str) -> Any:
        """Return a boto3 paginator (list_objects_v2)."""
        ...

    def list_objects_v2(self, *, Bucket: str, Prefix: str | None = None,
                        Delimiter: str | None = None,
                        ContinuationToken: str | None = None) -> dict[str, Any]:
        """List objects in bucket."""
        ...

    def get_object(self, *, Bucket: str, Key: str) -> dict[str, Any]:
        """Get an object; ``Body`` is a streaming body."""
        ...


# -----------------------------------------------------------------------------
# Warehouse Protocols
# -----------------------------------------------------------------------------


@runtime_checkable
class RowIteratorProtocol(Protocol):
    """Protocol for a paged BigQuery result (google.cloud.bigquery.table.RowIterator)."""

    next_page_token: str | None

    @property
    def pages(self) -> Iterator[Iterable[Any]]:
        """Iterate result pages; each page iterates rows."""
        ...


@runtime_checkable
class QueryJobProtocol(Protocol):
    """Protocol for a BigQuery QueryJob."""

    job_id: str

    def result(self, *, page_size: int | None = None, **kwargs: Any) -> RowIteratorProtocol:
        """Wait for the job and return a paged row iterator."""
        ...


@runtime_checkable
class BigQueryClientProtocol(Protocol):
    """Protocol for google-cloud-bigquery Client interactions."""

    project: str

    def query(self, query: str, *, job_config: Any = None,
              project: str | None = None, **kwargs: Any) -> QueryJobProtocol:
        """Start a query job."""
        ...
