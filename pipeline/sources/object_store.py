"""
pipeline/sources/object_store.py

Remote object-store adapter for the file, folder and CSV sources.

The URI scheme selects the backend:

- ``gs://bucket/path``  Google Cloud Storage (google-cloud-storage)
- ``s3://bucket/path``  Amazon S3 (boto3)

Listing is non-recursive: only objects directly under the folder prefix are
returned (``delimiter="/"``), and the zero-length placeholder object named
exactly like the prefix is dropped. Results are fully-qualified URIs
(``<scheme>://<bucket>/<key>``) in the order the backend lists them.
"""

from __future__ import annotations

import codecs
import logging
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Iterator, TextIO

from contracts.errors import ConfigurationError, SourceIOError
from pipeline.sources.base import SOURCE_IO_EXCEPTIONS
from pipeline.sources.pagination import paginate_items

logger = logging.getLogger(__name__)

GCS_SCHEME = "gs"
S3_SCHEME = "s3"
SUPPORTED_SCHEMES = (GCS_SCHEME, S3_SCHEME)

_DELIMITER = "/"


def is_object_uri(path: str) -> bool:
    """True for anything that looks like ``scheme://...`` (supported or not)."""
    return "://" in str(path or "")


@dataclass(frozen=True)
class ObjectUri:
    """A parsed ``scheme://bucket/key`` reference."""

    scheme: str
    bucket: str
    key: str = ""

    @classmethod
    def parse(cls, uri: str) -> ObjectUri:
        text = str(uri or "").strip()
        scheme, sep, rest = text.partition("://")
        if not sep:
            raise ConfigurationError(f"Not an object-store URI: {uri!r}")
        scheme = scheme.lower()
        if scheme not in SUPPORTED_SCHEMES:
            raise ConfigurationError(
                f"Unsupported URI scheme {scheme!r} in {uri!r}; expected one of "
                + ", ".join(f"{s}://" for s in SUPPORTED_SCHEMES)
            )
        bucket, _, key = rest.partition("/")
        if not bucket:
            raise ConfigurationError(f"Missing bucket name in {uri!r}")
        return cls(scheme=scheme, bucket=bucket, key=key)

    def directory_prefix(self) -> str:
        """Key prefix of this URI seen as a folder (``""`` for the bucket root)."""
        key = self.key.strip(_DELIMITER)
        return f"{key}{_DELIMITER}" if key else ""

    def with_key(self, key: str) -> str:
        return f"{self.scheme}://{self.bucket}/{key}"

    def __str__(self) -> str:
        return self.with_key(self.key)


class ObjectStore:
    """
    List and read objects on GCS or S3.

    ``clients`` is anything exposing ``storage()`` and ``s3()`` (normally
    :class:`infra.cloud_clients.CloudClients`). Clients are only requested for
    the scheme actually used.
    """

    def __init__(self, clients: Any) -> None:
        self._clients = clients

    # -------------------------
    # Listing
    # -------------------------

    def list_directory(self, uri: str) -> list[str]:
        """Return URIs of the objects directly under ``uri`` (non-recursive)."""
        parsed = ObjectUri.parse(uri)
        prefix = parsed.directory_prefix()
        try:
            if parsed.scheme == GCS_SCHEME:
                keys = self._list_gcs(parsed.bucket, prefix)
            else:
                keys = self._list_s3(parsed.bucket, prefix)
        except SOURCE_IO_EXCEPTIONS as exc:
            raise SourceIOError(f"Listing {uri} failed: {exc}", source_label=str(uri)) from exc

        out = [parsed.with_key(key) for key in keys if key != prefix]
        logger.debug("Listed %d object(s) under %s", len(out), uri)
        return out

    def _list_gcs(self, bucket: str, prefix: str) -> list[str]:
        blobs = self._clients.storage().list_blobs(bucket, prefix=prefix or None, delimiter=_DELIMITER)
        return [str(blob.name) for blob in blobs]

    def _list_s3(self, bucket: str, prefix: str) -> list[str]:
        params: dict[str, Any] = {"Bucket": bucket, "Delimiter": _DELIMITER}
        if prefix:
            params["Prefix"] = prefix
        items = paginate_items(
            self._clients.s3(),
            "list_objects_v2",
            "Contents",
            params=params,
            request_token_key="ContinuationToken",
            response_token_keys=("NextContinuationToken",),
        )
        return [str(item["Key"]) for item in items if item.get("Key")]

    # -------------------------
    # Reading
    # -------------------------

    def read_text(self, uri: str, *, encoding: str = "utf-8") -> str:
        """Download the whole object and decode it."""
        parsed = ObjectUri.parse(uri)
        if parsed.scheme == GCS_SCHEME:
            blob = self._clients.storage().bucket(parsed.bucket).blob(parsed.key)
            data = blob.download_as_bytes()
        else:
            resp = self._clients.s3().get_object(Bucket=parsed.bucket, Key=parsed.key)
            body = resp["Body"]
            try:
                data = body.read()
            finally:
                body.close()
        return data.decode(encoding)

    @contextmanager
    def open_text(self, uri: str, *, encoding: str = "utf-8") -> Iterator[TextIO]:
        """Open an object as a streaming text handle (the object is not downloaded whole)."""
        parsed = ObjectUri.parse(uri)
        if parsed.scheme == GCS_SCHEME:
            blob = self._clients.storage().bucket(parsed.bucket).blob(parsed.key)
            with blob.open("r", encoding=encoding, newline="") as handle:
                yield handle
            return

        resp = self._clients.s3().get_object(Bucket=parsed.bucket, Key=parsed.key)
        body = resp["Body"]
        try:
            yield codecs.getreader(encoding)(body)
        finally:
            body.close()


__all__ = ["GCS_SCHEME", "ObjectStore", "ObjectUri", "S3_SCHEME", "SUPPORTED_SCHEMES", "is_object_uri"]
