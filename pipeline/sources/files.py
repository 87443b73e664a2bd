"""
pipeline/sources/files.py

One query per file, from a single path or a folder listing.

Paths may be local or object-store URIs (see :mod:`pipeline.sources.object_store`).
The listing is resolved up front (names only); file contents are read one file
per ``next()`` call, so at most one file body is held in memory.

Ordering is the backend's native listing order. Local folders use
``os.scandir`` order, which is filesystem-dependent and NOT sorted.
"""

from __future__ import annotations

import logging
import os
from typing import Iterator, Sequence

from contracts.errors import ConfigurationError, SourceIOError
from contracts.query_records import QueryRecord
from pipeline.sources.base import QuerySource, SourceKind
from pipeline.sources.object_store import ObjectStore, ObjectUri, is_object_uri

logger = logging.getLogger(__name__)


def list_local_folder(path: str) -> list[str]:
    """Absolute paths of the regular files directly inside ``path``."""
    try:
        with os.scandir(path) as entries:
            return [os.path.abspath(entry.path) for entry in entries if entry.is_file()]
    except OSError as exc:
        raise SourceIOError(f"Listing folder {path} failed: {exc}", source_label=path) from exc


def read_local_text(path: str, *, encoding: str = "utf-8") -> str:
    """Whole file as text, line endings untouched."""
    with open(path, encoding=encoding, newline="") as handle:
        return handle.read()


class FileQuerySource(QuerySource):
    """Yields one record per file; ``source_label`` is the file path or URI."""

    def __init__(
        self,
        paths: Sequence[str],
        *,
        kind: SourceKind = SourceKind.FOLDER,
        origin: str = "",
        object_store: ObjectStore | None = None,
        encoding: str = "utf-8",
    ) -> None:
        super().__init__()
        self.kind = kind
        self._paths: tuple[str, ...] = tuple(paths)
        self._origin = origin or (self._paths[0] if len(self._paths) == 1 else "")
        self._store = object_store
        self._encoding = encoding

        remote = [p for p in self._paths if is_object_uri(p)]
        for uri in remote:
            ObjectUri.parse(uri)  # rejects unsupported schemes before iteration
        if remote and self._store is None:
            raise ConfigurationError("Object-store paths need an ObjectStore")

    @classmethod
    def for_file(
        cls,
        path: str,
        *,
        object_store: ObjectStore | None = None,
        encoding: str = "utf-8",
    ) -> FileQuerySource:
        """A single file, handled as a one-element folder listing."""
        if not str(path or "").strip():
            raise ConfigurationError("--input_file_path must be a non-empty path")
        logger.info("Using sql file as input source")
        return cls([path], kind=SourceKind.FILE, origin=path, object_store=object_store, encoding=encoding)

    @classmethod
    def for_folder(
        cls,
        path: str,
        *,
        object_store: ObjectStore | None = None,
        encoding: str = "utf-8",
    ) -> FileQuerySource:
        """Direct children of a local folder or an object-store prefix."""
        if not str(path or "").strip():
            raise ConfigurationError("--input_folder_path must be a non-empty path")
        logger.info("Using folder as input source")

        if is_object_uri(path):
            if object_store is None:
                raise ConfigurationError("Object-store folders need an ObjectStore")
            logger.info("Reading input folder from %s", ObjectUri.parse(path).scheme)
            paths = object_store.list_directory(path)
        else:
            logger.info("Reading input folder from local")
            paths = list_local_folder(path)

        if not paths:
            logger.warning("Input folder %s has no files", path)
        return cls(paths, kind=SourceKind.FOLDER, origin=path, object_store=object_store, encoding=encoding)

    @property
    def paths(self) -> tuple[str, ...]:
        return self._paths

    def describe(self) -> str:
        return f"{self.kind.value} source {self._origin or '<empty>'}"

    def _read(self, path: str) -> str:
        if is_object_uri(path):
            assert self._store is not None
            return self._store.read_text(path, encoding=self._encoding)
        return read_local_text(path, encoding=self._encoding)

    def _records(self) -> Iterator[QueryRecord]:
        for path in self._paths:
            self._current_label = path
            record = self._record_or_skip(self._read(path), path)
            if record is not None:
                yield record
