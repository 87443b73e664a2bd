"""
pipeline/sources/csv_source.py

Queries from a delimited file, one per data row.

The first row is the header. The query text comes from the ``query`` column
(case-insensitive); the optional ``id`` column becomes the record label.
A header-less-looking two-column file without a ``query`` header falls back
to the positional ``id,query`` layout.

The file is parsed row by row from an open handle; it is never loaded whole.
Any malformed row aborts the run.
"""

from __future__ import annotations

import csv
import logging
from contextlib import AbstractContextManager
from typing import Iterator, Sequence, TextIO

from contracts.errors import ConfigurationError, SourceIOError
from contracts.query_records import QueryRecord
from pipeline.sources.base import QuerySource, SourceKind
from pipeline.sources.object_store import ObjectStore, ObjectUri, is_object_uri

logger = logging.getLogger(__name__)

_BOM = "\ufeff"


def _normalize_header(cell: str) -> str:
    return str(cell or "").replace(_BOM, "").strip().lower()


class CsvQuerySource(QuerySource):
    """Yields one record per CSV data row, in file order."""

    kind = SourceKind.CSV

    def __init__(
        self,
        path: str,
        *,
        object_store: ObjectStore | None = None,
        encoding: str = "utf-8",
        query_column: str = "query",
        id_column: str = "id",
    ) -> None:
        super().__init__()
        if not str(path or "").strip():
            raise ConfigurationError("--input_csv_file_path must be a non-empty path")
        if is_object_uri(path):
            ObjectUri.parse(path)
            if object_store is None:
                raise ConfigurationError("Object-store CSV files need an ObjectStore")
        self._path = path
        self._store = object_store
        self._encoding = encoding
        self._query_column = _normalize_header(query_column)
        self._id_column = _normalize_header(id_column)
        logger.info("Using csv file as input source")

    @property
    def path(self) -> str:
        return self._path

    def describe(self) -> str:
        return f"csv source {self._path}"

    def _open(self) -> AbstractContextManager[TextIO]:
        if is_object_uri(self._path):
            assert self._store is not None
            return self._store.open_text(self._path, encoding=self._encoding)
        return open(self._path, encoding=self._encoding, newline="")

    def _column_indexes(self, header: Sequence[str]) -> tuple[int, int | None]:
        """Return (query_index, id_index) for a header row."""
        names = [_normalize_header(cell) for cell in header]
        if self._query_column in names:
            query_idx = names.index(self._query_column)
            id_idx = names.index(self._id_column) if self._id_column in names else None
            return query_idx, id_idx
        if len(names) == 2:
            # Positional id,query layout
            return 1, 0
        raise SourceIOError(
            f"CSV header has no {self._query_column!r} column: {list(header)!r}",
            source_label=f"{self._path}:1",
        )

    def _records(self) -> Iterator[QueryRecord]:
        self._current_label = self._path
        with self._open() as handle:
            reader = csv.reader(handle, strict=True)
            header = next(reader, None)
            if header is None:
                logger.warning("CSV file %s is empty", self._path)
                return
            query_idx, id_idx = self._column_indexes(header)
            width = len(header)

            while True:
                # line_num is the last line consumed, so the next row starts one past it
                line_no = reader.line_num + 1
                line_label = f"{self._path}:{line_no}"
                self._current_label = line_label
                row = next(reader, None)
                if row is None:
                    break
                if not row:
                    continue  # blank line
                if len(row) != width:
                    raise SourceIOError(
                        f"Malformed CSV row at line {line_no}: "
                        f"expected {width} field(s), got {len(row)}",
                        source_label=line_label,
                    )
                label = line_label
                if id_idx is not None and row[id_idx].strip():
                    label = row[id_idx].strip()
                record = self._record_or_skip(row[query_idx], label)
                if record is not None:
                    yield record
