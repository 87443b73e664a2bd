"""Inline query passed on the command line."""

from __future__ import annotations

from typing import Iterator

from contracts.errors import ConfigurationError
from contracts.query_records import INLINE_QUERY_LABEL, QueryRecord
from pipeline.sources.base import QuerySource, SourceKind


class LiteralQuerySource(QuerySource):
    """Exactly one record, labelled ``"inline query"``. No I/O."""

    kind = SourceKind.QUERY

    def __init__(self, query: str) -> None:
        super().__init__()
        if not isinstance(query, str) or not query:
            raise ConfigurationError("--query must be a non-empty SQL string")
        self._record = QueryRecord(query_text=query, source_label=INLINE_QUERY_LABEL)

    def describe(self) -> str:
        return INLINE_QUERY_LABEL

    def _records(self) -> Iterator[QueryRecord]:
        self._current_label = INLINE_QUERY_LABEL
        yield self._record
