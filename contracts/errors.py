"""Typed failures raised by the query-sourcing layer.

Two kinds matter to callers:

- :class:`ConfigurationError` is raised before any iteration starts (no source
  selected, a required parameter missing, an unsupported URI scheme).
- :class:`SourceIOError` is raised while a source is producing records
  (listing, reading, CSV parsing, catalog query). It is always fatal for the
  remaining sequence.

The CLI boundary decides exit codes; nothing here calls ``sys.exit``.
"""

from __future__ import annotations


class QuerySourceError(RuntimeError):
    """Base class for every query-sourcing failure."""


class ConfigurationError(QuerySourceError):
    """Raised when the source configuration cannot produce a query source."""


class SourceIOError(QuerySourceError):
    """Raised when a source fails while listing, reading or querying.

    ``source_label`` names the item being processed when the failure happened
    (a path, an object URI, a CSV line, a catalog table).
    """

    def __init__(self, message: str, *, source_label: str = "") -> None:
        super().__init__(message)
        self.source_label = source_label

    def __str__(self) -> str:
        base = super().__str__()
        if self.source_label and self.source_label not in base:
            return f"{base} (source: {self.source_label})"
        return base


__all__ = ["ConfigurationError", "QuerySourceError", "SourceIOError"]
