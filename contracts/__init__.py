"""Contracts shared by the query sources and their callers.

The contracts package defines:
- the QueryRecord value type
- the typed errors raised by sources and configuration
- Protocol definitions for the cloud clients sources depend on

Main exports:
- QueryRecord, INLINE_QUERY_LABEL
- QuerySourceError, ConfigurationError, SourceIOError
"""

from contracts import errors
from contracts import query_records

# Explicit re-exports to satisfy ruff F401
__all__ = [
    "ConfigurationError",
    "INLINE_QUERY_LABEL",
    "QueryRecord",
    "QuerySourceError",
    "SourceIOError",
]

QueryRecord = query_records.QueryRecord
INLINE_QUERY_LABEL = query_records.INLINE_QUERY_LABEL

QuerySourceError = errors.QuerySourceError
ConfigurationError = errors.ConfigurationError
SourceIOError = errors.SourceIOError
