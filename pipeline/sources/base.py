"""
pipeline/sources/base.py

The iterator contract shared by every query source.

A query source is a lazy, finite, single-pass sequence of
:class:`~contracts.query_records.QueryRecord`. Subclasses only implement
``_records()`` (a generator); this base class turns it into a Python iterator
with fail-fast semantics:

- collaborator failures (I/O, SDK, CSV, decoding) surface as
  :class:`~contracts.errors.SourceIOError`, with the original chained
- once a source has failed, every later ``next()`` raises again instead of
  reporting a normal end of sequence
- an exhausted source stays exhausted (``iter(source) is source``)
"""

from __future__ import annotations

import csv
import logging
from abc import ABC, abstractmethod
from enum import Enum
from types import TracebackType
from typing import Iterator

from botocore.exceptions import BotoCoreError, ClientError
from google.api_core.exceptions import GoogleAPIError
from google.auth.exceptions import GoogleAuthError

from contracts.errors import SourceIOError
from contracts.query_records import QueryRecord

logger = logging.getLogger(__name__)

# Failures raised by collaborators while a source produces records.
SOURCE_IO_EXCEPTIONS: tuple[type[Exception], ...] = (
    OSError,
    UnicodeDecodeError,
    csv.Error,
    GoogleAPIError,
    GoogleAuthError,
    BotoCoreError,
    ClientError,
)


class SourceKind(str, Enum):
    """Input kinds, one per CLI source flag."""

    INFO_SCHEMA = "info_schema"
    QUERY = "query"
    FILE = "file"
    FOLDER = "folder"
    CSV = "csv"


class QuerySource(ABC):
    """Base class for all query sources."""

    kind: SourceKind

    def __init__(self) -> None:
        self._iter: Iterator[QueryRecord] | None = None
        self._failure: SourceIOError | None = None
        self._exhausted = False
        self._current_label = ""
        self.yielded = 0

    @abstractmethod
    def _records(self) -> Iterator[QueryRecord]:
        """Produce records lazily. Set ``self._current_label`` before each item."""

    @abstractmethod
    def describe(self) -> str:
        """Short human-readable description for logs and errors."""

    # -------------------------
    # Iterator protocol
    # -------------------------

    def __iter__(self) -> QuerySource:
        return self

    def __next__(self) -> QueryRecord:
        if self._failure is not None:
            raise SourceIOError(
                f"{self.describe()} already failed: {self._failure}",
                source_label=self._failure.source_label,
            ) from self._failure
        if self._exhausted:
            raise StopIteration
        if self._iter is None:
            self._iter = self._records()

        try:
            record = next(self._iter)
        except StopIteration:
            self._exhausted = True
            self.close()
            logger.debug("%s exhausted after %d record(s)", self.describe(), self.yielded)
            raise
        except SourceIOError as exc:
            self._fail(exc)
            raise
        except SOURCE_IO_EXCEPTIONS as exc:
            err = SourceIOError(
                f"{self.describe()} failed: {exc}",
                source_label=self._current_label,
            )
            self._fail(err)
            raise err from exc
        except Exception as exc:
            # Not an I/O failure: propagate as-is, but never report exhaustion later.
            self._fail(SourceIOError(f"{self.describe()} failed: {exc!r}", source_label=self._current_label))
            raise

        self.yielded += 1
        return record

    @property
    def failed(self) -> bool:
        return self._failure is not None

    @property
    def exhausted(self) -> bool:
        return self._exhausted

    def _fail(self, err: SourceIOError) -> None:
        self._failure = err
        self.close()

    # -------------------------
    # Resources
    # -------------------------

    def close(self) -> None:
        """Release open handles held by the underlying generator."""
        if self._iter is not None and hasattr(self._iter, "close"):
            self._iter.close()

    def __enter__(self) -> QuerySource:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    # -------------------------
    # Helpers for subclasses
    # -------------------------

    def _record_or_skip(self, text: str | None, label: str, **metadata: object) -> QueryRecord | None:
        """Build a record, or log and return None when there is no text at all."""
        if text is None or not str(text):
            logger.warning("Skipping empty query from %s", label)
            return None
        return QueryRecord(query_text=str(text), source_label=label, **metadata)  # type: ignore[arg-type]


__all__ = ["QuerySource", "SOURCE_IO_EXCEPTIONS", "SourceKind"]
