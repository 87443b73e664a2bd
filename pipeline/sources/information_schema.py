"""
pipeline/sources/information_schema.py

Recently executed queries from BigQuery's INFORMATION_SCHEMA.JOBS view.

Window
------
The scanned range is pinned when the source is built: ``[now - lookback_days,
now]``. Both ends are passed as query parameters, so every result page belongs
to the same window even if iteration takes minutes.

Paging
------
The catalog can hold millions of jobs. The query runs on the first ``next()``
and its result is consumed one page at a time (``RowIterator.pages``); only the
current page is held in memory.

Ordering
--------
Newest first: ``ORDER BY creation_time DESC, job_id``. Rows are yielded in the
order BigQuery returns them and are never re-sorted here.

Failures (auth, permission, bad table, job errors) abort the run. There is no
retry at this layer.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Any, Callable, Iterator

from google.cloud import bigquery

from contracts.errors import ConfigurationError
from contracts.interfaces import BigQueryClientProtocol
from contracts.query_records import QueryRecord
from infra.config import DEFAULT_INFO_SCHEMA_DAYS, DEFAULT_INFO_SCHEMA_TABLE
from pipeline.sources.base import QuerySource, SourceKind

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 1000

_TABLE_PATH_RE = re.compile(r"^[A-Za-z0-9_:\-]+(\.[A-Za-z0-9_\-]+)*$")

JOBS_QUERY_TEMPLATE = """
SELECT
  job_id,
  query,
  user_email,
  project_id,
  SAFE_DIVIDE(total_slot_ms, 1000 * 60 * 60) AS slot_hours
FROM {table}
WHERE creation_time BETWEEN @window_start AND @window_end
  AND job_type = 'QUERY'
  AND (statement_type IS NULL OR statement_type != 'SCRIPT')
  AND total_slot_ms > 0
  AND query IS NOT NULL
  AND query NOT LIKE '%INFORMATION_SCHEMA%'
ORDER BY creation_time DESC, job_id
""".strip()


def qualify_table(project_id: str, table_name: str) -> str:
    """Backtick-quoted table path.

    Paths starting with ``region-*`` or ``INFORMATION_SCHEMA`` are scoped to
    ``project_id`` (``region-us.INFORMATION_SCHEMA.JOBS`` becomes
    ``my-proj.region-us.INFORMATION_SCHEMA.JOBS``); fully-qualified paths are
    left as given.
    """
    name = str(table_name or "").strip().strip("`")
    if not name or not _TABLE_PATH_RE.match(name):
        raise ConfigurationError(f"Invalid INFORMATION_SCHEMA table name: {table_name!r}")
    first = name.split(".", 1)[0]
    if first.lower().startswith("region-") or first.upper() == "INFORMATION_SCHEMA":
        name = f"{project_id}.{name}"
    return f"`{name}`"


@dataclass(frozen=True)
class CatalogWindow:
    """The project, table and time range a catalog source scans."""

    project_id: str
    table_name: str
    lookback_days: int
    window_start: datetime
    window_end: datetime

    @classmethod
    def ending_at(cls, end: datetime, *, project_id: str, table_name: str, lookback_days: int) -> CatalogWindow:
        return cls(
            project_id=project_id,
            table_name=table_name,
            lookback_days=lookback_days,
            window_start=end - timedelta(days=lookback_days),
            window_end=end,
        )

    def query_parameters(self) -> list[bigquery.ScalarQueryParameter]:
        return [
            bigquery.ScalarQueryParameter("window_start", "TIMESTAMP", self.window_start),
            bigquery.ScalarQueryParameter("window_end", "TIMESTAMP", self.window_end),
        ]


def _row_value(row: Any, key: str) -> Any:
    getter = getattr(row, "get", None)
    if callable(getter):
        return getter(key)
    return row[key]


def _as_float(value: Any) -> float | None:
    if value is None:
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


class InformationSchemaQuerySource(QuerySource):
    """
    Yields one record per catalog job row; ``source_label`` is the job id.

    ``client`` is either a BigQuery client or a zero-argument factory for one.
    A factory is only called on the first ``next()``, so credential errors
    surface as :class:`~contracts.errors.SourceIOError` like any other
    catalog failure.
    """

    kind = SourceKind.INFO_SCHEMA

    def __init__(
        self,
        client: BigQueryClientProtocol | Callable[[], BigQueryClientProtocol],
        project_id: str,
        *,
        lookback_days: int = DEFAULT_INFO_SCHEMA_DAYS,
        table_name: str = DEFAULT_INFO_SCHEMA_TABLE,
        page_size: int = DEFAULT_PAGE_SIZE,
        now: Callable[[], datetime] | None = None,
    ) -> None:
        super().__init__()
        project = str(project_id or "").strip()
        if not project:
            raise ConfigurationError("--processing_project_id is required to read from INFORMATION_SCHEMA")
        if int(lookback_days) < 1:
            raise ConfigurationError(f"--read_from_info_schema_days must be >= 1 (got {lookback_days})")
        if int(page_size) < 1:
            raise ConfigurationError(f"page_size must be >= 1 (got {page_size})")

        self._client = client
        self._page_size = int(page_size)
        self._table_ref = qualify_table(project, table_name)
        clock = now or (lambda: datetime.now(UTC))
        self.window = CatalogWindow.ending_at(
            clock(),
            project_id=project,
            table_name=table_name,
            lookback_days=int(lookback_days),
        )

        # Cursor state, advanced as pages are fetched
        self.job_id: str | None = None
        self.pages_fetched = 0
        self.page_token: str | None = None

        logger.info("Using INFORMATION_SCHEMA as input source")

    def describe(self) -> str:
        return f"info_schema source {self._table_ref}"

    def sql(self) -> str:
        return JOBS_QUERY_TEMPLATE.format(table=self._table_ref)

    def _bigquery(self) -> BigQueryClientProtocol:
        if isinstance(self._client, BigQueryClientProtocol):
            return self._client
        self._client = self._client()
        return self._client

    def _job_config(self) -> bigquery.QueryJobConfig:
        return bigquery.QueryJobConfig(query_parameters=self.window.query_parameters())

    def _records(self) -> Iterator[QueryRecord]:
        self._current_label = self._table_ref
        w = self.window
        logger.info(
            "Reading %s for project %s from %s to %s (%d day(s))",
            self._table_ref,
            w.project_id,
            w.window_start.isoformat(),
            w.window_end.isoformat(),
            w.lookback_days,
        )
        job = self._bigquery().query(self.sql(), job_config=self._job_config(), project=w.project_id)
        self.job_id = getattr(job, "job_id", None)
        rows = job.result(page_size=self._page_size)

        for page in rows.pages:
            self.pages_fetched += 1
            self.page_token = getattr(rows, "next_page_token", None)
            logger.debug("Fetched catalog page %d", self.pages_fetched)
            for row in page:
                job_id = str(_row_value(row, "job_id") or "")
                label = job_id or f"{self._table_ref}#row"
                self._current_label = label
                record = self._record_or_skip(
                    _row_value(row, "query"),
                    label,
                    project_id=str(_row_value(row, "project_id") or ""),
                    user_email=str(_row_value(row, "user_email") or ""),
                    slot_hours=_as_float(_row_value(row, "slot_hours")),
                )
                if record is not None:
                    yield record
