"""Unit tests for the INFORMATION_SCHEMA catalog source."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest
from google.api_core.exceptions import BadRequest, Forbidden, ServiceUnavailable
from google.auth.exceptions import DefaultCredentialsError

from contracts.errors import ConfigurationError, SourceIOError
from pipeline.sources.information_schema import (
    DEFAULT_PAGE_SIZE,
    InformationSchemaQuerySource,
    qualify_table,
)
from tests.cloud_mocks import FakeBigQueryClient, job_row

_NOW = datetime(2024, 3, 10, 12, 0, tzinfo=UTC)


def _source(client: FakeBigQueryClient, **kwargs: object) -> InformationSchemaQuerySource:
    kwargs.setdefault("now", lambda: _NOW)
    return InformationSchemaQuerySource(client, "proc-proj", **kwargs)  # type: ignore[arg-type]


# -------------------------
# Table path
# -------------------------


def test_region_table_is_scoped_to_project() -> None:
    assert qualify_table("p", "region-us.INFORMATION_SCHEMA.JOBS") == "`p.region-us.INFORMATION_SCHEMA.JOBS`"


def test_bare_information_schema_is_scoped_to_project() -> None:
    assert qualify_table("p", "INFORMATION_SCHEMA.JOBS_BY_USER") == "`p.INFORMATION_SCHEMA.JOBS_BY_USER`"


def test_fully_qualified_table_is_kept() -> None:
    assert qualify_table("p", "`other.audit.jobs_copy`") == "`other.audit.jobs_copy`"


@pytest.mark.parametrize("name", ["", "jobs; DROP TABLE x", "a..b", "jobs`x"])
def test_invalid_table_names_are_rejected(name: str) -> None:
    with pytest.raises(ConfigurationError):
        qualify_table("p", name)


# -------------------------
# Construction
# -------------------------


def test_window_is_pinned_at_construction() -> None:
    source = _source(FakeBigQueryClient(), lookback_days=7)

    assert source.window.window_end == _NOW
    assert source.window.window_start == _NOW - timedelta(days=7)
    assert source.window.project_id == "proc-proj"


@pytest.mark.parametrize(
    "kwargs",
    [{"lookback_days": 0}, {"lookback_days": -3}, {"page_size": 0}, {"table_name": "bad name"}],
)
def test_invalid_parameters_are_configuration_errors(kwargs: dict[str, object]) -> None:
    with pytest.raises(ConfigurationError):
        _source(FakeBigQueryClient(), **kwargs)


def test_missing_project_is_a_configuration_error() -> None:
    with pytest.raises(ConfigurationError, match="processing_project_id"):
        InformationSchemaQuerySource(FakeBigQueryClient(), "  ")


def test_nothing_is_queried_before_first_next() -> None:
    client = FakeBigQueryClient([[job_row("j1", "SELECT 1")]])
    _source(client)
    assert client.calls == []


# -------------------------
# Query shape
# -------------------------


def test_query_uses_window_parameters_and_processing_project() -> None:
    client = FakeBigQueryClient([[job_row("j1", "SELECT 1")]])
    source = _source(client, lookback_days=3)

    list(source)

    call = client.calls[0]
    assert call["project"] == "proc-proj"
    assert "FROM `proc-proj.region-us.INFORMATION_SCHEMA.JOBS`" in call["query"]
    assert "creation_time BETWEEN @window_start AND @window_end" in call["query"]
    assert "ORDER BY creation_time DESC, job_id" in call["query"]
    assert sorted(p.name for p in call["job_config"].query_parameters) == ["window_end", "window_start"]

    params = {p.name: p for p in source.window.query_parameters()}
    assert params["window_start"].type_ == "TIMESTAMP"
    assert params["window_start"].value == _NOW - timedelta(days=3)
    assert params["window_end"].value == _NOW


def test_default_page_size_is_passed_to_result() -> None:
    client = FakeBigQueryClient([[job_row("j1", "SELECT 1")]])
    list(_source(client))
    assert client.job.result_kwargs == {"page_size": DEFAULT_PAGE_SIZE}


def test_custom_page_size_is_passed_to_result() -> None:
    client = FakeBigQueryClient([[job_row("j1", "SELECT 1")]])
    list(_source(client, page_size=50))
    assert client.job.result_kwargs == {"page_size": 50}


# -------------------------
# Paging and records
# -------------------------


def test_rows_across_pages_are_yielded_in_order_with_metadata() -> None:
    pages = [
        [job_row("j1", "SELECT 1"), job_row("j2", "SELECT 2", slot_hours=2)],
        [job_row("j3", "SELECT 3", user_email="other@example.com", slot_hours=None)],
    ]
    client = FakeBigQueryClient(pages)
    source = _source(client)

    records = list(source)

    assert [(r.source_label, r.query_text) for r in records] == [
        ("j1", "SELECT 1"),
        ("j2", "SELECT 2"),
        ("j3", "SELECT 3"),
    ]
    assert records[1].slot_hours == 2.0
    assert records[2].user_email == "other@example.com"
    assert records[2].slot_hours is None
    assert records[0].project_id == "fake-project"
    assert source.job_id == "job-fake"
    assert source.pages_fetched == 2
    assert source.page_token is None


def test_pages_are_fetched_lazily() -> None:
    pages = [[job_row("j1", "SELECT 1")], [job_row("j2", "SELECT 2")]]
    client = FakeBigQueryClient(pages)
    source = _source(client)

    next(source)

    assert source.pages_fetched == 1
    assert source.page_token == "token-1"
    assert client.rows.pages_served == 1


def test_rows_with_empty_query_are_skipped() -> None:
    client = FakeBigQueryClient([[job_row("j1", ""), job_row("j2", "SELECT 2")]])
    assert [r.source_label for r in _source(client)] == ["j2"]


def test_empty_catalog_yields_nothing() -> None:
    source = _source(FakeBigQueryClient([]))
    assert list(source) == []
    assert source.exhausted


# -------------------------
# Failures
# -------------------------


def test_query_submission_error_becomes_source_io_error() -> None:
    source = _source(FakeBigQueryClient(query_error=Forbidden("Access Denied")))

    with pytest.raises(SourceIOError) as excinfo:
        next(source)
    assert isinstance(excinfo.value.__cause__, Forbidden)
    assert "INFORMATION_SCHEMA" in excinfo.value.source_label


def test_client_factory_is_called_on_first_next() -> None:
    client = FakeBigQueryClient([[job_row("j1", "SELECT 1")]])
    calls: list[int] = []

    def factory() -> FakeBigQueryClient:
        calls.append(1)
        return client

    source = _source(factory)  # type: ignore[arg-type]
    assert calls == []

    assert [r.source_label for r in source] == ["j1"]
    assert calls == [1]


def test_credential_error_from_client_factory_becomes_source_io_error() -> None:
    def factory() -> FakeBigQueryClient:
        raise DefaultCredentialsError("File missing.json was not found.")

    source = _source(factory)  # type: ignore[arg-type]

    with pytest.raises(SourceIOError) as excinfo:
        next(source)
    assert isinstance(excinfo.value.__cause__, DefaultCredentialsError)
    with pytest.raises(SourceIOError):
        next(source)


def test_job_error_becomes_source_io_error() -> None:
    source = _source(FakeBigQueryClient(result_error=BadRequest("Unrecognized name")))

    with pytest.raises(SourceIOError):
        next(source)


def test_mid_stream_page_failure_aborts_after_earlier_rows() -> None:
    pages = [[job_row("j1", "SELECT 1")], [job_row("j2", "SELECT 2")]]
    client = FakeBigQueryClient(pages, fail_at_page=2, fail_with=ServiceUnavailable("try later"))
    source = _source(client)

    assert next(source).source_label == "j1"
    with pytest.raises(SourceIOError):
        next(source)
    assert source.failed
    with pytest.raises(SourceIOError, match="already failed"):
        next(source)
