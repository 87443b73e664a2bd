"""Unit tests for centralized configuration parsing and validation."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import pytest

from infra.config import (
    DEFAULT_INFO_SCHEMA_DAYS,
    DEFAULT_INFO_SCHEMA_TABLE,
    Settings,
    ValidationError,
    clear_settings_cache,
    get_settings,
)


def test_settings_defaults_without_env() -> None:
    """An empty environment yields the documented defaults."""
    settings = Settings.from_env(env={}, env_file=".missing.env")

    assert settings.gcp.project is None
    assert settings.gcp.page_size == 1000
    assert settings.sources.info_schema_days == DEFAULT_INFO_SCHEMA_DAYS
    assert settings.sources.info_schema_table == DEFAULT_INFO_SCHEMA_TABLE
    assert settings.sources.csv_query_column == "query"
    assert settings.logging.level == "INFO"
    assert settings.logging.json_logs is False


def test_settings_reads_flat_env_keys() -> None:
    """Flat env keys should map to nested settings models."""
    env = {
        "GOOGLE_CLOUD_PROJECT": "flat-proj",
        "BIGQUERY_LOCATION": "EU",
        "BQAP_PAGE_SIZE": "250",
        "AWS_DEFAULT_REGION": "eu-west-1",
        "AWS_MAX_RETRIES": "7",
        "BQAP_LOG_LEVEL": "debug",
        "BQAP_LOG_JSON": "1",
        "BQAP_INFO_SCHEMA_DAYS": "14",
        "BQAP_CSV_QUERY_COLUMN": "statement",
    }
    settings = Settings.from_env(env=env, env_file=".missing.env")

    assert settings.gcp.project == "flat-proj"
    assert settings.gcp.bigquery_location == "EU"
    assert settings.gcp.page_size == 250
    assert settings.aws.default_region == "eu-west-1"
    assert settings.aws.max_retries == 7
    assert settings.logging.level == "DEBUG"
    assert settings.logging.json_logs is True
    assert settings.sources.info_schema_days == 14
    assert settings.sources.csv_query_column == "statement"


def test_nested_env_keys_win_over_flat_keys() -> None:
    """Nested env keys should be supported with `__` delimiter and take priority."""
    env = {
        "GCP__PROJECT": "nested-proj",
        "GOOGLE_CLOUD_PROJECT": "flat-proj",
        "SOURCES__INFO_SCHEMA_TABLE": "region-eu.INFORMATION_SCHEMA.JOBS_BY_PROJECT",
        "LOGGING__LEVEL": "warning",
    }
    settings = Settings.from_env(env=env, env_file=".missing.env")

    assert settings.gcp.project == "nested-proj"
    assert settings.sources.info_schema_table == "region-eu.INFORMATION_SCHEMA.JOBS_BY_PROJECT"
    assert settings.logging.level == "WARNING"


@pytest.mark.parametrize(
    "env",
    [
        {"BQAP_PAGE_SIZE": "0"},
        {"BQAP_INFO_SCHEMA_DAYS": "0"},
        {"BQAP_INFO_SCHEMA_DAYS": "not-a-number"},
        {"AWS_MAX_RETRIES": "99"},
    ],
)
def test_invalid_values_raise_validation_error(env: dict[str, str]) -> None:
    """Invalid constrained values should fail schema validation."""
    with pytest.raises(ValidationError):
        Settings.from_env(env=env, env_file=".missing.env")


def test_unknown_log_level_falls_back_to_info() -> None:
    settings = Settings.from_env(env={"BQAP_LOG_LEVEL": "chatty"}, env_file=".missing.env")
    assert settings.logging.level == "INFO"


def test_dotenv_values_are_overridden_by_process_env(tmp_path: Path) -> None:
    env_file = tmp_path / ".env"
    env_file.write_text(
        "# local overrides\n"
        "GOOGLE_CLOUD_PROJECT='from-dotenv'\n"
        "BQAP_INFO_SCHEMA_DAYS=3\n"
        "not a pair\n",
        encoding="utf-8",
    )
    settings = Settings.from_env(env={"BQAP_INFO_SCHEMA_DAYS": "5"}, env_file=str(env_file))

    assert settings.gcp.project == "from-dotenv"
    assert settings.sources.info_schema_days == 5


def test_settings_are_immutable() -> None:
    settings = Settings()
    with pytest.raises(ValidationError):
        settings.gcp.page_size = 10  # type: ignore[misc]


def test_get_settings_reload_rebuilds_cache(monkeypatch: Any) -> None:
    """Reload should rebuild cached settings from current process env."""
    clear_settings_cache()
    monkeypatch.delenv("GCP__PROJECT", raising=False)
    monkeypatch.setenv("GOOGLE_CLOUD_PROJECT", "first-proj")
    first = get_settings(reload=True)

    monkeypatch.setenv("GOOGLE_CLOUD_PROJECT", "second-proj")
    cached = get_settings()
    second = get_settings(reload=True)

    assert first.gcp.project == "first-proj"
    assert cached is first
    assert second.gcp.project == "second-proj"
    clear_settings_cache()
