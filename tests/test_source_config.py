"""Unit tests for source selection: flags, precedence and defaults."""

from __future__ import annotations

from types import SimpleNamespace

import pytest

from contracts.errors import ConfigurationError
from infra.config import Settings, ValidationError
from pipeline.sources.base import SourceKind
from pipeline.sources.config import SOURCE_PRECEDENCE, SourceConfig, SourceFlags


def _settings(**env: str) -> Settings:
    return Settings.from_env(env=env, env_file=".missing.env")


def test_precedence_order_is_fixed() -> None:
    assert SOURCE_PRECEDENCE == (
        SourceKind.INFO_SCHEMA,
        SourceKind.QUERY,
        SourceKind.FILE,
        SourceKind.FOLDER,
        SourceKind.CSV,
    )


@pytest.mark.parametrize(
    "flags,expected",
    [
        (
            SourceFlags(read_from_info_schema=True, query="SELECT 1", processing_project_id="p"),
            SourceKind.INFO_SCHEMA,
        ),
        (SourceFlags(query="SELECT 1", input_file_path="a.sql", input_csv_file_path="q.csv"), SourceKind.QUERY),
        (SourceFlags(input_file_path="a.sql", input_folder_path="dir"), SourceKind.FILE),
        (SourceFlags(input_folder_path="dir", input_csv_file_path="q.csv"), SourceKind.FOLDER),
        (SourceFlags(input_csv_file_path="q.csv"), SourceKind.CSV),
    ],
)
def test_first_present_flag_wins(flags: SourceFlags, expected: SourceKind) -> None:
    assert SourceConfig.from_flags(flags, settings=_settings()).kind is expected


def test_ignored_flags_are_logged(caplog: pytest.LogCaptureFixture) -> None:
    flags = SourceFlags(query="SELECT 1", input_folder_path="dir")

    with caplog.at_level("WARNING"):
        SourceConfig.from_flags(flags, settings=_settings())

    assert "using --query and ignoring --input_folder_path" in caplog.text


def test_no_flags_is_a_configuration_error() -> None:
    with pytest.raises(ConfigurationError, match="No query source given"):
        SourceConfig.from_flags(SourceFlags(), settings=_settings())


def test_info_schema_options_alone_do_not_select_a_source() -> None:
    flags = SourceFlags(read_from_info_schema_days=3, processing_project_id="p")
    with pytest.raises(ConfigurationError):
        SourceConfig.from_flags(flags, settings=_settings())


@pytest.mark.parametrize(
    "flags",
    [
        SourceFlags(query=""),
        SourceFlags(input_csv_file_path="   "),
        SourceFlags(input_file_path=""),
        SourceFlags(input_folder_path="  "),
        SourceFlags(input_csv_file_path=""),
    ],
)
def test_empty_flag_values_are_rejected(flags: SourceFlags) -> None:
    with pytest.raises(ConfigurationError):
        SourceConfig.from_flags(flags, settings=_settings())


def test_info_schema_defaults_come_from_settings() -> None:
    flags = SourceFlags(read_from_info_schema=True, processing_project_id="proc")

    config = SourceConfig.from_flags(flags, settings=_settings(BQAP_INFO_SCHEMA_DAYS="4"))

    assert config.project_id == "proc"
    assert config.lookback_days == 4
    assert config.table_name == "region-us.INFORMATION_SCHEMA.JOBS"


def test_info_schema_flags_override_defaults() -> None:
    flags = SourceFlags(
        read_from_info_schema=True,
        processing_project_id="proc",
        read_from_info_schema_days=30,
        info_schema_table_name="region-eu.INFORMATION_SCHEMA.JOBS_BY_USER",
    )

    config = SourceConfig.from_flags(flags, settings=_settings())

    assert config.lookback_days == 30
    assert config.table_name == "region-eu.INFORMATION_SCHEMA.JOBS_BY_USER"


def test_info_schema_project_falls_back_to_environment() -> None:
    flags = SourceFlags(read_from_info_schema=True)

    config = SourceConfig.from_flags(flags, settings=_settings(GOOGLE_CLOUD_PROJECT="env-proj"))

    assert config.project_id == "env-proj"


def test_info_schema_without_any_project_is_rejected() -> None:
    flags = SourceFlags(read_from_info_schema=True)
    with pytest.raises(ConfigurationError, match="processing_project_id"):
        SourceConfig.from_flags(flags, settings=_settings())


def test_non_positive_lookback_is_rejected() -> None:
    flags = SourceFlags(read_from_info_schema=True, processing_project_id="p", read_from_info_schema_days=0)
    with pytest.raises(ConfigurationError, match="lookback_days"):
        SourceConfig.from_flags(flags, settings=_settings())


def test_flags_from_namespace() -> None:
    args = SimpleNamespace(
        query=None,
        input_file_path="a.sql",
        input_folder_path=None,
        input_csv_file_path=None,
        read_from_info_schema=None,
        read_from_info_schema_days=None,
        info_schema_table_name=None,
        processing_project_id=None,
        output_file_path="out.jsonl",
    )

    flags = SourceFlags.from_namespace(args)

    assert flags.input_file_path == "a.sql"
    assert flags.read_from_info_schema is False
    assert flags.selected_kinds() == [SourceKind.FILE]


def test_flags_from_namespace_rejects_bad_types() -> None:
    args = SimpleNamespace(read_from_info_schema=True, read_from_info_schema_days="many")
    with pytest.raises(ConfigurationError):
        SourceFlags.from_namespace(args)


def test_config_is_immutable() -> None:
    config = SourceConfig.from_flags(SourceFlags(query="SELECT 1"), settings=_settings())
    with pytest.raises(ValidationError):
        config.query = "SELECT 2"  # type: ignore[misc]
