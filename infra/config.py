"""Centralized application configuration with schema validation.

Every setting can be given two ways: a nested ``SECTION__FIELD`` name (for
example ``LOGGING__LEVEL``) or a flat name (``BQAP_LOG_LEVEL``, or the
standard ``GOOGLE_CLOUD_PROJECT`` / ``AWS_DEFAULT_REGION``). The nested name
wins. A local ``.env`` file is read first; process environment values
override it.

These are process-wide defaults. The per-run choice of input source comes from
the command line (see :mod:`pipeline.sources.config`).
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from pathlib import Path
from threading import Lock

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

DEFAULT_INFO_SCHEMA_TABLE = "region-us.INFORMATION_SCHEMA.JOBS"
DEFAULT_INFO_SCHEMA_DAYS = 1


class GCPConfig(BaseModel):
    """Google Cloud client defaults used by the client factory."""

    model_config = ConfigDict(frozen=True)

    project: str | None = Field(default=None, description="Fallback processing project")
    bigquery_location: str | None = Field(default=None)
    page_size: int = Field(default=1000, ge=1, le=100_000)
    timeout: float = Field(default=300.0, gt=0.0)

    @field_validator("project", "bigquery_location", mode="before")
    @classmethod
    def _normalize_optional_text(cls, value: object) -> str | None:
        if value is None:
            return None
        text = str(value).strip()
        return text or None


class AWSConfig(BaseModel):
    """AWS client defaults for the S3 object-store backend."""

    model_config = ConfigDict(frozen=True)

    default_region: str = Field(default="us-east-1")
    max_retries: int = Field(default=10, ge=1, le=25)
    timeout: int = Field(default=60, ge=1, le=300)
    connect_timeout: int = Field(default=5, ge=1, le=60)


class LoggingSettings(BaseModel):
    """Repository-wide logging settings."""

    model_config = ConfigDict(frozen=True)

    level: str = Field(default="INFO")
    json_logs: bool = Field(default=False)
    override_root_handlers: bool = Field(default=False)

    @field_validator("level")
    @classmethod
    def _normalize_level(cls, value: str) -> str:
        text = str(value or "").strip().upper()
        if text in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            return text
        return "INFO"


class SourceDefaults(BaseModel):
    """Defaults applied when a source flag leaves a parameter unset."""

    model_config = ConfigDict(frozen=True)

    info_schema_days: int = Field(default=DEFAULT_INFO_SCHEMA_DAYS, ge=1, le=180)
    info_schema_table: str = Field(default=DEFAULT_INFO_SCHEMA_TABLE)
    csv_query_column: str = Field(default="query")
    csv_id_column: str = Field(default="id")
    encoding: str = Field(default="utf-8")

    @field_validator("info_schema_table", "csv_query_column", "csv_id_column", "encoding")
    @classmethod
    def _require_text(cls, value: str) -> str:
        text = str(value or "").strip()
        if not text:
            raise ValueError("must be a non-empty string")
        return text


class Settings(BaseModel):
    """Top-level settings model."""

    model_config = ConfigDict(frozen=True)

    gcp: GCPConfig = Field(default_factory=GCPConfig)
    aws: AWSConfig = Field(default_factory=AWSConfig)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    sources: SourceDefaults = Field(default_factory=SourceDefaults)

    @classmethod
    def from_env(
        cls,
        *,
        env: Mapping[str, str] | None = None,
        env_file: str = ".env",
    ) -> Settings:
        """Build settings from `.env` then environment variables (the latter win)."""
        merged = _load_dotenv(Path(env_file))
        merged.update({str(k): str(v) for k, v in (os.environ if env is None else env).items()})
        return cls.model_validate(_build_payload(merged))


# section -> field -> env names, nested name first
_ENV_NAMES: dict[str, dict[str, tuple[str, ...]]] = {
    "gcp": {
        "project": ("GCP__PROJECT", "GOOGLE_CLOUD_PROJECT"),
        "bigquery_location": ("GCP__BIGQUERY_LOCATION", "BIGQUERY_LOCATION"),
        "page_size": ("GCP__PAGE_SIZE", "BQAP_PAGE_SIZE"),
        "timeout": ("GCP__TIMEOUT", "BQAP_GCP_TIMEOUT"),
    },
    "aws": {
        "default_region": ("AWS__DEFAULT_REGION", "AWS_DEFAULT_REGION"),
        "max_retries": ("AWS__MAX_RETRIES", "AWS_MAX_RETRIES"),
        "timeout": ("AWS__TIMEOUT", "AWS_TIMEOUT"),
        "connect_timeout": ("AWS__CONNECT_TIMEOUT", "AWS_CONNECT_TIMEOUT"),
    },
    "logging": {
        "level": ("LOGGING__LEVEL", "BQAP_LOG_LEVEL"),
        "json_logs": ("LOGGING__JSON_LOGS", "BQAP_LOG_JSON"),
        "override_root_handlers": ("LOGGING__OVERRIDE_ROOT_HANDLERS", "BQAP_LOG_OVERRIDE"),
    },
    "sources": {
        "info_schema_days": ("SOURCES__INFO_SCHEMA_DAYS", "BQAP_INFO_SCHEMA_DAYS"),
        "info_schema_table": ("SOURCES__INFO_SCHEMA_TABLE", "BQAP_INFO_SCHEMA_TABLE"),
        "csv_query_column": ("SOURCES__CSV_QUERY_COLUMN", "BQAP_CSV_QUERY_COLUMN"),
        "csv_id_column": ("SOURCES__CSV_ID_COLUMN", "BQAP_CSV_ID_COLUMN"),
        "encoding": ("SOURCES__ENCODING", "BQAP_ENCODING"),
    },
}


def _load_dotenv(path: Path) -> dict[str, str]:
    """``KEY=value`` lines of a `.env` file; comments, blanks and junk lines are ignored."""
    if not path.is_file():
        return {}

    values: dict[str, str] = {}
    for line in path.read_text(encoding="utf-8").splitlines():
        key, sep, value = line.strip().partition("=")
        key = key.strip()
        if not sep or not key or key.startswith("#"):
            continue
        value = value.strip()
        if len(value) >= 2 and value[0] == value[-1] and value[0] in "'\"":
            value = value[1:-1]
        values[key] = value
    return values


def _lookup(env: Mapping[str, str], names: tuple[str, ...]) -> str | None:
    """First non-blank value among ``names``."""
    for name in names:
        value = str(env.get(name, "")).strip()
        if value:
            return value
    return None


def _build_payload(env: Mapping[str, str]) -> dict[str, dict[str, str]]:
    """Nested settings payload; unset fields are left out so model defaults apply."""
    payload: dict[str, dict[str, str]] = {}
    for section, fields in _ENV_NAMES.items():
        found = {field: _lookup(env, names) for field, names in fields.items()}
        payload[section] = {field: value for field, value in found.items() if value is not None}
    return payload


_SETTINGS_LOCK = Lock()
_SETTINGS_CACHE: Settings | None = None


def get_settings(*, reload: bool = False) -> Settings:
    """Process-wide settings, built once (or again with ``reload=True``)."""
    global _SETTINGS_CACHE
    with _SETTINGS_LOCK:
        if reload or _SETTINGS_CACHE is None:
            _SETTINGS_CACHE = Settings.from_env()
        return _SETTINGS_CACHE


def clear_settings_cache() -> None:
    global _SETTINGS_CACHE
    with _SETTINGS_LOCK:
        _SETTINGS_CACHE = None


__all__ = [
    "AWSConfig",
    "DEFAULT_INFO_SCHEMA_DAYS",
    "DEFAULT_INFO_SCHEMA_TABLE",
    "GCPConfig",
    "LoggingSettings",
    "Settings",
    "SourceDefaults",
    "ValidationError",
    "clear_settings_cache",
    "get_settings",
]
