"""
pipeline/sources/config.py

From raw CLI flags to one validated, immutable source configuration.

Precedence
----------
Several source flags may be given at once. Exactly one wins, always in this
order (first present flag is used, the rest are ignored with a warning):

    read_from_info_schema > query > input_file_path > input_folder_path > input_csv_file_path

If none is present, :meth:`SourceConfig.from_flags` raises
:class:`~contracts.errors.ConfigurationError` and no source is built.
"""

from __future__ import annotations

import logging
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from contracts.errors import ConfigurationError
from infra.config import Settings, get_settings
from pipeline.sources.base import SourceKind

logger = logging.getLogger(__name__)

SOURCE_PRECEDENCE: tuple[SourceKind, ...] = (
    SourceKind.INFO_SCHEMA,
    SourceKind.QUERY,
    SourceKind.FILE,
    SourceKind.FOLDER,
    SourceKind.CSV,
)

# Flag that selects each kind (names are the CLI contract)
SOURCE_FLAG_NAMES: dict[SourceKind, str] = {
    SourceKind.INFO_SCHEMA: "read_from_info_schema",
    SourceKind.QUERY: "query",
    SourceKind.FILE: "input_file_path",
    SourceKind.FOLDER: "input_folder_path",
    SourceKind.CSV: "input_csv_file_path",
}


class SourceFlags(BaseModel):
    """Raw source flags as parsed from the command line."""

    model_config = ConfigDict(frozen=True)

    query: str | None = None
    input_file_path: str | None = None
    input_folder_path: str | None = None
    input_csv_file_path: str | None = None
    read_from_info_schema: bool = False
    read_from_info_schema_days: int | None = None
    info_schema_table_name: str | None = None
    processing_project_id: str | None = None

    @classmethod
    def from_namespace(cls, args: Any) -> SourceFlags:
        """Build from an argparse namespace (or any object with matching attributes)."""
        names = cls.model_fields.keys()
        payload = {name: getattr(args, name, None) for name in names}
        payload["read_from_info_schema"] = bool(payload.get("read_from_info_schema"))
        try:
            return cls.model_validate(payload)
        except ValidationError as exc:
            raise ConfigurationError(f"Invalid source flags: {exc}") from exc

    def is_selected(self, kind: SourceKind) -> bool:
        if kind is SourceKind.INFO_SCHEMA:
            return self.read_from_info_schema
        return getattr(self, SOURCE_FLAG_NAMES[kind]) is not None

    def selected_kinds(self) -> list[SourceKind]:
        """Every kind whose flag is present, in precedence order."""
        return [kind for kind in SOURCE_PRECEDENCE if self.is_selected(kind)]


class SourceConfig(BaseModel):
    """
    Exactly one selected source plus the parameters it needs.

    ``path`` is the file, folder or CSV path for those kinds. The catalog kind
    uses ``project_id``, ``lookback_days`` and ``table_name``.
    """

    model_config = ConfigDict(frozen=True)

    kind: SourceKind
    query: str | None = None
    path: str | None = None
    project_id: str | None = None
    lookback_days: int | None = Field(default=None, ge=1)
    table_name: str | None = None

    @field_validator("path", "project_id", "table_name", mode="before")
    @classmethod
    def _normalize_optional_text(cls, value: object) -> str | None:
        if value is None:
            return None
        text = str(value).strip()
        return text or None

    @model_validator(mode="after")
    def _check_required(self) -> SourceConfig:
        if self.kind is SourceKind.QUERY:
            if not self.query:
                raise ValueError("query must be a non-empty SQL string")
        elif self.kind is SourceKind.INFO_SCHEMA:
            if not self.project_id:
                raise ValueError("processing_project_id is required to read from INFORMATION_SCHEMA")
            if self.lookback_days is None or not self.table_name:
                raise ValueError("lookback_days and table_name must be resolved")
        elif not self.path:
            raise ValueError(f"{SOURCE_FLAG_NAMES[self.kind]} must be a non-empty path")
        return self

    @classmethod
    def from_flags(cls, flags: SourceFlags, *, settings: Settings | None = None) -> SourceConfig:
        """Apply precedence and defaults; raise ConfigurationError when nothing usable is selected."""
        selected = flags.selected_kinds()
        if not selected:
            raise ConfigurationError(
                "No query source given. Use one of: "
                + ", ".join(f"--{SOURCE_FLAG_NAMES[k]}" for k in SOURCE_PRECEDENCE)
            )

        kind = selected[0]
        ignored = selected[1:]
        if ignored:
            logger.warning(
                "Multiple query sources given; using --%s and ignoring %s",
                SOURCE_FLAG_NAMES[kind],
                ", ".join(f"--{SOURCE_FLAG_NAMES[k]}" for k in ignored),
            )

        payload: dict[str, Any] = {"kind": kind}
        if kind is SourceKind.INFO_SCHEMA:
            cfg = settings or get_settings()
            payload.update(
                project_id=flags.processing_project_id or cfg.gcp.project,
                lookback_days=(
                    flags.read_from_info_schema_days
                    if flags.read_from_info_schema_days is not None
                    else cfg.sources.info_schema_days
                ),
                table_name=flags.info_schema_table_name or cfg.sources.info_schema_table,
            )
        elif kind is SourceKind.QUERY:
            payload["query"] = flags.query
        else:
            payload["path"] = getattr(flags, SOURCE_FLAG_NAMES[kind])

        try:
            return cls.model_validate(payload)
        except ValidationError as exc:
            raise ConfigurationError(_first_error(exc)) from exc


def _first_error(exc: ValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return str(exc)
    err = errors[0]
    loc = ".".join(str(part) for part in err.get("loc", ()) if part != "__root__")
    msg = str(err.get("msg", "invalid value"))
    return f"{loc}: {msg}" if loc else msg


__all__ = ["SOURCE_FLAG_NAMES", "SOURCE_PRECEDENCE", "SourceConfig", "SourceFlags"]
