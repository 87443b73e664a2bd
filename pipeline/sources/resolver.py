"""
pipeline/sources/resolver.py

Build the one query source a configuration selects.

Each kind has a builder registered in ``_BUILDERS``; callers only ever see
the common :class:`~pipeline.sources.base.QuerySource` interface.
"""

from __future__ import annotations

import logging
from typing import Callable, Dict

from contracts.errors import ConfigurationError
from infra.cloud_clients import CloudClients
from infra.config import Settings, get_settings
from pipeline.sources.base import QuerySource, SourceKind
from pipeline.sources.config import SourceConfig, SourceFlags
from pipeline.sources.csv_source import CsvQuerySource
from pipeline.sources.files import FileQuerySource
from pipeline.sources.information_schema import InformationSchemaQuerySource
from pipeline.sources.literal import LiteralQuerySource
from pipeline.sources.object_store import ObjectStore

logger = logging.getLogger(__name__)

SourceBuilder = Callable[[SourceConfig, CloudClients, Settings], QuerySource]


def _build_info_schema(config: SourceConfig, clients: CloudClients, settings: Settings) -> QuerySource:
    assert config.project_id and config.lookback_days and config.table_name
    return InformationSchemaQuerySource(
        clients.bigquery,
        config.project_id,
        lookback_days=config.lookback_days,
        table_name=config.table_name,
        page_size=settings.gcp.page_size,
    )


def _build_literal(config: SourceConfig, clients: CloudClients, settings: Settings) -> QuerySource:
    logger.info("Using inline query as input source")
    return LiteralQuerySource(config.query or "")


def _build_file(config: SourceConfig, clients: CloudClients, settings: Settings) -> QuerySource:
    return FileQuerySource.for_file(
        config.path or "",
        object_store=ObjectStore(clients),
        encoding=settings.sources.encoding,
    )


def _build_folder(config: SourceConfig, clients: CloudClients, settings: Settings) -> QuerySource:
    return FileQuerySource.for_folder(
        config.path or "",
        object_store=ObjectStore(clients),
        encoding=settings.sources.encoding,
    )


def _build_csv(config: SourceConfig, clients: CloudClients, settings: Settings) -> QuerySource:
    return CsvQuerySource(
        config.path or "",
        object_store=ObjectStore(clients),
        encoding=settings.sources.encoding,
        query_column=settings.sources.csv_query_column,
        id_column=settings.sources.csv_id_column,
    )


_BUILDERS: Dict[SourceKind, SourceBuilder] = {
    SourceKind.INFO_SCHEMA: _build_info_schema,
    SourceKind.QUERY: _build_literal,
    SourceKind.FILE: _build_file,
    SourceKind.FOLDER: _build_folder,
    SourceKind.CSV: _build_csv,
}


def build_query_source(
    config: SourceConfig,
    *,
    clients: CloudClients | None = None,
    settings: Settings | None = None,
) -> QuerySource:
    """Construct the source selected by ``config``.

    Cloud clients are created lazily, so local inputs never need credentials.
    """
    cfg = settings or get_settings()
    builder = _BUILDERS.get(config.kind)
    if builder is None:
        raise ConfigurationError(f"No builder registered for source kind {config.kind!r}")
    cloud = clients or CloudClients(project=config.project_id, settings=cfg)
    return builder(config, cloud, cfg)


def resolve_query_source(
    flags: SourceFlags,
    *,
    clients: CloudClients | None = None,
    settings: Settings | None = None,
) -> QuerySource:
    """Flags -> validated config (precedence applied) -> source."""
    cfg = settings or get_settings()
    config = SourceConfig.from_flags(flags, settings=cfg)
    return build_query_source(config, clients=clients, settings=cfg)


__all__ = ["build_query_source", "resolve_query_source"]
