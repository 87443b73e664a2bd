"""Query sources: every supported input normalized to one lazy sequence of QueryRecord."""

from pipeline.sources.base import QuerySource, SourceKind
from pipeline.sources.config import SOURCE_PRECEDENCE, SourceConfig, SourceFlags
from pipeline.sources.csv_source import CsvQuerySource
from pipeline.sources.files import FileQuerySource
from pipeline.sources.information_schema import CatalogWindow, InformationSchemaQuerySource
from pipeline.sources.literal import LiteralQuerySource
from pipeline.sources.object_store import ObjectStore, ObjectUri
from pipeline.sources.resolver import build_query_source, resolve_query_source

__all__ = [
    "CatalogWindow",
    "CsvQuerySource",
    "FileQuerySource",
    "InformationSchemaQuerySource",
    "LiteralQuerySource",
    "ObjectStore",
    "ObjectUri",
    "QuerySource",
    "SOURCE_PRECEDENCE",
    "SourceConfig",
    "SourceFlags",
    "SourceKind",
    "build_query_source",
    "resolve_query_source",
]
