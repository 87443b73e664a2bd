"""
runner.py

Query-sourcing runner (CLI flags -> one query source -> records, one at a time).

The anti-pattern engine that analyzes each query lives outside this repo. The
runner pulls records from the selected source and hands each to a consumer;
the built-in consumer writes one JSON line per record so the stream can be
piped into the engine or inspected by hand.

Exactly one source is used. When several are given the precedence is:

  --read_from_info_schema > --query > --input_file_path > --input_folder_path > --input_csv_file_path

Inline query:
python runner.py --query "SELECT * FROM t"

One file (local or gs://, s3://):
python runner.py --input_file_path queries/q1.sql

A folder (non-recursive):
python runner.py --input_folder_path gs://my-bucket/queries

A CSV with a `query` column:
python runner.py --input_csv_file_path queries.csv --output_file_path queries.jsonl

Recent jobs from INFORMATION_SCHEMA:
python runner.py --read_from_info_schema --processing_project_id my-proj --read_from_info_schema_days 7

Exit codes: 0 success, 1 source failure, 2 configuration error.
"""

from __future__ import annotations

import argparse
import json
import sys
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Callable, Iterator, Optional, Sequence, TextIO

from contracts.errors import ConfigurationError, SourceIOError
from contracts.query_records import QueryRecord
from infra.cloud_clients import CloudClients
from infra.config import ValidationError, get_settings
from infra.logging_config import StructuredLogger, clear_run_context, set_run_context, setup_logging
from pipeline.sources.base import QuerySource
from pipeline.sources.config import SourceFlags
from pipeline.sources.resolver import resolve_query_source
from version import ENGINE_NAME, ENGINE_VERSION, RECORD_SCHEMA_VERSION

EXIT_OK = 0
EXIT_SOURCE_FAILED = 1
EXIT_CONFIG_ERROR = 2

QueryConsumer = Callable[[QueryRecord], None]

log = StructuredLogger(__name__)


def _utc_now() -> datetime:
    return datetime.now(UTC)


def _make_run_id(run_ts: datetime) -> str:
    return f"run-{run_ts.astimezone(UTC).isoformat().replace('+00:00', 'Z')}"


@dataclass(frozen=True)
class RunStats:
    run_id: str
    source: str
    records: int


class JsonLinesWriter:
    """Consumer that writes one JSON object per record."""

    def __init__(self, stream: TextIO, *, run_id: str = "") -> None:
        self._stream = stream
        self._run_id = run_id
        self.written = 0

    def __call__(self, record: QueryRecord) -> None:
        payload = record.to_dict()
        payload["run_id"] = self._run_id
        payload["schema_version"] = RECORD_SCHEMA_VERSION
        self._stream.write(json.dumps(payload, ensure_ascii=False) + "\n")
        self.written += 1


@contextmanager
def _open_output(path: Optional[str]) -> Iterator[TextIO]:
    if not path:
        yield sys.stdout
        return
    with open(path, "w", encoding="utf-8", newline="\n") as handle:
        yield handle


def run(source: QuerySource, consume: QueryConsumer, *, run_id: str = "") -> RunStats:
    """
    Pull records one at a time until the source is exhausted.

    A SourceIOError propagates to the caller after the records already handed
    to ``consume``; nothing after the failure is produced.
    """
    with source:
        for record in source:
            consume(record)
    return RunStats(run_id=run_id, source=source.describe(), records=source.yielded)


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="bqap",
        description="Read candidate queries from one input source and emit them as JSON lines.",
    )

    # Source selection (names are the CLI contract; first present flag by precedence wins)
    parser.add_argument("--query", default=None, help="Inline SQL query.")
    parser.add_argument("--input_file_path", default=None, help="One SQL file (local, gs:// or s3://).")
    parser.add_argument(
        "--input_folder_path",
        default=None,
        help="Folder of SQL files, one query per file (local, gs:// or s3://; not recursive).",
    )
    parser.add_argument(
        "--input_csv_file_path",
        default=None,
        help="CSV file with a header row and a `query` column (optional `id` column).",
    )
    parser.add_argument(
        "--read_from_info_schema",
        action="store_true",
        help="Read recently executed queries from INFORMATION_SCHEMA.JOBS.",
    )
    parser.add_argument(
        "--read_from_info_schema_days",
        type=int,
        default=None,
        help="How many days back INFORMATION_SCHEMA is read (default: 1).",
    )
    parser.add_argument(
        "--info_schema_table_name",
        default=None,
        help="INFORMATION_SCHEMA table to read (default: region-us.INFORMATION_SCHEMA.JOBS).",
    )
    parser.add_argument(
        "--processing_project_id",
        default=None,
        help="Project the catalog query runs in (or GOOGLE_CLOUD_PROJECT env var).",
    )

    # Output
    parser.add_argument(
        "--output_file_path",
        default=None,
        help="Write JSON lines to this file instead of stdout.",
    )

    # Convenience
    parser.add_argument(
        "--print-version",
        action="store_true",
        help="Print engine/schema versions and exit.",
    )

    return parser.parse_args(argv)


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = _parse_args(sys.argv[1:] if argv is None else argv)

    if args.print_version:
        print(f"ENGINE_NAME={ENGINE_NAME}")
        print(f"ENGINE_VERSION={ENGINE_VERSION}")
        print(f"RECORD_SCHEMA_VERSION={RECORD_SCHEMA_VERSION}")
        return EXIT_OK

    run_ts = _utc_now()
    run_id = _make_run_id(run_ts)
    clear_run_context()
    set_run_context(run_id=run_id)

    try:
        setup_logging()
        settings = get_settings()
        flags = SourceFlags.from_namespace(args)
        clients = CloudClients(
            project=flags.processing_project_id or settings.gcp.project,
            settings=settings,
        )
        source = resolve_query_source(flags, clients=clients, settings=settings)
    except ValidationError as exc:
        log.error("configuration_error", error=f"Invalid settings: {exc}")
        return EXIT_CONFIG_ERROR
    except ConfigurationError as exc:
        log.error("configuration_error", error=str(exc))
        return EXIT_CONFIG_ERROR
    except SourceIOError as exc:
        # Folder listings run while the source is built.
        log.error("source_failed", error=str(exc), source_label=exc.source_label)
        return EXIT_SOURCE_FAILED

    set_run_context(source_kind=source.kind.value)
    log.info("run_started", source=source.describe())

    with _open_output(args.output_file_path) as out:
        writer = JsonLinesWriter(out, run_id=run_id)
        try:
            stats = run(source, writer, run_id=run_id)
        except SourceIOError as exc:
            log.error(
                "source_failed",
                error=str(exc),
                source_label=exc.source_label,
                records_before_failure=source.yielded,
            )
            return EXIT_SOURCE_FAILED

    log.info("run_finished", source=stats.source, records=stats.records)
    return EXIT_OK


if __name__ == "__main__":
    raise SystemExit(main())
