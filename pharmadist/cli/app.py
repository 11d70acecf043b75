from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from collections.abc import Iterator
from contextlib import ExitStack, contextmanager
from pathlib import Path
from typing import Any

import psycopg2
from dotenv import load_dotenv

from ..config.loader import DEFAULT_CONFIG_PATH, AppConfig, ConfigError, TableConfig, load_config, resolve_dsn
from ..db.postgres_store import PostgresStore
from ..db.store import MemoryStore, RecordStore, StoreError
from ..excel.reader import ReaderError, read_sheet
from ..importer.synonyms import synonyms_for
from ..logging.error_log import ErrorLogBuffer
from ..logging.init import log_summary, set_debug, setup_logging
from ..models.import_result import ImportStatus
from ..models.records import RecordKind
from ..search.live_search import LiveSearch
from ..services.importer import ImportProcessingError, import_file
from ..services.summary import render_summary_line

"""pharmadist command line.

Subcommands:
- import {products,parties} FILE   normalize a spreadsheet and bulk insert it
- search {products,parties} QUERY  multi-field prefix search, one JSON line per hit
- inspect FILE                     show headers, sample rows and the field mapping

Database: PostgreSQL via DATABASE_URL / PGDSN / PG* (a .env file in the
working directory overrides the process environment), falling back to the
config file. With DISABLE_DB_CONNECT=1, or when the connection fails, an
in-memory store is used instead (mode=memory; nothing is persisted).
"""

EXIT_SUCCESS = 0
EXIT_FATAL = 1
EXIT_PARTIAL_FAILURE = 2

TABLE_CHOICES = ["products", "parties"]


@contextmanager
def _db_connection(cfg: AppConfig) -> Iterator[Any]:  # pragma: no cover (thin wrapper; needs a server)
    """Yield a psycopg2 cursor; commit on clean exit, roll back otherwise."""
    conn = psycopg2.connect(resolve_dsn(cfg.database))
    conn.autocommit = False
    cur = conn.cursor()
    try:
        yield cur
        conn.commit()
    except BaseException:
        conn.rollback()
        raise
    finally:
        cur.close()
        conn.close()


@contextmanager
def _open_store(cfg: AppConfig, table_cfg: TableConfig, logger: logging.Logger) -> Iterator[tuple[RecordStore, str]]:
    """Yield (store, mode) for ``table_cfg``; mode is "live" or "memory"."""
    if os.getenv("DISABLE_DB_CONNECT") == "1":
        logger.debug("DB connect disabled via DISABLE_DB_CONNECT=1 -> memory mode")
        yield MemoryStore(), "memory"
        return

    with ExitStack() as stack:
        try:
            cur = stack.enter_context(_db_connection(cfg))
        except psycopg2.Error as e:
            logger.info(f"DB connection failed -> fallback to memory mode: {e}")
            cur = None
        if cur is None:
            yield MemoryStore(), "memory"
            return
        store = PostgresStore(cur, table_cfg.table)
        store.ensure_table(table_cfg.search_fields)
        yield store, "live"


def _load_env_file(path: Path, override: bool = True) -> None:
    """Load .env; its values override the process environment."""
    if path.exists():
        load_dotenv(dotenv_path=path, override=override)


def _parse_args(argv: list[str]) -> argparse.Namespace:
    p = argparse.ArgumentParser(prog="pharmadist", description="Pharma distribution import & search tools")
    p.add_argument("--debug", action="store_true", help="Enable debug logging")
    p.add_argument("--config", type=Path, default=DEFAULT_CONFIG_PATH, help="Config YAML path")
    sub = p.add_subparsers(dest="command", required=True)

    imp = sub.add_parser("import", help="Import a spreadsheet of products or parties")
    imp.add_argument("table", choices=TABLE_CHOICES)
    imp.add_argument("file", type=Path)
    imp.add_argument("--sheet", default=None, help="Sheet name (default: first sheet)")
    imp.add_argument("--chunk-size", type=int, default=None, help="Rows per bulk insert")

    srch = sub.add_parser("search", help="Search products or parties")
    srch.add_argument("table", choices=TABLE_CHOICES)
    srch.add_argument("query", nargs="?", default="")
    srch.add_argument("--limit", type=int, default=None)
    srch.add_argument("--fields", nargs="+", default=None, help="Fields to search (first one orders blank queries)")

    insp = sub.add_parser("inspect", help="Print headers, first rows and the detected field mapping")
    insp.add_argument("file", type=Path)
    insp.add_argument("--table", choices=TABLE_CHOICES, default="products")
    insp.add_argument("--sheet", default=None)
    insp.add_argument("--rows", type=int, default=3)
    return p.parse_args(argv)


def _json_safe(record: dict[str, Any]) -> dict[str, Any]:
    return {k: (v.isoformat() if hasattr(v, "isoformat") else v) for k, v in record.items()}


def _inspect(cfg: AppConfig, args: argparse.Namespace) -> int:
    kind = RecordKind.from_table_key(args.table)
    try:
        sheet = read_sheet(args.file, sheet=args.sheet, keep_na_strings=cfg.import_settings.keep_na_strings)
    except (ReaderError, OSError, ValueError) as e:
        print(f"inspect: read_error: {e}")
        return EXIT_FATAL

    synonyms = synonyms_for(kind)
    print(f"FILE: {args.file.name} SHEET: {sheet.sheet_name} rows={len(sheet.rows)}")
    print(f"  columns={sheet.columns}")
    print("  sample_rows=", [_json_safe(r) for r in sheet.rows[:args.rows]])
    for target in synonyms.fields:
        source = synonyms.match(sheet.columns, target)
        print(f"  {target:<15} <- {source if source is not None else '(default / absent)'}")
    return EXIT_SUCCESS


def _import(cfg: AppConfig, args: argparse.Namespace, logger: logging.Logger) -> int:
    kind = RecordKind.from_table_key(args.table)
    table_cfg = cfg.table_for(kind)
    chunk_size = args.chunk_size or cfg.import_settings.chunk_size
    error_log = ErrorLogBuffer()

    try:
        with _open_store(cfg, table_cfg, logger) as (store, mode):
            result = import_file(
                args.file,
                kind,
                store,
                sheet=args.sheet,
                keep_na_strings=cfg.import_settings.keep_na_strings,
                chunk_size=chunk_size,
                error_log=error_log,
            )
    except (ImportProcessingError, StoreError) as e:
        logger.error(f"import: {e}")
        _flush_errors(error_log, logger)
        return EXIT_FATAL

    _flush_errors(error_log, logger)
    logger.info(f"mode={mode} table={table_cfg.table} inserted_rows={result.inserted_rows}")
    # log_summary adds the "SUMMARY " label itself
    log_summary(render_summary_line(result)[len("SUMMARY "):])

    if result.status is ImportStatus.SUCCESS:
        return EXIT_SUCCESS
    return EXIT_PARTIAL_FAILURE


def _flush_errors(error_log: ErrorLogBuffer, logger: logging.Logger) -> None:
    try:
        path = error_log.flush()
    except OSError as e:
        logger.warning(f"could not write error log: {e}")
        return
    if path is not None:
        logger.info(f"error log written: {path}")


def _search(cfg: AppConfig, args: argparse.Namespace, logger: logging.Logger) -> int:
    kind = RecordKind.from_table_key(args.table)
    table_cfg = cfg.table_for(kind)
    fields = args.fields or table_cfg.search_fields
    limit = args.limit if args.limit is not None else cfg.search.default_limit

    try:
        with _open_store(cfg, table_cfg, logger) as (store, mode):
            live = LiveSearch(store, fields, limit, min_chars=cfg.search.min_chars)
            results = live.run(args.query) or []
    except StoreError as e:
        logger.error(f"search: {e}")
        return EXIT_FATAL

    for record in results:
        print(json.dumps(_json_safe(record), ensure_ascii=False, default=str))
    logger.info(f"mode={mode} table={table_cfg.table} fields={fields} hits={len(results)}")
    return EXIT_SUCCESS


def main(argv: list[str] | None = None) -> int:
    logger = setup_logging()

    # None only: an explicit [] must not pick up pytest's own argv
    if argv is None:
        argv = sys.argv[1:]
    args = _parse_args(argv)
    _load_env_file(Path(".env"), override=True)

    try:
        cfg = load_config(args.config)
    except ConfigError as e:
        logger.error(f"config: {e}")
        return EXIT_FATAL

    if args.debug:
        set_debug(logger)
        logger.debug("debug mode enabled")

    if args.command == "inspect":
        return _inspect(cfg, args)
    if args.command == "import":
        return _import(cfg, args, logger)
    return _search(cfg, args, logger)
