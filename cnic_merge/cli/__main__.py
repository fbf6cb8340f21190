from __future__ import annotations

import argparse
import asyncio
import os
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any

import psycopg2
from dotenv import load_dotenv

from cnic_merge.config.loader import DEFAULT_CONFIG_PATH, ConfigError, default_config, load_config
from cnic_merge.db.record_store import RecordStore, RecordStoreError
from cnic_merge.errors import MergeError, ParseError
from cnic_merge.excel.writer import save_workbook
from cnic_merge.logging.error_log import ErrorLogBuffer
from cnic_merge.logging.init import log_summary, set_debug, setup_logging
from cnic_merge.models.config_models import DatabaseConfig, MergeConfig
from cnic_merge.models.error_record import ErrorRecord
from cnic_merge.services.engine import MergeEngine
from cnic_merge.services.normalize import format_phone_number
from cnic_merge.services.progress import ProgressTracker
from cnic_merge.services.summary import render_summary_line

"""CLI entrypoint.

Commands:
- merge GUARANTOR CLIENTS: build the consolidated workbook, optionally
  replacing the viewer records with the result (--save-records)
- search QUERY / list / count / clear: viewer record store access
"""

EXIT_SUCCESS = 0
EXIT_FATAL = 1
EXIT_INPUT_FAILURE = 2

INPUT_FAILURE_KINDS = {"parse", "missing_input"}


def _dsn(db_cfg: DatabaseConfig) -> str:
    """Resolve the connection string.

    Precedence: DATABASE_URL / PGDSN, then individual PG* variables, then the
    ``database`` section of the config file. ``.env`` is loaded with override
    before this runs, so its values win over the inherited environment.
    """
    dsn = os.getenv("DATABASE_URL") or os.getenv("PGDSN") or db_cfg.dsn
    if dsn:
        return dsn
    host = os.getenv("PGHOST", db_cfg.host or "localhost")
    port = os.getenv("PGPORT", str(db_cfg.port) if db_cfg.port else "5432")
    user = os.getenv("PGUSER", db_cfg.user or "postgres")
    password = os.getenv("PGPASSWORD", db_cfg.password or "")
    database = os.getenv("PGDATABASE", db_cfg.database or "postgres")
    dsn = f"host={host} port={port} user={user} dbname={database}"
    if password:
        dsn += f" password={password}"
    return dsn


@contextmanager
def _db_connection(cfg: MergeConfig) -> Iterator[Any]:  # pragma: no cover (thin wrapper)
    """Yield a psycopg2 cursor; commit on success, roll back on error."""
    conn = psycopg2.connect(_dsn(cfg.database))
    try:
        with conn.cursor() as cur:
            yield cur
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()


def _load_env_file(path: Path, override: bool = True) -> None:
    if path.exists():
        load_dotenv(dotenv_path=path, override=override)


def _parse_args(argv: list[str]) -> argparse.Namespace:
    p = argparse.ArgumentParser(
        prog="cnic-merge",
        description="Match Active Client data (Report 12) with Guarantor Info (Report 24) by CNIC",
    )
    p.add_argument("--debug", action="store_true", help="Enable debug logging")
    p.add_argument("--config", type=Path, default=None, help=f"Config file (default: {DEFAULT_CONFIG_PATH})")
    sub = p.add_subparsers(dest="command", required=True)

    m = sub.add_parser("merge", help="Build the consolidated guarantor workbook")
    m.add_argument("guarantor", type=Path, help="Guarantor Info workbook (Report 24)")
    m.add_argument("clients", type=Path, help="Active Client workbook (Report 12)")
    m.add_argument("-o", "--output", type=Path, default=None, help="Output .xlsx path")
    m.add_argument("--save-records", action="store_true", help="Replace viewer records with the result")

    s = sub.add_parser("search", help="Search viewer records by Client ID, Name, CO Name or Branch")
    s.add_argument("query")

    sub.add_parser("list", help="Print every viewer record")
    sub.add_parser("count", help="Print the number of viewer records")
    sub.add_parser("clear", help="Delete all viewer records")
    return p.parse_args(argv)


def _resolve_config(path: Path | None) -> MergeConfig:
    if path is not None:
        return load_config(path)
    if DEFAULT_CONFIG_PATH.exists():
        return load_config(DEFAULT_CONFIG_PATH)
    return default_config()


def _record_failure(error: MergeError) -> None:
    buffer = ErrorLogBuffer()
    buffer.append(
        ErrorRecord.create(
            source=error.source if isinstance(error, ParseError) else "<RUN>",
            kind=error.kind,
            message=error.message,
        )
    )
    buffer.flush()


def _cmd_merge(args: argparse.Namespace, cfg: MergeConfig, logger) -> int:
    # A path that does not exist counts as an absent input
    guarantor = args.guarantor if args.guarantor.exists() else None
    clients = args.clients if args.clients.exists() else None

    with ProgressTracker(description="Merging") as tracker:
        engine = MergeEngine(cfg, on_progress=tracker.update)
        try:
            result = asyncio.run(engine.run(guarantor, clients))
        except MergeError as e:
            logger.error(f"{e.kind}: {e.message}")
            _record_failure(e)
            return EXIT_INPUT_FAILURE if e.kind in INPUT_FAILURE_KINDS else EXIT_FATAL

    output = args.output or Path(result.file_name)
    try:
        save_workbook(result.content, output)
    except MergeError as e:
        logger.error(f"{e.kind}: {e.message}")
        _record_failure(e)
        return EXIT_FATAL
    logger.info(f"wrote {result.matched_rows} records to {output}")

    if args.save_records:
        try:
            with _db_connection(cfg) as cur:
                store = RecordStore(cur, table=cfg.database.table)
                store.ensure_schema()
                saved = store.clear_and_save(
                    result.rows,
                    metrics_callback=lambda m: logger.debug(
                        f"record store save rows={m.saved_rows} elapsed_sec={m.elapsed_seconds:.3f}"
                    ),
                )
        except (RecordStoreError, psycopg2.Error) as e:
            logger.error(f"record store: {e}")
            return EXIT_FATAL
        logger.info(f"saved {saved} records to {cfg.database.table}")

    log_summary(render_summary_line(result)[len("SUMMARY "):])
    return EXIT_SUCCESS


def _print_record(record: dict[str, Any]) -> None:
    print(
        f"{record.get('Client ID') or '-'} | {record.get('Name') or '-'} | "
        f"CO: {record.get('CO Name') or '-'} | Branch: {record.get('Branch') or '-'}"
    )
    cell = record.get("Guarantor Cell")
    phone = format_phone_number(cell)
    links = f" tel:+{phone} https://wa.me/{phone}" if phone else ""
    print(f"    Guarantor: {record.get('Guarantor Name') or '-'} ({cell or '-'}){links}")
    print(f"    Address: {record.get('Address') or '-'} | Maturity: {record.get('Maturity Date') or '-'}")


def _cmd_store(args: argparse.Namespace, cfg: MergeConfig, logger) -> int:
    try:
        with _db_connection(cfg) as cur:
            store = RecordStore(cur, table=cfg.database.table)
            if args.command == "search":
                records = store.search(args.query)
                for record in records:
                    _print_record(record)
                logger.info(f"{len(records)} record(s) matched '{args.query}'")
            elif args.command == "list":
                records = store.get_all()
                for record in records:
                    _print_record(record)
                logger.info(f"{len(records)} record(s) in {cfg.database.table}")
            elif args.command == "count":
                print(store.count())
            else:
                store.delete_all()
                logger.info(f"cleared {cfg.database.table}")
    except (RecordStoreError, psycopg2.Error) as e:
        logger.error(f"record store: {e}")
        return EXIT_FATAL
    return EXIT_SUCCESS


def main(argv: list[str] | None = None) -> int:
    logger = setup_logging()

    # Only read sys.argv when no argument list was given; [] is a valid argv in tests
    if argv is None:
        argv = sys.argv[1:]
    args = _parse_args(argv)
    _load_env_file(Path(".env"), override=True)

    if args.debug:
        set_debug(logger)
        logger.debug("debug mode enabled")

    try:
        cfg = _resolve_config(args.config)
    except ConfigError as e:
        logger.error(f"config: {e}")
        return EXIT_FATAL

    if args.command == "merge":
        return _cmd_merge(args, cfg, logger)
    return _cmd_store(args, cfg, logger)


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
