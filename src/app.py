"""Application entry point for the luasieve filter runner."""

from __future__ import annotations

import argparse
import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from typing import Optional, TextIO

from art import tprint

import settings
from adapters.ndjson_records import batched, iter_records, write_records
from adapters.script_files import FileScriptSource
from core.config import build_config
from core.errors import FilterError
from core.runtime import FilterRuntime
from core.system import FilterSystem

NAME = "LUASIEVE"
FONT = "tarty-1"

LOGGER = logging.getLogger(__name__)


def _print_banner() -> None:
    tprint(NAME, FONT, space=1)


def _configure_logging() -> None:
    config = settings.LOGGING or {}
    if not config.get("enabled", False):
        return

    level_name = str(config.get("level", "INFO")).upper()
    level = getattr(logging, level_name, logging.INFO)

    fmt = "%(asctime)s %(levelname)s %(name)s: %(message)s"
    datefmt = "%Y-%m-%d %H:%M:%S"
    formatter = logging.Formatter(fmt=fmt, datefmt=datefmt)

    handlers: list[logging.Handler] = []

    # stdout carries the record stream, so console logs go to stderr.
    if config.get("console", True):
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(level)
        console_handler.setFormatter(formatter)
        handlers.append(console_handler)

    file_cfg = config.get("file", {})
    if file_cfg.get("enabled", False):
        path = file_cfg.get("path", "logs/luasieve.log")
        if not os.path.isabs(path):
            path = os.path.join(settings.PROJECT_ROOT, path)
        directory = os.path.dirname(path)
        if directory:
            os.makedirs(directory, exist_ok=True)

        max_bytes = int(file_cfg.get("max_bytes", 5 * 1024 * 1024))
        backup_count = int(file_cfg.get("backup_count", 5))
        file_handler = RotatingFileHandler(
            path,
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding="utf-8",
        )
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        handlers.append(file_handler)

    if not handlers:
        return

    logging.basicConfig(level=level, handlers=handlers)


def _load_system() -> FilterSystem:
    config = build_config(settings.CHAINS_CONFIG)
    runtime = FilterRuntime(
        scripts=FileScriptSource(settings.SCRIPTS_ROOT),
        instruction_limit=settings.INSTRUCTION_LIMIT,
        memory_limit=settings.MEMORY_LIMIT,
    )
    return runtime.load(config)


def _stream_records(
    system: FilterSystem,
    source: TextIO,
    sink: TextIO,
    batch_size: int,
    chain: Optional[str],
    skip_errors: bool,
) -> int:
    """Filter NDJSON records batch by batch; returns the process exit code."""

    kept = 0
    failed_batches = 0
    for index, batch in enumerate(batched(iter_records(source), batch_size)):
        try:
            survivors = system.filter(batch, chain=chain)
        except FilterError:
            if not skip_errors:
                LOGGER.exception("Filtering failed in batch %s", index)
                return 1
            failed_batches += 1
            LOGGER.exception("Skipping batch %s (%s records)", index, len(batch))
            continue
        kept += write_records(sink, survivors)
        sink.flush()

    LOGGER.info("Filtering complete: kept=%s, skipped_batches=%s", kept, failed_batches)
    return 0


def _run(args: argparse.Namespace) -> int:
    _configure_logging()
    LOGGER.info("Starting luasieve with %s", settings.CONFIG_PATH)

    try:
        system = _load_system()
    except FilterError:
        LOGGER.exception("Failed to load filters")
        return 1

    # Explicit handles keep it obvious which streams we own and must close.
    source: Optional[TextIO] = None
    sink: Optional[TextIO] = None
    try:
        source = open(args.input, "r", encoding="utf-8") if args.input else sys.stdin
        sink = open(args.output, "w", encoding="utf-8") if args.output else sys.stdout
        return _stream_records(system, source, sink, args.batch_size, args.chain, args.skip_errors)
    except OSError:
        LOGGER.exception("Cannot open record stream")
        return 1
    except ValueError:
        LOGGER.exception("Invalid record stream")
        return 1
    finally:
        if args.input and source is not None:
            source.close()
        if args.output and sink is not None:
            sink.close()


def _check() -> int:
    _print_banner()
    _configure_logging()
    try:
        system = _load_system()
    except FilterError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1

    for item in system:
        print(f"{item.chain}\t{item.label}\t{item.name}")
    print(f"{len(system)} filters loaded from {len(system.chains)} chains")
    return 0


def main(argv: Optional[list[str]] = None) -> None:
    parser = argparse.ArgumentParser(prog="luasieve")
    subparsers = parser.add_subparsers(dest="command")

    run_parser = subparsers.add_parser("run", help="Filter NDJSON records through the loaded chains")
    run_parser.add_argument("--input", help="NDJSON file to read (default: stdin)")
    run_parser.add_argument("--output", help="NDJSON file to write (default: stdout)")
    run_parser.add_argument("--batch-size", type=int, default=100)
    run_parser.add_argument("--chain", help="Only apply filters declared under this chain")
    run_parser.add_argument(
        "--skip-errors",
        action="store_true",
        help="Log and drop batches whose filters fail instead of stopping",
    )
    subparsers.add_parser("check", help="Load the configuration and list the filters")

    # Running without a subcommand behaves like a bare `run`.
    parser.set_defaults(input=None, output=None, batch_size=100, chain=None, skip_errors=False)

    args = parser.parse_args(argv)
    if args.command == "check":
        sys.exit(_check())
    sys.exit(_run(args))


if __name__ == "__main__":
    main()
