from __future__ import annotations

import argparse
import os
import sys
from pathlib import Path

from dotenv import load_dotenv

from curriculum_filter.config.loader import ConfigError, FilterConfig, load_config
from curriculum_filter.excel.reader import MalformedInputError, read_workbook
from curriculum_filter.excel.writer import ExportWriteError
from curriculum_filter.logging.error_log import ErrorLogBuffer
from curriculum_filter.logging.init import log_summary, setup_logging
from curriculum_filter.models.error_record import ErrorRecord
from curriculum_filter.models.tree import parse_node_path
from curriculum_filter.services.display import render_tree_lines
from curriculum_filter.services.progress import ProgressTracker
from curriculum_filter.services.selection import UnknownNodeError
from curriculum_filter.services.session import FilterSession
from curriculum_filter.services.summary import render_summary_body

"""CLI entrypoint.

Flow:
- Load .env and config
- Read the workbook and ingest it (progress bar on TTY)
- Apply --uncheck-all / --check / --uncheck in command-line order
- Either print the (searched) tree or write the filtered workbook
- Print the SUMMARY line
"""

EXIT_SUCCESS = 0
EXIT_FATAL = 1
EXIT_EXPORT_FAILED = 2

CONFIG_ENV_VAR = "CURRICULUM_FILTER_CONFIG"


def _load_env_file(path: Path, override: bool = False) -> None:
    """Load .env (if present) so CURRICULUM_FILTER_CONFIG can be set there."""
    if path.exists():
        load_dotenv(dotenv_path=path, override=override)


def _check(path: str) -> tuple[bool, str]:
    return (True, path)


def _uncheck(path: str) -> tuple[bool, str]:
    return (False, path)


def _parse_args(argv: list[str]) -> argparse.Namespace:
    p = argparse.ArgumentParser(
        prog="curriculum-filter",
        description="Select Category > Class > Subject > Chapter > Topic branches of a workbook and export the selected rows",
    )
    p.add_argument("input", help="Excel workbook (.xlsx) to filter")
    p.add_argument("-o", "--output", help="Output workbook path (default: Filtered_Excel_File_<millis>.xlsx)")
    p.add_argument("--config", help=f"YAML config path (default: ${CONFIG_ENV_VAR} or config/filter.yml)")
    p.add_argument("--check", dest="toggles", action="append", type=_check, metavar="PATH",
                   help="Check a node, e.g. 'Sheet1>10>Math' (repeatable)")
    p.add_argument("--uncheck", dest="toggles", action="append", type=_uncheck, metavar="PATH",
                   help="Uncheck a node (repeatable)")
    p.add_argument("--uncheck-all", action="store_true", help="Start from an empty selection")
    p.add_argument("--search", default="", help="Search term applied to --show-tree")
    p.add_argument("--show-tree", action="store_true", help="Print the tree with selection markers instead of exporting")
    p.add_argument("--inspect-data", action="store_true", help="Print sheet headers & first rows then exit")
    p.add_argument("--debug", action="store_true", help="Enable debug logging")
    return p.parse_args(argv)


def _resolve_config(args: argparse.Namespace) -> FilterConfig:
    raw = args.config or os.getenv(CONFIG_ENV_VAR)
    return load_config(Path(raw) if raw else None)


def _inspect_data(input_path: Path, cfg: FilterConfig) -> int:
    try:
        workbook = read_workbook(input_path, date_format=cfg.date_format)
    except MalformedInputError as e:
        print(f"inspect: {e}")
        return EXIT_FATAL
    print(f"FILE: {input_path.name}")
    for sheet in workbook:
        print(f"  SHEET: {sheet.sheet_name} cols={sheet.columns} rows={len(sheet.rows)}")
        print("    sample_rows=", sheet.rows[:3])
    return EXIT_SUCCESS


def main(argv: list[str] | None = None) -> int:
    logger = setup_logging()

    # None のときのみ sys.argv を読む (テストでの [] 呼び出し対策)
    if argv is None:
        argv = sys.argv[1:]
    args = _parse_args(argv)
    _load_env_file(Path(".env"))

    if args.debug:
        logger = setup_logging(debug=True)
        logger.debug("debug mode enabled")

    error_log = ErrorLogBuffer()
    input_path = Path(args.input)

    try:
        cfg = _resolve_config(args)
    except ConfigError as e:
        logger.error(f"config: {e}")
        error_log.append(ErrorRecord.create(file=input_path.name, error_type="CONFIG_ERROR", message=str(e)))
        error_log.flush()
        return EXIT_FATAL

    if not input_path.exists():
        logger.error(f"input not found: {input_path}")
        return EXIT_FATAL

    if args.inspect_data:
        return _inspect_data(input_path, cfg)

    logger.info(f"Reading workbook: {input_path}")
    session = FilterSession(cfg)
    try:
        workbook = read_workbook(input_path, date_format=cfg.date_format)
    except MalformedInputError as e:
        logger.error(f"input: {e}")
        error_log.append(ErrorRecord.create(file=input_path.name, error_type="MALFORMED_INPUT", message=str(e)))
        error_log.flush()
        return EXIT_FATAL

    with ProgressTracker(workbook.total_rows, description="Ingesting", unit="row") as progress:
        stats = session.ingest(workbook, on_batch=progress)

    try:
        if args.uncheck_all:
            session.uncheck_all()
        for checked, raw_path in args.toggles or []:
            session.set_node(parse_node_path(raw_path, cfg.path_separator), checked)
    except UnknownNodeError:
        logger.error(f"selection: unknown node {raw_path!r}")
        return EXIT_FATAL
    except ValueError as e:
        logger.error(f"selection: {e}")
        return EXIT_FATAL

    if args.show_tree:
        view = session.search(args.search)
        for line in render_tree_lines(view, session.selection, expand_all=True, limits=cfg.display_limits):
            print(line)
        log_summary(render_summary_body(stats))
        return EXIT_SUCCESS

    output = Path(args.output) if args.output else Path(session.default_output_name())
    categories = len(session.tree) if session.tree is not None else 0
    with ProgressTracker(categories, description="Exporting", unit="category") as progress:
        try:
            _, result = session.save(output, on_batch=progress)
        except ExportWriteError as e:
            logger.error(f"export: {e}")
            error_log.append(ErrorRecord.create(file=output.name, error_type="EXPORT_WRITE_ERROR", message=str(e)))
            error_log.flush()
            log_summary(render_summary_body(stats))
            return EXIT_EXPORT_FAILED

    logger.info(f"wrote {output} sheets={result.exported_sheets} rows={result.exported_rows}")
    log_summary(render_summary_body(stats, result))
    return EXIT_SUCCESS


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
