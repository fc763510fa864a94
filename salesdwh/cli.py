"""
Command line entry point for the SalesDwh warehouse jobs.
"""

import argparse
import sys
from typing import List, Optional

from salesdwh.bronze import orchestrator
from salesdwh.config import Config
from salesdwh.exceptions import IngestionError
from salesdwh.setup.init_database import bootstrap
from salesdwh.utils.logging_utils import log_error, log_progress


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="salesdwh", description="SalesDwh warehouse bootstrap and bronze loading"
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    init_parser = subparsers.add_parser(
        "init", help="Create the database, schemas and load log table"
    )
    init_parser.add_argument(
        "--reset",
        action="store_true",
        help="Drop and recreate the database (deletes all data)",
    )
    init_parser.add_argument(
        "--yes", action="store_true", help="Do not ask for confirmation with --reset"
    )

    load_parser = subparsers.add_parser(
        "load", help="Truncate and reload the bronze tables from CSV extracts"
    )
    load_parser.add_argument(
        "base_path",
        nargs="?",
        default=None,
        help="Directory containing source_crm/ and source_erp/ (default: DWH_SOURCE_DIR)",
    )
    load_parser.add_argument(
        "--no-log",
        action="store_true",
        help="Do not write records to bronze.load_log",
    )
    return parser


def _run_init(args) -> int:
    if args.reset and not args.yes:
        log_progress(
            "Warehouse Bootstrap",
            f"--reset will drop database {Config.DWH_DATABASE} and all of its data",
        )
        confirm = input("Continue? (y/N): ").lower().strip()
        if confirm not in ["y", "yes"]:
            log_progress("Warehouse Bootstrap", "Cancelled by user")
            return 0
    bootstrap(reset=args.reset)
    return 0


def _run_load(args) -> int:
    base_path = args.base_path or Config.SOURCE_DIR
    log_to_store = Config.LOG_TO_TABLE and not args.no_log
    try:
        orchestrator.run(base_path, log_to_store=log_to_store)
    except (IngestionError, ValueError) as e:
        log_error("Bronze Load", e)
        return 1
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """
    Parse CLI arguments and dispatch to the requested job.

    Returns:
        Process exit code.
    """
    args = build_parser().parse_args(argv)
    if args.command == "init":
        return _run_init(args)
    return _run_load(args)


if __name__ == "__main__":
    sys.exit(main())
