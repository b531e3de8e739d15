#!/usr/bin/env python3
"""
library_cli.py

Batch entry point: load users and items, replay a command file and write the report.

Typical usage:
    python library_cli.py items.txt users.txt commands.txt output.txt --export-dir snapshot

Users are loaded before items, then every command line is applied in file
order. Report lines go to the output file; diagnostics go to the log on stderr.
"""

from __future__ import annotations
import argparse
import logging
from typing import List, Optional, TextIO

from library_system import LibrarySystem, write_line

logger = logging.getLogger("LibrarySystem")


def run_batch(items_file: str, users_file: str, commands_file: str, report: TextIO,
              lib: Optional[LibrarySystem] = None) -> LibrarySystem:
    """
    Run one full batch against an already-open report stream.

    Args:
        items_file: path to the items file.
        users_file: path to the users file.
        commands_file: path to the commands file.
        report: writable text stream that receives every report line.
        lib: system to run against; a fresh one is created when omitted.

    Returns:
        The LibrarySystem in its final state.
    """
    lib = lib if lib is not None else LibrarySystem()
    lib.load_users_from_file(users_file, report)
    lib.load_items_from_file(items_file, report)
    try:
        with open(commands_file, "r", encoding="utf-8", errors="replace") as fh:
            lib.process_commands(fh, report)
    except OSError as exc:
        logger.error("Could not read command file: %s", exc)
        write_line(report, f"Error reading command file: {commands_file}")
    return lib


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Replay library borrow/return/pay commands and write a report")
    parser.add_argument("items_file", help="Path to the items file")
    parser.add_argument("users_file", help="Path to the users file")
    parser.add_argument("commands_file", help="Path to the commands file")
    parser.add_argument("output_file", help="Report file to write (overwritten)")
    parser.add_argument("--export-dir", default=None, help="Also write users.csv and items.csv snapshots here")
    parser.add_argument("--log-level", default="WARNING",
                        choices=["DEBUG", "INFO", "WARNING", "ERROR"], help="Logging verbosity on stderr")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=getattr(logging, args.log_level), format="%(levelname)s: %(message)s")

    try:
        report = open(args.output_file, "w", encoding="utf-8")
    except OSError as exc:
        logger.error("Error opening output file: %s (%s)", args.output_file, exc)
        return 1

    with report:
        lib = run_batch(args.items_file, args.users_file, args.commands_file, report)

    if args.export_dir:
        lib.save_snapshot(args.export_dir)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
