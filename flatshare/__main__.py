"""
Command line entry point.

    python -m flatshare data.txt                 # print who owes whom
    python -m flatshare data.txt --presence      # print P/A per resident
    python -m flatshare data.txt --validate      # report every invalid line
    python -m flatshare data.txt --insert "PAY 2024-03-01 alice 90.00 2024-02-01 2024-03-01"
"""

from __future__ import annotations
import argparse
import sys
from typing import List, Optional

from .core import SettlementError
from .oplog import insert_operation
from .replay import ReplayEngine
from .report import render_ledger, render_presence


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="flatshare",
        description="Replay a shared-living operation log and settle who owes whom",
    )
    parser.add_argument("log", help="Path to the operation log")
    parser.add_argument("--presence", action="store_true", help="Print P/A for every resident instead of debts")
    parser.add_argument("--validate", action="store_true", help="Report every invalid line instead of stopping at the first")
    parser.add_argument("--insert", metavar="LINE", help="Print the log with LINE inserted in chronological order")
    parser.add_argument("--verbose", action="store_true", help="Trace every applied operation")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        with open(args.log, encoding="utf-8") as handle:
            lines = handle.readlines()
    except OSError as exc:
        print(f"Unable to open {args.log}: {exc}", file=sys.stderr)
        return 1

    engine = ReplayEngine(verbose=args.verbose)

    try:
        if args.insert:
            print("\n".join(insert_operation(lines, args.insert)))
            return 0

        if args.validate:
            report = engine.validate_lines(lines)
            for issue in report.issues:
                print(issue.message, file=sys.stderr)
            print(f"{report.applied} operations applied, {len(report.issues)} rejected")
            return 0 if report.ok else 1

        state = engine.run_lines(lines)
    except SettlementError as exc:
        print(f"{type(exc).__name__}: {exc}", file=sys.stderr)
        return 1

    output = render_presence(state) if args.presence else render_ledger(state)
    for line in output:
        print(line)
    return 0


if __name__ == "__main__":
    sys.exit(main())
