"""Convert bank statement PDFs into CSV transaction files.

For every account found in the input:
  1. statements are sorted by period and checked for duplicates, gaps and
     overlaps (warnings only)
  2. their transactions are written to one CSV file
"""

from __future__ import annotations

import argparse
import logging
import sys
from datetime import datetime
from pathlib import Path

from statement_continuity import find_continuity_issues, group_by_account
from statement_engine import logging_trace
from statement_errors import StatementParserError
from statement_formats import BANKS
from statement_pipeline import process
from statement_serialize import write_csv

logger = logging.getLogger("statement_parser")


def _output_path(source: Path, account: str, output_dir: Path | None, several: bool) -> Path:
    if source.is_file():
        stem = f"{source.stem}_{account}" if several else source.stem
        target = source.with_name(stem + ".csv")
    else:
        target = Path(f"statement_{account}_gen{datetime.now():%Y%m%d-%H%M%S}.csv")
    if output_dir is not None:
        target = output_dir / target.name
    return target


def convert(path: str, bank: str, output_dir: str | None = None, trace: bool = False) -> int:
    source = Path(path)
    out = Path(output_dir) if output_dir else None
    if out is not None:
        out.mkdir(parents=True, exist_ok=True)

    statements = process(source, bank, trace=logging_trace(logger) if trace else None)

    accounts = group_by_account(statements)
    for account, account_statements in accounts.items():
        print(f"Processing account {account}...")
        for issue in find_continuity_issues(account_statements):
            print(issue.message, file=sys.stderr)

        transactions = [t for s in account_statements for t in s.transactions]
        target = _output_path(source, account, out, len(accounts) > 1)
        word = "transaction" if len(transactions) == 1 else "transactions"
        print(f"Writing {len(transactions)} {word} to {target.resolve()}...")
        write_csv(target, transactions)

    print()
    print("Done!")
    return 0


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------

def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="bank-statement-parser",
        description="Extract transactions from bank statement PDFs into CSV files.",
    )
    parser.add_argument(
        "-p", "--path",
        required=True,
        help="Path to a PDF statement file or a folder containing statement files",
    )
    parser.add_argument(
        "-b", "--bank",
        required=True, type=str.lower, choices=BANKS,
        help="Statement layout to read",
    )
    parser.add_argument(
        "-o", "--output-dir",
        metavar="DIR",
        help="Write CSV files here instead of next to the input",
    )
    parser.add_argument(
        "--trace",
        action="store_true",
        help="Log every token with the extraction state that consumed it",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.trace else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    try:
        return convert(args.path, args.bank, args.output_dir, args.trace)
    except StatementParserError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
