from __future__ import annotations

import csv
import io
from datetime import datetime
from decimal import Decimal
from pathlib import Path
from typing import Iterable

from statement_models import Transaction

HEADER = "Date,Description,Amount"
NEWLINE = "\r\n"
_DATE_FORMAT = "%d/%m/%Y"


def format_amount(amount: Decimal | None) -> str:
    """Shortest invariant form: 95.50 -> "95.5", -5.00 -> "-5"."""
    if amount is None:
        return ""
    if amount == 0:
        return "0"
    return format(amount.normalize(), "f")


def _format_description(description: str) -> str:
    if "," in description:
        return '"' + description.replace('"', '""') + '"'
    return description


def serialize_transactions(transactions: Iterable[Transaction]) -> str:
    rows = [HEADER]
    for t in transactions:
        day = t.date.strftime(_DATE_FORMAT) if t.date else ""
        rows.append(f"{day},{_format_description(t.description or '')},{format_amount(t.amount)}")
    return NEWLINE.join(rows) + NEWLINE


def parse_transactions(text: str) -> list[Transaction]:
    """Read back the output of ``serialize_transactions``."""
    reader = csv.reader(io.StringIO(text, newline=""))
    header = next(reader, None)
    if header != HEADER.split(","):
        raise ValueError(f"Unexpected CSV header: {header!r}")

    transactions: list[Transaction] = []
    for day, description, amount in reader:
        transactions.append(
            Transaction(
                date=datetime.strptime(day, _DATE_FORMAT).date() if day else None,
                description=description,
                amount=Decimal(amount) if amount else None,
            )
        )
    return transactions


def write_csv(path: str | Path, transactions: Iterable[Transaction]) -> Path:
    path = Path(path)
    with path.open("w", encoding="utf-8", newline="") as fh:
        fh.write(serialize_transactions(transactions))
    return path
