from __future__ import annotations

from datetime import date
from typing import Any

from statement_errors import FormatMismatchError
from statement_models import Statement, Transaction


class StatementAssembler:
    """Collect the statements of one document in document order."""

    def __init__(self) -> None:
        self._statements: list[Statement] = []
        self.current = Statement()

    def begin(self) -> Statement:
        """Close the open statement, unless nothing was read into it yet."""
        if not self.current.is_blank():
            self.close()
            self.current = Statement()
        return self.current

    def set_account(self, number: str, state: Any = None) -> None:
        known = self.current.account_number
        if known is not None and known != number:
            raise FormatMismatchError(
                f"More than one account in one statement: {known!r} and {number!r}",
                state=state,
                text=number,
            )
        self.current.account_number = number

    def set_period(self, start: date, end: date, widen: bool = False) -> None:
        self.set_period_start(start, widen)
        self.set_period_end(end, widen)

    def set_period_start(self, start: date, widen: bool = False) -> None:
        known = self.current.from_date
        self.current.from_date = min(known, start) if widen and known else start

    def set_period_end(self, end: date, widen: bool = False) -> None:
        known = self.current.to_date
        self.current.to_date = max(known, end) if widen and known else end

    def append(self, transaction: Transaction) -> None:
        self.current.transactions.append(transaction)

    def close(self, state: Any = None) -> None:
        statement = self.current
        if statement.account_number is None:
            raise FormatMismatchError("Account number not found", state=state)
        if statement.from_date is None or statement.to_date is None:
            raise FormatMismatchError(
                f"Statement period not found for account {statement.account_number}", state=state
            )
        self._statements.append(statement)

    def finish(self, state: Any = None) -> list[Statement]:
        if not self.current.is_blank():
            self.close(state)
            self.current = Statement()
        if not self._statements:
            raise FormatMismatchError("No statement header found", state=state)
        return list(self._statements)
