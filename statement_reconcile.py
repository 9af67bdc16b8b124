from __future__ import annotations

from decimal import Decimal
from enum import Enum
from typing import Any

from statement_errors import BalanceMismatchError


class BalanceDirection(Enum):
    """How a stated balance relates to the one printed on the previous row."""

    ADD = "add"          # oldest first: prior + amount == stated
    REVERSE = "reverse"  # newest first: prior - previous amount == stated
    NONE = "none"        # no running balance printed


class BalanceReconciler:
    """Running balance of one statement.

    ``record`` is called once per transaction amount and ``check`` for every
    stated balance that follows it. Without an opening balance the first
    stated balance seeds the running one.
    """

    def __init__(self, direction: BalanceDirection = BalanceDirection.ADD):
        self.direction = direction
        self.reset()

    def reset(self) -> None:
        self.opening: Decimal | None = None
        self.balance: Decimal | None = None
        self.total = Decimal(0)
        self._amount: Decimal | None = None
        self._previous_amount: Decimal | None = None

    def seed(self, balance: Decimal) -> None:
        self.opening = balance
        self.balance = balance

    def record(self, amount: Decimal) -> None:
        self.total += amount
        self._previous_amount = self._amount
        self._amount = amount

    def expected(self) -> Decimal | None:
        if self.balance is None:
            return None
        if self.direction is BalanceDirection.ADD and self._amount is not None:
            return self.balance + self._amount
        if self.direction is BalanceDirection.REVERSE and self._previous_amount is not None:
            return self.balance - self._previous_amount
        return None

    def check(self, stated: Decimal, state: Any = None) -> None:
        if self.direction is BalanceDirection.NONE:
            return
        expected = self.expected()
        if expected is not None and expected != stated:
            raise BalanceMismatchError(expected, stated, state)
        self.balance = stated

    def check_closing(self, closing: Decimal, state: Any = None) -> None:
        expected = (self.opening or Decimal(0)) + self.total
        if expected != closing:
            raise BalanceMismatchError(expected, closing, state)
