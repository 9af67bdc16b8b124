from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Any

from statement_errors import MalformedValueError

_CURRENCY_PREFIX = r"[$€₺£]?[A-Z]{0,3}"


@dataclass(frozen=True)
class AmountFormat:
    """Decimal and group separator convention of one statement layout."""

    decimal_separator: str = "."
    group_separators: str = ","
    currency_prefix: bool = False
    signed: bool = False
    exact_cents: bool = True
    pattern: re.Pattern = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        group = "[" + re.escape(self.group_separators) + "]"
        cents = r"\d{2}" if self.exact_cents else r"\d{0,2}"
        sign = "-?" if self.signed else ""
        currency = _CURRENCY_PREFIX if self.currency_prefix else ""
        regex = (
            rf"^{currency}(?P<amount>{sign}\d{{1,3}}(?:{group}\d{{3}})*"
            rf"{re.escape(self.decimal_separator)}{cents})$"
        )
        object.__setattr__(self, "pattern", re.compile(regex))

    def matches(self, text: str) -> bool:
        return self.pattern.match(text.strip()) is not None

    def parse(self, text: str, state: Any = None, expected: str = "amount") -> Decimal:
        match = self.pattern.match(text.strip())
        if match is None:
            raise MalformedValueError(text, expected, state)
        raw = match.group("amount")
        for separator in self.group_separators:
            raw = raw.replace(separator, "")
        return Decimal(raw.replace(self.decimal_separator, "."))

    def parse_balance(self, text: str, state: Any = None) -> Decimal:
        """Parse a balance, which unlike a row amount may be overdrawn."""
        stripped = text.strip()
        if stripped.startswith("-") and not self.signed:
            return -self.parse(stripped[1:], state, expected="balance")
        return self.parse(stripped, state, expected="balance")


@dataclass(frozen=True)
class DateFormat:
    """A strptime pattern plus the exact shape the printed date must have."""

    strptime: str
    shape: str
    _shape_re: re.Pattern = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "_shape_re", re.compile(rf"^{self.shape}$"))

    def matches(self, text: str) -> bool:
        if not self._shape_re.match(text):
            return False
        try:
            datetime.strptime(text, self.strptime)
        except ValueError:
            return False
        return True

    def parse(self, text: str, state: Any = None) -> date:
        if not self._shape_re.match(text):
            raise MalformedValueError(text, "date", state)
        try:
            return datetime.strptime(text, self.strptime).date()
        except ValueError:
            raise MalformedValueError(text, "date", state) from None


DD_MM_YYYY = DateFormat("%d/%m/%Y", r"\d{2}/\d{2}/\d{4}")
DD_MM_YYYY_DOTTED = DateFormat("%d.%m.%Y", r"\d{2}\.\d{2}\.\d{4}")
MON_D_YYYY = DateFormat("%b %d, %Y", r"[A-Z][a-z]{2} \d{1,2}, \d{4}")

POINT_DECIMAL = AmountFormat()
COMMA_DECIMAL = AmountFormat(decimal_separator=",", group_separators=".")
