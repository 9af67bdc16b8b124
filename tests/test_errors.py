"""Tests for the parser exception hierarchy."""

from decimal import Decimal

import pytest

from statement_errors import (
    BalanceMismatchError,
    FormatMismatchError,
    InvariantViolationError,
    MalformedValueError,
    NoFilesFoundError,
    StatementParserError,
    UnexpectedAmountPositionError,
)
from statement_formats import State


class TestErrorCodes:

    @pytest.mark.parametrize(
        "error, code",
        [
            (NoFilesFoundError("/tmp/in"), "BSP-100"),
            (FormatMismatchError("Account number not found"), "BSP-200"),
            (MalformedValueError("x", "date"), "BSP-300"),
            (UnexpectedAmountPositionError("5.00", 300.0), "BSP-400"),
            (InvariantViolationError("Current transaction must not be null"), "BSP-500"),
            (BalanceMismatchError(Decimal("1"), Decimal("2")), "BSP-600"),
        ],
    )
    def test_codes(self, error, code):
        assert isinstance(error, StatementParserError)
        assert error.error_code == code
        assert error.to_dict()["error_code"] == code


class TestDetails:

    def test_state_is_recorded_by_name(self):
        error = MalformedValueError("1x.00", "amount", State.AMOUNT)
        assert error.details == {"text": "1x.00", "expected": "amount", "state": "Amount"}

    def test_path_prefixes_message(self):
        error = FormatMismatchError("Account number not found", State.SEARCH_ACCOUNT_NUMBER)
        assert str(error) == "Account number not found"
        error.details["path"] = "a.pdf"
        assert str(error) == "a.pdf: Account number not found"

    def test_balance_mismatch(self):
        error = BalanceMismatchError(Decimal("95.00"), Decimal("96.00"), State.BALANCE)
        assert error.expected == Decimal("95.00")
        assert error.details["actual"] == "96.00"
        assert "95.00" in error.message

    def test_no_files_carries_path(self):
        assert NoFilesFoundError("/data").path == "/data"
