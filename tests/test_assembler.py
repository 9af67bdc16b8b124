"""Tests for collecting statements out of one document."""

from datetime import date

import pytest

from statement_assembler import StatementAssembler
from statement_errors import FormatMismatchError
from statement_models import Transaction


@pytest.fixture
def assembler():
    a = StatementAssembler()
    a.set_account("123")
    a.set_period(date(2024, 1, 1), date(2024, 1, 31))
    return a


class TestStatementAssembler:

    def test_finish_returns_statements_in_order(self, assembler):
        assembler.append(Transaction(description="first"))
        assembler.begin()
        assembler.set_account("456")
        assembler.set_period(date(2024, 2, 1), date(2024, 2, 29))

        statements = assembler.finish()

        assert [s.account_number for s in statements] == ["123", "456"]
        assert statements[0].transactions[0].description == "first"

    def test_begin_on_blank_statement_is_noop(self):
        a = StatementAssembler()
        a.begin()
        a.set_account("1")
        a.set_period(date(2024, 1, 1), date(2024, 1, 2))
        assert len(a.finish()) == 1

    def test_second_account_in_one_statement(self, assembler):
        assembler.set_account("123")
        with pytest.raises(FormatMismatchError, match="More than one account"):
            assembler.set_account("999")

    def test_widen_period(self, assembler):
        assembler.set_period(date(2023, 12, 15), date(2024, 1, 20), widen=True)
        assembler.set_period(date(2024, 1, 10), date(2024, 2, 5), widen=True)
        statement = assembler.finish()[0]
        assert statement.from_date == date(2023, 12, 15)
        assert statement.to_date == date(2024, 2, 5)

    def test_missing_period(self):
        a = StatementAssembler()
        a.set_account("123")
        with pytest.raises(FormatMismatchError, match="Statement period not found for account 123"):
            a.finish()

    def test_missing_account(self):
        a = StatementAssembler()
        a.set_period(date(2024, 1, 1), date(2024, 1, 31))
        with pytest.raises(FormatMismatchError, match="Account number not found"):
            a.finish()

    def test_nothing_found(self):
        with pytest.raises(FormatMismatchError, match="No statement header found"):
            StatementAssembler().finish()
