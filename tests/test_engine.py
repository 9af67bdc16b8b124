"""Tests for the extraction state machine on synthetic statements."""

import logging
from datetime import date
from decimal import Decimal

import pytest

from statement_engine import StatementExtractor, extract_statements, logging_trace
from statement_errors import (
    BalanceMismatchError,
    FormatMismatchError,
    InvariantViolationError,
    MalformedValueError,
    UnexpectedAmountPositionError,
)
from statement_formats import BOC, State


def boc_header(b, opening="100.00"):
    return (
        b.add("Account Number", left=380)
        .add("3512345678", left=460)
        .add("Statement Period: 01/11/2018 - 30/11/2018", left=40)
        .add("Date", left=42)
        .add("Balance", left=538)
        .add("Balance brought forward", left=141)
        .add("forward", left=300)
        .add(opening, right=560)
    )


def boc_row(b, day, description, amount, balance, amount_right=411):
    top = b.next_line()
    b.add(day, left=42, top=top).add(day, left=90, top=top)
    b.add(description, left=141, top=top)
    b.add(amount, right=amount_right, top=top)
    return b.add(balance, right=560, top=top)


class TestSimpleStatement:

    def test_single_row(self, builder):
        boc_row(boc_header(builder), "05/11/2018", "COFFEE SHOP", "5.00", "95.00")

        statements = extract_statements(builder.build(), BOC)

        assert len(statements) == 1
        statement = statements[0]
        assert statement.account_number == "3512345678"
        assert statement.from_date == date(2018, 11, 1)
        assert statement.to_date == date(2018, 11, 30)
        assert len(statement.transactions) == 1
        t = statement.transactions[0]
        assert (t.date, t.description, t.amount) == (date(2018, 11, 5), "COFFEE SHOP", Decimal("-5.00"))

    def test_description_reassembly(self, builder):
        boc_header(builder)
        boc_row(builder, "12/01/2024", "PURCHASE", "15.00", "85.00")
        builder.add("AT STORE", left=141)
        builder.add("CARD 1234", left=142)

        t = extract_statements(builder.build(), BOC)[0].transactions[0]

        assert t.description == "PURCHASE AT STORE CARD 1234"
        assert t.amount == Decimal("-15.00")

    def test_credit_and_multiple_rows(self, builder):
        boc_header(builder)
        boc_row(builder, "05/11/2018", "COFFEE SHOP", "5.00", "95.00")
        boc_row(builder, "06/11/2018", "SALARY", "1,000.00", "1,095.00", amount_right=484)

        transactions = extract_statements(builder.build(), BOC)[0].transactions

        assert [t.amount for t in transactions] == [Decimal("-5.00"), Decimal("1000.00")]
        assert transactions[1].date == date(2018, 11, 6)

    def test_table_header_on_every_page(self, builder):
        boc_header(builder)
        boc_row(builder, "05/11/2018", "COFFEE SHOP", "5.00", "95.00")
        builder.add("Continue on next Page", left=200)
        builder.add("05/11/2018", left=42)
        builder.page()
        builder.add("Account Number", left=380).add("3512345678", left=460)
        builder.add("Balance", left=538)
        builder.add("forward", left=300).add("95.00", right=560)
        boc_row(builder, "07/11/2018", "BAKERY", "2.50", "92.50")

        transactions = extract_statements(builder.build(), BOC)[0].transactions

        assert [t.description for t in transactions] == ["COFFEE SHOP", "BAKERY"]


class TestErrors:

    def test_balance_mismatch(self, builder):
        boc_row(boc_header(builder), "05/11/2018", "COFFEE SHOP", "5.00", "96.00")
        with pytest.raises(BalanceMismatchError) as exc_info:
            extract_statements(builder.build(), BOC)
        assert exc_info.value.expected == Decimal("95.00")
        assert exc_info.value.details["state"] == "Balance"

    def test_wrong_amount_in_middle_row(self, builder):
        boc_header(builder)
        boc_row(builder, "05/11/2018", "COFFEE SHOP", "5.00", "95.00")
        boc_row(builder, "06/11/2018", "BOOKSHOP", "20.00", "85.00")
        boc_row(builder, "07/11/2018", "BAKERY", "2.50", "82.50")
        seen = []

        with pytest.raises(BalanceMismatchError) as exc_info:
            extract_statements(builder.build(), BOC, trace=lambda state, token: seen.append(token.text))

        assert exc_info.value.expected == Decimal("75.00")
        assert exc_info.value.actual == Decimal("85.00")
        assert seen[-1] == "85.00"
        assert "BAKERY" not in seen

    def test_amount_outside_columns(self, builder):
        boc_row(boc_header(builder), "05/11/2018", "COFFEE SHOP", "5.00", "95.00", amount_right=440)
        with pytest.raises(UnexpectedAmountPositionError) as exc_info:
            extract_statements(builder.build(), BOC)
        assert exc_info.value.position == 440

    def test_malformed_amount(self, builder):
        boc_row(boc_header(builder), "05/11/2018", "COFFEE SHOP", "5,00", "95.00")
        with pytest.raises(MalformedValueError) as exc_info:
            extract_statements(builder.build(), BOC)
        assert exc_info.value.text == "5,00"
        assert exc_info.value.details["state"] == "Amount"

    def test_malformed_account_number(self, builder):
        builder.add("Account Number", left=380).add("ABC", left=460)
        with pytest.raises(MalformedValueError, match="account number"):
            extract_statements(builder.build(), BOC)

    def test_no_header(self, builder):
        builder.add("Nothing to see here")
        with pytest.raises(FormatMismatchError, match="No statement header found"):
            extract_statements(builder.build(), BOC)

    def test_period_missing(self, builder):
        builder.add("Account Number", left=380).add("3512345678", left=460)
        with pytest.raises(FormatMismatchError, match="Statement period not found"):
            extract_statements(builder.build(), BOC)

    def test_row_without_amount(self, builder):
        boc_header(builder)
        top = 200
        builder.add("05/11/2018", left=42, top=top).add("05/11/2018", left=90, top=top)
        builder.add("COFFEE SHOP", left=141, top=top)
        with pytest.raises(InvariantViolationError, match="has no amount"):
            extract_statements(builder.build(), BOC)


class TestTrace:

    def test_trace_sees_every_token_with_state(self, builder):
        boc_row(boc_header(builder), "05/11/2018", "COFFEE SHOP", "5.00", "95.00")
        document = builder.build()
        seen = []

        StatementExtractor(BOC, trace=lambda state, token: seen.append((state, token.text))).extract(document)

        assert len(seen) == len(document.pages[0].tokens)
        assert seen[0] == (State.SEARCH_ACCOUNT_NUMBER, "Account Number")
        assert (State.FIRST_DESCRIPTION, "COFFEE SHOP") in seen
        assert (State.AMOUNT, "5.00") in seen
        assert (State.BALANCE, "95.00") in seen

    def test_logging_trace(self, builder, caplog):
        boc_row(boc_header(builder), "05/11/2018", "COFFEE SHOP", "5.00", "95.00")
        logger = logging.getLogger("test.trace")
        with caplog.at_level(logging.DEBUG, logger="test.trace"):
            extract_statements(builder.build(), BOC, trace=logging_trace(logger))
        assert any("COFFEE SHOP" in r.getMessage() and "FirstDescription" in r.getMessage() for r in caplog.records)

    def test_no_trace_by_default(self, builder, caplog):
        boc_row(boc_header(builder), "05/11/2018", "COFFEE SHOP", "5.00", "95.00")
        with caplog.at_level(logging.DEBUG):
            extract_statements(builder.build(), BOC)
        assert not caplog.records
