"""Extraction state machine.

One ``StatementExtractor`` walks the tokens of a document page by page and
turns them into statements, driven entirely by a ``StatementFormat``:

  1. header states: account number, statement period, opening balance and
     the table header (fixed columns or calibrated ones)
  2. row states: a row anchor followed by the format's cell sequence
     (SEQUENTIAL), or tokens placed by column (COLUMNAR)
  3. markers: page ends, section changes and the closing balance

Every anomaly raises immediately; there is no partial result for a file.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Callable, Sequence

from statement_assembler import StatementAssembler
from statement_errors import (
    InvariantViolationError,
    MalformedValueError,
    UnexpectedAmountPositionError,
)
from statement_formats import (
    BalanceAnchor,
    RowMode,
    SectionAction,
    SectionMarker,
    State,
    StatementFormat,
)
from statement_models import ColumnLayout, Document, Page, PositionedToken, Statement, Transaction
from statement_reconcile import BalanceReconciler

TraceSink = Callable[[State, PositionedToken], None]


def logging_trace(logger: logging.Logger) -> TraceSink:
    """Trace sink that logs every visited token at DEBUG level."""

    def sink(state: State, token: PositionedToken) -> None:
        logger.debug(
            "%3d %8.1f %8.1f %-22s %s",
            token.page_index, token.top, token.left, state.value, token.text,
        )

    return sink


@dataclass
class ExtractionContext:
    """Everything the machine knows about the statement being read."""

    format: StatementFormat
    assembler: StatementAssembler
    reconciler: BalanceReconciler
    layout: ColumnLayout
    state: State = State.SEARCH_ACCOUNT_NUMBER
    transaction: Transaction | None = None
    cell_index: int = 0
    calibrated: bool = False
    opening_seen: bool = False
    date_text: str = ""
    last_description_bottom: float | None = None
    date_bottom: float | None = None
    lines_pending: int = 0
    page_index: int = 0

    def advance_header(self) -> None:
        states = self.format.header_states()
        position = states.index(self.state) + 1
        if states[position] is State.SEARCH_OPENING_BALANCE and self.opening_seen:
            position += 1
        self.state = states[position]

    def begin_row(self) -> None:
        self.cell_index = 0
        self.state = self.format.row_cells[0]

    def next_cell(self) -> None:
        self.cell_index += 1
        cells = self.format.row_cells
        self.state = cells[self.cell_index] if self.cell_index < len(cells) else State.SEARCH_TRANSACTION

    def open_transaction(self, transaction: Transaction | None = None) -> Transaction:
        self.transaction = transaction or Transaction()
        self.date_bottom = None
        self.lines_pending = 0
        return self.transaction

    def require_transaction(self) -> Transaction:
        if self.transaction is None:
            raise InvariantViolationError("Current transaction must not be null", self.state)
        return self.transaction

    def set_amount(self, amount: Decimal) -> None:
        transaction = self.require_transaction()
        if transaction.amount is not None:
            raise InvariantViolationError("Amount was expected to be null but was not", self.state)
        transaction.amount = amount
        self.reconciler.record(amount)

    def reset_statement(self) -> None:
        self.reconciler.reset()
        self.layout = self.format.columns
        self.calibrated = False
        self.opening_seen = False
        self.last_description_bottom = None
        self.state = State.SEARCH_ACCOUNT_NUMBER


class StatementExtractor:
    """Read the statements of a document laid out in one ``StatementFormat``."""

    def __init__(self, statement_format: StatementFormat, trace: TraceSink | None = None):
        self.format = statement_format
        self._trace = trace
        self._calibrator = statement_format.calibrator
        self._handlers = {
            State.SEARCH_ACCOUNT_NUMBER: self._search_account_number,
            State.SEARCH_STATEMENT_PERIOD: self._search_statement_period,
            State.SEARCH_PERIOD_END: self._search_period_end,
            State.SEARCH_OPENING_BALANCE: self._search_opening_balance,
            State.SCROLL_TO_TABLE: self._scroll_to_table,
            State.SEARCH_TRANSACTION: (
                self._search_transaction
                if statement_format.row_mode is RowMode.SEQUENTIAL
                else self._place_by_column
            ),
            State.VALUE_DATE: self._value_date,
            State.TRANSACTION_TYPE: self._transaction_type,
            State.FIRST_DESCRIPTION: self._first_description,
            State.SKIP: self._skip,
            State.AMOUNT: self._amount,
            State.BALANCE: self._balance,
            State.SEARCH_CLOSING_BALANCE: self._search_closing_balance,
        }

    def extract(self, document: Document) -> list[Statement]:
        ctx = ExtractionContext(
            format=self.format,
            assembler=StatementAssembler(),
            reconciler=BalanceReconciler(self.format.balance_direction),
            layout=self.format.columns,
        )

        for page in document.pages:
            self._start_page(ctx, page)
            tokens = page.tokens
            index = 0
            while index is not None and index < len(tokens):
                if self._trace is not None:
                    self._trace(ctx.state, tokens[index])
                index = self._handlers[ctx.state](ctx, tokens, index)

        self._commit(ctx)
        return ctx.assembler.finish(ctx.state)

    # -- page and section boundaries ---------------------------------------

    def _start_page(self, ctx: ExtractionContext, page: Page) -> None:
        ctx.page_index = page.number
        if not page.tokens:
            return
        first = page.tokens[0]

        for marker in self.format.section_markers:
            if marker.first_on_page and marker.anchor.matches(first, ctx.layout):
                self._enter_section(ctx, marker)

        if page.number > 0 and ctx.state is State.SEARCH_TRANSACTION:
            if self.format.table_header_every_page:
                ctx.state = State.SCROLL_TO_TABLE
            elif self.format.row_mode is RowMode.COLUMNAR:
                ctx.last_description_bottom = first.bottom

    def _enter_section(self, ctx: ExtractionContext, marker: SectionMarker) -> None:
        self._commit(ctx)
        if marker.action is SectionAction.NEW_STATEMENT:
            ctx.assembler.begin()
            ctx.reset_statement()
        elif marker.action is SectionAction.RESCAN_HEADER:
            ctx.reset_statement()
        else:
            ctx.reconciler.reset()

    def _commit(self, ctx: ExtractionContext) -> None:
        transaction = ctx.transaction
        if transaction is None:
            return
        if ctx.date_text:
            transaction.date = self.format.date_format.parse(ctx.date_text, ctx.state)
        ctx.transaction = None
        ctx.date_text = ""
        if transaction.is_empty():
            return
        if transaction.amount is None:
            raise InvariantViolationError(
                f"Transaction {transaction.description!r} has no amount", ctx.state
            )
        if self.format.require_date and transaction.date is None:
            raise InvariantViolationError(
                f"Transaction {transaction.description!r} has no date", ctx.state
            )
        ctx.assembler.append(transaction)

    def _check_markers(self, ctx: ExtractionContext, token: PositionedToken) -> bool | None:
        """Handle markers inside the table: True ends the page, False consumes the token."""
        for anchor in self.format.page_end_markers:
            if anchor.matches(token, ctx.layout):
                return True
        for marker in self.format.section_markers:
            if not marker.first_on_page and marker.anchor.matches(token, ctx.layout):
                self._enter_section(ctx, marker)
                return False
        closing = self.format.closing_marker
        if closing is not None and closing.matches(token, ctx.layout):
            self._commit(ctx)
            ctx.state = State.SEARCH_CLOSING_BALANCE
            return False
        return None

    # -- header states -----------------------------------------------------

    @staticmethod
    def _following(
        ctx: ExtractionContext, tokens: Sequence[PositionedToken], index: int, count: int, expected: str
    ) -> list[PositionedToken]:
        following = list(tokens[index + 1:index + 1 + count])
        if len(following) < count:
            raise MalformedValueError(None, expected, ctx.state)
        return following

    def _search_account_number(self, ctx: ExtractionContext, tokens: Sequence[PositionedToken], index: int) -> int:
        rule = self.format.account
        if rule.anchor.matches(tokens[index], ctx.layout):
            value = self._following(ctx, tokens, index, 1, "account number")[0].text
            if not rule.pattern.match(value):
                raise MalformedValueError(value, "account number", ctx.state)
            ctx.assembler.set_account(value, ctx.state)
            ctx.advance_header()
        return index + 1

    def _search_statement_period(self, ctx: ExtractionContext, tokens: Sequence[PositionedToken], index: int) -> int:
        rule = self.format.period
        token = tokens[index]
        if not rule.anchor.matches(token, ctx.layout):
            return index + 1

        dates = self.format.date_format
        if rule.end_anchor is not None:
            value = self._following(ctx, tokens, index, 1, "statement start date")[0].text
            ctx.assembler.set_period_start(dates.parse(value, ctx.state), rule.widen)
        else:
            if rule.value_tokens:
                following = self._following(ctx, tokens, index, rule.value_tokens, "statement period")
                text = " ".join(t.text.strip() for t in following)
            else:
                text = token.text
            match = rule.pattern.search(text)
            if match is None:
                raise MalformedValueError(text, "statement period", ctx.state)
            ctx.assembler.set_period(
                dates.parse(match.group("from"), ctx.state),
                dates.parse(match.group("to"), ctx.state),
                rule.widen,
            )
        ctx.advance_header()
        return index + 1

    def _search_period_end(self, ctx: ExtractionContext, tokens: Sequence[PositionedToken], index: int) -> int:
        rule = self.format.period
        if rule.end_anchor.matches(tokens[index], ctx.layout):
            value = self._following(ctx, tokens, index, 1, "statement end date")[0].text
            ctx.assembler.set_period_end(self.format.date_format.parse(value, ctx.state), rule.widen)
            ctx.advance_header()
        return index + 1

    def _read_balance(
        self, ctx: ExtractionContext, tokens: Sequence[PositionedToken], index: int, rule: BalanceAnchor
    ) -> Decimal:
        amounts = self.format.amount_format
        if rule.debit_credit_pair:
            debit, credit = self._following(ctx, tokens, index, 2, "debit and credit balance")
            return amounts.parse_balance(credit.text, ctx.state) - amounts.parse_balance(debit.text, ctx.state)
        value = self._following(ctx, tokens, index, 1, "balance")[0]
        return amounts.parse_balance(value.text, ctx.state)

    def _search_opening_balance(self, ctx: ExtractionContext, tokens: Sequence[PositionedToken], index: int) -> int:
        rule = self.format.opening_balance
        if rule.anchor.matches(tokens[index], ctx.layout):
            if ctx.transaction is not None:
                raise InvariantViolationError("Current transaction must be null", ctx.state)
            ctx.reconciler.seed(self._read_balance(ctx, tokens, index, rule))
            ctx.opening_seen = True
            ctx.advance_header()
        return index + 1

    def _scroll_to_table(self, ctx: ExtractionContext, tokens: Sequence[PositionedToken], index: int) -> int:
        token = tokens[index]
        if self._calibrator is None:
            if self.format.table_anchor.matches(token, ctx.layout):
                ctx.advance_header()
            return index + 1

        previous = ctx.layout if ctx.calibrated and self.format.recalibrate_each_page else None
        if not self._calibrator.is_header_start(token, previous):
            return index + 1
        ctx.layout, last = self._calibrator.calibrate(tokens, index, previous, ctx.state)
        ctx.calibrated = True
        ctx.advance_header()
        return last + 1

    def _search_closing_balance(self, ctx: ExtractionContext, tokens: Sequence[PositionedToken], index: int) -> int:
        rule = self.format.closing_balance
        if rule.anchor.matches(tokens[index], ctx.layout):
            ctx.reconciler.check_closing(self._read_balance(ctx, tokens, index, rule), ctx.state)
        return index + 1

    # -- sequential rows -----------------------------------------------------

    def _search_transaction(self, ctx: ExtractionContext, tokens: Sequence[PositionedToken], index: int) -> int | None:
        token = tokens[index]
        following = tokens[index + 1] if index + 1 < len(tokens) else None

        marker = self._check_markers(ctx, token)
        if marker is True:
            return None
        if marker is False:
            return index + 1

        if self.format.row_start(token, following, ctx):
            self._commit(ctx)
            ctx.open_transaction(Transaction(date=self.format.date_format.parse(token.text, ctx.state)))
            ctx.begin_row()
        elif ctx.transaction is not None and self.format.continuation(token, ctx):
            ctx.transaction.append_description(token.text)
        return index + 1

    def _value_date(self, ctx: ExtractionContext, tokens: Sequence[PositionedToken], index: int) -> int:
        text = tokens[index].text
        if not self.format.date_format.matches(text):
            raise MalformedValueError(text, "value date", ctx.state)
        ctx.next_cell()
        return index + 1

    def _transaction_type(self, ctx: ExtractionContext, tokens: Sequence[PositionedToken], index: int) -> int:
        text = tokens[index].text
        if not self.format.type_pattern.match(text):
            raise MalformedValueError(text, "transaction type", ctx.state)
        ctx.next_cell()
        return index + 1

    def _first_description(self, ctx: ExtractionContext, tokens: Sequence[PositionedToken], index: int) -> int:
        transaction = ctx.require_transaction()
        if transaction.description:
            raise InvariantViolationError("Description was expected to be empty but was not", ctx.state)
        transaction.description = tokens[index].text.strip()
        ctx.next_cell()
        return index + 1

    def _skip(self, ctx: ExtractionContext, tokens: Sequence[PositionedToken], index: int) -> int:
        ctx.next_cell()
        return index + 1

    def _amount(self, ctx: ExtractionContext, tokens: Sequence[PositionedToken], index: int) -> int:
        token = tokens[index]
        if not token.text.strip():
            return index + 1
        value = self.format.amount_format.parse(token.text, ctx.state)
        ctx.set_amount(self._signed(ctx, token, value))
        ctx.next_cell()
        return index + 1

    def _balance(self, ctx: ExtractionContext, tokens: Sequence[PositionedToken], index: int) -> int:
        stated = self.format.amount_format.parse_balance(tokens[index].text, ctx.state)
        ctx.require_transaction()
        ctx.reconciler.check(stated, ctx.state)
        ctx.next_cell()
        return index + 1

    def _signed(self, ctx: ExtractionContext, token: PositionedToken, value: Decimal) -> Decimal:
        layout = ctx.layout
        if self.format.signed_amounts and "debit" not in layout and "credit" not in layout:
            return value
        if layout.matches("debit", token):
            return value if self.format.signed_amounts else -value
        if layout.matches("credit", token):
            return value
        raise UnexpectedAmountPositionError(token.text, token.right, ctx.state)

    # -- columnar rows -------------------------------------------------------

    def _place_by_column(self, ctx: ExtractionContext, tokens: Sequence[PositionedToken], index: int) -> int | None:
        token = tokens[index]
        following = tokens[index + 1] if index + 1 < len(tokens) else None

        marker = self._check_markers(ctx, token)
        if marker is True:
            return None
        if marker is False:
            return index + 1

        if self.format.row_start(token, following, ctx):
            if ctx.transaction is not None and ctx.transaction.amount is not None:
                self._commit(ctx)

        layout = ctx.layout
        amounts = self.format.amount_format
        if layout.matches("date", token):
            self._open(ctx)
            ctx.date_text += token.text.strip()
            ctx.date_bottom = token.bottom
        elif layout.matches("debit", token) or layout.matches("credit", token):
            value = amounts.parse(token.text, ctx.state)
            if value == 0 and self.format.ignore_zero_amounts:
                return index + 1
            self._open(ctx)
            ctx.set_amount(self._signed(ctx, token, value))
        elif layout.matches("balance", token):
            stated = amounts.parse_balance(token.text, ctx.state)
            ctx.require_transaction()
            ctx.reconciler.check(stated, ctx.state)
        elif amounts.matches(token.text):
            raise UnexpectedAmountPositionError(token.text, token.right, ctx.state)
        elif token.text.strip() and self.format.continuation(token, ctx):
            self._open(ctx).append_description(token.text)
            ctx.last_description_bottom = token.bottom

        row_end = self.format.row_end
        if row_end is not None and row_end(token, following, ctx):
            self._commit(ctx)
        return index + 1

    @staticmethod
    def _open(ctx: ExtractionContext) -> Transaction:
        return ctx.transaction if ctx.transaction is not None else ctx.open_transaction()


def extract_statements(
    document: Document,
    statement_format: StatementFormat,
    trace: TraceSink | None = None,
) -> list[Statement]:
    return StatementExtractor(statement_format, trace).extract(document)
