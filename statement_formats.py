"""Declarative descriptions of the supported statement layouts.

Each bank layout is a ``StatementFormat`` value consumed by the generic
extraction machine in ``statement_engine``. Anchor labels, column positions
and tolerances were measured on real statements; the row hooks cover the
few places where a layout needs behaviour rather than data.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Callable

from statement_calibrate import ColumnAnchor, ColumnCalibrator
from statement_models import (
    DEFAULT_TOLERANCE,
    Column,
    ColumnLayout,
    Document,
    Edge,
    PositionedToken,
    is_approximately,
)
from statement_reconcile import BalanceDirection
from statement_values import (
    COMMA_DECIMAL,
    DD_MM_YYYY,
    DD_MM_YYYY_DOTTED,
    MON_D_YYYY,
    POINT_DECIMAL,
    AmountFormat,
    DateFormat,
)

if TYPE_CHECKING:
    from statement_engine import ExtractionContext


class State(Enum):
    SEARCH_ACCOUNT_NUMBER = "SearchAccountNumber"
    SEARCH_STATEMENT_PERIOD = "SearchStatementPeriod"
    SEARCH_PERIOD_END = "SearchPeriodEnd"
    SEARCH_OPENING_BALANCE = "SearchOpeningBalance"
    SCROLL_TO_TABLE = "ScrollToTable"
    SEARCH_TRANSACTION = "SearchTransaction"
    VALUE_DATE = "ValueDate"
    TRANSACTION_TYPE = "TransactionType"
    FIRST_DESCRIPTION = "FirstDescription"
    SKIP = "Skip"
    AMOUNT = "Amount"
    BALANCE = "Balance"
    SEARCH_CLOSING_BALANCE = "SearchClosingBalance"


ROW_CELLS = frozenset(
    {
        State.VALUE_DATE,
        State.TRANSACTION_TYPE,
        State.FIRST_DESCRIPTION,
        State.SKIP,
        State.AMOUNT,
        State.BALANCE,
    }
)


class RowMode(Enum):
    SEQUENTIAL = "sequential"  # a row anchor followed by a fixed sequence of cells
    COLUMNAR = "columnar"      # every token placed by the column it is printed in


class SectionAction(Enum):
    NEW_STATEMENT = "new_statement"
    RESET_BALANCE = "reset_balance"
    RESCAN_HEADER = "rescan_header"


@dataclass(frozen=True)
class Anchor:
    """A literal label, optionally pinned to a position or calibrated column."""

    label: str
    left: float | None = None
    column: str | None = None
    prefix: bool = False
    tolerance: float = DEFAULT_TOLERANCE

    def matches(self, token: PositionedToken, layout: ColumnLayout | None = None) -> bool:
        if self.prefix:
            if not token.text.startswith(self.label):
                return False
        elif token.text != self.label:
            return False
        if self.left is not None and not is_approximately(token.left, self.left, self.tolerance):
            return False
        if self.column is not None:
            return layout is not None and layout.matches(self.column, token)
        return True


@dataclass(frozen=True)
class AccountRule:
    """Account number printed in the token after ``anchor``."""

    anchor: Anchor
    pattern: re.Pattern


@dataclass(frozen=True)
class PeriodRule:
    """Where the statement period is printed.

    With ``end_anchor`` unset, ``pattern`` (groups ``from`` and ``to``) is
    searched in the anchor token itself (``value_tokens == 0``) or in the
    next ``value_tokens`` tokens joined by spaces. With ``end_anchor`` set,
    the start and end dates each follow their own label.
    """

    anchor: Anchor
    pattern: re.Pattern | None = None
    value_tokens: int = 0
    end_anchor: Anchor | None = None
    widen: bool = False


@dataclass(frozen=True)
class BalanceAnchor:
    """A balance printed after a label, either as one value or as a debit/credit pair."""

    anchor: Anchor
    debit_credit_pair: bool = False


@dataclass(frozen=True)
class SectionMarker:
    anchor: Anchor
    action: SectionAction
    first_on_page: bool = True


RowPredicate = Callable[[PositionedToken, "PositionedToken | None", "ExtractionContext"], bool]
TokenPredicate = Callable[[PositionedToken, "ExtractionContext"], bool]


def date_at_column(token: PositionedToken, following: PositionedToken | None, ctx: ExtractionContext) -> bool:
    return ctx.layout.matches("date", token) and ctx.format.date_format.matches(token.text)


def date_then_value_date(token: PositionedToken, following: PositionedToken | None, ctx: ExtractionContext) -> bool:
    return (
        date_at_column(token, following, ctx)
        and following is not None
        and ctx.format.date_format.matches(following.text)
    )


def description_gap(threshold: float) -> RowPredicate:
    """Start a row when a description line sits more than *threshold* below the last one."""

    def predicate(token: PositionedToken, following: PositionedToken | None, ctx: ExtractionContext) -> bool:
        last = ctx.last_description_bottom
        return (
            ctx.format.continuation(token, ctx)
            and last is not None
            and token.top - last > threshold
        )

    return predicate


def at_description_column(token: PositionedToken, ctx: ExtractionContext) -> bool:
    return ctx.layout.matches("description", token)


def description_band(slack: float = 5.0, clearance: float = 50.0) -> TokenPredicate:
    """Accept anything between the description header and the debit column."""

    def predicate(token: PositionedToken, ctx: ExtractionContext) -> bool:
        layout = ctx.layout
        if "description" not in layout or "debit" not in layout:
            return False
        return (
            token.left > layout["description"].x - slack
            and token.right < layout["debit"].x - clearance
        )

    return predicate


def description_around_date(slack: float = 3.0, line_tolerance: float = 4.9) -> RowPredicate:
    """End a row whose description lines are centred on its date line.

    Every description line above the date line leaves one line pending and
    every line below it settles one. The row ends at its balance (or amount,
    without a balance column) when nothing is pending, or at the last line
    below the date once the amount is known.
    """

    def predicate(token: PositionedToken, following: PositionedToken | None, ctx: ExtractionContext) -> bool:
        transaction = ctx.transaction
        if transaction is None:
            return False
        layout = ctx.layout
        if "balance" in layout:
            closes_row = layout.matches("balance", token)
        else:
            closes_row = layout.matches("debit", token) or layout.matches("credit", token)
        if closes_row:
            return ctx.lines_pending == 0
        if not ctx.format.continuation(token, ctx):
            return False

        date_bottom = ctx.date_bottom
        on_date_line = date_bottom is not None and is_approximately(token.bottom, date_bottom, line_tolerance)
        if layout.matches("description", token):
            if date_bottom is None or date_bottom - slack > token.bottom:
                ctx.lines_pending += 1
            elif not on_date_line or date_bottom + slack < token.bottom:
                ctx.lines_pending -= 1
        return (
            ctx.lines_pending == 0
            and not on_date_line
            and (following is None or following.top > token.bottom)
            and transaction.amount is not None
        )

    return predicate


@dataclass(frozen=True)
class StatementFormat:
    name: str
    account: AccountRule
    period: PeriodRule
    date_format: DateFormat = DD_MM_YYYY
    amount_format: AmountFormat = POINT_DECIMAL
    columns: ColumnLayout = field(default_factory=ColumnLayout)
    column_anchors: tuple[ColumnAnchor, ...] = ()
    table_anchor: Anchor | None = None
    opening_balance: BalanceAnchor | None = None
    opening_balance_after_table: bool = False
    closing_marker: Anchor | None = None
    closing_balance: BalanceAnchor | None = None
    row_mode: RowMode = RowMode.SEQUENTIAL
    row_cells: tuple[State, ...] = ()
    type_pattern: re.Pattern | None = None
    row_start: RowPredicate = date_at_column
    continuation: TokenPredicate = at_description_column
    row_end: RowPredicate | None = None
    page_end_markers: tuple[Anchor, ...] = ()
    section_markers: tuple[SectionMarker, ...] = ()
    table_header_every_page: bool = False
    recalibrate_each_page: bool = False
    signed_amounts: bool = False
    ignore_zero_amounts: bool = False
    require_date: bool = True
    balance_direction: BalanceDirection = BalanceDirection.ADD

    def __post_init__(self) -> None:
        if self.row_mode is RowMode.SEQUENTIAL:
            if State.AMOUNT not in self.row_cells:
                raise ValueError(f"{self.name}: sequential rows need an amount cell")
            unknown = set(self.row_cells) - ROW_CELLS
            if unknown:
                raise ValueError(f"{self.name}: not row cells: {sorted(s.value for s in unknown)}")
            if State.TRANSACTION_TYPE in self.row_cells and self.type_pattern is None:
                raise ValueError(f"{self.name}: transaction type cell needs type_pattern")
        if self.period.pattern is None and self.period.end_anchor is None:
            raise ValueError(f"{self.name}: period needs a pattern or an end anchor")
        if self.table_anchor is not None and self.column_anchors:
            raise ValueError(f"{self.name}: calibrated formats locate the table by their first column")
        if self.recalibrate_each_page and not self.column_anchors:
            raise ValueError(f"{self.name}: recalibration needs column anchors")
        if self.closing_marker is not None and self.closing_balance is None:
            raise ValueError(f"{self.name}: closing marker without closing balance")
        if self.row_end is not None and self.row_mode is not RowMode.COLUMNAR:
            raise ValueError(f"{self.name}: row end hooks need columnar rows")

    @property
    def calibrator(self) -> ColumnCalibrator | None:
        return ColumnCalibrator(self.column_anchors) if self.column_anchors else None

    def header_states(self) -> tuple[State, ...]:
        states = [State.SEARCH_ACCOUNT_NUMBER, State.SEARCH_STATEMENT_PERIOD]
        if self.period.end_anchor is not None:
            states.append(State.SEARCH_PERIOD_END)
        if self.opening_balance is not None and not self.opening_balance_after_table:
            states.append(State.SEARCH_OPENING_BALANCE)
        if self.table_anchor is not None or self.column_anchors:
            states.append(State.SCROLL_TO_TABLE)
        if self.opening_balance is not None and self.opening_balance_after_table:
            states.append(State.SEARCH_OPENING_BALANCE)
        states.append(State.SEARCH_TRANSACTION)
        return tuple(states)


_IBAN_LIKE = re.compile(r"^\w{2}\d{10,}$")
_DIGITS = re.compile(r"^\d{10,}$")
_DASHED = re.compile(r"^\d+-\d+-\d+-\d+$")
_THREE_LETTERS = re.compile(r"^\w{3}$")
_DMY = r"\d{2}/\d{2}/\d{4}"
_DMY_RANGE = re.compile(rf"(?P<from>{_DMY}) - (?P<to>{_DMY})")


BOC = StatementFormat(
    name="boc",
    account=AccountRule(Anchor("Account Number", left=380), _DIGITS),
    period=PeriodRule(
        Anchor("Statement Period:", prefix=True),
        re.compile(rf"Statement Period: (?P<from>{_DMY}) - (?P<to>{_DMY})"),
    ),
    table_anchor=Anchor("Balance", left=538),
    opening_balance=BalanceAnchor(Anchor("forward")),
    opening_balance_after_table=True,
    columns=ColumnLayout(
        {
            "date": Column(42),
            "description": Column(141),
            "debit": Column(411, Edge.RIGHT),
            "credit": Column(484, Edge.RIGHT),
        }
    ),
    row_start=date_then_value_date,
    row_cells=(State.VALUE_DATE, State.FIRST_DESCRIPTION, State.AMOUNT, State.BALANCE),
    page_end_markers=(Anchor("Continue on next Page"), Anchor("Total / Balance Carried Forward")),
    table_header_every_page=True,
)

REVOLUT = StatementFormat(
    name="revolut",
    account=AccountRule(Anchor("IBAN (SEPA)", left=406), _IBAN_LIKE),
    period=PeriodRule(
        Anchor("Transactions from ", prefix=True),
        re.compile(r"from (?P<from>\w{3} \d{1,2}, \d{4}) to (?P<to>\w{3} \d{1,2}, \d{4})"),
        widen=True,
    ),
    date_format=MON_D_YYYY,
    amount_format=AmountFormat(currency_prefix=True),
    table_anchor=Anchor("Balance", left=531),
    columns=ColumnLayout(
        {
            "date": Column(37.5),
            "description": Column(116),
            "debit": Column(453, Edge.RIGHT),
            "credit": Column(505, Edge.RIGHT),
        }
    ),
    row_cells=(State.TRANSACTION_TYPE, State.FIRST_DESCRIPTION, State.AMOUNT, State.BALANCE),
    type_pattern=_THREE_LETTERS,
    page_end_markers=(Anchor("© 2021 Revolut Payments UAB"),),
    section_markers=(
        SectionMarker(Anchor("Statement", left=471), SectionAction.RESCAN_HEADER, first_on_page=False),
    ),
    balance_direction=BalanceDirection.REVERSE,
)

HELLENIC = StatementFormat(
    name="hellenic",
    account=AccountRule(Anchor("ACCOUNT NO", left=272), _DASHED),
    period=PeriodRule(Anchor("STATEMENT PERIOD"), _DMY_RANGE, value_tokens=1),
    amount_format=COMMA_DECIMAL,
    opening_balance=BalanceAnchor(Anchor("BALANCE B/F")),
    table_anchor=Anchor("BALANCE"),
    columns=ColumnLayout(
        {
            "date": Column(30),
            "description": Column(88),
            "debit": Column(328, Edge.RIGHT),
            "credit": Column(401, Edge.RIGHT),
        }
    ),
    row_cells=(State.FIRST_DESCRIPTION, State.AMOUNT, State.VALUE_DATE, State.BALANCE),
    page_end_markers=(Anchor("TOTALS:", left=186),),
    table_header_every_page=True,
)

HELLENIC_ACTIVITY = StatementFormat(
    name="hellenic_activity",
    account=AccountRule(Anchor("ACCOUNT NO"), _DASHED),
    period=PeriodRule(Anchor("PERIOD"), re.compile(rf"^(?P<from>{_DMY}) - (?P<to>{_DMY})$"), value_tokens=3),
    amount_format=AmountFormat(decimal_separator=",", group_separators=".", signed=True),
    column_anchors=(
        ColumnAnchor("date", "DATE"),
        ColumnAnchor("description", "DESCRIPTION"),
        ColumnAnchor("debit", "DEBIT", Edge.RIGHT),
        ColumnAnchor("credit", "CREDIT", Edge.RIGHT),
        ColumnAnchor("value_date", "VALUE DATE"),
        ColumnAnchor("balance", "BALANCE", Edge.RIGHT, optional=True),
    ),
    row_mode=RowMode.COLUMNAR,
    continuation=description_band(),
    row_end=description_around_date(),
    page_end_markers=(Anchor("TOTALS:"),),
    table_header_every_page=True,
    recalibrate_each_page=True,
    signed_amounts=True,
)

EUROBANK = StatementFormat(
    name="eurobank",
    account=AccountRule(Anchor("IBAN Number / Αριθμός IBAN"), _IBAN_LIKE),
    period=PeriodRule(
        Anchor("Date From / Ημερομηνία Από"),
        end_anchor=Anchor("Date To / Ημερομηνία Μέχρι"),
    ),
    amount_format=AmountFormat(group_separators=", ", currency_prefix=True),
    opening_balance=BalanceAnchor(Anchor("Balance B/F / Υπόλοιπο Μεταφοράς")),
    columns=ColumnLayout(
        {
            "date": Column(40),
            "description": Column(113),
            "debit": Column(394, Edge.RIGHT),
            "credit": Column(478, Edge.RIGHT),
        }
    ),
    row_cells=(State.FIRST_DESCRIPTION, State.SKIP, State.AMOUNT, State.BALANCE),
    page_end_markers=(Anchor("info@eurobank.com.cy"), Anchor("Total Amounts / Συνολικά Ποσά")),
    section_markers=(SectionMarker(Anchor("ACCOUNT STATEMENT"), SectionAction.RESET_BALANCE),),
)

EUROBANK3 = StatementFormat(
    name="eurobank3",
    account=AccountRule(Anchor("Account:"), _DIGITS),
    period=PeriodRule(
        Anchor("Statement from ", prefix=True),
        re.compile(rf"^Statement from (?P<from>{_DMY}) to (?P<to>{_DMY})$"),
    ),
    amount_format=AmountFormat(decimal_separator=",", group_separators=".", signed=True, exact_cents=False),
    columns=ColumnLayout({"date": Column(38), "description": Column(112)}),
    row_cells=(State.FIRST_DESCRIPTION, State.SKIP, State.AMOUNT, State.BALANCE),
    section_markers=(SectionMarker(Anchor("Account Statement"), SectionAction.RESET_BALANCE),),
    signed_amounts=True,
    balance_direction=BalanceDirection.REVERSE,
)

FIBANK = StatementFormat(
    name="fibank",
    account=AccountRule(Anchor("Account", left=65), _IBAN_LIKE),
    period=PeriodRule(Anchor("Period:"), _DMY_RANGE, value_tokens=1),
    opening_balance=BalanceAnchor(Anchor("Opening balance:"), debit_credit_pair=True),
    table_anchor=Anchor("explanation", left=454),
    columns=ColumnLayout(
        {
            "date": Column(85, Edge.CENTER),
            "debit": Column(212, Edge.RIGHT),
            "credit": Column(275, Edge.RIGHT),
            "description": Column(284),
        }
    ),
    row_mode=RowMode.COLUMNAR,
    row_start=description_gap(12),
    closing_marker=Anchor("Total debits and"),
    closing_balance=BalanceAnchor(Anchor("Closing balance:"), debit_credit_pair=True),
    ignore_zero_amounts=True,
    balance_direction=BalanceDirection.NONE,
)

UNLIMINT = StatementFormat(
    name="unlimint",
    account=AccountRule(Anchor("Customer Account", left=406), re.compile(r"^\w{2}\d{2}( \d{4}){6}$")),
    period=PeriodRule(
        Anchor("Period", prefix=True),
        re.compile(r"(?P<from>\d{2}\.\d{2}\.\d{4}) - (?P<to>\d{2}\.\d{2}\.\d{4})"),
        widen=True,
    ),
    date_format=DD_MM_YYYY_DOTTED,
    amount_format=AmountFormat(group_separators=", "),
    column_anchors=(
        ColumnAnchor("date", "Value Date", adjacent=False),
        ColumnAnchor("description", "Payment Details", adjacent=False),
        ColumnAnchor("beneficiary", "Remitter / Beneficiary", adjacent=False),
        ColumnAnchor("debit", "Debit", Edge.RIGHT, adjacent=False),
        ColumnAnchor("credit", "Credit", Edge.RIGHT),
    ),
    row_cells=(State.FIRST_DESCRIPTION, State.AMOUNT),
    page_end_markers=(Anchor("Created ", column="date", prefix=True),),
    section_markers=(SectionMarker(Anchor("Customer Account"), SectionAction.NEW_STATEMENT),),
    balance_direction=BalanceDirection.NONE,
)


FORMATS: dict[str, StatementFormat] = {
    f.name: f
    for f in (BOC, REVOLUT, HELLENIC, HELLENIC_ACTIVITY, EUROBANK, EUROBANK3, FIBANK, UNLIMINT)
}

# Banks whose exports come in more than one layout, told apart by the first token.
_VARIANTS: dict[str, tuple[tuple[str, StatementFormat], ...]] = {
    "hellenic": (("ACCOUNT ACTIVITY", HELLENIC_ACTIVITY),),
}

BANKS: tuple[str, ...] = tuple(name for name in FORMATS if name != HELLENIC_ACTIVITY.name)


def get_format(name: str) -> StatementFormat:
    try:
        return FORMATS[name.lower()]
    except KeyError:
        raise ValueError(f"Unsupported bank {name!r}; expected one of: {', '.join(BANKS)}") from None


def resolve_format(name: str, document: Document) -> StatementFormat:
    """Pick the layout of *document* for the bank called *name*."""
    first = document.first_text
    for marker, variant in _VARIANTS.get(name.lower(), ()):
        if first == marker:
            return variant
    return get_format(name)
