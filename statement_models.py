from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum

DEFAULT_TOLERANCE = 5.0


def is_approximately(a: float, b: float, tolerance: float = DEFAULT_TOLERANCE) -> bool:
    """True when *a* lies strictly within *tolerance* of *b*."""
    return b - tolerance < a < b + tolerance


@dataclass(frozen=True)
class PositionedToken:
    """A run of text on a rendered page together with its bounding box."""

    text: str
    left: float
    right: float
    top: float
    bottom: float
    page_index: int = 0

    @property
    def width(self) -> float:
        return self.right - self.left

    @property
    def horizontal_center(self) -> float:
        return self.left + self.width / 2


@dataclass(frozen=True)
class Page:
    """Tokens of one page in reading order."""

    number: int
    tokens: tuple[PositionedToken, ...] = ()

    @property
    def first_text(self) -> str | None:
        return self.tokens[0].text if self.tokens else None


@dataclass(frozen=True)
class Document:
    pages: tuple[Page, ...] = ()
    source: str | None = None

    @property
    def first_text(self) -> str | None:
        return self.pages[0].first_text if self.pages else None


class Edge(Enum):
    LEFT = "left"
    RIGHT = "right"
    CENTER = "center"


def edge_coordinate(token: PositionedToken, edge: Edge) -> float:
    if edge is Edge.RIGHT:
        return token.right
    if edge is Edge.CENTER:
        return token.horizontal_center
    return token.left


@dataclass(frozen=True)
class Column:
    """A table column pinned to one edge of the tokens printed in it."""

    x: float
    edge: Edge = Edge.LEFT
    tolerance: float = DEFAULT_TOLERANCE

    def coordinate(self, token: PositionedToken) -> float:
        return edge_coordinate(token, self.edge)

    def matches(self, token: PositionedToken) -> bool:
        return is_approximately(self.coordinate(token), self.x, self.tolerance)


@dataclass(frozen=True)
class ColumnLayout:
    columns: dict[str, Column] = field(default_factory=dict)

    def __contains__(self, name: str) -> bool:
        return name in self.columns

    def __getitem__(self, name: str) -> Column:
        return self.columns[name]

    def matches(self, name: str, token: PositionedToken) -> bool:
        column = self.columns.get(name)
        return column is not None and column.matches(token)


@dataclass
class Transaction:
    date: date | None = None
    description: str = ""
    amount: Decimal | None = None

    def append_description(self, text: str) -> None:
        text = text.strip()
        if not text:
            return
        self.description = f"{self.description} {text}" if self.description else text

    def is_empty(self) -> bool:
        return self.date is None and not self.description and self.amount is None


@dataclass
class Statement:
    account_number: str | None = None
    from_date: date | None = None
    to_date: date | None = None
    transactions: list[Transaction] = field(default_factory=list)

    def is_blank(self) -> bool:
        return (
            self.account_number is None
            and self.from_date is None
            and self.to_date is None
            and not self.transactions
        )
