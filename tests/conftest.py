"""Shared fixtures: synthetic token documents, no PDF files needed."""

from __future__ import annotations

import pytest

from statement_models import Document, Page, PositionedToken

_CHAR_WIDTH = 5.0
_LINE_HEIGHT = 10.0


class DocumentBuilder:
    """Build a ``Document`` token by token in reading order.

    Tokens default to one line each, a fixed glyph width and a left edge of
    zero. Give ``right`` alone to right-align a token.
    """

    def __init__(self) -> None:
        self._pages: list[list[PositionedToken]] = []
        self._top = 0.0
        self.page()

    def page(self) -> "DocumentBuilder":
        self._pages.append([])
        self._top = 0.0
        return self

    def next_line(self, gap: float = 12.0) -> float:
        """Top coordinate of a fresh line for tokens that share one row."""
        self._top += gap
        return self._top

    def add(
        self,
        text: str,
        left: float | None = None,
        right: float | None = None,
        top: float | None = None,
        height: float = 8.0,
    ) -> "DocumentBuilder":
        width = max(len(text), 1) * _CHAR_WIDTH
        if left is None and right is None:
            left = 0.0
        if left is None:
            left = right - width
        if right is None:
            right = left + width
        if top is None:
            self._top += _LINE_HEIGHT
            top = self._top
        else:
            self._top = top
        index = len(self._pages) - 1
        self._pages[-1].append(
            PositionedToken(text=text, left=left, right=right, top=top, bottom=top + height, page_index=index)
        )
        return self

    def build(self, source: str | None = None) -> Document:
        return Document(
            pages=tuple(Page(number=i, tokens=tuple(tokens)) for i, tokens in enumerate(self._pages)),
            source=source,
        )


@pytest.fixture
def builder() -> DocumentBuilder:
    return DocumentBuilder()


def token(text: str, left: float = 0.0, right: float | None = None, top: float = 0.0) -> PositionedToken:
    return PositionedToken(
        text=text,
        left=left,
        right=right if right is not None else left + len(text) * _CHAR_WIDTH,
        top=top,
        bottom=top + 8.0,
    )


@pytest.fixture
def make_token():
    return token


@pytest.fixture
def boc_document():
    """A one-row Bank of Cyprus statement: COFFEE SHOP, -5.00."""
    b = DocumentBuilder()
    b.add("Account Number", left=380).add("3512345678", left=460)
    b.add("Statement Period: 01/11/2018 - 30/11/2018")
    b.add("Balance", left=538)
    b.add("forward", left=300).add("100.00", right=560)
    top = b.next_line()
    for text, left, right in [
        ("05/11/2018", 42, None), ("05/11/2018", 90, None), ("COFFEE SHOP", 141, None),
        ("5.00", None, 411), ("95.00", None, 560),
    ]:
        b.add(text, left=left, right=right, top=top)
    return b.build()
