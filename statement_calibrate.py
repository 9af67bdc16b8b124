from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Sequence

from statement_errors import FormatMismatchError
from statement_models import (
    DEFAULT_TOLERANCE,
    Column,
    ColumnLayout,
    Edge,
    PositionedToken,
    edge_coordinate,
)


@dataclass(frozen=True)
class ColumnAnchor:
    """A table header label whose position defines a column."""

    name: str
    label: str
    edge: Edge = Edge.LEFT
    optional: bool = False
    adjacent: bool = True
    tolerance: float = DEFAULT_TOLERANCE


class ColumnCalibrator:
    """Record column coordinates from a header row printed in a fixed order."""

    def __init__(self, anchors: Sequence[ColumnAnchor]):
        if not anchors:
            raise ValueError("at least one column anchor is required")
        if anchors[0].optional:
            raise ValueError("the first column anchor cannot be optional")
        self.anchors = tuple(anchors)

    def is_header_start(self, token: PositionedToken, previous: ColumnLayout | None = None) -> bool:
        first = self.anchors[0]
        if token.text != first.label:
            return False
        if previous is None or first.name not in previous:
            return True
        return previous[first.name].matches(token)

    def calibrate(
        self,
        tokens: Sequence[PositionedToken],
        start: int,
        previous: ColumnLayout | None = None,
        state: Any = None,
    ) -> tuple[ColumnLayout, int]:
        """Read the header beginning at ``tokens[start]``.

        Returns the calibrated layout and the index of the last header token.
        When *previous* is given every re-located column must sit where it
        was before; the previous coordinates are kept in that case.
        """
        first = self.anchors[0]
        if start >= len(tokens) or tokens[start].text != first.label:
            text = tokens[start].text if start < len(tokens) else None
            raise FormatMismatchError(f"Expected header {first.label!r}", state=state, text=text)

        columns: dict[str, Column] = {}
        position = start
        self._record(columns, first, tokens[start], previous, state)

        for n, anchor in enumerate(self.anchors[1:], start=1):
            later = {a.label for a in self.anchors[n + 1:]}
            found = self._locate(tokens, position + 1, anchor, later, state)
            if found is None:
                continue
            self._record(columns, anchor, tokens[found], previous, state)
            position = found

        return ColumnLayout(columns), position

    def _locate(
        self,
        tokens: Sequence[PositionedToken],
        start: int,
        anchor: ColumnAnchor,
        later: set[str],
        state: Any,
    ) -> int | None:
        if anchor.adjacent:
            if start < len(tokens) and tokens[start].text == anchor.label:
                return start
            if anchor.optional:
                return None
            text = tokens[start].text if start < len(tokens) else None
            raise FormatMismatchError(
                f"Expected {anchor.label!r} column, but found {text!r}", state=state, text=text
            )

        for i in range(start, len(tokens)):
            text = tokens[i].text
            if text == anchor.label:
                return i
            if text in later:
                raise FormatMismatchError(
                    f"Header {text!r} found before {anchor.label!r}", state=state, text=text
                )
        if anchor.optional:
            return None
        raise FormatMismatchError(f"Header {anchor.label!r} not found", state=state)

    @staticmethod
    def _record(
        columns: dict[str, Column],
        anchor: ColumnAnchor,
        token: PositionedToken,
        previous: ColumnLayout | None,
        state: Any,
    ) -> None:
        if previous is not None and anchor.name in previous:
            known = previous[anchor.name]
            if not known.matches(token):
                raise FormatMismatchError(
                    f"Column {anchor.name!r} moved from {known.x} to {known.coordinate(token)}",
                    state=state,
                    text=token.text,
                )
            columns[anchor.name] = known
            return
        columns[anchor.name] = Column(
            x=edge_coordinate(token, anchor.edge), edge=anchor.edge, tolerance=anchor.tolerance
        )
