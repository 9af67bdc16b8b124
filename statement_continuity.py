from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta
from enum import Enum
from typing import Iterable, Sequence

from statement_models import Statement

_DATE_FORMAT = "%d/%m/%Y"


class ContinuityKind(Enum):
    DUPLICATE = "duplicate"
    GAP = "gap"
    OVERLAP = "overlap"


@dataclass(frozen=True)
class ContinuityIssue:
    """Advisory finding about two consecutive statements of one account."""

    kind: ContinuityKind
    account_number: str
    first: tuple[date, date]
    second: tuple[date, date]

    @property
    def message(self) -> str:
        prefix = f"Account {self.account_number}: "
        if self.kind is ContinuityKind.DUPLICATE:
            return prefix + f"duplicating statements: {_span(*self.first)}"
        if self.kind is ContinuityKind.GAP:
            return prefix + f"gap between statements: {_span(self.first[1], self.second[0])}"
        return prefix + f"overlapping statements: {_span(*self.first)} and {_span(*self.second)}"


def _span(start: date, end: date) -> str:
    return f"[{start.strftime(_DATE_FORMAT)} - {end.strftime(_DATE_FORMAT)}]"


def classify(first: Statement, second: Statement) -> ContinuityKind | None:
    """Relation between *first* and the statement that follows it; None when adjacent."""
    if first.from_date == second.from_date and first.to_date == second.to_date:
        return ContinuityKind.DUPLICATE
    if first.to_date + timedelta(days=1) < second.from_date:
        return ContinuityKind.GAP
    if first.to_date >= second.from_date:
        return ContinuityKind.OVERLAP
    return None


def find_continuity_issues(statements: Sequence[Statement]) -> list[ContinuityIssue]:
    """Compare each pair of consecutive statements of a single account."""
    ordered = sorted(statements, key=lambda s: s.from_date)
    issues: list[ContinuityIssue] = []
    for first, second in zip(ordered, ordered[1:]):
        kind = classify(first, second)
        if kind is not None:
            issues.append(
                ContinuityIssue(
                    kind=kind,
                    account_number=first.account_number,
                    first=(first.from_date, first.to_date),
                    second=(second.from_date, second.to_date),
                )
            )
    return issues


def group_by_account(statements: Iterable[Statement]) -> dict[str, list[Statement]]:
    """Statements per account in first-seen order, each list sorted by start date."""
    groups: dict[str, list[Statement]] = {}
    for statement in statements:
        groups.setdefault(statement.account_number, []).append(statement)
    return {account: sorted(group, key=lambda s: s.from_date) for account, group in groups.items()}


def validate_continuity(statements: Iterable[Statement]) -> dict[str, list[ContinuityIssue]]:
    return {
        account: find_continuity_issues(group)
        for account, group in group_by_account(statements).items()
    }
