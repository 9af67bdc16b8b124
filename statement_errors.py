"""
Exceptions raised while turning statement documents into transactions.

Every error carries a stable error code and a ``details`` mapping so callers
can branch on the kind of failure and report the offending text, state and
coordinates without parsing messages.
"""
from __future__ import annotations

from decimal import Decimal
from typing import Any


def _state_name(state: Any) -> str | None:
    if state is None:
        return None
    return getattr(state, "value", str(state))


class StatementParserError(Exception):
    """
    Base exception for all parser errors.

    Attributes:
        error_code: Unique error code (e.g., BSP-200)
        message: Human-readable error message
        details: Additional error context
    """
    error_code: str = "BSP-000"

    def __init__(self, message: str = "Statement parsing failed", details: dict[str, Any] | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)

    @property
    def path(self) -> str | None:
        return self.details.get("path")

    def __str__(self) -> str:
        if self.path:
            return f"{self.path}: {self.message}"
        return self.message

    def to_dict(self) -> dict[str, Any]:
        return {
            "error_code": self.error_code,
            "message": self.message,
            "details": self.details,
        }


class NoFilesFoundError(StatementParserError):
    """The batch input path matched no statement files."""
    error_code = "BSP-100"

    def __init__(self, path: str):
        super().__init__(f"No PDF files found in {path}", details={"path": str(path)})


class FormatMismatchError(StatementParserError):
    """An expected anchor or header was missing or out of order."""
    error_code = "BSP-200"

    def __init__(self, message: str, state: Any = None, text: str | None = None, **details: Any):
        details["state"] = _state_name(state)
        if text is not None:
            details["text"] = text
        super().__init__(message, details=details)


class MalformedValueError(StatementParserError):
    """A token expected to hold a date, amount or account number failed to parse."""
    error_code = "BSP-300"

    def __init__(self, text: str | None, expected: str, state: Any = None):
        self.text = text
        self.expected = expected
        super().__init__(
            f"Expected {expected} but got {text!r}",
            details={"text": text, "expected": expected, "state": _state_name(state)},
        )


class UnexpectedAmountPositionError(StatementParserError):
    """An amount was found that is not aligned with any amount column."""
    error_code = "BSP-400"

    def __init__(self, text: str, position: float, state: Any = None):
        self.text = text
        self.position = position
        super().__init__(
            f"Found amount {text!r} at unexpected location: {position}",
            details={"text": text, "position": position, "state": _state_name(state)},
        )


class InvariantViolationError(StatementParserError):
    """The extraction reached a state its own rules forbid."""
    error_code = "BSP-500"

    def __init__(self, message: str, state: Any = None):
        super().__init__(message, details={"state": _state_name(state)})


class BalanceMismatchError(StatementParserError):
    """A stated balance disagrees with the running balance."""
    error_code = "BSP-600"

    def __init__(self, expected: Decimal, actual: Decimal, state: Any = None):
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Balance was expected to be {expected} but was {actual}",
            details={"expected": str(expected), "actual": str(actual), "state": _state_name(state)},
        )
