"""Error types raised by the score sheet engine."""

from dataclasses import dataclass


class ScoreSheetError(Exception):
    """Base class for score sheet errors."""


@dataclass(frozen=True)
class Violation:
    """A single violated constraint on a template or edit."""

    path: str
    message: str

    def __str__(self) -> str:
        return f"{self.path}: {self.message}"


class ValidationError(ScoreSheetError):
    """Raised when a write violates one or more constraints."""

    def __init__(self, violations: list[Violation]) -> None:
        self.violations = list(violations)
        super().__init__("; ".join(str(violation) for violation in self.violations))


class EvaluationError(ScoreSheetError):
    """Raised when a rule expression cannot be evaluated."""


class ExpressionSyntaxError(EvaluationError):
    """Raised when a rule expression cannot be parsed."""

    def __init__(self, message: str, position: int) -> None:
        self.position = position
        super().__init__(f"{message} at position {position}")


class StateError(ScoreSheetError):
    """Raised when an operation is not allowed in the session's state."""


class MissingReferenceError(ScoreSheetError):
    """Raised when an id does not resolve to a known template, session or field."""
