"""
Codec error taxonomy.

Every failure aborts exactly one composition's transformation and is
raised as one of these types. Nothing here is retried or repaired.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from chuk_score_codec.constants import ErrorMessages

if TYPE_CHECKING:
    from chuk_score_codec.validation.validator import ValidationIssue


class CodecError(Exception):
    """Base class for all codec failures."""


class InvalidScore(CodecError):
    """The Score violates the model invariants; nothing was encoded."""

    def __init__(self, issues: list[ValidationIssue]) -> None:
        self.issues = list(issues)
        first = str(self.issues[0]) if self.issues else "unknown"
        super().__init__(
            ErrorMessages.INVALID_SCORE.format(count=len(self.issues), first=first)
        )


class BudgetExceeded(CodecError):
    """Even the maximal reduction does not fit the requested budget."""

    def __init__(self, budget: int, required: int) -> None:
        self.budget = budget
        self.required = required
        super().__init__(ErrorMessages.BUDGET_EXCEEDED.format(budget=budget, required=required))


class DecodeError(CodecError):
    """A token stream could not be decoded."""

    def __init__(self, message: str, offset: int, state: str) -> None:
        self.offset = offset
        self.state = state
        super().__init__(f"{message} (offset {offset}, state {state})")


class GrammarViolation(DecodeError):
    """An opcode or operand is illegal in the decoder's current state."""


class TruncatedStream(GrammarViolation):
    """The buffer ended before the END opcode."""


class ConsistencyCheckFailed(DecodeError):
    """The stream parsed but the rebuilt Score fails validation."""

    def __init__(self, issues: list[ValidationIssue], offset: int, state: str) -> None:
        self.issues = list(issues)
        first = str(self.issues[0]) if self.issues else "unknown"
        super().__init__(f"Decoded score is inconsistent: {first}", offset, state)


class ParseError(CodecError):
    """MusicXML text could not be parsed or is structurally unsupported."""

    def __init__(self, message: str, line: int | None = None) -> None:
        self.line = line
        location = f" (line {line})" if line is not None else ""
        super().__init__(f"{message}{location}")
