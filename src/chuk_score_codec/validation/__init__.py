"""
Score validation - the invariant checks shared by encoder and decoder.
"""

from chuk_score_codec.validation.validator import (
    ScoreLocation,
    ScoreValidator,
    ValidationIssue,
    ValidationResult,
    ValidationSeverity,
    validate_score,
)

__all__ = [
    "ScoreLocation",
    "ScoreValidator",
    "ValidationIssue",
    "ValidationResult",
    "ValidationSeverity",
    "validate_score",
]
