"""Validation module for schedule data and generated schedules."""

from rotacal.validation.validator import (
    ScheduleValidator,
    ValidationIssue,
    ValidationIssueType,
    ValidationResult,
)

__all__ = [
    "ScheduleValidator",
    "ValidationIssue",
    "ValidationIssueType",
    "ValidationResult",
]
