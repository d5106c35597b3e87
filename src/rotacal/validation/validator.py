"""Validation module for schedule data.

This module is the single place where set-level rules on rules,
assignments and exceptions are checked. Construction-time checks live on
the models themselves; everything that needs to look at more than one
record lives here.
"""

from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date, timedelta
from enum import Enum
from typing import Iterable, Optional

from rotacal.domain.models import (
    ApprovalStatus,
    ExceptionKind,
    RecurrenceRule,
    ScheduleAssignment,
    ShiftCode,
    ShiftException,
    WorkScheduleDay,
)
from rotacal.domain.policies import DefaultExceptionPolicy, ExceptionPolicy


class ValidationIssueType(Enum):
    """Types of validation issues."""

    INCONSISTENT_SHIFT_DEFINITION = "inconsistent_shift_definition"
    ASSIGNMENT_OVERLAP = "assignment_overlap"
    UNKNOWN_RULE = "unknown_rule"
    DUPLICATE_EXCEPTION_ID = "duplicate_exception_id"
    DUPLICATE_REMOVE = "duplicate_remove"
    DUPLICATE_OVERRIDE = "duplicate_override"
    TOO_MANY_ADDS = "too_many_adds"
    DUPLICATE_DAY = "duplicate_day"
    MISSING_DAY = "missing_day"


@dataclass
class ValidationIssue:
    """A single validation issue."""

    issue_type: ValidationIssueType
    message: str
    subject_id: Optional[str] = None
    on_date: Optional[date] = None
    details: dict = field(default_factory=dict)

    def __str__(self) -> str:
        parts = [f"[{self.issue_type.value}]"]
        if self.subject_id:
            parts.append(f"Subject {self.subject_id}:")
        parts.append(self.message)
        if self.on_date is not None:
            parts.append(f"({self.on_date.isoformat()})")
        return " ".join(parts)


@dataclass
class ValidationResult:
    """Result of a validation run."""

    is_valid: bool = True
    issues: list[ValidationIssue] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    def add_issue(self, issue: ValidationIssue) -> None:
        """Add an issue and mark as invalid."""
        self.issues.append(issue)
        self.is_valid = False

    def add_warning(self, warning: str) -> None:
        """Add a warning (doesn't affect validity)."""
        self.warnings.append(warning)

    def summary(self) -> str:
        return "; ".join(str(issue) for issue in self.issues)


def find_overlaps(
    assignments: Iterable[ScheduleAssignment],
) -> list[tuple[ScheduleAssignment, ScheduleAssignment]]:
    """Get every pair of live assignments of the same subject that overlap."""
    by_subject: dict[str, list[ScheduleAssignment]] = defaultdict(list)
    for assignment in assignments:
        if assignment.is_live:
            by_subject[assignment.subject_id].append(assignment)

    overlaps = []
    for items in by_subject.values():
        items.sort(key=lambda a: (a.start_date, a.id))
        for i, first in enumerate(items):
            for second in items[i + 1 :]:
                if first.overlaps(second):
                    overlaps.append((first, second))
    return overlaps


# Requests in these states are dead and never block new exceptions.
_CLOSED_STATES = frozenset({ApprovalStatus.REJECTED, ApprovalStatus.CANCELLED})


class ScheduleValidator:
    """Validates schedule data against set-level constraints.

    Example:
        >>> validator = ScheduleValidator()
        >>> result = validator.validate_exceptions(exceptions)
        >>> if not result.is_valid:
        ...     for issue in result.issues:
        ...         print(issue)
    """

    def __init__(self, policy: Optional[ExceptionPolicy] = None):
        self.policy = policy or DefaultExceptionPolicy()

    def validate_rule(self, rule: RecurrenceRule) -> ValidationResult:
        """Check a rule beyond its construction invariants.

        A shift id used with two different definitions in the same cycle is
        an issue; a cycle with no working day is only a warning.
        """
        result = ValidationResult()

        seen: dict[str, ShiftCode] = {}
        for index, entry in enumerate(rule.cycle_shifts):
            if not isinstance(entry, ShiftCode):
                continue
            known = seen.setdefault(entry.id, entry)
            if known != entry:
                result.add_issue(
                    ValidationIssue(
                        issue_type=ValidationIssueType.INCONSISTENT_SHIFT_DEFINITION,
                        message=(
                            f"Rule {rule.id} uses shift {entry.id} with two "
                            f"definitions (cycle day {index})"
                        ),
                        details={"rule_id": rule.id, "cycle_index": index},
                    )
                )

        if rule.work_days == 0:
            result.add_warning(f"Rule {rule.id} has no working days")

        return result

    def validate_assignments(
        self,
        assignments: Iterable[ScheduleAssignment],
        known_rule_ids: Optional[set[str]] = None,
    ) -> ValidationResult:
        """Check live assignments for overlaps and dangling rule references.

        Args:
            assignments: Assignments of one or more subjects.
            known_rule_ids: If given, ids every ``rule_id`` must belong to.
        """
        result = ValidationResult()
        assignments = list(assignments)

        for first, second in find_overlaps(assignments):
            result.add_issue(
                ValidationIssue(
                    issue_type=ValidationIssueType.ASSIGNMENT_OVERLAP,
                    message=f"Assignments {first.id} and {second.id} overlap",
                    subject_id=first.subject_id,
                    on_date=max(first.start_date, second.start_date),
                )
            )

        if known_rule_ids is not None:
            for assignment in assignments:
                if assignment.rule_id and assignment.rule_id not in known_rule_ids:
                    result.add_issue(
                        ValidationIssue(
                            issue_type=ValidationIssueType.UNKNOWN_RULE,
                            message=(
                                f"Assignment {assignment.id} references unknown "
                                f"rule {assignment.rule_id}"
                            ),
                            subject_id=assignment.subject_id,
                        )
                    )

        return result

    def validate_exceptions(
        self, exceptions: Iterable[ShiftException]
    ) -> ValidationResult:
        """Check the exceptions of one or more subjects and dates.

        For each (subject, date) among live, open requests: at most one
        REMOVE, at most one OVERRIDE and at most the policy's number of ADDs.
        """
        result = ValidationResult()
        groups: dict[tuple[str, date], list[ShiftException]] = defaultdict(list)
        seen_ids: set[str] = set()

        for exception in exceptions:
            if exception.id in seen_ids:
                result.add_issue(
                    ValidationIssue(
                        issue_type=ValidationIssueType.DUPLICATE_EXCEPTION_ID,
                        message=f"Exception id {exception.id} is used twice",
                        subject_id=exception.subject_id,
                        on_date=exception.target_date,
                    )
                )
            seen_ids.add(exception.id)

            if exception.is_live and exception.approval not in _CLOSED_STATES:
                groups[(exception.subject_id, exception.target_date)].append(
                    exception
                )

        max_adds = self.policy.max_added_shifts()
        for (subject_id, on_date), items in sorted(groups.items()):
            counts = defaultdict(int)
            for exception in items:
                counts[exception.kind] += 1

            if counts[ExceptionKind.REMOVE] > 1:
                result.add_issue(
                    ValidationIssue(
                        issue_type=ValidationIssueType.DUPLICATE_REMOVE,
                        message="REMOVE applied more than once",
                        subject_id=subject_id,
                        on_date=on_date,
                    )
                )
            if counts[ExceptionKind.OVERRIDE] > 1:
                result.add_issue(
                    ValidationIssue(
                        issue_type=ValidationIssueType.DUPLICATE_OVERRIDE,
                        message="OVERRIDE applied more than once",
                        subject_id=subject_id,
                        on_date=on_date,
                    )
                )
            if counts[ExceptionKind.ADD] > max_adds:
                result.add_issue(
                    ValidationIssue(
                        issue_type=ValidationIssueType.TOO_MANY_ADDS,
                        message=(
                            f"{counts[ExceptionKind.ADD]} added shifts exceed the "
                            f"maximum of {max_adds}"
                        ),
                        subject_id=subject_id,
                        on_date=on_date,
                    )
                )
            if counts[ExceptionKind.REMOVE] and counts[ExceptionKind.OVERRIDE]:
                result.add_warning(
                    f"Subject {subject_id} on {on_date.isoformat()}: REMOVE is "
                    f"redundant next to OVERRIDE"
                )

        return result

    def validate_schedule(
        self,
        days: list[WorkScheduleDay],
        start: date,
        end: date,
    ) -> ValidationResult:
        """Check generated output covers the range exactly once per day.

        Conflict annotations and error days are reported as warnings.
        """
        result = ValidationResult()
        by_date: dict[date, int] = defaultdict(int)
        for day in days:
            by_date[day.schedule_date] += 1

        for i in range((end - start).days + 1):
            current = start + timedelta(days=i)
            if by_date[current] == 0:
                result.add_issue(
                    ValidationIssue(
                        issue_type=ValidationIssueType.MISSING_DAY,
                        message="No generated day",
                        on_date=current,
                    )
                )
            elif by_date[current] > 1:
                result.add_issue(
                    ValidationIssue(
                        issue_type=ValidationIssueType.DUPLICATE_DAY,
                        message=f"{by_date[current]} generated days",
                        on_date=current,
                    )
                )

        for day in days:
            for conflict in day.conflicts:
                result.add_warning(
                    f"{day.schedule_date.isoformat()} {conflict.severity.name}: "
                    f"{conflict.message}"
                )
            if day.is_error:
                result.add_warning(
                    f"{day.schedule_date.isoformat()} ERROR: {day.error}"
                )

        return result
