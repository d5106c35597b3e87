"""Schedule generation engine.

This module provides the SchedulingEngine that turns assignments, rules
and exceptions read from a repository into one WorkScheduleDay per date.
"""

import logging
from collections import defaultdict
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Iterator, Optional

from rotacal.domain.errors import InvalidRangeError, RepositoryError
from rotacal.domain.models import (
    DayStatus,
    RecurrenceRule,
    ScheduleAssignment,
    ScheduleStats,
    ShiftException,
    WorkScheduleDay,
)
from rotacal.domain.policies import DefaultExceptionPolicy, ExceptionPolicy
from rotacal.repository.base import WorkScheduleRepository
from rotacal.scheduling.assignments import AssignmentResolver, validate_non_overlapping
from rotacal.scheduling.exceptions import ExceptionResolver
from rotacal.scheduling.recurrence import RecurrenceCalculator
from rotacal.validation.validator import ScheduleValidator

logger = logging.getLogger(__name__)


@dataclass
class EngineConfig:
    """Configuration for the scheduling engine.

    Attributes:
        max_range_days: Longest range accepted by one call (about ten years).
        detect_category_conflicts: Annotate days whose exception reasons
            cannot coexist.
    """

    max_range_days: int = 3660
    detect_category_conflicts: bool = True

    def __post_init__(self):
        if self.max_range_days < 1:
            raise ValueError("max_range_days must be at least 1")


def date_range(start: date, end: date) -> Iterator[date]:
    """Yield every date of an inclusive range."""
    for i in range((end - start).days + 1):
        yield start + timedelta(days=i)


class SchedulingEngine:
    """Generates effective work schedules.

    The engine is stateless: every call reads what it needs from the
    repository with a fixed number of range queries (assignments, exceptions
    and one lookup per distinct rule) and computes the result in memory.
    Calling it twice on unchanged data yields equal output.

    Example:
        >>> engine = SchedulingEngine(repository)
        >>> days = engine.generate_schedule("team-A", date(2024, 1, 1), date(2024, 1, 31))
        >>> days[0].status
        <DayStatus.SCHEDULED: 'scheduled'>
    """

    def __init__(
        self,
        repository: WorkScheduleRepository,
        config: Optional[EngineConfig] = None,
        policy: Optional[ExceptionPolicy] = None,
    ):
        """Initialize engine with its repository and policies.

        Args:
            repository: Source of assignments, exceptions and rules.
            config: Engine limits and switches.
            policy: Decides which exceptions apply and bounds ADD stacking.
        """
        self.repository = repository
        self.config = config or EngineConfig()
        self.policy = policy or DefaultExceptionPolicy()

        self.calculator = RecurrenceCalculator()
        self.resolver = ExceptionResolver(
            detect_category_conflicts=self.config.detect_category_conflicts
        )
        self.validator = ScheduleValidator(policy=self.policy)

    def generate_schedule(
        self,
        subject_id: str,
        start: date,
        end: date,
    ) -> list[WorkScheduleDay]:
        """Generate the schedule of a subject for an inclusive range.

        Args:
            subject_id: Team or user.
            start: First date.
            end: Last date.

        Returns:
            One WorkScheduleDay per date, in date order.

        Raises:
            InvalidRangeError: If the range is inverted or too long.
            AssignmentConflictError: If live assignments overlap.
        """
        self.check_range(start, end)
        dates = list(date_range(start, end))

        try:
            assignments = self.repository.get_active_assignments(
                subject_id, start, end
            )
        except RepositoryError as e:
            logger.warning(
                "Assignments for %s unavailable (%s to %s): %s",
                subject_id,
                start,
                end,
                e,
            )
            return self._error_days(dates, subject_id, f"Assignments unavailable: {e}")

        assignment_resolver = AssignmentResolver(assignments)
        subject_assignments = assignment_resolver.assignments_for(subject_id)
        validate_non_overlapping(subject_assignments)

        try:
            exceptions = self.repository.get_exceptions(subject_id, start, end)
        except RepositoryError as e:
            logger.warning(
                "Exceptions for %s unavailable (%s to %s): %s",
                subject_id,
                start,
                end,
                e,
            )
            return self._error_days(dates, subject_id, f"Exceptions unavailable: {e}")

        rules, rule_errors = self._load_rules(subject_assignments)
        by_date = self._group_exceptions(subject_id, exceptions, start, end)

        days = [
            self._resolve_day(
                subject_id,
                d,
                assignment_resolver,
                rules,
                rule_errors,
                by_date.get(d, []),
            )
            for d in dates
        ]

        logger.debug(
            "Generated %d days for %s (%d assignments, %d exceptions, %d rules)",
            len(days),
            subject_id,
            len(subject_assignments),
            len(exceptions),
            len(rules),
        )
        return days

    def generate_for_single_date(self, subject_id: str, d: date) -> WorkScheduleDay:
        """Generate the schedule of a subject for one date."""
        return self.generate_schedule(subject_id, d, d)[0]

    def generate_team_schedule(
        self,
        subject_ids: list[str],
        start: date,
        end: date,
    ) -> dict[str, list[WorkScheduleDay]]:
        """Generate schedules for several subjects over the same range.

        Returns:
            Mapping of subject id to its days, in the order given.
        """
        self.check_range(start, end)
        return {
            subject_id: self.generate_schedule(subject_id, start, end)
            for subject_id in subject_ids
        }

    def working_subjects(self, subject_ids: list[str], d: date) -> list[str]:
        """Get the subjects with at least one working shift on a date.

        Returns:
            Subject ids in the order given.
        """
        return [
            subject_id
            for subject_id in subject_ids
            if self.generate_for_single_date(subject_id, d).is_working_day
        ]

    def subjects_off(self, subject_ids: list[str], d: date) -> list[str]:
        """Get the subjects not working on a date.

        Rest and unscheduled days count as off. Subjects whose day could not
        be resolved are left out of both this list and working_subjects.
        """
        off = []
        for subject_id in subject_ids:
            day = self.generate_for_single_date(subject_id, d)
            if not day.is_working_day and not day.is_error:
                off.append(subject_id)
        return off

    def schedule_stats(self, subject_id: str, start: date, end: date) -> ScheduleStats:
        """Generate a range and summarize it."""
        return ScheduleStats.calculate(self.generate_schedule(subject_id, start, end))

    def check_range(self, start: date, end: date) -> None:
        if start > end:
            raise InvalidRangeError(
                f"Start date {start.isoformat()} is after end date {end.isoformat()}"
            )
        span = (end - start).days + 1
        if span > self.config.max_range_days:
            raise InvalidRangeError(
                f"Range of {span} days exceeds the maximum of "
                f"{self.config.max_range_days}"
            )

    def _load_rules(
        self, assignments: tuple[ScheduleAssignment, ...]
    ) -> tuple[dict[str, RecurrenceRule], dict[str, str]]:
        """Fetch each referenced rule once.

        Returns:
            Tuple of (rules by id, error message by rule id that failed).
        """
        rules: dict[str, RecurrenceRule] = {}
        errors: dict[str, str] = {}

        for assignment in assignments:
            if assignment.custom_rule is not None:
                continue
            rule_id = assignment.rule_id
            if rule_id in rules or rule_id in errors:
                continue
            try:
                rules[rule_id] = self.repository.get_rule(rule_id)
            except RepositoryError as e:
                logger.warning("Rule %s unavailable: %s", rule_id, e)
                errors[rule_id] = str(e)

        return rules, errors

    def _group_exceptions(
        self,
        subject_id: str,
        exceptions: list[ShiftException],
        start: date,
        end: date,
    ) -> dict[date, list[ShiftException]]:
        by_date: dict[date, list[ShiftException]] = defaultdict(list)
        skipped = 0
        for exception in exceptions:
            if exception.subject_id != subject_id:
                continue
            if not start <= exception.target_date <= end:
                continue
            if not self.policy.is_applicable(exception):
                skipped += 1
                continue
            by_date[exception.target_date].append(exception)

        if skipped:
            logger.debug("Skipped %d non-applicable exceptions for %s", skipped, subject_id)
        return by_date

    def _resolve_day(
        self,
        subject_id: str,
        d: date,
        assignment_resolver: AssignmentResolver,
        rules: dict[str, RecurrenceRule],
        rule_errors: dict[str, str],
        exceptions: list[ShiftException],
    ) -> WorkScheduleDay:
        assignment = assignment_resolver.find_active_assignment(subject_id, d)

        base = None
        cycle_index = None
        assignment_id = None
        if assignment is not None:
            assignment_id = assignment.id
            if assignment.custom_rule is not None:
                rule = assignment.custom_rule
            elif assignment.rule_id in rule_errors:
                return WorkScheduleDay.error_day(
                    d,
                    subject_id,
                    f"Rule unavailable: {rule_errors[assignment.rule_id]}",
                    assignment_id=assignment_id,
                )
            else:
                rule = rules[assignment.rule_id]
            base = self.calculator.compute_base_shift(rule, d)
            cycle_index = self.calculator.cycle_index(rule, d)

        check = self.validator.validate_exceptions(exceptions)
        if not check.is_valid:
            logger.warning(
                "Invalid exceptions for %s on %s: %s", subject_id, d, check.summary()
            )
            return WorkScheduleDay.error_day(
                d,
                subject_id,
                f"Invalid exceptions: {check.summary()}",
                assignment_id=assignment_id,
                cycle_index=cycle_index,
            )

        result = self.resolver.apply_exceptions(base, exceptions)
        if result.has_conflicts:
            logger.warning(
                "%d conflict(s) for %s on %s", len(result.conflicts), subject_id, d
            )
            status = DayStatus.CONFLICT
        elif any(not r.is_rest for r in result.shifts):
            status = DayStatus.SCHEDULED
        elif assignment is not None or result.shifts:
            status = DayStatus.REST
        else:
            status = DayStatus.UNSCHEDULED

        return WorkScheduleDay(
            schedule_date=d,
            subject_id=subject_id,
            shifts=tuple(result.shifts),
            status=status,
            conflicts=tuple(result.conflicts),
            assignment_id=assignment_id,
            cycle_index=cycle_index,
        )

    @staticmethod
    def _error_days(
        dates: list[date], subject_id: str, message: str
    ) -> list[WorkScheduleDay]:
        return [WorkScheduleDay.error_day(d, subject_id, message) for d in dates]
