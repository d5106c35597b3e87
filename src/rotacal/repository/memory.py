"""In-memory repository backed by an append-only log.

Records are never changed or deleted. Ending an assignment or correcting an
exception appends a new version and marks the previous one superseded, so
past schedules can always be reconstructed exactly.
"""

import logging
import threading
from dataclasses import dataclass, replace
from datetime import date, datetime
from enum import Enum
from typing import Callable, Optional, Union

from rotacal.domain.errors import (
    AssignmentValidationError,
    ExceptionValidationError,
    RepositoryError,
    RuleNotFoundError,
    RuleValidationError,
)
from rotacal.domain.models import RecurrenceRule, ScheduleAssignment, ShiftException
from rotacal.domain.policies import DefaultExceptionPolicy, ExceptionPolicy
from rotacal.repository.base import WorkScheduleRepository
from rotacal.scheduling.assignments import plan_assignment, validate_non_overlapping
from rotacal.validation.validator import ScheduleValidator

logger = logging.getLogger(__name__)

Record = Union[RecurrenceRule, ScheduleAssignment, ShiftException]
ChangeListener = Callable[[str], None]


class LogAction(Enum):
    """Kind of write recorded in the log."""

    ADD_RULE = "add_rule"
    ADD_ASSIGNMENT = "add_assignment"
    END_ASSIGNMENT = "end_assignment"
    ADD_EXCEPTION = "add_exception"
    SUPERSEDE_EXCEPTION = "supersede_exception"


@dataclass(frozen=True)
class LogEntry:
    """One write in the repository log."""

    sequence: int
    recorded_at: datetime
    action: LogAction
    record: Record
    subject_id: Optional[str] = None


class InMemoryWorkScheduleRepository(WorkScheduleRepository):
    """Thread-safe repository keeping every version of every record.

    Writes run under a re-entrant lock and readers receive new lists of
    immutable records, so a read is a consistent snapshot. Listeners are
    called with the subject id after each write that changes a subject's
    data (outside the lock).

    Example:
        >>> repo = InMemoryWorkScheduleRepository()
        >>> repo.add_rule(QUATTRODUE)
        >>> repo.add_assignment(ScheduleAssignment("a1", "team-A", date(2024, 1, 1), rule_id="quattrodue"))
    """

    def __init__(
        self,
        policy: Optional[ExceptionPolicy] = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self._lock = threading.RLock()
        self._clock = clock
        self._validator = ScheduleValidator(policy=policy or DefaultExceptionPolicy())

        self._log: list[LogEntry] = []
        self._rules: dict[str, RecurrenceRule] = {}
        # Current version of each record, by id
        self._assignments: dict[str, ScheduleAssignment] = {}
        self._retired_assignments: list[ScheduleAssignment] = []
        self._exceptions: dict[str, ShiftException] = {}
        self._listeners: list[ChangeListener] = []

    # Writes

    def add_listener(self, callback: ChangeListener) -> None:
        """Register a callback invoked with the subject id after each change."""
        with self._lock:
            self._listeners.append(callback)

    def add_rule(self, rule: RecurrenceRule) -> RecurrenceRule:
        """Store a recurrence rule.

        Re-adding an identical rule is a no-op; a different rule under an
        existing id is rejected, since rules are immutable once stored.

        Raises:
            RuleValidationError: If the id is taken by a different rule.
        """
        with self._lock:
            existing = self._rules.get(rule.id)
            if existing is not None:
                if existing != rule:
                    raise RuleValidationError(
                        f"Rule {rule.id} already exists with a different pattern"
                    )
                return existing
            self._rules[rule.id] = rule
            self._append(LogAction.ADD_RULE, rule)
        return rule

    def add_assignment(self, assignment: ScheduleAssignment) -> ScheduleAssignment:
        """Store an assignment, closing an open-ended predecessor if needed.

        Raises:
            AssignmentValidationError: If the id is already used.
            AssignmentConflictError: If the assignment overlaps one that
                cannot be closed automatically.
        """
        with self._lock:
            if assignment.id in self._assignments:
                raise AssignmentValidationError(
                    f"Assignment {assignment.id} already exists"
                )
            records = plan_assignment(self._assignments.values(), assignment)
            for record in records:
                if record.id in self._assignments:
                    self._supersede_assignment(record)
                else:
                    self._assignments[record.id] = record
                    self._append(
                        LogAction.ADD_ASSIGNMENT, record, record.subject_id
                    )
        self._notify(assignment.subject_id)
        return assignment

    def end_assignment(self, assignment_id: str, end_date: date) -> ScheduleAssignment:
        """Close an assignment on a date by appending a new version.

        Raises:
            RepositoryError: If the assignment is unknown.
            AssignmentValidationError: If ``end_date`` is before its start.
            AssignmentConflictError: If the new end overlaps a later assignment.
        """
        with self._lock:
            current = self._assignments.get(assignment_id)
            if current is None:
                raise RepositoryError(f"Unknown assignment: {assignment_id}")
            ended = current.ended(end_date)
            others = [a for a in self._assignments.values() if a.id != assignment_id]
            validate_non_overlapping(others + [ended])
            self._supersede_assignment(ended)
        self._notify(ended.subject_id)
        return ended

    def add_exception(self, exception: ShiftException) -> ShiftException:
        """Store an exception after checking it against the day's other ones.

        Raises:
            ExceptionValidationError: If the id is taken or the day's set of
                exceptions would become invalid.
        """
        with self._lock:
            if exception.id in self._exceptions:
                raise ExceptionValidationError(
                    f"Exception {exception.id} already exists"
                )
            self._check_day(exception, ignore_id=None)
            self._exceptions[exception.id] = exception
            self._append(LogAction.ADD_EXCEPTION, exception, exception.subject_id)
        self._notify(exception.subject_id)
        return exception

    def supersede_exception(
        self, old_id: str, replacement: ShiftException
    ) -> ShiftException:
        """Correct an exception: mark ``old_id`` superseded and store a new one.

        The replacement is stored with ``supersedes`` set to ``old_id``.

        Raises:
            ExceptionValidationError: If ``old_id`` is unknown or already
                superseded, or the replacement is invalid.
        """
        with self._lock:
            old = self._exceptions.get(old_id)
            if old is None:
                raise ExceptionValidationError(f"Unknown exception: {old_id}")
            if not old.is_live:
                raise ExceptionValidationError(
                    f"Exception {old_id} is already superseded"
                )
            if replacement.id in self._exceptions:
                raise ExceptionValidationError(
                    f"Exception {replacement.id} already exists"
                )
            replacement = replace(replacement, supersedes=old_id)
            self._check_day(replacement, ignore_id=old_id)

            self._exceptions[old_id] = replace(old, superseded_at=self._clock())
            self._exceptions[replacement.id] = replacement
            self._append(
                LogAction.SUPERSEDE_EXCEPTION, replacement, replacement.subject_id
            )
        self._notify(old.subject_id)
        if replacement.subject_id != old.subject_id:
            self._notify(replacement.subject_id)
        return replacement

    # Reads

    def get_active_assignments(
        self, subject_id: str, start: date, end: date
    ) -> list[ScheduleAssignment]:
        with self._lock:
            return sorted(
                (
                    a
                    for a in self._assignments.values()
                    if a.subject_id == subject_id
                    and a.is_live
                    and a.intersects(start, end)
                ),
                key=lambda a: (a.start_date, a.id),
            )

    def get_exceptions(
        self, subject_id: str, start: date, end: date
    ) -> list[ShiftException]:
        with self._lock:
            return sorted(
                (
                    e
                    for e in self._exceptions.values()
                    if e.subject_id == subject_id
                    and e.is_live
                    and start <= e.target_date <= end
                ),
                key=lambda e: (e.target_date, e.created_at, e.id),
            )

    def get_rule(self, rule_id: str) -> RecurrenceRule:
        with self._lock:
            try:
                return self._rules[rule_id]
            except KeyError:
                raise RuleNotFoundError(rule_id) from None

    def get_exception(self, exception_id: str) -> Optional[ShiftException]:
        with self._lock:
            return self._exceptions.get(exception_id)

    def assignment_versions(self, assignment_id: str) -> list[ScheduleAssignment]:
        """Get every version of an assignment, oldest first.

        Superseded versions carry their ``superseded_at`` timestamp.
        """
        with self._lock:
            versions = [
                a for a in self._retired_assignments if a.id == assignment_id
            ]
            current = self._assignments.get(assignment_id)
            if current is not None:
                versions.append(current)
            return versions

    def rules(self) -> list[RecurrenceRule]:
        with self._lock:
            return list(self._rules.values())

    def subjects(self) -> list[str]:
        """Get every subject with at least one assignment, sorted."""
        with self._lock:
            return sorted({a.subject_id for a in self._assignments.values()})

    def history(self, subject_id: Optional[str] = None) -> list[LogEntry]:
        """Get log entries, optionally only those of one subject."""
        with self._lock:
            if subject_id is None:
                return list(self._log)
            return [entry for entry in self._log if entry.subject_id == subject_id]

    # Internals

    def _append(
        self, action: LogAction, record: Record, subject_id: Optional[str] = None
    ) -> None:
        entry = LogEntry(
            sequence=len(self._log) + 1,
            recorded_at=self._clock(),
            action=action,
            record=record,
            subject_id=subject_id,
        )
        self._log.append(entry)
        logger.debug("%s %s", action.value, getattr(record, "id", record))

    def _supersede_assignment(self, new_version: ScheduleAssignment) -> None:
        old = self._assignments[new_version.id]
        self._retired_assignments.append(replace(old, superseded_at=self._clock()))
        self._assignments[new_version.id] = new_version
        self._append(LogAction.END_ASSIGNMENT, new_version, new_version.subject_id)

    def _check_day(self, exception: ShiftException, ignore_id: Optional[str]) -> None:
        same_day = [
            e
            for e in self._exceptions.values()
            if e.subject_id == exception.subject_id
            and e.target_date == exception.target_date
            and e.is_live
            and e.id != ignore_id
        ]
        result = self._validator.validate_exceptions(same_day + [exception])
        if not result.is_valid:
            raise ExceptionValidationError(result.summary())

    def _notify(self, subject_id: str) -> None:
        with self._lock:
            listeners = list(self._listeners)
        for callback in listeners:
            callback(subject_id)
