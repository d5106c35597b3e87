"""Domain models for the work schedule engine.

This module contains the value types shared by every layer: shift
definitions, recurrence rules, assignments, exceptions and the per-day
output produced by the engine. All records are immutable; corrections
create new records instead of changing existing ones.
"""

from dataclasses import dataclass, field, replace
from datetime import date, datetime, time, timedelta
from enum import Enum
from typing import Optional, Union

from rotacal.domain.categories import (
    ConflictSeverity,
    ReasonCategory,
    profile_for,
)
from rotacal.domain.errors import (
    AssignmentValidationError,
    ExceptionValidationError,
    RuleValidationError,
)

MINUTES_PER_DAY = 1440

# Upper bound for a rotation cycle; a leap-year cycle is the longest
# pattern the calendar supports.
MAX_CYCLE_LENGTH_DAYS = 366


class Rest:
    """Sentinel for a day without work in a rotation.

    There is exactly one instance, exported as ``REST``.
    """

    _instance: Optional["Rest"] = None

    def __new__(cls) -> "Rest":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    @property
    def is_rest(self) -> bool:
        return True

    @property
    def id(self) -> str:
        return "REST"

    def __repr__(self) -> str:
        return "REST"

    def __reduce__(self):
        return (Rest, ())


REST = Rest()


@dataclass(frozen=True)
class ShiftCode:
    """A named shift definition.

    Attributes:
        id: Unique code (e.g. "MORNING").
        start_time: Local start time.
        end_time: Local end time. An end at or before the start means the
            shift runs past midnight into the next day.
        name: Display name, defaults to the id in title case.
        break_minutes: Unpaid break inside the shift.
    """

    id: str
    start_time: time
    end_time: time
    name: str = ""
    break_minutes: int = 0

    def __post_init__(self):
        if not self.id or not self.id.strip():
            raise RuleValidationError("Shift id cannot be empty")
        for value in (self.start_time, self.end_time):
            if value.second or value.microsecond:
                raise RuleValidationError(
                    f"Shift {self.id} times must be whole minutes, got {value}"
                )
        if self.start_time == self.end_time:
            raise RuleValidationError(
                f"Shift {self.id} has identical start and end times"
            )
        if self.break_minutes < 0:
            raise RuleValidationError(f"Shift {self.id} has a negative break")
        if self.break_minutes >= self.duration_minutes:
            raise RuleValidationError(
                f"Shift {self.id} break ({self.break_minutes} min) is not "
                f"shorter than the shift ({self.duration_minutes} min)"
            )
        if not self.name:
            object.__setattr__(self, "name", self.id.replace("_", " ").title())

    @property
    def is_rest(self) -> bool:
        return False

    @property
    def crosses_midnight(self) -> bool:
        """True if the shift ends on the following day."""
        return self.end_time < self.start_time

    @property
    def duration_minutes(self) -> int:
        """Total length of the shift including the break."""
        start, end = self.window()
        return end - start

    @property
    def work_minutes(self) -> int:
        """Time actually worked (duration minus break)."""
        return self.duration_minutes - self.break_minutes

    def window(self) -> tuple[int, int]:
        """Get (start, end) in minutes from the shift day's midnight.

        The end is extended past 1440 for shifts crossing midnight.
        """
        start = self.start_time.hour * 60 + self.start_time.minute
        end = self.end_time.hour * 60 + self.end_time.minute
        if end <= start:
            end += MINUTES_PER_DAY
        return start, end

    def overlaps(self, other: "ShiftCode") -> bool:
        """Check if two shifts on the same day share any minute."""
        start, end = self.window()
        other_start, other_end = other.window()
        return start < other_end and other_start < end

    def __repr__(self) -> str:
        return (
            f"ShiftCode({self.id} {self.start_time.strftime('%H:%M')}-"
            f"{self.end_time.strftime('%H:%M')})"
        )


# A rotation day holds either a shift or REST.
CycleDay = Union[ShiftCode, Rest]


@dataclass(frozen=True)
class RecurrenceRule:
    """An infinitely repeating base pattern.

    Day ``anchor_date`` is cycle index 0; the pattern extends in both
    directions from the anchor.

    Attributes:
        id: Unique identifier.
        anchor_date: Date of cycle day zero.
        cycle_length_days: Number of days in one cycle.
        cycle_shifts: One entry (shift or REST) per cycle day.
        name: Display name.
        description: Free-form description.
        created_at: When the rule was created, if known.
    """

    id: str
    anchor_date: date
    cycle_length_days: int
    cycle_shifts: tuple[CycleDay, ...]
    name: str = ""
    description: str = ""
    created_at: Optional[datetime] = None

    def __post_init__(self):
        object.__setattr__(self, "cycle_shifts", tuple(self.cycle_shifts))

        if not self.id:
            raise RuleValidationError("Recurrence rule id cannot be empty")
        if not isinstance(self.cycle_length_days, int) or self.cycle_length_days < 1:
            raise RuleValidationError(
                f"Rule {self.id}: cycle length must be a positive integer, "
                f"got {self.cycle_length_days!r}"
            )
        if self.cycle_length_days > MAX_CYCLE_LENGTH_DAYS:
            raise RuleValidationError(
                f"Rule {self.id}: cycle length {self.cycle_length_days} exceeds "
                f"{MAX_CYCLE_LENGTH_DAYS} days"
            )
        if len(self.cycle_shifts) != self.cycle_length_days:
            raise RuleValidationError(
                f"Rule {self.id}: {len(self.cycle_shifts)} cycle entries for a "
                f"{self.cycle_length_days}-day cycle"
            )
        for index, entry in enumerate(self.cycle_shifts):
            if not isinstance(entry, (ShiftCode, Rest)):
                raise RuleValidationError(
                    f"Rule {self.id}: cycle day {index} is neither a shift nor REST"
                )

    @property
    def work_days(self) -> int:
        """Number of working days in one cycle."""
        return sum(1 for entry in self.cycle_shifts if not entry.is_rest)

    @property
    def rest_days(self) -> int:
        """Number of rest days in one cycle."""
        return self.cycle_length_days - self.work_days

    @property
    def shift_codes(self) -> list[ShiftCode]:
        """Distinct shifts used by the rule, in first-use order."""
        seen: dict[str, ShiftCode] = {}
        for entry in self.cycle_shifts:
            if isinstance(entry, ShiftCode) and entry.id not in seen:
                seen[entry.id] = entry
        return list(seen.values())

    def shifted(self, days: int, rule_id: str, name: str = "") -> "RecurrenceRule":
        """Create a copy of this rule whose pattern starts ``days`` later.

        Used to derive the rotation of one team from a shared base pattern.
        """
        return replace(
            self,
            id=rule_id,
            anchor_date=self.anchor_date + timedelta(days=days),
            name=name or self.name,
        )


class SubjectKind(Enum):
    """What a schedule is computed for."""

    TEAM = "team"
    USER = "user"


@dataclass(frozen=True)
class ScheduleAssignment:
    """Binds a subject to a recurrence rule for a validity interval.

    Exactly one of ``rule_id`` (shared rule) or ``custom_rule`` (inline
    pattern owned by this assignment) must be set.

    Attributes:
        id: Unique identifier.
        subject_id: Team or user the assignment applies to.
        start_date: First day covered (inclusive).
        rule_id: Id of a stored RecurrenceRule.
        custom_rule: Inline pattern.
        end_date: Last day covered (inclusive), None for open-ended.
        subject_kind: Whether the subject is a team or a user.
        created_at: Creation timestamp.
        superseded_at: Set when a newer version replaced this record.
    """

    id: str
    subject_id: str
    start_date: date
    rule_id: Optional[str] = None
    custom_rule: Optional[RecurrenceRule] = None
    end_date: Optional[date] = None
    subject_kind: SubjectKind = SubjectKind.TEAM
    created_at: datetime = field(default_factory=datetime.now, compare=False)
    superseded_at: Optional[datetime] = field(default=None, compare=False)

    def __post_init__(self):
        if not self.subject_id:
            raise AssignmentValidationError("Assignment subject cannot be empty")
        if (self.rule_id is None) == (self.custom_rule is None):
            raise AssignmentValidationError(
                f"Assignment {self.id} needs exactly one of rule_id or custom_rule"
            )
        if self.end_date is not None and self.end_date < self.start_date:
            raise AssignmentValidationError(
                f"Assignment {self.id} ends ({self.end_date}) before it starts "
                f"({self.start_date})"
            )

    @property
    def is_open_ended(self) -> bool:
        return self.end_date is None

    @property
    def is_live(self) -> bool:
        """True unless a newer version of the record exists."""
        return self.superseded_at is None

    @property
    def rule_ref(self) -> str:
        """Id of the rule this assignment follows."""
        if self.custom_rule is not None:
            return self.custom_rule.id
        return self.rule_id

    def covers(self, d: date) -> bool:
        """Check if the assignment is valid on a date."""
        if d < self.start_date:
            return False
        return self.end_date is None or d <= self.end_date

    def intersects(self, start: date, end: date) -> bool:
        """Check if the validity interval meets [start, end]."""
        if self.end_date is not None and self.end_date < start:
            return False
        return self.start_date <= end

    def overlaps(self, other: "ScheduleAssignment") -> bool:
        """Check if two validity intervals share at least one day."""
        other_end = other.end_date or date.max
        return self.intersects(other.start_date, other_end)

    def ended(self, end_date: date) -> "ScheduleAssignment":
        """Create a new version of this assignment that stops on ``end_date``."""
        return replace(self, end_date=end_date, superseded_at=None)


class ExceptionKind(Enum):
    """How an exception changes the base schedule of its day."""

    OVERRIDE = "override"
    REMOVE = "remove"
    ADD = "add"


class ApprovalStatus(Enum):
    """Workflow state of an exception request."""

    DRAFT = "draft"
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class ShiftException:
    """A single-date change to a subject's base schedule.

    Attributes:
        id: Unique identifier.
        subject_id: Team or user affected.
        target_date: Date the exception applies to.
        kind: OVERRIDE, REMOVE or ADD.
        reason: Reason category.
        shift: Replacement or additional shift. Required unless REMOVE;
            OVERRIDE may use REST to mark an absence.
        approval: Approval workflow state.
        severity: Conflict severity; defaults from the reason category.
        linked_record_id: Absence or approval record this exception
            originates from.
        supersedes: Id of the exception this one corrects.
        superseded_at: Set once a correction replaced this exception.
        created_at: Creation timestamp, used to order exceptions of one kind.
        note: Free-form note.
    """

    id: str
    subject_id: str
    target_date: date
    kind: ExceptionKind
    reason: ReasonCategory
    shift: Optional[CycleDay] = None
    approval: ApprovalStatus = ApprovalStatus.APPROVED
    severity: Optional[ConflictSeverity] = None
    linked_record_id: Optional[str] = None
    supersedes: Optional[str] = None
    superseded_at: Optional[datetime] = field(default=None, compare=False)
    created_at: datetime = field(default_factory=datetime.now, compare=False)
    note: str = ""

    def __post_init__(self):
        if not self.id:
            raise ExceptionValidationError("Exception id cannot be empty")
        if not self.subject_id:
            raise ExceptionValidationError(f"Exception {self.id} has no subject")
        if self.kind == ExceptionKind.REMOVE:
            if self.shift is not None:
                raise ExceptionValidationError(
                    f"Exception {self.id}: REMOVE does not take a shift"
                )
        elif self.shift is None:
            raise ExceptionValidationError(
                f"Exception {self.id}: {self.kind.name} requires a shift"
            )
        elif not isinstance(self.shift, (ShiftCode, Rest)):
            raise ExceptionValidationError(
                f"Exception {self.id}: shift must be a ShiftCode or REST"
            )
        if self.kind == ExceptionKind.ADD and self.shift is REST:
            raise ExceptionValidationError(
                f"Exception {self.id}: ADD cannot add a rest day"
            )
        if self.severity is None:
            object.__setattr__(self, "severity", profile_for(self.reason).severity)

    @property
    def is_live(self) -> bool:
        """True unless a correction superseded this exception."""
        return self.superseded_at is None

    @property
    def requires_approval(self) -> bool:
        return profile_for(self.reason).requires_approval

    @property
    def is_effective(self) -> bool:
        """Whether the exception changes the schedule.

        Approved exceptions always apply; drafts apply only when their
        category does not need approval.
        """
        if self.approval == ApprovalStatus.APPROVED:
            return True
        return self.approval == ApprovalStatus.DRAFT and not self.requires_approval


class Provenance(Enum):
    """Where a resolved shift came from."""

    FROM_BASE = "from_base"
    FROM_EXCEPTION = "from_exception"


@dataclass(frozen=True)
class ResolvedShift:
    """A shift (or REST) in the effective schedule of a day.

    Attributes:
        shift: The shift definition, or REST.
        provenance: Base pattern or exception.
        exception_id: Originating exception, when provenance is FROM_EXCEPTION.
    """

    shift: CycleDay
    provenance: Provenance
    exception_id: Optional[str] = None

    @property
    def is_rest(self) -> bool:
        return self.shift.is_rest

    def to_dict(self) -> dict:
        entry = {
            "shift": self.shift.id,
            "provenance": self.provenance.value,
            "exception_id": self.exception_id,
        }
        if isinstance(self.shift, ShiftCode):
            entry["start"] = self.shift.start_time.strftime("%H:%M")
            entry["end"] = self.shift.end_time.strftime("%H:%M")
        return entry


class ConflictKind(Enum):
    """Type of problem found in a resolved day."""

    TIME_OVERLAP = "time_overlap"  # Two resolved shifts share time
    CATEGORY = "category"  # Exception reasons cannot coexist


@dataclass(frozen=True)
class ScheduleConflict:
    """Annotation describing an unresolved problem on a day.

    Attributes:
        kind: Conflict type.
        severity: Review urgency.
        message: Human-readable description.
        shift_ids: Shifts involved (TIME_OVERLAP).
        exception_ids: Exceptions involved.
    """

    kind: ConflictKind
    severity: ConflictSeverity
    message: str
    shift_ids: tuple[str, ...] = ()
    exception_ids: tuple[str, ...] = ()

    def to_dict(self) -> dict:
        return {
            "kind": self.kind.value,
            "severity": self.severity.name,
            "message": self.message,
            "shift_ids": list(self.shift_ids),
            "exception_ids": list(self.exception_ids),
        }


class DayStatus(Enum):
    """Summary state of a generated day."""

    SCHEDULED = "scheduled"  # At least one working shift
    REST = "rest"  # Covered by an assignment, no work
    UNSCHEDULED = "unscheduled"  # No assignment covers the day
    CONFLICT = "conflict"  # Resolved, but with conflict annotations
    ERROR = "error"  # Data for the day could not be loaded or resolved


@dataclass(frozen=True)
class WorkScheduleDay:
    """Effective schedule of one subject on one date.

    Transient output of the engine; can be discarded and recomputed at any
    time.

    Attributes:
        schedule_date: The date.
        subject_id: Team or user.
        shifts: Resolved shifts in application order.
        status: Summary state.
        conflicts: Conflict annotations.
        assignment_id: Assignment active on the day, if any.
        cycle_index: Position in the rotation cycle, if any.
        error: Description of the failure when status is ERROR.
    """

    schedule_date: date
    subject_id: str
    shifts: tuple[ResolvedShift, ...] = ()
    status: DayStatus = DayStatus.UNSCHEDULED
    conflicts: tuple[ScheduleConflict, ...] = ()
    assignment_id: Optional[str] = None
    cycle_index: Optional[int] = None
    error: Optional[str] = None

    @classmethod
    def error_day(
        cls,
        schedule_date: date,
        subject_id: str,
        error: str,
        assignment_id: Optional[str] = None,
        cycle_index: Optional[int] = None,
    ) -> "WorkScheduleDay":
        """Create a day marked as failed, with no shifts."""
        return cls(
            schedule_date=schedule_date,
            subject_id=subject_id,
            status=DayStatus.ERROR,
            assignment_id=assignment_id,
            cycle_index=cycle_index,
            error=error,
        )

    @property
    def working_shifts(self) -> list[ShiftCode]:
        """Resolved shifts that are actual work (REST excluded)."""
        return [r.shift for r in self.shifts if not r.is_rest]

    @property
    def is_working_day(self) -> bool:
        return bool(self.working_shifts)

    @property
    def has_conflicts(self) -> bool:
        return bool(self.conflicts)

    @property
    def is_error(self) -> bool:
        return self.status == DayStatus.ERROR

    @property
    def work_minutes(self) -> int:
        """Total worked minutes for the day."""
        return sum(s.work_minutes for s in self.working_shifts)

    def to_dict(self) -> dict:
        """Stable, JSON-ready representation."""
        return {
            "date": self.schedule_date.isoformat(),
            "subject_id": self.subject_id,
            "status": self.status.value,
            "assignment_id": self.assignment_id,
            "cycle_index": self.cycle_index,
            "shifts": [s.to_dict() for s in self.shifts],
            "conflicts": [c.to_dict() for c in self.conflicts],
            "error": self.error,
        }


@dataclass
class ScheduleStats:
    """Summary statistics over a list of generated days.

    Attributes:
        total_days: Number of days analysed.
        working_days: Days with at least one working shift.
        rest_days: Days covered by an assignment without work.
        unscheduled_days: Days with no assignment.
        conflict_days: Days carrying conflict annotations.
        error_days: Days that failed to resolve.
        total_shifts: Working shifts across all days.
        total_work_minutes: Worked minutes across all days.
        shift_distribution: Shift id -> number of occurrences.
        exception_shifts: Shifts that came from exceptions.
    """

    total_days: int = 0
    working_days: int = 0
    rest_days: int = 0
    unscheduled_days: int = 0
    conflict_days: int = 0
    error_days: int = 0
    total_shifts: int = 0
    total_work_minutes: int = 0
    shift_distribution: dict[str, int] = field(default_factory=dict)
    exception_shifts: int = 0

    @property
    def total_work_hours(self) -> float:
        return self.total_work_minutes / 60.0

    @property
    def average_hours_per_working_day(self) -> float:
        if self.working_days == 0:
            return 0.0
        return self.total_work_hours / self.working_days

    @property
    def working_day_percentage(self) -> float:
        if self.total_days == 0:
            return 0.0
        return self.working_days / self.total_days * 100.0

    @classmethod
    def calculate(cls, days: list[WorkScheduleDay]) -> "ScheduleStats":
        """Calculate statistics from generated days."""
        stats = cls(total_days=len(days))

        for day in days:
            if day.is_error:
                stats.error_days += 1
                continue
            if day.has_conflicts:
                stats.conflict_days += 1

            if day.is_working_day:
                stats.working_days += 1
            elif day.assignment_id is None and not day.shifts:
                stats.unscheduled_days += 1
            else:
                stats.rest_days += 1

            for resolved in day.shifts:
                if resolved.is_rest:
                    continue
                stats.total_shifts += 1
                stats.total_work_minutes += resolved.shift.work_minutes
                stats.shift_distribution[resolved.shift.id] = (
                    stats.shift_distribution.get(resolved.shift.id, 0) + 1
                )
                if resolved.provenance == Provenance.FROM_EXCEPTION:
                    stats.exception_shifts += 1

        return stats
