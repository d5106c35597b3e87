"""Tests for schedule validation."""

from datetime import date, datetime, time, timedelta

import pytest

from rotacal.domain.categories import ReasonCategory
from rotacal.domain.models import (
    REST,
    ApprovalStatus,
    ExceptionKind,
    RecurrenceRule,
    ScheduleAssignment,
    ShiftCode,
    ShiftException,
    WorkScheduleDay,
)
from rotacal.domain.patterns import AFTERNOON, DAY, MORNING, NIGHT, QUATTRODUE
from rotacal.domain.policies import DefaultExceptionPolicy
from rotacal.validation.validator import (
    ScheduleValidator,
    ValidationIssueType,
    find_overlaps,
)

TARGET = date(2024, 1, 15)


def exception(exception_id, kind, shift=None, target=TARGET, **kwargs):
    kwargs.setdefault("reason", ReasonCategory.OVERTIME)
    return ShiftException(
        id=exception_id,
        subject_id="team-A",
        target_date=target,
        kind=kind,
        shift=shift,
        **kwargs,
    )


class TestScheduleValidator:
    """Tests for ScheduleValidator."""

    @pytest.fixture
    def validator(self):
        """Create a validator with the default policy."""
        return ScheduleValidator()

    def test_preset_rule_is_valid(self, validator):
        """The QuattroDue preset passes without warnings."""
        result = validator.validate_rule(QUATTRODUE)
        assert result.is_valid
        assert result.warnings == []

    def test_inconsistent_shift_definition(self, validator):
        """One shift id with two different times is reported."""
        other_morning = ShiftCode("MORNING", time(6, 0), time(14, 0))
        rule = RecurrenceRule(
            "bad", date(2024, 1, 1), 3, (MORNING, other_morning, REST)
        )
        result = validator.validate_rule(rule)

        assert not result.is_valid
        assert result.issues[0].issue_type == (
            ValidationIssueType.INCONSISTENT_SHIFT_DEFINITION
        )
        assert result.issues[0].details["cycle_index"] == 1

    def test_all_rest_rule_warns(self, validator):
        """A rule without work is legal but suspicious."""
        rule = RecurrenceRule("idle", date(2024, 1, 1), 1, (REST,))
        result = validator.validate_rule(rule)
        assert result.is_valid
        assert len(result.warnings) == 1

    def test_assignment_overlap(self, validator):
        """Overlapping assignments of one subject are issues."""
        assignments = [
            ScheduleAssignment("a1", "team-A", date(2024, 1, 1), rule_id="r"),
            ScheduleAssignment("a2", "team-A", date(2024, 2, 1), rule_id="r"),
        ]
        result = validator.validate_assignments(assignments)
        assert not result.is_valid
        assert result.issues[0].issue_type == ValidationIssueType.ASSIGNMENT_OVERLAP
        assert result.issues[0].on_date == date(2024, 2, 1)

    def test_unknown_rule_reference(self, validator):
        """Assignments pointing at missing rules are reported when ids are known."""
        assignments = [ScheduleAssignment("a1", "team-A", date(2024, 1, 1), rule_id="r")]
        assert validator.validate_assignments(assignments).is_valid
        result = validator.validate_assignments(assignments, known_rule_ids={"other"})
        assert [i.issue_type for i in result.issues] == [ValidationIssueType.UNKNOWN_RULE]

    def test_valid_exception_set(self, validator):
        """One REMOVE, one OVERRIDE and three ADDs are allowed."""
        exceptions = [
            exception("r1", ExceptionKind.REMOVE),
            exception("o1", ExceptionKind.OVERRIDE, MORNING),
            exception("a1", ExceptionKind.ADD, AFTERNOON),
            exception("a2", ExceptionKind.ADD, NIGHT),
            exception("a3", ExceptionKind.ADD, DAY),
        ]
        result = validator.validate_exceptions(exceptions)
        assert result.is_valid
        # REMOVE next to OVERRIDE is redundant
        assert len(result.warnings) == 1

    def test_duplicate_override(self, validator):
        """Two overrides on one date are rejected."""
        result = validator.validate_exceptions(
            [
                exception("o1", ExceptionKind.OVERRIDE, MORNING),
                exception("o2", ExceptionKind.OVERRIDE, NIGHT),
            ]
        )
        assert [i.issue_type for i in result.issues] == [
            ValidationIssueType.DUPLICATE_OVERRIDE
        ]
        assert result.issues[0].on_date == TARGET

    def test_duplicate_remove(self, validator):
        """Two removals on one date are rejected."""
        result = validator.validate_exceptions(
            [exception("r1", ExceptionKind.REMOVE), exception("r2", ExceptionKind.REMOVE)]
        )
        assert [i.issue_type for i in result.issues] == [
            ValidationIssueType.DUPLICATE_REMOVE
        ]

    def test_too_many_adds(self, validator):
        """The default policy allows three ADDs per day."""
        adds = [
            exception(f"a{i}", ExceptionKind.ADD, shift)
            for i, shift in enumerate([MORNING, AFTERNOON, NIGHT, DAY])
        ]
        result = validator.validate_exceptions(adds)
        assert [i.issue_type for i in result.issues] == [
            ValidationIssueType.TOO_MANY_ADDS
        ]

    def test_add_limit_from_policy(self):
        """A stricter policy lowers the ADD limit."""
        validator = ScheduleValidator(DefaultExceptionPolicy(max_added_shifts_per_day=1))
        result = validator.validate_exceptions(
            [
                exception("a1", ExceptionKind.ADD, MORNING),
                exception("a2", ExceptionKind.ADD, NIGHT),
            ]
        )
        assert not result.is_valid

    def test_different_dates_are_independent(self, validator):
        """Limits apply per date."""
        result = validator.validate_exceptions(
            [
                exception("o1", ExceptionKind.OVERRIDE, MORNING),
                exception("o2", ExceptionKind.OVERRIDE, NIGHT, target=date(2024, 1, 16)),
            ]
        )
        assert result.is_valid

    def test_duplicate_id(self, validator):
        """Exception ids must be unique."""
        result = validator.validate_exceptions(
            [
                exception("e1", ExceptionKind.ADD, MORNING),
                exception("e1", ExceptionKind.ADD, NIGHT, target=date(2024, 1, 16)),
            ]
        )
        assert [i.issue_type for i in result.issues] == [
            ValidationIssueType.DUPLICATE_EXCEPTION_ID
        ]

    def test_closed_and_superseded_ignored(self, validator):
        """Rejected, cancelled and superseded exceptions do not count."""
        result = validator.validate_exceptions(
            [
                exception("o1", ExceptionKind.OVERRIDE, MORNING),
                exception(
                    "o2",
                    ExceptionKind.OVERRIDE,
                    NIGHT,
                    approval=ApprovalStatus.REJECTED,
                ),
                exception(
                    "o3",
                    ExceptionKind.OVERRIDE,
                    NIGHT,
                    approval=ApprovalStatus.CANCELLED,
                ),
                exception(
                    "o4",
                    ExceptionKind.OVERRIDE,
                    AFTERNOON,
                    superseded_at=datetime(2024, 1, 2),
                ),
            ]
        )
        assert result.is_valid

    def test_issue_str(self, validator):
        """Issues render type, subject, message and date."""
        result = validator.validate_exceptions(
            [exception("r1", ExceptionKind.REMOVE), exception("r2", ExceptionKind.REMOVE)]
        )
        text = str(result.issues[0])
        assert text.startswith("[duplicate_remove] Subject team-A:")
        assert text.endswith("(2024-01-15)")
        assert result.summary() == text

    def test_schedule_coverage(self, validator):
        """Generated output must hold exactly one day per date."""
        days = [
            WorkScheduleDay(date(2024, 1, 1), "team-A"),
            WorkScheduleDay(date(2024, 1, 1), "team-A"),
            WorkScheduleDay(date(2024, 1, 3), "team-A"),
        ]
        result = validator.validate_schedule(days, date(2024, 1, 1), date(2024, 1, 3))
        assert sorted(i.issue_type.value for i in result.issues) == [
            "duplicate_day",
            "missing_day",
        ]

    def test_error_days_are_warnings(self, validator):
        """Error days do not invalidate coverage."""
        days = [WorkScheduleDay.error_day(date(2024, 1, 1), "team-A", "store offline")]
        result = validator.validate_schedule(days, date(2024, 1, 1), date(2024, 1, 1))
        assert result.is_valid
        assert result.warnings == ["2024-01-01 ERROR: store offline"]

    def test_schedule_coverage_to_last_date(self, validator):
        """Coverage checks reach date.max without overflowing."""
        start = date.max - timedelta(days=1)
        result = validator.validate_schedule(
            [WorkScheduleDay(date.max, "team-A")], start, date.max
        )
        assert [i.issue_type.value for i in result.issues] == ["missing_day"]
        assert result.issues[0].on_date == start


class TestFindOverlaps:
    """Tests for find_overlaps."""

    def test_pairs(self):
        """Every overlapping pair is returned once."""
        a1 = ScheduleAssignment("a1", "team-A", date(2024, 1, 1), rule_id="r")
        a2 = ScheduleAssignment(
            "a2", "team-A", date(2024, 2, 1), rule_id="r", end_date=date(2024, 2, 10)
        )
        a3 = ScheduleAssignment("a3", "team-A", date(2024, 3, 1), rule_id="r")
        pairs = find_overlaps([a3, a2, a1])
        assert [(x.id, y.id) for x, y in pairs] == [("a1", "a2"), ("a1", "a3")]

    def test_superseded_ignored(self):
        """Old versions never overlap anything."""
        old = ScheduleAssignment(
            "a1",
            "team-A",
            date(2024, 1, 1),
            rule_id="r",
            superseded_at=datetime(2024, 3, 1),
        )
        new = ScheduleAssignment("a2", "team-A", date(2024, 2, 1), rule_id="r")
        assert find_overlaps([old, new]) == []
