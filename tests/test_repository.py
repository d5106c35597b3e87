"""Tests for the in-memory repository."""

from datetime import date, datetime, timedelta

import pytest

from rotacal.domain.categories import ReasonCategory
from rotacal.domain.errors import (
    AssignmentConflictError,
    AssignmentValidationError,
    ExceptionValidationError,
    RepositoryError,
    RuleNotFoundError,
    RuleValidationError,
)
from rotacal.domain.models import (
    REST,
    ApprovalStatus,
    ExceptionKind,
    RecurrenceRule,
    ScheduleAssignment,
    ShiftException,
)
from rotacal.domain.patterns import AFTERNOON, DAY, FIVE_DAY_WEEK, MORNING, NIGHT
from rotacal.domain.policies import DefaultExceptionPolicy
from rotacal.repository.memory import InMemoryWorkScheduleRepository, LogAction


class FakeClock:
    """Clock advancing one minute per call."""

    def __init__(self):
        self.now = datetime(2024, 1, 1, 8, 0)

    def __call__(self):
        self.now += timedelta(minutes=1)
        return self.now


def exception(exception_id, target, kind, shift=None, subject_id="team-A", **kwargs):
    kwargs.setdefault("reason", ReasonCategory.OVERTIME)
    return ShiftException(
        id=exception_id,
        subject_id=subject_id,
        target_date=target,
        kind=kind,
        shift=shift,
        **kwargs,
    )


@pytest.fixture
def repo():
    """Repository with a fake clock."""
    return InMemoryWorkScheduleRepository(clock=FakeClock())


class TestRules:
    """Tests for rule storage."""

    def test_add_and_get(self, repo):
        """Stored rules are returned by id."""
        repo.add_rule(FIVE_DAY_WEEK)
        assert repo.get_rule("five-day-week") == FIVE_DAY_WEEK
        assert repo.rules() == [FIVE_DAY_WEEK]

    def test_unknown_rule(self, repo):
        """Missing rules raise RuleNotFoundError, a RepositoryError."""
        with pytest.raises(RuleNotFoundError) as excinfo:
            repo.get_rule("missing")
        assert isinstance(excinfo.value, RepositoryError)
        assert excinfo.value.rule_id == "missing"

    def test_identical_rule_is_noop(self, repo):
        """Adding the same rule twice logs it once."""
        repo.add_rule(FIVE_DAY_WEEK)
        repo.add_rule(FIVE_DAY_WEEK)
        assert len(repo.history()) == 1

    def test_rules_are_immutable(self, repo):
        """A different pattern cannot reuse an id."""
        repo.add_rule(FIVE_DAY_WEEK)
        changed = RecurrenceRule(
            id="five-day-week",
            anchor_date=date(2024, 1, 1),
            cycle_length_days=7,
            cycle_shifts=(MORNING,) * 5 + (REST, REST),
        )
        with pytest.raises(RuleValidationError):
            repo.add_rule(changed)


class TestAssignments:
    """Tests for assignment storage and versioning."""

    def test_range_query(self, repo):
        """Only live assignments intersecting the range are returned."""
        repo.add_assignment(
            ScheduleAssignment("a1", "team-A", date(2024, 1, 1), rule_id="r")
        )
        repo.add_assignment(
            ScheduleAssignment("a2", "team-A", date(2024, 3, 1), rule_id="r")
        )
        repo.add_assignment(
            ScheduleAssignment("b1", "team-B", date(2024, 1, 1), rule_id="r")
        )

        found = repo.get_active_assignments("team-A", date(2024, 1, 10), date(2024, 1, 20))
        assert [a.id for a in found] == ["a1"]
        found = repo.get_active_assignments("team-A", date(2024, 2, 20), date(2024, 3, 5))
        assert [a.id for a in found] == ["a1", "a2"]

    def test_new_assignment_closes_predecessor(self, repo):
        """The open-ended predecessor gets a new, ended version."""
        repo.add_assignment(
            ScheduleAssignment("a1", "team-A", date(2024, 1, 1), rule_id="r")
        )
        repo.add_assignment(
            ScheduleAssignment("a2", "team-A", date(2024, 3, 1), rule_id="r2")
        )

        versions = repo.assignment_versions("a1")
        assert len(versions) == 2
        assert versions[0].end_date is None
        assert versions[0].superseded_at is not None
        assert versions[1].end_date == date(2024, 2, 29)
        assert versions[1].is_live

    def test_duplicate_id(self, repo):
        """Assignment ids are unique."""
        repo.add_assignment(
            ScheduleAssignment("a1", "team-A", date(2024, 1, 1), rule_id="r")
        )
        with pytest.raises(AssignmentValidationError):
            repo.add_assignment(
                ScheduleAssignment("a1", "team-B", date(2024, 1, 1), rule_id="r")
            )

    def test_overlap_rejected(self, repo):
        """A bounded overlapping assignment is rejected and nothing is stored."""
        repo.add_assignment(
            ScheduleAssignment(
                "a1", "team-A", date(2024, 1, 1), rule_id="r", end_date=date(2024, 6, 30)
            )
        )
        with pytest.raises(AssignmentConflictError):
            repo.add_assignment(
                ScheduleAssignment("a2", "team-A", date(2024, 3, 1), rule_id="r")
            )
        assert repo.assignment_versions("a2") == []

    def test_end_assignment(self, repo):
        """Ending appends a version with the end date."""
        repo.add_assignment(
            ScheduleAssignment("a1", "team-A", date(2024, 1, 1), rule_id="r")
        )
        ended = repo.end_assignment("a1", date(2024, 1, 31))

        assert ended.end_date == date(2024, 1, 31)
        assert repo.get_active_assignments("team-A", date(2024, 2, 1), date(2024, 2, 5)) == []
        assert [e.action for e in repo.history("team-A")] == [
            LogAction.ADD_ASSIGNMENT,
            LogAction.END_ASSIGNMENT,
        ]

    def test_end_unknown_assignment(self, repo):
        """Ending an unknown id fails."""
        with pytest.raises(RepositoryError):
            repo.end_assignment("nope", date(2024, 1, 1))

    def test_end_before_start(self, repo):
        """An end date before the start is invalid."""
        repo.add_assignment(
            ScheduleAssignment("a1", "team-A", date(2024, 1, 10), rule_id="r")
        )
        with pytest.raises(AssignmentValidationError):
            repo.end_assignment("a1", date(2024, 1, 1))

    def test_subjects(self, repo):
        """Subjects are listed once, sorted."""
        for assignment_id, subject in [("x", "team-B"), ("y", "team-A")]:
            repo.add_assignment(
                ScheduleAssignment(assignment_id, subject, date(2024, 1, 1), rule_id="r")
            )
        assert repo.subjects() == ["team-A", "team-B"]


class TestExceptions:
    """Tests for exception storage and corrections."""

    def test_range_query(self, repo):
        """Exceptions are filtered by subject and date."""
        repo.add_exception(exception("e1", date(2024, 1, 5), ExceptionKind.ADD, NIGHT))
        repo.add_exception(exception("e2", date(2024, 1, 9), ExceptionKind.ADD, NIGHT))
        repo.add_exception(
            exception(
                "e3", date(2024, 1, 5), ExceptionKind.ADD, NIGHT, subject_id="team-B"
            )
        )
        found = repo.get_exceptions("team-A", date(2024, 1, 1), date(2024, 1, 7))
        assert [e.id for e in found] == ["e1"]

    def test_duplicate_id(self, repo):
        """Exception ids are unique."""
        repo.add_exception(exception("e1", date(2024, 1, 5), ExceptionKind.ADD, NIGHT))
        with pytest.raises(ExceptionValidationError):
            repo.add_exception(
                exception("e1", date(2024, 1, 6), ExceptionKind.ADD, NIGHT)
            )

    def test_second_override_rejected(self, repo):
        """A day cannot hold two live overrides."""
        repo.add_exception(
            exception("o1", date(2024, 1, 5), ExceptionKind.OVERRIDE, MORNING)
        )
        with pytest.raises(ExceptionValidationError):
            repo.add_exception(
                exception("o2", date(2024, 1, 5), ExceptionKind.OVERRIDE, NIGHT)
            )

    def test_second_remove_rejected(self, repo):
        """A day cannot hold two removals."""
        repo.add_exception(exception("r1", date(2024, 1, 5), ExceptionKind.REMOVE))
        with pytest.raises(ExceptionValidationError):
            repo.add_exception(exception("r2", date(2024, 1, 5), ExceptionKind.REMOVE))

    def test_add_limit_follows_policy(self):
        """The number of ADDs per day comes from the policy."""
        repo = InMemoryWorkScheduleRepository(
            policy=DefaultExceptionPolicy(max_added_shifts_per_day=1)
        )
        repo.add_exception(exception("a1", date(2024, 1, 5), ExceptionKind.ADD, NIGHT))
        with pytest.raises(ExceptionValidationError):
            repo.add_exception(exception("a2", date(2024, 1, 5), ExceptionKind.ADD, DAY))

    def test_rejected_request_does_not_block(self, repo):
        """A rejected override leaves room for a new one."""
        repo.add_exception(
            exception(
                "o1",
                date(2024, 1, 5),
                ExceptionKind.OVERRIDE,
                MORNING,
                approval=ApprovalStatus.REJECTED,
            )
        )
        repo.add_exception(
            exception("o2", date(2024, 1, 5), ExceptionKind.OVERRIDE, NIGHT)
        )
        assert len(repo.get_exceptions("team-A", date(2024, 1, 5), date(2024, 1, 5))) == 2

    def test_supersede(self, repo):
        """A correction replaces the old exception in reads."""
        repo.add_exception(
            exception("o1", date(2024, 1, 5), ExceptionKind.OVERRIDE, MORNING)
        )
        stored = repo.supersede_exception(
            "o1", exception("o2", date(2024, 1, 5), ExceptionKind.OVERRIDE, AFTERNOON)
        )

        assert stored.supersedes == "o1"
        found = repo.get_exceptions("team-A", date(2024, 1, 5), date(2024, 1, 5))
        assert [e.id for e in found] == ["o2"]
        old = repo.get_exception("o1")
        assert old is not None and not old.is_live

    def test_supersede_twice_rejected(self, repo):
        """A superseded exception cannot be corrected again."""
        repo.add_exception(exception("e1", date(2024, 1, 5), ExceptionKind.ADD, NIGHT))
        repo.supersede_exception(
            "e1", exception("e2", date(2024, 1, 5), ExceptionKind.ADD, DAY)
        )
        with pytest.raises(ExceptionValidationError):
            repo.supersede_exception(
                "e1", exception("e3", date(2024, 1, 5), ExceptionKind.ADD, MORNING)
            )

    def test_supersede_unknown(self, repo):
        """Correcting an unknown exception fails."""
        with pytest.raises(ExceptionValidationError):
            repo.supersede_exception(
                "nope", exception("e1", date(2024, 1, 5), ExceptionKind.ADD, NIGHT)
            )


class TestListeners:
    """Tests for change notification."""

    def test_listener_called_per_write(self, repo):
        """Listeners receive the subject id of each change."""
        seen = []
        repo.add_listener(seen.append)

        repo.add_assignment(
            ScheduleAssignment("a1", "team-A", date(2024, 1, 1), rule_id="r")
        )
        repo.add_exception(exception("e1", date(2024, 1, 5), ExceptionKind.ADD, NIGHT))
        repo.end_assignment("a1", date(2024, 12, 31))

        assert seen == ["team-A", "team-A", "team-A"]

    def test_rule_writes_do_not_notify(self, repo):
        """Rules belong to no subject."""
        seen = []
        repo.add_listener(seen.append)
        repo.add_rule(FIVE_DAY_WEEK)
        assert seen == []

    def test_history_is_ordered(self, repo):
        """Log entries carry increasing sequence numbers and clock times."""
        repo.add_rule(FIVE_DAY_WEEK)
        repo.add_exception(exception("e1", date(2024, 1, 5), ExceptionKind.ADD, NIGHT))
        entries = repo.history()
        assert [e.sequence for e in entries] == [1, 2]
        assert entries[0].recorded_at < entries[1].recorded_at
        assert entries[1].subject_id == "team-A"
