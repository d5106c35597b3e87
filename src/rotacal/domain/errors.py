"""Error types raised by the scheduling system.

Configuration errors are raised where bad data is introduced (rule, exception
or assignment construction). Data-integrity and range errors abort a call.
Repository errors are caught by the engine and reported on the affected days.
"""

from datetime import date
from typing import Optional


class SchedulingError(Exception):
    """Base class for all rotacal errors."""


class ConfigurationError(SchedulingError):
    """Malformed rule, exception or assignment data."""


class RuleValidationError(ConfigurationError):
    """A recurrence rule or shift definition failed validation."""


class ExceptionValidationError(ConfigurationError):
    """A shift exception (or a set of them) failed validation."""


class AssignmentValidationError(ConfigurationError):
    """A schedule assignment failed validation."""


class AssignmentConflictError(SchedulingError):
    """Two live assignments for the same subject overlap in time.

    Attributes:
        subject_id: Subject whose assignments overlap.
        assignment_ids: Ids of the overlapping assignments.
        on_date: First date where the overlap was observed, if known.
    """

    def __init__(
        self,
        subject_id: str,
        assignment_ids: tuple[str, ...],
        on_date: Optional[date] = None,
    ):
        self.subject_id = subject_id
        self.assignment_ids = assignment_ids
        self.on_date = on_date
        where = f" on {on_date.isoformat()}" if on_date else ""
        super().__init__(
            f"Overlapping assignments for subject {subject_id}{where}: "
            f"{', '.join(assignment_ids)}"
        )


class InvalidRangeError(SchedulingError):
    """Inverted or unreasonably long date range."""


class RepositoryError(SchedulingError):
    """The repository could not serve a read."""


class RuleNotFoundError(RepositoryError):
    """No recurrence rule exists for the requested id."""

    def __init__(self, rule_id: str):
        self.rule_id = rule_id
        super().__init__(f"Unknown recurrence rule: {rule_id}")
