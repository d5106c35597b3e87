"""Repository contract consumed by the scheduling engine."""

from abc import ABC, abstractmethod
from datetime import date

from rotacal.domain.models import RecurrenceRule, ScheduleAssignment, ShiftException


class WorkScheduleRepository(ABC):
    """Read access to assignments, exceptions and rules.

    Implementations should give a consistent snapshot for the duration of
    one engine call. Failures are reported by raising ``RepositoryError``.
    """

    @abstractmethod
    def get_active_assignments(
        self, subject_id: str, start: date, end: date
    ) -> list[ScheduleAssignment]:
        """Get live assignments of a subject intersecting [start, end].

        Returned assignments must already be non-overlapping.
        """
        pass

    @abstractmethod
    def get_exceptions(
        self, subject_id: str, start: date, end: date
    ) -> list[ShiftException]:
        """Get non-superseded exceptions of a subject dated within [start, end]."""
        pass

    @abstractmethod
    def get_rule(self, rule_id: str) -> RecurrenceRule:
        """Get a recurrence rule by id.

        Raises:
            RuleNotFoundError: If no rule has this id.
        """
        pass
