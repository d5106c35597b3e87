"""Assignment lookup and validation.

For one subject, live assignments must never overlap. Lookups fail loudly
when they do, since picking one of two overlapping assignments would make
the schedule depend on storage order.
"""

import logging
from collections import defaultdict
from datetime import date, timedelta
from typing import Iterable, Optional

from rotacal.domain.errors import AssignmentConflictError
from rotacal.domain.models import ScheduleAssignment
from rotacal.validation.validator import find_overlaps

logger = logging.getLogger(__name__)


class AssignmentResolver:
    """Finds the active assignment of a subject on a date.

    Superseded records are ignored. The resolver holds an immutable,
    per-subject index of the assignments it was built from.

    Example:
        >>> resolver = AssignmentResolver(assignments)
        >>> resolver.find_active_assignment("team-A", date(2024, 3, 1))
    """

    def __init__(self, assignments: Iterable[ScheduleAssignment]):
        index: dict[str, list[ScheduleAssignment]] = defaultdict(list)
        for assignment in assignments:
            if assignment.is_live:
                index[assignment.subject_id].append(assignment)
        self._by_subject = {
            subject: tuple(sorted(items, key=lambda a: (a.start_date, a.id)))
            for subject, items in index.items()
        }

    def assignments_for(self, subject_id: str) -> tuple[ScheduleAssignment, ...]:
        return self._by_subject.get(subject_id, ())

    def find_active_assignment(
        self, subject_id: str, d: date
    ) -> Optional[ScheduleAssignment]:
        """Get the assignment covering a date.

        Args:
            subject_id: Team or user.
            d: Date to look up.

        Returns:
            The single covering assignment, or None when no pattern applies.

        Raises:
            AssignmentConflictError: If more than one assignment covers the date.
        """
        matches = [a for a in self.assignments_for(subject_id) if a.covers(d)]
        if len(matches) > 1:
            raise AssignmentConflictError(
                subject_id, tuple(a.id for a in matches), on_date=d
            )
        return matches[0] if matches else None


def validate_non_overlapping(assignments: Iterable[ScheduleAssignment]) -> None:
    """Check the non-overlap invariant.

    Raises:
        AssignmentConflictError: For the first overlapping pair found.
    """
    overlaps = find_overlaps(assignments)
    if overlaps:
        first, second = overlaps[0]
        raise AssignmentConflictError(
            first.subject_id,
            (first.id, second.id),
            on_date=max(first.start_date, second.start_date),
        )


def plan_assignment(
    existing: Iterable[ScheduleAssignment],
    new: ScheduleAssignment,
) -> list[ScheduleAssignment]:
    """Work out the records needed to add a new assignment.

    An open-ended assignment that started before the new one is closed on
    the day before the new start. Any other overlap is rejected.

    Args:
        existing: Current assignments (any subjects; superseded ones ignored).
        new: Assignment to introduce.

    Returns:
        Records to append, in order: the closed predecessor (if any), then
        ``new``.

    Raises:
        AssignmentConflictError: If ``new`` overlaps an assignment that
            cannot be closed automatically.
    """
    records: list[ScheduleAssignment] = []
    conflicting = []

    for current in existing:
        if not current.is_live or current.subject_id != new.subject_id:
            continue
        if not current.overlaps(new):
            continue
        if current.is_open_ended and current.start_date < new.start_date:
            closed = current.ended(new.start_date - timedelta(days=1))
            logger.debug(
                "Closing assignment %s on %s before %s starts",
                current.id,
                closed.end_date,
                new.id,
            )
            records.append(closed)
        else:
            conflicting.append(current.id)

    if conflicting:
        raise AssignmentConflictError(
            new.subject_id, tuple(conflicting) + (new.id,), on_date=new.start_date
        )

    records.append(new)
    return records
