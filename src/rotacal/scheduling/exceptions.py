"""Applying shift exceptions on top of a base shift.

Exceptions for one date are applied in a fixed order (REMOVE, then
OVERRIDE, then ADD; ties by creation time and id), so the result never
depends on storage order. Problems left after resolution are returned as
conflict annotations, not raised.
"""

from dataclasses import dataclass, field
from itertools import combinations
from typing import Iterable, Optional

from rotacal.domain.categories import ConflictSeverity, categories_conflict
from rotacal.domain.models import (
    ConflictKind,
    CycleDay,
    ExceptionKind,
    Provenance,
    ResolvedShift,
    ScheduleConflict,
    ShiftCode,
    ShiftException,
)

KIND_ORDER: dict[ExceptionKind, int] = {
    ExceptionKind.REMOVE: 0,
    ExceptionKind.OVERRIDE: 1,
    ExceptionKind.ADD: 2,
}


def application_order(exceptions: Iterable[ShiftException]) -> list[ShiftException]:
    """Sort exceptions into the order they are applied."""
    return sorted(
        exceptions, key=lambda e: (KIND_ORDER[e.kind], e.created_at, e.id)
    )


@dataclass
class ResolutionResult:
    """Effective shifts of one day plus any conflicts found."""

    shifts: list[ResolvedShift] = field(default_factory=list)
    conflicts: list[ScheduleConflict] = field(default_factory=list)

    @property
    def has_conflicts(self) -> bool:
        return bool(self.conflicts)


class ExceptionResolver:
    """Resolves the effective shifts of a day.

    Example:
        >>> resolver = ExceptionResolver()
        >>> result = resolver.apply_exceptions(MORNING, [sick_override])
        >>> [r.shift for r in result.shifts]
        [REST]
    """

    def __init__(self, detect_category_conflicts: bool = True):
        self.detect_category_conflicts = detect_category_conflicts

    def apply_exceptions(
        self,
        base_shift: Optional[CycleDay],
        exceptions: Iterable[ShiftException],
    ) -> ResolutionResult:
        """Apply a day's exceptions to its base shift.

        Args:
            base_shift: Shift or REST from the pattern, or None when no
                assignment covers the day.
            exceptions: Validated, applicable exceptions for the day.

        Returns:
            The resolved shifts in application order and the conflicts
            detected among them.
        """
        ordered = application_order(exceptions)

        current: list[ResolvedShift] = []
        if base_shift is not None:
            current.append(ResolvedShift(base_shift, Provenance.FROM_BASE))

        for exception in ordered:
            if exception.kind == ExceptionKind.REMOVE:
                current = []
            elif exception.kind == ExceptionKind.OVERRIDE:
                current = [
                    ResolvedShift(
                        exception.shift, Provenance.FROM_EXCEPTION, exception.id
                    )
                ]
            else:
                current.append(
                    ResolvedShift(
                        exception.shift, Provenance.FROM_EXCEPTION, exception.id
                    )
                )

        # A rest placeholder means nothing next to real work.
        if any(not r.is_rest for r in current):
            current = [r for r in current if not r.is_rest]

        conflicts = self._time_conflicts(current, ordered)
        if self.detect_category_conflicts:
            conflicts.extend(self._category_conflicts(ordered))

        return ResolutionResult(shifts=current, conflicts=conflicts)

    def _time_conflicts(
        self,
        shifts: list[ResolvedShift],
        exceptions: list[ShiftException],
    ) -> list[ScheduleConflict]:
        by_id = {e.id: e for e in exceptions}
        conflicts = []

        for first, second in combinations(shifts, 2):
            if first.is_rest or second.is_rest:
                continue
            if not first.shift.overlaps(second.shift):
                continue

            involved = [
                by_id[r.exception_id]
                for r in (first, second)
                if r.exception_id is not None
            ]
            severity = max(
                (e.severity for e in involved),
                key=lambda s: s.value,
                default=ConflictSeverity.WARNING,
            )
            conflicts.append(
                ScheduleConflict(
                    kind=ConflictKind.TIME_OVERLAP,
                    severity=severity,
                    message=(
                        f"{_label(first.shift)} overlaps {_label(second.shift)}"
                    ),
                    shift_ids=(first.shift.id, second.shift.id),
                    exception_ids=tuple(e.id for e in involved),
                )
            )
        return conflicts

    def _category_conflicts(
        self, exceptions: list[ShiftException]
    ) -> list[ScheduleConflict]:
        conflicts = []
        for first, second in combinations(exceptions, 2):
            if not categories_conflict(first.reason, second.reason):
                continue
            severity = max(first.severity, second.severity, key=lambda s: s.value)
            conflicts.append(
                ScheduleConflict(
                    kind=ConflictKind.CATEGORY,
                    severity=severity,
                    message=(
                        f"{first.reason.value} ({first.id}) cannot coexist with "
                        f"{second.reason.value} ({second.id})"
                    ),
                    exception_ids=(first.id, second.id),
                )
            )
        return conflicts


def _label(shift: ShiftCode) -> str:
    start, end = shift.window()
    return (
        f"{shift.id} {start // 60:02d}:{start % 60:02d}-"
        f"{(end // 60) % 24:02d}:{end % 60:02d}"
    )
