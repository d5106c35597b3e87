"""Reason categories for shift exceptions.

Each category maps to a profile (group, default severity, approval rule) in a
single lookup table, and groups map to the set of groups they conflict with.
Keeping both as data makes the conflict matrix testable on its own.
"""

from dataclasses import dataclass
from enum import Enum


class CategoryGroup(Enum):
    """Broad family a reason category belongs to."""

    ABSENCE = "absence"  # Subject does not work (vacation, sickness, ...)
    CHANGE = "change"  # Shift moved, swapped or replaced
    REDUCTION = "reduction"  # Working time shortened
    EXTRA = "extra"  # Additional work (overtime, compensation)


class ConflictSeverity(Enum):
    """How urgently a conflict needs manual review."""

    INFO = 1
    WARNING = 2
    CRITICAL = 3


class ReasonCategory(Enum):
    """Why an exception was recorded."""

    VACATION = "vacation"
    SICK_LEAVE = "sick_leave"
    SPECIAL_LEAVE = "special_leave"
    COMPANY_CHANGE = "company_change"
    SHIFT_SWAP = "shift_swap"
    SPECIAL_COVERAGE = "special_coverage"
    PERSONAL_REDUCTION = "personal_reduction"
    ROL_REDUCTION = "rol_reduction"  # Riduzione orario di lavoro
    UNION_TIME = "union_time"
    COMPENSATION = "compensation"
    OVERTIME = "overtime"
    CUSTOM = "custom"


@dataclass(frozen=True)
class CategoryProfile:
    """Static properties of a reason category.

    Attributes:
        group: Family used by the conflict matrix.
        severity: Default severity for conflicts involving this category.
        requires_approval: Whether a DRAFT exception needs approval to apply.
        full_day: Whether the category normally covers the whole day.
    """

    group: CategoryGroup
    severity: ConflictSeverity
    requires_approval: bool
    full_day: bool = False


CATEGORY_PROFILES: dict[ReasonCategory, CategoryProfile] = {
    ReasonCategory.VACATION: CategoryProfile(
        CategoryGroup.ABSENCE, ConflictSeverity.WARNING, False, full_day=True
    ),
    ReasonCategory.SICK_LEAVE: CategoryProfile(
        CategoryGroup.ABSENCE, ConflictSeverity.CRITICAL, False, full_day=True
    ),
    ReasonCategory.SPECIAL_LEAVE: CategoryProfile(
        CategoryGroup.ABSENCE, ConflictSeverity.WARNING, True, full_day=True
    ),
    ReasonCategory.COMPANY_CHANGE: CategoryProfile(
        CategoryGroup.CHANGE, ConflictSeverity.WARNING, True
    ),
    ReasonCategory.SHIFT_SWAP: CategoryProfile(
        CategoryGroup.CHANGE, ConflictSeverity.WARNING, True
    ),
    ReasonCategory.SPECIAL_COVERAGE: CategoryProfile(
        CategoryGroup.CHANGE, ConflictSeverity.CRITICAL, True
    ),
    ReasonCategory.PERSONAL_REDUCTION: CategoryProfile(
        CategoryGroup.REDUCTION, ConflictSeverity.INFO, True
    ),
    ReasonCategory.ROL_REDUCTION: CategoryProfile(
        CategoryGroup.REDUCTION, ConflictSeverity.INFO, False
    ),
    ReasonCategory.UNION_TIME: CategoryProfile(
        CategoryGroup.REDUCTION, ConflictSeverity.INFO, False
    ),
    ReasonCategory.COMPENSATION: CategoryProfile(
        CategoryGroup.EXTRA, ConflictSeverity.WARNING, False
    ),
    ReasonCategory.OVERTIME: CategoryProfile(
        CategoryGroup.EXTRA, ConflictSeverity.WARNING, True
    ),
    ReasonCategory.CUSTOM: CategoryProfile(
        CategoryGroup.CHANGE, ConflictSeverity.INFO, True
    ),
}

# Symmetric: an absence cannot coexist with any kind of work on the same day,
# and two reductions of the same day cannot both be honoured.
GROUP_CONFLICTS: dict[CategoryGroup, frozenset[CategoryGroup]] = {
    CategoryGroup.ABSENCE: frozenset(
        {CategoryGroup.CHANGE, CategoryGroup.REDUCTION, CategoryGroup.EXTRA}
    ),
    CategoryGroup.CHANGE: frozenset({CategoryGroup.ABSENCE}),
    CategoryGroup.REDUCTION: frozenset(
        {CategoryGroup.ABSENCE, CategoryGroup.REDUCTION}
    ),
    CategoryGroup.EXTRA: frozenset({CategoryGroup.ABSENCE}),
}


def profile_for(category: ReasonCategory) -> CategoryProfile:
    """Get the static profile for a reason category."""
    return CATEGORY_PROFILES[category]


def categories_conflict(first: ReasonCategory, second: ReasonCategory) -> bool:
    """Check whether two categories may not coexist on one day."""
    first_group = CATEGORY_PROFILES[first].group
    second_group = CATEGORY_PROFILES[second].group
    return second_group in GROUP_CONFLICTS[first_group]
