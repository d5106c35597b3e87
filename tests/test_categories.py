"""Tests for reason categories and the conflict matrix."""

from itertools import product

import pytest

from rotacal.domain.categories import (
    CATEGORY_PROFILES,
    GROUP_CONFLICTS,
    CategoryGroup,
    ConflictSeverity,
    ReasonCategory,
    categories_conflict,
    profile_for,
)


class TestCategoryProfiles:
    """Tests for the category lookup table."""

    def test_every_category_has_a_profile(self):
        """No category is missing from the table."""
        assert set(CATEGORY_PROFILES) == set(ReasonCategory)

    def test_every_group_has_a_conflict_set(self):
        """No group is missing from the matrix."""
        assert set(GROUP_CONFLICTS) == set(CategoryGroup)

    def test_sick_leave_profile(self):
        """Sick leave is an absence of critical severity without approval."""
        profile = profile_for(ReasonCategory.SICK_LEAVE)
        assert profile.group == CategoryGroup.ABSENCE
        assert profile.severity == ConflictSeverity.CRITICAL
        assert profile.requires_approval is False
        assert profile.full_day is True

    def test_shift_swap_requires_approval(self):
        """Swaps must be approved before they apply."""
        assert profile_for(ReasonCategory.SHIFT_SWAP).requires_approval is True


class TestConflictMatrix:
    """Tests for categories_conflict."""

    def test_matrix_is_symmetric(self):
        """If A conflicts with B then B conflicts with A."""
        for first, second in product(ReasonCategory, repeat=2):
            assert categories_conflict(first, second) == categories_conflict(
                second, first
            )

    @pytest.mark.parametrize(
        "first,second",
        [
            (ReasonCategory.VACATION, ReasonCategory.COMPENSATION),
            (ReasonCategory.SICK_LEAVE, ReasonCategory.SHIFT_SWAP),
            (ReasonCategory.SPECIAL_LEAVE, ReasonCategory.UNION_TIME),
            (ReasonCategory.PERSONAL_REDUCTION, ReasonCategory.ROL_REDUCTION),
        ],
    )
    def test_conflicting_pairs(self, first, second):
        """Absence against work, and two reductions, conflict."""
        assert categories_conflict(first, second) is True

    @pytest.mark.parametrize(
        "first,second",
        [
            (ReasonCategory.VACATION, ReasonCategory.SICK_LEAVE),
            (ReasonCategory.SHIFT_SWAP, ReasonCategory.COMPANY_CHANGE),
            (ReasonCategory.SHIFT_SWAP, ReasonCategory.OVERTIME),
            (ReasonCategory.COMPENSATION, ReasonCategory.OVERTIME),
        ],
    )
    def test_compatible_pairs(self, first, second):
        """Two absences, or two kinds of work, can coexist."""
        assert categories_conflict(first, second) is False
