"""Base-pattern calculation for recurrence rules.

All functions here are pure: they read a rule and a date and never touch
the repository.
"""

from datetime import date, timedelta
from typing import Iterator, Optional

from rotacal.domain.models import CycleDay, RecurrenceRule


class RecurrenceCalculator:
    """Computes base shifts from a recurrence rule.

    The pattern extends infinitely in both directions from the anchor, so
    any date has a base shift.

    Example:
        >>> calc = RecurrenceCalculator()
        >>> calc.compute_base_shift(rule, date(2024, 1, 7))
        ShiftCode(MORNING 05:00-13:00)
    """

    @staticmethod
    def cycle_index(rule: RecurrenceRule, d: date) -> int:
        """Get the non-negative position of a date within the rule's cycle."""
        n = rule.cycle_length_days
        offset = (d - rule.anchor_date).days
        return ((offset % n) + n) % n

    def compute_base_shift(self, rule: RecurrenceRule, d: date) -> CycleDay:
        """Get the shift (or REST) the pattern prescribes on a date.

        Args:
            rule: A constructed (hence valid) recurrence rule.
            d: Any date, before or after the anchor.

        Returns:
            The cycle entry for the date.
        """
        return rule.cycle_shifts[self.cycle_index(rule, d)]

    def base_shifts(
        self,
        rule: RecurrenceRule,
        start: date,
        end: date,
    ) -> Iterator[tuple[date, CycleDay]]:
        """Yield (date, base shift) for each day of an inclusive range."""
        for i in range((end - start).days + 1):
            current = start + timedelta(days=i)
            yield current, self.compute_base_shift(rule, current)

    def is_working_day(self, rule: RecurrenceRule, d: date) -> bool:
        return not self.compute_base_shift(rule, d).is_rest

    def next_working_day(self, rule: RecurrenceRule, after: date) -> Optional[date]:
        """Get the first working day strictly after a date.

        Returns:
            The date, or None if the rule has no working days or the
            calendar ends first.
        """
        return self._search(rule, after, 1)

    def previous_working_day(
        self, rule: RecurrenceRule, before: date
    ) -> Optional[date]:
        """Get the last working day strictly before a date."""
        return self._search(rule, before, -1)

    def count_working_days(self, rule: RecurrenceRule, start: date, end: date) -> int:
        """Count working days in an inclusive range.

        Whole cycles are counted arithmetically; only the remainder is
        walked day by day.
        """
        if end < start:
            return 0
        total_days = (end - start).days + 1
        full_cycles, remainder = divmod(total_days, rule.cycle_length_days)
        count = full_cycles * rule.work_days
        # The tail is the last `remainder` days of the range.
        for i in range(remainder):
            if self.is_working_day(rule, end - timedelta(days=i)):
                count += 1
        return count

    def _search(self, rule: RecurrenceRule, origin: date, step: int) -> Optional[date]:
        # One full cycle is enough: the pattern repeats afterwards.
        if rule.work_days == 0:
            return None
        for i in range(1, rule.cycle_length_days + 1):
            try:
                candidate = origin + timedelta(days=i * step)
            except OverflowError:
                return None
            if self.is_working_day(rule, candidate):
                return candidate
        return None
