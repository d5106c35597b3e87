"""Policy definitions for exception handling.

Policies decide which exceptions take part in resolution and how many
additional shifts a day may carry. They are kept separate from the
resolver so the rules can be tested and swapped independently.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass

from rotacal.domain.models import ApprovalStatus, ShiftException


class ExceptionPolicy(ABC):
    """Abstract base class for exception policies."""

    @abstractmethod
    def max_added_shifts(self) -> int:
        """Maximum number of ADD exceptions allowed for one subject and date."""
        pass

    @abstractmethod
    def is_applicable(self, exception: ShiftException) -> bool:
        """Check if an exception should change the generated schedule.

        Args:
            exception: A live exception returned by the repository.

        Returns:
            True if the exception takes part in resolution.
        """
        pass


@dataclass
class DefaultExceptionPolicy(ExceptionPolicy):
    """Default exception policy implementation.

    - At most three additional shifts per day
    - Only effective exceptions apply (approved, or drafts whose category
      needs no approval)
    - Pending requests can optionally be previewed as if approved
    """

    max_added_shifts_per_day: int = 3
    apply_pending: bool = False

    def __post_init__(self):
        if self.max_added_shifts_per_day < 0:
            raise ValueError("max_added_shifts_per_day cannot be negative")

    def max_added_shifts(self) -> int:
        return self.max_added_shifts_per_day

    def is_applicable(self, exception: ShiftException) -> bool:
        if not exception.is_live:
            return False
        if exception.is_effective:
            return True
        return self.apply_pending and exception.approval == ApprovalStatus.PENDING
