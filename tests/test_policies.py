"""Tests for exception policies."""

from datetime import date, datetime

import pytest

from rotacal.domain.categories import ReasonCategory
from rotacal.domain.models import REST, ApprovalStatus, ExceptionKind, ShiftException
from rotacal.domain.patterns import AFTERNOON
from rotacal.domain.policies import DefaultExceptionPolicy


def make_exception(**kwargs) -> ShiftException:
    defaults = dict(
        id="e1",
        subject_id="team-A",
        target_date=date(2024, 1, 7),
        kind=ExceptionKind.OVERRIDE,
        reason=ReasonCategory.SHIFT_SWAP,
        shift=AFTERNOON,
    )
    defaults.update(kwargs)
    return ShiftException(**defaults)


class TestDefaultExceptionPolicy:
    """Tests for DefaultExceptionPolicy."""

    def test_default_max_added_shifts(self):
        """At most three additional shifts per day by default."""
        assert DefaultExceptionPolicy().max_added_shifts() == 3

    def test_custom_max_added_shifts(self):
        """The maximum is configurable."""
        assert DefaultExceptionPolicy(max_added_shifts_per_day=1).max_added_shifts() == 1

    def test_negative_max_rejected(self):
        """A negative maximum makes no sense."""
        with pytest.raises(ValueError):
            DefaultExceptionPolicy(max_added_shifts_per_day=-1)

    def test_approved_applies(self):
        """Approved exceptions apply."""
        assert DefaultExceptionPolicy().is_applicable(make_exception()) is True

    def test_pending_does_not_apply_by_default(self):
        """Pending requests are ignored unless previewing."""
        exception = make_exception(approval=ApprovalStatus.PENDING)
        assert DefaultExceptionPolicy().is_applicable(exception) is False
        assert DefaultExceptionPolicy(apply_pending=True).is_applicable(exception) is True

    def test_rejected_never_applies(self):
        """Rejected and cancelled requests never apply, even when previewing."""
        policy = DefaultExceptionPolicy(apply_pending=True)
        assert policy.is_applicable(make_exception(approval=ApprovalStatus.REJECTED)) is False
        assert policy.is_applicable(make_exception(approval=ApprovalStatus.CANCELLED)) is False

    def test_draft_follows_category(self):
        """Drafts apply only for categories that need no approval."""
        policy = DefaultExceptionPolicy()
        swap = make_exception(approval=ApprovalStatus.DRAFT)
        vacation = make_exception(
            approval=ApprovalStatus.DRAFT,
            reason=ReasonCategory.VACATION,
            shift=REST,
        )
        assert policy.is_applicable(swap) is False
        assert policy.is_applicable(vacation) is True

    def test_superseded_never_applies(self):
        """Corrected exceptions are ignored."""
        exception = make_exception(superseded_at=datetime(2024, 1, 1))
        assert DefaultExceptionPolicy().is_applicable(exception) is False
