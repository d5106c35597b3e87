"""Opt-in caching of generated schedules.

Entries are keyed by subject, range and a fingerprint of the assignments
and exceptions the schedule was computed from, so a change to a subject's
data can never return a stale schedule. Entries are also dropped eagerly
when the repository reports a change.
"""

import hashlib
import json
import logging
import threading
from collections import OrderedDict
from dataclasses import dataclass
from datetime import date
from typing import Optional, Union

from rotacal.domain.errors import RepositoryError
from rotacal.domain.models import (
    CycleDay,
    RecurrenceRule,
    ScheduleAssignment,
    ShiftException,
    WorkScheduleDay,
)
from rotacal.scheduling.engine import SchedulingEngine

logger = logging.getLogger(__name__)

CacheKey = tuple[str, date, date, str]


def fingerprint(
    assignments: list[ScheduleAssignment],
    exceptions: list[ShiftException],
) -> str:
    """Compute a SHA-256 digest of the data a schedule depends on.

    Record order does not matter.
    """
    assignment_rows = sorted(
        json.dumps(
            [
                a.id,
                a.subject_id,
                a.rule_ref,
                _rule_fields(a.custom_rule),
                a.start_date,
                a.end_date,
                a.superseded_at,
            ],
            default=str,
        )
        for a in assignments
    )
    exception_rows = sorted(
        json.dumps(
            [
                e.id,
                e.target_date,
                e.kind.value,
                _shift_fields(e.shift),
                e.reason.value,
                e.approval.value,
                e.severity.name,
                e.created_at,
                e.superseded_at,
            ],
            default=str,
        )
        for e in exceptions
    )
    digest = hashlib.sha256()
    for row in ["assignments"] + assignment_rows + ["exceptions"] + exception_rows:
        digest.update(row.encode("utf-8"))
        digest.update(b"\n")
    return digest.hexdigest()


def _shift_fields(shift: Optional[CycleDay]) -> Union[list, str, None]:
    if shift is None:
        return None
    if shift.is_rest:
        return shift.id
    return [
        shift.id,
        shift.name,
        shift.start_time.isoformat(),
        shift.end_time.isoformat(),
        shift.break_minutes,
    ]


def _rule_fields(rule: Optional[RecurrenceRule]) -> Optional[list]:
    if rule is None:
        return None
    return [
        rule.id,
        rule.anchor_date,
        rule.cycle_length_days,
        [_shift_fields(entry) for entry in rule.cycle_shifts],
    ]


@dataclass
class CacheStats:
    """Hit and miss counters."""

    hits: int = 0
    misses: int = 0
    invalidations: int = 0


class ScheduleCache:
    """Thread-safe LRU store of generated schedules."""

    def __init__(self, max_entries: int = 256):
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self.max_entries = max_entries
        self.stats = CacheStats()
        self._entries: OrderedDict[CacheKey, tuple[WorkScheduleDay, ...]] = (
            OrderedDict()
        )
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def get(self, key: CacheKey) -> Optional[list[WorkScheduleDay]]:
        with self._lock:
            days = self._entries.get(key)
            if days is None:
                self.stats.misses += 1
                return None
            self._entries.move_to_end(key)
            self.stats.hits += 1
            return list(days)

    def put(self, key: CacheKey, days: list[WorkScheduleDay]) -> None:
        with self._lock:
            self._entries[key] = tuple(days)
            self._entries.move_to_end(key)
            while len(self._entries) > self.max_entries:
                self._entries.popitem(last=False)

    def invalidate(self, subject_id: str) -> int:
        """Drop every entry of a subject.

        Returns:
            Number of entries removed.
        """
        with self._lock:
            stale = [key for key in self._entries if key[0] == subject_id]
            for key in stale:
                del self._entries[key]
            self.stats.invalidations += 1
        if stale:
            logger.debug("Invalidated %d cached schedules for %s", len(stale), subject_id)
        return len(stale)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()


class CachedScheduler:
    """Wraps a SchedulingEngine with a ScheduleCache.

    If the engine's repository accepts change listeners, the cache subscribes
    to them and invalidates a subject as soon as its data changes.

    Example:
        >>> scheduler = CachedScheduler(SchedulingEngine(repo))
        >>> days = scheduler.generate_schedule("team-A", start, end)
    """

    def __init__(self, engine: SchedulingEngine, cache: Optional[ScheduleCache] = None):
        self.engine = engine
        self.cache = cache or ScheduleCache()

        add_listener = getattr(engine.repository, "add_listener", None)
        if callable(add_listener):
            add_listener(self.cache.invalidate)

    def generate_schedule(
        self, subject_id: str, start: date, end: date
    ) -> list[WorkScheduleDay]:
        """Return a cached schedule when the underlying data is unchanged."""
        self.engine.check_range(start, end)
        repository = self.engine.repository
        try:
            digest = fingerprint(
                repository.get_active_assignments(subject_id, start, end),
                repository.get_exceptions(subject_id, start, end),
            )
        except RepositoryError as e:
            logger.warning("Cannot fingerprint %s, bypassing cache: %s", subject_id, e)
            return self.engine.generate_schedule(subject_id, start, end)

        key = (subject_id, start, end, digest)
        cached = self.cache.get(key)
        if cached is not None:
            return cached

        days = self.engine.generate_schedule(subject_id, start, end)
        # Degraded results are retried on the next call.
        if not any(day.is_error for day in days):
            self.cache.put(key, days)
        return days

    def generate_for_single_date(self, subject_id: str, d: date) -> WorkScheduleDay:
        return self.generate_schedule(subject_id, d, d)[0]

    def invalidate(self, subject_id: str) -> int:
        return self.cache.invalidate(subject_id)
