"""Schedule generation: base patterns, assignments and exceptions."""

from rotacal.scheduling.assignments import (
    AssignmentResolver,
    plan_assignment,
    validate_non_overlapping,
)
from rotacal.scheduling.cache import CachedScheduler, ScheduleCache
from rotacal.scheduling.engine import EngineConfig, SchedulingEngine
from rotacal.scheduling.exceptions import ExceptionResolver, ResolutionResult
from rotacal.scheduling.recurrence import RecurrenceCalculator

__all__ = [
    # Engine
    "SchedulingEngine",
    "EngineConfig",
    # Caching
    "CachedScheduler",
    "ScheduleCache",
    # Building blocks
    "AssignmentResolver",
    "ExceptionResolver",
    "RecurrenceCalculator",
    "ResolutionResult",
    "plan_assignment",
    "validate_non_overlapping",
]
