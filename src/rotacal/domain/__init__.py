"""Domain models and business rules for schedule generation."""

from rotacal.domain.categories import (
    CATEGORY_PROFILES,
    CategoryGroup,
    CategoryProfile,
    ConflictSeverity,
    ReasonCategory,
    categories_conflict,
    profile_for,
)
from rotacal.domain.errors import (
    AssignmentConflictError,
    AssignmentValidationError,
    ConfigurationError,
    ExceptionValidationError,
    InvalidRangeError,
    RepositoryError,
    RuleNotFoundError,
    RuleValidationError,
    SchedulingError,
)
from rotacal.domain.models import (
    REST,
    ApprovalStatus,
    ConflictKind,
    DayStatus,
    ExceptionKind,
    Provenance,
    RecurrenceRule,
    ResolvedShift,
    Rest,
    ScheduleAssignment,
    ScheduleConflict,
    ScheduleStats,
    ShiftCode,
    ShiftException,
    SubjectKind,
    WorkScheduleDay,
)
from rotacal.domain.policies import DefaultExceptionPolicy, ExceptionPolicy

__all__ = [
    # Models
    "REST",
    "ApprovalStatus",
    "ConflictKind",
    "DayStatus",
    "ExceptionKind",
    "Provenance",
    "RecurrenceRule",
    "ResolvedShift",
    "Rest",
    "ScheduleAssignment",
    "ScheduleConflict",
    "ScheduleStats",
    "ShiftCode",
    "ShiftException",
    "SubjectKind",
    "WorkScheduleDay",
    # Categories
    "CATEGORY_PROFILES",
    "CategoryGroup",
    "CategoryProfile",
    "ConflictSeverity",
    "ReasonCategory",
    "categories_conflict",
    "profile_for",
    # Errors
    "AssignmentConflictError",
    "AssignmentValidationError",
    "ConfigurationError",
    "ExceptionValidationError",
    "InvalidRangeError",
    "RepositoryError",
    "RuleNotFoundError",
    "RuleValidationError",
    "SchedulingError",
    # Policies
    "DefaultExceptionPolicy",
    "ExceptionPolicy",
]
