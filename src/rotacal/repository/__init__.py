"""Repository contract and in-memory implementation."""

from rotacal.repository.base import WorkScheduleRepository
from rotacal.repository.memory import (
    InMemoryWorkScheduleRepository,
    LogAction,
    LogEntry,
)

__all__ = [
    "InMemoryWorkScheduleRepository",
    "LogAction",
    "LogEntry",
    "WorkScheduleRepository",
]
