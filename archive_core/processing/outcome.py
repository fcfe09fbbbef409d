"""
Outcome values for processing tasks.

Tasks report how a requirements check or a run went by returning a
TaskOutcome rather than raising, so the Task Manager can map each result
onto a persisted task state.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class TaskStatus(Enum):
    """How a task attempt ended."""
    COMPLETED = "completed"     # Requirements met, or run finished
    DEFERRED = "deferred"       # Inputs not available yet; retry later
    FAILED = "failed"           # Cannot proceed or the run went wrong
    SKIPPED = "skipped"         # Not attempted (already running or complete)


@dataclass(frozen=True)
class TaskOutcome:
    status: TaskStatus
    reason: Optional[str] = None

    @classmethod
    def success(cls) -> 'TaskOutcome':
        return cls(TaskStatus.COMPLETED)

    @classmethod
    def deferred(cls, reason: str) -> 'TaskOutcome':
        return cls(TaskStatus.DEFERRED, reason)

    @classmethod
    def failed(cls, reason: str) -> 'TaskOutcome':
        return cls(TaskStatus.FAILED, reason)

    @classmethod
    def skipped(cls, reason: str) -> 'TaskOutcome':
        return cls(TaskStatus.SKIPPED, reason)

    @property
    def ok(self) -> bool:
        return self.status == TaskStatus.COMPLETED

    def __str__(self):
        if self.reason:
            return f"{self.status.value}: {self.reason}"
        return self.status.value
