"""
Base class for segment processing tasks.

A task performs one processing step for one segment. It exposes three
phases the Task Manager drives in order: check_requirements, purge, run.
Requirements and run report a TaskOutcome; anything raised is treated by
the Task Manager as an unexpected failure.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional

from archive_core.database.manager import DatabaseManager
from archive_core.database.models import Segment, TaskStateValue
from archive_core.processing.outcome import TaskOutcome
from archive_core.utils.paths import get_build_path, get_segment_data_path


class RunCondition(Enum):
    """Whether a task re-runs once it has completed."""
    AS_NEEDED = "as_needed"     # Skip when already complete
    ALWAYS = "always"           # Re-run even when complete


@dataclass
class TaskContext:
    """Services shared by every task built during a processing run."""
    db: DatabaseManager
    config: Dict[str, Any]
    entity_lookups: Optional[Any] = None


class AbstractTask(ABC):
    """One processing step applied to one segment.

    Subclasses set `name` (the persisted task name) and `option` (the
    ProcessingOptions flag that enables the step).
    """

    name: str = None
    option: Optional[str] = None

    def __init__(self, segment: Segment, context: TaskContext, run_condition: RunCondition = RunCondition.AS_NEEDED):
        if not self.name:
            raise TypeError(f"{type(self).__name__} must define a task name")
        self.segment = segment
        self.context = context
        self.run_condition = run_condition

    @property
    def db(self) -> DatabaseManager:
        return self.context.db

    @property
    def config(self) -> Dict[str, Any]:
        return self.context.config

    @property
    def segment_id(self) -> int:
        return self.segment.segment_id

    @property
    def state(self) -> TaskStateValue:
        """Persisted state of this task for this segment; Pending if never recorded."""
        return self.db.get_task_state(self.segment_id, self.name)

    @state.setter
    def state(self, value: TaskStateValue) -> None:
        self.db.update_task_state(self.segment_id, self.name, value)

    @property
    def build_path(self) -> Path:
        return get_build_path(self.config)

    @property
    def data_path(self) -> Path:
        """Folder for this segment's intermediate files."""
        return get_segment_data_path(self.config, self.segment.collection_id, self.segment_id)

    @property
    def tool_timeout(self) -> Optional[int]:
        return self.config.get('tools', {}).get('timeout_seconds')

    def check_transcript(self) -> Optional[TaskOutcome]:
        """Deferral when the segment has no usable transcript yet, else None."""
        if self.segment.transcript_text is None:
            return TaskOutcome.deferred("Transcript is null.")
        if not self.segment.transcript_text.strip():
            return TaskOutcome.deferred("Transcript is empty.")
        return None

    def reload_segment(self) -> None:
        """Pick up changes other steps (or purge) made to the segment row."""
        self.segment = self.db.reload_segment(self.segment)

    @abstractmethod
    def check_requirements(self) -> TaskOutcome:
        """Check that inputs are in place.

        Returns:
            success(), deferred(reason) when inputs are not available yet,
            or failed(reason) when the task can never run as configured
        """
        pass

    @abstractmethod
    def purge(self) -> None:
        """Remove output a previous run of this task produced for the segment."""
        pass

    @abstractmethod
    def run(self) -> TaskOutcome:
        """Do the work.

        Returns:
            success() or failed(reason)
        """
        pass

    def __repr__(self):
        return f"<{type(self).__name__}(segment={self.segment_id}, condition={self.run_condition.value})>"
