"""
Segment processing: lock a segment, run its tasks in order, record its
readiness and let the auto-publisher look at its session.
"""

from dataclasses import dataclass
from typing import Dict, Iterable, Optional, Sequence, Set, Type, Union

from archive_core.database.manager import DatabaseManager
from archive_core.database.models import ReadyStateValue, Segment, TaskStateValue
from archive_core.processing.semaphore_manager import SemaphoreManager
from archive_core.processing.task_manager import TaskManager
from archive_core.processing.tasks import TASK_CATALOG
from archive_core.processing.tasks.base import AbstractTask, RunCondition, TaskContext
from archive_core.utils.logger import setup_worker_logger

logger = setup_worker_logger('segment_processor')

SEPARATOR = "-" * 80


@dataclass
class ProcessingOptions:
    """Which steps to run, and whether to re-run completed or failed ones."""
    video: bool = True
    keyframe: bool = True
    alignment: bool = True
    captions: bool = True
    spacy: bool = True
    stanford: bool = True
    entities: bool = True
    force_rerun: bool = False

    def enabled(self, task_cls: Type[AbstractTask]) -> bool:
        if task_cls.option is None:
            return True
        return bool(getattr(self, task_cls.option, True))

    @property
    def run_condition(self) -> RunCondition:
        return RunCondition.ALWAYS if self.force_rerun else RunCondition.AS_NEEDED


def compute_ready_state(task_states: Iterable[TaskStateValue]) -> ReadyStateValue:
    """Failed if any task failed, Ready if all are complete, otherwise NotReady."""
    states = list(task_states)
    if any(state == TaskStateValue.FAILED for state in states):
        return ReadyStateValue.FAILED
    if all(state == TaskStateValue.COMPLETE for state in states):
        return ReadyStateValue.READY
    return ReadyStateValue.NOT_READY


class SegmentProcessor:
    """Processes segments one at a time under a per-segment lock.

    Args:
        db: Data access
        semaphores: Lock manager for this process
        auto_publisher: Notified with the session id after each segment (may be None)
        config: Loaded configuration, handed to tasks
        options: Enabled steps and force-rerun flag
        task_manager: Runs individual tasks
        task_catalog: Ordered task classes (defaults to TASK_CATALOG)
        entity_lookups: Shared lookup tables for entity resolution
    """

    def __init__(
        self,
        db: DatabaseManager,
        semaphores: SemaphoreManager,
        auto_publisher=None,
        config: Optional[Dict] = None,
        options: Optional[ProcessingOptions] = None,
        task_manager: Optional[TaskManager] = None,
        task_catalog: Sequence[Type[AbstractTask]] = TASK_CATALOG,
        entity_lookups=None
    ):
        self.db = db
        self.semaphores = semaphores
        self.auto_publisher = auto_publisher
        self.options = options or ProcessingOptions()
        self.task_manager = task_manager or TaskManager()
        self.task_catalog = tuple(task_catalog)
        self.context = TaskContext(db=db, config=config or {}, entity_lookups=entity_lookups)
        self.halt = False

    @property
    def known_task_names(self):
        return tuple(task_cls.name for task_cls in self.task_catalog)

    def process_segment(self, identifier: Union[int, str]) -> Optional[ReadyStateValue]:
        """Process one segment given its id (int) or name (str).

        Returns:
            The segment's new ready state, or None if it could not be processed
        """
        segment = self.db.get_segment(identifier)
        if segment is None:
            kind = "id" if isinstance(identifier, int) else "name"
            logger.error(f"Could not retrieve segment with {kind} = \"{identifier}\". Processing aborted.")
            return None
        return self._process(segment)

    def process_segments(self) -> int:
        """Process every segment that still needs work, until none is left or halt is set.

        Each segment is attempted at most once per call, so a segment whose
        tasks keep deferring waits for the next call. A segment locked by
        another processor between selection and locking is skipped.

        Returns:
            Number of segments processed under this processor's lock
        """
        attempted: Set[int] = set()
        processed = 0
        while not self.halt:
            segment = self.db.get_next_segment_to_process(
                include_failures=self.options.force_rerun,
                exclude_ids=attempted
            )
            if segment is None:
                logger.info("No more segments to process.")
                break
            attempted.add(segment.segment_id)
            if self._lock(segment.segment_id):
                processed += 1
                self._process_locked(segment)

        if self.halt:
            logger.warning("Processing halted by request.")
        return processed

    def _lock(self, segment_id: int) -> bool:
        if not self.semaphores.request(segment_id):
            logger.error(f"Could not obtain lock on segment {segment_id}, processing aborted.")
            return False
        return True

    def _process(self, segment: Segment) -> Optional[ReadyStateValue]:
        if not self._lock(segment.segment_id):
            return None
        return self._process_locked(segment)

    def _process_locked(self, segment: Segment) -> Optional[ReadyStateValue]:
        """Run the tasks of a segment this processor has locked, then release it."""
        segment_id = segment.segment_id
        ready = None
        try:
            logger.info(f"Segment {segment_id} \"{segment.segment_name}\" locked for processing.")
            run_condition = self.options.run_condition

            for task_cls in self.task_catalog:
                if not self.options.enabled(task_cls):
                    continue
                logger.info(SEPARATOR)
                task = task_cls(segment, self.context, run_condition)
                self.task_manager.run(task)
                # Later tasks read what earlier ones wrote
                segment = task.segment

            logger.info(SEPARATOR)
            ready = self.update_ready_state(segment_id)
            logger.info(f"Segment Ready flag set to: {ready.name}")

            if self.auto_publisher is not None:
                self.auto_publisher.check_session(segment.session_id)

        except Exception as e:
            logger.exception(f"Error processing segment {segment_id}: {e}")
        finally:
            self.semaphores.release(segment_id)
            logger.info(f"Semaphore lock on segment {segment_id} released.")
            logger.info("Processing Complete.")
            logger.info(SEPARATOR)

        return ready

    def update_ready_state(self, segment_id: int) -> ReadyStateValue:
        """Recompute and persist a segment's readiness from its task states."""
        states = self.db.get_task_states(segment_id, self.known_task_names)
        ready = compute_ready_state(states.values())
        self.db.update_ready_state(segment_id, ready)
        return ready
