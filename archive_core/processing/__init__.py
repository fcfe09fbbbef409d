"""
Processing Module
=================

Segment processing: tasks, the task state machine, per-segment locks and
session auto-publishing.
"""

from .outcome import TaskOutcome, TaskStatus
from .task_manager import TaskManager
from .semaphore_manager import SemaphoreManager
from .segment_processor import ProcessingOptions, SegmentProcessor, compute_ready_state
from .auto_publisher import AutoPublisher, AutoPublishResult
from .tasks import TASK_CATALOG, KNOWN_TASK_NAMES

__all__ = [
    'TaskOutcome',
    'TaskStatus',
    'TaskManager',
    'SemaphoreManager',
    'ProcessingOptions',
    'SegmentProcessor',
    'compute_ready_state',
    'AutoPublisher',
    'AutoPublishResult',
    'TASK_CATALOG',
    'KNOWN_TASK_NAMES',
]
