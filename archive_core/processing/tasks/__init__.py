"""
Segment processing tasks.

TASK_CATALOG is the fixed order in which tasks run on a segment; each
task's inputs are produced by the ones before it.
"""

from .base import AbstractTask, RunCondition, TaskContext
from .transcoding import TranscodingTask
from .keyframe import KeyFrameTask
from .alignment import AlignmentTask
from .captioning import CaptioningTask
from .ner import SpacyTask, StanfordTask
from .entity_resolution import EntityResolutionTask

TASK_CATALOG = (
    TranscodingTask,
    KeyFrameTask,
    AlignmentTask,
    CaptioningTask,
    SpacyTask,
    StanfordTask,
    EntityResolutionTask,
)

KNOWN_TASK_NAMES = tuple(task.name for task in TASK_CATALOG)

__all__ = [
    'AbstractTask',
    'RunCondition',
    'TaskContext',
    'TranscodingTask',
    'KeyFrameTask',
    'AlignmentTask',
    'CaptioningTask',
    'SpacyTask',
    'StanfordTask',
    'EntityResolutionTask',
    'TASK_CATALOG',
    'KNOWN_TASK_NAMES',
]
