"""
Stand-in tasks for exercising the processing machinery without external tools.
"""

from typing import List, Optional, Tuple, Type

from archive_core.processing.outcome import TaskOutcome
from archive_core.processing.tasks import KNOWN_TASK_NAMES
from archive_core.processing.tasks.base import AbstractTask


class StubTask(AbstractTask):
    """Records purge/run calls and returns configured outcomes."""

    requirements: TaskOutcome = TaskOutcome.success()
    result: TaskOutcome = TaskOutcome.success()
    error: Optional[Exception] = None
    calls: List[Tuple[str, int, str]] = None

    def check_requirements(self) -> TaskOutcome:
        type(self).calls.append(('check', self.segment_id, self.name))
        return type(self).requirements

    def purge(self) -> None:
        type(self).calls.append(('purge', self.segment_id, self.name))

    def run(self) -> TaskOutcome:
        type(self).calls.append(('run', self.segment_id, self.name))
        if type(self).error is not None:
            raise type(self).error
        return type(self).result


def make_stub(name: str, **attrs) -> Type[StubTask]:
    attrs.setdefault('calls', [])
    return type(StubTask)(name, (StubTask,), dict(name=name, option=None, **attrs))


def stub_catalog(**overrides) -> List[Type[StubTask]]:
    """One stub per real task name, in catalog order; overrides keyed by task name."""
    return [make_stub(name, **overrides.get(name, {})) for name in KNOWN_TASK_NAMES]


def calls_of(catalog, kind: str) -> List[str]:
    """Names of the stub tasks that recorded a call of the given kind."""
    return [task.name for task in catalog if any(call[0] == kind for call in task.calls)]
