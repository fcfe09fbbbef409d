"""
Tests for TaskManager.
"""

import pytest
from stub_tasks import make_stub

from archive_core.database.models import TaskStateValue
from archive_core.processing.outcome import TaskOutcome, TaskStatus
from archive_core.processing.task_manager import TaskManager
from archive_core.processing.tasks.base import RunCondition, TaskContext


class TestTaskManager:
    """Tests for the task life cycle."""

    @pytest.fixture(autouse=True)
    def setup(self, db, add_segment):
        self.db = db
        self.segment = add_segment()
        self.context = TaskContext(db=db, config={})
        self.manager = TaskManager()

    def _state(self, task_cls):
        return self.db.get_task_state(self.segment.segment_id, task_cls.name)

    def test_pending_task_runs_to_complete(self):
        """A never-run task is checked, purged, run and marked complete."""
        task_cls = make_stub("AlignmentTask")

        outcome = self.manager.run(task_cls(self.segment, self.context))

        assert outcome.status == TaskStatus.COMPLETED
        assert [c[0] for c in task_cls.calls] == ['check', 'purge', 'run']
        assert self._state(task_cls) == TaskStateValue.COMPLETE

    def test_running_task_is_skipped(self):
        """A task another processor is running is left alone."""
        task_cls = make_stub("AlignmentTask")
        self.db.update_task_state(self.segment.segment_id, task_cls.name, TaskStateValue.RUNNING)

        outcome = self.manager.run(task_cls(self.segment, self.context, RunCondition.ALWAYS))

        assert outcome.status == TaskStatus.SKIPPED
        assert task_cls.calls == []
        assert self._state(task_cls) == TaskStateValue.RUNNING

    def test_complete_task_skipped_when_as_needed(self):
        task_cls = make_stub("AlignmentTask")
        self.db.update_task_state(self.segment.segment_id, task_cls.name, TaskStateValue.COMPLETE)

        outcome = self.manager.run(task_cls(self.segment, self.context))

        assert outcome.status == TaskStatus.SKIPPED
        assert task_cls.calls == []

    def test_complete_task_reruns_when_always(self):
        """Forced rerun purges and runs a complete task again."""
        task_cls = make_stub("AlignmentTask")
        self.db.update_task_state(self.segment.segment_id, task_cls.name, TaskStateValue.COMPLETE)

        outcome = self.manager.run(task_cls(self.segment, self.context, RunCondition.ALWAYS))

        assert outcome.ok
        assert [c[0] for c in task_cls.calls] == ['check', 'purge', 'run']
        assert self._state(task_cls) == TaskStateValue.COMPLETE

    def test_failed_task_reruns(self):
        """Failed is not a terminal state; the next pass tries again."""
        task_cls = make_stub("AlignmentTask")
        self.db.update_task_state(self.segment.segment_id, task_cls.name, TaskStateValue.FAILED)

        outcome = self.manager.run(task_cls(self.segment, self.context))

        assert outcome.ok
        assert self._state(task_cls) == TaskStateValue.COMPLETE

    def test_deferred_requirements_leave_task_pending(self):
        """Missing inputs never mark a task failed."""
        task_cls = make_stub("CaptioningTask", requirements=TaskOutcome.deferred("Transcript has not been aligned."))

        outcome = self.manager.run(task_cls(self.segment, self.context))

        assert outcome.status == TaskStatus.DEFERRED
        assert [c[0] for c in task_cls.calls] == ['check']
        assert self._state(task_cls) == TaskStateValue.PENDING

    def test_failed_requirements_mark_task_failed(self):
        task_cls = make_stub("SpacyTask", requirements=TaskOutcome.failed("No spaCy NLP command configured."))

        outcome = self.manager.run(task_cls(self.segment, self.context))

        assert outcome.status == TaskStatus.FAILED
        assert [c[0] for c in task_cls.calls] == ['check']
        assert self._state(task_cls) == TaskStateValue.FAILED

    def test_failed_run_marks_task_failed(self):
        task_cls = make_stub("TranscodingTask", result=TaskOutcome.failed("Duration delta too large."))

        outcome = self.manager.run(task_cls(self.segment, self.context))

        assert outcome.status == TaskStatus.FAILED
        assert outcome.reason == "Duration delta too large."
        assert self._state(task_cls) == TaskStateValue.FAILED

    def test_exception_in_run_marks_task_failed(self):
        """Unexpected errors are contained and recorded as failures."""
        task_cls = make_stub("AlignmentTask", error=RuntimeError("gentle crashed"))

        outcome = self.manager.run(task_cls(self.segment, self.context))

        assert outcome.status == TaskStatus.FAILED
        assert "gentle crashed" in outcome.reason
        assert self._state(task_cls) == TaskStateValue.FAILED

    def test_exception_in_requirements_marks_task_failed(self):
        task_cls = make_stub("AlignmentTask")

        class Exploding(task_cls):
            def check_requirements(self):
                raise ValueError("bad segment")

        outcome = self.manager.run(Exploding(self.segment, self.context))

        assert outcome.status == TaskStatus.FAILED
        assert self._state(task_cls) == TaskStateValue.FAILED
        assert task_cls.calls == []
