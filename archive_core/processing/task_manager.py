"""
Runs a single task through its life cycle and records the resulting state.

    Pending  --run-->  Running  --> Complete   (requirements met, run succeeded)
                                --> Pending    (requirements deferred)
                                --> Failed     (requirements failed, run failed, or error)

A task already Running elsewhere is never touched, and a Complete task is
only re-run when its run condition is ALWAYS.
"""

import time

from archive_core.database.models import TaskStateValue
from archive_core.processing.outcome import TaskOutcome, TaskStatus
from archive_core.processing.tasks.base import AbstractTask, RunCondition
from archive_core.utils.logger import setup_worker_logger

logger = setup_worker_logger('task_manager')


class TaskManager:
    """Drives check_requirements -> purge -> run for one task at a time."""

    def _settle(self, task: AbstractTask, outcome: TaskOutcome, phase: str) -> TaskOutcome:
        """Record the state for a non-successful outcome of a phase."""
        if outcome.status == TaskStatus.DEFERRED:
            logger.warning(outcome.reason or f"{task.name} requirements not met.")
            logger.warning(f"{task.name} will not be run.")
            task.state = TaskStateValue.PENDING
        else:
            logger.error(outcome.reason or f"{task.name} {phase} failed.")
            logger.error(f"{task.name} failed.")
            task.state = TaskStateValue.FAILED
            if outcome.status != TaskStatus.FAILED:
                outcome = TaskOutcome.failed(f"{phase} returned unexpected status {outcome.status.value}")
        return outcome

    def run(self, task: AbstractTask) -> TaskOutcome:
        """Run a task if its persisted state allows it.

        Never raises; every problem ends up in the task state and the log.

        Returns:
            The outcome: SKIPPED, COMPLETED, DEFERRED or FAILED
        """
        logger.info(f"QUEUEING: {task.name} on segment {task.segment_id}.")
        started = time.time()

        try:
            state = task.state

            if state == TaskStateValue.RUNNING:
                logger.info(f"SKIPPING: {task.name}. The database claims this task is currently running on segment {task.segment_id}.")
                return TaskOutcome.skipped("already running")

            if state == TaskStateValue.COMPLETE and task.run_condition != RunCondition.ALWAYS:
                logger.info(f"SKIPPING: {task.name}. This task was run previously for segment {task.segment_id}.")
                return TaskOutcome.skipped("already complete")

            logger.info(f"Initializing {task.name}.")
            task.state = TaskStateValue.RUNNING

            logger.info("Checking requirements.")
            outcome = task.check_requirements()
            if not outcome.ok:
                return self._settle(task, outcome, "requirements check")

            logger.info(f"Purging prior {task.name} results.")
            task.purge()

            logger.info(f"Running {task.name}.")
            outcome = task.run()
            if not outcome.ok:
                return self._settle(task, outcome, "run")

            task.state = TaskStateValue.COMPLETE
            logger.info(f"{task.name} completed successfully ({time.time() - started:.1f}s).")
            return outcome

        except Exception as e:
            logger.exception(f"Unexpected error in {task.name} on segment {task.segment_id}: {e}")
            logger.error(f"{task.name} failed to run due to unexpected error.")
            try:
                task.state = TaskStateValue.FAILED
            except Exception as state_error:
                logger.error(f"Could not record failure of {task.name}: {state_error}")
            return TaskOutcome.failed(f"unexpected error: {e}")
