"""
Publishes a session for review once every one of its segments has settled.

A session is examined after each of its segments is processed. While any
segment still has pending work nothing happens; once all segments are
Ready the session is published to the review environment, and if any
segment ended in failure the processing team gets an error report instead.
"""

from enum import Enum
from typing import Dict, List, Optional, Sequence, Tuple

from archive_core.database.manager import DatabaseManager
from archive_core.database.models import ReadyStateValue, TaskStateValue
from archive_core.processing.tasks import KNOWN_TASK_NAMES
from archive_core.reporting.notifications import Notifier
from archive_core.storage.publisher import ContentPublisher, Environment
from archive_core.utils.logger import setup_worker_logger

logger = setup_worker_logger('auto_publisher')


class AutoPublishResult(Enum):
    DISABLED = "disabled"
    NOT_FOUND = "not_found"
    INCOMPLETE = "incomplete"
    FAILED = "failed"
    PUBLISHED = "published"
    PUBLISH_FAILED = "publish_failed"


class AutoPublisher:
    """Decides what to do with a session after one of its segments is processed.

    Args:
        db: Data access
        publisher: Uploads sessions to an environment
        notifier: Sends the processing team notifications
        config: Loaded configuration (reads processing.auto_publish)
        known_task_names: Tasks whose states decide whether a segment is still pending
    """

    def __init__(
        self,
        db: DatabaseManager,
        publisher: ContentPublisher,
        notifier: Notifier,
        config: Optional[Dict] = None,
        known_task_names: Sequence[str] = KNOWN_TASK_NAMES
    ):
        self.db = db
        self.publisher = publisher
        self.notifier = notifier
        self.config = config or {}
        self.known_task_names = tuple(known_task_names)

    @property
    def enabled(self) -> bool:
        return bool(self.config.get('processing', {}).get('auto_publish', True))

    def _has_pending_task(self, segment_id: int) -> bool:
        states = self.db.get_task_states(segment_id, self.known_task_names)
        return any(state == TaskStateValue.PENDING for state in states.values())

    def check_session(self, session_id: int) -> AutoPublishResult:
        """
        Publish or report on a session if all of its segments are finished.

        Args:
            session_id: Session to examine

        Returns:
            What was done
        """
        if not self.enabled:
            logger.warning("Auto-publishing is disabled; session will not be published.")
            return AutoPublishResult.DISABLED

        interview_session = self.db.get_interview_session(session_id)
        if interview_session is None:
            logger.error(f"Could not load session {session_id}; auto-publishing skipped.")
            return AutoPublishResult.NOT_FOUND

        collection = interview_session.collection
        failures: List[Tuple[int, List[str]]] = []

        for segment in self.db.get_session_segments(session_id):
            if segment.ready == ReadyStateValue.READY.value:
                continue
            if self._has_pending_task(segment.segment_id):
                logger.info(
                    f"Session {interview_session.session_order} of collection {collection.accession} "
                    f"still has work pending (segment {segment.segment_id})."
                )
                return AutoPublishResult.INCOMPLETE
            failures.append((segment.segment_id, self.db.get_failed_task_names(segment.segment_id)))

        if failures:
            logger.error(
                f"Session {interview_session.session_order} of collection {collection.accession} "
                f"finished with {len(failures)} failed segment(s)."
            )
            self.notifier.send_processing_error_report(collection, interview_session, failures)
            return AutoPublishResult.FAILED

        logger.info(f"Session {interview_session.session_order} of collection {collection.accession} is ready. Publishing.")
        published = self.publisher.publish_collection(
            collection.accession, Environment.PROCESSING, [interview_session.session_order]
        )

        if published:
            self.notifier.send_ready_notification(collection, interview_session)
            return AutoPublishResult.PUBLISHED

        self.notifier.send_publishing_error_report(collection, interview_session)
        return AutoPublishResult.PUBLISH_FAILED
