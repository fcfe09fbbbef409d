"""
Notifications sent to the processing team when a session settles.
"""

from typing import Dict, List, Optional, Sequence, Tuple

from archive_core.database.models import Collection, InterviewSession
from archive_core.utils.logger import get_log_file_path, setup_worker_logger
from archive_core.utils.node_utils import get_hostname

from .email_service import send_email

logger = setup_worker_logger('notifications')


class Notifier:
    """Composes and sends the three auto-publishing notifications."""

    def __init__(self, config: Optional[Dict] = None, sender=send_email):
        self.config = config
        self.sender = sender

    def _send(self, subject: str, body: str, is_error: bool) -> bool:
        return self.sender(subject, body, is_error=is_error, config=self.config)

    @property
    def review_url(self) -> str:
        environments = (self.config or {}).get('environments', {})
        return environments.get('processing', {}).get('site_url', '') or ''

    @staticmethod
    def _title(collection: Collection) -> str:
        return f"{collection.preferred_name} ({collection.accession})"

    @staticmethod
    def _lead(collection: Collection, session: InterviewSession) -> str:
        return f"{collection.preferred_name}, collection {collection.accession} session {session.session_order}, "

    def send_processing_error_report(
        self,
        collection: Collection,
        session: InterviewSession,
        failures: Sequence[Tuple[int, List[str]]]
    ) -> bool:
        """Report failed tasks.

        Args:
            failures: (segment_id, failed task names) for each failed segment
        """
        lines = [self._lead(collection, session) + "completed processing with errors:", ""]
        for segment_id, task_names in failures:
            if not task_names:
                lines.append(f"  * Segment {segment_id}: did not complete processing")
            for name in task_names:
                lines.append(f"  * Segment {segment_id}: Failed {name}")
        lines += [
            "",
            f"See {get_log_file_path()} on {get_hostname()} for details.",
            "",
            "You can attempt to reprocess the segments above by using run-processing with the --force-rerun option.",
            "",
            "Example:",
            "",
            f"  run-processing --force-rerun --id {failures[0][0] if failures else '<segment id>'}",
            "",
        ]
        sent = self._send(f"{self._title(collection)} completed processing with errors", "\n".join(lines), True)
        if sent:
            logger.info("Processing error report emailed to processing team.")
        return sent

    def send_publishing_error_report(self, collection: Collection, session: InterviewSession) -> bool:
        body = "\n".join([
            self._lead(collection, session)
            + "completed processing successfully but errors were logged while uploading to the review site.",
            "",
            f"See {get_log_file_path()} on {get_hostname()} for details.",
            "",
        ])
        sent = self._send(f"{self._title(collection)} completed processing with publishing errors", body, True)
        if sent:
            logger.info("Publishing error report emailed to processing team.")
        return sent

    def send_ready_notification(self, collection: Collection, session: InterviewSession) -> bool:
        body = "\n".join([
            self._lead(collection, session) + "completed processing successfully and is ready for review.",
            "",
            "You can review the contents of this collection here:",
            "",
            f"    {self.review_url.rstrip('/')}/collections/{collection.accession}",
            "",
        ])
        sent = self._send(f"{self._title(collection)} ready for review.", body, False)
        if sent:
            logger.info("Processing success notification emailed to processing team.")
        return sent
