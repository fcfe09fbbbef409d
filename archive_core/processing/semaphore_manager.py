"""
Per-segment processing locks shared by every processor on every host.

A lock is a row in the semaphores table tagged with the holder's pid and
hostname. Only the holder can release it. A processor that dies while
holding a lock leaves the row behind; unless a staleness threshold is
configured, an operator has to remove it (run-processing --release-lock).
"""

from datetime import datetime, timedelta
from typing import List, Optional

from archive_core.database.manager import DatabaseManager
from archive_core.utils.logger import setup_worker_logger
from archive_core.utils.node_utils import get_hostname, get_process_id

logger = setup_worker_logger('semaphore_manager')


class SemaphoreManager:
    """Requests and releases segment locks on behalf of this process.

    Args:
        db: Data access used for the lock rows
        pid: Holder process id (defaults to this process)
        hostname: Holder host name (defaults to this host, lower-cased)
        stale_after_minutes: Reclaim locks older than this; None never reclaims
    """

    def __init__(
        self,
        db: DatabaseManager,
        pid: Optional[int] = None,
        hostname: Optional[str] = None,
        stale_after_minutes: Optional[float] = None
    ):
        self.db = db
        self.pid = pid if pid is not None else get_process_id()
        self.hostname = (hostname or get_hostname()).lower()
        self.stale_after = timedelta(minutes=stale_after_minutes) if stale_after_minutes else None

    def request(self, segment_id: int) -> bool:
        """Try to take the lock on a segment.

        Returns:
            True if this process now holds the lock (including one it already held)
        """
        if self.db.insert_semaphore(segment_id, self.pid, self.hostname) is not None:
            logger.debug(f"Lock obtained on segment {segment_id}.")
            return True

        if self.stale_after is not None and self._reclaim_stale(segment_id):
            return self.db.insert_semaphore(segment_id, self.pid, self.hostname) is not None

        return False

    def _reclaim_stale(self, segment_id: int) -> bool:
        """Remove a conflicting lock older than the staleness threshold."""
        holder = self.db.get_semaphore(segment_id)
        if holder is None:
            # Released between our insert and this check
            return True
        if holder.created is None or datetime.utcnow() - holder.created < self.stale_after:
            return False

        logger.warning(
            f"Reclaiming stale lock on segment {segment_id} held by "
            f"{holder.hostname}:{holder.pid} since {holder.created:%Y-%m-%d %H:%M:%S}."
        )
        self.db.delete_semaphore(segment_id, holder.pid, holder.hostname)
        return True

    def release(self, segment_id: int) -> None:
        """Release this process's lock on a segment; locks held by others are untouched."""
        if self.db.delete_semaphore(segment_id, self.pid, self.hostname):
            logger.debug(f"Lock released on segment {segment_id}.")
        else:
            logger.warning(f"No lock held by {self.hostname}:{self.pid} on segment {segment_id} to release.")

    def held_locks(self) -> List[int]:
        """Segment ids currently locked by this process."""
        return [s.segment_id for s in self.db.get_semaphores(pid=self.pid, hostname=self.hostname)]
