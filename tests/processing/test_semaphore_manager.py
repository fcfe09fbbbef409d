"""
Tests for SemaphoreManager.
"""

from datetime import datetime, timedelta

import pytest

from archive_core.database.models import Semaphore
from archive_core.processing.semaphore_manager import SemaphoreManager


class TestSemaphoreManager:
    """Tests for per-segment locking between processors."""

    @pytest.fixture(autouse=True)
    def setup(self, db, other_db, add_segment):
        self.db = db
        self.other_db = other_db
        self.segment_id = add_segment().segment_id
        self.first = SemaphoreManager(db, pid=101, hostname="Worker-A")
        self.second = SemaphoreManager(other_db, pid=202, hostname="worker-b")

    def test_hostname_is_lower_cased(self):
        assert self.first.hostname == "worker-a"

    def test_only_one_processor_gets_the_lock(self):
        assert self.first.request(self.segment_id) is True
        assert self.second.request(self.segment_id) is False

        holder = self.db.get_semaphore(self.segment_id)
        assert (holder.pid, holder.hostname) == (101, "worker-a")

    def test_lock_available_after_release(self):
        assert self.first.request(self.segment_id)
        self.first.release(self.segment_id)

        assert self.second.request(self.segment_id) is True

    def test_request_is_reentrant_for_the_holder(self):
        assert self.first.request(self.segment_id)
        assert self.first.request(self.segment_id)
        assert self.first.held_locks() == [self.segment_id]

    def test_release_by_non_holder_keeps_lock(self):
        """Releasing someone else's lock does nothing."""
        assert self.first.request(self.segment_id)

        self.second.release(self.segment_id)

        assert self.db.get_semaphore(self.segment_id) is not None
        assert self.second.request(self.segment_id) is False

    def test_same_pid_on_other_host_is_a_different_holder(self):
        twin = SemaphoreManager(self.other_db, pid=101, hostname="worker-b")
        assert self.first.request(self.segment_id)
        assert twin.request(self.segment_id) is False

    def test_orphaned_lock_kept_without_staleness_threshold(self):
        self._orphan_lock(hours=12)

        assert self.second.request(self.segment_id) is False

    def test_stale_lock_is_reclaimed(self):
        self._orphan_lock(hours=12)
        reclaimer = SemaphoreManager(self.other_db, pid=202, hostname="worker-b", stale_after_minutes=60)

        assert reclaimer.request(self.segment_id) is True
        holder = self.db.get_semaphore(self.segment_id)
        assert (holder.pid, holder.hostname) == (202, "worker-b")

    def test_fresh_lock_is_not_reclaimed(self):
        assert self.first.request(self.segment_id)
        reclaimer = SemaphoreManager(self.other_db, pid=202, hostname="worker-b", stale_after_minutes=60)

        assert reclaimer.request(self.segment_id) is False

    def _orphan_lock(self, hours):
        self.db.session.add(Semaphore(
            segment_id=self.segment_id,
            pid=999,
            hostname="crashed-host",
            created=datetime.utcnow() - timedelta(hours=hours)
        ))
        self.db.session.commit()
