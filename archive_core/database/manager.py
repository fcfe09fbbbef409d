from typing import List, Dict, Optional, Union, Iterable
from datetime import datetime
from sqlalchemy import and_, exists
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from .models import (
    Collection,
    InterviewSession,
    Movie,
    Segment,
    NamedEntity,
    TaskState,
    Semaphore,
    TaskStateValue,
    ReadyStateValue,
    PublishingPhase,
)
from ..utils.logger import setup_worker_logger

logger = setup_worker_logger('database')


class DatabaseManager:
    """Data access for segments, task states and processing locks.

    Every write commits immediately; task states and locks are shared with
    other processors, so nothing is left pending in the session.
    """

    def __init__(self, session: Session):
        self.session = session
        self.logger = logger

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if self.session:
            self.session.close()

    def close(self):
        """Explicitly close the session"""
        if self.session:
            self.session.close()
            self.session = None

    # ------------------------------------------------------------------
    # Segments
    # ------------------------------------------------------------------

    def get_segment(self, identifier: Union[int, str]) -> Optional[Segment]:
        """Get a segment by id (int) or by name (str)"""
        if isinstance(identifier, int):
            return self.get_segment_by_id(identifier)
        return self.get_segment_by_name(identifier)

    def get_segment_by_id(self, segment_id: int) -> Optional[Segment]:
        return self.session.query(Segment).filter_by(segment_id=segment_id).first()

    def get_segment_by_name(self, segment_name: str) -> Optional[Segment]:
        return self.session.query(Segment).filter_by(segment_name=segment_name).first()

    def reload_segment(self, segment: Segment) -> Segment:
        """Refresh a segment from the database, discarding unsaved changes"""
        self.session.refresh(segment)
        return segment

    def update_segment(self, segment: Segment) -> bool:
        """Persist changes to a segment"""
        try:
            self.session.add(segment)
            self.session.commit()
            return True
        except Exception as e:
            self.logger.error(f"Error updating segment {segment.segment_id}: {str(e)}")
            self.session.rollback()
            return False

    def update_ready_state(self, segment_id: int, ready: ReadyStateValue) -> bool:
        """Store the aggregate readiness of a segment"""
        try:
            segment = self.get_segment_by_id(segment_id)
            if not segment:
                return False
            segment.ready = ready.value
            self.session.commit()
            return True
        except Exception as e:
            self.logger.error(f"Error updating ready state of segment {segment_id}: {str(e)}")
            self.session.rollback()
            return False

    def get_next_segment_to_process(
        self,
        include_failures: bool = False,
        exclude_ids: Iterable[int] = ()
    ) -> Optional[Segment]:
        """Get the next segment that is not ready and not locked.

        Args:
            include_failures: If False, segments with any failed task are skipped
            exclude_ids: Segment ids to leave out (e.g. already attempted in this sweep)

        Returns:
            The candidate with the lowest id, or None when nothing is left
        """
        try:
            query = self.session.query(Segment)\
                .filter(Segment.ready != ReadyStateValue.READY.value)\
                .filter(~exists().where(Semaphore.segment_id == Segment.segment_id))

            if not include_failures:
                query = query.filter(~exists().where(and_(
                    TaskState.segment_id == Segment.segment_id,
                    TaskState.state == TaskStateValue.FAILED.value
                )))

            exclude_ids = list(exclude_ids)
            if exclude_ids:
                query = query.filter(Segment.segment_id.notin_(exclude_ids))

            return query.order_by(Segment.segment_id.asc()).first()
        except Exception as e:
            self.logger.error(f"Error getting next segment to process: {str(e)}")
            self.session.rollback()
            return None

    # ------------------------------------------------------------------
    # Task states
    # ------------------------------------------------------------------

    def _get_task_state_row(self, segment_id: int, name: str) -> Optional[TaskState]:
        return self.session.query(TaskState)\
            .filter_by(segment_id=segment_id, name=name)\
            .populate_existing()\
            .first()

    def get_task_state(self, segment_id: int, name: str) -> TaskStateValue:
        """Get the state of a task; a task with no stored state is Pending"""
        row = self._get_task_state_row(segment_id, name)
        if row is None:
            return TaskStateValue.PENDING
        return TaskStateValue.from_code(row.state)

    def get_task_states(self, segment_id: int, names: Optional[Iterable[str]] = None) -> Dict[str, TaskStateValue]:
        """Get all task states of a segment.

        Args:
            segment_id: Segment to inspect
            names: Known task names; any without a stored state are reported as Pending

        Returns:
            Dict of task name -> state
        """
        rows = self.session.query(TaskState)\
            .filter_by(segment_id=segment_id)\
            .populate_existing()\
            .all()
        states = {row.name: TaskStateValue.from_code(row.state) for row in rows}

        if names is not None:
            return {name: states.get(name, TaskStateValue.PENDING) for name in names}
        return states

    def update_task_state(self, segment_id: int, name: str, state: TaskStateValue) -> bool:
        """Insert or update the state of a task"""
        try:
            row = self._get_task_state_row(segment_id, name)
            if row is None:
                self.session.add(TaskState(segment_id=segment_id, name=name, state=state.value))
            else:
                row.state = state.value
                row.modified = datetime.utcnow()
            self.session.commit()
            return True
        except Exception as e:
            self.logger.error(f"Error updating {name} state for segment {segment_id}: {str(e)}")
            self.session.rollback()
            return False

    def get_failed_task_names(self, segment_id: int) -> List[str]:
        """Names of the tasks of a segment whose last attempt failed"""
        rows = self.session.query(TaskState.name)\
            .filter(TaskState.segment_id == segment_id)\
            .filter(TaskState.state == TaskStateValue.FAILED.value)\
            .order_by(TaskState.name)\
            .all()
        return [row.name for row in rows]

    def reset_task_states(
        self,
        segment_id: Optional[int] = None,
        from_state: TaskStateValue = TaskStateValue.RUNNING,
        to_state: TaskStateValue = TaskStateValue.PENDING
    ) -> int:
        """Move task states from one value to another (operator recovery).

        Args:
            segment_id: Limit to one segment; None resets across all segments
            from_state: State to look for
            to_state: State to set

        Returns:
            Number of task states changed
        """
        try:
            query = self.session.query(TaskState).filter(TaskState.state == from_state.value)
            if segment_id is not None:
                query = query.filter(TaskState.segment_id == segment_id)
            count = query.update(
                {TaskState.state: to_state.value, TaskState.modified: datetime.utcnow()},
                synchronize_session=False
            )
            self.session.commit()
            return count
        except Exception as e:
            self.logger.error(f"Error resetting task states: {str(e)}")
            self.session.rollback()
            return 0

    # ------------------------------------------------------------------
    # Semaphores
    # ------------------------------------------------------------------

    def get_semaphore(self, segment_id: int) -> Optional[Semaphore]:
        return self.session.query(Semaphore)\
            .filter_by(segment_id=segment_id)\
            .populate_existing()\
            .first()

    def insert_semaphore(self, segment_id: int, pid: int, hostname: str) -> Optional[Semaphore]:
        """Take the lock on a segment.

        Returns:
            The lock row owned by (pid, hostname), including one it already held,
            or None if another holder has it
        """
        existing = self.get_semaphore(segment_id)
        if existing is not None:
            if existing.pid == pid and existing.hostname == hostname:
                return existing
            return None

        try:
            semaphore = Semaphore(segment_id=segment_id, pid=pid, hostname=hostname, created=datetime.utcnow())
            self.session.add(semaphore)
            self.session.commit()
            return semaphore
        except IntegrityError:
            self.session.rollback()
            self.logger.debug(f"Lock on segment {segment_id} was taken by another processor")
            return None
        except Exception as e:
            self.logger.error(f"Error inserting semaphore for segment {segment_id}: {str(e)}")
            self.session.rollback()
            return None

    def delete_semaphore(self, segment_id: int, pid: int, hostname: str) -> bool:
        """Release a lock, only if held by (pid, hostname)"""
        try:
            count = self.session.query(Semaphore)\
                .filter(Semaphore.segment_id == segment_id)\
                .filter(Semaphore.pid == pid)\
                .filter(Semaphore.hostname == hostname)\
                .delete(synchronize_session=False)
            self.session.commit()
            return count > 0
        except Exception as e:
            self.logger.error(f"Error deleting semaphore for segment {segment_id}: {str(e)}")
            self.session.rollback()
            return False

    def force_delete_semaphore(self, segment_id: int) -> bool:
        """Remove a lock regardless of holder (operator recovery)"""
        try:
            count = self.session.query(Semaphore)\
                .filter(Semaphore.segment_id == segment_id)\
                .delete(synchronize_session=False)
            self.session.commit()
            return count > 0
        except Exception as e:
            self.logger.error(f"Error force-deleting semaphore for segment {segment_id}: {str(e)}")
            self.session.rollback()
            return False

    def get_semaphores(self, pid: Optional[int] = None, hostname: Optional[str] = None) -> List[Semaphore]:
        query = self.session.query(Semaphore)
        if pid is not None:
            query = query.filter(Semaphore.pid == pid)
        if hostname is not None:
            query = query.filter(Semaphore.hostname == hostname)
        return query.order_by(Semaphore.segment_id).all()

    # ------------------------------------------------------------------
    # Collections, sessions and movies
    # ------------------------------------------------------------------

    def get_movie(self, movie_id: int) -> Optional[Movie]:
        return self.session.query(Movie).filter_by(movie_id=movie_id).first()

    def get_collection(self, collection_id: int) -> Optional[Collection]:
        return self.session.query(Collection).filter_by(collection_id=collection_id).first()

    def get_collection_by_accession(self, accession: str) -> Optional[Collection]:
        return self.session.query(Collection).filter_by(accession=accession).first()

    def get_interview_session(self, session_id: int) -> Optional[InterviewSession]:
        return self.session.query(InterviewSession).filter_by(session_id=session_id).first()

    def get_sessions_by_order(self, collection_id: int, session_orders: Iterable[int]) -> List[InterviewSession]:
        return self.session.query(InterviewSession)\
            .filter(InterviewSession.collection_id == collection_id)\
            .filter(InterviewSession.session_order.in_(list(session_orders)))\
            .order_by(InterviewSession.session_order)\
            .all()

    def get_session_segments(self, session_id: int) -> List[Segment]:
        """All segments of an interview session in playback order"""
        return self.session.query(Segment)\
            .filter(Segment.session_id == session_id)\
            .populate_existing()\
            .order_by(Segment.segment_order, Segment.segment_id)\
            .all()

    def mark_published(self, collection: Collection, sessions: List[InterviewSession], phase: PublishingPhase) -> bool:
        """Advance the publishing phase of a collection and some of its sessions"""
        try:
            now = datetime.utcnow()
            for interview_session in sessions:
                if PublishingPhase(interview_session.phase) < phase:
                    interview_session.phase = phase.value
                interview_session.published = now
            if PublishingPhase(collection.phase) < phase:
                collection.phase = phase.value
            collection.published = now
            self.session.commit()
            return True
        except Exception as e:
            self.logger.error(f"Error marking collection {collection.accession} published: {str(e)}")
            self.session.rollback()
            return False

    # ------------------------------------------------------------------
    # Named entities
    # ------------------------------------------------------------------

    def get_named_entities(self, segment_id: int) -> List[NamedEntity]:
        return self.session.query(NamedEntity)\
            .filter_by(segment_id=segment_id)\
            .order_by(NamedEntity.named_entity_id)\
            .all()

    def insert_named_entity(self, segment_id: int, entity_type: str, value: str) -> bool:
        try:
            self.session.add(NamedEntity(segment_id=segment_id, type=entity_type, value=value))
            self.session.commit()
            return True
        except Exception as e:
            self.logger.error(f"Error inserting named entity for segment {segment_id}: {str(e)}")
            self.session.rollback()
            return False

    def delete_named_entities(self, segment_id: int) -> int:
        try:
            count = self.session.query(NamedEntity)\
                .filter(NamedEntity.segment_id == segment_id)\
                .delete(synchronize_session=False)
            self.session.commit()
            return count
        except Exception as e:
            self.logger.error(f"Error deleting named entities for segment {segment_id}: {str(e)}")
            self.session.rollback()
            return 0
