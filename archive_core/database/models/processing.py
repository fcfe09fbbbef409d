"""
Processing bookkeeping models.

Contains:
- TaskState: Persistent per-(segment, task) processing state
- Semaphore: Exclusive per-segment processing lock
"""

from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Index
from datetime import datetime

from .base import Base


class TaskState(Base):
    """
    State of one named task on one segment.

    A missing row means the task has never run and reads as Pending.

    Attributes:
        segment_id: Segment the task operates on
        name: Task name (e.g. 'TranscodingTask')
        state: TaskStateValue code ('P', 'R', 'C', 'F')
        modified: Last state change

    Primary Key:
        (segment_id, name) - at most one state per task per segment
    """
    __tablename__ = 'task_states'

    segment_id = Column(Integer, ForeignKey('segments.segment_id'), primary_key=True)
    name = Column(String(32), primary_key=True)
    state = Column(String(1), nullable=False, default='P')
    modified = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        Index('idx_task_states_state', 'state'),
    )

    def __repr__(self):
        return f"<TaskState(segment={self.segment_id}, name='{self.name}', state='{self.state}')>"


class Semaphore(Base):
    """
    Exclusive lock on a segment, held while a processor works on it.

    Acquisition is an insert; the primary key on segment_id makes a second
    insert for the same segment fail atomically, whichever host attempts it.

    Attributes:
        segment_id: Locked segment
        pid: Process id of the holder
        hostname: Lower-cased host name of the holder
        created: When the lock was taken
    """
    __tablename__ = 'semaphores'

    segment_id = Column(Integer, ForeignKey('segments.segment_id'), primary_key=True)
    pid = Column(Integer, nullable=False)
    hostname = Column(String(255), nullable=False)
    created = Column(DateTime, nullable=False, default=datetime.utcnow)

    def __repr__(self):
        return f"<Semaphore(segment={self.segment_id}, holder={self.hostname}:{self.pid})>"
